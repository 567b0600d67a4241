# infrastructure/delivery/printer.py
import asyncio
import html
import logging
import os
import shlex
import time
from typing import List, Optional

import aiofiles

from photobooth.config.settings import settings
from photobooth.domain.errors import DeliveryError

logger = logging.getLogger("uvicorn.error")

PRINT_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <title>Print Photos - {title}</title>
    <style>
      body {{ margin: 0; padding: 20px; display: flex; flex-direction: column;
             justify-content: center; align-items: center; min-height: 100vh; }}
      img {{ max-width: 100%; max-height: 100%; display: block; }}
      @media print {{ body {{ padding: 0; }} img {{ margin: 0; page-break-after: always; }} }}
    </style>
  </head>
  <body>
{images}
  </body>
</html>
"""


def render_print_page(composites: List[str], template_name: str) -> str:
    images = "\n".join(
        f'    <img src="{html.escape(src, quote=True)}" alt="Photo Strip" />' for src in composites
    )
    return PRINT_PAGE.format(title=html.escape(template_name), images=images)


class PrintAdapter:
    """Spools a print-ready page and hands it to the native print command."""

    def __init__(self, spool_dir: str = None, command: Optional[str] = None):
        self.spool_dir = spool_dir or settings.PRINT_SPOOL_DIR
        self.command = command if command is not None else settings.PRINT_COMMAND

    async def print_photos(self, composites: List[str], template_name: str, copies: int = 1) -> str:
        if not composites:
            raise DeliveryError("Nothing to print", method="print")

        path = os.path.join(self.spool_dir, f"print-{int(time.time() * 1000)}.html")
        try:
            os.makedirs(self.spool_dir, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(render_print_page(composites, template_name))
        except OSError as e:
            raise DeliveryError(f"Unable to spool print page: {e}", method="print") from e
        logger.info(f"Print page for '{template_name}' spooled at {path} ({len(composites)} images)")

        if not self.command:
            return path

        template = shlex.split(self.command)
        args = [a.format(path=path, copies=copies) for a in template]
        if not any("{path}" in a for a in template):
            args.append(path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
            _, stderr = await proc.communicate()
        except OSError as e:
            raise DeliveryError(f"Unable to start print command: {e}", method="print",
                                details={'command': args[0]}) from e
        if proc.returncode != 0:
            raise DeliveryError(f"Print command exited with status {proc.returncode}", method="print",
                                details={'stderr': stderr.decode(errors="replace")[:500]})
        logger.info(f"Print job submitted via '{args[0]}'")
        return path
