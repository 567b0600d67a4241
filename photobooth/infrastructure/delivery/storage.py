# infrastructure/delivery/storage.py
import base64
import binascii
import logging
import os
import time
from typing import List

import aiofiles

from photobooth.config.settings import settings
from photobooth.domain.errors import DeliveryError

logger = logging.getLogger("uvicorn.error")

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png"}


def split_data_url(data_url: str):
    """Return (mime type, payload bytes) of a base64 data URL."""
    header, sep, encoded = data_url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("not a base64 data URL")
    mime = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    return mime, base64.b64decode(encoded, validate=True)


class SaveAdapter:
    """Writes composites to the output directory as photobooth-<ms>.<ext>."""

    def __init__(self, output_dir: str = None):
        self.output_dir = output_dir or settings.OUTPUT_DIR

    async def save(self, composites: List[str]) -> List[str]:
        os.makedirs(self.output_dir, exist_ok=True)
        paths = []
        stamp = int(time.time() * 1000)
        for i, data_url in enumerate(composites):
            try:
                mime, payload = split_data_url(data_url)
            except (ValueError, binascii.Error) as e:
                raise DeliveryError(f"Composite {i} is not a valid image payload", method="save") from e
            suffix = f"-{i}" if len(composites) > 1 else ""
            path = os.path.join(self.output_dir, f"photobooth-{stamp}{suffix}.{_EXTENSIONS.get(mime, 'jpg')}")
            try:
                async with aiofiles.open(path, "wb") as f:
                    await f.write(payload)
            except OSError as e:
                raise DeliveryError(f"Could not write {path}: {e}", method="save") from e
            paths.append(path)
        logger.info(f"Saved {len(paths)} composites to {self.output_dir}")
        return paths


def share_url(session_id: str = None, base_url: str = None) -> str:
    # Placeholder target for the kiosk's QR code
    session_id = session_id or str(int(time.time() * 1000))
    return f"{(base_url or settings.SHARE_BASE_URL).rstrip('/')}/{session_id}"
