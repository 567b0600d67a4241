# infrastructure/cv/image_loader.py
import asyncio
import base64
import binascii
import io
import logging
import os
from concurrent.futures import Executor
from typing import Optional, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import aiofiles
import aiohttp
from PIL import Image

from photobooth.config.settings import settings
from photobooth.domain.errors import DecodeError

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

ImageReference = Union[str, bytes]


def _describe(reference: ImageReference) -> str:
    if isinstance(reference, (bytes, bytearray)):
        return f"<{len(reference)} bytes>"
    return reference


def decode_image(data: bytes, reference: ImageReference = b"") -> Image.Image:
    """Decode encoded image bytes into a fully loaded RGBA raster."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(_describe(reference), f"{type(e).__name__}: {e}") from e


class ImageLoader:
    """Fetches and decodes image references into Pillow rasters.

    Supported references: ``data:image/...;base64,`` URLs, http(s) URLs,
    ``file://`` URLs and filesystem paths inside ``public_dir``, site-relative
    paths resolved under ``public_dir`` (``/templates/x.png``), bare base64
    and raw bytes.
    Every failure surfaces as ``DecodeError``; nothing is retried.
    """

    def __init__(self, public_dir: Optional[str] = None, executor: Optional[Executor] = None,
                 timeout: int = None, session: Optional[aiohttp.ClientSession] = None):
        self.public_dir = public_dir if public_dir is not None else settings.PUBLIC_DIR
        self.executor = executor
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._session = session

    def _resolve_path(self, src: str) -> Optional[str]:
        """Map a path or ``file://`` reference to a readable file under ``public_dir``.

        Anything that resolves outside the public directory, symlinks and
        ``..`` segments included, is treated as not found.
        """
        if not self.public_dir:
            return None
        root = os.path.realpath(self.public_dir)
        if src.startswith("file://"):
            candidates = [url2pathname(urlparse(src).path)]
        else:
            candidates = [src, os.path.join(root, src.lstrip("/"))]
        for candidate in candidates:
            resolved = os.path.realpath(candidate)
            if os.path.commonpath([root, resolved]) == root and os.path.isfile(resolved):
                return resolved
        return None

    async def _fetch_http(self, src: str) -> bytes:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        if self._session is not None:
            async with self._session.get(src, timeout=timeout) as response:
                response.raise_for_status()
                return await response.read()
        async with aiohttp.ClientSession() as session:
            async with session.get(src, timeout=timeout) as response:
                response.raise_for_status()
                return await response.read()

    async def fetch_bytes(self, reference: ImageReference) -> bytes:
        if isinstance(reference, (bytes, bytearray)):
            return bytes(reference)
        if not isinstance(reference, str) or not reference:
            raise DecodeError(str(reference), "empty or unsupported reference")

        src = reference.strip()
        try:
            if src.startswith(("http://", "https://")):
                return await self._fetch_http(src)
            if src.startswith("data:"):
                header, sep, encoded = src.partition(",")
                if not sep or ";base64" not in header:
                    raise DecodeError(src, "data URL is not base64 encoded")
                return base64.b64decode(encoded + "===")
            path = self._resolve_path(src)
            if path is not None:
                async with aiofiles.open(path, "rb") as f:
                    return await f.read()
            if src.startswith("file://"):
                raise DecodeError(src, "file not found")
            # Last resort: a bare base64 payload
            return base64.b64decode(src, validate=True)
        except DecodeError:
            raise
        except binascii.Error as e:
            raise DecodeError(src, "not a readable file, URL or base64 payload") from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Failed to load image from source '{src[:70]}...': {type(e).__name__}")
            raise DecodeError(src, f"{type(e).__name__}: {e}") from e

    async def load(self, reference: ImageReference) -> Image.Image:
        data = await self.fetch_bytes(reference)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, decode_image, data, reference)
