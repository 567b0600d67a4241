# domain/compositor.py
import asyncio
import base64
import logging
import os
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import numpy as np
import psutil
from PIL import Image, ImageDraw, ImageColor, features

from photobooth.config.settings import settings
from photobooth.delivery.schemas.body import DesignTemplateConfig, PhotoLayout, TemplateType
from photobooth.domain.errors import ContextUnavailable
from photobooth.domain.layout import layout, template_size
from photobooth.infrastructure.cv import image_process
from photobooth.infrastructure.cv.image_loader import ImageLoader, ImageReference

# --- CONFIGURATION ---
CORNER_RADIUS = 10
SLOT_BORDER_WIDTH = 3
SLOT_BORDER_COLOR = (255, 255, 255)
PLACEHOLDER_INSET = 3
PLACEHOLDER_PALETTE = (
    (255, 255, 0, 255),
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (255, 165, 0, 255),
)
OPAQUE_SLOT_THRESHOLD = 0.9

# --- LOGGER SETUP ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


@dataclass(frozen=True)
class ComposeOptions:
    width: Optional[int] = None
    height: Optional[int] = None
    design_template: Optional[DesignTemplateConfig] = None
    fit: Optional[str] = None


@dataclass(frozen=True)
class Composite:
    """A finished, encoded composite. Always a new artifact per call."""
    data: bytes
    mime_type: str
    width: int
    height: int

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @property
    def extension(self) -> str:
        return "png" if self.mime_type == "image/png" else "jpg"


def placeholder_color(slot_index: int):
    return PLACEHOLDER_PALETTE[slot_index % len(PLACEHOLDER_PALETTE)]


def _memory_mb() -> Optional[float]:
    try:
        return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024
    except psutil.Error as e:
        logger.warning(f"Could not get memory info: {e}")
        return None


class Compositor:
    """Renders captured photos into a procedural layout or a design template.

    Each ``compose`` call allocates its own canvas, so concurrent calls never
    share a drawing surface. Photos are decoded and drawn strictly in slot
    order.
    """

    def __init__(self, loader: Optional[ImageLoader] = None, executor: Optional[Executor] = None,
                 brand_label: str = None, accent_color: str = None, jpeg_quality: int = None,
                 default_fit: str = None):
        for codec in ("jpg", "zlib"):
            if not features.check(codec):
                raise ContextUnavailable(f"Pillow was built without the '{codec}' codec; cannot encode composites",
                                         details={'codec': codec})
        self.executor = executor
        self.loader = loader or ImageLoader(executor=executor)
        self.brand_label = brand_label or settings.BRAND_LABEL
        self.accent_color = ImageColor.getrgb(accent_color or settings.ACCENT_COLOR)
        self.jpeg_quality = jpeg_quality or settings.JPEG_QUALITY
        self.default_fit = default_fit or settings.DEFAULT_FIT

    def _new_canvas(self, mode: str, width: int, height: int) -> Image.Image:
        try:
            return Image.new(mode, (width, height), (255, 255, 255) if mode == "RGB" else (255, 255, 255, 255))
        except (ValueError, MemoryError) as e:
            raise ContextUnavailable(f"Could not allocate a {width}x{height} canvas: {e}",
                                     details={'width': width, 'height': height}) from e

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def _encode(self, canvas: Image.Image, fmt: str) -> Composite:
        data, mime = await self._run(image_process.encode_image, canvas, fmt, self.jpeg_quality)
        return Composite(data=data, mime_type=mime, width=canvas.width, height=canvas.height)

    @staticmethod
    def _draw_slot(canvas: Image.Image, photo: Image.Image, slot: PhotoLayout, fit: str) -> None:
        """Clip-and-stretch one photo into its slot, then stroke the slot border."""
        try:
            image_process.paste_clipped(canvas, photo, slot, radius=CORNER_RADIUS, fit=fit)
        finally:
            photo.close()
        x, y, w, h = image_process.slot_box(slot)
        image_process.stroke_rect(ImageDraw.Draw(canvas), x, y, w, h, SLOT_BORDER_COLOR, SLOT_BORDER_WIDTH)

    async def _draw_photos(self, canvas: Image.Image, photos: Sequence[ImageReference],
                           slots: Sequence[PhotoLayout], fit: str) -> int:
        count = min(len(photos), len(slots))
        for i in range(count):
            # Decode i+1 only starts after draw i finished
            photo = await self.loader.load(photos[i])
            await self._run(self._draw_slot, canvas, photo, slots[i], fit)
        return count

    def _add_frame(self, canvas: Image.Image) -> None:
        width, height = canvas.size
        draw = ImageDraw.Draw(canvas)
        image_process.stroke_rect(draw, 10, 10, width - 20, height - 20, self.accent_color, 8)
        image_process.stroke_rect(draw, 20, 20, width - 40, height - 40, (255, 255, 255), 4)

    def _add_branding(self, canvas: Image.Image, today: date = None) -> None:
        width, height = canvas.size
        today = today or date.today()
        draw = ImageDraw.Draw(canvas)
        draw.text((width / 2, height - 30), self.brand_label, fill="#333333",
                  font=image_process.load_font(24, bold=True), anchor="ms")
        draw.text((width / 2, height - 10), f"{today.month}/{today.day}/{today.year}", fill="#666666",
                  font=image_process.load_font(16), anchor="ms")

    async def compose(self, photos: Sequence[ImageReference], template_type: TemplateType = TemplateType.STRIP,
                      options: Optional[ComposeOptions] = None) -> Composite:
        options = options or ComposeOptions()
        fit = options.fit or self.default_fit
        if options.design_template is not None:
            return await self._compose_with_design_template(list(photos), options.design_template, fit)
        return await self._compose_procedural(list(photos), TemplateType(template_type), options, fit)

    async def _compose_procedural(self, photos: List[ImageReference], template_type: TemplateType,
                                  options: ComposeOptions, fit: str) -> Composite:
        start = time.perf_counter()
        slots = layout(template_type, len(photos))
        default_w, default_h = template_size(template_type)
        width = options.width or default_w
        height = options.height or default_h
        logger.info(f"Composing {len(photos)} photos into '{template_type.value}' layout "
                    f"({len(slots)} slots, {width}x{height}). Memory: {_memory_mb() or 0:.1f}MB")

        canvas = self._new_canvas("RGB", width, height)
        try:
            await self._run(self._add_frame, canvas)
            drawn = await self._draw_photos(canvas, photos, slots, fit)
            await self._run(self._add_branding, canvas)
            composite = await self._encode(canvas, "jpeg")
        finally:
            canvas.close()

        if drawn < len(photos):
            logger.info(f"Dropped {len(photos) - drawn} photos without a slot.")
        logger.info(f"Procedural composite done in {time.perf_counter() - start:.2f}s "
                    f"({len(composite.data)} bytes). Memory: {_memory_mb() or 0:.1f}MB")
        return composite

    @staticmethod
    def _probe_transparency(background: Image.Image, design: DesignTemplateConfig) -> None:
        alpha = np.asarray(background.getchannel("A"))
        for i, slot in enumerate(design.slots):
            opacity = image_process.slot_opacity(alpha, slot)
            if opacity >= OPAQUE_SLOT_THRESHOLD:
                logger.warning(f"Template '{design.id}' slot {i} is {opacity:.0%} opaque; "
                               f"photos drawn there will be hidden by the background.")

    @staticmethod
    def _finish_design(canvas: Image.Image, background: Image.Image, design: DesignTemplateConfig,
                       drawn: int) -> None:
        draw = ImageDraw.Draw(canvas)
        for i in range(drawn, len(design.slots)):
            image_process.fill_inset(draw, design.slots[i], placeholder_color(i), PLACEHOLDER_INSET)

        # Source-over: transparent areas of the background reveal the photos beneath
        canvas.alpha_composite(background)

    async def _compose_with_design_template(self, photos: List[ImageReference], design: DesignTemplateConfig,
                                            fit: str) -> Composite:
        start = time.perf_counter()
        logger.info(f"Composing {len(photos)} photos into design template '{design.id}' "
                    f"({len(design.slots)} slots). Memory: {_memory_mb() or 0:.1f}MB")

        # Background first: its pixel size decides the canvas size
        background = await self.loader.load(design.background_url)
        try:
            await self._run(self._probe_transparency, background, design)
            canvas = self._new_canvas("RGBA", background.width, background.height)
            try:
                drawn = await self._draw_photos(canvas, photos, design.slots, fit)
                await self._run(self._finish_design, canvas, background, design, drawn)
                composite = await self._encode(canvas, "png")
            finally:
                canvas.close()
        finally:
            background.close()

        logger.info(f"Design composite '{design.id}' done in {time.perf_counter() - start:.2f}s: "
                    f"{drawn} photos, {len(design.slots) - drawn} empty slots.")
        return composite
