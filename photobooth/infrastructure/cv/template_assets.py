# infrastructure/cv/template_assets.py
"""Renders the background PNGs of the built-in design templates.

Backgrounds are opaque everywhere except the slot rectangles, which are
fully transparent so composited photos show through.
"""
import logging
import os
from typing import List, Sequence, Tuple

from PIL import Image, ImageDraw

from photobooth.delivery.schemas.body import DesignTemplateConfig
from photobooth.infrastructure.cv.image_process import load_font, slot_box

logger = logging.getLogger("uvicorn.error")

BRANDING_MARGIN = 120

# (fill, accent) per built-in background file
_STYLES = {
    "classic-strip.png": ((255, 255, 255, 255), (51, 51, 51, 255)),
    "gold-frame.png": ((250, 243, 224, 255), (212, 175, 55, 255)),
}
_DEFAULT_STYLE = ((255, 255, 255, 255), (255, 107, 107, 255))


def background_size(template: DesignTemplateConfig) -> Tuple[int, int]:
    boxes = [slot_box(s) for s in template.slots] or [(0, 0, 600, 800)]
    left = min(b[0] for b in boxes)
    width = max(b[0] + b[2] for b in boxes) + left
    height = max(b[1] + b[3] for b in boxes) + BRANDING_MARGIN
    return width, height


def render_background(template: DesignTemplateConfig, fill, accent) -> Image.Image:
    width, height = background_size(template)
    img = Image.new("RGBA", (width, height), fill)
    draw = ImageDraw.Draw(img)

    draw.rectangle((8, 8, width - 9, height - 9), outline=accent, width=10)
    for slot in template.slots:
        x, y, w, h = slot_box(slot)
        draw.rectangle((x - 6, y - 6, x + w + 5, y + h + 5), outline=accent, width=4)
        draw.rectangle((x, y, x + w - 1, y + h - 1), fill=(0, 0, 0, 0))

    draw.text((width / 2, height - BRANDING_MARGIN / 2), template.name, fill=accent,
              font=load_font(28, bold=True), anchor="mm")
    return img


def ensure_builtin_backgrounds(templates: Sequence[DesignTemplateConfig], templates_dir: str) -> List[str]:
    """Write missing built-in backgrounds into ``templates_dir``; returns paths written."""
    os.makedirs(templates_dir, exist_ok=True)
    written = []
    for template in templates:
        filename = os.path.basename(template.background_url)
        path = os.path.join(templates_dir, filename)
        if os.path.exists(path):
            continue
        fill, accent = _STYLES.get(filename, _DEFAULT_STYLE)
        with render_background(template, fill, accent) as img:
            img.save(path, format="PNG", optimize=True)
        written.append(path)
        logger.info(f"Rendered built-in template background {path}")
    return written
