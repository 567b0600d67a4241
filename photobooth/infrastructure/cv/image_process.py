# infrastructure/cv/image_process.py
import io
from typing import Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from photobooth.delivery.schemas.body import PhotoLayout

Box = Tuple[int, int, int, int]


def slot_box(slot: PhotoLayout) -> Box:
    """Integer (left, top, width, height) of a slot, rounding fractional layouts."""
    x, y = int(round(slot.x)), int(round(slot.y))
    w = max(1, int(round(slot.x + slot.width)) - x)
    h = max(1, int(round(slot.y + slot.height)) - y)
    return x, y, w, h


def crop_to_fill(image_pil: Image.Image, target_w: int, target_h: int) -> Image.Image:
    source_w, source_h = image_pil.size
    target_ratio = target_w / target_h
    source_ratio = source_w / source_h

    if source_ratio > target_ratio:
        scaled_w = max(target_w, int(source_w * target_h / source_h))
        resized_image = image_pil.resize((scaled_w, target_h), Image.Resampling.LANCZOS)
        crop_x = (scaled_w - target_w) // 2
        return resized_image.crop((crop_x, 0, crop_x + target_w, target_h))
    else:
        scaled_h = max(target_h, int(source_h * target_w / source_w))
        resized_image = image_pil.resize((target_w, scaled_h), Image.Resampling.LANCZOS)
        crop_y = (scaled_h - target_h) // 2
        return resized_image.crop((0, crop_y, target_w, crop_y + target_h))


def stretch_to_fill(image_pil: Image.Image, target_w: int, target_h: int) -> Image.Image:
    # Non-uniform scale, aspect ratio is not preserved
    return image_pil.resize((target_w, target_h), Image.Resampling.LANCZOS)


def rounded_mask(size: Tuple[int, int], radius: int) -> Image.Image:
    """L-mode clip mask: 255 inside a rounded rectangle covering ``size``."""
    w, h = size
    mask = Image.new("L", (w, h), 0)
    radius = max(0, min(radius, w // 2, h // 2))
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, w - 1, h - 1), radius=radius, fill=255)
    return mask


def paste_clipped(canvas: Image.Image, photo: Image.Image, slot: PhotoLayout,
                  radius: int = 10, fit: str = "stretch") -> None:
    """Clip-and-stretch one photo into its slot on the canvas."""
    x, y, w, h = slot_box(slot)
    fitted = crop_to_fill(photo, w, h) if fit == "cover" else stretch_to_fill(photo, w, h)
    mask = rounded_mask((w, h), radius)
    if fitted.mode == "RGBA":
        # Respect the photo's own transparency inside the clip
        mask = Image.fromarray(np.minimum(np.asarray(mask), np.asarray(fitted.getchannel("A"))))
    canvas.paste(fitted.convert(canvas.mode), (x, y), mask=mask)


def stroke_rect(draw: ImageDraw.ImageDraw, x: float, y: float, w: float, h: float,
                color, line_width: int) -> None:
    """Stroke a rectangle with the line centred on its outline."""
    half = line_width / 2
    box = (int(round(x - half)), int(round(y - half)),
           int(round(x + w + half)) - 1, int(round(y + h + half)) - 1)
    if box[2] < box[0] or box[3] < box[1]:
        # Inset frame on a canvas too small to hold it
        return
    draw.rectangle(box, outline=color, width=line_width)


def fill_inset(draw: ImageDraw.ImageDraw, slot: PhotoLayout, color, inset: int) -> None:
    x, y, w, h = slot_box(slot)
    if w <= inset * 2 or h <= inset * 2:
        return
    draw.rectangle((x + inset, y + inset, x + w - inset - 1, y + h - inset - 1), fill=color)


def slot_opacity(alpha: np.ndarray, slot: PhotoLayout) -> float:
    """Mean alpha (0..1) of a background's alpha array inside a slot; 0 for slots off the image."""
    x, y, w, h = slot_box(slot)
    region = alpha[max(0, y):max(0, y + h), max(0, x):max(0, x + w)]
    if region.size == 0:
        return 0.0
    return float(region.mean() / 255.0)


def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    for candidate in (name, "arialbd.ttf" if bold else "arial.ttf"):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def encode_image(img: Image.Image, fmt: str = "jpeg", quality: int = 90) -> Tuple[bytes, str]:
    """Encode a raster; returns (payload, mime type)."""
    fmt = (fmt or "jpeg").lower()
    if fmt in ("jpg", "jpeg"):
        # JPEG can't have alpha
        if img.mode != "RGB":
            img = img.convert("RGB")
        save_kwargs = dict(format="JPEG", quality=quality, optimize=True)
        mime = "image/jpeg"
    elif fmt == "png":
        save_kwargs = dict(format="PNG", optimize=True)
        mime = "image/png"
    else:
        raise ValueError(f"Unsupported output format: {fmt}")

    buf = io.BytesIO()
    img.save(buf, **save_kwargs)
    return buf.getvalue(), mime
