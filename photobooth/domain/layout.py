# domain/layout.py
"""Procedural slot layouts for the built-in strip, collage and single templates."""
from typing import List, Tuple

from photobooth.delivery.schemas.body import PhotoLayout, TemplateType

STRIP_X = 50
STRIP_START_Y = 150
STRIP_PHOTO_WIDTH = 500
STRIP_PHOTO_HEIGHT = 350
STRIP_SPACING = 20

COLLAGE_PADDING = 20
SINGLE_PADDING = 50
CANVAS_WIDTH = 600
CANVAS_HEIGHT = 800

_TEMPLATE_SIZES = {
    TemplateType.STRIP: (600, 1800),
    TemplateType.COLLAGE: (CANVAS_WIDTH, CANVAS_HEIGHT),
    TemplateType.SINGLE: (CANVAS_WIDTH, CANVAS_HEIGHT),
}


def _strip_layout(photo_count: int) -> List[PhotoLayout]:
    # No upper bound: long strips simply run past the canvas height
    return [
        PhotoLayout(
            x=STRIP_X,
            y=STRIP_START_Y + (STRIP_PHOTO_HEIGHT + STRIP_SPACING) * i,
            width=STRIP_PHOTO_WIDTH,
            height=STRIP_PHOTO_HEIGHT,
        )
        for i in range(photo_count)
    ]


def _collage_layout(photo_count: int) -> List[PhotoLayout]:
    pad = COLLAGE_PADDING
    w, h = CANVAS_WIDTH, CANVAS_HEIGHT

    if photo_count == 1:
        return [PhotoLayout(x=pad, y=pad, width=w - pad * 2, height=h - pad * 2)]

    if photo_count == 2:
        photo_w = (w - pad * 3) / 2
        photo_h = h - pad * 2
        return [
            PhotoLayout(x=pad, y=pad, width=photo_w, height=photo_h),
            PhotoLayout(x=pad * 2 + photo_w, y=pad, width=photo_w, height=photo_h),
        ]

    if photo_count == 3:
        main_w = w - pad * 2
        main_h = (h - pad * 3) * 0.6
        small_h = (h - pad * 3 - main_h) / 2
        return [
            PhotoLayout(x=pad, y=pad, width=main_w, height=main_h),
            PhotoLayout(x=pad, y=pad * 2 + main_h, width=main_w, height=small_h),
            PhotoLayout(x=pad, y=pad * 3 + main_h + small_h, width=main_w, height=small_h),
        ]

    # Every other count (0, 4, 5, ...) gets the 2x2 grid
    photo_w = (w - pad * 3) / 2
    photo_h = (h - pad * 3) / 2
    return [
        PhotoLayout(x=pad, y=pad, width=photo_w, height=photo_h),
        PhotoLayout(x=pad * 2 + photo_w, y=pad, width=photo_w, height=photo_h),
        PhotoLayout(x=pad, y=pad * 2 + photo_h, width=photo_w, height=photo_h),
        PhotoLayout(x=pad * 2 + photo_w, y=pad * 2 + photo_h, width=photo_w, height=photo_h),
    ]


def _single_layout(photo_count: int) -> List[PhotoLayout]:
    pad = SINGLE_PADDING
    return [PhotoLayout(x=pad, y=pad, width=CANVAS_WIDTH - pad * 2, height=CANVAS_HEIGHT - pad * 2)]


def layout(template_type: TemplateType, photo_count: int) -> List[PhotoLayout]:
    """Return the ordered slot rectangles for a procedural template.

    Pure and deterministic. Callers fill only the first
    ``min(photo_count, len(slots))`` slots.
    """
    if photo_count < 0:
        raise ValueError(f"photo_count must be >= 0, got {photo_count}")

    template_type = TemplateType(template_type)
    if template_type is TemplateType.COLLAGE:
        return _collage_layout(photo_count)
    if template_type is TemplateType.SINGLE:
        return _single_layout(photo_count)
    return _strip_layout(photo_count)


def template_size(template_type: TemplateType) -> Tuple[int, int]:
    """Default (width, height) of the output canvas for a procedural template."""
    return _TEMPLATE_SIZES[TemplateType(template_type)]
