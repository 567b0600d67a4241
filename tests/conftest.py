"""
Pytest fixtures shared by the photobooth tests.

Provides in-memory persistence, solid-colour photo payloads and design
template backgrounds rendered into a temporary public directory.
"""

import base64
import io
from typing import List, Optional, Sequence, Tuple

import pytest
from PIL import Image, ImageDraw

from photobooth.delivery.schemas.body import DesignTemplateConfig, GalleryItem, PhotoLayout, TemplateType
from photobooth.domain.compositor import Compositor
from photobooth.infrastructure.cv.image_loader import ImageLoader


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_url(img: Image.Image) -> str:
    return "data:image/png;base64," + base64.b64encode(encode_png(img)).decode("ascii")


def solid_photo(color: Tuple[int, int, int], size=(64, 48)) -> str:
    return data_url(Image.new("RGB", size, color))


def quadrant_photo(tl, tr, bl, br, size=(100, 50)) -> str:
    w, h = size
    img = Image.new("RGB", size)
    draw = ImageDraw.Draw(img)
    draw.rectangle((0, 0, w // 2 - 1, h // 2 - 1), fill=tl)
    draw.rectangle((w // 2, 0, w - 1, h // 2 - 1), fill=tr)
    draw.rectangle((0, h // 2, w // 2 - 1, h - 1), fill=bl)
    draw.rectangle((w // 2, h // 2, w - 1, h - 1), fill=br)
    return data_url(img)


def decode(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data)).convert("RGBA")


def assert_color(img: Image.Image, xy, expected, tol: int = 40):
    actual = img.getpixel(xy)[:3]
    assert all(abs(a - e) <= tol for a, e in zip(actual, expected[:3])), \
        f"pixel {xy} is {actual}, expected ~{tuple(expected[:3])}"


def make_background(size, holes: Sequence[Tuple[int, int, int, int]], fill=(0, 128, 0, 255)) -> Image.Image:
    """Opaque background with fully transparent rectangles at ``holes`` (x, y, w, h)."""
    img = Image.new("RGBA", size, fill)
    draw = ImageDraw.Draw(img)
    for x, y, w, h in holes:
        draw.rectangle((x, y, x + w - 1, y + h - 1), fill=(0, 0, 0, 0))
    return img


class InMemoryStore:
    """Test double for the key-value store (TemplateStore + GalleryStore)."""

    def __init__(self, templates: Optional[List[DesignTemplateConfig]] = None):
        self.templates = list(templates or [])
        self.last_template_id = None
        self.gallery: List[GalleryItem] = []
        self.saves = 0

    async def load_templates(self):
        return [t.model_copy(deep=True) for t in self.templates]

    async def save_templates(self, templates):
        self.saves += 1
        self.templates = [t.model_copy(deep=True) for t in templates]

    async def get_last_template_id(self):
        return self.last_template_id

    async def set_last_template_id(self, template_id):
        self.last_template_id = template_id

    async def load_gallery(self):
        return list(self.gallery)

    async def save_gallery(self, items):
        self.gallery = list(items)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def public_dir(tmp_path):
    path = tmp_path / "public"
    (path / "templates").mkdir(parents=True)
    return path


@pytest.fixture
def compositor(public_dir):
    return Compositor(loader=ImageLoader(public_dir=str(public_dir)), brand_label="PhotoBooth",
                      accent_color="#ff6b6b", jpeg_quality=90, default_fit="stretch")


@pytest.fixture
def design_factory(public_dir):
    """Writes a background PNG under public/templates and returns a template for it."""

    def _make(template_id: str, size, slots: Sequence[Tuple[int, int, int, int]],
              holes: Optional[Sequence[Tuple[int, int, int, int]]] = None) -> DesignTemplateConfig:
        background = make_background(size, slots if holes is None else holes)
        background.save(public_dir / "templates" / f"{template_id}.png")
        return DesignTemplateConfig(
            id=template_id,
            name=template_id.replace("_", " ").title(),
            description="test template",
            template_type=TemplateType.STRIP,
            background_url=f"/templates/{template_id}.png",
            slots=[PhotoLayout(x=x, y=y, width=w, height=h) for x, y, w, h in slots],
        )

    return _make
