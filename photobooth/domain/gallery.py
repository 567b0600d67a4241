# domain/gallery.py
import secrets
import time
from typing import List, Optional, Protocol, Sequence

from photobooth.delivery.schemas.body import DesignTemplateConfig, GalleryItem


class GalleryStore(Protocol):
    async def load_gallery(self) -> List[GalleryItem]: ...

    async def save_gallery(self, items: List[GalleryItem]) -> None: ...


def filter_items(items: Sequence[GalleryItem], view_mode: str = "all",
                 folder: Optional[str] = None) -> List[GalleryItem]:
    """Filter by item type (``all`` keeps every type) and template folder."""
    return [
        item for item in items
        if (view_mode == "all" or item.type == view_mode)
        and (not folder or item.design_template_name == folder)
    ]


def template_folders(items: Sequence[GalleryItem]) -> List[str]:
    # Distinct non-empty template names, first-seen order
    return list(dict.fromkeys(i.design_template_name for i in items if i.design_template_name))


def new_item(kind: str, data_url: str, design_template: Optional[DesignTemplateConfig] = None,
             session_id: Optional[str] = None) -> GalleryItem:
    now_ms = int(time.time() * 1000)
    return GalleryItem(
        id=f"{kind}-{now_ms}-{secrets.token_hex(4)}",
        type=kind,
        data_url=data_url,
        timestamp=now_ms,
        session_id=session_id,
        design_template_id=design_template.id if design_template else None,
        design_template_name=design_template.name if design_template else None,
    )


class Gallery:
    def __init__(self, store: GalleryStore):
        self.store = store

    async def list(self, view_mode: str = "all", folder: Optional[str] = None) -> List[GalleryItem]:
        return filter_items(await self.store.load_gallery(), view_mode, folder)

    async def folders(self) -> List[str]:
        return template_folders(await self.store.load_gallery())

    async def add(self, item: GalleryItem) -> GalleryItem:
        items = await self.store.load_gallery()
        items.append(item)
        await self.store.save_gallery(items)
        return item

    async def delete(self, item_id: str) -> bool:
        items = await self.store.load_gallery()
        remaining = [i for i in items if i.id != item_id]
        if len(remaining) == len(items):
            return False
        await self.store.save_gallery(remaining)
        return True
