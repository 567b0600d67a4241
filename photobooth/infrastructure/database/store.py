# infrastructure/database/store.py
import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select

from photobooth.delivery.schemas.body import DesignTemplateConfig, GalleryItem
from photobooth.infrastructure.database.models import KeyValue

TEMPLATE_STORAGE_KEY = "photobooth_design_templates_v1"
LAST_TEMPLATE_ID_KEY = "photobooth_last_design_template_id"
GALLERY_STORAGE_KEY = "photobooth_gallery_v1"

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [STORE] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


class KeyValueStore:
    """JSON values under well-known keys in the ``kv_store`` table.

    Overwrite-on-save; no durability guarantees beyond the database's own.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        async with self.session_factory() as session:
            row = await session.get(KeyValue, key)
            if row is None:
                return None
            try:
                return json.loads(row.value)
            except ValueError:
                logger.warning(f"Corrupt JSON under key '{key}', ignoring it.")
                return None

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(KeyValue, key)
                if row is None:
                    session.add(KeyValue(key=key, value=payload))
                else:
                    row.value = payload

    async def remove(self, key: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(KeyValue).where(KeyValue.key == key))

    async def keys(self) -> List[str]:
        async with self.session_factory() as session:
            result = await session.execute(select(KeyValue.key))
            return list(result.scalars())

    async def _get_list(self, key: str, model):
        raw = await self.get(key)
        if not isinstance(raw, list):
            return []
        items = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid entry under '{key}': {e.error_count()} errors")
        return items

    # --- TemplateStore ---

    async def load_templates(self) -> List[DesignTemplateConfig]:
        return await self._get_list(TEMPLATE_STORAGE_KEY, DesignTemplateConfig)

    async def save_templates(self, templates: List[DesignTemplateConfig]) -> None:
        await self.set(TEMPLATE_STORAGE_KEY, [t.model_dump(mode="json", by_alias=True) for t in templates])

    async def get_last_template_id(self) -> Optional[str]:
        value = await self.get(LAST_TEMPLATE_ID_KEY)
        return value if isinstance(value, str) and value else None

    async def set_last_template_id(self, template_id: Optional[str]) -> None:
        if template_id:
            await self.set(LAST_TEMPLATE_ID_KEY, template_id)
        else:
            await self.remove(LAST_TEMPLATE_ID_KEY)

    # --- GalleryStore ---

    async def load_gallery(self) -> List[GalleryItem]:
        return await self._get_list(GALLERY_STORAGE_KEY, GalleryItem)

    async def save_gallery(self, items: List[GalleryItem]) -> None:
        await self.set(GALLERY_STORAGE_KEY, [i.model_dump(mode="json", by_alias=True) for i in items])
