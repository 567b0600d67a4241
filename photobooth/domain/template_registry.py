# domain/template_registry.py
import logging
from typing import Dict, List, Optional, Protocol, Sequence

from photobooth.delivery.schemas.body import DesignTemplateConfig, PhotoLayout, TemplateType

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

BUILTIN_TEMPLATES: tuple = (
    DesignTemplateConfig(
        id="classic_strip",
        name="Classic Photo Strip",
        description="Clean white strip with three vertical photos",
        template_type=TemplateType.STRIP,
        background_url="/templates/classic-strip.png",
        slots=[
            PhotoLayout(x=70, y=140, width=460, height=340),
            PhotoLayout(x=70, y=520, width=460, height=340),
            PhotoLayout(x=70, y=900, width=460, height=340),
        ],
    ),
    DesignTemplateConfig(
        id="gold_frame",
        name="Gold Frame",
        description="Single large photo with gold border and space for branding",
        template_type=TemplateType.SINGLE,
        background_url="/templates/gold-frame.png",
        slots=[PhotoLayout(x=80, y=160, width=440, height=620)],
    ),
)


class TemplateStore(Protocol):
    """Persistence boundary for design templates and the last selection."""

    async def load_templates(self) -> List[DesignTemplateConfig]: ...

    async def save_templates(self, templates: List[DesignTemplateConfig]) -> None: ...

    async def get_last_template_id(self) -> Optional[str]: ...

    async def set_last_template_id(self, template_id: Optional[str]) -> None: ...


class DesignTemplateRegistry:
    """In-memory merged view of built-in templates and persisted overrides.

    Built-ins keep their declared order; an override with a built-in id
    replaces it in place, other overrides are appended in persisted order.
    """

    def __init__(self, builtins: Sequence[DesignTemplateConfig] = BUILTIN_TEMPLATES,
                 overrides: Sequence[DesignTemplateConfig] = ()):
        self._builtins = list(builtins)
        self._by_id: Dict[str, DesignTemplateConfig] = {}
        self.refresh(overrides)

    def refresh(self, overrides: Sequence[DesignTemplateConfig]) -> None:
        merged: Dict[str, DesignTemplateConfig] = {t.id: t for t in self._builtins}
        for t in overrides:
            merged[t.id] = t
        self._by_id = merged

    def get_all(self) -> List[DesignTemplateConfig]:
        return [t.model_copy(deep=True) for t in self._by_id.values()]

    def get_by_id(self, template_id: Optional[str]) -> Optional[DesignTemplateConfig]:
        if not template_id:
            return None
        found = self._by_id.get(template_id)
        return found.model_copy(deep=True) if found else None


class TemplateCatalog:
    """Ties a TemplateStore to a DesignTemplateRegistry.

    The registry is built once by ``load()`` and refreshed explicitly after
    every save; nothing else reads the store.
    """

    def __init__(self, store: TemplateStore, builtins: Sequence[DesignTemplateConfig] = BUILTIN_TEMPLATES):
        self.store = store
        self.registry = DesignTemplateRegistry(builtins)

    async def load(self) -> DesignTemplateRegistry:
        overrides = await self.store.load_templates()
        self.registry.refresh(overrides)
        logger.info(f"Template registry loaded: {len(self.registry.get_all())} templates ({len(overrides)} user overrides).")
        return self.registry

    def get_all(self) -> List[DesignTemplateConfig]:
        return self.registry.get_all()

    def get_by_id(self, template_id: Optional[str]) -> Optional[DesignTemplateConfig]:
        return self.registry.get_by_id(template_id)

    async def save_template(self, template: DesignTemplateConfig) -> DesignTemplateConfig:
        existing = await self.store.load_templates()
        for i, t in enumerate(existing):
            if t.id == template.id:
                existing[i] = template
                break
        else:
            existing.append(template)

        await self.store.save_templates(existing)
        self.registry.refresh(existing)
        logger.info(f"Design template '{template.id}' saved ({len(template.slots)} slots).")
        return template

    async def get_last_selected(self) -> Optional[DesignTemplateConfig]:
        return self.registry.get_by_id(await self.store.get_last_template_id())

    async def set_last_selected(self, template_id: Optional[str]) -> None:
        await self.store.set_last_template_id(template_id or None)
