import pytest

from conftest import InMemoryStore
from photobooth.delivery.schemas.body import DesignTemplateConfig, PhotoLayout, TemplateType
from photobooth.domain.template_registry import BUILTIN_TEMPLATES, DesignTemplateRegistry, TemplateCatalog


def _template(template_id, slots=1, name=None):
    return DesignTemplateConfig(
        id=template_id,
        name=name or template_id,
        description="",
        template_type=TemplateType.SINGLE,
        background_url=f"/templates/{template_id}.png",
        slots=[PhotoLayout(x=10, y=10 + 110 * i, width=100, height=100) for i in range(slots)],
    )


class TestDesignTemplateRegistry:

    def test_builtins(self):
        registry = DesignTemplateRegistry()
        templates = registry.get_all()
        assert [t.id for t in templates] == ["classic_strip", "gold_frame"]
        assert len(templates[0].slots) == 3
        assert len(templates[1].slots) == 1
        assert templates[1].slots[0].model_dump(exclude_none=True) == {"x": 80, "y": 160, "width": 440, "height": 620}

    def test_round_trip(self):
        registry = DesignTemplateRegistry()
        first = registry.get_all()[0]
        assert registry.get_by_id(first.id) == first

    def test_override_replaces_only_matching_builtin(self):
        override = _template("classic_strip", slots=4, name="My Strip")
        registry = DesignTemplateRegistry(overrides=[override])
        templates = registry.get_all()

        assert [t.id for t in templates] == ["classic_strip", "gold_frame"]
        assert templates[0] == override
        assert templates[1] == BUILTIN_TEMPLATES[1]

    def test_new_ids_are_appended(self):
        registry = DesignTemplateRegistry(overrides=[_template("party"), _template("wedding")])
        assert [t.id for t in registry.get_all()] == ["classic_strip", "gold_frame", "party", "wedding"]

    def test_unknown_or_empty_id(self):
        registry = DesignTemplateRegistry()
        assert registry.get_by_id("nope") is None
        assert registry.get_by_id(None) is None
        assert registry.get_by_id("") is None

    def test_returned_configs_are_copies(self):
        registry = DesignTemplateRegistry()
        template = registry.get_by_id("gold_frame")
        template.slots.append(PhotoLayout(x=0, y=0, width=1, height=1))
        assert len(registry.get_by_id("gold_frame").slots) == 1
        assert len(BUILTIN_TEMPLATES[1].slots) == 1


class TestTemplateCatalog:

    @pytest.mark.asyncio
    async def test_load_merges_persisted_overrides(self):
        store = InMemoryStore([_template("gold_frame", slots=2)])
        catalog = TemplateCatalog(store)
        await catalog.load()
        assert len(catalog.get_by_id("gold_frame").slots) == 2
        assert len(catalog.get_by_id("classic_strip").slots) == 3

    @pytest.mark.asyncio
    async def test_registry_is_not_reread_until_refresh(self):
        store = InMemoryStore()
        catalog = TemplateCatalog(store)
        await catalog.load()
        store.templates.append(_template("sneaky"))
        assert catalog.get_by_id("sneaky") is None
        await catalog.load()
        assert catalog.get_by_id("sneaky") is not None

    @pytest.mark.asyncio
    async def test_save_upserts_and_refreshes(self):
        store = InMemoryStore([_template("party")])
        catalog = TemplateCatalog(store)
        await catalog.load()

        await catalog.save_template(_template("party", slots=3))
        await catalog.save_template(_template("classic_strip", slots=2))
        await catalog.save_template(_template("wedding"))

        assert [t.id for t in store.templates] == ["party", "classic_strip", "wedding"]
        assert len(catalog.get_by_id("party").slots) == 3
        assert len(catalog.get_by_id("classic_strip").slots) == 2
        assert catalog.get_by_id("gold_frame") == BUILTIN_TEMPLATES[1]
        assert [t.id for t in catalog.get_all()] == ["classic_strip", "gold_frame", "party", "wedding"]

    @pytest.mark.asyncio
    async def test_last_selected(self):
        store = InMemoryStore()
        catalog = TemplateCatalog(store)
        await catalog.load()
        assert await catalog.get_last_selected() is None

        await catalog.set_last_selected("gold_frame")
        assert (await catalog.get_last_selected()).id == "gold_frame"

        await catalog.set_last_selected("")
        assert store.last_template_id is None
