import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from headless.cache_metadata import CacheMetadata
from headless.canonical_json import canonical_dumps
from inline_blocks import InlineBlockResolver
from layout_tree import LayoutTreeBuilder, Section, SectionComponent
from app.entities import EntityViewDisplay
from app.stores import (
    BlockContentStore,
    EntityAccessPolicy,
    MemoryDisplayRepository,
    MemoryEntityStore,
    SectionStorageResolver,
)
from app.demo_site import register_core_entity_types


def _component(uuid, plugin_id=None, weight=0, **config):
    configuration = dict(config)
    if plugin_id is not None:
        configuration["id"] = plugin_id
    return {"uuid": uuid, "region": "content", "weight": weight, "configuration": configuration}


class TestSectionCoercion(unittest.TestCase):
    def test_mapping_components_keep_order(self) -> None:
        section = Section.coerce(
            {
                "layout_id": "layout_twocol",
                "layout_settings": {"label": "Intro"},
                "components": {
                    "b": _component("b", "system_powered_by_block"),
                    "a": _component("a", "field_block:node:page:title"),
                },
            }
        )
        self.assertEqual([c.uuid for c in section.components], ["b", "a"])
        self.assertEqual(section.layout_settings, {"label": "Intro"})

    def test_invalid_entries(self) -> None:
        self.assertIsNone(Section.coerce("layout_onecol"))
        self.assertIsNone(SectionComponent.coerce(None))
        section = Section.coerce({"layout_id": "layout_onecol", "components": [None, 3, _component("x", "b")]})
        self.assertEqual(len(section.components), 1)

    def test_bad_weight_and_configuration(self) -> None:
        component = SectionComponent.coerce({"uuid": "u", "region": "content", "weight": True, "configuration": "x"})
        self.assertEqual(component.weight, 0)
        self.assertEqual(component.configuration, {})
        self.assertIsNone(component.plugin_id)


class TestLayoutTreeBuilder(unittest.TestCase):
    def setUp(self) -> None:
        self.entities = MemoryEntityStore()
        register_core_entity_types(self.entities)
        self.displays = MemoryDisplayRepository()
        self.block = self.entities.create("block_content", "basic", label="Block")
        self.node = self.entities.create("node", "page", label="About us")
        self.builder = LayoutTreeBuilder(
            self.displays,
            SectionStorageResolver(),
            InlineBlockResolver(BlockContentStore(self.entities), EntityAccessPolicy().for_actor(None)),
        )

    def _save_display(self, sections, **kwargs):
        display = EntityViewDisplay(
            target_entity_type="node",
            bundle="page",
            mode=kwargs.pop("mode", "default"),
            layout_enabled=kwargs.pop("layout_enabled", True),
            sections=sections,
            **kwargs,
        )
        self.displays.save(display)
        return display

    def _sections(self):
        return [
            {
                "layout_id": "layout_onecol",
                "layout_settings": {},
                "components": [
                    _component("c1", "field_block:node:page:title", label="Title", label_display=False),
                    _component("c2", "inline_block:basic", 1, block_revision_id=self.block.revision_id, view_mode="full"),
                    _component("c2b", "inline_block:basic", 2, block_revision_id="nope", view_mode="full"),
                    _component("c2c", "inline_block:basic", 3, block_revision_id=999999, view_mode="full"),
                    _component("c3", "system_powered_by_block", 4, label="Powered by", provider="system"),
                    _component("c4", None, 5, label="Broken"),
                ],
            }
        ]

    def test_layout_disabled_is_absent(self) -> None:
        self._save_display(self._sections(), layout_enabled=False)
        cacheability = CacheMetadata()
        self.assertIsNone(self.builder.build(self.node, cacheability))
        self.assertIn("config:core.entity_view_display.node.page.default", cacheability.tags)

    def test_no_display_is_absent(self) -> None:
        self.assertIsNone(self.builder.build(self.node, CacheMetadata()))

    def test_empty_sections_is_absent(self) -> None:
        self._save_display([])
        self.assertIsNone(self.builder.build(self.node, CacheMetadata()))

    def test_missing_storage_is_absent(self) -> None:
        class _NoStorage:
            def find_by_context(self, contexts, cacheability):
                cacheability.add_tags(["config:layout_storage"])
                return None

        self._save_display(self._sections())
        builder = LayoutTreeBuilder(self.displays, _NoStorage(), InlineBlockResolver(None, lambda e, op: True))
        cacheability = CacheMetadata()
        self.assertIsNone(builder.build(self.node, cacheability))
        self.assertIn("config:layout_storage", cacheability.tags)

    def test_builds_tree_from_defaults(self) -> None:
        self._save_display(self._sections())
        cacheability = CacheMetadata()
        tree = self.builder.build(self.node, cacheability)

        self.assertEqual(tree["source"], "defaults")
        self.assertEqual(tree["view_mode"], "default")
        section = tree["sections"][0]
        self.assertEqual(section["layout_id"], "layout_onecol")
        components = section["components"]
        self.assertEqual([c["uuid"] for c in components], ["c1", "c2", "c2b", "c2c", "c3"])
        self.assertEqual([c["type"] for c in components], ["field", "inline_block", "inline_block", "inline_block", "block"])

        self.assertEqual(
            components[0]["field"],
            {"entity_type_id": "node", "bundle": "page", "field_name": "title"},
        )
        self.assertEqual(components[0]["settings"], {"label": "Title", "label_display": False})
        self.assertEqual(components[1]["inline_block"]["block"]["id"], self.block.uuid)
        self.assertEqual(
            components[2]["inline_block"],
            {"view_mode": "full", "block_revision_id": None, "block": None},
        )
        self.assertEqual(components[3]["inline_block"]["block_revision_id"], 999999)
        self.assertIsNone(components[3]["inline_block"]["block"])
        self.assertEqual(components[4]["settings"], {"label": "Powered by"})
        self.assertEqual(components[4]["weight"], 4)

        self.assertIn(f"block_content:{self.block.id}", cacheability.tags)
        self.assertIn("config:core.entity_view_display.node.page.default", cacheability.tags)

    def test_full_display_wins_over_default(self) -> None:
        self._save_display(self._sections())
        self._save_display([{"layout_id": "layout_twocol", "components": []}], mode="full")
        tree = self.builder.build(self.node, CacheMetadata())
        self.assertEqual(tree["view_mode"], "full")
        self.assertEqual(tree["sections"], [{"layout_id": "layout_twocol", "layout_settings": {}, "components": []}])

    def test_overrides_storage(self) -> None:
        self._save_display(self._sections(), allow_overrides=True)
        self.node.layout_override = [
            {"layout_id": "layout_threecol", "components": [_component("o1", "field_block:node:page:body")]},
            {"layout_id": "layout_onecol", "components": []},
        ]
        cacheability = CacheMetadata()
        tree = self.builder.build(self.node, cacheability)
        self.assertEqual(tree["source"], "overrides")
        self.assertEqual([s["layout_id"] for s in tree["sections"]], ["layout_threecol", "layout_onecol"])
        self.assertEqual(tree["sections"][1]["components"], [])
        self.assertIn(f"node:{self.node.id}", cacheability.tags)

    def test_overrides_ignored_when_not_allowed(self) -> None:
        self._save_display(self._sections())
        self.node.layout_override = [{"layout_id": "layout_threecol", "components": []}]
        tree = self.builder.build(self.node, CacheMetadata())
        self.assertEqual(tree["source"], "defaults")

    def test_dropping_components_reduces_count_by_dropped(self) -> None:
        sections = [
            {
                "layout_id": "layout_onecol",
                "components": [
                    _component("a", "system_branding_block"),
                    _component("b", ""),
                    _component("c", None),
                    _component("d", "field_block:node:page"),
                ],
            }
        ]
        tree = self.builder.assemble(sections, "defaults", "full", CacheMetadata())
        self.assertEqual([c["uuid"] for c in tree["sections"][0]["components"]], ["a", "d"])

    def test_oversized_inline_revision_keeps_siblings(self) -> None:
        sections = [
            {
                "layout_id": "layout_onecol",
                "components": [
                    _component("title", "field_block:node:page:title"),
                    _component("junk", "inline_block:basic", block_revision_id="1" * 5000),
                    _component("good", "inline_block:basic", block_revision_id=self.block.revision_id),
                ],
            }
        ]
        tree = self.builder.assemble(sections, "defaults", "full", CacheMetadata())
        components = tree["sections"][0]["components"]
        self.assertEqual([c["uuid"] for c in components], ["title", "junk", "good"])
        self.assertEqual(components[0]["field"]["field_name"], "title")
        self.assertIsNone(components[1]["inline_block"]["block_revision_id"])
        self.assertIsNone(components[1]["inline_block"]["block"])
        self.assertEqual(components[2]["inline_block"]["block"]["id"], self.block.uuid)

    def test_output_is_idempotent(self) -> None:
        self._save_display(self._sections())
        first = canonical_dumps(self.builder.build(self.node, CacheMetadata()))
        second = canonical_dumps(self.builder.build(self.node, CacheMetadata()))
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
