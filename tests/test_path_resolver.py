import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.demo_site import register_core_entity_types
from app.path_resolver import MemoryAliasStore, PathResolver, describe, normalize_path
from app.stores import MemoryEntityStore


class TestNormalizePath(unittest.TestCase):
    def test_normalize(self) -> None:
        self.assertEqual(normalize_path("about-us/"), "/about-us")
        self.assertEqual(normalize_path("/about-us?x=1#top"), "/about-us")
        self.assertEqual(normalize_path("/"), "/")
        self.assertEqual(normalize_path("  /a//  "), "/a")


class TestPathResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.entities = MemoryEntityStore()
        register_core_entity_types(self.entities)
        self.aliases = MemoryAliasStore()
        self.page = self.entities.create("node", "page", label="About", translations={"fr": {"label": "À propos"}})
        self.draft = self.entities.create("node", "page", label="Draft", published=False)
        self.aliases.add_alias("/about-us", "node", self.page.id)
        self.aliases.add_alias("/a-propos", "node", self.page.id, langcode="fr")
        self.aliases.add_alias("/draft", "node", self.draft.id)
        self.aliases.add_redirect("/about", "/about-us", 302)
        self.resolver = PathResolver(self.aliases, self.entities, default_langcode="en", languages=["en", "fr"])

    def test_alias_resolves_to_entity(self) -> None:
        result = self.resolver.resolve("/about-us/")
        self.assertTrue(result["resolved"])
        self.assertEqual(result["kind"], "entity")
        self.assertEqual(result["canonical"], "/about-us")
        self.assertEqual(result["entity"], {"type": "node--page", "id": self.page.uuid, "langcode": "en"})
        self.assertEqual(result["jsonapi_url"], f"/jsonapi/node/page/{self.page.uuid}")
        self.assertTrue(result["headless"])
        self.assertEqual(describe(result), "entity")

    def test_language_prefix(self) -> None:
        result = self.resolver.resolve("/fr/a-propos")
        self.assertEqual(result["entity"]["langcode"], "fr")
        self.assertEqual(result["canonical"], "/fr/a-propos")

    def test_explicit_langcode_without_translation_falls_back(self) -> None:
        result = self.resolver.resolve("/about-us", "de")
        self.assertEqual(result["entity"]["langcode"], "en")

    def test_system_path(self) -> None:
        result = self.resolver.resolve(f"/node/{self.page.id}")
        self.assertEqual(result["entity"]["id"], self.page.uuid)
        self.assertEqual(result["canonical"], "/about-us")

    def test_config_entity_system_path_does_not_resolve(self) -> None:
        self.assertFalse(self.resolver.resolve("/user_role/1")["resolved"])

    def test_redirect(self) -> None:
        result = self.resolver.resolve("/about")
        self.assertTrue(result["resolved"])
        self.assertEqual(result["kind"], "redirect")
        self.assertEqual(result["redirect"], {"to": "/about-us", "status": 302})
        self.assertIsNone(result["entity"])

    def test_unpublished_and_unknown_paths(self) -> None:
        for path in ("/draft", "/missing"):
            result = self.resolver.resolve(path)
            self.assertFalse(result["resolved"])
            self.assertIsNone(result["entity"])
            self.assertEqual(describe(result), "unresolved")


if __name__ == "__main__":
    unittest.main()
