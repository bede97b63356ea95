"""Path to entity resolution (aliases, redirects, language prefixes)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Tuple
from urllib.parse import urlsplit


logger = logging.getLogger("headless.resolve")


def normalize_path(path: str) -> str:
    """Drop query/fragment, force a leading slash and strip trailing slashes."""
    parts = urlsplit(path.strip())
    value = parts.path or "/"
    if not value.startswith("/"):
        value = "/" + value
    if len(value) > 1:
        value = value.rstrip("/") or "/"
    return value


def unresolved_result() -> dict:
    return {
        "resolved": False,
        "kind": None,
        "canonical": None,
        "entity": None,
        "redirect": None,
        "jsonapi_url": None,
        "data_url": None,
        "headless": False,
        "drupal_url": None,
    }


class MemoryAliasStore:
    def __init__(self) -> None:
        self._aliases: Dict[Tuple[str, str | None], Tuple[str, int]] = {}
        self._redirects: Dict[str, Tuple[str, int]] = {}

    def add_alias(self, path: str, entity_type_id: str, entity_id: int, langcode: str | None = None) -> None:
        self._aliases[(normalize_path(path), langcode)] = (entity_type_id, entity_id)

    def add_redirect(self, source: str, target: str, status: int = 301) -> None:
        self._redirects[normalize_path(source)] = (target, status)

    def lookup_alias(self, path: str, langcode: str | None) -> Tuple[str, int] | None:
        return self._aliases.get((path, langcode)) or self._aliases.get((path, None))

    def lookup_redirect(self, path: str) -> Tuple[str, int] | None:
        return self._redirects.get(path)

    def alias_for(self, entity_type_id: str, entity_id: int, langcode: str | None) -> str | None:
        fallback = None
        for (path, alias_langcode), target in self._aliases.items():
            if target != (entity_type_id, entity_id):
                continue
            if alias_langcode == langcode:
                return path
            if alias_langcode is None and fallback is None:
                fallback = path
        return fallback


class PathResolver:
    """Resolve a site path to a JSON:API style resolution result.

    Only published content resolves. A language prefix (``/fr/...``) selects
    the language unless an explicit langcode is given.
    """

    def __init__(
        self,
        aliases,
        entities,
        default_langcode: str = "en",
        languages: Iterable[str] = ("en",),
    ) -> None:
        self._aliases = aliases
        self._entities = entities
        self._default_langcode = default_langcode
        self._languages = set(languages) | {default_langcode}

    def _split_language(self, path: str) -> Tuple[str | None, str]:
        segments = path.split("/", 2)
        if len(segments) > 1 and segments[1] in self._languages and segments[1] != self._default_langcode:
            rest = "/" + segments[2] if len(segments) > 2 else "/"
            return segments[1], normalize_path(rest)
        return None, path

    def _system_path(self, path: str) -> Tuple[str, int] | None:
        segments = path.strip("/").split("/")
        if len(segments) != 2 or not segments[1].isdigit():
            return None
        definition = self._entities.get_definition(segments[0])
        if definition is None or not definition.content:
            return None
        return segments[0], int(segments[1])

    def resolve(self, path: str, langcode: str | None = None) -> dict:
        normalized = normalize_path(path)
        prefix_langcode, normalized = self._split_language(normalized)
        langcode = langcode or prefix_langcode

        redirect = self._aliases.lookup_redirect(normalized)
        if redirect is not None:
            target, status = redirect
            result = unresolved_result()
            result.update({"resolved": True, "kind": "redirect", "redirect": {"to": target, "status": status}})
            return result

        target = self._aliases.lookup_alias(normalized, langcode) or self._system_path(normalized)
        if target is None:
            logger.info("path_unresolved path=%s", normalized)
            return unresolved_result()

        entity_type_id, entity_id = target
        entity = self._entities.load(entity_type_id, entity_id)
        if entity is None or not getattr(entity, "published", False):
            return unresolved_result()

        negotiated = langcode if langcode and entity.has_translation(langcode) else entity.langcode
        canonical = self._aliases.alias_for(entity_type_id, entity_id, negotiated) or f"/{entity_type_id}/{entity_id}"
        if negotiated != self._default_langcode:
            canonical = f"/{negotiated}{canonical}"
        return {
            "resolved": True,
            "kind": "entity",
            "canonical": canonical,
            "entity": {"type": entity.resource_type, "id": entity.uuid, "langcode": negotiated},
            "redirect": None,
            "jsonapi_url": f"/jsonapi/{entity.entity_type_id}/{entity.bundle}/{entity.uuid}",
            "data_url": None,
            "headless": True,
            "drupal_url": None,
        }


def describe(result: Any) -> str:
    if not isinstance(result, dict):
        return "invalid"
    if not result.get("resolved"):
        return "unresolved"
    return str(result.get("kind") or "unknown")
