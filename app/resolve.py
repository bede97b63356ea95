"""Layout-aware path resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from headless.cache_metadata import CacheMetadata
from inline_blocks import InlineBlockResolver
from layout_tree import LayoutTreeBuilder
from app.path_resolver import describe
from app.settings import SETTINGS_CACHE_TAG, ResolverSettings
from app.stores import EntityAccessPolicy, is_anonymous


logger = logging.getLogger("headless.resolve")

BASE_CACHE_CONTEXTS = ("url.query_args:path", "url.query_args:langcode", "url.site")
MISSING_PATH_DETAIL = "Missing required query parameter: path"


@dataclass
class ResolveOutcome:
    status: int
    body: dict
    cacheability: CacheMetadata = field(default_factory=CacheMetadata)


def error_outcome(status: int, title: str, detail: str) -> ResolveOutcome:
    body = {"errors": [{"status": str(status), "title": title, "detail": detail}]}
    return ResolveOutcome(status=status, body=body, cacheability=CacheMetadata().set_max_age(0))


def split_resource_type(resource_type: Any) -> tuple[str, str] | None:
    """Split ``<entity_type>--<bundle>``; the entity type must be non-empty."""
    if not isinstance(resource_type, str) or not resource_type:
        return None
    parts = resource_type.split("--", 1)
    if len(parts) != 2 or not parts[0]:
        return None
    return parts[0], parts[1]


class LayoutResolveService:
    def __init__(
        self,
        path_resolver,
        entities,
        displays,
        section_storage,
        block_store,
        settings: ResolverSettings,
        access_policy: EntityAccessPolicy | None = None,
    ) -> None:
        self._path_resolver = path_resolver
        self._entities = entities
        self._displays = displays
        self._section_storage = section_storage
        self._block_store = block_store
        self._settings = settings
        self._access_policy = access_policy or EntityAccessPolicy()

    def base_cacheability(self, actor: dict | None) -> CacheMetadata:
        cacheability = CacheMetadata()
        cacheability.set_max_age(self._settings.anonymous_max_age() if is_anonymous(actor) else 0)
        cacheability.add_tags([SETTINGS_CACHE_TAG])
        cacheability.add_contexts(BASE_CACHE_CONTEXTS)
        if self._settings.langcode_fallback == "current":
            cacheability.add_contexts(["languages:language_content"])
        return cacheability

    def resolve(self, path: Any, langcode: Any = None, actor: dict | None = None) -> ResolveOutcome:
        if not isinstance(path, str) or not path.strip():
            return error_outcome(400, "Bad Request", MISSING_PATH_DETAIL)
        langcode = langcode if isinstance(langcode, str) and langcode else None

        result = dict(self._path_resolver.resolve(path, langcode))
        cacheability = self.base_cacheability(actor)
        access = self._access_policy.for_actor(actor)

        entity_info = result.get("entity")
        if result.get("resolved") is True and result.get("kind") == "entity" and isinstance(entity_info, dict):
            entity = self.load_resolved_entity(entity_info, langcode, access, cacheability)
            if entity is not None:
                cacheability.add_dependency(entity)
                layout = self.build_layout(entity, access, cacheability)
                if layout:
                    result["layout"] = layout

        logger.info(
            "resolve path=%s outcome=%s layout=%s max_age=%s",
            path,
            describe(result),
            "layout" in result,
            cacheability.http_max_age(),
        )
        return ResolveOutcome(status=200, body=result, cacheability=cacheability)

    def load_resolved_entity(self, entity_info: dict, langcode: str | None, access, cacheability: CacheMetadata):
        """Load the resolved entity by uuid, translated and re-checked for view access."""
        parsed = split_resource_type(entity_info.get("type"))
        entity_uuid = entity_info.get("id")
        if parsed is None or not isinstance(entity_uuid, str) or not entity_uuid:
            logger.debug("resolve_entity_descriptor_invalid descriptor=%r", entity_info)
            return None

        entity_type_id = parsed[0]
        definition = self._entities.get_definition(entity_type_id)
        if definition is None or not definition.content:
            return None

        entity = self._entities.load_by_uuid(entity_type_id, entity_uuid)
        if entity is None:
            return None

        resolved_langcode = entity_info.get("langcode")
        if not isinstance(resolved_langcode, str) or not resolved_langcode:
            resolved_langcode = langcode
        if resolved_langcode and entity.has_translation(resolved_langcode):
            entity = entity.get_translation(resolved_langcode)

        cacheability.add_contexts(["user.permissions"])
        return entity if access(entity, "view") else None

    def build_layout(self, entity, access, cacheability: CacheMetadata) -> dict | None:
        builder = LayoutTreeBuilder(
            self._displays,
            self._section_storage,
            InlineBlockResolver(self._block_store, access),
        )
        try:
            return builder.build(entity, cacheability)
        except Exception:
            logger.exception("layout_build_failed entity=%s:%s", entity.entity_type_id, entity.id)
            cacheability.restrict_max_age(0)
            return None
