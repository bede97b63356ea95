"""In-memory entity, display and section storage for the resolver."""

from __future__ import annotations

import copy
import itertools
import uuid
from typing import Any, Callable, Dict, Tuple

from headless.cache_metadata import CacheMetadata
from app.entities import (
    ContentEntity,
    DefaultsSectionStorage,
    EntityTypeDefinition,
    EntityViewDisplay,
    OverridesSectionStorage,
)


DEFAULT_VIEW_MODE = "default"
_PRIVILEGED_ROLES = {"admin", "editor"}


class MemoryEntityStore:
    def __init__(self) -> None:
        self._definitions: Dict[str, EntityTypeDefinition] = {}
        self._entities: Dict[Tuple[str, int], ContentEntity] = {}
        self._revisions: Dict[Tuple[str, int], ContentEntity] = {}
        self._ids = itertools.count(1)
        self._revision_ids = itertools.count(1)

    def register_entity_type(self, definition: EntityTypeDefinition) -> None:
        self._definitions[definition.id] = definition

    def get_definition(self, entity_type_id: str) -> EntityTypeDefinition | None:
        return self._definitions.get(entity_type_id)

    def has_definition(self, entity_type_id: str) -> bool:
        return entity_type_id in self._definitions

    def create(self, entity_type_id: str, bundle: str, **values: Any) -> ContentEntity:
        if entity_type_id not in self._definitions:
            raise KeyError(f"unknown entity type: {entity_type_id}")
        entity = ContentEntity(
            entity_type_id=entity_type_id,
            bundle=bundle,
            id=next(self._ids),
            uuid=values.pop("uuid", None) or str(uuid.uuid4()),
            **values,
        )
        return self.save(entity)

    def save(self, entity: ContentEntity) -> ContentEntity:
        """Store the entity as a new revision and make it the current one."""
        definition = self._definitions.get(entity.entity_type_id)
        if definition is None:
            raise KeyError(f"unknown entity type: {entity.entity_type_id}")
        if definition.revisionable:
            entity.revision_id = next(self._revision_ids)
            self._revisions[(entity.entity_type_id, entity.revision_id)] = copy.deepcopy(entity)
        self._entities[(entity.entity_type_id, entity.id)] = copy.deepcopy(entity)
        return entity

    def load(self, entity_type_id: str, entity_id: int) -> ContentEntity | None:
        entity = self._entities.get((entity_type_id, entity_id))
        return copy.deepcopy(entity) if entity else None

    def load_by_uuid(self, entity_type_id: str, entity_uuid: str) -> ContentEntity | None:
        for (type_id, _), entity in self._entities.items():
            if type_id == entity_type_id and entity.uuid == entity_uuid:
                return copy.deepcopy(entity)
        return None

    def load_revision(self, entity_type_id: str, revision_id: int) -> ContentEntity | None:
        entity = self._revisions.get((entity_type_id, revision_id))
        return copy.deepcopy(entity) if entity else None


class BlockContentStore:
    """Revision lookups for inline block content, backed by an entity store."""

    entity_type_id = "block_content"

    def __init__(self, entities) -> None:
        self._entities = entities

    def has_capability(self) -> bool:
        return self._entities.has_definition(self.entity_type_id)

    def load_revision(self, revision_id: int) -> ContentEntity | None:
        return self._entities.load_revision(self.entity_type_id, revision_id)


class MemoryDisplayRepository:
    def __init__(self) -> None:
        self._displays: Dict[str, EntityViewDisplay] = {}

    def save(self, display: EntityViewDisplay) -> EntityViewDisplay:
        self._displays[display.id] = copy.deepcopy(display)
        return display

    def get(self, display_id: str) -> EntityViewDisplay | None:
        display = self._displays.get(display_id)
        return copy.deepcopy(display) if display else None

    def collect_display(self, entity: ContentEntity, mode: str) -> EntityViewDisplay:
        """Return the display used to render an entity in a view mode.

        Falls back to the bundle's default display, then to an unsaved
        placeholder with no layout.
        """
        for candidate in (mode, DEFAULT_VIEW_MODE):
            display = self.get(f"{entity.entity_type_id}.{entity.bundle}.{candidate}")
            if display is not None and display.status:
                return display
        return EntityViewDisplay(
            target_entity_type=entity.entity_type_id,
            bundle=entity.bundle,
            mode=DEFAULT_VIEW_MODE,
            status=False,
        )


class SectionStorageResolver:
    """Pick the storage holding the sections for an entity/display pair.

    Per-entity overrides win when the display allows them and the entity
    carries a non-empty layout; otherwise the display defaults apply.
    """

    def find_by_context(self, contexts: dict, cacheability: CacheMetadata):
        display = contexts.get("display")
        entity = contexts.get("entity")
        if not isinstance(display, EntityViewDisplay):
            return None
        cacheability.add_dependency(display)
        if not display.is_layout_enabled():
            return None
        if display.allow_overrides and isinstance(entity, ContentEntity) and entity.layout_override:
            return OverridesSectionStorage(entity)
        return DefaultsSectionStorage(display)


def is_anonymous(actor: dict | None) -> bool:
    return not isinstance(actor, dict) or not actor.get("id")


class EntityAccessPolicy:
    """View access: published content for everyone, the rest for editors."""

    def check(self, entity: Any, operation: str, actor: dict | None) -> bool:
        if operation != "view":
            return False
        if getattr(entity, "published", False):
            return True
        if is_anonymous(actor):
            return False
        return actor.get("role") in _PRIVILEGED_ROLES

    def for_actor(self, actor: dict | None) -> Callable[[Any, str], bool]:
        return lambda entity, operation: self.check(entity, operation, actor)
