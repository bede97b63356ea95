"""Content entities, entity types and view displays served by the resolver."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List

from headless.cache_metadata import PERMANENT


@dataclass(frozen=True)
class EntityTypeDefinition:
    id: str
    content: bool = True
    revisionable: bool = True


@dataclass
class ContentEntity:
    entity_type_id: str
    bundle: str
    id: int
    uuid: str
    revision_id: int | None = None
    langcode: str = "en"
    label: str = ""
    published: bool = True
    fields: Dict[str, Any] = field(default_factory=dict)
    translations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    layout_override: List[Any] = field(default_factory=list)
    cache_contexts: List[str] = field(default_factory=list)
    cache_max_age: int = PERMANENT

    @property
    def cache_tags(self) -> list[str]:
        return [f"{self.entity_type_id}:{self.id}"]

    @property
    def resource_type(self) -> str:
        return f"{self.entity_type_id}--{self.bundle}"

    def has_translation(self, langcode: str) -> bool:
        return langcode == self.langcode or langcode in self.translations

    def get_translation(self, langcode: str) -> "ContentEntity":
        if langcode == self.langcode:
            return self
        overrides = self.translations.get(langcode)
        if overrides is None:
            raise KeyError(f"no {langcode} translation for {self.entity_type_id}:{self.id}")
        values = copy.deepcopy(self.fields)
        values.update(copy.deepcopy(overrides))
        return replace(
            self,
            langcode=langcode,
            label=str(values.get("label") or self.label),
            fields=values,
        )


@dataclass
class EntityViewDisplay:
    target_entity_type: str
    bundle: str
    mode: str
    status: bool = True
    layout_enabled: bool = False
    allow_overrides: bool = False
    sections: List[Any] = field(default_factory=list)
    cache_max_age: int = PERMANENT

    @property
    def id(self) -> str:
        return f"{self.target_entity_type}.{self.bundle}.{self.mode}"

    @property
    def cache_tags(self) -> list[str]:
        return [f"config:core.entity_view_display.{self.id}"]

    @property
    def cache_contexts(self) -> list[str]:
        return []

    def is_layout_enabled(self) -> bool:
        return self.status and self.layout_enabled


class DefaultsSectionStorage:
    """Layout shared by every entity rendered with a display."""

    storage_kind = "defaults"

    def __init__(self, display: EntityViewDisplay) -> None:
        self._display = display

    @property
    def sections(self) -> list:
        return list(self._display.sections)

    @property
    def cache_tags(self) -> list[str]:
        return self._display.cache_tags

    @property
    def cache_contexts(self) -> list[str]:
        return self._display.cache_contexts

    @property
    def cache_max_age(self) -> int:
        return self._display.cache_max_age


class OverridesSectionStorage:
    """Layout stored on a single entity, replacing the display default."""

    storage_kind = "overrides"

    def __init__(self, entity: ContentEntity) -> None:
        self._entity = entity

    @property
    def sections(self) -> list:
        return list(self._entity.layout_override)

    @property
    def cache_tags(self) -> list[str]:
        return self._entity.cache_tags

    @property
    def cache_contexts(self) -> list[str]:
        return list(self._entity.cache_contexts)

    @property
    def cache_max_age(self) -> int:
        return self._entity.cache_max_age
