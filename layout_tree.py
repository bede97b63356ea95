"""Layout tree assembly for headless rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Protocol

from headless.cache_metadata import CacheMetadata
from inline_blocks import InlineBlockResolver
from layout_components import (
    ComponentKind,
    NormalizedComponent,
    classify_plugin_id,
    parse_field_plugin_id,
    safe_settings,
)


FULL_VIEW_MODE = "full"

logger = logging.getLogger("headless.layout")


@dataclass
class SectionComponent:
    uuid: str
    region: str
    configuration: Dict[str, Any] = field(default_factory=dict)
    weight: int = 0

    @property
    def plugin_id(self) -> Any:
        return self.configuration.get("id")

    @classmethod
    def coerce(cls, value: Any) -> "SectionComponent | None":
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            return None
        configuration = value.get("configuration")
        weight = value.get("weight")
        return cls(
            uuid=str(value.get("uuid") or ""),
            region=str(value.get("region") or ""),
            configuration=dict(configuration) if isinstance(configuration, Mapping) else {},
            weight=weight if isinstance(weight, int) and not isinstance(weight, bool) else 0,
        )


@dataclass
class Section:
    layout_id: str
    layout_settings: Dict[str, Any] = field(default_factory=dict)
    components: List[SectionComponent] = field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> "Section | None":
        """Build a section from its stored form.

        Stored components may be a list or a mapping keyed by uuid; mapping
        order is kept.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            return None
        raw_components = value.get("components")
        if isinstance(raw_components, Mapping):
            raw_components = list(raw_components.values())
        if not isinstance(raw_components, list):
            raw_components = []
        components = [c for c in (SectionComponent.coerce(item) for item in raw_components) if c is not None]
        settings = value.get("layout_settings")
        return cls(
            layout_id=str(value.get("layout_id") or ""),
            layout_settings=dict(settings) if isinstance(settings, Mapping) else {},
            components=components,
        )


class Display(Protocol):
    mode: str

    def is_layout_enabled(self) -> bool:
        ...


class SectionStorage(Protocol):
    storage_kind: str
    sections: list


class DisplayProvider(Protocol):
    def collect_display(self, entity: Any, mode: str) -> Display:
        ...


class SectionStorageManager(Protocol):
    def find_by_context(self, contexts: dict, cacheability: CacheMetadata) -> SectionStorage | None:
        ...


class LayoutTreeBuilder:
    def __init__(
        self,
        displays: DisplayProvider,
        section_storage: SectionStorageManager,
        inline_resolver: InlineBlockResolver,
    ) -> None:
        self._displays = displays
        self._section_storage = section_storage
        self._inline_resolver = inline_resolver

    def build(self, entity: Any, cacheability: CacheMetadata) -> dict | None:
        """Return the normalized layout tree for an entity, or None when no layout applies."""
        display = self._displays.collect_display(entity, FULL_VIEW_MODE)
        cacheability.add_dependency(display)
        if not display.is_layout_enabled():
            return None

        contexts = {"entity": entity, "display": display, "view_mode": FULL_VIEW_MODE}
        storage = self._section_storage.find_by_context(contexts, cacheability)
        if storage is None:
            logger.debug("layout_storage_missing mode=%s", display.mode)
            return None
        cacheability.add_dependency(storage)

        sections = list(storage.sections or [])
        if not sections:
            return None
        return self.assemble(sections, storage.storage_kind, display.mode, cacheability)

    def assemble(self, sections: Iterable[Any], source: str, view_mode: str, cacheability: CacheMetadata) -> dict:
        normalized_sections = []
        for raw in sections:
            section = Section.coerce(raw)
            if section is None:
                continue
            components = []
            for component in section.components:
                normalized = self.normalize_component(component, cacheability)
                if normalized is not None:
                    components.append(normalized.to_dict())
            normalized_sections.append(
                {
                    "layout_id": section.layout_id,
                    "layout_settings": section.layout_settings,
                    "components": components,
                }
            )
        return {
            "source": source,
            "view_mode": view_mode,
            "sections": normalized_sections,
        }

    def normalize_component(self, component: Any, cacheability: CacheMetadata) -> NormalizedComponent | None:
        component = SectionComponent.coerce(component)
        if component is None:
            return None
        plugin_id = component.plugin_id
        kind = classify_plugin_id(plugin_id)
        if kind is None:
            logger.debug("layout_component_dropped uuid=%s", component.uuid)
            return None

        base = {
            "kind": kind,
            "uuid": component.uuid,
            "region": component.region,
            "weight": component.weight,
            "plugin_id": plugin_id,
            "settings": safe_settings(component.configuration),
        }
        if kind is ComponentKind.FIELD:
            return NormalizedComponent(field_ref=parse_field_plugin_id(plugin_id), **base)
        if kind is ComponentKind.INLINE_BLOCK:
            inline = self._inline_resolver.resolve(component.configuration, cacheability)
            return NormalizedComponent(inline_block=inline, **base)
        return NormalizedComponent(**base)
