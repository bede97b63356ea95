"""Component classification for layout sections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping


FIELD_PREFIXES = ("field_block:", "extra_field_block:")
INLINE_BLOCK_PREFIX = "inline_block"
SAFE_SETTING_KEYS = ("label", "label_display", "formatter", "view_mode")


class ComponentKind(str, Enum):
    FIELD = "field"
    INLINE_BLOCK = "inline_block"
    BLOCK = "block"


@dataclass(frozen=True)
class FieldRef:
    entity_type_id: str
    bundle: str
    field_name: str

    def to_dict(self) -> dict:
        return {
            "entity_type_id": self.entity_type_id,
            "bundle": self.bundle,
            "field_name": self.field_name,
        }


@dataclass(frozen=True)
class BlockRef:
    type: str
    id: str
    jsonapi_url: str

    @classmethod
    def for_entity(cls, entity_type_id: str, bundle: str, uuid: str) -> "BlockRef":
        return cls(
            type=f"{entity_type_id}--{bundle}",
            id=uuid,
            jsonapi_url=f"/jsonapi/{entity_type_id}/{bundle}/{uuid}",
        )

    def to_dict(self) -> dict:
        return {"type": self.type, "id": self.id, "jsonapi_url": self.jsonapi_url}


@dataclass(frozen=True)
class InlineBlock:
    view_mode: str | None = None
    block_revision_id: int | None = None
    block: BlockRef | None = None

    def to_dict(self) -> dict:
        return {
            "view_mode": self.view_mode,
            "block_revision_id": self.block_revision_id,
            "block": self.block.to_dict() if self.block else None,
        }


@dataclass(frozen=True)
class NormalizedComponent:
    """One placed component, reduced to what a frontend may see.

    ``field_ref`` is only meaningful for FIELD components and ``inline_block``
    only for INLINE_BLOCK components.
    """

    kind: ComponentKind
    uuid: str
    region: str
    weight: int
    plugin_id: str
    settings: Dict[str, Any] = field(default_factory=dict)
    field_ref: FieldRef | None = None
    inline_block: InlineBlock | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "uuid": self.uuid,
            "region": self.region,
            "weight": self.weight,
            "plugin_id": self.plugin_id,
            "type": self.kind.value,
        }
        if self.kind is ComponentKind.FIELD:
            data["field"] = self.field_ref.to_dict() if self.field_ref else None
        elif self.kind is ComponentKind.INLINE_BLOCK:
            data["inline_block"] = (self.inline_block or InlineBlock()).to_dict()
        data["settings"] = dict(self.settings)
        return data


def classify_plugin_id(plugin_id: Any) -> ComponentKind | None:
    """Map a plugin id to its component kind, or None to drop the component."""
    if not isinstance(plugin_id, str) or not plugin_id:
        return None
    if plugin_id.startswith(FIELD_PREFIXES):
        return ComponentKind.FIELD
    if plugin_id.startswith(INLINE_BLOCK_PREFIX):
        return ComponentKind.INLINE_BLOCK
    return ComponentKind.BLOCK


def parse_field_plugin_id(plugin_id: str) -> FieldRef | None:
    """Parse ``field_block:<entity_type>:<bundle>:<field>`` style ids.

    Extra colons stay in the field name; fewer than four segments or any
    empty trailing segment yields None.
    """
    parts = plugin_id.split(":", 3)
    if len(parts) != 4:
        return None
    _, entity_type_id, bundle, field_name = parts
    if not entity_type_id or not bundle or not field_name:
        return None
    return FieldRef(entity_type_id=entity_type_id, bundle=bundle, field_name=field_name)


def safe_settings(configuration: Any) -> dict:
    if not isinstance(configuration, Mapping):
        return {}
    return {key: configuration[key] for key in SAFE_SETTING_KEYS if key in configuration}
