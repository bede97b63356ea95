"""DB-backed, read-only stores for the resolver (see app/schema.sql)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

from app.db import fetch_all, fetch_one, get_conn
from app.entities import ContentEntity, EntityTypeDefinition, EntityViewDisplay
from app.stores import DEFAULT_VIEW_MODE


logger = logging.getLogger("headless.db")

_ENTITY_COLUMNS = "entity_type_id, id, uuid, revision_id, bundle, langcode, label, published, fields, translations, layout_override"


def _json_value(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("db_json_invalid value=%r", value[:80])
            return default
    return value


def _entity_from_row(row: dict | None) -> ContentEntity | None:
    if not row:
        return None
    return ContentEntity(
        entity_type_id=row["entity_type_id"],
        bundle=row["bundle"],
        id=int(row["id"]),
        uuid=row["uuid"],
        revision_id=int(row["revision_id"]) if row.get("revision_id") is not None else None,
        langcode=row.get("langcode") or "en",
        label=row.get("label") or "",
        published=bool(row.get("published")),
        fields=_json_value(row.get("fields"), {}),
        translations=_json_value(row.get("translations"), {}),
        layout_override=_json_value(row.get("layout_override"), []),
    )


class DbEntityStore:
    def __init__(self) -> None:
        self._definitions: Dict[str, EntityTypeDefinition | None] = {}

    def get_definition(self, entity_type_id: str) -> EntityTypeDefinition | None:
        if entity_type_id in self._definitions:
            return self._definitions[entity_type_id]
        with get_conn() as conn:
            row = fetch_one(
                conn,
                "select id, content, revisionable from entity_types where id=%s",
                [entity_type_id],
                query_name="entity_types.get",
            )
        definition = (
            EntityTypeDefinition(id=row["id"], content=bool(row["content"]), revisionable=bool(row["revisionable"]))
            if row
            else None
        )
        self._definitions[entity_type_id] = definition
        return definition

    def has_definition(self, entity_type_id: str) -> bool:
        return self.get_definition(entity_type_id) is not None

    def load(self, entity_type_id: str, entity_id: int) -> ContentEntity | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                f"select {_ENTITY_COLUMNS} from content_entities where entity_type_id=%s and id=%s",
                [entity_type_id, entity_id],
                query_name="content_entities.load",
            )
        return _entity_from_row(row)

    def load_by_uuid(self, entity_type_id: str, entity_uuid: str) -> ContentEntity | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                f"select {_ENTITY_COLUMNS} from content_entities where entity_type_id=%s and uuid=%s",
                [entity_type_id, entity_uuid],
                query_name="content_entities.load_by_uuid",
            )
        return _entity_from_row(row)

    def load_revision(self, entity_type_id: str, revision_id: int) -> ContentEntity | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                f"select {_ENTITY_COLUMNS} from content_entity_revisions where entity_type_id=%s and revision_id=%s",
                [entity_type_id, revision_id],
                query_name="content_entity_revisions.load",
            )
        return _entity_from_row(row)


class DbDisplayRepository:
    def collect_display(self, entity: ContentEntity, mode: str) -> EntityViewDisplay:
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                """
                select target_entity_type, bundle, mode, status, layout_enabled, allow_overrides, sections
                from entity_view_displays
                where target_entity_type=%s and bundle=%s and mode in (%s, %s) and status
                """,
                [entity.entity_type_id, entity.bundle, mode, DEFAULT_VIEW_MODE],
                query_name="entity_view_displays.collect",
            )
        by_mode = {row["mode"]: row for row in rows}
        row = by_mode.get(mode) or by_mode.get(DEFAULT_VIEW_MODE)
        if row is None:
            return EntityViewDisplay(
                target_entity_type=entity.entity_type_id,
                bundle=entity.bundle,
                mode=DEFAULT_VIEW_MODE,
                status=False,
            )
        return EntityViewDisplay(
            target_entity_type=row["target_entity_type"],
            bundle=row["bundle"],
            mode=row["mode"],
            status=bool(row["status"]),
            layout_enabled=bool(row["layout_enabled"]),
            allow_overrides=bool(row["allow_overrides"]),
            sections=_json_value(row.get("sections"), []),
        )


class DbAliasStore:
    def lookup_alias(self, path: str, langcode: str | None) -> Tuple[str, int] | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                select entity_type_id, entity_id
                from path_aliases
                where path=%s and (langcode=%s or langcode is null)
                order by langcode nulls last
                limit 1
                """,
                [path, langcode],
                query_name="path_aliases.lookup",
            )
        if not row:
            return None
        return row["entity_type_id"], int(row["entity_id"])

    def lookup_redirect(self, path: str) -> Tuple[str, int] | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                "select target, status from redirects where source=%s",
                [path],
                query_name="redirects.lookup",
            )
        if not row:
            return None
        return row["target"], int(row["status"])

    def alias_for(self, entity_type_id: str, entity_id: int, langcode: str | None) -> str | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                select path
                from path_aliases
                where entity_type_id=%s and entity_id=%s and (langcode=%s or langcode is null)
                order by langcode nulls last
                limit 1
                """,
                [entity_type_id, entity_id, langcode],
                query_name="path_aliases.alias_for",
            )
        return row["path"] if row else None
