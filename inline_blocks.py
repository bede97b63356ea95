"""Inline block reference resolution."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Protocol

from headless.cache_metadata import CacheMetadata
from layout_components import BlockRef, InlineBlock


BLOCK_CONTENT_ENTITY_TYPE = "block_content"
# Matches the default int() string conversion limit of current interpreters.
MAX_REVISION_ID_DIGITS = 4300

logger = logging.getLogger("headless.layout")

AccessCheck = Callable[[Any, str], bool]


class BlockContentStore(Protocol):
    def has_capability(self) -> bool:
        ...

    def load_revision(self, revision_id: int) -> Any | None:
        ...


def parse_revision_id(value: Any) -> int | None:
    """Accept a non-negative int or a string of ASCII digits; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isascii() and value.isdigit():
        if len(value) > MAX_REVISION_ID_DIGITS:
            return None
        return int(value)
    return None


def _view_mode(configuration: Mapping) -> str | None:
    view_mode = configuration.get("view_mode")
    return view_mode if isinstance(view_mode, str) and view_mode else None


class InlineBlockResolver:
    """Turn an inline block configuration into a reference to its content.

    A missing store, a dangling revision, a denied view check or a block
    without a bundle all leave ``block`` empty. Nothing here raises.
    """

    def __init__(self, block_store: BlockContentStore | None, access: AccessCheck) -> None:
        self._store = block_store
        self._access = access

    def resolve(self, configuration: Any, cacheability: CacheMetadata) -> InlineBlock:
        if not isinstance(configuration, Mapping):
            return InlineBlock()
        view_mode = _view_mode(configuration)

        revision_id = parse_revision_id(configuration.get("block_revision_id"))
        if revision_id is None:
            logger.debug("inline_block_revision_unparseable value=%r", configuration.get("block_revision_id"))
            return InlineBlock(view_mode=view_mode)

        unresolved = InlineBlock(view_mode=view_mode, block_revision_id=revision_id)
        if self._store is None or not self._store.has_capability():
            return unresolved

        try:
            block = self._store.load_revision(revision_id)
        except Exception as exc:
            logger.warning("inline_block_load_failed revision_id=%s error=%s", revision_id, exc)
            return unresolved
        if block is None:
            logger.debug("inline_block_revision_missing revision_id=%s", revision_id)
            return unresolved

        cacheability.add_contexts(["user.permissions"])
        try:
            viewable = bool(self._access(block, "view"))
        except Exception as exc:
            logger.warning("inline_block_access_failed revision_id=%s error=%s", revision_id, exc)
            viewable = False
        if not viewable:
            return unresolved

        cacheability.add_dependency(block)

        bundle = getattr(block, "bundle", None)
        uuid = getattr(block, "uuid", None)
        if not isinstance(bundle, str) or not bundle or not isinstance(uuid, str) or not uuid:
            return unresolved

        entity_type_id = getattr(block, "entity_type_id", None) or BLOCK_CONTENT_ENTITY_TYPE
        return InlineBlock(
            view_mode=view_mode,
            block_revision_id=revision_id,
            block=BlockRef.for_entity(entity_type_id, bundle, uuid),
        )
