"""Entity tags for resolver responses."""

from __future__ import annotations

import hashlib
from typing import Any

from .canonical_json import canonical_bytes


def body_etag(payload: Any) -> str:
    """Return a strong ETag (quoted) derived from the canonical payload."""
    digest = hashlib.sha256(canonical_bytes(payload)).hexdigest()
    return f'"sha256:{digest}"'
