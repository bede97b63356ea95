"""Deterministic JSON encoding for resolver payloads."""

from __future__ import annotations

import json
import math
from typing import Any


_SCALARS = (str, int, bool, type(None))


class CanonicalJsonTypeError(TypeError):
    """Raised when a payload holds a value JSON cannot carry."""


def _pointer(parent: str, token: Any) -> str:
    text = str(token).replace("~", "~0").replace("/", "~1")
    return f"{parent}/{text}"


def _ensure_encodable(payload: Any) -> None:
    """Walk the payload and fail on the first value JSON cannot carry.

    Locations are reported as JSON pointers (``/sections/0/components``).
    """
    pending = [("", payload)]
    while pending:
        where, value = pending.pop()
        if isinstance(value, _SCALARS):
            continue
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"non-finite float at {where or '/'}: {value!r}")
            continue
        if isinstance(value, dict):
            for key, item in value.items():
                if not isinstance(key, str):
                    raise CanonicalJsonTypeError(f"non-string key at {where or '/'}: {type(key).__name__}")
                pending.append((_pointer(where, key), item))
            continue
        if isinstance(value, (list, tuple)):
            pending.extend((_pointer(where, idx), item) for idx, item in enumerate(value))
            continue
        raise CanonicalJsonTypeError(f"unsupported {type(value).__name__} at {where or '/'}")


def canonical_dumps(obj: Any) -> str:
    """Serialize a payload so equal inputs always give equal text.

    Dict keys are sorted recursively, list order is kept, non-ASCII text is
    written as-is and no insignificant whitespace is emitted.
    """
    _ensure_encodable(obj)
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def canonical_bytes(obj: Any) -> bytes:
    return canonical_dumps(obj).encode("utf-8")
