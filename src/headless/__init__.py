"""Headless layout kernel utilities."""

from .cache_metadata import PERMANENT, CacheableDependency, CacheMetadata, merge_max_age
from .canonical_json import CanonicalJsonTypeError, canonical_bytes, canonical_dumps
from .etag import body_etag

__all__ = [
    "PERMANENT",
    "CacheableDependency",
    "CacheMetadata",
    "CanonicalJsonTypeError",
    "body_etag",
    "canonical_bytes",
    "canonical_dumps",
    "merge_max_age",
]
