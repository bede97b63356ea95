"""Request-scoped cache metadata accumulator."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable


PERMANENT = -1


@runtime_checkable
class CacheableDependency(Protocol):
    cache_tags: list[str]
    cache_contexts: list[str]
    cache_max_age: int


def merge_max_age(a: int, b: int) -> int:
    """Return the stricter of two max-age values.

    PERMANENT is the identity: it never wins against a finite value.
    """
    if a == PERMANENT:
        return b
    if b == PERMANENT:
        return a
    return min(a, b)


class CacheMetadata:
    """Invalidation tags, variation contexts and a max-age for one response.

    Every object consulted while building a response is added here so the
    final headers describe all of them. Tags and contexts only grow, the
    max-age only shrinks.
    """

    def __init__(
        self,
        tags: Iterable[str] | None = None,
        contexts: Iterable[str] | None = None,
        max_age: int = PERMANENT,
    ) -> None:
        self._tags: set[str] = set(tags or [])
        self._contexts: set[str] = set(contexts or [])
        self._max_age = max_age

    @property
    def tags(self) -> list[str]:
        return sorted(self._tags)

    @property
    def contexts(self) -> list[str]:
        return sorted(self._contexts)

    @property
    def max_age(self) -> int:
        return self._max_age

    # CacheableDependency view, so accumulators can be merged into each other.
    @property
    def cache_tags(self) -> list[str]:
        return self.tags

    @property
    def cache_contexts(self) -> list[str]:
        return self.contexts

    @property
    def cache_max_age(self) -> int:
        return self._max_age

    def set_max_age(self, value: int) -> "CacheMetadata":
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("max_age must be an int")
        self._max_age = value if value >= 0 else PERMANENT
        return self

    def add_tags(self, tags: Iterable[str]) -> "CacheMetadata":
        self._tags.update(t for t in tags if isinstance(t, str) and t)
        return self

    def add_contexts(self, contexts: Iterable[str]) -> "CacheMetadata":
        self._contexts.update(c for c in contexts if isinstance(c, str) and c)
        return self

    def restrict_max_age(self, value: int) -> "CacheMetadata":
        self._max_age = merge_max_age(self._max_age, value)
        return self

    def add_dependency(self, dependency: Any) -> "CacheMetadata":
        """Fold a consulted object's cacheability into this accumulator.

        Objects that do not describe their cacheability make the response
        uncacheable.
        """
        if isinstance(dependency, CacheableDependency):
            self.add_tags(dependency.cache_tags)
            self.add_contexts(dependency.cache_contexts)
            self.restrict_max_age(dependency.cache_max_age)
        else:
            self.restrict_max_age(0)
        return self

    def http_max_age(self) -> int:
        """Max-age usable in a Cache-Control header (0 when not cacheable)."""
        if self._max_age == PERMANENT:
            return 0
        return max(0, self._max_age)

    def __repr__(self) -> str:
        return f"CacheMetadata(tags={self.tags!r}, contexts={self.contexts!r}, max_age={self._max_age!r})"
