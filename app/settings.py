"""Environment-driven settings for the resolver service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


LANGCODE_FALLBACKS = {"site_default", "current"}
SETTINGS_CACHE_TAG = "config:headless.settings"


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


@dataclass
class ResolverSettings:
    cache_max_age: int = 900
    langcode_fallback: str = "site_default"
    default_langcode: str = "en"
    languages: list[str] = field(default_factory=lambda: ["en"])
    disable_auth: bool = False
    supabase_url: str = ""
    supabase_aud: str | None = None
    use_db: bool = False
    cors_origins: set[str] = field(default_factory=set)
    req_slow_ms: float = 250.0

    def anonymous_max_age(self) -> int:
        return max(0, self.cache_max_age)


def load_settings() -> ResolverSettings:
    fallback = os.getenv("HEADLESS_LANGCODE_FALLBACK", "").strip() or "site_default"
    if fallback not in LANGCODE_FALLBACKS:
        fallback = "site_default"
    default_langcode = os.getenv("HEADLESS_DEFAULT_LANGCODE", "").strip() or "en"
    languages = [c.strip() for c in os.getenv("HEADLESS_LANGUAGES", "").split(",") if c.strip()]
    return ResolverSettings(
        cache_max_age=_int("HEADLESS_RESOLVER_CACHE_MAX_AGE", 900),
        langcode_fallback=fallback,
        default_langcode=default_langcode,
        languages=languages or [default_langcode],
        disable_auth=_flag("HEADLESS_DISABLE_AUTH"),
        supabase_url=os.getenv("SUPABASE_URL", "").strip(),
        supabase_aud=os.getenv("SUPABASE_JWT_AUD", "").strip() or None,
        use_db=os.getenv("USE_DB", "").strip() == "1",
        cors_origins={
            origin.strip().rstrip("/")
            for origin in os.getenv("HEADLESS_CORS_ORIGINS", "").split(",")
            if origin.strip()
        },
        req_slow_ms=float(_int("HEADLESS_REQ_SLOW_MS", 250)),
    )
