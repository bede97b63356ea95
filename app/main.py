"""FastAPI app for the headless layout resolver."""

from __future__ import annotations

import logging
import re
import sys
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.settings import load_env_file, load_settings

load_env_file(ROOT / "app" / ".env")

from headless.canonical_json import canonical_bytes
from headless.etag import body_etag
from app.auth import SupabaseAuthMiddleware
from app.db import get_db_stats, reset_db_stats
from app.path_resolver import MemoryAliasStore, PathResolver
from app.resolve import LayoutResolveService, ResolveOutcome, error_outcome
from app.stores import (
    BlockContentStore,
    EntityAccessPolicy,
    MemoryDisplayRepository,
    MemoryEntityStore,
    SectionStorageResolver,
)


app = FastAPI(title="Headless layout resolver")
logger = logging.getLogger("headless")
logging.basicConfig(level=logging.INFO)

settings = load_settings()
logger.info(
    "auth_disabled=%s supabase_url=%s use_db=%s cache_max_age=%s",
    settings.disable_auth,
    settings.supabase_url,
    settings.use_db,
    settings.cache_max_age,
)

_LOCAL_CORS_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
}
_LOCAL_CORS_REGEX = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")

if settings.use_db:
    from app.stores_db import DbAliasStore, DbDisplayRepository, DbEntityStore

    entities = DbEntityStore()
    displays = DbDisplayRepository()
    aliases = DbAliasStore()
else:
    from app.demo_site import seed_demo_site

    entities = MemoryEntityStore()
    displays = MemoryDisplayRepository()
    aliases = MemoryAliasStore()
    seed_demo_site(entities, displays, aliases)

path_resolver = PathResolver(
    aliases,
    entities,
    default_langcode=settings.default_langcode,
    languages=settings.languages,
)
resolver_service = LayoutResolveService(
    path_resolver=path_resolver,
    entities=entities,
    displays=displays,
    section_storage=SectionStorageResolver(),
    block_store=BlockContentStore(entities),
    settings=settings,
    access_policy=EntityAccessPolicy(),
)


class CanonicalJSONResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"

    def render(self, content) -> bytes:
        return canonical_bytes(content)


def _resolver_response(outcome: ResolveOutcome) -> CanonicalJSONResponse:
    cacheability = outcome.cacheability
    max_age = cacheability.http_max_age()
    response = CanonicalJSONResponse(outcome.body, status_code=outcome.status)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Cache-Control"] = f"public, max-age={max_age}" if max_age > 0 else "no-store"
    if cacheability.tags:
        response.headers["X-Cache-Tags"] = " ".join(cacheability.tags)
    if cacheability.contexts:
        response.headers["X-Cache-Contexts"] = " ".join(cacheability.contexts)
    if outcome.status == 200:
        response.headers["ETag"] = body_etag(outcome.body)
    return response


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    reset_db_stats()
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    db_stats = get_db_stats()
    route = request.scope.get("route")
    route_name = getattr(route, "name", None) or "unknown"
    logger.info(
        "%s %s %s route=%s total_ms=%.1f db_queries=%s db_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        route_name,
        total_ms,
        db_stats["queries"],
        db_stats["total_ms"],
    )
    if total_ms >= settings.req_slow_ms:
        logger.warning(
            "slow_request method=%s path=%s route=%s total_ms=%.1f status=%s",
            request.method,
            request.url.path,
            route_name,
            total_ms,
            response.status_code,
        )
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error path=%s", request.url.path)
    return _resolver_response(error_outcome(500, "Internal Server Error", "Unexpected server error"))


if not settings.disable_auth:
    if not settings.supabase_url:
        raise RuntimeError("SUPABASE_URL is required for auth")
    app.add_middleware(
        SupabaseAuthMiddleware,
        supabase_url=settings.supabase_url,
        audience=settings.supabase_aud,
        cors_origins=settings.cors_origins,
    )
# Added last so CORS also wraps auth rejections.
app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(_LOCAL_CORS_ORIGINS | settings.cors_origins),
    allow_origin_regex=_LOCAL_CORS_REGEX.pattern,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Cache-Tags", "X-Cache-Contexts"],
)


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.get("/resolve")
@app.get("/jsonapi/layout/resolve")
def resolve_layout(request: Request, path: str | None = None, langcode: str | None = None):
    actor = getattr(request.state, "user", None)
    outcome = resolver_service.resolve(path, langcode, actor)
    return _resolver_response(outcome)
