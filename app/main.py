from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.settings import Settings
from health.health import build_health_report
from ingest.aggregator import aggregate_all_sources
from ingest.reddit import RedditTokenProvider
from ingest.sources import SourcePlugin, build_sources
from normalize.incident import INCIDENT_TYPES
from store.cache import AggregationCache


logger = logging.getLogger(__name__)

SourcesFactory = Callable[
    [httpx.AsyncClient, Settings, RedditTokenProvider], list[SourcePlugin]
]

router = APIRouter()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to fetch disaster data", "message": message},
    )


@router.get("/api/incidents")
async def api_incidents(request: Request) -> JSONResponse:
    cache: AggregationCache = request.app.state.cache
    try:
        result, from_cache = await cache.get()
    except Exception as e:
        logger.exception("Aggregation error")
        return _error_response(str(e))
    return JSONResponse({**result.to_dict(), "fromCache": from_cache})


@router.get("/api/incidents/{incident_type}")
async def api_incidents_by_type(request: Request, incident_type: str) -> JSONResponse:
    # no source emits a type outside the canonical set
    if incident_type not in INCIDENT_TYPES:
        return JSONResponse({"incidents": [], "count": 0})

    cache: AggregationCache = request.app.state.cache
    result = cache.peek()
    if result is None:
        try:
            result, _ = await cache.get()
        except Exception as e:
            logger.exception("Aggregation error")
            return _error_response(str(e))
    incidents = [i.to_dict() for i in result.incidents if i.type == incident_type]
    return JSONResponse({"incidents": incidents, "count": len(incidents)})


@router.get("/api/health")
def api_health(request: Request) -> JSONResponse:
    cache: AggregationCache = request.app.state.cache
    started_at: float = request.app.state.started_at
    return JSONResponse(
        build_health_report(
            cache_age_seconds=cache.age_seconds(),
            uptime_seconds=time.monotonic() - started_at,
        )
    )


def create_app(
    settings: Settings | None = None,
    *,
    sources_factory: SourcesFactory = build_sources,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or Settings()
        _setup_logging(resolved.log_level)
        app.state.settings = resolved
        app.state.started_at = time.monotonic()

        tokens = RedditTokenProvider(
            client_id=resolved.reddit_client_id,
            client_secret=resolved.reddit_client_secret,
            username=resolved.reddit_username,
        )
        async with httpx.AsyncClient(follow_redirects=True) as client:
            plugins = sources_factory(client, resolved, tokens)
            cache = AggregationCache(
                lambda: aggregate_all_sources(
                    plugins, timeout_seconds=resolved.source_timeout_seconds
                ),
                ttl_seconds=resolved.cache_ttl_seconds,
            )
            app.state.cache = cache
            await cache.prewarm()
            yield

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
