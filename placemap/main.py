from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from placemap.core.config import settings
from placemap.core.logging_config import configure_logging
from placemap.db.session import init_db
from placemap.routers import auth, reviews, search
from placemap.services.naver import SearchUnavailable

configure_logging(log_dir=settings.log_dir, level=settings.log_level, sync_level=settings.sync_log_level or None)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Placemap", version="0.1.0")

    # The map client is served from another origin and sends bearer tokens, not cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        init_db()
        logger.info("DB ready (%s)", settings.database_url.split("://", 1)[0])
        if not settings.naver_client_id:
            logger.warning("NAVER_SEARCH_CLIENT_ID not set; /api/search will answer 500")

    @app.exception_handler(SearchUnavailable)
    async def search_unavailable(request: Request, exc: SearchUnavailable) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration_ms)
        return response

    app.include_router(auth.router)
    app.include_router(search.router)
    app.include_router(reviews.router)

    return app


app = create_app()
