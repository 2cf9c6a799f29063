from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from studio.workflow.runner import ImageProvider, JobRunner
from studio.workflow.store import JsonFileStore, StateStore, StudioState
from studio_api.config import settings
from studio_api.gemini import generate_result
from studio_api.routes.generate import router as generate_router
from studio_api.routes.jobs import router as jobs_router
from studio_api.routes.state import router as state_router


def _setup_logging() -> None:
    # Basic logging setup; level can be adjusted via ENV LOG_LEVEL
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def create_app(
    store: Optional[StateStore] = None,
    provider: Optional[ImageProvider] = None,
    force_mock: Optional[bool] = None,
    mock_delay_ms: Optional[Tuple[int, int]] = None,
) -> FastAPI:
    _setup_logging()
    logger = logging.getLogger("studio_api.middleware")

    studio = StudioState(store or JsonFileStore(settings.state_dir, settings.storage_key))
    studio.recover_interrupted()
    runner = JobRunner(
        studio,
        provider=provider or generate_result,
        force_mock=settings.force_mock if force_mock is None else force_mock,
        mock_delay_ms=mock_delay_ms or settings.mock_delay_ms,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Pick up jobs queued before the last shutdown
        task = asyncio.create_task(runner.run_pending()) if studio.next_queued() else None
        yield
        if task is not None and not task.done():
            task.cancel()

    app = FastAPI(title="Listing Studio API", version="0.1.0", lifespan=lifespan)
    app.state.studio = studio
    app.state.runner = runner

    # CORS support (allow-all by default; override via env)
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "*").strip()
    methods_env = os.getenv("CORS_ALLOW_METHODS", "*").strip()
    headers_env = os.getenv("CORS_ALLOW_HEADERS", "*").strip()

    if origins_env == "*":
        allow_origins = ["*"]
    else:
        allow_origins = [o.strip() for o in origins_env.split(",") if o.strip()]

    allow_methods = ["*"] if methods_env == "*" else [m.strip().upper() for m in methods_env.split(",") if m.strip()]
    allow_headers = ["*"] if headers_env == "*" else [h.strip() for h in headers_env.split(",") if h.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=allow_methods,
        allow_headers=allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        status = 0
        client = request.client.host if request.client else "-"
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = int((time.time() - start) * 1000)
            logger.info(
                "http_request method=%s path=%s status=%s duration_ms=%s client=%s",
                request.method,
                request.url.path,
                status,
                dur_ms,
                client,
            )

    app.include_router(generate_router)
    app.include_router(jobs_router)
    app.include_router(state_router)
    return app


app = create_app()
