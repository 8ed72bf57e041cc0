# media_saver/transport/http_app.py
"""
HTTP surface for the acquisition pipeline.

Endpoints:
- POST /files        multipart upload (first file part is stored)
- POST /files/fetch  JSON {"url": ..., "name": optional} remote download
- GET  /health

Saver errors map to their ``status_code`` with body ``{"error", "code"}``.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from media_saver.config import settings
from media_saver.core.errors import SaverError
from media_saver.core.ports import Acquirable
from media_saver.infra.http_client import close_all_sessions
from media_saver.infra.logging_config import LogContext, get_logger, setup_logging
from media_saver.savers.image_saver import ImageSaver
from media_saver.transport.middleware import RequestIDMiddleware
from media_saver.transport.schemas import FetchIn, SavedOut

logger = get_logger(__name__)


def get_saver(request: Request) -> Acquirable:
    return request.app.state.saver


def create_app(saver: Acquirable | None = None, configure_logging: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        saver: Saver to use; built from settings on startup if omitted.
        configure_logging: Install the console/JSON log handler.
    """
    if configure_logging:
        setup_logging(level=settings.log_level, use_json=settings.use_json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "saver", None) is None:
            app.state.saver = ImageSaver.from_settings()
        logger.info(f"Saving files to {getattr(app.state.saver, 'target_dir', '?')}")
        yield
        await close_all_sessions()

    app = FastAPI(title="media-saver", lifespan=lifespan)
    app.state.saver = saver
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(SaverError)
    async def saver_error_handler(request: Request, exc: SaverError):
        request_id = getattr(request.state, "request_id", None)
        LogContext(logger, request_id=request_id).warning(
            f"{request.method} {request.url.path} failed: {exc.code}: {exc.detail}"
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.post("/files", response_model=SavedOut)
    async def upload_file(request: Request):
        target = await get_saver(request).download(request)
        return SavedOut(file_name=target.file_name)

    @app.post("/files/fetch", response_model=SavedOut)
    async def fetch_file(body: FetchIn, request: Request):
        target = await get_saver(request).download(body.url, body.name)
        return SavedOut(file_name=target.file_name)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app
