from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gcdl.app.api.v1.router import router as v1_router
from gcdl.app.config import settings
from gcdl.app.db.session import Database
from gcdl.app.logging_config import configure_logging, get_logger
from gcdl.services.errors import GCDLError

log = get_logger("http")


def _current_request_id(req: Request) -> str:
    return getattr(req.state, "request_id", "") or req.headers.get("x-request-id") or "-"


def create_app(database: Database | None = None) -> FastAPI:
    configure_logging(settings.log_level)
    database = database or Database.from_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        opened_here = not database.is_open
        database.open()
        log.info("startup", extra={"env": settings.env, "version": settings.api_version})
        try:
            yield
        finally:
            if opened_here:
                database.close()
            log.info("shutdown")

    app = FastAPI(title="GCDL", version=settings.api_version, lifespan=lifespan)
    app.state.database = database

    @app.exception_handler(GCDLError)
    def _domain_error(req: Request, exc: GCDLError):
        if exc.status_code >= 500:
            log.error(
                "http.request.failed",
                extra={"request_id": _current_request_id(req), "path": req.url.path, "code": exc.code},
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    def _request_validation_error(_req: Request, exc: RequestValidationError):
        content = {"detail": "Validation failed", "code": "validation_error"}
        if settings.env in {"local", "dev", "test"}:
            content["errors"] = jsonable_encoder(exc.errors())
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(Exception)
    def _unhandled_exception(req: Request, exc: Exception):
        rid = _current_request_id(req)
        log.error(
            "http.request.unhandled",
            exc_info=exc,
            extra={"request_id": rid, "method": req.method, "path": req.url.path},
        )
        return JSONResponse(status_code=500, content={"detail": "Server error", "request_id": rid})

    # Correlation id + structured request logging.
    @app.middleware("http")
    async def _request_logging(request: Request, call_next):
        rid = (request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
        request.state.request_id = rid
        started = time.time()

        response = await call_next(request)

        response.headers["X-Request-Id"] = rid
        if request.url.path != "/v1/health":
            log.info(
                "http.request",
                extra={
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int((time.time() - started) * 1000),
                },
            )
        return response

    app.include_router(v1_router, prefix="/v1")
    return app


app = create_app()
