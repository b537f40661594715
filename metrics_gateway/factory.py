from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from metrics_gateway.api.graph import create_graphql_router
from metrics_gateway.api.router import api_router
from metrics_gateway.core.config import Settings, load_settings
from metrics_gateway.core.exceptions import InvalidRequestError, StorageUnavailableError
from metrics_gateway.core.logging import configure_logging
from metrics_gateway.core.pipeline import default_pipeline
from metrics_gateway.db.session import (
    create_engine_from_settings,
    create_session_factory,
    init_models,
)
from metrics_gateway.schemas.metrics import format_errors

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine_from_settings(settings)
        await init_models(engine)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info("Metrics store ready (%s)", engine.url.render_as_string(hide_password=True))

        yield
        await engine.dispose()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="Metrics Query Gateway",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = default_pipeline()

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Total-Count", "X-Page", "X-Page-Size", "X-Total-Pages"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.errors}
        )

    @app.exception_handler(RequestValidationError)
    async def unparsable_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": format_errors(exc.errors())},
        )

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable(request: Request, exc: StorageUnavailableError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Metrics storage unavailable"},
        )

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "metrics-gateway", "status": "ok"}

    app.include_router(api_router)
    app.include_router(create_graphql_router(ide=docs_enabled), prefix="/graphql")
    return app
