from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .logging import configure_logging, logger
from .middleware import AccessLogMiddleware, RequestIDMiddleware
from .routers import health, review


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="Mastery Review API", version=__version__)

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]

    # ワイルドカード許可時は資格情報付き CORS を無効にする
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される。
    # RequestID（外側）で採番した request_id を AccessLog（内側）が参照する。
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(review.router, prefix="/api/review")
    app.include_router(health.router)

    logger.info(
        "app_configured",
        environment=settings.environment,
        review_store_backend=settings.review_store_backend,
        review_timezone=settings.review_timezone,
    )
    return app


app = create_app()
