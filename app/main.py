"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    AppError,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from app.core.identity import IdentityMiddleware, IdentityResolver
from app.core.logging import RequestIDMiddleware, RequestLoggingMiddleware, get_logger, setup_logging
from app.core.otp import ExpiringCodeCache
from app.infra.db import close_db_connection, get_session_maker

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        identity_strategy=settings.identity_strategy,
        mock_ai=settings.use_mock_ai,
        dev_routes=settings.enable_dev_routes,
    )

    yield

    # Shutdown
    await close_db_connection()


tags_metadata = [
    {
        "name": "auth",
        "description": "Registration, login and the current user.",
    },
    {
        "name": "friends",
        "description": "Friend codes and point rankings.",
    },
    {
        "name": "study",
        "description": "Daily study passage and progress steps.",
    },
    {
        "name": "writings",
        "description": "Prompts, writings, likes and scraps.",
    },
    {
        "name": "transcriptions",
        "description": "Hand-copying practice.",
    },
    {
        "name": "ai",
        "description": "Grammar check and voice conversation.",
    },
    {
        "name": "health",
        "description": "System health check.",
    },
]


def build_identity_resolver() -> IdentityResolver:
    if settings.identity_strategy == "refreshing":
        return IdentityResolver("refreshing", get_session_maker())
    return IdentityResolver("stateless")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Malmungchi Backend",
        description="""
Malmungchi API backs the vocabulary and literacy learning app.

## Features
* **Daily Study**: A generated reading passage per day with three progress steps.
* **Friends**: Add friends by code and compare points.
* **Writing**: Prompted writing, hand-copying practice, likes and scraps.
* **AI Tutor**: Grammar corrections and a spoken conversation partner.
""",
        version="0.1.0",
        openapi_tags=tags_metadata,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True
        },
        lifespan=lifespan,
    )

    app.state.identity_resolver = build_identity_resolver()
    app.state.otp_cache = ExpiringCodeCache(
        ttl_seconds=settings.otp_ttl_seconds,
        max_entries=settings.otp_max_entries,
    )

    # Middleware (last added runs first)
    app.add_middleware(IdentityMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["health"])
    async def root():
        return {
            "message": "Welcome to Malmungchi Backend API",
            "docs": "/docs",
            "status": "operational"
        }

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()
