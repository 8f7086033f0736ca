"""
Job Board API - Main Application Entry Point

This module builds the FastAPI application with:
- Explicitly constructed services (token, password, blob store, locks)
- Database schema initialization on startup
- JSON error rendering for the JobBoardError taxonomy
- Request ID logging, Prometheus metrics and CORS middleware

Architecture:
    FastAPI App
    ├── Lifespan Management (secret check, tables, engine disposal)
    ├── Middleware (request ID, metrics, CORS)
    └── API Router
        ├── /login, /register      - Authentication
        ├── /job-roles             - Browse (public) / manage (ADMIN)
        ├── /apply, /applications  - CV submission and tracking
        ├── /admin                 - Application review (ADMIN)
        ├── /feature-flags         - Frontend feature toggles
        └── /uploads/{key}         - CV downloads (owner or ADMIN, local storage)

Run:
    uvicorn jobboard.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobboard.api import api_router, uploads
from jobboard.auth import TokenService
from jobboard.config import Settings, get_settings
from jobboard.database import create_engine, create_session_factory, init_db
from jobboard.errors import JobBoardError
from jobboard.middleware import RequestIDMiddleware, init_logging, setup_metrics
from jobboard.schemas import format_validation_errors
from jobboard.services.blob_store import create_blob_store
from jobboard.services.locks import KeyedLock
from jobboard.services.passwords import BcryptPasswordHasher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
        1. Refuse to start without a JWT secret
        2. Create database tables

    Shutdown:
        1. Dispose of the database engine
    """
    app.state.token_service.ensure_configured()
    await init_db(app.state.engine)
    logger.info("Job board API started")
    yield
    await app.state.engine.dispose()


async def handle_job_board_error(request: Request, exc: JobBoardError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = format_validation_errors(exc.errors())
    logger.info(f"Rejected request body for {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request body", "errors": errors},
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def cv_download_prefix(settings: Settings) -> Optional[str]:
    """Path the local store's CV URLs live under, or None when nothing to serve."""
    if settings.cv_storage_backend.lower() != "local":
        return None
    return urlparse(settings.cv_public_base_url).path.rstrip("/") or None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="Job Board API",
        description="Job roles, applicant CV submissions and role-based administration",
        version="0.1.0",
        lifespan=lifespan,
    )

    engine = create_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.token_service = TokenService(
        secret=settings.jwt_secret,
        default_ttl=timedelta(seconds=settings.jwt_expiration_seconds),
    )
    app.state.password_hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.blob_store = create_blob_store(settings)
    app.state.submission_locks = KeyedLock()

    app.add_exception_handler(JobBoardError, handle_job_board_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)

    setup_metrics(app)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    download_prefix = cv_download_prefix(settings)
    if download_prefix:
        app.include_router(uploads.router, prefix=download_prefix, tags=["uploads"])
    else:
        logger.info("CV download route not mounted")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
