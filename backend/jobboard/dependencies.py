"""
FastAPI dependency providers

Long-lived services are built once in create_app() and kept on app.state;
per-request objects (repositories, the submission coordinator) are built
here around the request's database session.
"""

import json
from typing import Type

from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.config import Settings
from jobboard.database import get_db
from jobboard.services.applications import ApplicationRepository, ApplicationSubmissionCoordinator
from jobboard.services.blob_store import BlobStore
from jobboard.services.job_roles import JobRoleRepository
from jobboard.services.passwords import PasswordHasher
from jobboard.services.users import UserRepository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_job_role_repository(db: AsyncSession = Depends(get_db)) -> JobRoleRepository:
    return JobRoleRepository(db)


def get_application_repository(db: AsyncSession = Depends(get_db)) -> ApplicationRepository:
    return ApplicationRepository(db)


def get_coordinator(
    request: Request,
    applications: ApplicationRepository = Depends(get_application_repository),
    job_roles: JobRoleRepository = Depends(get_job_role_repository),
    blob_store: BlobStore = Depends(get_blob_store),
) -> ApplicationSubmissionCoordinator:
    return ApplicationSubmissionCoordinator(
        applications=applications,
        job_roles=job_roles,
        blob_store=blob_store,
        locks=request.app.state.submission_locks,
    )


def json_body(model: Type[BaseModel]):
    """
    Build a dependency that parses the JSON request body into ``model``.

    Listing it after an auth or role guard means the guard runs first, so a
    caller without permission gets 401/403 no matter what they sent.
    Problems are raised as RequestValidationError with ``body``-rooted
    locations, same as FastAPI's own body parsing.
    """

    async def parse(request: Request) -> BaseModel:
        raw = await request.body()
        if not raw.strip():
            raise RequestValidationError(
                [{"type": "missing", "loc": ("body",), "msg": "Field required", "input": None}]
            )

        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
            ) from e

        try:
            return model.model_validate(payload)
        except ValidationError as e:
            errors = [{**error, "loc": ("body", *error["loc"])} for error in e.errors()]
            raise RequestValidationError(errors) from e

    return parse
