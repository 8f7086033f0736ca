import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from jobboard.auth import require_roles
from jobboard.dependencies import get_job_role_repository, json_body
from jobboard.errors import BadRequestError, InternalError, JobBoardError, NotFoundError
from jobboard.models import UserRole
from jobboard.schemas import JobRoleCreate, JobRoleResponse, JobRoleUpdate
from jobboard.services.applications import parse_positive_int
from jobboard.services.job_roles import JobRoleRepository

logger = logging.getLogger(__name__)

router = APIRouter()

admin_only = require_roles(UserRole.ADMIN)


def parse_job_role_id(job_role_id: str) -> int:
    parsed = parse_positive_int(job_role_id)
    if parsed is None:
        raise BadRequestError("Invalid job role ID")
    return parsed


@router.get("", response_model=List[JobRoleResponse])
async def list_job_roles(job_roles: JobRoleRepository = Depends(get_job_role_repository)):
    try:
        rows = await job_roles.list_all()
    except Exception as e:
        logger.error(f"Listing job roles failed: {e}", exc_info=True)
        raise InternalError("Failed to get job roles") from e
    return [JobRoleResponse.from_model(row) for row in rows]


@router.get("/{job_role_id}", response_model=JobRoleResponse)
async def get_job_role(
    job_role_id: str,
    job_roles: JobRoleRepository = Depends(get_job_role_repository),
):
    role_id = parse_job_role_id(job_role_id)
    try:
        job_role = await job_roles.get(role_id)
    except Exception as e:
        logger.error(f"Loading job role {role_id} failed: {e}", exc_info=True)
        raise InternalError("Failed to get job role") from e

    if not job_role:
        raise NotFoundError("Job role not found")
    return JobRoleResponse.from_model(job_role)


@router.post(
    "",
    response_model=JobRoleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
async def create_job_role(
    data: JobRoleCreate = Depends(json_body(JobRoleCreate)),
    job_roles: JobRoleRepository = Depends(get_job_role_repository),
):
    try:
        job_role = await job_roles.create(data)
    except JobBoardError:
        raise
    except Exception as e:
        logger.error(f"Creating job role failed: {e}", exc_info=True)
        raise InternalError("Failed to create job role") from e

    logger.info(f"Created job role {job_role.job_role_id}")
    return JobRoleResponse.from_model(job_role)


@router.put("/{job_role_id}", response_model=JobRoleResponse, dependencies=[Depends(admin_only)])
async def update_job_role(
    job_role_id: str,
    data: JobRoleUpdate = Depends(json_body(JobRoleUpdate)),
    job_roles: JobRoleRepository = Depends(get_job_role_repository),
):
    role_id = parse_job_role_id(job_role_id)
    try:
        job_role = await job_roles.update(role_id, data)
    except JobBoardError:
        raise
    except Exception as e:
        logger.error(f"Updating job role {role_id} failed: {e}", exc_info=True)
        raise InternalError("Failed to update job role") from e

    if not job_role:
        raise NotFoundError("Job role not found")
    return JobRoleResponse.from_model(job_role)


@router.delete(
    "/{job_role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(admin_only)],
)
async def delete_job_role(
    job_role_id: str,
    job_roles: JobRoleRepository = Depends(get_job_role_repository),
):
    role_id = parse_job_role_id(job_role_id)
    try:
        deleted = await job_roles.delete(role_id)
    except Exception as e:
        logger.error(f"Deleting job role {role_id} failed: {e}", exc_info=True)
        raise InternalError("Failed to delete job role") from e

    if not deleted:
        raise NotFoundError("Job role not found")
    logger.info(f"Deleted job role {role_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
