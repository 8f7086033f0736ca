"""
Applications API

Applicant endpoints:
    POST /apply                                  - submit a CV for a job role
    GET  /applications/mine                      - own applications
    GET  /applications/can-apply/{job_role_id}   - eligibility preview
    GET  /applications/{application_id}          - one application (owner or admin)

Admin endpoints:
    GET   /admin/job-roles/{job_role_id}/applications
    PATCH /admin/applications/{application_id}/status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from jobboard.auth import IdentityContext, get_identity, require_roles
from jobboard.dependencies import get_application_repository, get_coordinator, json_body
from jobboard.errors import BadRequestError, ForbiddenError, InternalError, JobBoardError, NotFoundError
from jobboard.models import ApplicationStatus, UserRole
from jobboard.schemas import (
    ApplicationDetailResponse,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ApplicationSubmitResponse,
    EligibilityResponse,
    JobRoleApplicationsResponse,
)
from jobboard.services.applications import (
    DEFAULT_CONTENT_TYPE,
    ApplicationRepository,
    ApplicationSubmissionCoordinator,
    CVUpload,
    parse_positive_int,
)

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_roles(UserRole.ADMIN))])


def _parse_id(value: str, message: str) -> int:
    parsed = parse_positive_int(value)
    if parsed is None:
        raise BadRequestError(message)
    return parsed


@router.post("/apply", response_model=ApplicationSubmitResponse, status_code=status.HTTP_201_CREATED)
async def apply_for_job(
    cv: Optional[UploadFile] = File(None),
    job_role_id: Optional[str] = Form(None, alias="jobRoleId"),
    identity: IdentityContext = Depends(get_identity),
    coordinator: ApplicationSubmissionCoordinator = Depends(get_coordinator),
):
    upload = None
    if cv is not None:
        upload = CVUpload(
            content=await cv.read(),
            filename=cv.filename or "cv",
            content_type=cv.content_type or DEFAULT_CONTENT_TYPE,
        )

    try:
        application = await coordinator.submit(identity.user_id, job_role_id, upload)
    except JobBoardError:
        raise
    except Exception as e:
        logger.error(f"Submitting application failed: {e}", exc_info=True)
        raise InternalError("Failed to submit application") from e

    return ApplicationSubmitResponse(
        message="Application submitted successfully",
        application=ApplicationResponse.from_model(application),
    )


@router.get("/applications/mine", response_model=ApplicationListResponse)
async def list_my_applications(
    identity: IdentityContext = Depends(get_identity),
    applications: ApplicationRepository = Depends(get_application_repository),
):
    rows = await applications.list_for_user(identity.user_id)
    return ApplicationListResponse(
        applications=[ApplicationResponse.from_model(row) for row in rows]
    )


@router.get(
    "/applications/can-apply/{job_role_id}",
    response_model=EligibilityResponse,
    response_model_exclude_none=True,
)
async def check_can_apply(
    job_role_id: str,
    identity: IdentityContext = Depends(get_identity),
    coordinator: ApplicationSubmissionCoordinator = Depends(get_coordinator),
):
    role_id = _parse_id(job_role_id, "Invalid job role ID")
    result = await coordinator.check_eligibility(identity.user_id, role_id)
    return EligibilityResponse(can_apply=result.eligible, reason=result.reason)


@router.get("/applications/{application_id}", response_model=ApplicationDetailResponse)
async def get_application(
    application_id: str,
    identity: IdentityContext = Depends(get_identity),
    applications: ApplicationRepository = Depends(get_application_repository),
):
    app_id = _parse_id(application_id, "Invalid application ID")
    application = await applications.get(app_id)
    if not application:
        raise NotFoundError("Application not found")

    if application.user_id != identity.user_id and identity.role != UserRole.ADMIN:
        raise ForbiddenError("Access denied")

    return ApplicationDetailResponse(application=ApplicationResponse.from_model(application))


@admin_router.get(
    "/job-roles/{job_role_id}/applications",
    response_model=JobRoleApplicationsResponse,
)
async def list_job_role_applications(
    job_role_id: str,
    applications: ApplicationRepository = Depends(get_application_repository),
):
    role_id = _parse_id(job_role_id, "Invalid job role ID")
    rows = await applications.list_for_job_role(role_id)
    return JobRoleApplicationsResponse(
        job_role_id=role_id,
        applications=[ApplicationResponse.from_model(row) for row in rows],
    )


@admin_router.patch(
    "/applications/{application_id}/status",
    response_model=ApplicationSubmitResponse,
)
async def update_application_status(
    application_id: str,
    update: ApplicationStatusUpdate = Depends(json_body(ApplicationStatusUpdate)),
    applications: ApplicationRepository = Depends(get_application_repository),
):
    app_id = _parse_id(application_id, "Invalid application ID")
    application = await applications.update_status(app_id, ApplicationStatus(update.status))
    if not application:
        raise NotFoundError("Application not found")

    logger.info(f"Application {app_id} moved to {update.status}")
    return ApplicationSubmitResponse(
        message="Application status updated successfully",
        application=ApplicationResponse.from_model(application),
    )
