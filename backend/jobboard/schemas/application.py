from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from jobboard.models import Application, REVIEW_STATUSES
from jobboard.schemas.base import CamelModel

STATUS_REQUIRED_MESSAGE = "Valid status is required (IN_PROGRESS, REVIEWING, ACCEPTED, REJECTED)"


class ApplicantSummary(CamelModel):
    user_id: int
    user_email: str


class JobRoleSummary(CamelModel):
    job_role_id: int
    role_name: str
    job_location: str
    closing_date: Optional[datetime] = None


class ApplicationResponse(CamelModel):
    application_id: int
    user_id: int
    job_role_id: int
    cv_url: str
    application_status: str
    applied_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    applicant: Optional[ApplicantSummary] = None
    job_role: Optional[JobRoleSummary] = None

    @classmethod
    def from_model(cls, application: Application, include_related: bool = True) -> "ApplicationResponse":
        applicant = None
        job_role = None
        if include_related:
            # Relations must already be loaded; lazy IO is not available in async sessions
            if application.user is not None:
                applicant = ApplicantSummary.model_validate(application.user)
            if application.job_role is not None:
                job_role = JobRoleSummary.model_validate(application.job_role)
        return cls(
            application_id=application.application_id,
            user_id=application.user_id,
            job_role_id=application.job_role_id,
            cv_url=application.cv_url,
            application_status=application.application_status,
            applied_at=application.applied_at,
            updated_at=application.updated_at,
            applicant=applicant,
            job_role=job_role,
        )


class ApplicationSubmitResponse(BaseModel):
    message: str
    application: ApplicationResponse


class ApplicationDetailResponse(BaseModel):
    application: ApplicationResponse


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]


class JobRoleApplicationsResponse(CamelModel):
    job_role_id: int
    applications: List[ApplicationResponse]


class EligibilityResponse(CamelModel):
    can_apply: bool
    reason: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: str

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, value):
        if value not in [s.value for s in REVIEW_STATUSES]:
            raise ValueError(STATUS_REQUIRED_MESSAGE)
        return value
