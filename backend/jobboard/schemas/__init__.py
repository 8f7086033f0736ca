from jobboard.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from jobboard.schemas.job_role import JobRoleCreate, JobRoleUpdate, JobRoleResponse
from jobboard.schemas.application import (
    ApplicationDetailResponse,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ApplicationSubmitResponse,
    EligibilityResponse,
    JobRoleApplicationsResponse,
)
from jobboard.schemas.validation import format_validation_errors

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "RegisterResponse",
    "UserResponse",
    "JobRoleCreate",
    "JobRoleUpdate",
    "JobRoleResponse",
    "ApplicationDetailResponse",
    "ApplicationListResponse",
    "ApplicationResponse",
    "ApplicationStatusUpdate",
    "ApplicationSubmitResponse",
    "EligibilityResponse",
    "JobRoleApplicationsResponse",
    "format_validation_errors",
]
