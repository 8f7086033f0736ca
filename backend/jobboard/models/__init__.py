from jobboard.models.user import User, UserRole
from jobboard.models.job_role import Band, Capability, JobRole, Status
from jobboard.models.application import Application, ApplicationStatus, REVIEW_STATUSES

__all__ = [
    "User",
    "UserRole",
    "Band",
    "Capability",
    "JobRole",
    "Status",
    "Application",
    "ApplicationStatus",
    "REVIEW_STATUSES",
]
