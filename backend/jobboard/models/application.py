"""
Application Model - One applicant's submission against one job role

Status Flow:
    SUBMITTED → IN_PROGRESS → REVIEWING → ACCEPTED/REJECTED

The (user_id, job_role_id) unique constraint backs up the eligibility
check, which on its own cannot stop two concurrent submissions.
"""

import enum

from sqlalchemy import Column, ForeignKey, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from jobboard.database import Base


class ApplicationStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEWING = "REVIEWING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# Statuses an administrator may move an application to
REVIEW_STATUSES = (
    ApplicationStatus.IN_PROGRESS,
    ApplicationStatus.REVIEWING,
    ApplicationStatus.ACCEPTED,
    ApplicationStatus.REJECTED,
)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("user_id", "job_role_id", name="uq_application_user_job_role"),
    )

    application_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    job_role_id = Column(Integer, ForeignKey("job_roles.job_role_id"), nullable=False, index=True)
    cv_url = Column(String(2000), nullable=False)
    application_status = Column(
        String(20), nullable=False, default=ApplicationStatus.SUBMITTED.value, index=True
    )
    applied_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="applications")
    job_role = relationship("JobRole", back_populates="applications")
