"""
Application Eligibility

Decides whether an applicant may apply to a job role at a given instant.
Checks run in a fixed order and the first failure wins, because the reason
is shown to the applicant:

    1. already applied              "You have already applied for this job role"
    2. unknown job role             "Job role not found"
    3. status is not "open"         "This job role is not open for applications"
    4. no open positions            "No open positions available"
    5. closing date before now      "The closing date has passed"

evaluate() only reads through the two lookups it is given. Passing the
check does not reserve anything: a concurrent submission can still win the
race, which the submission coordinator guards against separately.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

ALREADY_APPLIED = "You have already applied for this job role"
ROLE_NOT_FOUND = "Job role not found"
NOT_OPEN = "This job role is not open for applications"
NO_OPEN_POSITIONS = "No open positions available"
CLOSING_DATE_PASSED = "The closing date has passed"


@dataclass(frozen=True)
class JobRoleSnapshot:
    """Application-relevant state of a job role at evaluation time."""

    job_role_id: int
    number_of_open_positions: int
    status_name: Optional[str]
    closing_date: datetime


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        body: dict = {"canApply": self.eligible}
        if self.reason:
            body["reason"] = self.reason
        return body


class ApplicationLookup(Protocol):
    async def find_existing(self, applicant_id: int, job_role_id: int) -> Optional[Any]:
        ...


class JobRoleLookup(Protocol):
    async def get_snapshot(self, job_role_id: int) -> Optional[JobRoleSnapshot]:
        ...


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_job_role(snapshot: JobRoleSnapshot, now: datetime) -> EligibilityResult:
    """Checks 3-5: is this job role accepting applications at ``now``?"""
    if (snapshot.status_name or "").lower() != "open":
        return EligibilityResult(False, NOT_OPEN)

    if snapshot.number_of_open_positions <= 0:
        return EligibilityResult(False, NO_OPEN_POSITIONS)

    if as_utc(snapshot.closing_date) < as_utc(now):
        return EligibilityResult(False, CLOSING_DATE_PASSED)

    return EligibilityResult(True)


async def evaluate(
    applicant_id: int,
    job_role_id: int,
    application_lookup: ApplicationLookup,
    job_role_lookup: JobRoleLookup,
    now: datetime,
) -> EligibilityResult:
    existing = await application_lookup.find_existing(applicant_id, job_role_id)
    if existing is not None:
        return EligibilityResult(False, ALREADY_APPLIED)

    snapshot = await job_role_lookup.get_snapshot(job_role_id)
    if snapshot is None:
        return EligibilityResult(False, ROLE_NOT_FOUND)

    return check_job_role(snapshot, now)
