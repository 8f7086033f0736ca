from datetime import date, datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from pydantic import field_validator, model_validator

from jobboard.models import JobRole
from jobboard.schemas.base import CamelModel

UNKNOWN = "Unknown"

STRING_LABELS = {
    "role_name": "Role name",
    "job_location": "Job location",
    "description": "Description",
    "responsibilities": "Responsibilities",
    "sharepoint_url": "SharePoint URL",
}

ID_LABELS = {
    "capability_id": "capabilityId",
    "band_id": "bandId",
    "status_id": "statusId",
}


def _non_empty_string(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{STRING_LABELS[field_name]} is required and must be a non-empty string")
    return value.strip()


def _naive_utc(value: datetime) -> datetime:
    # Stored as naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_closing_date(value):
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return _naive_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    raise ValueError("closingDate must be a valid date")


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("SharePoint URL must be a valid URL")
    return value


def _positive_id(value, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{ID_LABELS[field_name]} must be a positive integer")
    return value


def _open_positions(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("numberOfOpenPositions must be a non-negative integer")
    return value


class JobRoleCreate(CamelModel):
    role_name: str
    job_location: str
    capability_id: int
    band_id: int
    status_id: int
    closing_date: datetime
    description: str
    responsibilities: str
    sharepoint_url: str
    number_of_open_positions: int

    @field_validator("role_name", "job_location", "description", "responsibilities", mode="before")
    @classmethod
    def check_text(cls, value, info):
        return _non_empty_string(value, info.field_name)

    @field_validator("sharepoint_url", mode="before")
    @classmethod
    def check_sharepoint_url(cls, value):
        return _check_url(_non_empty_string(value, "sharepoint_url"))

    @field_validator("closing_date", mode="before")
    @classmethod
    def check_closing_date(cls, value):
        return _parse_closing_date(value)

    @field_validator("capability_id", "band_id", "status_id", mode="before")
    @classmethod
    def check_ids(cls, value, info):
        return _positive_id(value, info.field_name)

    @field_validator("number_of_open_positions", mode="before")
    @classmethod
    def check_positions(cls, value):
        return _open_positions(value)


class JobRoleUpdate(CamelModel):
    role_name: Optional[str] = None
    job_location: Optional[str] = None
    capability_id: Optional[int] = None
    band_id: Optional[int] = None
    status_id: Optional[int] = None
    closing_date: Optional[datetime] = None
    description: Optional[str] = None
    responsibilities: Optional[str] = None
    sharepoint_url: Optional[str] = None
    number_of_open_positions: Optional[int] = None

    @field_validator("role_name", "job_location", "description", "responsibilities", mode="before")
    @classmethod
    def check_text(cls, value, info):
        return _non_empty_string(value, info.field_name)

    @field_validator("sharepoint_url", mode="before")
    @classmethod
    def check_sharepoint_url(cls, value):
        return _check_url(_non_empty_string(value, "sharepoint_url"))

    @field_validator("closing_date", mode="before")
    @classmethod
    def check_closing_date(cls, value):
        return _parse_closing_date(value)

    @field_validator("capability_id", "band_id", "status_id", mode="before")
    @classmethod
    def check_ids(cls, value, info):
        return _positive_id(value, info.field_name)

    @field_validator("number_of_open_positions", mode="before")
    @classmethod
    def check_positions(cls, value):
        return _open_positions(value)

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class JobRoleResponse(CamelModel):
    job_role_id: int
    role_name: str
    location: str
    capability: str
    band: str
    closing_date: str
    description: str
    responsibilities: str
    sharepoint_url: str
    status: str
    number_of_open_positions: int

    @classmethod
    def from_model(cls, job_role: JobRole) -> "JobRoleResponse":
        capability = job_role.capability.capability_name if job_role.capability else None
        band = job_role.band.band_name if job_role.band else None
        status = job_role.status.status_name if job_role.status else None
        return cls(
            job_role_id=job_role.job_role_id,
            role_name=job_role.role_name or "",
            location=job_role.job_location or "",
            capability=capability or UNKNOWN,
            band=band or UNKNOWN,
            closing_date=job_role.closing_date.date().isoformat() if job_role.closing_date else "",
            description=job_role.description or "",
            responsibilities=job_role.responsibilities or "",
            sharepoint_url=job_role.sharepoint_url or "",
            status=status or UNKNOWN,
            number_of_open_positions=job_role.number_of_open_positions,
        )
