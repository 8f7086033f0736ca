"""
Job role persistence

Plain CRUD over JobRole plus get_snapshot(), the read-only view the
eligibility check consumes.

Writes check that capabilityId, bandId and statusId name existing rows
before touching the table, so a bad reference is a 400 rather than a
role nobody can ever apply to. The database foreign keys still catch
anything that slips through (e.g. a lookup row deleted mid-request).
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.errors import BadRequestError
from jobboard.models import Band, Capability, JobRole, Status
from jobboard.schemas import JobRoleCreate, JobRoleUpdate
from jobboard.services.eligibility import JobRoleSnapshot

logger = logging.getLogger(__name__)

INVALID_REFERENCE_MESSAGE = "Invalid job role references"

# field -> (lookup primary key, wire name)
REFERENCES = {
    "capability_id": (Capability.capability_id, "capabilityId"),
    "band_id": (Band.band_id, "bandId"),
    "status_id": (Status.status_id, "statusId"),
}


class JobRoleRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> List[JobRole]:
        result = await self.db.execute(select(JobRole).order_by(JobRole.job_role_id))
        return list(result.scalars().all())

    async def get(self, job_role_id: int) -> Optional[JobRole]:
        result = await self.db.execute(select(JobRole).where(JobRole.job_role_id == job_role_id))
        return result.scalar_one_or_none()

    async def get_snapshot(self, job_role_id: int) -> Optional[JobRoleSnapshot]:
        job_role = await self.get(job_role_id)
        if not job_role:
            return None

        return JobRoleSnapshot(
            job_role_id=job_role.job_role_id,
            number_of_open_positions=job_role.number_of_open_positions,
            status_name=job_role.status.status_name if job_role.status else None,
            closing_date=job_role.closing_date,
        )

    async def create(self, data: JobRoleCreate) -> JobRole:
        values = data.model_dump()
        await self._check_references(values)

        job_role = JobRole(**values)
        self.db.add(job_role)
        await self._commit()
        return await self._reload(job_role.job_role_id)

    async def update(self, job_role_id: int, data: JobRoleUpdate) -> Optional[JobRole]:
        job_role = await self.get(job_role_id)
        if not job_role:
            return None

        update_data = data.model_dump(exclude_unset=True)
        await self._check_references(update_data)
        for field, value in update_data.items():
            setattr(job_role, field, value)

        await self._commit()
        return await self._reload(job_role_id)

    async def delete(self, job_role_id: int) -> bool:
        job_role = await self.get(job_role_id)
        if not job_role:
            return False

        await self.db.delete(job_role)
        await self.db.commit()
        return True

    async def _check_references(self, values: Dict[str, Any]) -> None:
        errors = []
        for field, (key, wire_name) in REFERENCES.items():
            if field not in values:
                continue
            found = await self.db.scalar(select(key).where(key == values[field]))
            if found is None:
                errors.append(f"{wire_name} {values[field]} does not exist")

        if errors:
            raise BadRequestError(INVALID_REFERENCE_MESSAGE, errors=errors)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Job role write rejected by the database: {e.orig}")
            raise BadRequestError(INVALID_REFERENCE_MESSAGE) from None

    async def _reload(self, job_role_id: int) -> JobRole:
        # Refresh relations and server-side defaults after a write
        result = await self.db.execute(
            select(JobRole)
            .where(JobRole.job_role_id == job_role_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
