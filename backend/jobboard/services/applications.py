"""
Job Applications - persistence and the CV submission workflow

Submission Pipeline (ApplicationSubmissionCoordinator.submit):
    1. Require a non-empty CV file
    2. Validate applicant and job role ids
    3. Check eligibility (see services/eligibility.py)
    4. Upload the CV to the blob store under cvs/{user_id}/{uuid}.{ext}
    5. Create the application with status SUBMITTED
    6. Return it with applicant and job role loaded

Steps 3-5 run under a lock keyed by (user_id, job_role_id), so two requests
from one process cannot both pass the eligibility check. Across processes
the unique constraint on applications catches the duplicate at step 5 and
it is reported exactly like a failed eligibility check.

If step 5 fails after the upload succeeded, the uploaded CV is deleted
again (best effort; a failed delete is logged and leaves an orphan).
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobboard.errors import (
    BadRequestError,
    DuplicateApplicationError,
    InternalError,
    UploadError,
)
from jobboard.middleware.metrics import record_cv_upload_latency, record_submission
from jobboard.models import Application, ApplicationStatus
from jobboard.services.blob_store import DEFAULT_CONTENT_TYPE, BlobStore
from jobboard.services.eligibility import (
    ALREADY_APPLIED,
    ApplicationLookup,
    EligibilityResult,
    JobRoleLookup,
    evaluate,
)
from jobboard.services.locks import KeyedLock

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==================== Persistence ====================


class ApplicationRepository:
    """Reads and writes Application rows; implements both lookup and store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_relations(self):
        return select(Application).options(
            selectinload(Application.user),
            selectinload(Application.job_role),
        )

    async def find_existing(self, user_id: int, job_role_id: int) -> Optional[Application]:
        result = await self.db.execute(
            select(Application).where(
                Application.user_id == user_id,
                Application.job_role_id == job_role_id,
            )
        )
        return result.scalars().first()

    async def get(self, application_id: int) -> Optional[Application]:
        result = await self.db.execute(
            self._with_relations()
            .where(Application.application_id == application_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_cv_url(self, cv_url: str) -> Optional[Application]:
        result = await self.db.execute(
            select(Application).where(Application.cv_url == cv_url)
        )
        return result.scalars().first()

    async def create(self, user_id: int, job_role_id: int, cv_url: str) -> Application:
        application = Application(
            user_id=user_id,
            job_role_id=job_role_id,
            cv_url=cv_url,
            application_status=ApplicationStatus.SUBMITTED.value,
        )
        self.db.add(application)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.find_existing(user_id, job_role_id) is not None:
                raise DuplicateApplicationError(f"user {user_id} already applied to {job_role_id}")
            raise

        return await self.get(application.application_id)

    async def list_for_user(self, user_id: int) -> List[Application]:
        result = await self.db.execute(
            self._with_relations()
            .where(Application.user_id == user_id)
            .order_by(Application.applied_at.desc(), Application.application_id.desc())
        )
        return list(result.scalars().all())

    async def list_for_job_role(self, job_role_id: int) -> List[Application]:
        result = await self.db.execute(
            self._with_relations()
            .where(Application.job_role_id == job_role_id)
            .order_by(Application.applied_at.asc(), Application.application_id.asc())
        )
        return list(result.scalars().all())

    async def update_status(
        self, application_id: int, status: ApplicationStatus
    ) -> Optional[Application]:
        application = await self.get(application_id)
        if not application:
            return None

        application.application_status = status.value
        await self.db.commit()
        return await self.get(application_id)


# ==================== Submission workflow ====================


@dataclass(frozen=True)
class CVUpload:
    content: bytes
    filename: str
    content_type: str = DEFAULT_CONTENT_TYPE


def build_cv_key(user_id: int, filename: str) -> str:
    """Namespaced, collision-resistant object key for an uploaded CV."""
    extension = ""
    if "." in filename:
        extension = re.sub(r"[^A-Za-z0-9]", "", filename.rsplit(".", 1)[1])[:10].lower()
    return f"cvs/{user_id}/{uuid.uuid4()}.{extension or 'bin'}"


def parse_positive_int(value: Union[int, str, None]) -> Optional[int]:
    """Return ``value`` as a positive int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            return None
        return number if number > 0 else None
    return None


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ApplicationSubmissionCoordinator:
    """
    Runs eligibility check, CV upload and record creation in order.

    Args:
        applications: lookup + store for Application rows
        job_roles: source of JobRoleSnapshot for eligibility
        blob_store: where CV bytes go
        locks: process-wide KeyedLock shared by every coordinator
        clock: returns the current aware datetime
    """

    def __init__(
        self,
        applications: ApplicationRepository,
        job_roles: JobRoleLookup,
        blob_store: BlobStore,
        locks: KeyedLock,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.applications = applications
        self.job_roles = job_roles
        self.blob_store = blob_store
        self.locks = locks
        self.clock = clock

    async def check_eligibility(self, user_id: int, job_role_id: int) -> EligibilityResult:
        lookup: ApplicationLookup = self.applications
        return await evaluate(user_id, job_role_id, lookup, self.job_roles, self.clock())

    async def submit(
        self,
        applicant_id: Union[int, str, None],
        job_role_id: Union[int, str, None],
        cv: Optional[CVUpload],
    ) -> Application:
        # A missing file is reported before any id problem
        if cv is None or not cv.content:
            raise BadRequestError("CV file is required")

        if _is_blank(applicant_id):
            raise BadRequestError("User not authenticated")
        user_id = parse_positive_int(applicant_id)
        if user_id is None:
            raise BadRequestError("Invalid user ID")

        if _is_blank(job_role_id):
            raise BadRequestError("Job role ID is required")
        role_id = parse_positive_int(job_role_id)
        if role_id is None:
            raise BadRequestError("Invalid job role ID")

        async with self.locks.hold((user_id, role_id)):
            result = await self.check_eligibility(user_id, role_id)
            if not result.eligible:
                logger.info(f"User {user_id} not eligible for job role {role_id}: {result.reason}")
                record_submission("ineligible")
                raise BadRequestError(result.reason)

            cv_url = await self._upload(user_id, cv)
            application = await self._persist(user_id, role_id, cv_url)

        record_submission("submitted")
        logger.info(
            f"Application {application.application_id} submitted by user {user_id} "
            f"for job role {role_id}"
        )
        return application

    async def _upload(self, user_id: int, cv: CVUpload) -> str:
        key = build_cv_key(user_id, cv.filename)
        metadata = {
            "originalName": cv.filename,
            "userId": str(user_id),
            "uploadedAt": self.clock().isoformat(),
        }

        start_time = time.perf_counter()
        try:
            cv_url = await self.blob_store.upload(
                cv.content, key, cv.content_type or DEFAULT_CONTENT_TYPE, metadata
            )
        except Exception as e:
            logger.error(f"CV upload failed for user {user_id}: {e}", exc_info=True)
            record_submission("upload_failed")
            raise UploadError("Failed to upload CV") from e
        finally:
            record_cv_upload_latency(time.perf_counter() - start_time)

        if not cv_url:
            record_submission("upload_failed")
            raise UploadError("Failed to upload CV")
        return cv_url

    async def _persist(self, user_id: int, job_role_id: int, cv_url: str) -> Application:
        try:
            return await self.applications.create(user_id, job_role_id, cv_url)
        except DuplicateApplicationError:
            logger.warning(f"Duplicate application by user {user_id} for job role {job_role_id}")
            await self._discard_cv(cv_url)
            record_submission("duplicate")
            raise BadRequestError(ALREADY_APPLIED) from None
        except Exception as e:
            logger.error(f"Saving application failed for user {user_id}: {e}", exc_info=True)
            await self._discard_cv(cv_url)
            record_submission("failed")
            raise InternalError("Failed to submit application") from e

    async def _discard_cv(self, cv_url: str) -> None:
        try:
            await self.blob_store.delete(cv_url)
        except Exception as e:
            logger.error(f"Could not delete orphaned CV {cv_url}: {e}", exc_info=True)
