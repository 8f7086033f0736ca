"""
CV Downloads

    GET {cv_public_base_url path}/{key}  - stored CV (applicant who owns it, or admin)

Mounted by create_app under the path part of CV_PUBLIC_BASE_URL so that the
cvUrl returned by /apply resolves here when CVs are stored locally.
"""

import logging
from pathlib import PurePosixPath
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response

from jobboard.auth import IdentityContext, get_identity
from jobboard.dependencies import get_application_repository, get_blob_store
from jobboard.errors import ForbiddenError, NotFoundError
from jobboard.models import UserRole
from jobboard.services.applications import ApplicationRepository
from jobboard.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{key:path}")
async def download_cv(
    key: str,
    identity: IdentityContext = Depends(get_identity),
    blob_store: BlobStore = Depends(get_blob_store),
    applications: ApplicationRepository = Depends(get_application_repository),
):
    try:
        url = blob_store.url_for(key)
    except ValueError:
        raise NotFoundError("CV not found") from None

    application = await applications.get_by_cv_url(url)
    if not application:
        raise NotFoundError("CV not found")

    if application.user_id != identity.user_id and identity.role != UserRole.ADMIN:
        raise ForbiddenError("Access denied")

    blob = await blob_store.fetch(url)
    if blob is None:
        logger.warning(f"Application {application.application_id} points at missing CV {url}")
        raise NotFoundError("CV not found")

    # S3 lower-cases user metadata keys
    metadata = {name.lower(): value for name, value in blob.metadata.items()}
    filename = metadata.get("originalname") or PurePosixPath(key).name
    return Response(
        content=blob.content,
        media_type=blob.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename, safe='')}"},
    )
