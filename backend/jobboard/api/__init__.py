from fastapi import APIRouter
from jobboard.api import applications, auth, feature_flags, job_roles

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(job_roles.router, prefix="/job-roles", tags=["job-roles"])
api_router.include_router(applications.router, tags=["applications"])
api_router.include_router(applications.admin_router, prefix="/admin", tags=["admin"])
api_router.include_router(feature_flags.router, prefix="/feature-flags", tags=["feature-flags"])
