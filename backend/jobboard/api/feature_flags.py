from typing import Dict

from fastapi import APIRouter, Depends

from jobboard.config import Settings
from jobboard.dependencies import get_app_settings
from jobboard.services.feature_flags import get_feature_flags

router = APIRouter()


@router.get("", response_model=Dict[str, bool])
async def feature_flags(settings: Settings = Depends(get_app_settings)):
    return get_feature_flags(settings)
