from typing import Dict

from jobboard.config import Settings


def get_feature_flags(settings: Settings) -> Dict[str, bool]:
    """Flags exposed to the frontend, parsed from FEATURE_FLAG_* variables."""
    return {
        "JOB_DETAIL_VIEW": settings.feature_flag_job_detail_view,
        "JOB_APPLY": settings.feature_flag_job_apply,
    }
