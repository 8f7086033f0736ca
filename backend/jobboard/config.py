from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/jobboard.db"

    # JWT session tokens. An empty secret aborts startup.
    jwt_secret: str = ""
    jwt_expiration_seconds: int = 3600

    # bcrypt cost factor
    bcrypt_rounds: int = 12

    # CV storage: "local" (served under cv_public_base_url) or "s3"
    cv_storage_backend: str = "local"
    cv_storage_dir: str = "./data/uploads"
    cv_public_base_url: str = "http://localhost:8000/uploads"
    s3_bucket_name: str = ""
    aws_region: str = ""

    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Feature flags (FEATURE_FLAG_JOB_DETAIL_VIEW=true etc.)
    feature_flag_job_detail_view: bool = False
    feature_flag_job_apply: bool = False

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
