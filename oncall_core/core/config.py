# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration — all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "oncall-core")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "2.1.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite://")
    POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "300"))

    AUTH_SERVICE_URL: str = os.getenv("AUTH_SERVICE_URL", "http://api-gateway:8080")
    DIRECTORY_SERVICE_URL: str = os.getenv(
        "DIRECTORY_SERVICE_URL", "http://user-service:8006"
    )
    HTTP_CLIENT_TIMEOUT: float = float(os.getenv("HTTP_CLIENT_TIMEOUT", "3.0"))

    # Days of assignments prefilled when a schedule has no end date.
    ASSIGNMENT_HORIZON_DAYS: int = int(os.getenv("ASSIGNMENT_HORIZON_DAYS", "90"))
    ASSIGNMENT_BATCH_SIZE: int = int(os.getenv("ASSIGNMENT_BATCH_SIZE", "100"))

    # Reject backward status moves instead of silently keeping the current status.
    STRICT_TRANSITIONS: bool = _env_bool("STRICT_TRANSITIONS", "true")

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
