from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from alleye.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="ALL EYE Learning API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for the ALL EYE security-awareness training platform. "
            "Serves content, playlists, progress, analytics and recommendations."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")
    LOG_LEVEL: str = Field(default="INFO")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed a sample organization and catalog after migrations.",
    )

    # Hosted backend (auth provider + object storage)
    SUPABASE_URL: str = Field(default="")
    SUPABASE_ANON_KEY: str = Field(default="")
    SUPABASE_SERVICE_KEY: str = Field(default="")
    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Secret used by the auth provider to sign access tokens.",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_AUDIENCE: str = Field(default="authenticated")

    # Storage
    VIDEO_BUCKET: str = Field(default="videos")
    SIGNED_URL_EXPIRES_SECONDS: int = Field(default=3600, ge=60)

    # Recommendations (OpenAI-compatible completion API)
    RECOMMENDER_API_KEY: str = Field(default="")
    RECOMMENDER_BASE_URL: Optional[str] = Field(default=None)
    RECOMMENDER_MODEL: str = Field(default="gpt-4o-mini")
    RECOMMENDER_MAX_ITEMS: int = Field(default=4, ge=1, le=20)
    RECOMMENDER_TIMEOUT_SECONDS: float = Field(default=30.0)

    # Profile provisioning
    CORPORATE_EMAIL_DOMAIN: str = Field(default="lms.com")
    CORPORATE_COMPANY_NAME: str = Field(default="LMS Corp")

    # Gamification
    POINTS_PER_COMPLETION: int = Field(default=10, ge=0)
    COURSE_CONQUEROR_THRESHOLD: int = Field(default=5, ge=1)

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    A new instance is built on every call so tests can change the environment
    between requests.
    """
    return AppSettings()
