from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Database settings for the hosted PostgreSQL instance behind the learning platform.

    Reads from environment variables (or .env via pydantic-settings):
      - POSTGRES_URL (takes precedence when set)
      - POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB
      - POSTGRES_HOST / POSTGRES_PORT
    """

    POSTGRES_URL: Optional[str] = Field(
        default=None, description="If provided, full PostgreSQL connection URL."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(
        default=5432, description="Database port (default 5432)"
    )
    POSTGRES_HOST: Optional[str] = Field(
        default="localhost", description="Database host (default localhost)"
    )

    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )
    DB_POOL_SIZE: int = Field(default=5, ge=1)

    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """
        Base database URL. Prefers POSTGRES_URL, otherwise builds one from the
        individual POSTGRES_* variables.
        """
        if self.POSTGRES_URL:
            return self.POSTGRES_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Set POSTGRES_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        host = self.POSTGRES_HOST or "localhost"
        port = self.POSTGRES_PORT or 5432
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

    @property
    def async_database_url(self) -> str:
        """URL with the asyncpg driver, required by the AsyncEngine."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg://"):
            return url
        # Hosted providers hand out postgres:// URLs
        url = re.sub(r"^postgres://", "postgresql://", url)
        return re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """Driver-less URL for Alembic offline mode."""
        url = re.sub(r"^postgres://", "postgresql://", self.database_url)
        return re.sub(r"^postgresql\+\w+://", "postgresql://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a fresh database settings object."""
    return Settings()
