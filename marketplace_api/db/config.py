from __future__ import annotations

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

# async driver to use for each backend the marketplace runs on
_ASYNC_DRIVERS = {"postgresql": "asyncpg", "sqlite": "aiosqlite"}


class Settings(BaseSettings):
    """
    Database connection settings for the marketplace store.

    DATABASE_URL wins when set. Otherwise the URL is assembled from the
    POSTGRES_* parts, which is how the container images are configured.
    """

    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///./marketplace.db",
    )
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[SecretStr] = Field(default=None)
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database holding the catalog tables")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)

    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DB_POOL_SIZE: int = Field(default=5, ge=1, description="Connection pool size (server databases only)")
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def url(self) -> URL:
        """Configured URL as given, before any driver rewrite."""
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)
        if not (self.POSTGRES_USER and self.POSTGRES_PASSWORD and self.POSTGRES_DB):
            raise ValueError(
                "Database configuration missing: set DATABASE_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        return URL.create(
            "postgresql",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD.get_secret_value(),
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )

    @property
    def backend(self) -> str:
        return self.url().get_backend_name()

    @property
    def async_database_url(self) -> URL:
        """URL with the async driver of its backend (asyncpg for PostgreSQL)."""
        url = self.url()
        driver = _ASYNC_DRIVERS.get(url.get_backend_name())
        return url.set(drivername=f"{url.get_backend_name()}+{driver}") if driver else url

    @property
    def sync_database_url(self) -> str:
        """Driver-less URL string for Alembic offline mode."""
        url = self.url()
        return url.set(drivername=url.get_backend_name()).render_as_string(hide_password=False)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return database settings read from the environment."""
    return Settings()
