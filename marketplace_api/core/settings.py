from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# comma-separated in the environment, e.g. CORS_ORIGINS=https://a.example,https://b.example
CommaList = Annotated[List[str], NoDecode]


class AppSettings(BaseSettings):
    """
    Service settings read from the environment (or .env).

    Database connection settings live separately in marketplace_api.db.config.
    """

    APP_NAME: str = Field(default="Property Marketplace API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a multi-tenant property marketplace. "
            "Tenants manage categories with administrator-defined attribute schemas "
            "and listings validated against them."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")
    ENVIRONMENT: Optional[str] = Field(default=None, description="dev, test or prod")

    CORS_ORIGINS: CommaList = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: CommaList = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: CommaList = Field(default_factory=lambda: ["*"])

    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default=True, description="Run 'alembic upgrade head' at startup")
    AUTO_SEED: bool = Field(default=False, description="Seed the demo tenant after migrations")
    SEED_TENANT_SLUG: str = Field(default="acme", description="Tenant created by the seeding step")
    SEED_TENANT_NAME: str = Field(default="Acme Realty")

    # bearer tokens are issued by the external auth service and verified here
    JWT_SECRET_KEY: str = Field(default="change-me")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, ge=1)

    TENANT_HEADER: str = Field(default="X-Tenant-ID", description="Tenant header for anonymous callers")

    DEFAULT_PAGE_SIZE: int = Field(default=20, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)
    STRICT_CATEGORY_FILTER: bool = Field(
        default=False,
        description=(
            "Fail searches naming an unknown category with category_not_found "
            "instead of dropping the category constraint with a warning."
        ),
    )

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text", pattern="^(text|json)$")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("CORS_ORIGINS", "CORS_ALLOW_METHODS", "CORS_ALLOW_HEADERS", mode="before")
    @classmethod
    def _split_commas(cls, v):
        if isinstance(v, str):
            v = [p.strip() for p in v.split(",")]
        return [p for p in v or [] if p] or ["*"]

    @model_validator(mode="after")
    def _page_sizes_consistent(self) -> "AppSettings":
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")
        return self


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Build AppSettings from the current environment (not cached, so tests can change it)."""
    return AppSettings()
