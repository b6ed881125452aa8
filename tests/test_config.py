"""Tests for service/database settings and log formatting."""

import json
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy.engine import make_url

from marketplace_api.core.logging import configure_logging, correlation_id_var
from marketplace_api.core.settings import AppSettings
from marketplace_api.core.tenancy import scoped
from marketplace_api.db.config import Settings

NO_URL = {"DATABASE_URL": None}


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
def test_cors_lists_are_comma_separated(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    settings = AppSettings()
    assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]
    assert AppSettings(CORS_ALLOW_METHODS="").CORS_ALLOW_METHODS == ["*"]


@pytest.mark.unit
def test_default_page_size_cannot_exceed_max():
    with pytest.raises(ValidationError):
        AppSettings(DEFAULT_PAGE_SIZE=50, MAX_PAGE_SIZE=10)
    with pytest.raises(ValidationError):
        AppSettings(LOG_FORMAT="xml")


@pytest.mark.unit
def test_database_url_from_postgres_parts():
    settings = Settings(
        **NO_URL,
        POSTGRES_USER="market",
        POSTGRES_PASSWORD="p@ss",
        POSTGRES_DB="catalog",
        POSTGRES_HOST="db",
    )
    async_url = settings.async_database_url
    assert async_url.drivername == "postgresql+asyncpg"
    assert async_url.password == "p@ss"
    assert async_url.host == "db"
    assert async_url.port == 5432

    sync_url = make_url(settings.sync_database_url)
    assert sync_url.drivername == "postgresql"
    assert sync_url.password == "p@ss"
    assert sync_url.database == "catalog"


@pytest.mark.unit
@pytest.mark.parametrize(
    "configured,driver",
    [
        ("postgresql://u:p@h/db", "postgresql+asyncpg"),
        ("postgresql+psycopg://u:p@h/db", "postgresql+asyncpg"),
        ("sqlite:///./marketplace.db", "sqlite+aiosqlite"),
        ("sqlite+aiosqlite://", "sqlite+aiosqlite"),
    ],
)
def test_database_url_uses_async_driver(configured, driver):
    assert Settings(DATABASE_URL=configured).async_database_url.drivername == driver


@pytest.mark.unit
def test_missing_database_configuration():
    settings = Settings(**NO_URL, POSTGRES_USER=None, POSTGRES_PASSWORD=None, POSTGRES_DB=None)
    with pytest.raises(ValueError):
        settings.async_database_url


@pytest.mark.unit
def test_json_log_lines_carry_request_context(capsys, restore_root_logger):
    configure_logging("INFO", "json")
    token = correlation_id_var.set("req-1")
    try:
        with scoped("acme"):
            logging.getLogger("marketplace_api.test").info("listing created")
    finally:
        correlation_id_var.reset(token)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "listing created"
    assert record["level"] == "INFO"
    assert record["correlation_id"] == "req-1"
    assert record["tenant_id"] == "acme"


@pytest.mark.unit
def test_text_log_lines_use_placeholders(capsys, restore_root_logger):
    configure_logging(logging.INFO)
    logging.getLogger("marketplace_api.test").warning("no tenant yet")
    line = capsys.readouterr().out.strip().splitlines()[-1]
    assert "cid=- | tenant=- | no tenant yet" in line
    assert "| WARNING |" in line
