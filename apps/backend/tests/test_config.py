"""Tests for application settings parsing."""

import pytest
from pydantic import ValidationError

from core.config import Settings
from dependencies.db import to_asyncpg_url


def test_defaults_reset_grocery_state():
    settings = Settings(_env_file=None)
    assert settings.GROCERY_CARRY_FORWARD_STATE is False


def test_carry_forward_from_env(monkeypatch):
    monkeypatch.setenv("GROCERY_CARRY_FORWARD_STATE", "true")
    assert Settings(_env_file=None).GROCERY_CARRY_FORWARD_STATE is True


@pytest.mark.parametrize(
    "raw",
    ["http://a.test, http://b.test", '["http://a.test", "http://b.test"]'],
)
def test_cors_origins_csv_or_json(monkeypatch, raw):
    monkeypatch.setenv("CORS_ORIGINS", raw)
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://a.test", "http://b.test"]


def test_wildcard_origin_rejected_with_credentials(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "*")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ALLOW_CREDENTIALS=True)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        (
            "postgresql://u:p@h/db?sslmode=require",
            "postgresql+asyncpg://u:p@h/db?ssl=require",
        ),
        ("postgresql+psycopg2://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
    ],
)
def test_database_url_rewritten_for_asyncpg(raw, expected):
    assert to_asyncpg_url(raw) == expected
