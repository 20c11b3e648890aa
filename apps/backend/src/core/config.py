"""Runtime settings for the Meal Queue API, read from the environment."""

import json
import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENVIRONMENTS = ("development", "production", "test")

# test runs on defaults only
_ENV_FILES = {"development": ".env.dev", "production": ".env.prod", "test": None}


def _split_origins(raw: str) -> list[str]:
    """Parse ``CORS_ORIGINS`` given either as CSV or as a JSON array."""
    raw = raw.strip()
    if not raw.startswith("["):
        return [part.strip() for part in raw.split(",") if part.strip()]
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError("CORS_ORIGINS is neither CSV nor a JSON array") from e
    if not isinstance(parsed, list):
        raise ValueError("CORS_ORIGINS JSON must be an array")
    return [str(origin).strip() for origin in parsed]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    APP_NAME: str = "Meal Queue"
    ENVIRONMENT: str = "development"

    CORS_ORIGINS: list[str] | str = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    ALLOW_CREDENTIALS: bool = True

    # Keep checked / on-hand / demoted-staple marks across a regeneration
    # for buckets that appear in both lists. Off means every rebuild starts clean.
    GROCERY_CARRY_FORWARD_STATE: bool = False

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return _split_origins(v)
        if isinstance(v, list):
            return [str(origin).strip() for origin in v]
        raise ValueError("CORS_ORIGINS must be a string or a list of strings")

    @model_validator(mode="after")
    def _validate_cors_credentials(self) -> "Settings":
        """Browsers refuse credentialed requests to a wildcard origin."""
        if isinstance(self.CORS_ORIGINS, str):
            self.CORS_ORIGINS = _split_origins(self.CORS_ORIGINS)
        if self.ALLOW_CREDENTIALS and "*" in self.CORS_ORIGINS:
            raise ValueError(
                "CORS_ORIGINS may not contain '*' while ALLOW_CREDENTIALS is set; "
                "list the frontend origins explicitly"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Build settings once, layering the per-environment dotenv file."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env not in ENVIRONMENTS:
        raise ValueError(f"ENVIRONMENT must be one of {', '.join(ENVIRONMENTS)}")
    # `_env_file` is accepted at runtime but missing from the typing stubs
    return Settings(_env_file=_ENV_FILES[env])  # type: ignore[call-arg]
