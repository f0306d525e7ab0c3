"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


DEFAULT_DIST_DIR: Final[str] = "../ui/dist"
DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 8000
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 60.0


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    dist_dir: Path = Path(DEFAULT_DIST_DIR)
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)

    @property
    def resolved_dist_dir(self) -> Path:
        """Return the dist directory, anchoring relative paths at the working directory."""
        if self.dist_dir.is_absolute():
            return self.dist_dir
        return Path.cwd() / self.dist_dir


def _build_settings() -> Settings:
    dist_dir = os.getenv("UI_DIST_DIR") or DEFAULT_DIST_DIR
    host = os.getenv("HOST") or DEFAULT_HOST
    port = os.getenv("PORT")
    request_timeout = os.getenv("REQUEST_TIMEOUT_SECONDS")

    try:
        return Settings(
            dist_dir=dist_dir,
            host=host,
            port=port.strip() if port and port.strip() else DEFAULT_PORT,
            request_timeout_seconds=(
                request_timeout.strip()
                if request_timeout and request_timeout.strip()
                else DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
        )
    except ValidationError as exc:
        fields = ", ".join(str(error["loc"][0]) for error in exc.errors())
        raise SettingsError(f"Invalid application configuration: {fields}.") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return _build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()
