"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from hitlens.models.errors import DiagnosticType


class Settings(BaseSettings):
    """Configuration for the hitlens analysis engine.

    Values are read from environment variables and from a ``.env`` file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Schema sources, output by ``./app --yaml`` and ``./app --json``
    syntax_yaml_path: Path | None = None
    syntax_json_path: Path | None = None

    # Analysis
    tab_spaces: int = 4
    diagnostics: list[DiagnosticType] = list(DiagnosticType)


def configure_logging(settings: Settings) -> None:
    """Set up root logging at the configured level."""
    logging.basicConfig(level=settings.log_level.upper())
