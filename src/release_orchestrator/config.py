"""Process settings for release runs.

Settings are loaded from:
- environment variables
- and a local `.env` file (if present)

The release configuration itself (project, hooks, extensions) lives in a JSON
file whose location is configurable here; see `release_orchestrator.model`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ReleaseSettings(BaseSettings):
    """Settings for a release run.

    Environment variables:
    - LOG_LEVEL                 (optional)
    - RELEASE_OUTPUT_DIRECTORY  (optional)
    - RELEASE_DRY_RUN           (optional)
    - RELEASE_CONFIG_FILE       (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ReleaseSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    output_directory: Path = Field(
        default=Path("out/release"),
        validation_alias="RELEASE_OUTPUT_DIRECTORY",
        description="Directory where the session trace log and report are written",
    )

    dry_run: bool = Field(
        default=False,
        validation_alias="RELEASE_DRY_RUN",
        description="Run the workflow without publishing anything remotely",
    )

    config_file: Path = Field(
        default=Path("release.json"),
        validation_alias="RELEASE_CONFIG_FILE",
        description="Path to the JSON release configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @property
    def trace_log_file(self) -> Path:
        """Path of the per-session trace log."""

        return self.output_directory / "trace.log"

    @property
    def report_file(self) -> Path:
        """Path of the JSON report written at the end of each session."""

        return self.output_directory / "release-report.json"
