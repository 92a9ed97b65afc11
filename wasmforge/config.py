"""Environment-driven settings.

Reads ``WASMFORGE_*`` environment variables and an optional ``.env`` file.
Complex values (``language_metadata``, ``versions``) are parsed as JSON by
pydantic-settings.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wasmforge.models.registry import DEFAULT_LANGUAGE_METADATA, LanguageMetadata


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProdConfig(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export WASMFORGE_LOG_LEVEL=DEBUG
        export WASMFORGE_RUNTIMES_DIR=/srv/wasm/runtimes
        export WASMFORGE_VERSIONS='{"go": "1.22"}'
        export WASMFORGE_LANGUAGE_METADATA='{"zig": {"source": "https://ziglang.org/", "license": "MIT"}}'

    ``language_metadata`` entries are merged over the built-in table, so the
    example above adds ``zig`` and keeps every default language.  Relative
    directories are resolved against ``project_root``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WASMFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: LogLevel = LogLevel.INFO

    # Layout
    project_root: Path = Path(".")
    runtimes_dir: Path = Path("runtimes")
    build_dir: Path = Path("build")
    registry_path: Path = Path("manifest.json")

    # Pipeline behaviour
    optimize: bool = True
    default_abi: str = "wasip1"
    versions: dict[str, str] = {}  # language -> version label for `run`
    smoke_timeout_seconds: float = 5.0
    allow_overwrite: bool = False

    language_metadata: dict[str, LanguageMetadata] = dict(DEFAULT_LANGUAGE_METADATA)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("language_metadata", mode="after")
    @classmethod
    def _extend_defaults(
        cls, value: dict[str, LanguageMetadata]
    ) -> dict[str, LanguageMetadata]:
        return {**DEFAULT_LANGUAGE_METADATA, **value}

    def resolve(self, path: Path) -> Path:
        """Resolve *path* against ``project_root`` unless already absolute."""
        return path if path.is_absolute() else self.project_root / path
