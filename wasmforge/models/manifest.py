"""Per-language runtime manifest models.

On disk (``runtimes/<language>/manifest.json``)::

    {
      "language": "go",
      "latest": "1.23",
      "versions": {
        "1.23": {"file": "go-1.23.wasm", "size": 1024, "sha256": "...",
                 "released": "2026-01-01T00:00:00Z", "wasi": "wasip1",
                 "features": []}
      }
    }

Field names are fixed for compatibility with downstream readers, hence the
``sha256`` / ``wasi`` aliases.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


class VersionRecord(BaseModel):
    """One published build of one language at one version.

    The version label itself is the key under ``RuntimeManifest.versions``.
    ``file``, ``size`` and ``digest`` are immutable history once written.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file: str
    size: int = Field(ge=0)
    digest: str = Field(alias="sha256")
    released: datetime
    abi: str = Field(default="wasip1", alias="wasi")
    features: list[str] = []

    @field_validator("digest", mode="before")
    @classmethod
    def _normalize_digest(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if not _HEX_DIGEST.match(value):
                raise ValueError("digest must be a 64-character hex SHA-256")
        return value

    @field_validator("file")
    @classmethod
    def _bare_filename(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError(f"file must be a bare filename, got {value!r}")
        return value

    @field_serializer("released")
    def _serialize_released(self, value: datetime) -> str:
        return format_timestamp(value)

    def same_content(self, other: VersionRecord) -> bool:
        """True if both records describe the same artifact bytes."""
        return (self.file, self.size, self.digest) == (other.file, other.size, other.digest)


class RuntimeManifest(BaseModel):
    """Published versions of one language, plus the ``latest`` pointer."""

    model_config = ConfigDict(frozen=True)

    language: str = Field(min_length=1)
    latest: str
    versions: dict[str, VersionRecord]

    @model_validator(mode="after")
    def _latest_is_published(self) -> RuntimeManifest:
        if self.latest not in self.versions:
            raise ValueError(
                f"latest {self.latest!r} is not one of the published versions "
                f"{sorted(self.versions)}"
            )
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, version: str) -> VersionRecord | None:
        return self.versions.get(version)

    @property
    def latest_record(self) -> VersionRecord:
        return self.versions[self.latest]

    def sorted_versions(self) -> list[str]:
        return sorted(self.versions)

    # ------------------------------------------------------------------
    # Updates (return new instances)
    # ------------------------------------------------------------------

    @classmethod
    def initial(cls, language: str, version: str, record: VersionRecord) -> RuntimeManifest:
        return cls(language=language, latest=version, versions={version: record})

    def with_version(self, version: str, record: VersionRecord) -> RuntimeManifest:
        """Return a copy with *record* stored under *version* and ``latest`` moved to it."""
        versions = dict(self.versions)
        versions[version] = record
        return RuntimeManifest(language=self.language, latest=version, versions=versions)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str | bytes) -> RuntimeManifest:
        return cls.model_validate_json(text)
