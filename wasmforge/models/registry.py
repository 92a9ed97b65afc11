"""Global registry models and the language metadata table."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from wasmforge.models.manifest import format_timestamp, utc_now

UNKNOWN = "unknown"


class LanguageMetadata(BaseModel):
    """Static facts about a language that manifests do not carry."""

    model_config = ConfigDict(frozen=True)

    source: str = UNKNOWN  # homepage URL
    license: str = UNKNOWN  # license identifier


DEFAULT_LANGUAGE_METADATA: dict[str, LanguageMetadata] = {
    "go": LanguageMetadata(source="https://go.dev/", license="BSD-3-Clause"),
    "rust": LanguageMetadata(source="https://www.rust-lang.org/", license="MIT/Apache-2.0"),
    "nodejs": LanguageMetadata(source="https://nodejs.org/", license="MIT"),
    "python": LanguageMetadata(source="https://python.org/", license="PSF-2.0"),
    "ruby": LanguageMetadata(source="https://www.ruby-lang.org/", license="BSD-2-Clause"),
    "php": LanguageMetadata(source="https://www.php.net/", license="PHP-3.01"),
}


class LanguageEntry(BaseModel):
    """One language's row in the global registry."""

    model_config = ConfigDict(frozen=True)

    latest: str
    versions: list[str]
    source: str = UNKNOWN
    license: str = UNKNOWN


class GlobalRegistry(BaseModel):
    """Aggregate view over every runtime manifest. Always recomputed in full."""

    model_config = ConfigDict(frozen=True)

    version: str
    build_date: datetime = Field(default_factory=utc_now)
    languages: dict[str, LanguageEntry] = {}

    @field_serializer("build_date")
    def _serialize_build_date(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str | bytes) -> GlobalRegistry:
        return cls.model_validate_json(text)


class SkippedManifest(BaseModel):
    """A manifest left out of an aggregation pass, and why."""

    model_config = ConfigDict(frozen=True)

    path: Path
    reason: str


class AggregationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    registry: GlobalRegistry
    output_path: Path
    skipped: list[SkippedManifest] = []
