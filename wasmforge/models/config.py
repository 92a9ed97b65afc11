"""Pipeline and language configuration models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wasmforge.models.registry import DEFAULT_LANGUAGE_METADATA, LanguageMetadata


class SourceKind(str, Enum):
    """Expected shape of a language's source input."""

    FILE = "file"  # a single source file
    PROJECT = "project"  # a directory holding a project descriptor


class LanguageSpec(BaseModel):
    """How to build one language.

    ``target`` is the toolchain's own target name; ``abi`` is the tag recorded
    in the manifest.  They differ for Cargo (``wasm32-wasip1`` vs ``wasip1``).
    """

    model_config = ConfigDict(frozen=True)

    language: str
    source: Path  # relative to the project root
    source_kind: SourceKind = SourceKind.FILE
    descriptor: str = ""  # required file inside a PROJECT source
    default_version: str
    default_target: str
    abi: str = "wasip1"
    compiler: str  # key into the compiler table
    features: list[str] = []
    enabled: bool = True

    def output_name(self, version: str) -> str:
        return f"{self.language}-{version}.wasm"


DEFAULT_LANGUAGES: list[LanguageSpec] = [
    LanguageSpec(
        language="go",
        source=Path("runtimes/go/main.go"),
        source_kind=SourceKind.FILE,
        default_version="1.23",
        default_target="wasip1",
        compiler="tinygo",
    ),
    LanguageSpec(
        language="rust",
        source=Path("runtimes/rust"),
        source_kind=SourceKind.PROJECT,
        descriptor="Cargo.toml",
        default_version="1.84",
        default_target="wasm32-wasip1",
        compiler="cargo",
    ),
]


class PipelineConfig(BaseModel):
    """Resolved configuration for one pipeline run.

    Built from ``ProdConfig`` via ``from_settings`` or directly in tests.
    """

    model_config = ConfigDict(frozen=True)

    project_root: Path = Path(".")
    runtimes_dir: Path = Path("runtimes")
    build_dir: Path = Path("build")
    registry_path: Path = Path("manifest.json")
    languages: list[LanguageSpec] = Field(
        default_factory=lambda: list(DEFAULT_LANGUAGES)
    )
    language_metadata: dict[str, LanguageMetadata] = Field(
        default_factory=lambda: dict(DEFAULT_LANGUAGE_METADATA)
    )
    optimize: bool = True
    verify: bool = True
    smoke_test: bool = False
    smoke_timeout_seconds: float = 5.0
    allow_overwrite: bool = False
    tool_version: str = "0.0.0"

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> PipelineConfig:
        """Build a PipelineConfig from a ``ProdConfig``; *overrides* win."""
        from wasmforge import __version__

        values: dict[str, Any] = {
            "project_root": settings.project_root,
            "runtimes_dir": settings.resolve(settings.runtimes_dir),
            "build_dir": settings.resolve(settings.build_dir),
            "registry_path": settings.resolve(settings.registry_path),
            "language_metadata": settings.language_metadata,
            "optimize": settings.optimize,
            "smoke_timeout_seconds": settings.smoke_timeout_seconds,
            "allow_overwrite": settings.allow_overwrite,
            "tool_version": __version__,
            "languages": [
                spec.model_copy(
                    update={
                        "abi": settings.default_abi,
                        "default_version": settings.versions.get(
                            spec.language, spec.default_version
                        ),
                    }
                )
                for spec in DEFAULT_LANGUAGES
            ],
        }
        values.update(overrides)
        return cls(**values)

    def language_spec(self, language: str) -> LanguageSpec | None:
        return next((s for s in self.languages if s.language == language), None)

    def resolve(self, path: Path) -> Path:
        """Resolve *path* against ``project_root`` unless already absolute."""
        return path if path.is_absolute() else self.project_root / path

    @property
    def runtimes_root(self) -> Path:
        return self.resolve(self.runtimes_dir)

    @property
    def build_root(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def registry_file(self) -> Path:
        return self.resolve(self.registry_path)

    def source_path(self, spec: LanguageSpec) -> Path:
        return self.resolve(spec.source)

    def runtime_dir(self, language: str) -> Path:
        return self.runtimes_root / language

    def language_build_dir(self, language: str) -> Path:
        return self.build_root / language
