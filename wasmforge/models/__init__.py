"""Wasmforge data models — all Pydantic v2, all frozen (immutable)."""

from wasmforge.models.config import DEFAULT_LANGUAGES, LanguageSpec, PipelineConfig, SourceKind
from wasmforge.models.manifest import RuntimeManifest, VersionRecord
from wasmforge.models.registry import (
    DEFAULT_LANGUAGE_METADATA,
    AggregationResult,
    GlobalRegistry,
    LanguageEntry,
    LanguageMetadata,
    SkippedManifest,
)
from wasmforge.models.reports import (
    BuildRequest,
    BuildResult,
    CheckResult,
    CheckStatus,
    ExecutionResult,
    VerificationReport,
)
from wasmforge.models.results import (
    LanguageOutcome,
    PipelineRunReport,
    RunStatus,
    StepResult,
)
from wasmforge.models.states import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    LanguageState,
    LanguageTransition,
)

__all__ = [
    # config
    "SourceKind",
    "LanguageSpec",
    "DEFAULT_LANGUAGES",
    "PipelineConfig",
    # manifest
    "VersionRecord",
    "RuntimeManifest",
    # registry
    "LanguageMetadata",
    "DEFAULT_LANGUAGE_METADATA",
    "LanguageEntry",
    "GlobalRegistry",
    "SkippedManifest",
    "AggregationResult",
    # reports
    "CheckStatus",
    "CheckResult",
    "VerificationReport",
    "ExecutionResult",
    "BuildRequest",
    "BuildResult",
    # states
    "LanguageState",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "LanguageTransition",
    # results
    "StepResult",
    "RunStatus",
    "LanguageOutcome",
    "PipelineRunReport",
]
