"""Explicit step and run results used by the orchestrator.

Components raise taxonomy errors; the orchestrator turns each step into a
``StepResult`` so that a skipped language and a failed one are told apart
by value, not by exception flow.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from wasmforge.core.errors import WasmForgeError
from wasmforge.models.manifest import RuntimeManifest
from wasmforge.models.registry import AggregationResult
from wasmforge.models.reports import BuildResult, VerificationReport
from wasmforge.models.states import LanguageState, LanguageTransition


class StepResult(BaseModel):
    """Outcome of one pipeline step: a value, or the error that stopped it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    step: str
    ok: bool
    value: Any = None
    error: WasmForgeError | None = None

    @classmethod
    def success(cls, step: str, value: Any = None) -> StepResult:
        return cls(step=step, ok=True, value=value)

    @classmethod
    def failure(cls, step: str, error: WasmForgeError) -> StepResult:
        return cls(step=step, ok=False, error=error)


class RunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class LanguageOutcome(BaseModel):
    """Where one language ended up in a run."""

    model_config = ConfigDict(frozen=True)

    language: str
    state: LanguageState
    build: BuildResult | None = None
    manifest: RuntimeManifest | None = None
    reason: str = ""  # skip reason or error diagnostic


class PipelineRunReport(BaseModel):
    """Everything a pipeline run did, for rendering and assertions."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    outcomes: dict[str, LanguageOutcome] = {}
    transitions: list[LanguageTransition] = []
    verification: list[VerificationReport] = []
    aggregation: AggregationResult | None = None
    failed_step: str = ""
    error_code: str = ""
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED

    def languages_in(self, state: LanguageState) -> list[str]:
        return [lang for lang, o in self.outcomes.items() if o.state == state]
