"""Build and verification reports."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from wasmforge.core.errors import ERRORS_BY_CODE, WasmForgeError


class CheckStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    INFO = "info"


class CheckResult(BaseModel):
    """Outcome of one named verifier check."""

    model_config = ConfigDict(frozen=True)

    name: str  # "existence", "magic", "size", "digest", "structural", "execution"
    status: CheckStatus
    detail: str = ""
    error_code: str = ""  # taxonomy code when status is FAILED


class VerificationReport(BaseModel):
    """All checks run against one artifact.

    Every check is always present; a failure never hides later checks.
    """

    model_config = ConfigDict(frozen=True)

    artifact: Path
    checks: list[CheckResult]
    size: int | None = None
    digest: str | None = None
    verified_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.PASSED)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.FAILED)

    @property
    def failures(self) -> list[str]:
        """Named failures, e.g. ``["magic: InvalidFormat"]``."""
        return [
            f"{c.name}: {c.error_code}"
            for c in self.checks
            if c.status == CheckStatus.FAILED
        ]

    @property
    def passed(self) -> bool:
        return self.failed_count == 0

    def check(self, name: str) -> CheckResult | None:
        return next((c for c in self.checks if c.name == name), None)

    def raise_for_failure(self) -> None:
        """Raise the taxonomy error of the first failed check, if any."""
        for c in self.checks:
            if c.status == CheckStatus.FAILED:
                error_cls = ERRORS_BY_CODE.get(c.error_code, WasmForgeError)
                raise error_cls(f"{self.artifact}: {c.name} check failed: {c.detail}")


class ExecutionResult(BaseModel):
    """Result of a bounded smoke execution."""

    model_config = ConfigDict(frozen=True)

    exit_code: int | None = None  # None when killed on timeout
    timed_out: bool = False
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0


class BuildResult(BaseModel):
    """What the builder hands to the verifier and the metadata generator."""

    model_config = ConfigDict(frozen=True)

    language: str
    version: str
    artifact_path: Path  # build/<language>/<name>.wasm
    size: int
    digest: str
    optimized: bool = False
    published_path: Path | None = None  # runtimes/<language>/<name>.wasm


class BuildRequest(BaseModel):
    """Inputs to one builder invocation. ``None`` fields fall back to the LanguageSpec."""

    model_config = ConfigDict(frozen=True)

    language: str
    source: Path
    version: str | None = None
    target: str | None = None
    output_name: str | None = None
    optimize: bool = True
