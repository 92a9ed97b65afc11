"""Error taxonomy for the build -> verify -> publish pipeline.

Every error carries a stable ``code`` (the name shown to users) and the
pipeline ``step`` that raised it.  All of them are fatal to a pipeline run
except ``ManifestUnreadable`` while aggregating, where the offending language
is skipped.
"""

from __future__ import annotations


class WasmForgeError(RuntimeError):
    """Base class for all pipeline errors."""

    code: str = "WasmForgeError"
    step: str = "pipeline"

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        if step is not None:
            self.step = step

    def describe(self) -> str:
        """One-line diagnostic: ``[step] Code: message``."""
        return f"[{self.step}] {self.code}: {self}"


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class MissingSourceError(WasmForgeError):
    """Source input is absent or has the wrong shape for the language."""

    code = "MissingSource"
    step = "build"


class ToolchainUnavailableError(WasmForgeError):
    """The compiler for a language is not installed or not on PATH."""

    code = "ToolchainUnavailable"
    step = "build"


class BuildFailureError(WasmForgeError):
    """The toolchain exited nonzero or produced no output."""

    code = "BuildFailure"
    step = "build"


class OptimizeFailureError(WasmForgeError):
    """The optimizer was invoked and failed."""

    code = "OptimizeFailure"
    step = "optimize"


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


class MissingArtifactError(WasmForgeError):
    """The artifact to verify does not exist or cannot be read."""

    code = "MissingArtifact"
    step = "verify"


class InvalidFormatError(WasmForgeError):
    code = "InvalidFormat"
    step = "verify"


class IntegrityMismatchError(WasmForgeError):
    """Computed digest (or size) differs from the expected value."""

    code = "IntegrityMismatch"
    step = "verify"


class StructuralInvalidError(WasmForgeError):
    code = "StructuralInvalid"
    step = "verify"


class ExecutionHangError(WasmForgeError):
    """Smoke execution exceeded its timeout and was killed."""

    code = "ExecutionHang"
    step = "verify"


# ---------------------------------------------------------------------------
# Metadata and registry
# ---------------------------------------------------------------------------


class ManifestUnreadableError(WasmForgeError):
    """A runtime manifest is missing required data or is not valid JSON."""

    code = "ManifestUnreadable"
    step = "metadata"


class VersionConflictError(WasmForgeError):
    """A published version would be rewritten with different content."""

    code = "VersionConflict"
    step = "metadata"


class ManifestWriteFailureError(WasmForgeError):
    """A runtime manifest could not be written."""

    code = "ManifestWriteFailure"
    step = "metadata"


class RuntimesRootUnreadableError(WasmForgeError):
    code = "RuntimesRootUnreadable"
    step = "aggregate"


class RegistryWriteFailureError(WasmForgeError):
    code = "RegistryWriteFailure"
    step = "aggregate"


# Check failure code -> exception class, used by VerificationReport.
ERRORS_BY_CODE: dict[str, type[WasmForgeError]] = {
    cls.code: cls
    for cls in (
        MissingSourceError,
        ToolchainUnavailableError,
        BuildFailureError,
        OptimizeFailureError,
        MissingArtifactError,
        InvalidFormatError,
        IntegrityMismatchError,
        StructuralInvalidError,
        ExecutionHangError,
        ManifestUnreadableError,
        VersionConflictError,
        ManifestWriteFailureError,
        RuntimesRootUnreadableError,
        RegistryWriteFailureError,
    )
}
