"""Binary Verifier — structural and integrity checks for one artifact.

Checks run in a fixed order and *all* of them always run::

    existence -> magic -> size -> digest -> structural -> execution

``size`` is informational.  ``structural`` and ``execution`` need an engine
on PATH and are reported as skipped without one.  The report is PASS iff no
check failed.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from wasmforge.core.hasher import digests_match, sha256_file
from wasmforge.core.toolchains import Executor, Validator, WasmtimeEngine, tail
from wasmforge.models.reports import CheckResult, CheckStatus, VerificationReport

logger = logging.getLogger(__name__)

WASM_MAGIC = b"\x00asm"
DEFAULT_TIMEOUT_SECONDS = 5.0


class BinaryVerifier:
    """Verifies WebAssembly artifacts.

    Parameters
    ----------
    validator:
        Structural validation engine.  Defaults to wasmtime.
    executor:
        Smoke execution engine.  Defaults to the same wasmtime engine.
    """

    def __init__(
        self,
        validator: Validator | None = None,
        executor: Executor | None = None,
    ) -> None:
        engine = WasmtimeEngine()
        self._validator = validator if validator is not None else engine
        self._executor = executor if executor is not None else engine

    def verify(
        self,
        artifact: Path,
        expected_digest: str | None = None,
        *,
        structural: bool = True,
        execute: bool = False,
        run_args: Sequence[str] = (),
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> VerificationReport:
        """Run every check against *artifact* and return the report."""
        artifact = Path(artifact)
        logger.info("Verifying %s", artifact)

        checks: list[CheckResult] = []
        readable = artifact.is_file() and os.access(artifact, os.R_OK)
        size: int | None = None
        digest: str | None = None

        # 1. Existence
        if readable:
            checks.append(CheckResult(name="existence", status=CheckStatus.PASSED, detail="file exists"))
        else:
            checks.append(CheckResult(
                name="existence",
                status=CheckStatus.FAILED,
                detail=f"file not found or unreadable: {artifact}",
                error_code="MissingArtifact",
            ))

        # 2. Magic number
        checks.append(self._check_magic(artifact, readable))

        # 3. Size (never a failure)
        if readable:
            size = artifact.stat().st_size
            checks.append(CheckResult(name="size", status=CheckStatus.INFO, detail=f"{size} bytes"))
        else:
            checks.append(CheckResult(name="size", status=CheckStatus.SKIPPED, detail="no file"))

        # 4. Digest
        if readable:
            digest = sha256_file(artifact)
        checks.append(self._check_digest(digest, expected_digest))

        # 5. Structural validation
        checks.append(self._check_structure(artifact, readable, structural))

        # 6. Smoke execution
        checks.append(self._check_execution(artifact, readable, execute, run_args, timeout))

        for check in checks:
            logger.debug("  %-10s %-7s %s", check.name, check.status.value, check.detail)

        report = VerificationReport(artifact=artifact, checks=checks, size=size, digest=digest)
        if report.passed:
            logger.info("Verified %s: PASS", artifact)
        else:
            logger.error("Verified %s: FAIL (%s)", artifact, ", ".join(report.failures))
        return report

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_magic(artifact: Path, readable: bool) -> CheckResult:
        if not readable:
            return CheckResult(
                name="magic",
                status=CheckStatus.FAILED,
                detail="cannot read header",
                error_code="InvalidFormat",
            )
        with artifact.open("rb") as fh:
            header = fh.read(len(WASM_MAGIC))
        if header == WASM_MAGIC:
            return CheckResult(name="magic", status=CheckStatus.PASSED, detail="valid WASM magic number")
        return CheckResult(
            name="magic",
            status=CheckStatus.FAILED,
            detail=f"invalid magic number: {header.hex() or '<empty>'}",
            error_code="InvalidFormat",
        )

    @staticmethod
    def _check_digest(digest: str | None, expected: str | None) -> CheckResult:
        if expected:
            if digest is None:
                return CheckResult(
                    name="digest",
                    status=CheckStatus.FAILED,
                    detail=f"expected {expected.lower()}, no content to hash",
                    error_code="IntegrityMismatch",
                )
            if digests_match(expected, digest):
                return CheckResult(name="digest", status=CheckStatus.PASSED, detail="sha256 matches")
            return CheckResult(
                name="digest",
                status=CheckStatus.FAILED,
                detail=f"expected {expected.strip().lower()}, got {digest}",
                error_code="IntegrityMismatch",
            )
        if digest is None:
            return CheckResult(name="digest", status=CheckStatus.SKIPPED, detail="no file")
        return CheckResult(name="digest", status=CheckStatus.INFO, detail=f"sha256 {digest}")

    def _check_structure(self, artifact: Path, readable: bool, enabled: bool) -> CheckResult:
        if not enabled:
            return CheckResult(name="structural", status=CheckStatus.SKIPPED, detail="disabled")
        if not self._validator.is_available():
            return CheckResult(
                name="structural", status=CheckStatus.SKIPPED, detail="validation engine not found"
            )
        if not readable:
            return CheckResult(name="structural", status=CheckStatus.SKIPPED, detail="no file")
        result = self._validator.validate(artifact)
        if result.exit_code == 0:
            return CheckResult(name="structural", status=CheckStatus.PASSED, detail="module validates")
        return CheckResult(
            name="structural",
            status=CheckStatus.FAILED,
            detail=tail(result.stderr, lines=5) or f"validator exited {result.exit_code}",
            error_code="StructuralInvalid",
        )

    def _check_execution(
        self,
        artifact: Path,
        readable: bool,
        requested: bool,
        run_args: Sequence[str],
        timeout: float,
    ) -> CheckResult:
        if not requested:
            return CheckResult(name="execution", status=CheckStatus.SKIPPED, detail="not requested")
        if not self._executor.is_available():
            return CheckResult(
                name="execution", status=CheckStatus.SKIPPED, detail="execution engine not found"
            )
        if not readable:
            return CheckResult(name="execution", status=CheckStatus.SKIPPED, detail="no file")
        result = self._executor.execute(artifact, list(run_args), timeout)
        if result.timed_out:
            return CheckResult(
                name="execution",
                status=CheckStatus.FAILED,
                detail=f"still running after {timeout:g}s; killed",
                error_code="ExecutionHang",
            )
        # Payload programs may legitimately exit nonzero.
        return CheckResult(
            name="execution",
            status=CheckStatus.PASSED,
            detail=f"exited {result.exit_code} in {result.duration_seconds:.2f}s",
        )
