"""External tool capabilities: compile, optimize, validate, execute.

Defines the ``Compiler``, ``Optimizer``, ``Validator`` and ``Executor``
Protocols the pipeline depends on, plus subprocess-backed implementations:

* ``TinyGoCompiler``   — ``tinygo build`` for single-file Go sources.
* ``CargoCompiler``    — ``cargo build`` for Rust projects (adds the rustup
  target when missing).
* ``WasmOptOptimizer`` — ``wasm-opt -O3`` rewritten in place.
* ``WasmtimeEngine``   — structural validation (``wasmtime compile``) and
  bounded smoke execution (``wasmtime run``).

Tests substitute fakes for any of them.  Tool discovery uses ``PATH``.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import tempfile
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from wasmforge.core.errors import (
    BuildFailureError,
    OptimizeFailureError,
    ToolchainUnavailableError,
)
from wasmforge.models.reports import ExecutionResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Compiler(Protocol):
    """Produces one WebAssembly file at *output* or raises ``BuildFailureError``."""

    name: str

    def is_available(self) -> bool: ...

    def compile(self, source: Path, output: Path, target: str) -> None: ...


@runtime_checkable
class Optimizer(Protocol):
    """Rewrites an artifact in place or raises ``OptimizeFailureError``."""

    def is_available(self) -> bool: ...

    def optimize(self, artifact: Path) -> None: ...


@runtime_checkable
class Validator(Protocol):
    """Parses and validates a module without running it.

    ``exit_code == 0`` on the returned result means the module is well formed.
    """

    def is_available(self) -> bool: ...

    def validate(self, artifact: Path) -> ExecutionResult: ...


@runtime_checkable
class Executor(Protocol):
    """Runs a module with a hard wall-clock timeout."""

    def is_available(self) -> bool: ...

    def execute(
        self, artifact: Path, args: Sequence[str], timeout: float
    ) -> ExecutionResult: ...


# ---------------------------------------------------------------------------
# Subprocess helpers
# ---------------------------------------------------------------------------


def run_tool(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
    step: str = "build",
) -> subprocess.CompletedProcess[str]:
    """Run an external tool, capturing text output.  Never raises on exit code."""
    logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd or ".")
    try:
        return subprocess.run(
            list(argv),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ToolchainUnavailableError(
            f"{argv[0]} not found on PATH", step=step
        ) from exc


def tail(text: str | bytes | None, lines: int = 20) -> str:
    """Last *lines* lines of tool output, for diagnostics."""
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return "\n".join(text.strip().splitlines()[-lines:])


# ---------------------------------------------------------------------------
# Compilers
# ---------------------------------------------------------------------------


class TinyGoCompiler:
    """Compile a single Go source file with TinyGo."""

    name = "tinygo"

    def __init__(self, binary: str = "tinygo") -> None:
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def compile(self, source: Path, output: Path, target: str) -> None:
        proc = run_tool([
            self.binary,
            "build",
            f"-target={target}",
            "-opt=2",
            "-no-debug",
            "-o",
            str(output),
            str(source),
        ])
        if proc.returncode != 0:
            raise BuildFailureError(
                f"tinygo exited {proc.returncode}: {tail(proc.stderr)}"
            )


class CargoCompiler:
    """Build a Cargo project for a wasm target and copy out the module."""

    name = "cargo"

    def __init__(self, binary: str = "cargo", rustup: str = "rustup") -> None:
        self.binary = binary
        self.rustup = rustup

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def compile(self, source: Path, output: Path, target: str) -> None:
        self._ensure_target(target)

        proc = run_tool(
            [self.binary, "build", "--target", target, "--release"], cwd=source
        )
        if proc.returncode != 0:
            raise BuildFailureError(
                f"cargo exited {proc.returncode}: {tail(proc.stderr)}"
            )

        crate = self._crate_name(source)
        built = source / "target" / target / "release" / f"{crate}.wasm"
        if not built.is_file():
            raise BuildFailureError(f"Built module not found at {built}")
        try:
            shutil.copy2(built, output)
        except OSError as exc:
            raise BuildFailureError(f"Cannot copy {built} to {output}: {exc}") from exc

    def _ensure_target(self, target: str) -> None:
        """Install the rustup target if rustup is present and it is missing."""
        if shutil.which(self.rustup) is None:
            logger.debug("rustup not found; assuming target %s is installed", target)
            return
        proc = run_tool([self.rustup, "target", "list", "--installed"])
        if target in proc.stdout.split():
            return
        logger.info("Adding Rust target: %s", target)
        proc = run_tool([self.rustup, "target", "add", target])
        if proc.returncode != 0:
            raise BuildFailureError(
                f"rustup target add {target} failed: {tail(proc.stderr)}"
            )

    def _crate_name(self, source: Path) -> str:
        proc = run_tool(
            [self.binary, "metadata", "--format-version", "1", "--no-deps"],
            cwd=source,
        )
        if proc.returncode != 0:
            raise BuildFailureError(f"cargo metadata failed: {tail(proc.stderr)}")
        try:
            return json.loads(proc.stdout)["packages"][0]["name"]
        except (ValueError, KeyError, IndexError) as exc:
            raise BuildFailureError(
                f"cannot read crate name from cargo metadata: {exc}"
            ) from exc


def default_compilers() -> dict[str, Compiler]:
    """Compiler table keyed by ``LanguageSpec.compiler``."""
    return {"tinygo": TinyGoCompiler(), "cargo": CargoCompiler()}


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------


class WasmOptOptimizer:
    """Binaryen ``wasm-opt`` size pass."""

    def __init__(self, binary: str = "wasm-opt", level: str = "-O3") -> None:
        self.binary = binary
        self.level = level

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def optimize(self, artifact: Path) -> None:
        staged = artifact.with_name(artifact.name + ".opt")
        proc = run_tool(
            [self.binary, self.level, str(artifact), "-o", str(staged)],
            step="optimize",
        )
        if proc.returncode != 0:
            staged.unlink(missing_ok=True)
            raise OptimizeFailureError(
                f"wasm-opt exited {proc.returncode}: {tail(proc.stderr)}"
            )
        try:
            os.replace(staged, artifact)
        except OSError as exc:
            raise OptimizeFailureError(
                f"Cannot replace {artifact} with optimized output: {exc}"
            ) from exc


# ---------------------------------------------------------------------------
# Validation / execution engine
# ---------------------------------------------------------------------------


class WasmtimeEngine:
    """Wasmtime as both the structural validator and the smoke executor."""

    def __init__(self, binary: str = "wasmtime") -> None:
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def validate(self, artifact: Path) -> ExecutionResult:
        # Ahead-of-time compilation parses and validates every function
        # without instantiating the module.
        started = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="wasmforge-") as scratch:
            proc = run_tool(
                [
                    self.binary,
                    "compile",
                    str(artifact),
                    "-o",
                    str(Path(scratch) / "module.cwasm"),
                ],
                step="verify",
            )
        return ExecutionResult(
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration_seconds=time.monotonic() - started,
        )

    def execute(
        self, artifact: Path, args: Sequence[str], timeout: float
    ) -> ExecutionResult:
        started = time.monotonic()
        try:
            proc = run_tool(
                [self.binary, "run", str(artifact), *args],
                timeout=timeout,
                step="verify",
            )
        except subprocess.TimeoutExpired as exc:
            # subprocess.run kills the child before re-raising.
            return ExecutionResult(
                exit_code=None,
                timed_out=True,
                stdout=tail(exc.stdout),
                stderr=tail(exc.stderr),
                duration_seconds=time.monotonic() - started,
            )
        return ExecutionResult(
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration_seconds=time.monotonic() - started,
        )
