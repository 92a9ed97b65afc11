"""``wasmforge verify ARTIFACT`` — verify a WebAssembly binary.

Prints a per-check summary and exits 0 on PASS, 1 on FAIL.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

import typer

from wasmforge.cli.commands._common import console
from wasmforge.core.verifier import DEFAULT_TIMEOUT_SECONDS, BinaryVerifier
from wasmforge.monitor.renderer import ReportRenderer


def verify_cmd(
    artifact: Path = typer.Argument(..., help="Path to the .wasm file."),
    sha256: str = typer.Option(
        None, "--sha256", help="Expected SHA-256 digest (hex, any case)."
    ),
    run: bool = typer.Option(
        False, "--run", help="Smoke-execute the binary with a timeout."
    ),
    args: str = typer.Option(
        "", "--args", help="Arguments passed to the program when running."
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT_SECONDS, "--timeout", help="Smoke execution timeout in seconds."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every check."),
) -> None:
    """Verify magic number, digest, structure and (optionally) execution."""
    if verbose:
        logging.getLogger("wasmforge").setLevel(logging.DEBUG)

    report = BinaryVerifier().verify(
        artifact,
        sha256,
        execute=run,
        run_args=shlex.split(args),
        timeout=timeout,
    )
    ReportRenderer(console=console).print_verification(report)
    if not report.passed:
        raise typer.Exit(code=1)
