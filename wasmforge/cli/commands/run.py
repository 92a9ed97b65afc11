"""``wasmforge run`` — build every configured language, verify, aggregate.

Languages whose source is absent are skipped.  The first failing step
aborts the run and the registry is left untouched.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from wasmforge.cli.commands._common import (
    console,
    err_console,
    load_pipeline_config,
    parse_versions,
)
from wasmforge.core.orchestrator import Orchestrator
from wasmforge.monitor.renderer import ReportRenderer


def run_cmd(
    verify: bool = typer.Option(
        True, "--verify/--no-verify", help="Verify every built artifact."
    ),
    smoke: bool = typer.Option(
        False, "--smoke", help="Smoke-execute each artifact during verification."
    ),
    timeout: float = typer.Option(
        None, "--timeout", help="Smoke execution timeout in seconds."
    ),
    optimize: bool = typer.Option(
        True, "--optimize/--no-optimize", help="Run wasm-opt when available."
    ),
    skip: list[str] = typer.Option(
        [], "--skip", help="Language to leave out (repeatable)."
    ),
    versions: list[str] = typer.Option(
        [], "--version", "-v", help="Version label as LANGUAGE=VERSION (repeatable)."
    ),
    project_root: Path = typer.Option(
        None, "--project-root", help="Project root (default: from settings)."
    ),
    force: bool = typer.Option(
        False, "--force", help="Replace already published versions with different content."
    ),
) -> None:
    """Run the full build -> verify -> publish pipeline."""
    pinned = parse_versions(versions)
    base = load_pipeline_config()
    overrides: dict = {
        "verify": verify,
        "smoke_test": smoke,
        "optimize": optimize and base.optimize,
        "allow_overwrite": force or base.allow_overwrite,
        "languages": [
            spec.model_copy(
                update={
                    "enabled": spec.enabled and spec.language not in skip,
                    "default_version": pinned.get(spec.language, spec.default_version),
                }
            )
            for spec in base.languages
        ],
    }
    if timeout is not None:
        overrides["smoke_timeout_seconds"] = timeout
    if project_root is not None:
        overrides.update(
            project_root=project_root,
            runtimes_dir=project_root / "runtimes",
            build_dir=project_root / "build",
            registry_path=project_root / "manifest.json",
        )
    known = {spec.language for spec in base.languages}
    for option, names in (("--skip", skip), ("--version", pinned)):
        unknown = sorted(set(names) - known)
        if unknown:
            err_console.print(
                f"[yellow]Unknown language(s) in {option}:[/yellow] {', '.join(unknown)}"
            )

    config = base.model_copy(update=overrides)
    report = Orchestrator(config=config).run()

    console.print()
    ReportRenderer(console=console).print_run(report)
    if report.aggregation is not None:
        ReportRenderer(console=console).print_registry(report.aggregation.registry)

    if not report.succeeded:
        err_console.print(
            f"[bold red]Error:[/bold red] "
            f"{escape(f'[{report.failed_step}] {report.error_code}: {report.error_message}')}"
        )
        raise typer.Exit(code=1)
