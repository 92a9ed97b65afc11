"""Shared console, settings and error handling for CLI commands."""

from __future__ import annotations

from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from wasmforge.config import ProdConfig
from wasmforge.core.errors import WasmForgeError
from wasmforge.models.config import PipelineConfig

console = Console()
err_console = Console(stderr=True)


def load_pipeline_config(**overrides: Any) -> PipelineConfig:
    """PipelineConfig from the environment, with CLI overrides applied."""
    return PipelineConfig.from_settings(ProdConfig(), **overrides)


def split_features(features: str) -> list[str]:
    """``"threads, simd"`` -> ``["threads", "simd"]``; empty input -> ``[]``."""
    return [f.strip() for f in features.split(",") if f.strip()]


def fail(exc: WasmForgeError) -> NoReturn:
    """Print a diagnostic naming the failing step and exit 1."""
    err_console.print(f"[bold red]Error:[/bold red] {escape(exc.describe())}")
    raise typer.Exit(code=1)


def parse_versions(pairs: list[str]) -> dict[str, str]:
    """``["go=1.22"]`` -> ``{"go": "1.22"}``; malformed pairs are a usage error."""
    versions: dict[str, str] = {}
    for pair in pairs:
        language, sep, version = pair.partition("=")
        if not sep or not language.strip() or not version.strip():
            raise typer.BadParameter(
                f"expected LANGUAGE=VERSION, got {pair!r}", param_hint="--version"
            )
        versions[language.strip()] = version.strip()
    return versions
