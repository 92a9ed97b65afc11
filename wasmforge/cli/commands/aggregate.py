"""``wasmforge aggregate`` — regenerate the global registry."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from wasmforge.cli.commands._common import console, fail, load_pipeline_config
from wasmforge.core.aggregator import RegistryAggregator
from wasmforge.core.errors import WasmForgeError
from wasmforge.monitor.renderer import ReportRenderer


def aggregate_cmd(
    runtimes: Path = typer.Option(
        None, "--runtimes", help="Runtimes directory (default: from settings)."
    ),
    output: Path = typer.Option(
        None, "--output", "-o", help="Registry file (default: from settings)."
    ),
) -> None:
    """Rebuild manifest.json from every runtimes/*/manifest.json."""
    config = load_pipeline_config()
    aggregator = RegistryAggregator(
        runtimes or config.runtimes_root,
        output or config.registry_file,
        config.language_metadata,
        tool_version=config.tool_version,
    )
    try:
        result = aggregator.run()
    except WasmForgeError as exc:
        fail(exc)

    for skipped in result.skipped:
        console.print(f"[yellow]Skipped:[/yellow] {escape(skipped.reason)}")
    console.print(f"[bold green]Global manifest generated:[/bold green] {result.output_path}")
    ReportRenderer(console=console).print_registry(result.registry)
