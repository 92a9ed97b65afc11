"""``wasmforge generate-metadata`` — record an artifact in its runtime manifest."""

from __future__ import annotations

from pathlib import Path

import typer

from wasmforge.cli.commands._common import console, fail, split_features
from wasmforge.config import ProdConfig
from wasmforge.core.errors import WasmForgeError
from wasmforge.core.metadata import MetadataGenerator
from wasmforge.monitor.renderer import ReportRenderer


def metadata_cmd(
    language: str = typer.Option(..., "--language", "-l", help="Language identifier."),
    version: str = typer.Option(..., "--version", "-v", help="Runtime version label."),
    file: Path = typer.Option(..., "--file", "-f", help="Path to the WASM file."),
    wasi: str = typer.Option(None, "--wasi", help="WASI/ABI tag (default: wasip1)."),
    features: str = typer.Option("", "--features", help="Comma-separated features."),
    force: bool = typer.Option(
        False, "--force", help="Replace an already published version with different content."
    ),
) -> None:
    """Add VERSION to the manifest next to FILE and make it latest."""
    settings = ProdConfig()
    generator = MetadataGenerator(allow_overwrite=force or settings.allow_overwrite)
    try:
        manifest = generator.generate(
            language,
            version,
            file,
            abi=wasi or settings.default_abi,
            features=split_features(features),
        )
    except WasmForgeError as exc:
        fail(exc)

    console.print(f"[bold green]Manifest:[/bold green] {generator.manifest_path(file)}")
    ReportRenderer(console=console).print_manifest(manifest)
