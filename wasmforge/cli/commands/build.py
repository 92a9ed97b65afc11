"""``wasmforge build LANGUAGE SOURCE`` — build one runtime.

Compiles the source with the language toolchain, optionally optimizes it,
publishes it into ``runtimes/<language>/`` and records it in that
language's manifest.
"""

from __future__ import annotations

from pathlib import Path

import typer

from wasmforge.cli.commands._common import (
    console,
    fail,
    load_pipeline_config,
    split_features,
)
from wasmforge.core.builder import ArtifactBuilder
from wasmforge.core.errors import WasmForgeError
from wasmforge.core.metadata import MetadataGenerator
from wasmforge.models.reports import BuildRequest
from wasmforge.monitor.renderer import ReportRenderer


def build_cmd(
    language: str = typer.Argument(..., help="Language to build (go, rust)."),
    source: Path = typer.Argument(
        ..., help="Source file (go) or Cargo project directory (rust)."
    ),
    version: str = typer.Option(
        None, "--version", "-v", help="Version label (default: the language default)."
    ),
    output: str = typer.Option(
        None, "--output", "-o", help="Output filename (default: LANGUAGE-VERSION.wasm)."
    ),
    target: str = typer.Option(
        None, "--target", "-t", help="Toolchain target (default: the language default)."
    ),
    optimize: bool = typer.Option(
        True, "--optimize/--no-optimize", help="Run wasm-opt when available."
    ),
    abi: str = typer.Option(
        None, "--abi", "--wasi", help="ABI tag recorded in the manifest."
    ),
    features: str = typer.Option(
        "", "--features", help="Comma-separated feature tags recorded in the manifest."
    ),
    metadata: bool = typer.Option(
        True, "--metadata/--no-metadata", help="Record the build in the runtime manifest."
    ),
    force: bool = typer.Option(
        False, "--force", help="Replace an already published version with different content."
    ),
) -> None:
    """Build one runtime, publish it and record its metadata."""
    config = load_pipeline_config()
    builder = ArtifactBuilder(config)
    generator = MetadataGenerator(allow_overwrite=force or config.allow_overwrite)
    renderer = ReportRenderer(console=console)

    try:
        spec = builder.spec_for(language)
        result = builder.build(
            BuildRequest(
                language=language,
                source=source,
                version=version,
                target=target,
                output_name=output,
                optimize=optimize,
            ),
            publish=False,
        )
        destination = config.runtime_dir(language) / result.artifact_path.name
        generator.check_publishable(
            language, result.version, destination,
            size=result.size, digest=result.digest,
        )
        result = builder.publish(result)
        renderer.print_build(result)

        if metadata:
            manifest = generator.generate(
                language,
                result.version,
                result.published_path,
                abi=abi or spec.abi,
                features=split_features(features) or spec.features,
                expected_size=result.size,
                expected_digest=result.digest,
            )
            renderer.print_manifest(manifest)
    except WasmForgeError as exc:
        fail(exc)
