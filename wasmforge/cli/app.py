"""Main Typer application — imports and registers all CLI commands.

Entry point: ``wasmforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from wasmforge.cli.commands.aggregate import aggregate_cmd
from wasmforge.cli.commands.build import build_cmd
from wasmforge.cli.commands.metadata import metadata_cmd
from wasmforge.cli.commands.run import run_cmd
from wasmforge.cli.commands.verify import verify_cmd
from wasmforge.config import LogLevel, ProdConfig

app = typer.Typer(
    name="wasmforge",
    help="Wasmforge: build, verify and publish WebAssembly runtimes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: LogLevel = typer.Option(
        None,
        "--log-level",
        case_sensitive=False,
        help="Logging level (default: WASMFORGE_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Configure logging once for every subcommand."""
    level = (log_level or ProdConfig().log_level).value
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    logging.getLogger("wasmforge").setLevel(level)


# Register subcommands
app.command(name="build", help="Build one runtime from source.")(build_cmd)
app.command(name="verify", help="Verify a WebAssembly binary.")(verify_cmd)
app.command(name="generate-metadata", help="Record an artifact in its runtime manifest.")(metadata_cmd)
app.command(name="aggregate", help="Regenerate the global manifest.json.")(aggregate_cmd)
app.command(name="run", help="Build, verify and publish every configured runtime.")(run_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
