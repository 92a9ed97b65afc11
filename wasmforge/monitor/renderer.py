"""Rich terminal renderer for pipeline reports.

Color scheme
------------
- green     : passed / RECORDED
- red       : failed / FAILED
- yellow    : in progress states
- dim       : skipped / SKIPPED / PENDING
- cyan      : informational
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from wasmforge.models.manifest import RuntimeManifest
from wasmforge.models.registry import GlobalRegistry
from wasmforge.models.reports import BuildResult, CheckStatus, VerificationReport
from wasmforge.models.results import PipelineRunReport
from wasmforge.models.states import LanguageState

_CHECK_ICONS: dict[CheckStatus, str] = {
    CheckStatus.PASSED: "[green]✓[/green]",
    CheckStatus.FAILED: "[bold red]✗[/bold red]",
    CheckStatus.SKIPPED: "[dim]-[/dim]",
    CheckStatus.INFO: "[cyan]✓[/cyan]",
}

_STATE_LABELS: dict[LanguageState, str] = {
    LanguageState.PENDING: "[dim]PENDING[/dim]",
    LanguageState.BUILDING: "[yellow]BUILDING[/yellow]",
    LanguageState.OPTIMIZING: "[yellow]OPTIMIZING[/yellow]",
    LanguageState.VERIFYING: "[yellow]VERIFYING[/yellow]",
    LanguageState.RECORDED: "[green]RECORDED[/green]",
    LanguageState.SKIPPED: "[dim]SKIPPED[/dim]",
    LanguageState.FAILED: "[bold red]FAILED[/bold red]",
}


class ReportRenderer:
    """Renders pipeline reports as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def render_verification(self, report: VerificationReport) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("", width=2, justify="center")
        table.add_column("Check", style="bold")
        table.add_column("Status")
        table.add_column("Detail", overflow="fold")
        table.add_column("Error", style="red")

        for check in report.checks:
            table.add_row(
                _CHECK_ICONS[check.status],
                check.name,
                check.status.value,
                check.detail,
                check.error_code,
            )

        if report.passed:
            result = "[bold green]Result: PASS[/bold green]"
        else:
            result = f"[bold red]Result: FAIL ({report.failed_count} errors)[/bold red]"
        summary = Text.from_markup(
            f"{result}  |  [bold]passed:[/bold] {report.passed_count}  "
            f"[bold]failed:[/bold] {report.failed_count}"
        )
        return Panel(
            Group(table, Text(""), summary),
            title=f"[bold]Verifying:[/bold] {report.artifact}",
            border_style="green" if report.passed else "red",
            padding=(1, 2),
        )

    def print_verification(self, report: VerificationReport) -> None:
        self.console.print(self.render_verification(report))

    # ------------------------------------------------------------------
    # Build and metadata
    # ------------------------------------------------------------------

    def print_build(self, result: BuildResult) -> None:
        lines = [
            "[bold green]Build complete:[/bold green]",
            "",
            f"[bold]File:[/bold]   {result.published_path or result.artifact_path}",
            f"[bold]Size:[/bold]   {result.size} bytes",
            f"[bold]SHA256:[/bold] {result.digest}",
        ]
        if not result.optimized:
            lines.append("[dim]Not optimized.[/dim]")
        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]{result.language} {result.version}[/bold]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def print_manifest(self, manifest: RuntimeManifest) -> None:
        table = Table(title=f"{manifest.language} runtime manifest")
        table.add_column("Version", style="cyan")
        table.add_column("File")
        table.add_column("Size", justify="right")
        table.add_column("SHA256", overflow="fold")
        table.add_column("Released")
        table.add_column("WASI")
        for version in manifest.sorted_versions():
            record = manifest.versions[version]
            label = f"{version} [green](latest)[/green]" if version == manifest.latest else version
            table.add_row(
                label,
                record.file,
                str(record.size),
                record.digest,
                record.released.strftime("%Y-%m-%dT%H:%M:%SZ"),
                record.abi,
            )
        self.console.print(table)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def print_registry(self, registry: GlobalRegistry) -> None:
        table = Table(title=f"Global registry v{registry.version}")
        table.add_column("Language", style="cyan")
        table.add_column("Latest", style="green")
        table.add_column("Versions")
        table.add_column("Source")
        table.add_column("License")
        for language, entry in registry.languages.items():
            table.add_row(
                language,
                entry.latest,
                ", ".join(entry.versions),
                entry.source,
                entry.license,
            )
        if not registry.languages:
            self.console.print("[dim]No runtime manifests found.[/dim]")
            return
        self.console.print(table)

    # ------------------------------------------------------------------
    # Pipeline run
    # ------------------------------------------------------------------

    def print_run(self, report: PipelineRunReport) -> None:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("Language", style="bold")
        table.add_column("State")
        table.add_column("Version")
        table.add_column("Size", justify="right")
        table.add_column("Detail", overflow="fold")

        for language, outcome in report.outcomes.items():
            build = outcome.build
            table.add_row(
                language,
                _STATE_LABELS[outcome.state],
                build.version if build else "",
                str(build.size) if build else "",
                outcome.reason or (build.digest if build else ""),
            )

        parts = [f"[bold]Run:[/bold] {report.run_id}"]
        parts.append(f"[bold]Verified:[/bold] {len(report.verification)}")
        if report.aggregation is not None:
            parts.append(f"[bold]Registry:[/bold] {report.aggregation.output_path}")
            if report.aggregation.skipped:
                parts.append(
                    f"[yellow][bold]Skipped manifests:[/bold] "
                    f"{len(report.aggregation.skipped)}[/yellow]"
                )
        if report.succeeded:
            parts.append("[bold green]COMPLETED[/bold green]")
        else:
            parts.append(
                f"[bold red]FAILED at {report.failed_step}: {report.error_code}[/bold red]"
            )

        self.console.print(
            Panel(
                Group(table, Text(""), Text.from_markup("  |  ".join(parts))),
                title="[bold]Wasmforge Pipeline[/bold]",
                border_style="green" if report.succeeded else "red",
                padding=(1, 2),
            )
        )
