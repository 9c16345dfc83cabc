#!/usr/bin/env python3
"""
RugSentry CLI Interface
Command-line interface for the RugSentry token risk scanner
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rugsentry.core.config import ScannerConfig, load_config
from rugsentry.core.data_provider import DataProvider, HTTPDataProvider, StaticDataProvider
from rugsentry.core.engine import ScanOrchestrator
from rugsentry.core.errors import ConfigurationError, InvalidTargetError
from rugsentry.core.model import AddressType, RiskLevel, SecurityReport, Target
from rugsentry.core.networks import list_networks
from rugsentry.core.registry import AnalyzerRegistry
from rugsentry.core.result_manager import ResultManager, severity_label
from rugsentry.utils.logger import ScanAuditLogger, cleanup_old_logs, get_log_files, setup_logger
from rugsentry.utils.report import ReportGenerator

app = typer.Typer(
    name="rugsentry",
    help="RugSentry: composite scam-risk scanner for token and contract addresses",
    no_args_is_help=True
)

console = Console()

DEMO_DATA_PATH = Path(__file__).resolve().parent / "data" / "demo_targets.yaml"
REPORT_FORMATS = ("json", "html", "csv", "txt")

RISK_STYLES = {
    RiskLevel.CRITICAL: "bold white on red",
    RiskLevel.HIGH: "bold red",
    RiskLevel.MEDIUM: "bold yellow",
    RiskLevel.LOW: "green",
    RiskLevel.MINIMAL: "bold green",
    RiskLevel.UNKNOWN: "bold magenta",
}

SEVERITY_STYLES = {
    "critical": "red",
    "high": "dark_orange",
    "medium": "yellow",
    "low": "green",
    "info": "blue",
}


def build_provider(config: ScannerConfig, data_file: Optional[str]) -> DataProvider:
    """Fixture file if given, the HTTP API if configured, else bundled demo data."""
    if data_file:
        return StaticDataProvider.from_file(data_file)
    if config.http.base_url:
        return HTTPDataProvider(config.http)
    console.print("[yellow]No --data file or RUGSENTRY_API_URL set; using bundled demo data[/yellow]")
    return StaticDataProvider.from_file(DEMO_DATA_PATH)


def parse_formats(formats: str) -> List[str]:
    selected = [f.strip().lower() for f in formats.split(",") if f.strip()]
    unknown = [f for f in selected if f not in REPORT_FORMATS]
    if unknown:
        raise typer.BadParameter(f"Unknown format(s): {', '.join(unknown)}; choose from {', '.join(REPORT_FORMATS)}")
    return selected


def exceeds_gate(level: RiskLevel, gate: RiskLevel) -> bool:
    # An unassessed address never passes a gate
    return level is RiskLevel.UNKNOWN or level.order >= gate.order


def render_report(report: SecurityReport) -> None:
    style = RISK_STYLES.get(report.risk_level, "bold")
    header = (
        f"[{style}] {report.risk_level.value.upper()} [/{style}]  "
        f"score {report.composite_score:.1f}/100  |  confidence {report.confidence:.0f}%  |  "
        f"coverage {report.analyzer_coverage:.0%}\n\n{report.summary}"
    )
    console.print(Panel(
        header,
        title=f"{report.target.network}:{report.target.address}",
        subtitle=f"scan {report.scan_id}",
        border_style="cyan",
    ))

    if report.findings:
        table = Table(title="Findings", show_lines=False)
        table.add_column("Severity", justify="right")
        table.add_column("Category")
        table.add_column("Description")
        table.add_column("Conf.", justify="right")
        table.add_column("Analyzer")
        for finding in report.findings:
            label = severity_label(finding.severity)
            table.add_row(
                f"[{SEVERITY_STYLES[label]}]{finding.severity:.0f}[/]",
                finding.category.value,
                finding.description,
                f"{finding.confidence:.0f}%",
                finding.adapter_id,
            )
        console.print(table)

    if report.recommendations:
        console.print("\n[bold cyan]Recommendations:[/bold cyan]")
        for i, rec in enumerate(report.recommendations, 1):
            console.print(f"  {i}. {rec}")


async def _scan_and_close(orchestrator: ScanOrchestrator, target: Target, profile: str) -> SecurityReport:
    try:
        return await orchestrator.scan(target, profile)
    finally:
        await orchestrator.close()


@app.command()
def scan(
    address: str = typer.Argument(..., help="Token, contract or wallet address to assess"),
    network: str = typer.Option(
        "ethereum", "--network", "-n",
        help="Network id or alias (see `rugsentry networks`)"
    ),
    address_type: Optional[AddressType] = typer.Option(
        None, "--type", "-t",
        help="Address type; inferred when omitted"
    ),
    profile: str = typer.Option(
        "standard", "--profile", "-p",
        help="Scan profile: quick, standard or deep"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c",
        help="YAML file overriding the default configuration"
    ),
    data_file: Optional[str] = typer.Option(
        None, "--data", "-d",
        help="YAML/JSON fixture to read analyzer data from"
    ),
    output_dir: str = typer.Option(
        "./reports", "--output-dir", "-o",
        help="Output directory for reports"
    ),
    formats: str = typer.Option(
        "json", "--format", "-f",
        help="Comma-separated report formats: json, html, csv, txt"
    ),
    no_save: bool = typer.Option(
        False, "--no-save",
        help="Print the verdict without writing report files"
    ),
    as_json: bool = typer.Option(
        False, "--json",
        help="Print the full report as JSON instead of tables"
    ),
    fail_on: Optional[RiskLevel] = typer.Option(
        None, "--fail-on",
        help="Exit with code 2 when the risk level is at or above this level, or could not be assessed"
    ),
    log_file: Optional[str] = typer.Option(
        None, "--log-file",
        help="Detailed log file (default: logs/rugsentry_<timestamp>.log)"
    ),
    audit_log: str = typer.Option(
        "logs/scan_audit.log", "--audit-log",
        help="Scan audit trail file"
    ),
    verbose: int = typer.Option(
        1, "--verbose", "-v",
        help="Verbosity level: 0=minimal, 1=standard, 2=debug"
    )
):
    """Assess one address and print its composite risk verdict."""
    selected_formats = [] if no_save else parse_formats(formats)
    setup_logger(0 if as_json else verbose, log_file)

    audit_logger = None
    try:
        config = load_config(config_file)
        registry = AnalyzerRegistry.from_config(config)
        provider = build_provider(config, data_file)
        audit_logger = ScanAuditLogger(audit_log)
        orchestrator = ScanOrchestrator(registry, provider, config=config, audit_logger=audit_logger)

        target = Target.create(network, address, address_type)
        report = asyncio.run(_scan_and_close(orchestrator, target, profile))

    except InvalidTargetError as e:
        console.print(f"[red]Invalid target: {e}[/red]")
        raise typer.Exit(1)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Scan interrupted by user[/yellow]")
        raise typer.Exit(1)
    finally:
        if audit_logger:
            audit_logger.close()

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)

    if selected_formats:
        written = {}
        core_formats = [f for f in selected_formats if f in ("json", "html")]
        if core_formats:
            written.update(ResultManager(output_dir).generate_reports(report, core_formats))
        generator = ReportGenerator(output_dir)
        if "csv" in selected_formats:
            written["csv"] = generator.generate_csv_report(report)
        if "txt" in selected_formats:
            written["txt"] = generator.generate_summary_report(report)
        if not as_json:
            for fmt, path in written.items():
                console.print(f"[green]{fmt.upper()} report saved to: {path}[/green]")

    if fail_on is not None and exceeds_gate(report.risk_level, fail_on):
        raise typer.Exit(2)


@app.command()
def networks():
    """List supported networks and their address formats."""
    table = Table(title="Supported Networks")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Chain ID", justify="right")
    table.add_column("Currency")
    table.add_column("EVM")
    table.add_column("Explorer")
    for network in list_networks():
        table.add_row(
            network.id,
            network.display_name,
            str(network.chain_id),
            network.currency,
            "yes" if network.is_evm else "no",
            network.explorer_url,
        )
    console.print(table)


@app.command()
def adapters(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c",
        help="YAML file overriding the default configuration"
    )
):
    """List the analyzer adapters and their category weights."""
    try:
        config = load_config(config_file)
        registry = AnalyzerRegistry.from_config(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Analyzer Adapters")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Weight", justify="right")
    table.add_column("Timeout", justify="right")
    table.add_column("Networks")
    table.add_column("Address types")
    for adapter in registry.adapters:
        info = adapter.describe()
        table.add_row(
            info["id"],
            info["category"],
            f"{registry.weight_of(adapter.category):.2f}",
            f"{registry.timeout_for(adapter):.0f}s",
            ", ".join(info["networks"]),
            ", ".join(info["address_types"]),
        )
    console.print(table)

    stats = registry.get_adapter_stats()
    console.print(f"\n{stats['total_adapters']} adapters; profiles: {', '.join(sorted(config.profiles))}")


@app.command()
def history(
    output_dir: str = typer.Option(
        "./reports", "--output-dir", "-o",
        help="Directory reports were saved to"
    ),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum entries to show"),
    network: Optional[str] = typer.Option(None, "--network", "-n", help="Only this network"),
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Only this address"),
):
    """Show previously saved scans, newest first."""
    entries = ResultManager(output_dir).list_history(limit=limit, network=network, address=address)
    if not entries:
        console.print("[yellow]No saved reports found[/yellow]")
        return

    table = Table(title=f"Scan History ({output_dir})")
    table.add_column("Analyzed at")
    table.add_column("Scan ID", style="cyan")
    table.add_column("Network")
    table.add_column("Address")
    table.add_column("Risk")
    table.add_column("Score", justify="right")
    for entry in entries:
        level = RiskLevel(entry["risk_level"])
        style = RISK_STYLES.get(level, "bold")
        table.add_row(
            entry["analyzed_at"],
            entry["scan_id"],
            entry["network"],
            entry["address"],
            f"[{style}]{level.value}[/]",
            f"{entry['composite_score']:.1f}",
        )
    console.print(table)


@app.command()
def show(
    scan_id: str = typer.Argument(..., help="Scan id or path of a saved JSON report"),
    output_dir: str = typer.Option(
        "./reports", "--output-dir", "-o",
        help="Directory reports were saved to"
    ),
):
    """Re-display a saved report."""
    try:
        report = ResultManager(output_dir).load_report(scan_id)
    except FileNotFoundError:
        console.print(f"[red]No saved report for {scan_id}[/red]")
        raise typer.Exit(1)
    render_report(report)
    console.print()
    console.print(ReportGenerator(output_dir).format_adapter_table(report))


@app.command()
def logs(
    logs_dir: str = typer.Option("logs", "--logs-dir", help="Directory log files are written to"),
    cleanup: Optional[int] = typer.Option(
        None, "--cleanup",
        help="Delete log files older than this many days"
    ),
):
    """List log files, optionally pruning old ones first."""
    if cleanup is not None:
        removed = cleanup_old_logs(days=cleanup, logs_dir=logs_dir)
        console.print(f"[green]Removed {removed} log files older than {cleanup} days[/green]")

    files = get_log_files(logs_dir)
    if not files:
        console.print(f"[yellow]No log files in {logs_dir}[/yellow]")
        return

    table = Table(title=f"Log Files ({logs_dir})")
    table.add_column("Kind")
    table.add_column("Path", style="cyan")
    table.add_column("Size", justify="right")
    for path in files.get("main_logs", []):
        table.add_row("scan log", str(path), f"{path.stat().st_size} B")
    if "scan_audit" in files:
        table.add_row("audit", str(files["scan_audit"]), f"{files['scan_audit'].stat().st_size} B")
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from rugsentry import __version__, __author__
    console.print(f"RugSentry v{__version__}")
    console.print(f"By {__author__}")


if __name__ == "__main__":
    app()
