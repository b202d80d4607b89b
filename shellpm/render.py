"""
Rendering functions for shellpm output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Dict, Any, Optional

from .domain.operation import BatchReport

console = Console(stderr=False)

STATUS_STYLES = {
    'success': 'green',
    'skipped': 'yellow',
    'failed': 'red',
    'ok': 'green',
    'orphaned': 'yellow',
    'dangling': 'red',
}


def _styled(value: str) -> str:
    style = STATUS_STYLES.get(value)
    return f"[{style}]{value}[/{style}]" if style else value


def _table(title: Optional[str]) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_table(headers: List[str], rows: List[List[Any]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = _table(title)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*["" if val is None else str(val) for val in row])
    console.print(table)


def render_installed_table(records: List[Dict[str, Any]]) -> None:
    """Installed packages with their health status."""
    if not records:
        console.print("[yellow]No packages installed.[/yellow]")
        return

    table = _table("Installed Packages")
    table.add_column("Package", style="cyan")
    table.add_column("Commit", style="dim")
    table.add_column("Enabled")
    table.add_column("Status")
    table.add_column("Installed", style="dim")

    for record in records:
        table.add_row(
            f"{record['repository']}/{record['name']}",
            (record.get('commit') or '')[:12],
            "yes" if record.get('enabled') else "no",
            _styled(record.get('status', '')),
            record.get('installed_at') or '',
        )
    console.print(table)


def render_packages_table(packages: List[Dict[str, Any]], title: str = "Packages") -> None:
    """Available packages (list --available, search)."""
    if not packages:
        console.print("[yellow]No packages found.[/yellow]")
        return

    table = _table(title)
    table.add_column("Package", style="cyan")
    table.add_column("Repository", style="blue")
    table.add_column("Installed")

    for package in packages:
        installed = package.get('installed')
        table.add_row(
            package['name'],
            package['repository'],
            "" if installed is None else ("yes" if installed else "no"),
        )
    console.print(table)


def render_report(report: BatchReport) -> None:
    """Per-target results of a batch command plus a summary line."""
    table = _table(f"shellpm {report.command}")
    table.add_column("Target", style="cyan")
    table.add_column("Status")
    table.add_column("Action")
    table.add_column("Details", style="dim")

    for detail in report.details:
        table.add_row(
            detail.target,
            _styled(detail.status.value),
            detail.action,
            detail.error or detail.message or '',
        )
    if report.details:
        console.print(table)

    summary = (
        f"{report.successful} succeeded, {report.skipped} skipped, {report.failed} failed"
    )
    style = "red" if report.failed else "green"
    console.print(f"[{style}]{summary}[/{style}]")
