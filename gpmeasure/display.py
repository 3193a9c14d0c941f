"""Rich terminal output for gpmeasure."""

from __future__ import annotations

from dataclasses import fields
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from gpmeasure.config import TYPE_LABELS
from gpmeasure.errors import MeasurementError
from gpmeasure.models import AggregateStats, HttpAggregate, MeasurementOutcome

console = Console()

_STAT_LABELS = {
    "avg_rtt": ("Avg RTT", "ms"),
    "min_rtt": ("Min RTT", "ms"),
    "max_rtt": ("Max RTT", "ms"),
    "avg_packet_loss": ("Avg Packet Loss", "%"),
    "avg_response_time": ("Avg Response Time", "ms"),
    "success_rate": ("Success Rate", "rate"),
    "avg_hop_count": ("Avg Hops", ""),
    "min_hop_count": ("Min Hops", ""),
    "max_hop_count": ("Max Hops", ""),
    "avg_query_time": ("Avg Query Time", "ms"),
}

_STATUS_STYLES = {
    "finished": "green",
    "failed": "red",
    "in-progress": "yellow",
}


def _fmt_stat(value: object, unit: str) -> Text:
    if value is None:
        return Text("\u2014", style="dim")
    if unit == "rate":
        return Text(f"{float(value) * 100:.0f}%")
    if isinstance(value, float):
        return Text(f"{value:.2f}{unit}")
    return Text(f"{value}{unit}")


# ── Aggregate statistics ──────────────────────────────────────────────


def build_stats_table(stats: AggregateStats, measurement_type: str) -> Table:
    """Build the aggregate statistics table for an outcome."""
    label = TYPE_LABELS.get(measurement_type, measurement_type.upper())
    table = Table(
        show_header=True,
        border_style="bright_black",
        expand=False,
        pad_edge=True,
        header_style="bold",
        title=f"[bold]{label} summary[/bold]",
        title_style="",
    )
    table.add_column("Statistic", style="bold", min_width=12)
    table.add_column("Value", justify="right", min_width=8)

    for f in fields(stats):
        if f.name == "status_code_distribution":
            continue
        name, unit = _STAT_LABELS.get(f.name, (f.name, ""))
        table.add_row(name, _fmt_stat(getattr(stats, f.name), unit))

    if isinstance(stats, HttpAggregate) and stats.status_code_distribution:
        dist = ", ".join(f"{code}: {count}" for code, count in stats.status_code_distribution.items())
        table.add_row("Status Codes", dist)

    return table


# ── Full outcome rendering ────────────────────────────────────────────


def render_outcome(outcome: MeasurementOutcome, out: Optional[Console] = None) -> None:
    """Render the report text followed by the aggregate statistics table."""
    out = out or console
    result = outcome.result
    style = _STATUS_STYLES.get(result.status, "yellow")
    out.print(
        f"[bold]{TYPE_LABELS.get(result.type, result.type)}[/bold] \u2014 "
        f"{result.target or 'unknown target'} [{style}]{result.status}[/{style}]"
    )
    out.print(Text(outcome.report.text))
    out.print()
    out.print(build_stats_table(outcome.report.stats, result.type))
    if outcome.is_error:
        render_warning("The measurement finished with status 'failed'.", out)


def render_error(error: MeasurementError | str, out: Optional[Console] = None) -> None:
    """Display an error message."""
    out = out or console
    message = error.user_message() if isinstance(error, MeasurementError) else error
    out.print(f"[bold red]Error:[/bold red] {message}")


def render_warning(message: str, out: Optional[Console] = None) -> None:
    """Display a warning message."""
    out = out or console
    out.print(f"[yellow]Warning:[/yellow] {message}")

