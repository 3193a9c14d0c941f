"""Assemble the narrative reports: measurements, probe locations and rate limits."""

from __future__ import annotations

import logging
from typing import Optional

from gpmeasure.errors import mask_token
from gpmeasure.formatters import get_formatter
from gpmeasure.models import LimitsInfo, MeasurementResult, ProbeLocation, Report
from gpmeasure.stats import aggregate, summarize

logger = logging.getLogger(__name__)


def format_result(result: MeasurementResult) -> Report:
    """Render a measurement as report text plus aggregate statistics.

    Each probe is formatted on its own; a probe with missing or unreadable
    fields degrades to placeholders without affecting the others.
    """
    formatter = get_formatter(result.type)
    stats = aggregate(result.type, result.results)

    header = f"Globalping {result.type} results for {result.target or 'unknown target'} (ID: {result.id})"
    lines = [header, "=" * len(header), ""]

    if not result.results:
        lines.append(f"No measurement results available yet (status: {result.status})")
        lines.append("")
    for index, probe in enumerate(result.results, 1):
        lines.extend(formatter.format_probe(index, probe))
        lines.append("")

    finished = sum(1 for p in result.results if p.is_finished)
    lines.extend([
        "Summary",
        "-------",
        f"Status: {result.status}",
        f"Total probes: {result.probes_count}",
        f"Successful: {finished}/{len(result.results)}",
    ])
    if result.created_at:
        lines.append(f"Created: {result.created_at}")
    if result.updated_at:
        lines.append(f"Updated: {result.updated_at}")
    lines.append(summarize(stats))

    logger.debug("Formatted %s measurement %s (%d probes)", result.type, result.id, len(result.results))
    return Report(text="\n".join(lines), stats=stats)


def format_probes(probes: list[ProbeLocation]) -> str:
    """List online probes grouped by continent, then country, then city."""
    grouped: dict[str, dict[str, list[str]]] = {}
    for probe in probes:
        countries = grouped.setdefault(probe.continent or "Unknown", {})
        cities = countries.setdefault(probe.country or "Unknown", [])
        city = probe.city or "Unknown"
        if city not in cities:
            cities.append(city)

    lines = ["Available Globalping Probe Locations:", ""]
    for continent, countries in grouped.items():
        lines.append(f"{continent}:")
        for country, cities in countries.items():
            lines.append(f"  {country}: {', '.join(cities)}")
        lines.append("")
    lines.extend([
        f"Total Probes: {len(probes)}",
        "",
        'Note: To specify locations, use the "magic" field syntax in the locations parameter. '
        'For example: ["US", "Europe", "AS13335", "London+UK"]',
    ])
    return "\n".join(lines)


def format_limits(limits: LimitsInfo, token: Optional[str] = None) -> str:
    create = limits.create
    lines = [
        "Globalping Rate Limits:",
        "",
        f"Authentication Status: {'Authenticated' if token else 'Unauthenticated'}",
        f"Token: {mask_token(token) if token else 'None'}",
        "",
        f"Type: {create.type or 'Unknown'}",
        f"Limit: {_or_unknown(create.limit)} measurements",
        f"Remaining: {_or_unknown(create.remaining)} measurements",
        f"Reset: in {_or_unknown(create.reset)} seconds",
    ]
    if limits.credits_remaining is not None:
        lines.extend(["", f"Credits Remaining: {limits.credits_remaining}"])
    return "\n".join(lines)


def _or_unknown(value: Optional[int]) -> str:
    return "Unknown" if value is None else str(value)
