"""Abstract base class and shared helpers for result formatters."""

from __future__ import annotations

import abc
from typing import Any, Optional

from gpmeasure.models import MalformedResult, ProbeLocation, ProbeResult, UnfinishedResult

NOT_AVAILABLE = "N/A"


class ResultFormatter(abc.ABC):
    """Renders the probes of one measurement type as report text."""

    @property
    @abc.abstractmethod
    def type(self) -> str:
        """Measurement type handled (e.g. 'ping')."""

    @property
    def result_types(self) -> tuple[type, ...]:
        """Finished-result classes this formatter understands."""
        return ()

    @abc.abstractmethod
    def format_result(self, result: Any) -> list[str]:
        """Return the indented body lines for one finished probe."""

    def format_probe(self, index: int, probe: ProbeResult) -> list[str]:
        """Render one probe block, starting with its location line.

        Probes that have not finished only show their status and raw
        output; their type-specific fields are never read.
        """
        lines = [f"Probe {index} - Location: {location_line(probe.probe)}"]
        result = probe.result
        if isinstance(result, UnfinishedResult):
            lines.append(f"  Status: {result.status}")
            if result.raw_output:
                lines.append(f"  Raw output: {result.raw_output}")
        elif isinstance(result, MalformedResult):
            lines.append(f"  Status: finished (unreadable result: {result.reason})")
            if result.raw_output:
                lines.append(f"  Raw output: {result.raw_output}")
        elif self.result_types and not isinstance(result, self.result_types):
            lines.append(f"  Unexpected {type(result).__name__} for a {self.type} measurement")
        else:
            lines.extend(self.format_result(result))
        return lines


# ── Value formatting ─────────────────────────────────────────────────


def fmt_num(value: Optional[float], missing: str = NOT_AVAILABLE) -> str:
    """Format a number the way the API reports it: ``15``, ``15.5``, ``0``."""
    if value is None:
        return missing
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fmt_ms(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{fmt_num(value)}ms"


def fmt_ms1(value: Optional[float]) -> str:
    """Format milliseconds with one decimal, for tabular output."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.1f}ms"


def location_line(probe: ProbeLocation) -> str:
    """Return ``city, country (network/ASN)`` for a probe."""
    city = probe.city or "Unknown"
    country = probe.country or "Unknown"
    owner = [p for p in (probe.network, f"AS{probe.asn}" if probe.asn else None) if p]
    return f"{city}, {country} ({'/'.join(owner) or 'Unknown'})"


def asn_lines(hops: list[Any]) -> list[str]:
    """Per-hop ASN annotations for path measurements."""
    return [
        f"  Hop {i} ASN: {', '.join(str(a) for a in hop.asn)}"
        for i, hop in enumerate(hops, 1)
        if hop.asn
    ]
