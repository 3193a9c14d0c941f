"""Traceroute result formatter."""

from __future__ import annotations

from gpmeasure.formatters.base import ResultFormatter, asn_lines
from gpmeasure.models import TracerouteResult


class TracerouteFormatter(ResultFormatter):
    """One table row per hop: index, address, hostname and RTT samples."""

    @property
    def type(self) -> str:
        return "traceroute"

    @property
    def result_types(self) -> tuple[type, ...]:
        return (TracerouteResult,)

    def format_result(self, result: TracerouteResult) -> list[str]:
        if result.hops is None:
            return ["  No hop information available"]

        lines = [
            f"  {'Hop':<4} {'IP Address':<20} {'Hostname':<26} RTT Values",
            f"  {'-' * 4} {'-' * 20} {'-' * 26} {'-' * 20}",
        ]
        for i, hop in enumerate(result.hops, 1):
            if hop.rtts:
                rtts = ", ".join("*" if r is None else f"{r:.1f}ms" for r in hop.rtts)
            else:
                rtts = "*"
            lines.append(
                f"  {i:<4} {hop.resolved_address or '*':<20} "
                f"{hop.resolved_hostname or '':<26} {rtts}"
            )
        lines.extend(asn_lines(result.hops))
        return lines
