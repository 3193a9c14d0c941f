"""MTR result formatter."""

from __future__ import annotations

from gpmeasure.formatters.base import NOT_AVAILABLE, ResultFormatter, asn_lines, fmt_ms1
from gpmeasure.models import MtrHop, MtrResult


class MtrFormatter(ResultFormatter):
    """Traceroute-style table with per-hop loss, RTT and jitter statistics.

    Missing statistics render as ``N/A``, never as zero.
    """

    @property
    def type(self) -> str:
        return "mtr"

    @property
    def result_types(self) -> tuple[type, ...]:
        return (MtrResult,)

    def format_result(self, result: MtrResult) -> list[str]:
        if result.hops is None:
            return ["  No hop information available"]

        lines = [
            f"  {'Hop':<4} {'IP Address':<20} {'Hostname':<24} {'Loss%':<5} "
            f"{'RTT Min/Avg/Max/StdDev':<25} Jitter Min/Avg/Max",
            f"  {'-' * 4} {'-' * 20} {'-' * 24} {'-' * 5} {'-' * 25} {'-' * 20}",
        ]
        for i, hop in enumerate(result.hops, 1):
            lines.append(
                f"  {i:<4} {hop.resolved_address or '*':<20} {hop.resolved_hostname or '':<24} "
                f"{_loss(hop):<5} {_rtt(hop):<25} {_jitter(hop)}"
            )
        lines.extend(asn_lines(result.hops))
        return lines


def _loss(hop: MtrHop) -> str:
    return NOT_AVAILABLE if hop.loss is None else f"{hop.loss:.1f}%"


def _rtt(hop: MtrHop) -> str:
    if hop.rtt is None:
        return NOT_AVAILABLE
    r = hop.rtt
    return "/".join(fmt_ms1(v) for v in (r.min, r.avg, r.max, r.stddev))


def _jitter(hop: MtrHop) -> str:
    if hop.jitter is None:
        return NOT_AVAILABLE
    j = hop.jitter
    return "/".join(fmt_ms1(v) for v in (j.min, j.avg, j.max))
