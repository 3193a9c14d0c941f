"""Ping result formatter."""

from __future__ import annotations

from gpmeasure.formatters.base import ResultFormatter, fmt_ms, fmt_num
from gpmeasure.models import PingResult


class PingFormatter(ResultFormatter):
    """Round-trip statistics, packet counts and individual packet timings."""

    @property
    def type(self) -> str:
        return "ping"

    @property
    def result_types(self) -> tuple[type, ...]:
        return (PingResult,)

    def format_result(self, result: PingResult) -> list[str]:
        lines = []
        stats = result.stats
        if stats is None:
            lines.append("  No statistics available")
        else:
            lines.append(f"  Min: {fmt_ms(stats.min)}, Max: {fmt_ms(stats.max)}, Avg: {fmt_ms(stats.avg)}")
            loss = f"{fmt_num(stats.loss)}%" if stats.loss is not None else "N/A"
            lines.append(f"  Packet Loss: {loss}")
            if stats.total is not None:
                lines.append(
                    f"  Packets: {fmt_num(stats.total)} sent, {fmt_num(stats.rcv, '0')} received, "
                    f"{fmt_num(stats.drop, '0')} dropped"
                )

        if result.timings:
            lines.append("  Individual packets:")
            for i, timing in enumerate(result.timings, 1):
                rtt = fmt_ms(timing.rtt) if timing.rtt is not None else "timeout"
                lines.append(f"    #{i}: {rtt} (TTL: {fmt_num(timing.ttl, 'unknown')})")

        if result.resolved_address:
            line = f"  Resolved Address: {result.resolved_address}"
            if result.resolved_hostname:
                line += f" ({result.resolved_hostname})"
            lines.append(line)
        return lines
