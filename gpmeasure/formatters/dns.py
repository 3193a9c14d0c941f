"""DNS result formatter (simple lookups and delegation traces)."""

from __future__ import annotations

from typing import Union

from gpmeasure.formatters.base import ResultFormatter, fmt_ms, fmt_num
from gpmeasure.models import DnsResult, DnsTraceResult

_SERVER_WIDTH = 19
_RTT_WIDTH = 8


class DnsFormatter(ResultFormatter):
    """Answer records for simple lookups; a per-hop table for traces."""

    @property
    def type(self) -> str:
        return "dns"

    @property
    def result_types(self) -> tuple[type, ...]:
        return (DnsResult, DnsTraceResult)

    def format_result(self, result: Union[DnsResult, DnsTraceResult]) -> list[str]:
        if isinstance(result, DnsTraceResult):
            return self._format_trace(result)
        return self._format_simple(result)

    def _format_simple(self, result: DnsResult) -> list[str]:
        lines = []
        if result.answers:
            lines.append("  DNS Records:")
            for answer in result.answers:
                lines.append(f"  Type: {answer.type or 'unknown'}, TTL: {fmt_num(answer.ttl)}")
                lines.append(f"  Name: {answer.name or 'unknown'}")
                lines.append(f"  Value: {answer.value or 'unknown'}")
        else:
            lines.append("  No DNS records returned")

        if result.query_time is not None:
            lines.append(f"  Query Time: {fmt_ms(result.query_time)}")
        if result.status_code is not None:
            lines.append(
                f"  Status Code: {fmt_num(result.status_code)} ({result.status_code_name or 'Unknown'})"
            )
        if result.resolver:
            lines.append(f"  Resolver: {result.resolver}")
        return lines

    def _format_trace(self, result: DnsTraceResult) -> list[str]:
        lines = [
            "  DNS Trace (Recursive Query):",
            f"  {'Server':<{_SERVER_WIDTH}} {'RTT':<{_RTT_WIDTH}} Answers",
            f"  {'-' * _SERVER_WIDTH} {'-' * _RTT_WIDTH} {'-' * 15}",
        ]
        for hop in result.hops:
            server = hop.resolver or "*"
            rtt = fmt_ms(hop.query_time) if hop.query_time is not None else "*"
            prefix = f"  {server:<{_SERVER_WIDTH}} {rtt:<{_RTT_WIDTH}} "
            if not hop.answers:
                lines.append(prefix + "No records")
                continue
            first, *rest = hop.answers
            lines.append(prefix + f"{first.type or 'unknown'}: {first.value or 'unknown'}")
            indent = " " * (2 + _SERVER_WIDTH + 1 + _RTT_WIDTH + 1)
            for answer in rest:
                lines.append(indent + f"{answer.type or 'unknown'}: {answer.value or 'unknown'}")
        return lines
