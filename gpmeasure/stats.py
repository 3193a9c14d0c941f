"""Cross-probe aggregate statistics.

Every statistic computed over an empty set of eligible probes is ``None``.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable, Optional, Sequence

from gpmeasure.models import (
    AggregateStats,
    DnsAggregate,
    DnsResult,
    DnsTraceResult,
    HttpAggregate,
    HttpResult,
    MalformedResult,
    MtrResult,
    PathAggregate,
    PingAggregate,
    PingResult,
    ProbeResult,
    TestResult,
    TracerouteResult,
)


def aggregate(measurement_type: str, probes: Sequence[ProbeResult]) -> AggregateStats:
    """Compute the aggregate statistics for a measurement's probes."""
    aggregator = _AGGREGATORS.get(measurement_type)
    if aggregator is None:
        raise ValueError(f"Unknown measurement type: {measurement_type!r}. Available: {list(_AGGREGATORS)}")
    # Malformed probes count against success rates
    completed = [p.result for p in probes if p.is_completed]
    return aggregator(completed)


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def ping_stats(results: Sequence[TestResult]) -> PingAggregate:
    """RTT over probes reporting an average; loss over all finished probes."""
    pings = [r for r in results if isinstance(r, PingResult) and r.stats is not None]
    avgs = [r.stats.avg for r in pings if r.stats.avg is not None]
    losses = [r.stats.loss for r in pings if r.stats.loss is not None]
    return PingAggregate(
        avg_rtt=mean(avgs),
        min_rtt=min(avgs) if avgs else None,
        max_rtt=max(avgs) if avgs else None,
        avg_packet_loss=mean(losses),
    )


def http_stats(results: Sequence[TestResult]) -> HttpAggregate:
    """Success rate is 2xx over every completed probe, unreadable ones included."""
    responses = [r for r in results if isinstance(r, HttpResult)]
    unreadable = sum(1 for r in results if isinstance(r, MalformedResult))
    totals = [r.timings.total for r in responses if r.timings and r.timings.total is not None]
    codes = Counter(int(r.status_code) for r in responses if r.status_code is not None)
    ok = sum(1 for r in responses if r.status_code is not None and 200 <= r.status_code < 300)
    return HttpAggregate(
        avg_response_time=mean(totals),
        status_code_distribution=dict(sorted(codes.items())),
        success_rate=ok / (len(responses) + unreadable) if responses or unreadable else None,
    )


def path_stats(results: Sequence[TestResult]) -> PathAggregate:
    """Hop-count summary for traceroute and mtr."""
    counts = [
        len(r.hops)
        for r in results
        if isinstance(r, (TracerouteResult, MtrResult)) and r.hops is not None
    ]
    return PathAggregate(
        avg_hop_count=mean(counts),
        min_hop_count=min(counts) if counts else None,
        max_hop_count=max(counts) if counts else None,
    )


def dns_stats(results: Sequence[TestResult]) -> DnsAggregate:
    lookups = [r for r in results if isinstance(r, (DnsResult, DnsTraceResult))]
    unreadable = sum(1 for r in results if isinstance(r, MalformedResult))
    times: list[float] = []
    for r in lookups:
        if isinstance(r, DnsResult):
            if r.query_time is not None:
                times.append(r.query_time)
        else:
            hop_times = [h.query_time for h in r.hops if h.query_time is not None]
            if hop_times:
                times.append(sum(hop_times))
    # Traced lookups carry no status code and never count as successes
    ok = sum(1 for r in lookups if isinstance(r, DnsResult) and r.status_code == 0)
    return DnsAggregate(
        avg_query_time=mean(times),
        success_rate=ok / (len(lookups) + unreadable) if lookups or unreadable else None,
    )


def summarize(stats: AggregateStats) -> str:
    """One-line summary of an aggregate, for report footers."""
    if isinstance(stats, PingAggregate):
        return f"Average RTT: {_fixed(stats.avg_rtt, ' ms')}, Packet Loss: {_fixed(stats.avg_packet_loss, '%')}"
    if isinstance(stats, HttpAggregate):
        return (
            f"Average Response Time: {_fixed(stats.avg_response_time, ' ms')}, "
            f"Success Rate: {_percent(stats.success_rate)}"
        )
    if isinstance(stats, PathAggregate):
        return f"Average Hop Count: {_fixed(stats.avg_hop_count, '', 1)}"
    if isinstance(stats, DnsAggregate):
        return (
            f"Average Query Time: {_fixed(stats.avg_query_time, ' ms')}, "
            f"Success Rate: {_percent(stats.success_rate)}"
        )
    raise TypeError(f"Unsupported stats type: {type(stats).__name__}")


def _fixed(value: Optional[float], suffix: str, digits: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:.{digits}f}{suffix}"


def _percent(rate: Optional[float]) -> str:
    if rate is None:
        return "N/A"
    return f"{rate * 100:.0f}%"


_AGGREGATORS: dict[str, Callable[[Sequence[TestResult]], AggregateStats]] = {
    "ping": ping_stats,
    "traceroute": path_stats,
    "dns": dns_stats,
    "mtr": path_stats,
    "http": http_stats,
}
