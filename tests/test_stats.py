"""
Tests for cross-probe aggregation

Tests cover:
- Per-type aggregates over finished probes only
- Unreadable probes counted as failed in success rates
- None (never zero) for statistics with no eligible probes
- One-line summaries
"""

import pytest

from gpmeasure.models import (
    DnsAggregate,
    DnsResult,
    DnsTraceHop,
    DnsTraceResult,
    HttpAggregate,
    HttpResult,
    HttpTimings,
    MalformedResult,
    MtrHop,
    MtrResult,
    PathAggregate,
    PingAggregate,
    PingResult,
    PingStats,
    ProbeLocation,
    ProbeResult,
    TracerouteHop,
    TracerouteResult,
    UnfinishedResult,
)
from gpmeasure.stats import aggregate, summarize


def _probes(*results):
    return [ProbeResult(probe=ProbeLocation(), result=r) for r in results]


def _ping(avg, loss=0.0):
    return PingResult(stats=PingStats(min=avg, max=avg, avg=avg, loss=loss))


# ===== Ping Tests =====

class TestPingAggregate:
    """Tests for ping aggregation"""

    def test_two_probes(self):
        """Averages 10 and 20 give 15/10/20"""
        stats = aggregate("ping", _probes(_ping(10), _ping(20)))
        assert stats == PingAggregate(avg_rtt=15, min_rtt=10, max_rtt=20, avg_packet_loss=0)

    def test_empty(self):
        assert aggregate("ping", []) == PingAggregate()

    def test_unfinished_probes_are_ignored(self):
        stats = aggregate("ping", _probes(
            _ping(10, loss=0),
            UnfinishedResult(status="failed"),
            MalformedResult(reason="bad"),
        ))
        assert stats.avg_rtt == 10
        assert stats.avg_packet_loss == 0

    def test_probe_without_avg(self):
        """Total loss probes count toward loss but not RTT"""
        lost = PingResult(stats=PingStats(avg=None, loss=100))
        stats = aggregate("ping", _probes(_ping(10, loss=0), lost))
        assert stats.avg_rtt == 10
        assert stats.min_rtt == 10
        assert stats.avg_packet_loss == 50

    def test_only_unfinished(self):
        """No finished probes means no statistics, not zeros"""
        stats = aggregate("ping", _probes(UnfinishedResult(status="offline")))
        assert stats.avg_rtt is None
        assert stats.avg_packet_loss is None


# ===== HTTP Tests =====

class TestHttpAggregate:
    """Tests for http aggregation"""

    def test_distribution_and_success(self):
        stats = aggregate("http", _probes(
            HttpResult(status_code=200, timings=HttpTimings(total=100)),
            HttpResult(status_code=301, timings=HttpTimings(total=50)),
            HttpResult(status_code=200, timings=None),
            HttpResult(status_code=503, timings=HttpTimings(total=30)),
        ))
        assert stats.avg_response_time == 60
        assert stats.status_code_distribution == {200: 2, 301: 1, 503: 1}
        assert list(stats.status_code_distribution) == [200, 301, 503]
        assert stats.success_rate == 0.5

    def test_unreadable_probe_counts_as_failure(self):
        """A finished probe with an unreadable payload lowers the success rate"""
        stats = aggregate("http", _probes(
            HttpResult(status_code=200, timings=HttpTimings(total=40)),
            MalformedResult(reason="statusCode must be an integer"),
            UnfinishedResult(status="offline"),
        ))
        assert stats.success_rate == 0.5
        assert stats.avg_response_time == 40
        assert stats.status_code_distribution == {200: 1}

    def test_only_unreadable(self):
        assert aggregate("http", _probes(MalformedResult(reason="bad"))).success_rate == 0

    def test_empty(self):
        assert aggregate("http", []) == HttpAggregate()


# ===== Path Tests =====

class TestPathAggregate:
    """Tests for traceroute and mtr hop counts"""

    def test_traceroute(self):
        stats = aggregate("traceroute", _probes(
            TracerouteResult(hops=[TracerouteHop()] * 4),
            TracerouteResult(hops=[TracerouteHop()] * 6),
            TracerouteResult(hops=None),
        ))
        assert stats == PathAggregate(avg_hop_count=5, min_hop_count=4, max_hop_count=6)

    def test_mtr(self):
        stats = aggregate("mtr", _probes(MtrResult(hops=[MtrHop(), MtrHop(), MtrHop()])))
        assert stats.avg_hop_count == 3

    def test_empty(self):
        assert aggregate("mtr", []) == PathAggregate()


# ===== DNS Tests =====

class TestDnsAggregate:
    """Tests for dns aggregation"""

    def test_simple_lookups(self):
        stats = aggregate("dns", _probes(
            DnsResult(query_time=10, status_code=0),
            DnsResult(query_time=30, status_code=3),
        ))
        assert stats == DnsAggregate(avg_query_time=20, success_rate=0.5)

    def test_trace_sums_hop_times(self):
        """Traced lookups contribute their total time but no success"""
        stats = aggregate("dns", _probes(
            DnsTraceResult(hops=[DnsTraceHop(query_time=20), DnsTraceHop(query_time=None), DnsTraceHop(query_time=40)]),
        ))
        assert stats.avg_query_time == 60
        assert stats.success_rate == 0

    def test_unreadable_probe_counts_as_failure(self):
        stats = aggregate("dns", _probes(
            DnsResult(query_time=10, status_code=0),
            MalformedResult(reason="answers must be a list"),
        ))
        assert stats == DnsAggregate(avg_query_time=10, success_rate=0.5)

    def test_empty(self):
        assert aggregate("dns", []) == DnsAggregate()


# ===== Summary Tests =====

class TestSummarize:
    """Tests for the summary line"""

    def test_ping(self):
        assert summarize(PingAggregate(avg_rtt=15, avg_packet_loss=0)) == "Average RTT: 15.00 ms, Packet Loss: 0.00%"

    def test_missing_values(self):
        assert summarize(PingAggregate()) == "Average RTT: N/A, Packet Loss: N/A"

    def test_http(self):
        line = summarize(HttpAggregate(avg_response_time=60, success_rate=0.5))
        assert line == "Average Response Time: 60.00 ms, Success Rate: 50%"

    def test_path(self):
        assert summarize(PathAggregate(avg_hop_count=11.5)) == "Average Hop Count: 11.5"

    def test_dns(self):
        assert summarize(DnsAggregate(avg_query_time=None, success_rate=1.0)) == (
            "Average Query Time: N/A, Success Rate: 100%"
        )


def test_unknown_type():
    with pytest.raises(ValueError, match="Unknown measurement type"):
        aggregate("smtp", [])
