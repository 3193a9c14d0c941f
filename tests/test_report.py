"""
Tests for report assembly

Tests cover:
- Header, probe blocks and summary section
- Reports for snapshots without results
- Degradation of individual probes
- Probe location listings and rate-limit summaries
"""

from gpmeasure.models import (
    LimitsInfo,
    MalformedResult,
    MeasurementResult,
    PingAggregate,
    PingResult,
    PingStats,
    ProbeLocation,
    ProbeResult,
    RateLimit,
    UnfinishedResult,
)
from gpmeasure.report import format_limits, format_probes, format_result

DALLAS = ProbeLocation(country="US", city="Dallas", asn=20473, network="Vultr")


def _make_result(*results, status="finished", target="example.com"):
    return MeasurementResult(
        id="m1",
        type="ping",
        status=status,
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-01T00:00:05.000Z",
        probes_count=len(results),
        results=[ProbeResult(probe=DALLAS, result=r) for r in results],
        target=target,
    )


class TestFormatResult:
    """Tests for format_result"""

    def test_report_layout(self):
        report = format_result(_make_result(
            PingResult(stats=PingStats(min=10, avg=10, max=10, loss=0)),
            PingResult(stats=PingStats(min=20, avg=20, max=20, loss=0)),
        ))
        lines = report.text.splitlines()

        assert lines[0] == "Globalping ping results for example.com (ID: m1)"
        assert lines[1] == "=" * len(lines[0])
        assert lines[3] == "Probe 1 - Location: Dallas, US (Vultr/AS20473)"
        assert "Probe 2 - Location: Dallas, US (Vultr/AS20473)" in lines
        assert "Status: finished" in lines
        assert "Successful: 2/2" in lines
        assert "Created: 2026-01-01T00:00:00.000Z" in lines
        assert lines[-1] == "Average RTT: 15.00 ms, Packet Loss: 0.00%"
        assert report.stats == PingAggregate(avg_rtt=15, min_rtt=10, max_rtt=20, avg_packet_loss=0)

    def test_no_results_yet(self):
        report = format_result(_make_result(status="in-progress", target=None))
        assert report.text.startswith("Globalping ping results for unknown target (ID: m1)")
        assert "No measurement results available yet (status: in-progress)" in report.text
        assert report.stats == PingAggregate()

    def test_bad_probe_does_not_blank_report(self):
        """Malformed and unfinished probes degrade on their own"""
        report = format_result(_make_result(
            MalformedResult(reason="stats.avg must be a number"),
            UnfinishedResult(status="offline"),
            PingResult(stats=PingStats(min=5, avg=7, max=9, loss=0)),
        ))
        assert "unreadable result: stats.avg must be a number" in report.text
        assert "  Status: offline" in report.text
        assert "  Min: 5ms, Max: 9ms, Avg: 7ms" in report.text
        assert "Successful: 1/3" in report.text
        assert report.stats.avg_rtt == 7


# ===== Probe Listing Tests =====

class TestFormatProbes:
    """Tests for format_probes"""

    def test_grouped_by_continent_and_country(self):
        text = format_probes([
            ProbeLocation(continent="EU", country="DE", city="Berlin"),
            ProbeLocation(continent="NA", country="US", city="Dallas"),
            ProbeLocation(continent="EU", country="DE", city="Frankfurt"),
            ProbeLocation(continent="EU", country="DE", city="Berlin"),
            ProbeLocation(continent="EU", country="FR", city="Paris"),
        ])
        lines = text.splitlines()

        assert lines[:6] == [
            "Available Globalping Probe Locations:",
            "",
            "EU:",
            "  DE: Berlin, Frankfurt",
            "  FR: Paris",
            "",
        ]
        assert lines[6:9] == ["NA:", "  US: Dallas", ""]
        assert "Total Probes: 5" in lines
        assert lines[-1].startswith('Note: To specify locations, use the "magic" field syntax')

    def test_missing_fields(self):
        text = format_probes([ProbeLocation()])
        assert "Unknown:\n  Unknown: Unknown" in text
        assert "Total Probes: 1" in text

    def test_no_probes(self):
        assert "Total Probes: 0" in format_probes([])


# ===== Rate Limit Tests =====

class TestFormatLimits:
    """Tests for format_limits"""

    def test_authenticated(self):
        limits = LimitsInfo(
            create=RateLimit(type="user", limit=500, remaining=480, reset=1200),
            credits_remaining=1000,
        )
        text = format_limits(limits, token="abcdefghijklmnop")

        assert "Authentication Status: Authenticated" in text
        assert "Token: abcd...op" in text
        assert "abcdefghijklmnop" not in text
        assert "Type: user" in text
        assert "Limit: 500 measurements" in text
        assert "Remaining: 480 measurements" in text
        assert "Reset: in 1200 seconds" in text
        assert text.endswith("Credits Remaining: 1000")

    def test_anonymous_with_missing_values(self):
        text = format_limits(LimitsInfo(create=RateLimit(type="ip", limit=250)))

        assert "Authentication Status: Unauthenticated" in text
        assert "Token: None" in text
        assert "Remaining: Unknown measurements" in text
        assert "Reset: in Unknown seconds" in text
        assert "Credits Remaining" not in text
