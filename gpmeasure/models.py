"""Data models for gpmeasure."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from gpmeasure.config import (
    ACCELERATE_REMAINING_FRACTION,
    API_BASE_URL,
    BACKOFF_BASE_MS,
    DEFAULT_LIMIT,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_POLL_TIMEOUT_MS,
    DEFAULT_REQUEST_TIMEOUT,
    MAX_CONSECUTIVE_POLL_ERRORS,
    MAX_POLL_INTERVAL_MS,
    MAX_SUBMIT_ATTEMPTS,
    MIN_POLL_INTERVAL_MS,
    POLL_BACKOFF_FACTOR,
    USER_AGENT,
)

MeasurementType = Literal["ping", "traceroute", "dns", "mtr", "http"]
MeasurementStatus = Literal["in-progress", "finished", "failed"]
ProbeStatus = Literal["in-progress", "finished", "failed", "offline"]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass
class ClientSettings:
    """Connection settings for the measurement API."""

    base_url: str = API_BASE_URL
    user_agent: str = USER_AGENT
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_attempts: int = MAX_SUBMIT_ATTEMPTS
    backoff_base_ms: int = BACKOFF_BASE_MS


@dataclass
class PollSettings:
    """Polling policy for waiting on a measurement."""

    timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS
    interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    max_interval_ms: int = MAX_POLL_INTERVAL_MS
    min_interval_ms: int = MIN_POLL_INTERVAL_MS
    backoff_factor: float = POLL_BACKOFF_FACTOR
    max_consecutive_errors: int = MAX_CONSECUTIVE_POLL_ERRORS
    accelerate_fraction: float = ACCELERATE_REMAINING_FRACTION


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------

@dataclass
class LocationSpec:
    """A probe-selection expression ("Europe", "AS13335", "aws+US", ...)."""

    magic: str
    limit: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"magic": self.magic}
        if self.limit is not None:
            data["limit"] = self.limit
        return data


@dataclass
class MeasurementRequest:
    """A fully defaulted request, ready to submit."""

    type: MeasurementType
    target: str
    locations: Optional[list[LocationSpec]] = None
    limit: int = DEFAULT_LIMIT
    options: dict[str, Any] = field(default_factory=dict)
    reuse_measurement_id: Optional[str] = None  # Run on the probes of a prior measurement

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /v1/measurements``."""
        payload: dict[str, Any] = {"type": self.type, "target": self.target}
        if self.reuse_measurement_id:
            # The API takes the prior id in place of the location list and
            # derives the probe count from it.
            payload["locations"] = self.reuse_measurement_id
        else:
            if self.locations:
                payload["locations"] = [loc.to_dict() for loc in self.locations]
            payload["limit"] = self.limit
        if self.options:
            payload["measurementOptions"] = self.options
        payload["inProgressUpdates"] = False
        return payload


@dataclass
class CreateMeasurementResult:
    id: str
    probes_count: int


# ---------------------------------------------------------------------------
# Probe results
# ---------------------------------------------------------------------------

@dataclass
class ProbeLocation:
    """Where a probe sits."""

    continent: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    asn: Optional[int] = None
    network: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    tags: list[str] = field(default_factory=list)


@dataclass
class UnfinishedResult:
    """A probe that has not (successfully) finished: in-progress, failed or offline."""

    status: str
    raw_output: Optional[str] = None


@dataclass
class MalformedResult:
    """A finished probe whose payload did not match its schema."""

    reason: str
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class PingStats:
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    loss: Optional[float] = None
    total: Optional[int] = None
    rcv: Optional[int] = None
    drop: Optional[int] = None


@dataclass
class PingTiming:
    rtt: Optional[float] = None
    ttl: Optional[int] = None


@dataclass
class PingResult:
    stats: Optional[PingStats] = None
    timings: list[PingTiming] = field(default_factory=list)
    resolved_address: Optional[str] = None
    resolved_hostname: Optional[str] = None
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class TracerouteHop:
    resolved_address: Optional[str] = None
    resolved_hostname: Optional[str] = None
    rtts: list[Optional[float]] = field(default_factory=list)
    asn: list[int] = field(default_factory=list)


@dataclass
class TracerouteResult:
    hops: Optional[list[TracerouteHop]] = None
    resolved_address: Optional[str] = None
    resolved_hostname: Optional[str] = None
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class DnsAnswer:
    type: Optional[str] = None
    ttl: Optional[int] = None
    name: Optional[str] = None
    value: Optional[str] = None
    klass: Optional[str] = None


@dataclass
class DnsResult:
    """A simple (non-trace) DNS lookup."""

    answers: list[DnsAnswer] = field(default_factory=list)
    query_time: Optional[float] = None
    resolver: Optional[str] = None
    status_code: Optional[int] = None
    status_code_name: Optional[str] = None
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class DnsTraceHop:
    resolver: Optional[str] = None
    query_time: Optional[float] = None
    answers: list[DnsAnswer] = field(default_factory=list)


@dataclass
class DnsTraceResult:
    """A DNS lookup traced through each delegation hop."""

    hops: list[DnsTraceHop] = field(default_factory=list)
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class MtrRttStats:
    min: Optional[float] = None
    avg: Optional[float] = None
    max: Optional[float] = None
    stddev: Optional[float] = None


@dataclass
class MtrJitterStats:
    min: Optional[float] = None
    avg: Optional[float] = None
    max: Optional[float] = None


@dataclass
class MtrHop:
    resolved_address: Optional[str] = None
    resolved_hostname: Optional[str] = None
    asn: list[int] = field(default_factory=list)
    loss: Optional[float] = None
    rtt: Optional[MtrRttStats] = None
    jitter: Optional[MtrJitterStats] = None


@dataclass
class MtrResult:
    hops: Optional[list[MtrHop]] = None
    resolved_address: Optional[str] = None
    resolved_hostname: Optional[str] = None
    raw_output: Optional[str] = None
    status: str = "finished"


@dataclass
class HttpTimings:
    total: Optional[float] = None
    dns: Optional[float] = None
    tcp: Optional[float] = None
    tls: Optional[float] = None
    first_byte: Optional[float] = None
    download: Optional[float] = None


@dataclass
class TlsCertificate:
    protocol: Optional[str] = None
    cipher_name: Optional[str] = None
    key_type: Optional[str] = None
    key_bits: Optional[int] = None
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    authorized: bool = False
    error: Optional[str] = None
    subject: dict[str, str] = field(default_factory=dict)  # CN, alt
    issuer: dict[str, str] = field(default_factory=dict)  # O, CN, C


@dataclass
class HttpResult:
    status_code: Optional[int] = None
    status_code_name: Optional[str] = None
    timings: Optional[HttpTimings] = None
    headers: dict[str, str] = field(default_factory=dict)
    tls: Optional[TlsCertificate] = None
    resolved_address: Optional[str] = None
    truncated: bool = False
    raw_output: Optional[str] = None
    status: str = "finished"


TestResult = Union[
    UnfinishedResult,
    MalformedResult,
    PingResult,
    TracerouteResult,
    DnsResult,
    DnsTraceResult,
    MtrResult,
    HttpResult,
]


@dataclass
class ProbeResult:
    probe: ProbeLocation
    result: TestResult

    @property
    def is_finished(self) -> bool:
        """Finished with a readable result."""
        return not isinstance(self.result, (UnfinishedResult, MalformedResult))

    @property
    def is_completed(self) -> bool:
        """Reported ``finished``, whether or not its payload was readable."""
        return not isinstance(self.result, UnfinishedResult)


@dataclass
class MeasurementResult:
    """A snapshot of a measurement as returned by the API."""

    id: str
    type: MeasurementType
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    probes_count: int = 0
    results: list[ProbeResult] = field(default_factory=list)
    target: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.status in ("finished", "failed")

    @property
    def finished_results(self) -> list[TestResult]:
        return [p.result for p in self.results if p.is_finished]


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

@dataclass
class PingAggregate:
    avg_rtt: Optional[float] = None
    min_rtt: Optional[float] = None
    max_rtt: Optional[float] = None
    avg_packet_loss: Optional[float] = None


@dataclass
class HttpAggregate:
    avg_response_time: Optional[float] = None
    status_code_distribution: dict[int, int] = field(default_factory=dict)
    success_rate: Optional[float] = None


@dataclass
class PathAggregate:
    """Hop-count summary for traceroute and mtr."""

    avg_hop_count: Optional[float] = None
    min_hop_count: Optional[int] = None
    max_hop_count: Optional[int] = None


@dataclass
class DnsAggregate:
    avg_query_time: Optional[float] = None
    success_rate: Optional[float] = None


AggregateStats = Union[PingAggregate, HttpAggregate, PathAggregate, DnsAggregate]


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass
class Report:
    text: str
    stats: AggregateStats


@dataclass
class MeasurementOutcome:
    """A completed measurement together with its rendered report."""

    result: MeasurementResult
    report: Report

    @property
    def text(self) -> str:
        return self.report.text

    @property
    def stats(self) -> AggregateStats:
        return self.report.stats

    @property
    def is_error(self) -> bool:
        return self.result.status == "failed"

    def to_response(self) -> dict[str, Any]:
        """Render in the caller-facing tool response shape."""
        from gpmeasure.export import build_export_dict

        return {
            "content": [{"type": "text", "text": self.report.text}],
            "isError": self.is_error,
            "meta": build_export_dict(self),
        }


@dataclass
class RateLimit:
    type: Optional[str] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[int] = None  # Seconds until the window resets


@dataclass
class LimitsInfo:
    """Rate-limit and credit state from ``GET /v1/limits``."""

    create: RateLimit = field(default_factory=RateLimit)
    credits_remaining: Optional[int] = None
