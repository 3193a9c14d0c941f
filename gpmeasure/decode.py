"""Decode measurement API payloads into typed models.

Envelope problems (not an object, missing id, unknown type) raise
:class:`~gpmeasure.errors.ValidationError`.  Problems inside a single probe's
payload only demote that probe to :class:`MalformedResult`, so one bad probe
cannot blank a whole report.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

from gpmeasure.config import MEASUREMENT_TYPES
from gpmeasure.errors import ValidationError
from gpmeasure.models import (
    CreateMeasurementResult,
    DnsAnswer,
    DnsResult,
    DnsTraceHop,
    DnsTraceResult,
    HttpResult,
    HttpTimings,
    LimitsInfo,
    MalformedResult,
    MeasurementResult,
    MtrHop,
    MtrJitterStats,
    MtrResult,
    MtrRttStats,
    PingResult,
    PingStats,
    PingTiming,
    ProbeLocation,
    ProbeResult,
    RateLimit,
    TestResult,
    TlsCertificate,
    TracerouteHop,
    TracerouteResult,
    UnfinishedResult,
)

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """A probe payload field has the wrong shape."""


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def decode_create(data: Any, endpoint: str = "/v1/measurements") -> CreateMeasurementResult:
    body = _envelope(data, endpoint)
    mid = body.get("id")
    if not isinstance(mid, str) or not mid:
        raise ValidationError("Create response has no measurement id", endpoint=endpoint)
    count = body.get("probesCount", 0)
    if not isinstance(count, int) or isinstance(count, bool):
        raise ValidationError("Create response has a non-integer probesCount", endpoint=endpoint)
    return CreateMeasurementResult(id=mid, probes_count=count)


def decode_measurement(data: Any, endpoint: str = "/v1/measurements") -> MeasurementResult:
    """Decode a full ``GET /v1/measurements/{id}`` snapshot."""
    body = _envelope(data, endpoint)
    mid = body.get("id")
    if not isinstance(mid, str) or not mid:
        raise ValidationError("Measurement has no id", endpoint=endpoint)
    mtype = body.get("type")
    if mtype not in MEASUREMENT_TYPES:
        raise ValidationError(f"Measurement {mid} has unknown type {mtype!r}", endpoint=endpoint)
    status = body.get("status")
    if not isinstance(status, str):
        raise ValidationError(f"Measurement {mid} has no status", endpoint=endpoint)
    raw_results = body.get("results") or []
    if not isinstance(raw_results, list):
        raise ValidationError(f"Measurement {mid} results is not a list", endpoint=endpoint)

    results = [_decode_probe_result(mtype, item, i) for i, item in enumerate(raw_results, 1)]
    probes_count = body.get("probesCount")
    if not isinstance(probes_count, int) or isinstance(probes_count, bool):
        probes_count = len(results)

    return MeasurementResult(
        id=mid,
        type=mtype,
        status=status,
        created_at=_opt_str(body.get("createdAt")),
        updated_at=_opt_str(body.get("updatedAt")),
        probes_count=probes_count,
        results=results,
        target=_opt_str(body.get("target")),
    )


def decode_probes(data: Any, endpoint: str = "/v1/probes") -> list[ProbeLocation]:
    """Decode the list of online probes."""
    if not isinstance(data, list):
        raise ValidationError("Probe list is not an array", endpoint=endpoint)
    probes = []
    for item in data:
        if not isinstance(item, dict):
            continue
        location = item.get("location") if isinstance(item.get("location"), dict) else {}
        probe = _decode_location(location)
        probe.tags = [str(t) for t in item.get("tags") or [] if t]
        probes.append(probe)
    return probes


def decode_limits(data: Any, endpoint: str = "/v1/limits") -> LimitsInfo:
    body = _envelope(data, endpoint)
    rate = body.get("rateLimit") or {}
    create = ((rate.get("measurements") or {}).get("create") or {}) if isinstance(rate, dict) else {}
    credits = body.get("credits") or {}
    return LimitsInfo(
        create=RateLimit(
            type=_opt_str(create.get("type")),
            limit=_lenient_int(create.get("limit")),
            remaining=_lenient_int(create.get("remaining")),
            reset=_lenient_int(create.get("reset")),
        ),
        credits_remaining=_lenient_int(credits.get("remaining")) if isinstance(credits, dict) else None,
    )


def _envelope(data: Any, endpoint: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError(
            f"Expected a JSON object, got {type(data).__name__}", endpoint=endpoint
        )
    return data


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

def _decode_probe_result(mtype: str, item: Any, index: int) -> ProbeResult:
    if not isinstance(item, dict):
        logger.warning("Probe %d: result entry is not an object", index)
        return ProbeResult(ProbeLocation(), MalformedResult("result entry is not an object"))

    raw_probe = item.get("probe")
    probe = _decode_location(raw_probe if isinstance(raw_probe, dict) else {})
    return ProbeResult(probe=probe, result=decode_test_result(mtype, item.get("result"), index))


def decode_test_result(mtype: str, raw: Any, index: int = 0) -> TestResult:
    """Decode one probe's ``result`` object for a measurement of ``mtype``."""
    if not isinstance(raw, dict):
        logger.warning("Probe %d: missing result payload", index)
        return MalformedResult("missing result payload")

    status = raw.get("status")
    raw_output = raw.get("rawOutput") if isinstance(raw.get("rawOutput"), str) else None
    if status != "finished":
        return UnfinishedResult(status=str(status or "unknown"), raw_output=raw_output)

    decoder = _DECODERS[mtype]
    try:
        return decoder(raw)
    except (PayloadError, TypeError, ValueError, OverflowError, AttributeError) as exc:
        logger.warning("Probe %d: malformed %s payload: %s", index, mtype, exc)
        return MalformedResult(reason=str(exc), raw_output=raw_output)


def _decode_location(raw: dict[str, Any]) -> ProbeLocation:
    tags = raw.get("tags")
    return ProbeLocation(
        continent=_opt_str(raw.get("continent")),
        region=_opt_str(raw.get("region")),
        country=_opt_str(raw.get("country")),
        state=_opt_str(raw.get("state")),
        city=_opt_str(raw.get("city")),
        asn=_lenient_int(raw.get("asn")),
        network=_opt_str(raw.get("network")),
        latitude=_lenient_float(raw.get("latitude")),
        longitude=_lenient_float(raw.get("longitude")),
        tags=[str(t) for t in tags if t] if isinstance(tags, list) else [],
    )


# ---------------------------------------------------------------------------
# Per-type decoders
# ---------------------------------------------------------------------------

def _decode_ping(raw: dict[str, Any]) -> PingResult:
    stats = None
    raw_stats = _opt_dict(raw.get("stats"), "stats")
    if raw_stats is not None:
        stats = PingStats(
            min=_num(raw_stats.get("min"), "stats.min"),
            max=_num(raw_stats.get("max"), "stats.max"),
            avg=_num(raw_stats.get("avg"), "stats.avg"),
            loss=_num(raw_stats.get("loss"), "stats.loss"),
            total=_num(raw_stats.get("total"), "stats.total"),
            rcv=_num(raw_stats.get("rcv"), "stats.rcv"),
            drop=_num(raw_stats.get("drop"), "stats.drop"),
        )
    timings = [
        PingTiming(rtt=_num(t.get("rtt"), "timings.rtt"), ttl=_num(t.get("ttl"), "timings.ttl"))
        for t in _dicts(raw.get("timings"), "timings")
    ]
    return PingResult(
        stats=stats,
        timings=timings,
        resolved_address=_opt_str(raw.get("resolvedAddress")),
        resolved_hostname=_opt_str(raw.get("resolvedHostname")),
        raw_output=_opt_str(raw.get("rawOutput")),
    )


def _decode_traceroute(raw: dict[str, Any]) -> TracerouteResult:
    hops = None
    if raw.get("hops") is not None:
        hops = []
        for hop in _dicts(raw.get("hops"), "hops"):
            if hop.get("timings") is not None:
                rtts = [_num(t.get("rtt"), "hops.timings.rtt") for t in _dicts(hop["timings"], "hops.timings")]
            else:
                rtts = [_num(v, "hops.rtt") for v in _list(hop.get("rtt"), "hops.rtt")]
            hops.append(TracerouteHop(
                resolved_address=_opt_str(hop.get("resolvedAddress")),
                resolved_hostname=_opt_str(hop.get("resolvedHostname")),
                rtts=rtts,
                asn=_asns(hop.get("asn")),
            ))
    return TracerouteResult(
        hops=hops,
        resolved_address=_opt_str(raw.get("resolvedAddress")),
        resolved_hostname=_opt_str(raw.get("resolvedHostname")),
        raw_output=_opt_str(raw.get("rawOutput")),
    )


def _decode_dns(raw: dict[str, Any]) -> TestResult:
    if raw.get("answers") is None and isinstance(raw.get("hops"), list):
        return DnsTraceResult(
            hops=[
                DnsTraceHop(
                    resolver=_opt_str(hop.get("resolver")),
                    query_time=_total(hop.get("timings")),
                    answers=_answers(hop.get("answers")),
                )
                for hop in _dicts(raw["hops"], "hops")
            ],
            raw_output=_opt_str(raw.get("rawOutput")),
        )
    return DnsResult(
        answers=_answers(raw.get("answers")),
        query_time=_total(raw.get("timings")),
        resolver=_opt_str(raw.get("resolver")),
        status_code=_num(raw.get("statusCode"), "statusCode"),
        status_code_name=_opt_str(raw.get("statusCodeName")),
        raw_output=_opt_str(raw.get("rawOutput")),
    )


def _decode_mtr(raw: dict[str, Any]) -> MtrResult:
    hops = None
    if raw.get("hops") is not None:
        hops = [_decode_mtr_hop(hop) for hop in _dicts(raw.get("hops"), "hops")]
    return MtrResult(
        hops=hops,
        resolved_address=_opt_str(raw.get("resolvedAddress")),
        resolved_hostname=_opt_str(raw.get("resolvedHostname")),
        raw_output=_opt_str(raw.get("rawOutput")),
    )


def _decode_mtr_hop(hop: dict[str, Any]) -> MtrHop:
    rtt = jitter = None
    loss = _num(hop.get("loss"), "hops.loss")

    statistics = _opt_dict(hop.get("statistics"), "hops.statistics")
    stats = _opt_dict(hop.get("stats"), "hops.stats")
    if statistics is not None:
        raw_rtt = _opt_dict(statistics.get("rtt"), "statistics.rtt")
        raw_jitter = _opt_dict(statistics.get("jitter"), "statistics.jitter")
        if raw_rtt is not None:
            rtt = MtrRttStats(
                min=_num(raw_rtt.get("min"), "rtt.min"),
                avg=_num(raw_rtt.get("avg"), "rtt.avg"),
                max=_num(raw_rtt.get("max"), "rtt.max"),
                stddev=_num(raw_rtt.get("stddev"), "rtt.stddev"),
            )
        if raw_jitter is not None:
            jitter = MtrJitterStats(
                min=_num(raw_jitter.get("min"), "jitter.min"),
                avg=_num(raw_jitter.get("avg"), "jitter.avg"),
                max=_num(raw_jitter.get("max"), "jitter.max"),
            )
    elif stats is not None:
        # Flat shape served by the live API
        rtt = MtrRttStats(
            min=_num(stats.get("min"), "stats.min"),
            avg=_num(stats.get("avg"), "stats.avg"),
            max=_num(stats.get("max"), "stats.max"),
            stddev=_num(stats.get("stDev"), "stats.stDev"),
        )
        jitter = MtrJitterStats(
            min=_num(stats.get("jMin"), "stats.jMin"),
            avg=_num(stats.get("jAvg"), "stats.jAvg"),
            max=_num(stats.get("jMax"), "stats.jMax"),
        )
        if loss is None:
            loss = _num(stats.get("loss"), "stats.loss")

    return MtrHop(
        resolved_address=_opt_str(hop.get("resolvedAddress")),
        resolved_hostname=_opt_str(hop.get("resolvedHostname")),
        asn=_asns(hop.get("asn")),
        loss=loss,
        rtt=rtt,
        jitter=jitter,
    )


def _decode_http(raw: dict[str, Any]) -> HttpResult:
    timings = None
    raw_timings = _opt_dict(raw.get("timings"), "timings")
    if raw_timings is not None:
        timings = HttpTimings(
            total=_num(raw_timings.get("total"), "timings.total"),
            dns=_num(raw_timings.get("dns"), "timings.dns"),
            tcp=_num(raw_timings.get("tcp"), "timings.tcp"),
            tls=_num(raw_timings.get("tls"), "timings.tls"),
            first_byte=_num(raw_timings.get("firstByte"), "timings.firstByte"),
            download=_num(raw_timings.get("download"), "timings.download"),
        )

    headers: dict[str, str] = {}
    raw_headers = _opt_dict(raw.get("headers"), "headers") or {}
    for name, value in raw_headers.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        headers[str(name)] = str(value)

    tls = None
    raw_tls = _opt_dict(raw.get("tls"), "tls")
    if raw_tls is not None:
        tls = TlsCertificate(
            protocol=_opt_str(raw_tls.get("protocol")),
            cipher_name=_opt_str(raw_tls.get("cipherName")),
            key_type=_opt_str(raw_tls.get("keyType")),
            key_bits=_num(raw_tls.get("keyBits"), "tls.keyBits"),
            created_at=_opt_str(raw_tls.get("createdAt")),
            expires_at=_opt_str(raw_tls.get("expiresAt")),
            authorized=bool(raw_tls.get("authorized")),
            error=_opt_str(raw_tls.get("error")),
            subject=_str_map(raw_tls.get("subject"), "tls.subject"),
            issuer=_str_map(raw_tls.get("issuer"), "tls.issuer"),
        )

    return HttpResult(
        status_code=_num(raw.get("statusCode"), "statusCode"),
        status_code_name=_opt_str(raw.get("statusCodeName")),
        timings=timings,
        headers=headers,
        tls=tls,
        resolved_address=_opt_str(raw.get("resolvedAddress")),
        truncated=bool(raw.get("truncated")),
        raw_output=_opt_str(raw.get("rawOutput")),
    )


_DECODERS: dict[str, Callable[[dict[str, Any]], TestResult]] = {
    "ping": _decode_ping,
    "traceroute": _decode_traceroute,
    "dns": _decode_dns,
    "mtr": _decode_mtr,
    "http": _decode_http,
}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _num(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PayloadError(f"{name} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise PayloadError(f"{name} must be finite, got {value!r}")
    return value


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _opt_dict(value: Any, name: str) -> Optional[dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise PayloadError(f"{name} must be an object")
    return value


def _list(value: Any, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadError(f"{name} must be a list")
    return value


def _dicts(value: Any, name: str) -> list[dict[str, Any]]:
    items = _list(value, name)
    for item in items:
        if not isinstance(item, dict):
            raise PayloadError(f"{name} entries must be objects")
    return items


def _answers(value: Any) -> list[DnsAnswer]:
    return [
        DnsAnswer(
            type=_opt_str(a.get("type")),
            ttl=_num(a.get("ttl"), "answers.ttl"),
            name=_opt_str(a.get("name")),
            value=_opt_str(a.get("value")),
            klass=_opt_str(a.get("class")),
        )
        for a in _dicts(value, "answers")
    ]


def _total(timings: Any) -> Optional[float]:
    t = _opt_dict(timings, "timings")
    return _num(t.get("total"), "timings.total") if t else None


def _asns(value: Any) -> list[int]:
    if value is None:
        return []
    if isinstance(value, int) and not isinstance(value, bool):
        return [value]
    return [int(a) for a in _list(value, "asn") if a is not None]


def _str_map(value: Any, name: str) -> dict[str, str]:
    raw = _opt_dict(value, name) or {}
    return {str(k): str(v) for k, v in raw.items() if v is not None}


def _lenient_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _lenient_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
