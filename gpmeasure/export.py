"""JSON and CSV export for measurement outcomes."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict

from gpmeasure.models import (
    DnsResult,
    DnsTraceResult,
    HttpResult,
    MeasurementOutcome,
    MtrResult,
    PingResult,
    ProbeResult,
    TracerouteResult,
)


def export_json(outcome: MeasurementOutcome, indent: int = 2) -> str:
    """Export the measurement and its aggregate stats as a JSON string."""
    data = build_export_dict(outcome)
    return json.dumps(data, indent=indent, default=str)


def export_csv(outcome: MeasurementOutcome) -> str:
    """Export results as CSV string (one row per probe)."""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        "measurement_id",
        "type",
        "target",
        "probe",
        "continent",
        "country",
        "city",
        "asn",
        "network",
        "status",
        "metric",
        "value",
    ])

    result = outcome.result
    for index, probe in enumerate(result.results, 1):
        loc = probe.probe
        metric, value = _headline_metric(probe)
        writer.writerow([
            result.id,
            result.type,
            result.target or "",
            index,
            loc.continent or "",
            loc.country or "",
            loc.city or "",
            loc.asn if loc.asn is not None else "",
            loc.network or "",
            probe.result.status,
            metric,
            "" if value is None else value,
        ])

    return output.getvalue()


def write_to_file(content: str, filepath: str) -> None:
    """Write export content to a file."""
    with open(filepath, "w") as f:
        f.write(content)


def build_export_dict(outcome: MeasurementOutcome) -> dict:
    """Build a serializable dictionary from a MeasurementOutcome."""
    result = outcome.result
    return {
        "id": result.id,
        "type": result.type,
        "target": result.target,
        "status": result.status,
        "created_at": result.created_at,
        "updated_at": result.updated_at,
        "probes_count": result.probes_count,
        "stats": asdict(outcome.report.stats),
        "results": [_probe_to_dict(p) for p in result.results],
    }


def _probe_to_dict(probe: ProbeResult) -> dict:
    data = asdict(probe.result)
    data["kind"] = type(probe.result).__name__
    return {"probe": asdict(probe.probe), "result": data}


def _headline_metric(probe: ProbeResult) -> tuple[str, object]:
    """The single number that best summarizes one probe."""
    r = probe.result
    if isinstance(r, PingResult):
        return "avg_rtt_ms", r.stats.avg if r.stats else None
    if isinstance(r, (TracerouteResult, MtrResult)):
        return "hop_count", len(r.hops) if r.hops is not None else None
    if isinstance(r, DnsResult):
        return "query_time_ms", r.query_time
    if isinstance(r, DnsTraceResult):
        return "hop_count", len(r.hops)
    if isinstance(r, HttpResult):
        return "total_ms", r.timings.total if r.timings else None
    return "", None
