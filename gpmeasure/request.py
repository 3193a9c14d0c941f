"""Build measurement requests from loosely validated caller input.

Only two inputs are ever rejected: an empty target and an unknown
measurement type.  Everything else (bad limits, unknown protocols,
out-of-range packet counts) falls back to a sensible default.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import re
from typing import Any, Optional, Sequence, Union

from gpmeasure.config import (
    DEFAULT_DNS_PORT,
    DEFAULT_DNS_PROTOCOL,
    DEFAULT_DNS_QUERY_TYPE,
    DEFAULT_HTTP_METHOD,
    DEFAULT_HTTP_PORT,
    DEFAULT_HTTP_PROTOCOL,
    DEFAULT_HTTPS_PORT,
    DEFAULT_LIMIT,
    DEFAULT_PACKETS,
    DEFAULT_PATH_PORT,
    DEFAULT_PATH_PROTOCOL,
    DNS_PROTOCOLS,
    DNS_QUERY_TYPES,
    HTTP_METHODS,
    HTTP_PROTOCOLS,
    IP_VERSIONS,
    LOCATION_FIELDS,
    MAX_LIMIT,
    MAX_PACKETS,
    MEASUREMENT_TYPES,
    MIN_LIMIT,
    MIN_PACKETS,
    PATH_PROTOCOLS,
)
from gpmeasure.errors import ValidationError
from gpmeasure.models import LocationSpec, MeasurementRequest

logger = logging.getLogger(__name__)

LocationsInput = Union[None, str, Sequence[Union[str, dict]]]

_URL_RE = re.compile(r"^(?:(https?)://)?([^/\s]+)(/[^\s]*)?$", re.IGNORECASE)


def build_request(
    type: str,
    target: str,
    locations: LocationsInput = None,
    limit: Any = None,
    *,
    reuse_measurement_id: Optional[str] = None,
    require_public: bool = False,
    **options: Any,
) -> MeasurementRequest:
    """Assemble a defaulted :class:`MeasurementRequest`.

    Parameters
    ----------
    type:
        One of ``ping``, ``traceroute``, ``dns``, ``mtr``, ``http``.
    target:
        Host name or IP address.  HTTP targets may also be full URLs, in
        which case scheme, path and query are lifted into the options.
    locations:
        Anything :func:`parse_locations` accepts.
    limit:
        Probe count, clamped to ``[1, 500]``; defaults to 3.
    reuse_measurement_id:
        Run on exactly the probes of a previous measurement.
    require_public:
        Reject targets that resolve to loopback, private or link-local
        space before spending API credits on them.
    **options:
        Per-type options in snake_case (``packets``, ``port``, ``protocol``,
        ``ip_version``, ``query_type``, ``resolver``, ``trace``, ``method``,
        ``path``, ``query``, ``host``, ``headers``).
    """
    mtype = (type or "").strip().lower()
    if mtype not in MEASUREMENT_TYPES:
        raise ValidationError(
            f"Unknown measurement type {type!r}. Available: {list(MEASUREMENT_TYPES)}"
        )
    if target is None or not str(target).strip():
        raise ValidationError("Target must not be empty")
    target = str(target).strip()

    if mtype == "http":
        target, options = _split_http_target(target, options)

    if require_public:
        check_public_target(target)

    builder = _OPTION_BUILDERS[mtype]
    measurement_options = builder(options)

    unknown = set(options) - _KNOWN_OPTIONS
    if unknown:
        logger.debug("Ignoring unknown %s options: %s", mtype, sorted(unknown))

    return MeasurementRequest(
        type=mtype,  # type: ignore[arg-type]
        target=target,
        locations=parse_locations(locations),
        limit=clamp_limit(limit),
        options=measurement_options,
        reuse_measurement_id=reuse_measurement_id or None,
    )


def clamp_limit(limit: Any) -> int:
    return _clamp_int(limit, DEFAULT_LIMIT, MIN_LIMIT, MAX_LIMIT)


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def parse_locations(value: LocationsInput) -> Optional[list[LocationSpec]]:
    """Normalize location input into an ordered list of :class:`LocationSpec`.

    Accepts a single magic string, a comma-separated string, text that looks
    like a JSON array, or a sequence of strings / mappings.  Mappings may
    carry a ``magic`` key or legacy structured fields (``continent``,
    ``country``, ``asn``, ...), which are joined with ``+``.

    Never raises.  Returns ``None`` for missing or empty input.
    """
    if value is None:
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            specs = _specs_from_items(parsed)
            if specs:
                return specs
        parts = [p.strip() for p in text.split(",")]
        specs = [LocationSpec(magic=p) for p in parts if p]
        return specs or [LocationSpec(magic=text)]

    if isinstance(value, dict):
        return _specs_from_items([value]) or None

    try:
        items = list(value)
    except TypeError:
        logger.debug("Unsupported locations value %r, using it verbatim", value)
        return [LocationSpec(magic=str(value))]
    return _specs_from_items(items) or None


def _specs_from_items(items: list) -> list[LocationSpec]:
    specs: list[LocationSpec] = []
    for item in items:
        if isinstance(item, LocationSpec):
            specs.append(item)
        elif isinstance(item, dict):
            spec = _spec_from_mapping(item)
            if spec is not None:
                specs.append(spec)
        elif item is not None and str(item).strip():
            specs.append(LocationSpec(magic=str(item).strip()))
    return specs


def _spec_from_mapping(item: dict) -> Optional[LocationSpec]:
    limit = item.get("limit")
    limit = _clamp_int(limit, None, MIN_LIMIT, MAX_LIMIT) if limit is not None else None

    magic = item.get("magic")
    if magic is not None and str(magic).strip():
        return LocationSpec(magic=str(magic).strip(), limit=limit)

    parts: list[str] = []
    for key in LOCATION_FIELDS:
        val = item.get(key)
        if val is None or val == "":
            continue
        if key == "asn":
            parts.append(f"AS{val}")
        elif key == "tags":
            tags = val if isinstance(val, (list, tuple)) else [val]
            parts.extend(str(t) for t in tags if t)
        else:
            parts.append(str(val))
    if not parts:
        return None
    return LocationSpec(magic="+".join(parts), limit=limit)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

def parse_http_target(target: str) -> dict[str, Optional[str]]:
    """Split ``[scheme://]host[/path[?query]]`` into its parts.

    Returns a dict with ``host``, ``protocol`` (upper-case or ``None``),
    ``path`` and ``query``.  Input that does not look like a URL comes back
    as the host unchanged.
    """
    m = _URL_RE.match(target)
    if not m:
        return {"host": target, "protocol": None, "path": None, "query": None}
    scheme, host, rest = m.groups()
    path = query = None
    if rest:
        path, _, query = rest.partition("?")
        query = query or None
    return {
        "host": host,
        "protocol": scheme.upper() if scheme else None,
        "path": path or None,
        "query": query,
    }


def check_public_target(target: str) -> None:
    """Raise :class:`ValidationError` for targets probes cannot reach."""
    host = _strip_port(target).lower().rstrip(".")
    if host == "localhost" or host.endswith(".localhost"):
        raise ValidationError(f"Target {target!r} is a local host name")
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return
    if addr.is_loopback or addr.is_link_local or addr.is_private or addr.is_unspecified:
        raise ValidationError(f"Target {target!r} is not a publicly routable address")


def _strip_port(host: str) -> str:
    if host.startswith("["):
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def _split_http_target(target: str, options: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    parts = parse_http_target(target)
    if parts["host"] == target:
        return target, options
    merged = dict(options)
    if parts["protocol"] and "protocol" not in merged:
        merged["protocol"] = parts["protocol"]
    if parts["path"] and "path" not in merged:
        merged["path"] = parts["path"]
    if parts["query"] and "query" not in merged:
        merged["query"] = parts["query"]
    logger.debug("Parsed HTTP target %r into host %r", target, parts["host"])
    return parts["host"] or target, merged


# ---------------------------------------------------------------------------
# Per-type option builders
# ---------------------------------------------------------------------------

def _ping_options(opts: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "packets": _clamp_int(opts.get("packets"), DEFAULT_PACKETS, MIN_PACKETS, MAX_PACKETS),
    }
    protocol = _choice(opts.get("protocol"), ("ICMP", "TCP"), None)
    if protocol:
        out["protocol"] = protocol
        if protocol == "TCP":
            out["port"] = _port(opts.get("port"), DEFAULT_HTTPS_PORT)
    _add_ip_version(out, opts)
    return out


def _traceroute_options(opts: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "protocol": _choice(opts.get("protocol"), PATH_PROTOCOLS, DEFAULT_PATH_PROTOCOL),
        "port": _port(opts.get("port"), DEFAULT_PATH_PORT),
    }
    _add_ip_version(out, opts)
    return out


def _mtr_options(opts: dict[str, Any]) -> dict[str, Any]:
    out = _traceroute_options(opts)
    out["packets"] = _clamp_int(opts.get("packets"), DEFAULT_PACKETS, MIN_PACKETS, MAX_PACKETS)
    return out


def _dns_options(opts: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "query": {
            "type": _choice(opts.get("query_type"), DNS_QUERY_TYPES, DEFAULT_DNS_QUERY_TYPE),
        },
        "protocol": _choice(opts.get("protocol"), DNS_PROTOCOLS, DEFAULT_DNS_PROTOCOL),
        "port": _port(opts.get("port"), DEFAULT_DNS_PORT),
        "trace": bool(opts.get("trace", False)),
    }
    if opts.get("resolver"):
        out["resolver"] = str(opts["resolver"])
    _add_ip_version(out, opts)
    return out


def _http_options(opts: dict[str, Any]) -> dict[str, Any]:
    protocol = _choice(opts.get("protocol"), HTTP_PROTOCOLS, DEFAULT_HTTP_PROTOCOL)
    default_port = DEFAULT_HTTP_PORT if protocol == "HTTP" else DEFAULT_HTTPS_PORT

    request: dict[str, Any] = {
        "method": _choice(opts.get("method"), HTTP_METHODS, DEFAULT_HTTP_METHOD),
    }
    for key in ("path", "query", "host"):
        if opts.get(key):
            request[key] = str(opts[key])
    headers = opts.get("headers")
    if isinstance(headers, dict) and headers:
        request["headers"] = {str(k): str(v) for k, v in headers.items()}

    out: dict[str, Any] = {
        "request": request,
        "protocol": protocol,
        "port": _port(opts.get("port"), default_port),
    }
    if opts.get("resolver"):
        out["resolver"] = str(opts["resolver"])
    _add_ip_version(out, opts)
    return out


_OPTION_BUILDERS = {
    "ping": _ping_options,
    "traceroute": _traceroute_options,
    "dns": _dns_options,
    "mtr": _mtr_options,
    "http": _http_options,
}

_KNOWN_OPTIONS = {
    "packets", "port", "protocol", "ip_version", "query_type", "resolver",
    "trace", "method", "path", "query", "host", "headers",
}


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _clamp_int(value: Any, default: Any, lo: int, hi: int) -> Any:
    if value is None or isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return max(lo, min(hi, n))


def _choice(value: Any, allowed: Sequence[str], default: Optional[str]) -> Optional[str]:
    if value is None:
        return default
    candidate = str(value).strip().upper()
    if candidate in allowed:
        return candidate
    logger.debug("Unsupported value %r, falling back to %r", value, default)
    return default


def _port(value: Any, default: int) -> int:
    return _clamp_int(value, default, 1, 65535)


def _add_ip_version(out: dict[str, Any], opts: dict[str, Any]) -> None:
    try:
        version = int(opts.get("ip_version") or 0)
    except (TypeError, ValueError, OverflowError):
        return
    if version in IP_VERSIONS:
        out["ipVersion"] = version
