"""Result formatter registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gpmeasure.formatters.base import ResultFormatter

_FORMATTER_MAP: dict[str, type[ResultFormatter]] | None = None


def _load_formatters() -> dict[str, type[ResultFormatter]]:
    from gpmeasure.formatters.dns import DnsFormatter
    from gpmeasure.formatters.http import HttpFormatter
    from gpmeasure.formatters.mtr import MtrFormatter
    from gpmeasure.formatters.ping import PingFormatter
    from gpmeasure.formatters.traceroute import TracerouteFormatter

    return {
        "ping": PingFormatter,
        "traceroute": TracerouteFormatter,
        "dns": DnsFormatter,
        "mtr": MtrFormatter,
        "http": HttpFormatter,
    }


def get_formatter_map() -> dict[str, type[ResultFormatter]]:
    """Return the mapping of measurement type → formatter class, loading lazily."""
    global _FORMATTER_MAP
    if _FORMATTER_MAP is None:
        _FORMATTER_MAP = _load_formatters()
    return _FORMATTER_MAP


def get_formatter(measurement_type: str) -> ResultFormatter:
    """Instantiate the formatter for a measurement type."""
    fmap = get_formatter_map()
    if measurement_type not in fmap:
        raise ValueError(f"Unknown measurement type: {measurement_type!r}. Available: {list(fmap)}")
    return fmap[measurement_type]()
