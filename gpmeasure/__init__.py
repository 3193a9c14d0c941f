"""gpmeasure - run Globalping network measurements and report on the results."""

__version__ = "0.1.0"

from gpmeasure.client import MeasurementClient
from gpmeasure.engine import get_measurement, list_locations, run_many, run_measurement, run_tool, show_limits
from gpmeasure.errors import MeasurementError, PollTimeoutError, TransportError, ValidationError
from gpmeasure.poller import poll
from gpmeasure.report import format_limits, format_probes, format_result
from gpmeasure.request import build_request, parse_locations

__all__ = [
    "MeasurementClient",
    "MeasurementError",
    "PollTimeoutError",
    "TransportError",
    "ValidationError",
    "build_request",
    "format_limits",
    "format_probes",
    "format_result",
    "get_measurement",
    "list_locations",
    "parse_locations",
    "poll",
    "run_many",
    "run_measurement",
    "run_tool",
    "show_limits",
]
