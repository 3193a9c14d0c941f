"""Measurement orchestration for gpmeasure.

Runs the full lifecycle of a measurement:
  build request -> submit -> poll -> format

Public API:
    run_measurement  -- run one measurement, raising MeasurementError on failure
    run_tool         -- run one measurement, returning a caller-facing response dict
    run_many         -- run several independent measurements concurrently
    get_measurement  -- re-read and format an existing measurement by id
    list_locations   -- describe the probes currently online
    show_limits      -- describe the caller's rate-limit state
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from gpmeasure.client import MeasurementClient
from gpmeasure.config import MEASUREMENTS_PATH
from gpmeasure.errors import MeasurementError, ValidationError, error_response
from gpmeasure.models import MeasurementOutcome, PollSettings
from gpmeasure.poller import poll
from gpmeasure.report import format_limits, format_probes, format_result
from gpmeasure.request import LocationsInput, build_request

logger = logging.getLogger(__name__)


async def run_measurement(
    client: MeasurementClient,
    type: str,
    target: str,
    *,
    locations: LocationsInput = None,
    limit: Any = None,
    token: Optional[str] = None,
    poll_settings: Optional[PollSettings] = None,
    reuse_measurement_id: Optional[str] = None,
    require_public: bool = False,
    **options: Any,
) -> MeasurementOutcome:
    """Run a single measurement to completion.

    Parameters
    ----------
    client:
        Transport client; its ``sleep`` is also used between polls.
    type, target, locations, limit, reuse_measurement_id, require_public, **options:
        Forwarded to :func:`gpmeasure.request.build_request`.
    token:
        Optional bearer credential.
    poll_settings:
        Polling policy; defaults to a 60s budget polled every 2s.

    Returns
    -------
    MeasurementOutcome
        The final snapshot plus its report.  A measurement whose status is
        ``failed`` is returned normally with ``is_error`` set.
    """
    request = build_request(
        type,
        target,
        locations,
        limit,
        reuse_measurement_id=reuse_measurement_id,
        require_public=require_public,
        **options,
    )
    created = await client.submit(request, token)
    result = await poll(client, created.id, token, settings=poll_settings, sleep=client.sleep)
    if result.target is None:
        result.target = request.target

    report = format_result(result)
    if result.status == "failed":
        logger.warning("Measurement %s finished with status failed", result.id)
    return MeasurementOutcome(result=result, report=report)


async def run_tool(client: MeasurementClient, type: str, target: str, **kwargs: Any) -> dict[str, Any]:
    """Like :func:`run_measurement`, but render failures instead of raising them."""
    try:
        outcome = await run_measurement(client, type, target, **kwargs)
    except MeasurementError as exc:
        logger.info("%s measurement of %s failed: %r", type, target, exc)
        return error_response(exc)
    return outcome.to_response()


async def run_many(
    client: MeasurementClient,
    specs: Sequence[dict[str, Any]],
    token: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Run several measurements concurrently via ``asyncio.gather``.

    Each spec is a dict of :func:`run_measurement` keyword arguments
    (``type`` and ``target`` required).  Results come back in spec order;
    a failed measurement yields an error response rather than raising.
    Comparing the results is left to the caller.
    """

    async def _safe_run(spec: dict[str, Any]) -> dict[str, Any]:
        """Wrapper that catches unexpected fatal errors per measurement."""
        kwargs = dict(spec)
        kwargs.setdefault("token", token)
        try:
            return await run_tool(client, kwargs.pop("type", ""), kwargs.pop("target", ""), **kwargs)
        except Exception as exc:
            logger.exception("Fatal error running %s", spec)
            return error_response(MeasurementError(f"Unexpected error: {exc}", endpoint="engine"))

    tasks = [_safe_run(spec) for spec in specs]
    return list(await asyncio.gather(*tasks))


async def get_measurement(
    client: MeasurementClient,
    measurement_id: str,
    token: Optional[str] = None,
) -> MeasurementOutcome:
    """Fetch a measurement by id, in whatever state it is, and format it."""
    result = await client.fetch_by_id(measurement_id, token)
    if result is None:
        raise ValidationError(
            f"Measurement {measurement_id} not found",
            endpoint=f"{MEASUREMENTS_PATH}/{measurement_id}",
            status_code=404,
        )
    return MeasurementOutcome(result=result, report=format_result(result))


async def list_locations(client: MeasurementClient, token: Optional[str] = None) -> str:
    probes = await client.list_probes(token)
    logger.debug("Listing %d online probes", len(probes))
    return format_probes(probes)


async def show_limits(client: MeasurementClient, token: Optional[str] = None) -> str:
    return format_limits(await client.get_limits(token), token)
