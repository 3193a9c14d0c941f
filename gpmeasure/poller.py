"""Wait for a submitted measurement to reach a terminal state."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from gpmeasure.config import MEASUREMENTS_PATH
from gpmeasure.errors import MeasurementError, PollTimeoutError
from gpmeasure.models import MeasurementResult, PollSettings

logger = logging.getLogger(__name__)


async def poll(
    client: Any,
    measurement_id: str,
    token: Optional[str] = None,
    timeout_ms: Optional[float] = None,
    interval_ms: Optional[float] = None,
    *,
    settings: Optional[PollSettings] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> MeasurementResult:
    """Poll ``client.fetch_by_id`` until the measurement finishes or fails.

    Each iteration checks the deadline, sleeps for the current interval,
    then fetches.  A ``None`` fetch (not queryable yet) or an in-progress
    snapshot keeps waiting.  A ``finished`` or ``failed`` snapshot is
    returned as-is; a failed job is not an exception.

    Fetch errors widen the interval by ``backoff_factor`` (capped at
    ``max_interval_ms``); ``max_consecutive_errors`` in a row abort the
    poll.  Any fetch that does not raise resets the error count.  Once
    less than ``accelerate_fraction`` of the budget remains, the interval
    is halved (not below ``min_interval_ms``).

    Parameters
    ----------
    client:
        Anything with an async ``fetch_by_id(id, token)``.
    timeout_ms, interval_ms:
        Override the values in ``settings``.
    sleep, clock:
        Injectable for tests.  ``clock`` returns seconds.

    Raises
    ------
    PollTimeoutError
        The deadline passed before the measurement completed.
    MeasurementError
        Too many consecutive fetch errors.
    """
    settings = settings or PollSettings()
    budget_ms = settings.timeout_ms if timeout_ms is None else timeout_ms
    interval = settings.interval_ms if interval_ms is None else interval_ms
    endpoint = f"{MEASUREMENTS_PATH}/{measurement_id}"

    start = clock()
    consecutive_errors = 0
    accelerated = False
    fetches = 0

    while True:
        elapsed_ms = (clock() - start) * 1000
        if elapsed_ms >= budget_ms:
            logger.warning(
                "Measurement %s still incomplete after %.0fms (%d fetches)",
                measurement_id, elapsed_ms, fetches,
            )
            raise PollTimeoutError(
                f"Measurement {measurement_id} did not complete within {budget_ms:.0f}ms",
                elapsed_ms=elapsed_ms,
                endpoint=endpoint,
            )

        remaining_ms = budget_ms - elapsed_ms
        if not accelerated and remaining_ms < budget_ms * settings.accelerate_fraction:
            interval = max(settings.min_interval_ms, interval / 2)
            accelerated = True
            logger.debug("Measurement %s near deadline, polling every %.0fms", measurement_id, interval)

        await sleep(min(interval, remaining_ms) / 1000)

        fetches += 1
        try:
            result = await client.fetch_by_id(measurement_id, token)
        except MeasurementError as exc:
            consecutive_errors += 1
            if consecutive_errors >= settings.max_consecutive_errors:
                logger.warning(
                    "Aborting poll of %s after %d consecutive errors: %s",
                    measurement_id, consecutive_errors, exc.message,
                )
                raise MeasurementError(
                    f"too many consecutive polling errors: {exc.message}",
                    endpoint=exc.endpoint or endpoint,
                    status_code=exc.status_code,
                    retryable=False,
                ) from exc
            interval = min(interval * settings.backoff_factor, max(settings.max_interval_ms, interval))
            logger.warning(
                "Poll of %s failed (%d/%d): %s; next poll in %.0fms",
                measurement_id, consecutive_errors, settings.max_consecutive_errors,
                exc.message, interval,
            )
            continue

        consecutive_errors = 0
        if result is None:
            continue
        if result.is_done:
            logger.info(
                "Measurement %s %s after %d fetches", measurement_id, result.status, fetches
            )
            return result
        logger.debug("Measurement %s %s", measurement_id, result.status)
