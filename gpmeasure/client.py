"""Async client for the Globalping measurement API.

Public API:
    MeasurementClient.submit       -- create a measurement, retrying transient failures
    MeasurementClient.fetch_by_id  -- fetch a measurement snapshot (None while not ready)
    MeasurementClient.list_probes  -- list online probes
    MeasurementClient.get_limits   -- current rate-limit and credit state
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from gpmeasure.config import LIMITS_PATH, MEASUREMENTS_PATH, PROBES_PATH
from gpmeasure.decode import decode_create, decode_limits, decode_measurement, decode_probes
from gpmeasure.errors import MeasurementError, TransportError, ValidationError, mask_token
from gpmeasure.models import (
    ClientSettings,
    CreateMeasurementResult,
    LimitsInfo,
    MeasurementRequest,
    MeasurementResult,
    ProbeLocation,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class MeasurementClient:
    """Thin async wrapper over the measurement API.

    An ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise one is created and closed with the
    client.  ``sleep`` is used for submit backoff and is injectable so tests
    never wait in real time.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or ClientSettings()
        self.sleep = sleep
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.settings.timeout)

    async def __aenter__(self) -> MeasurementClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def submit(
        self, request: MeasurementRequest, token: Optional[str] = None
    ) -> CreateMeasurementResult:
        """Create a measurement.

        Retryable failures (timeouts, resets, 429, 5xx) are retried up to
        ``settings.max_attempts`` times in total, sleeping
        ``backoff_base_ms * 2**(attempt-1)`` between attempts.  Anything
        else propagates at once.  Once attempts run out the last error is
        raised with ``retryable`` cleared.
        """
        endpoint = MEASUREMENTS_PATH
        payload = request.to_payload()
        max_attempts = max(1, self.settings.max_attempts)

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._request("POST", endpoint, token, json=payload)
                created = decode_create(_json(response, endpoint), endpoint)
            except MeasurementError as exc:
                if not exc.retryable:
                    raise
                if attempt >= max_attempts:
                    logger.warning(
                        "Giving up on %s %s after %d attempts: %s",
                        request.type, request.target, attempt, exc.message,
                    )
                    exc.retryable = False
                    raise
                delay_s = self.settings.backoff_base_ms * 2 ** (attempt - 1) / 1000
                logger.info(
                    "Submit attempt %d/%d failed (%s), backing off %.1fs before retry",
                    attempt, max_attempts, exc.message, delay_s,
                )
                await self.sleep(delay_s)
                continue

            logger.info(
                "Created %s measurement %s for %s (%d probes)",
                request.type, created.id, request.target, created.probes_count,
            )
            return created

    async def fetch_by_id(
        self, measurement_id: str, token: Optional[str] = None
    ) -> Optional[MeasurementResult]:
        """Fetch the current snapshot of a measurement.

        Returns ``None`` on 404: a freshly created measurement may not be
        queryable yet.  Performs no retries.
        """
        endpoint = f"{MEASUREMENTS_PATH}/{measurement_id}"
        response = await self._request("GET", endpoint, token, allow_404=True)
        if response.status_code == 404:
            logger.debug("Measurement %s not found yet", measurement_id)
            return None
        return decode_measurement(_json(response, endpoint), endpoint)

    async def list_probes(self, token: Optional[str] = None) -> list[ProbeLocation]:
        response = await self._request("GET", PROBES_PATH, token)
        return decode_probes(_json(response, PROBES_PATH), PROBES_PATH)

    async def get_limits(self, token: Optional[str] = None) -> LimitsInfo:
        response = await self._request("GET", LIMITS_PATH, token)
        return decode_limits(_json(response, LIMITS_PATH), LIMITS_PATH)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _headers(self, token: Optional[str], has_body: bool) -> dict[str, str]:
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        token: Optional[str],
        *,
        json: Optional[dict[str, Any]] = None,
        allow_404: bool = False,
    ) -> httpx.Response:
        logger.debug("%s %s (token: %s)", method, endpoint, mask_token(token))
        try:
            response = await self._http.request(
                method,
                self.settings.base_url.rstrip("/") + endpoint,
                json=json,
                headers=self._headers(token, json is not None),
            )
        except httpx.HTTPError as exc:
            raise TransportError.from_exception(exc, endpoint) from exc

        logger.debug("%s %s -> %d", method, endpoint, response.status_code)
        if response.is_success or (allow_404 and response.status_code == 404):
            return response
        raise TransportError.from_response(response, endpoint)


def _json(response: httpx.Response, endpoint: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ValidationError(
            "Response body is not valid JSON", endpoint=endpoint,
            status_code=response.status_code,
        ) from exc
