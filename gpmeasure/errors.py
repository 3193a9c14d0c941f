"""Structured error taxonomy for gpmeasure.

Every failure that leaves the package is a :class:`MeasurementError` (or a
subclass).  Transport exceptions from httpx are wrapped at the client
boundary, so callers never see a raw ``httpx`` exception.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from gpmeasure.config import TOKENS_URL

logger = logging.getLogger(__name__)


class MeasurementError(Exception):
    """A failure talking to, or waiting on, the measurement API.

    Parameters
    ----------
    message:
        Technical description of what went wrong.
    endpoint:
        API path (or logical stage) where the failure happened.
    status_code:
        HTTP status code, when the failure came from an HTTP response.
    retryable:
        Whether repeating the call may succeed.  Computed from
        ``status_code`` when not given: true for 429 and 5xx.
    details:
        Extra structured context (validation params, rate-limit reset, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        if retryable is None:
            retryable = is_retryable_status(status_code)
        self.retryable = retryable
        self.details = details or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, endpoint={self.endpoint!r}, "
            f"status_code={self.status_code!r}, retryable={self.retryable!r})"
        )

    def user_message(self) -> str:
        """Return a message suitable for showing to the end user."""
        code = self.status_code
        if code == 429:
            msg = (
                "Rate limit exceeded. Wait for the limit to reset, "
                f"provide an API token from {TOKENS_URL} for higher limits, "
                "or reduce the number of probes."
            )
            reset = self.details.get("reset_seconds")
            if reset is not None:
                msg += f" The limit resets in {reset} seconds."
            return msg
        if code == 400:
            return f"Invalid request: {self.message}"
        if code in (401, 403):
            return (
                "Authentication failed. Check that your API token is valid "
                f"and has not expired ({TOKENS_URL})."
            )
        if code is not None and code >= 500:
            return (
                "The measurement service is temporarily unavailable. "
                "Please try again in a few moments."
            )
        return f"Measurement request failed: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "user_message": self.user_message(),
        }


class ValidationError(MeasurementError):
    """Malformed request input or an API payload of the wrong shape."""

    def __init__(self, message: str, *, endpoint: str = "request", **kwargs: Any):
        kwargs.setdefault("retryable", False)
        super().__init__(message, endpoint=endpoint, **kwargs)

    def user_message(self) -> str:
        if self.status_code is None:
            return f"Invalid request: {self.message}"
        return super().user_message()


class TransportError(MeasurementError):
    """Network or HTTP failure reaching the measurement API."""

    @classmethod
    def from_exception(cls, exc: httpx.HTTPError, endpoint: str) -> TransportError:
        """Wrap an httpx exception, marking transient failures retryable."""
        retryable = isinstance(
            exc,
            (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError),
        )
        return cls(
            f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__,
            endpoint=endpoint,
            retryable=retryable,
        )

    @classmethod
    def from_response(cls, response: httpx.Response, endpoint: str) -> MeasurementError:
        """Build an error from a non-2xx API response.

        The API reports failures as ``{"error": {"message": ..., "params": ...}}``;
        a 400 with ``params`` gets them appended so the validation detail
        reaches the user.
        """
        status = response.status_code
        message = f"HTTP {status}"
        details: dict[str, Any] = {}
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            err = body["error"]
            if err.get("message"):
                message = str(err["message"])
            if err.get("type"):
                details["error_type"] = err["type"]
            params = err.get("params")
            if params:
                details["params"] = params
                if status == 400:
                    message += " (" + _format_params(params) + ")"
        elif response.text:
            message = f"HTTP {status}: {response.text[:200]}"

        if status == 429:
            reset = _reset_seconds(response.headers)
            if reset is not None:
                details["reset_seconds"] = reset

        kind = ValidationError if status == 400 else cls
        return kind(message, endpoint=endpoint, status_code=status,
                    retryable=is_retryable_status(status), details=details)


class PollTimeoutError(MeasurementError):
    """The measurement did not complete before the polling deadline."""

    def __init__(self, message: str, *, elapsed_ms: float, endpoint: str = "poll"):
        super().__init__(message, endpoint=endpoint, retryable=False)
        self.elapsed_ms = elapsed_ms

    def user_message(self) -> str:
        return (
            f"The measurement did not complete within {self.elapsed_ms / 1000:.1f}s. "
            "Try again with fewer probes or a longer timeout."
        )


def is_retryable_status(status_code: Optional[int]) -> bool:
    if status_code is None:
        return False
    return status_code == 429 or status_code >= 500


def error_response(error: MeasurementError) -> dict[str, Any]:
    """Render an error in the caller-facing tool response shape."""
    return {
        "content": [{"type": "text", "text": error.user_message()}],
        "isError": True,
        "meta": {"error": error.to_dict()},
    }


def mask_token(token: Optional[str]) -> str:
    """Return a log-safe representation of a bearer credential."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-2:]}"


def _format_params(params: Any) -> str:
    if isinstance(params, dict):
        return ", ".join(f"{k}: {v}" for k, v in params.items())
    return str(params)


def _reset_seconds(headers: httpx.Headers) -> Optional[int]:
    for name in ("x-ratelimit-reset", "retry-after"):
        value = headers.get(name)
        if value is None:
            continue
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            logger.debug("Ignoring non-numeric %s header: %r", name, value)
    return None
