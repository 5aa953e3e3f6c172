"""HTTP transport for the remote analysis endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential, wait_random

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when the analysis endpoint answers with a non-success status."""

    def __init__(self, status_code: int, status_text: str, body_text: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body_text = body_text
        super().__init__(f"HTTP {status_code} {status_text} {body_text}".rstrip())


@dataclass(frozen=True)
class TransportResponse:
    """Status and raw body of one outbound call."""

    status_ok: bool
    status_code: int
    status_text: str
    body_text: str


class Transport(Protocol):
    """Protocol for clients that POST a JSON body and return the raw response."""

    def post(self, url: str, headers: dict[str, str], json_body: Any) -> TransportResponse:
        """Send one JSON request."""


def _read_body_text(response: httpx.Response) -> str:
    """Best-effort body decode; never masks the response status."""

    try:
        return response.text
    except (UnicodeDecodeError, LookupError, httpx.HTTPError):
        logger.debug("Unable to decode response body for status %s", response.status_code)
        return ""


class HttpxTransport:
    """Thin synchronous client around one httpx connection pool."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 1,
        backoff_seconds: float = 1.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        """Close the underlying HTTP client."""

        self._http.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _is_retryable_transport_error(self, exc: BaseException) -> bool:
        """Only network-level failures are retried; HTTP statuses are returned as-is."""

        return isinstance(exc, httpx.TransportError)

    def post(self, url: str, headers: dict[str, str], json_body: Any) -> TransportResponse:
        """POST a JSON body, retrying network-level failures with backoff."""

        response: httpx.Response | None = None
        max_attempts = max(1, self._max_retries)
        wait_strategy = wait_exponential(
            multiplier=self._backoff_seconds,
            min=self._backoff_seconds,
            max=max(self._backoff_seconds, self._backoff_seconds * 8),
        ) + wait_random(0.0, 0.25)
        retryer = Retrying(
            retry=retry_if_exception(self._is_retryable_transport_error),
            wait=wait_strategy,
            stop=stop_after_attempt(max_attempts),
            reraise=True,
        )
        for attempt in retryer:
            with attempt:
                response = self._http.post(url, headers=headers, json=json_body)

        if response is None:
            raise RuntimeError("Analysis endpoint response missing after retries.")

        return TransportResponse(
            status_ok=response.is_success,
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body_text=_read_body_text(response),
        )
