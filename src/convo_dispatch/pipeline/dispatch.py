"""Per-conversation payload delivery with isolated failure accounting."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from convo_dispatch.models import Transport, TransportError
from convo_dispatch.schemas import CandidateEntry, DayWindow, DispatchResult, RedactedMessage

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DISPATCH_FAILURES = 2


def build_conversation_payload(
    conv_id: str,
    messages: Sequence[RedactedMessage],
    window: DayWindow,
    *,
    include_sender: bool = False,
) -> dict[str, Any]:
    """Build the JSON body sent for one conversation."""

    return {
        "conv_id": conv_id,
        "date_tz": window.timezone,
        "date_iso": window.iso_date,
        "messages": [message.to_payload(include_sender=include_sender) for message in messages],
    }


def parse_response_body(body_text: str) -> Any:
    """Parse a JSON response body, keeping the raw text when it is not JSON."""

    try:
        return json.loads(body_text)
    except (json.JSONDecodeError, TypeError):
        return body_text


def dispatch_conversation(
    conv_id: str,
    payload: dict[str, Any],
    *,
    transport: Transport,
    endpoint: str,
    headers: dict[str, str],
) -> DispatchResult:
    """Send one payload and convert any failure into a result record."""

    message_count = len(payload.get("messages", []))
    try:
        response = transport.post(endpoint, headers, payload)
        if not response.status_ok:
            raise TransportError(response.status_code, response.status_text, response.body_text)
    except Exception as exc:
        logger.error("Failed conv_id=%s: %s", conv_id, exc)
        return DispatchResult(
            conv_id=conv_id,
            status="error",
            message_count=message_count,
            error=str(exc),
        )

    response_data = parse_response_body(response.body_text)
    logger.info("Sent %d messages for conv_id=%s", message_count, conv_id)
    logger.debug("Analysis service response for %s: %s", conv_id, response_data)
    return DispatchResult(
        conv_id=conv_id,
        status="ok",
        message_count=message_count,
        response=response_data,
    )


def dispatch_selected(
    candidates: Sequence[CandidateEntry],
    groups: Mapping[str, Sequence[RedactedMessage]],
    window: DayWindow,
    *,
    transport: Transport,
    endpoint: str,
    headers: dict[str, str],
    include_sender: bool = False,
    max_concurrency: int = 1,
    progress_callback: Callable[[int, int], None] | None = None,
) -> list[DispatchResult]:
    """Dispatch every selected conversation, returning results in selection order.

    With `max_concurrency` of 1 calls run one at a time in selection order.
    Larger values use a bounded worker pool; each worker only produces its own
    result record.
    """

    if max_concurrency <= 0:
        raise ValueError(f"max_concurrency must be positive, got {max_concurrency}.")

    payloads = [
        (
            item.key,
            build_conversation_payload(
                item.key,
                groups[item.key],
                window,
                include_sender=include_sender,
            ),
        )
        for item in candidates
    ]
    total = len(payloads)

    def _send(conv_id: str, payload: dict[str, Any]) -> DispatchResult:
        return dispatch_conversation(
            conv_id,
            payload,
            transport=transport,
            endpoint=endpoint,
            headers=headers,
        )

    if max_concurrency == 1 or total <= 1:
        results: list[DispatchResult] = []
        for conv_id, payload in payloads:
            results.append(_send(conv_id, payload))
            if progress_callback is not None:
                progress_callback(len(results), total)
        return results

    by_index: dict[int, DispatchResult] = {}
    with ThreadPoolExecutor(max_workers=min(max_concurrency, total)) as executor:
        future_to_index = {
            executor.submit(_send, conv_id, payload): index
            for index, (conv_id, payload) in enumerate(payloads)
        }
        for future in as_completed(future_to_index):
            by_index[future_to_index[future]] = future.result()
            if progress_callback is not None:
                progress_callback(len(by_index), total)
    return [by_index[index] for index in range(total)]


@dataclass(frozen=True)
class DispatchSummary:
    """Aggregate disposition of a dispatch pass."""

    attempted: int
    succeeded: int
    failed_conv_ids: list[str]

    @property
    def failure_count(self) -> int:
        return len(self.failed_conv_ids)

    @property
    def exit_code(self) -> int:
        return EXIT_DISPATCH_FAILURES if self.failed_conv_ids else EXIT_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failure_count": self.failure_count,
            "failed_conv_ids": list(self.failed_conv_ids),
            "exit_code": self.exit_code,
        }


def summarize_dispatch(results: Sequence[DispatchResult]) -> DispatchSummary:
    """Count successes and failures across a dispatch pass."""

    failed = [item.conv_id for item in results if not item.ok]
    return DispatchSummary(
        attempted=len(results),
        succeeded=len(results) - len(failed),
        failed_conv_ids=failed,
    )
