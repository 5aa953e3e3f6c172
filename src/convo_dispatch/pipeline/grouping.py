"""Fold flat message rows into per-conversation message sequences."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from convo_dispatch.pipeline.conversation_keys import normalize_conversation_key
from convo_dispatch.pipeline.redaction import redact_pii
from convo_dispatch.schemas import MessageRow, RedactedMessage

logger = logging.getLogger(__name__)

MILLISECOND_THRESHOLD = 10**12

ConversationGroups = dict[str, list[RedactedMessage]]


def normalize_ts_to_seconds(ts: int | float | None) -> int | None:
    """Return an epoch timestamp in seconds, accepting seconds or milliseconds."""

    if ts is None:
        return None
    if ts > MILLISECOND_THRESHOLD:
        return int(ts // 1000)
    return int(ts)


def redact_row(row: MessageRow) -> RedactedMessage:
    """Build the redacted, normalized message for one query row."""

    return RedactedMessage(
        message_text=redact_pii(row.message_text),
        is_offensive=bool(row.is_offensive),
        offense_type=row.offense_type or "",
        modality=row.modality,
        is_group=bool(row.is_group),
        sender=row.sender,
        ts=normalize_ts_to_seconds(row.ts),
    )


def group_message_rows(
    rows: Iterable[MessageRow],
    *,
    normalize_keys: bool = True,
) -> ConversationGroups:
    """Group rows by canonical conversation key.

    Keys keep first-seen order. Each key's messages are stable-sorted by
    normalized timestamp, so merged variants interleave in time and rows
    without a timestamp go last.
    """

    groups: ConversationGroups = {}
    row_count = 0
    for row in rows:
        row_count += 1
        key = normalize_conversation_key(row.conv_id, enabled=normalize_keys)
        groups.setdefault(key, []).append(redact_row(row))

    for messages in groups.values():
        messages.sort(key=lambda message: (message.ts is None, message.ts or 0))

    logger.debug("Grouped %d rows into %d conversations.", row_count, len(groups))
    return groups
