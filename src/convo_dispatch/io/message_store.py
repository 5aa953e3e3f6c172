"""Read-only SQLite access to messages, analyses, and the chat registry."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from convo_dispatch.schemas import DayWindow, MessageRow

logger = logging.getLogger(__name__)


class MessageStoreError(RuntimeError):
    """Raised when the message database cannot be opened or queried."""


class MessageSource(Protocol):
    """Protocol for the day-window message query."""

    def fetch_day_rows(self, window: DayWindow) -> list[MessageRow]:
        """Return non-deleted rows inside the window, ordered by conv_id then ts."""


class ChatRegistry(Protocol):
    """Protocol for the registry of conversations flagged for daily summaries."""

    def fetch_priority_conv_ids(self) -> set[str]:
        """Return conversation ids flagged for mandatory daily summarization."""


_SENDER_COLUMN = ",\n      m.sender AS sender"

_DAY_ROWS_SQL = """
    SELECT
      m.conv_id AS conv_id,
      COALESCE(a.message_text, m.text) AS message_text,
      a.is_offensive AS is_offensive,
      a.offense_type AS offense_type,
      m.modality AS modality,
      m.is_group AS is_group,
      m.ts AS ts{sender_column}
    FROM analysis a
    JOIN messages m ON a.message_id = m.id
    WHERE
      m.deleted_at IS NULL
      AND (
        (m.ts BETWEEN :start_sec AND :end_sec)
        OR
        (m.ts BETWEEN :start_ms AND :end_ms)
      )
    ORDER BY m.conv_id, m.ts ASC
"""

_PRIORITY_SQL = "SELECT conv_id FROM chats WHERE daily_summary = 1"


def _optional_bool(value: object) -> bool | None:
    return None if value is None else bool(value)


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _row_to_message(row: sqlite3.Row, *, include_sender: bool) -> MessageRow:
    return MessageRow(
        conv_id=_optional_str(row["conv_id"]),
        message_text=_optional_str(row["message_text"]),
        is_offensive=_optional_bool(row["is_offensive"]),
        offense_type=_optional_str(row["offense_type"]),
        modality=_optional_str(row["modality"]),
        is_group=_optional_bool(row["is_group"]),
        sender=_optional_str(row["sender"]) if include_sender else None,
        ts=row["ts"],
    )


class SqliteMessageStore:
    """SQLite message store opened read-only for the duration of the query phase."""

    def __init__(self, db_path: str | Path, *, include_sender: bool = False) -> None:
        path = Path(db_path).expanduser()
        if not path.exists():
            raise MessageStoreError(f"Message database not found: {path}")

        self._include_sender = include_sender
        try:
            self._conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as exc:
            raise MessageStoreError(f"Unable to open message database {path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row

    def close(self) -> None:
        """Release the database handle."""

        self._conn.close()

    def __enter__(self) -> SqliteMessageStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_day_rows(self, window: DayWindow) -> list[MessageRow]:
        """Return today's analysed, non-deleted messages ordered by conv_id then ts."""

        sql = _DAY_ROWS_SQL.format(
            sender_column=_SENDER_COLUMN if self._include_sender else ""
        )
        params = {
            "start_sec": window.start_sec,
            "end_sec": window.end_sec,
            "start_ms": window.start_ms,
            "end_ms": window.end_ms,
        }
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise MessageStoreError(f"Day message query failed: {exc}") from exc

        logger.info("Fetched %d message rows for %s.", len(rows), window.iso_date)
        return [_row_to_message(row, include_sender=self._include_sender) for row in rows]

    def fetch_priority_conv_ids(self) -> set[str]:
        """Return ids flagged for daily summaries; empty when no registry table exists."""

        try:
            rows = self._conn.execute(_PRIORITY_SQL).fetchall()
        except sqlite3.OperationalError as exc:
            logger.warning("Chat registry unavailable, no priority conversations: %s", exc)
            return set()
        return {str(row["conv_id"]) for row in rows if row["conv_id"]}
