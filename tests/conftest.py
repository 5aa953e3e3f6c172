"""Shared fixtures for building throwaway message databases."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

_SCHEMA = """
CREATE TABLE messages (
    id INTEGER PRIMARY KEY,
    conv_id TEXT,
    text TEXT,
    modality TEXT,
    is_group INTEGER,
    sender TEXT,
    ts INTEGER,
    deleted_at TEXT
);
CREATE TABLE analysis (
    id INTEGER PRIMARY KEY,
    message_id INTEGER NOT NULL REFERENCES messages(id),
    message_text TEXT,
    is_offensive INTEGER,
    offense_type TEXT
);
"""

_CHATS_SCHEMA = "CREATE TABLE chats (conv_id TEXT PRIMARY KEY, daily_summary INTEGER);"


@pytest.fixture
def make_message_db(tmp_path: Path) -> Callable[..., Path]:
    """Build a SQLite file with `messages`, `analysis`, and optionally `chats` tables.

    Each message dict accepts the `messages` columns plus optional `analysis_text`,
    `is_offensive`, and `offense_type`.
    """

    def _build(
        messages: Sequence[dict],
        *,
        priority_ids: Sequence[str] | None = None,
        with_registry: bool = True,
        name: str = "data.db",
    ) -> Path:
        db_path = tmp_path / name
        conn = sqlite3.connect(db_path)
        try:
            conn.executescript(_SCHEMA)
            if with_registry:
                conn.execute(_CHATS_SCHEMA)
                for conv_id in priority_ids or []:
                    conn.execute(
                        "INSERT INTO chats (conv_id, daily_summary) VALUES (?, 1)", (conv_id,)
                    )
            for index, item in enumerate(messages, start=1):
                conn.execute(
                    "INSERT INTO messages (id, conv_id, text, modality, is_group, sender, ts, "
                    "deleted_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        index,
                        item.get("conv_id"),
                        item.get("text", ""),
                        item.get("modality", "text"),
                        item.get("is_group"),
                        item.get("sender"),
                        item["ts"],
                        item.get("deleted_at"),
                    ),
                )
                conn.execute(
                    "INSERT INTO analysis (message_id, message_text, is_offensive, offense_type) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        index,
                        item.get("analysis_text"),
                        item.get("is_offensive"),
                        item.get("offense_type"),
                    ),
                )
            conn.commit()
        finally:
            conn.close()
        return db_path

    return _build
