"""I/O for the message database and run artifacts."""

from convo_dispatch.io.message_store import (
    ChatRegistry,
    MessageSource,
    MessageStoreError,
    SqliteMessageStore,
)
from convo_dispatch.io.save import RunLockError, ensure_directory, run_lock, save_json, save_jsonl

__all__ = [
    "ChatRegistry",
    "MessageSource",
    "MessageStoreError",
    "RunLockError",
    "SqliteMessageStore",
    "ensure_directory",
    "run_lock",
    "save_json",
    "save_jsonl",
]
