"""Utilities for saving run artifacts."""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, suppress
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory if it does not exist and return it."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _atomic_write_text(path: Path, content: str) -> None:
    """Replace file contents via temp-write + rename."""

    ensure_directory(path.parent)
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        with temp_path.open("w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            with suppress(OSError):
                temp_path.unlink()


def _to_jsonable(row: dict[str, Any] | BaseModel) -> dict[str, Any]:
    return row.model_dump(mode="json") if isinstance(row, BaseModel) else row


def save_json(path: str | Path, payload: dict[str, Any]) -> Path:
    """Save a JSON object to disk."""

    file_path = Path(path)
    _atomic_write_text(file_path, json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
    return file_path


def save_jsonl(path: str | Path, rows: Sequence[dict[str, Any] | BaseModel]) -> Path:
    """Save records as JSONL, one object per line."""

    file_path = Path(path)
    content = "".join(json.dumps(_to_jsonable(row), ensure_ascii=False) + "\n" for row in rows)
    _atomic_write_text(file_path, content)
    return file_path


class RunLockError(RuntimeError):
    """Raised when another process is already running the same day."""


@contextmanager
def run_lock(run_root: str | Path, *, lock_filename: str = ".run.lock") -> Iterator[Path]:
    """Hold an exclusive lock file inside a run directory."""

    root = ensure_directory(run_root)
    lock_path = root / lock_filename
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError as exc:
        raise RunLockError(
            f"Run directory is locked: {lock_path}. "
            "If no other run is active, remove the lock file manually."
        ) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(
                json.dumps(
                    {"pid": os.getpid(), "acquired_at_utc": datetime.now(UTC).isoformat()}
                )
                + "\n"
            )
        yield lock_path
    finally:
        try:
            lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Failed to remove lock file: %s", lock_path, exc_info=True)
