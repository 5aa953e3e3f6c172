"""Daily run discovery, inspection, and pruning utilities."""

from __future__ import annotations

import json
import shutil
from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

from convo_dispatch.pipeline.run_pipeline import SUMMARY_FILENAME


def _read_json_dict(path: Path) -> dict[str, Any]:
    """Read a JSON object from disk, returning empty dict on errors."""

    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class RunSummary:
    """Compact, user-facing summary for one daily run directory."""

    run_id: str
    run_root: str
    date_iso: str
    date_tz: str
    updated_at_utc: str
    dry_run: bool
    conversation_count: int
    selected_count: int
    failure_count: int
    exit_code: int
    locked: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def discover_run_summaries(runs_root: Path) -> list[RunSummary]:
    """Return saved daily runs, newest date first."""

    if not runs_root.exists():
        return []

    results: list[RunSummary] = []
    for child in runs_root.iterdir():
        if not child.is_dir() or child.name.startswith("_"):
            continue
        manifest = _read_json_dict(child / SUMMARY_FILENAME)
        if not manifest:
            continue
        dispatch = manifest.get("dispatch")
        dispatch = dispatch if isinstance(dispatch, dict) else {}
        selected = manifest.get("selected")
        results.append(
            RunSummary(
                run_id=str(manifest.get("run_id", child.name)),
                run_root=child.as_posix(),
                date_iso=str(manifest.get("date_iso", child.name)),
                date_tz=str(manifest.get("date_tz", "")),
                updated_at_utc=str(manifest.get("updated_at_utc", "")),
                dry_run=bool(manifest.get("dry_run", False)),
                conversation_count=_safe_int(manifest.get("conversation_count")),
                selected_count=len(selected) if isinstance(selected, list) else 0,
                failure_count=_safe_int(dispatch.get("failure_count")),
                exit_code=_safe_int(manifest.get("exit_code")),
                locked=(child / ".run.lock").exists(),
            )
        )

    results.sort(key=lambda item: (item.date_iso, item.updated_at_utc), reverse=True)
    return results


def inspect_run(runs_root: Path, run_id: str) -> dict[str, Any]:
    """Load one run's summary manifest plus derived metadata."""

    run_id_value = run_id.strip()
    if not run_id_value:
        raise ValueError("run_id must not be empty.")
    for summary in discover_run_summaries(runs_root):
        if summary.run_id == run_id_value:
            return {
                "summary": summary.to_dict(),
                "manifest": _read_json_dict(Path(summary.run_root) / SUMMARY_FILENAME),
            }
    raise ValueError(f"Run '{run_id_value}' not found under {runs_root}.")


def _run_date(summary: RunSummary) -> date | None:
    try:
        return date.fromisoformat(summary.date_iso)
    except ValueError:
        return None


def prune_runs(
    runs_root: Path,
    *,
    keep_last: int = 30,
    max_age_days: int | None = None,
    dry_run: bool = True,
    today: date | None = None,
) -> dict[str, Any]:
    """Plan or apply removal of old daily run directories.

    Runs beyond the newest `keep_last`, or older than `max_age_days`, are
    candidates. Locked runs are never removed.
    """

    if keep_last < 0:
        raise ValueError("keep_last must be >= 0.")
    if max_age_days is not None and max_age_days < 0:
        raise ValueError("max_age_days must be >= 0 when provided.")

    summaries = discover_run_summaries(runs_root)
    cutoff: date | None = None
    if max_age_days is not None:
        cutoff = (today or datetime.now(UTC).date()) - timedelta(days=max_age_days)

    planned: list[dict[str, Any]] = []
    deleted: list[dict[str, Any]] = []
    skipped_locked: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []

    for index, item in enumerate(summaries):
        run_date = _run_date(item)
        expired = cutoff is not None and run_date is not None and run_date < cutoff
        if index < keep_last and not expired:
            continue
        payload = item.to_dict()
        if item.locked:
            skipped_locked.append(payload)
            continue
        if dry_run:
            planned.append(payload)
            continue
        try:
            shutil.rmtree(Path(item.run_root))
        except OSError as exc:
            errors.append({**payload, "error": str(exc)})
            continue
        deleted.append(payload)

    return {
        "runs_root": runs_root.as_posix(),
        "dry_run": dry_run,
        "total_runs": len(summaries),
        "keep_last": keep_last,
        "max_age_days": max_age_days,
        "planned_count": len(planned),
        "deleted_count": len(deleted),
        "skipped_locked_count": len(skipped_locked),
        "error_count": len(errors),
        "planned": planned,
        "deleted": deleted,
        "skipped_locked": skipped_locked,
        "errors": errors,
    }
