"""Daily run orchestration: window, query, group, select, dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from convo_dispatch.config import Settings
from convo_dispatch.io import SqliteMessageStore, run_lock, save_json, save_jsonl
from convo_dispatch.models import HttpxTransport, Transport
from convo_dispatch.pipeline.dispatch import (
    EXIT_OK,
    DispatchSummary,
    dispatch_selected,
    summarize_dispatch,
)
from convo_dispatch.pipeline.conversation_keys import normalize_conversation_key
from convo_dispatch.pipeline.grouping import group_message_rows
from convo_dispatch.pipeline.selection import select_candidates
from convo_dispatch.pipeline.time_window import resolve_day_window
from convo_dispatch.schemas import CandidateEntry, DayWindow, DispatchResult, MessageRow

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "dispatch_summary.json"
RESULTS_FILENAME = "dispatch_results.jsonl"


@dataclass
class RunReport:
    """Outcome of one daily run."""

    window: DayWindow
    row_count: int
    conversation_count: int
    candidates: list[CandidateEntry] = field(default_factory=list)
    results: list[DispatchResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def summary(self) -> DispatchSummary:
        return summarize_dispatch(self.results)

    @property
    def no_data(self) -> bool:
        return self.conversation_count == 0

    @property
    def exit_code(self) -> int:
        if self.no_data or self.dry_run:
            return EXIT_OK
        return self.summary.exit_code

    def to_manifest(self) -> dict[str, Any]:
        """Render the run summary written next to the per-conversation results."""

        return {
            "run_id": self.window.iso_date,
            "date_iso": self.window.iso_date,
            "date_tz": self.window.timezone,
            "updated_at_utc": datetime.now(UTC).isoformat(),
            "dry_run": self.dry_run,
            "row_count": self.row_count,
            "conversation_count": self.conversation_count,
            "selected": [item.model_dump(mode="json") for item in self.candidates],
            "dispatch": self.summary.to_dict(),
            "exit_code": self.exit_code,
        }


def run_daily_dispatch(
    settings: Settings,
    *,
    window: DayWindow,
    rows: Sequence[MessageRow],
    priority_ids: Collection[str],
    transport: Transport | None,
    dry_run: bool = False,
    progress_callback: Callable[[int, int], None] | None = None,
) -> RunReport:
    """Group, select, and dispatch one day of already-fetched rows."""

    groups = group_message_rows(rows, normalize_keys=settings.normalize_conv_ids)
    report = RunReport(
        window=window,
        row_count=len(rows),
        conversation_count=len(groups),
        dry_run=dry_run,
    )
    if not groups:
        logger.info("[%s] No messages for today in timezone %s.", window.iso_date, window.timezone)
        return report

    # Registry ids may be composite raw ids, so fold them like row keys.
    priority_keys = {
        normalize_conversation_key(conv_id, enabled=settings.normalize_conv_ids)
        for conv_id in priority_ids
    }
    report.candidates = select_candidates(
        groups,
        priority_keys,
        min_candidates=settings.min_candidates,
    )
    if dry_run:
        logger.info("Dry run: skipping dispatch of %d conversations.", len(report.candidates))
        return report
    if transport is None:
        raise ValueError("transport is required unless dry_run is set.")

    report.results = dispatch_selected(
        report.candidates,
        groups,
        window,
        transport=transport,
        endpoint=settings.require_endpoint(),
        headers=settings.auth_headers(),
        include_sender=settings.include_sender,
        max_concurrency=settings.dispatch_max_concurrency,
        progress_callback=progress_callback,
    )
    summary = report.summary
    if summary.failure_count:
        logger.error(
            "Completed with %d failed conversation(s): %s",
            summary.failure_count,
            ", ".join(summary.failed_conv_ids),
        )
    else:
        logger.info("All %d conversations sent successfully.", summary.attempted)
    return report


def save_run_artifacts(run_root: Path, report: RunReport) -> Path:
    """Write the run summary and per-conversation results."""

    save_jsonl(run_root / RESULTS_FILENAME, report.results)
    return save_json(run_root / SUMMARY_FILENAME, report.to_manifest())


def execute_daily_run(
    settings: Settings,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
    transport: Transport | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> RunReport:
    """Run the full daily job against the configured database and endpoint.

    The database handle is released before any outbound call. A lock file in
    `output_dir/<date>` keeps two runs for the same day from overlapping.
    """

    if not dry_run:
        settings.require_endpoint()

    window = resolve_day_window(settings.timezone, now)
    run_root = settings.output_dir / window.iso_date
    with run_lock(run_root):
        with SqliteMessageStore(settings.db_path, include_sender=settings.include_sender) as store:
            rows = store.fetch_day_rows(window)
            priority_ids = store.fetch_priority_conv_ids() | settings.resolved_priority_conv_ids()

        owned_transport: HttpxTransport | None = None
        if transport is None and not dry_run and rows:
            owned_transport = HttpxTransport(
                timeout_seconds=settings.http_timeout_seconds,
                max_retries=settings.client_max_retries,
                backoff_seconds=settings.client_backoff_seconds,
            )
            transport = owned_transport
        try:
            report = run_daily_dispatch(
                settings,
                window=window,
                rows=rows,
                priority_ids=priority_ids,
                transport=transport,
                dry_run=dry_run,
                progress_callback=progress_callback,
            )
        finally:
            if owned_transport is not None:
                owned_transport.close()

        save_run_artifacts(run_root, report)
    return report
