"""Pipeline stage implementations."""

from convo_dispatch.pipeline.conversation_keys import (
    UNKNOWN_CONVERSATION_KEY,
    normalize_conversation_key,
)
from convo_dispatch.pipeline.dispatch import (
    DispatchSummary,
    build_conversation_payload,
    dispatch_conversation,
    dispatch_selected,
    parse_response_body,
    summarize_dispatch,
)
from convo_dispatch.pipeline.grouping import (
    group_message_rows,
    normalize_ts_to_seconds,
    redact_row,
)
from convo_dispatch.pipeline.redaction import redact_pii
from convo_dispatch.pipeline.run_pipeline import (
    RunReport,
    execute_daily_run,
    run_daily_dispatch,
    save_run_artifacts,
)
from convo_dispatch.pipeline.selection import SelectionError, select_candidates
from convo_dispatch.pipeline.time_window import resolve_day_window

__all__ = [
    "UNKNOWN_CONVERSATION_KEY",
    "DispatchSummary",
    "RunReport",
    "SelectionError",
    "build_conversation_payload",
    "dispatch_conversation",
    "dispatch_selected",
    "execute_daily_run",
    "group_message_rows",
    "normalize_conversation_key",
    "normalize_ts_to_seconds",
    "parse_response_body",
    "redact_pii",
    "redact_row",
    "resolve_day_window",
    "run_daily_dispatch",
    "save_run_artifacts",
    "select_candidates",
    "summarize_dispatch",
]
