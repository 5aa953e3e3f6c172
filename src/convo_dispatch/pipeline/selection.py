"""Choose which conversations are forwarded for analysis."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence

from convo_dispatch.schemas import CandidateEntry

logger = logging.getLogger(__name__)

DEFAULT_MIN_CANDIDATES = 3


class SelectionError(ValueError):
    """Raised when selection parameters are invalid."""


def select_candidates(
    groups: Mapping[str, Sequence[object]],
    priority_ids: Collection[str],
    *,
    min_candidates: int = DEFAULT_MIN_CANDIDATES,
) -> list[CandidateEntry]:
    """Pick priority conversations first, then fill with the busiest remaining ones.

    Every priority key present in `groups` is selected even past the
    threshold. Fill entries are ranked by descending message count with ties
    kept in mapping order.
    """

    if min_candidates < 0:
        raise SelectionError(f"min_candidates must be >= 0, got {min_candidates}.")

    priority = set(priority_ids)
    candidates = [
        CandidateEntry(key=key, message_count=len(messages), is_priority=True)
        for key, messages in groups.items()
        if key in priority
    ]

    if len(candidates) < min_candidates:
        remaining = sorted(
            (key for key in groups if key not in priority),
            key=lambda key: len(groups[key]),
            reverse=True,
        )
        for key in remaining[: min_candidates - len(candidates)]:
            candidates.append(
                CandidateEntry(key=key, message_count=len(groups[key]), is_priority=False)
            )

    priority_count = sum(1 for item in candidates if item.is_priority)
    logger.info(
        "Selected %d of %d conversations (%d priority, %d fill).",
        len(candidates),
        len(groups),
        priority_count,
        len(candidates) - priority_count,
    )
    return candidates
