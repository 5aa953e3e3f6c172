"""Canonical grouping keys for raw conversation identifiers."""

from __future__ import annotations

UNKNOWN_CONVERSATION_KEY = "unknown"

_DIRECT_PREFIX = "direct_"
_GROUP_PREFIX = "group_"
_CHAT_SUFFIXES = ("@g.us", "@c.us")


def normalize_conversation_key(raw_conv_id: str | None, *, enabled: bool = True) -> str:
    """Map a raw, possibly composite conversation id to its grouping key.

    `direct_<x>_<jid>` collapses to the first part carrying a chat suffix,
    `group_<id>[_...]` collapses to `<id>`. Anything else, including prefixed
    ids without the expected parts, is returned unchanged.
    """

    if not raw_conv_id:
        return UNKNOWN_CONVERSATION_KEY
    if not enabled:
        return raw_conv_id

    if raw_conv_id.startswith(_DIRECT_PREFIX):
        parts = raw_conv_id.split("_")
        for part in parts[1:]:
            if any(suffix in part for suffix in _CHAT_SUFFIXES):
                return part
    elif raw_conv_id.startswith(_GROUP_PREFIX):
        parts = raw_conv_id.split("_")
        if len(parts) > 1 and parts[1]:
            return parts[1]

    return raw_conv_id
