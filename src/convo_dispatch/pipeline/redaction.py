"""Best-effort PII redaction for message text."""

from __future__ import annotations

import re

LINK_TOKEN = "[LINK]"
EMAIL_TOKEN = "[EMAIL]"
PHONE_TOKEN = "[PHONE]"

# ASCII word boundaries, so Hebrew prefix letters do not hide a match.
_URL_PATTERNS = (
    re.compile(r"\bhttps?://[^\s]+", re.IGNORECASE | re.ASCII),
    re.compile(r"\bwww\.[^\s]+", re.IGNORECASE | re.ASCII),
)
_EMAIL_PATTERN = re.compile(
    r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE | re.ASCII
)
# Israeli numbers first, then a generic international digit-group shape.
_PHONE_PATTERN = re.compile(
    r"\b(?:\+?972[-\s]?\d{1,2}[-\s]?\d{3}[-\s]?\d{4}"
    r"|\+?\d{1,3}[-\s]?\d{1,4}[-\s]?\d{3,4}[-\s]?\d{3,4})\b",
    re.ASCII,
)


def redact_pii(text: str | None) -> str | None:
    """Replace URLs, emails, and phone-like numbers with placeholder tokens.

    Links and emails are replaced before phone matching so digit runs inside
    them are not tagged as phone numbers. Empty input is returned unchanged.
    """

    if not text:
        return text

    redacted = text
    for pattern in _URL_PATTERNS:
        redacted = pattern.sub(LINK_TOKEN, redacted)
    redacted = _EMAIL_PATTERN.sub(EMAIL_TOKEN, redacted)
    return _PHONE_PATTERN.sub(PHONE_TOKEN, redacted)
