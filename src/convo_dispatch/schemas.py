"""Core data schemas for the dispatch job."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class MessageRow(BaseModel):
    """One message joined with its prior moderation analysis."""

    model_config = ConfigDict(frozen=True)

    conv_id: str | None = None
    message_text: str | None = None
    is_offensive: bool | None = None
    offense_type: str | None = None
    modality: str | None = None
    is_group: bool | None = None
    sender: str | None = None
    ts: int | float | None = None


class RedactedMessage(BaseModel):
    """A message with PII redacted and timestamp normalized to seconds."""

    message_text: str | None
    is_offensive: bool = False
    offense_type: str = ""
    modality: str | None = None
    is_group: bool = False
    sender: str | None = None
    ts: int | None = None

    def to_payload(self, *, include_sender: bool) -> dict[str, Any]:
        """Render the wire shape of one message element."""

        payload: dict[str, Any] = {
            "message_text": self.message_text,
            "is_offensive": self.is_offensive,
            "offense_type": self.offense_type,
            "modality": self.modality,
            "is_group": self.is_group,
            "ts": self.ts,
        }
        if include_sender and self.sender is not None:
            payload["sender"] = self.sender
        return payload


class DayWindow(BaseModel):
    """Bounds of one local calendar day."""

    model_config = ConfigDict(frozen=True)

    start_sec: int
    end_sec: int
    start_ms: int
    end_ms: int
    iso_date: str
    timezone: str


class CandidateEntry(BaseModel):
    """One conversation chosen for dispatch."""

    key: str
    message_count: int = Field(ge=0)
    is_priority: bool


class DispatchResult(BaseModel):
    """Outcome of one conversation's dispatch."""

    conv_id: str
    status: Literal["ok", "error"]
    message_count: int = 0
    response: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
