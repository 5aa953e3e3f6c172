"""Outbound client abstractions."""

from convo_dispatch.models.analysis_client import (
    HttpxTransport,
    Transport,
    TransportError,
    TransportResponse,
)

__all__ = [
    "HttpxTransport",
    "Transport",
    "TransportError",
    "TransportResponse",
]
