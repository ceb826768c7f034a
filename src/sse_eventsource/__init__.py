from __future__ import annotations

from sse_eventsource.source import EventSource, EventSourceBuilder, sse
from sse_eventsource._client import HttpConfig, SseHttpClient
from sse_eventsource._config import SourceConfig
from sse_eventsource._errors import (
    DataMappingError,
    EventSourceError,
    ProtocolMismatchError,
    TransportError,
)
from sse_eventsource._event import ServerEvent
from sse_eventsource._sse import iter_sse_events_from_text
from sse_eventsource._state import ConnectionState

__all__ = [
    "ConnectionState",
    "DataMappingError",
    "EventSource",
    "EventSourceBuilder",
    "EventSourceError",
    "HttpConfig",
    "ProtocolMismatchError",
    "ServerEvent",
    "SourceConfig",
    "SseHttpClient",
    "TransportError",
    "iter_sse_events_from_text",
    "sse",
]

__version__ = "0.1.0"
