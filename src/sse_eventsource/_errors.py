from __future__ import annotations
from dataclasses import dataclass
from typing import Any


class EventSourceError(RuntimeError):
    """Base error of the library."""


@dataclass(slots=True)
class TransportError(EventSourceError):
    """
    Failure to connect or to keep reading the event stream.

    The underlying httpx/OS error is chained as ``__cause__``.
    """
    message: str
    url: str | None = None

    def __str__(self) -> str:
        if self.url:
            return f"TransportError({self.message!r}, url={self.url!r})"
        return f"TransportError({self.message!r})"


@dataclass(slots=True)
class ProtocolMismatchError(EventSourceError):
    """
    The server answered, but not with an event stream.

    Raised for any status other than 200 or a Content-Type other than
    ``text/event-stream``. The connection is not retried afterwards.
    """
    status_code: int
    content_type: str
    url: str | None = None

    # First bytes of a non-200 body, for debugging
    body: str | None = None

    def __str__(self) -> str:
        parts = [f"ProtocolMismatchError(status_code={self.status_code}"]
        parts.append(f", content_type={self.content_type!r}")
        if self.url:
            parts.append(f", url={self.url!r}")
        if self.body:
            parts.append(f", body={len(self.body)} chars")
        parts.append(")")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"ProtocolMismatchError("
            f"status_code={self.status_code}, "
            f"content_type={self.content_type!r}, "
            f"url={self.url!r}, "
            f"body={'...' if self.body else None})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured form for logging."""
        return {
            "status_code": self.status_code,
            "content_type": self.content_type,
            "url": self.url,
            "body": self.body,
        }

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600


@dataclass(slots=True)
class DataMappingError(EventSourceError):
    """Event data could not be mapped onto the requested type."""
    data: str
    target: Any
    reason: str = ""

    def __str__(self) -> str:
        name = getattr(self.target, "__name__", repr(self.target))
        return f"DataMappingError(target={name}, reason={self.reason!r}, data={len(self.data)} chars)"
