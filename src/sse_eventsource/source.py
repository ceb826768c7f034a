"""
Reconnecting Server-Sent Events client.

An EventSource connects to an event stream on a background thread, delivers
every event to the registered subscribers and, when the server ends the
stream, reconnects after the reconnection time, resuming from the last
event id it saw.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Literal

import httpx

from sse_eventsource._client import EVENT_STREAM, SseHttpClient
from sse_eventsource._config import SourceConfig
from sse_eventsource._dispatcher import (
    CompleteCallback,
    EventConsumer,
    EventDispatcher,
    ExceptionConsumer,
)
from sse_eventsource._errors import ProtocolMismatchError, TransportError
from sse_eventsource._event import Mapper, ServerEvent, pydantic_mapper
from sse_eventsource._sse import EventParser
from sse_eventsource._state import AtomicState, ConnectionState

logger = logging.getLogger(__name__)

LAST_EVENT_ID_HEADER = "Last-Event-ID"
CACHE_NO_STORE = "no-store"
ERROR_BODY_LIMIT = 2048

# Longest wait between attempts; larger server retry values are clamped to it
MAX_RECONNECTION_DELAY_MS = 24 * 60 * 60 * 1000


def _read_body_snippet(response: httpx.Response, limit: int = ERROR_BODY_LIMIT) -> str | None:
    chunks: list[bytes] = []
    size = 0
    try:
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size >= limit:
                break
    except (OSError, httpx.HTTPError, httpx.StreamError):
        return None
    text = b"".join(chunks)[:limit].decode("utf-8", "replace")
    return text or None


class EventSource:
    """
    SSE client for one URL.

    Usage:
        source = EventSource("https://example.com/stream")
        source.register(print, on_exception=log_error)
        source.start()
        ...
        source.close()

    start() must be called at most once per instance; a second call starts a
    second worker that runs alongside the first.
    """

    def __init__(
        self,
        url: str,
        *,
        http_client: SseHttpClient | None = None,
        config: SourceConfig | None = None,
        mapper: Mapper = pydantic_mapper,
    ) -> None:
        self._url = url
        self._config = config or SourceConfig.from_env_or_value()
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else SseHttpClient()

        self._dispatcher = EventDispatcher()
        self._parser = EventParser(self._dispatcher, mapper)
        self._state = AtomicState(ConnectionState.CONNECTING)
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None

        # Only the worker thread writes these two
        self._reconnection_time_ms = self._config.reconnection_time_ms
        self._last_event_id = ""

        self._dispatcher.register(self._update_reconnection_time)
        self._dispatcher.register(self._update_last_event_id)

    # --------- public API ---------

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state.get()

    @property
    def last_event_id(self) -> str:
        return self._last_event_id

    @property
    def reconnection_time_ms(self) -> int:
        return self._reconnection_time_ms

    def register(
        self,
        on_event: EventConsumer | None,
        on_exception: ExceptionConsumer | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> EventSource:
        """
        Subscribe to events, errors and end-of-stream notifications.

        Args:
            on_event: Called with every ServerEvent received.
            on_exception: Called with TransportError / ProtocolMismatchError instances.
            on_complete: Called each time an event stream ends normally.

        Returns:
            This EventSource, so calls can be chained.
        """
        self._dispatcher.register(on_event, on_exception, on_complete)
        return self

    def start(self) -> None:
        """Connect on a background thread and return immediately."""
        if self._stop.is_set():
            logger.warning("start() called on closed EventSource for %s; ignoring", self._url)
            return
        if self._worker is not None and self._worker.is_alive():
            logger.warning("start() called twice for %s; a second worker will run", self._url)

        worker = threading.Thread(target=self._run, name=f"sse-eventsource[{self._url}]", daemon=True)
        self._worker = worker
        worker.start()

    def close(self) -> None:
        """
        Stop the event source.

        Cancels a pending reconnection and waits up to ``close_timeout_s`` for the
        worker to finish. A read that is already in progress is not interrupted;
        the worker stops at its next decision point. Safe to call repeatedly.
        """
        self._state.set(ConnectionState.CLOSED)
        self._stop.set()

        worker = self._worker
        if worker is None:
            if self._owns_http:
                self._http.close()
            return
        if worker is threading.current_thread():
            return

        worker.join(self._config.close_timeout_s)
        if worker.is_alive():
            logger.warning(
                "EventSource worker for %s still running after %.1fs",
                self._url,
                self._config.close_timeout_s,
            )

    def __enter__(self) -> EventSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --------- worker ---------

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                if not self._try_make_request():
                    break
                delay_ms = min(self._reconnection_time_ms, MAX_RECONNECTION_DELAY_MS)
                logger.info("Stream from %s ended, reconnecting in %d ms", self._url, delay_ms)
                if self._stop.wait(delay_ms / 1000):
                    break
        except Exception as e:
            logger.exception("EventSource worker for %s failed", self._url)
            self._dispatcher.on_exception(e)
            self._fail_the_connection()
        finally:
            if self._owns_http:
                self._http.close()
            logger.debug("EventSource worker for %s stopped", self._url)

    def _try_make_request(self) -> bool:
        try:
            return self._make_request()
        except (OSError, httpx.HTTPError, httpx.StreamError) as e:
            logger.error("Connection to %s failed: %r", self._url, e)
            error = TransportError(message=str(e) or type(e).__name__, url=self._url)
            error.__cause__ = e
            self._dispatcher.on_exception(error)
        except Exception as e:
            logger.exception("Unexpected error while connecting to %s", self._url)
            self._dispatcher.on_exception(e)

        self._fail_the_connection()
        return False

    def _make_request(self) -> bool:
        logger.debug("Connecting to %s", self._url)
        with self._http.stream_get(self._url, headers=self._prepare_headers()) as response:
            content_type = response.headers.get("content-type", "")
            if response.status_code != 200 or content_type != EVENT_STREAM:
                error = ProtocolMismatchError(
                    status_code=response.status_code,
                    content_type=content_type,
                    url=self._url,
                    body=_read_body_snippet(response) if response.status_code != 200 else None,
                )
                logger.warning("Not an event stream: %s", error)
                self._dispatcher.on_exception(error)
                self._fail_the_connection()
                return False

            if not self._announce_the_connection():
                self._fail_the_connection()
                return False

            logger.info("Event stream open: %s", self._url)
            self._parser.parse(response.iter_bytes())

        if self._is_not_closed():
            return True

        self._fail_the_connection()
        return False

    def _prepare_headers(self) -> dict[str, str]:
        headers = {
            "Accept": EVENT_STREAM,
            "Cache-Control": CACHE_NO_STORE,
        }
        if self._last_event_id:
            headers[LAST_EVENT_ID_HEADER] = self._last_event_id
        return headers

    def _announce_the_connection(self) -> bool:
        return self._state.compare_and_set(ConnectionState.CONNECTING, ConnectionState.OPEN)

    def _is_not_closed(self) -> bool:
        return (
            self._state.compare_and_set(ConnectionState.OPEN, ConnectionState.CONNECTING)
            and not self._stop.is_set()
        )

    def _fail_the_connection(self) -> None:
        self._state.set(ConnectionState.CLOSED)
        self._stop.set()
        logger.info("EventSource for %s closed", self._url)

    def _update_reconnection_time(self, event: ServerEvent) -> None:
        if event.retry is not None and event.retry > 0:
            self._reconnection_time_ms = event.retry

    def _update_last_event_id(self, event: ServerEvent) -> None:
        self._last_event_id = event.id if event.id is not None else ""


class EventSourceBuilder:
    """
    Fluent construction of an EventSource.

    Example:
        >>> source = (
        ...     EventSourceBuilder("https://example.com/stream")
        ...     .with_reconnection_time(2, unit="s")
        ...     .build()
        ... )
    """

    def __init__(self, url: str, http_client: SseHttpClient | None = None) -> None:
        self._url = url
        self._http_client = http_client
        self._reconnection_time_ms: int | None = None
        self._close_timeout_s: float | None = None
        self._mapper: Mapper = pydantic_mapper

    def with_reconnection_time(
        self,
        value: int | float | timedelta,
        unit: Literal["ms", "s"] = "ms",
    ) -> EventSourceBuilder:
        """Set the initial reconnection time. Default is 500 milliseconds."""
        if isinstance(value, timedelta):
            millis = value.total_seconds() * 1000
        elif unit == "s":
            millis = value * 1000
        elif unit == "ms":
            millis = value
        else:
            raise ValueError(f"Unsupported unit {unit!r}; use 'ms' or 's'")
        self._reconnection_time_ms = int(millis)
        return self

    def with_mapper(self, mapper: Mapper) -> EventSourceBuilder:
        """Set the callable used by ServerEvent.parse_data(): ``mapper(data, target)``."""
        self._mapper = mapper
        return self

    def with_close_timeout(self, seconds: float) -> EventSourceBuilder:
        self._close_timeout_s = seconds
        return self

    def build(self) -> EventSource:
        config = SourceConfig.from_env_or_value(
            reconnection_time_ms=self._reconnection_time_ms,
            close_timeout_s=self._close_timeout_s,
        )
        return EventSource(self._url, http_client=self._http_client, config=config, mapper=self._mapper)


def sse(url: str, http_client: SseHttpClient | None = None) -> EventSourceBuilder:
    """Shortcut for ``EventSourceBuilder(url, http_client)``."""
    return EventSourceBuilder(url, http_client)
