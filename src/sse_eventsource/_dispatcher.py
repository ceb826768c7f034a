from __future__ import annotations

import logging
import threading
from typing import Callable

from sse_eventsource._event import ServerEvent

logger = logging.getLogger(__name__)

EventConsumer = Callable[[ServerEvent], object]
ExceptionConsumer = Callable[[BaseException], object]
CompleteCallback = Callable[[], object]


class EventDispatcher:
    """
    Fans out events, errors and end-of-stream notifications to subscribers.

    Subscriber lists are copy-on-write: register() swaps in a new tuple under a
    lock, and delivery iterates whatever tuple was current when it began. This
    makes it safe to register from any thread, including from inside a callback.
    A raising subscriber is logged and skipped; the rest still get the call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event_consumers: tuple[EventConsumer, ...] = ()
        self._exception_consumers: tuple[ExceptionConsumer, ...] = ()
        self._complete_callbacks: tuple[CompleteCallback, ...] = ()

    def register(
        self,
        on_event: EventConsumer | None,
        on_exception: ExceptionConsumer | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        with self._lock:
            if on_event is not None:
                self._event_consumers = (*self._event_consumers, on_event)
            if on_exception is not None:
                self._exception_consumers = (*self._exception_consumers, on_exception)
            if on_complete is not None:
                self._complete_callbacks = (*self._complete_callbacks, on_complete)

    def on_event(self, event: ServerEvent) -> None:
        for consumer in self._event_consumers:
            try:
                consumer(event)
            except Exception:
                logger.exception("Event subscriber %r failed", consumer)

    def on_exception(self, error: BaseException) -> None:
        for consumer in self._exception_consumers:
            try:
                consumer(error)
            except Exception:
                logger.exception("Exception subscriber %r failed", consumer)

    def on_complete(self) -> None:
        for callback in self._complete_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Completion callback %r failed", callback)
