"""
Incremental parser for Server-Sent Events (SSE) streams.
Turns a byte stream into ServerEvent objects and hands them to a dispatcher.
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import Iterable, Iterator

import httpx

from sse_eventsource._dispatcher import EventDispatcher
from sse_eventsource._errors import TransportError
from sse_eventsource._event import EventBuilder, Mapper, ServerEvent, pydantic_mapper
from sse_eventsource._fields import decode_line

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _split_complete_lines(buffer: str, *, final: bool = False) -> tuple[list[str], str]:
    lines: list[str] = []
    start = 0
    for match in _LINE_BREAK.finditer(buffer):
        # A trailing CR may be the first half of a CRLF split across chunks
        if not final and match.group() == "\r" and match.end() == len(buffer):
            break
        lines.append(buffer[start:match.start()])
        start = match.end()
    return lines, buffer[start:]


def iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """
    Decode UTF-8 byte chunks and yield lines without their terminators.

    CRLF, LF and a lone CR all end a line. Chunk boundaries may fall anywhere,
    including inside a multi-byte character. Invalid bytes become U+FFFD.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in chunks:
        buffer += decoder.decode(chunk)
        lines, buffer = _split_complete_lines(buffer)
        yield from lines

    buffer += decoder.decode(b"", final=True)
    lines, rest = _split_complete_lines(buffer, final=True)
    yield from lines
    if rest:
        yield rest


def _iter_events(lines: Iterable[str], builder: EventBuilder) -> Iterator[ServerEvent]:
    for line in lines:
        if not line:
            event = builder.build()
            builder.reset()
            yield event
            continue
        decode_line(line, builder)
    # Whatever is left in the builder never saw its blank line and is dropped


def iter_sse_events_from_text(text: str) -> Iterator[ServerEvent]:
    """
    Parse SSE events from an already buffered text block.

    Args:
        text: The raw string containing one or multiple SSE events.

    Yields:
        ServerEvent objects, one per blank-line terminated event.
    """
    lines, rest = _split_complete_lines(text, final=True)
    if rest:
        lines.append(rest)
    yield from _iter_events(lines, EventBuilder())


def _release(stream: object) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        close()


class EventParser:
    """Reads an event stream to its end and reports what it finds to a dispatcher."""

    def __init__(self, listener: EventDispatcher, mapper: Mapper = pydantic_mapper) -> None:
        self._listener = listener
        self._mapper = mapper

    def parse(self, stream: Iterable[bytes] | None) -> None:
        """
        Consume ``stream`` and dispatch every complete event.

        Read failures are reported through the dispatcher's exception channel and
        never raised. The stream is closed on every path, if it has a close().
        """
        if stream is None:
            return

        try:
            for event in _iter_events(iter_lines(stream), EventBuilder(self._mapper)):
                self._listener.on_event(event)
        except (OSError, httpx.HTTPError, httpx.StreamError) as e:
            logger.error("Exception during processing the response body stream: %r", e)
            error = TransportError(message=str(e) or type(e).__name__)
            error.__cause__ = e
            self._listener.on_exception(error)
            return
        finally:
            _release(stream)

        self._listener.on_complete()
