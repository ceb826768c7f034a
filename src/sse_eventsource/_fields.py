"""
Decoding of single SSE field lines (``name:value``) into an EventBuilder.
Unknown or malformed fields are ignored, never raised.
"""

from __future__ import annotations

from typing import Callable

from sse_eventsource._event import EventBuilder

COLON = ":"
NULL_CHARACTER = "\0"

FieldDecoder = Callable[[str, EventBuilder], None]


def _decode_event(value: str, builder: EventBuilder) -> None:
    builder.name = value


def _decode_data(value: str, builder: EventBuilder) -> None:
    builder.append_data(value)


def _decode_id(value: str, builder: EventBuilder) -> None:
    if NULL_CHARACTER not in value:
        builder.id = value


def _decode_retry(value: str, builder: EventBuilder) -> None:
    # str.isdigit() also accepts superscripts and other unicode digits
    if not (value and value.isascii() and value.isdigit()):
        return
    try:
        builder.retry = int(value)
    except ValueError:
        # Longer than the interpreter's int-string conversion limit
        return


FIELD_DECODERS: dict[str, FieldDecoder] = {
    "event": _decode_event,
    "data": _decode_data,
    "id": _decode_id,
    "retry": _decode_retry,
}


def extract_field(line: str) -> tuple[str, str]:
    """
    Split a field line into its name and value.

    The name runs up to the first colon. Without a colon the whole line is the
    name and the value is empty. One leading space of the value is dropped.
    """
    name, colon, value = line.partition(COLON)
    if not colon:
        return line, ""
    if value.startswith(" "):
        value = value[1:]
    return name, value


def decode_line(line: str, builder: EventBuilder) -> None:
    """Fold one non-blank line into ``builder``."""
    if line.startswith(COLON):
        return

    name, value = extract_field(line)
    decoder = FIELD_DECODERS.get(name)
    if decoder is not None:
        decoder(value, builder)
