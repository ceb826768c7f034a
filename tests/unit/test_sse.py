import io

import httpx
import pytest

from sse_eventsource._dispatcher import EventDispatcher
from sse_eventsource._errors import TransportError
from sse_eventsource._event import ServerEvent
from sse_eventsource._sse import EventParser, iter_lines, iter_sse_events_from_text


class Recorder:
    def __init__(self) -> None:
        self.events: list[ServerEvent] = []
        self.exceptions: list[BaseException] = []
        self.completed = 0

    def on_complete(self) -> None:
        self.completed += 1


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def parser(recorder: Recorder) -> EventParser:
    dispatcher = EventDispatcher()
    dispatcher.register(recorder.events.append, recorder.exceptions.append, recorder.on_complete)
    return EventParser(dispatcher)


def as_stream(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode("utf-8"))


class ClosableChunks:
    """Iterable of byte chunks that counts close() calls and can fail mid-read."""

    def __init__(self, chunks: list[bytes], fail_with: Exception | None = None) -> None:
        self._chunks = chunks
        self._fail_with = fail_with
        self.close_calls = 0

    def __iter__(self):
        yield from self._chunks
        if self._fail_with is not None:
            raise self._fail_with

    def close(self) -> None:
        self.close_calls += 1


def test_iter_sse_events() -> None:
    text = "data: {\"a\":1}\n\n\ndata: [DONE]\n\n"
    events = list(iter_sse_events_from_text(text))
    assert events[0].data == "{\"a\":1}"
    # The extra blank line dispatches an empty event
    assert events[1] == ServerEvent()
    assert events[2].data == "[DONE]"


def test_iter_sse_events_drops_unterminated_event() -> None:
    events = list(iter_sse_events_from_text("data: one\n\ndata: two\n"))
    assert [e.data for e in events] == ["one"]


def test_empty_stream_dispatches_nothing(parser, recorder):
    parser.parse(as_stream(""))

    assert recorder.events == []
    assert recorder.completed == 1


def test_none_stream_returns_without_completion(parser, recorder):
    parser.parse(None)

    assert recorder.events == []
    assert recorder.exceptions == []
    assert recorder.completed == 0


def test_single_data_line(parser, recorder):
    parser.parse(as_stream("data:test event data\n\n"))

    assert recorder.events == [ServerEvent(data="test event data")]
    event = recorder.events[0]
    assert event.name is None
    assert event.id is None
    assert event.retry is None


def test_one_leading_space_is_stripped(parser, recorder):
    parser.parse(as_stream("data: test event data\n\ndata:   test event data\n\n"))

    assert [e.data for e in recorder.events] == ["test event data", "  test event data"]


def test_field_name_without_value(parser, recorder):
    parser.parse(as_stream("event:\n\nevent\n\n"))

    assert recorder.events == [ServerEvent(name=""), ServerEvent(name="")]


def test_null_character_in_id_is_ignored(parser, recorder):
    parser.parse(as_stream("id:\0\ndata: test\n\n"))

    assert recorder.events == [ServerEvent(data="test")]


def test_all_fields(parser, recorder):
    stream = as_stream(
        "event: stock\n"
        "id: 1\n"
        "retry: 2000\n"
        "data: {\"symbol\":\"MSFT\",\"price\":15,\"delta\":\"2\"}\n"
        "\n"
    )

    parser.parse(stream)

    assert recorder.events == [
        ServerEvent(id="1", name="stock", data="{\"symbol\":\"MSFT\",\"price\":15,\"delta\":\"2\"}", retry=2000)
    ]


def test_unknown_fields_and_comments_are_ignored(parser, recorder):
    stream = as_stream(
        ": keep-alive\n"
        "event: stock\n"
        "symbol: MSFT\n"
        "Data: shouted\n"
        "id: 1\n"
        "data: payload\n"
        "\n"
    )

    parser.parse(stream)

    assert recorder.events == [ServerEvent(id="1", name="stock", data="payload")]


def test_multi_line_data_is_joined(parser, recorder):
    parser.parse(as_stream("data: {\"symbol\":\"MSFT\",\ndata:  \"price\":15}\n\n"))

    assert recorder.events[0].data == "{\"symbol\":\"MSFT\",\n \"price\":15}"


def test_two_events(parser, recorder):
    stream = as_stream("id: 1\nevent: stock\ndata: first\n\nid: 2\nevent: stock\ndata: second\n\n")

    parser.parse(stream)

    assert recorder.events == [
        ServerEvent(id="1", name="stock", data="first"),
        ServerEvent(id="2", name="stock", data="second"),
    ]
    assert recorder.completed == 1


def test_partial_event_at_end_is_not_dispatched(parser, recorder):
    parser.parse(as_stream("data: complete\n\ndata: partial"))

    assert [e.data for e in recorder.events] == ["complete"]
    assert recorder.completed == 1


def test_stream_is_closed_after_parsing(parser):
    stream = as_stream("data: a\n\n")

    parser.parse(stream)

    assert stream.closed


def test_crlf_and_cr_line_endings(parser, recorder):
    parser.parse(as_stream("data: a\r\n\r\ndata: b\r\rdata: c\n\n"))

    assert [e.data for e in recorder.events] == ["a", "b", "c"]


def test_chunks_split_inside_crlf_and_multibyte_char(parser, recorder):
    payload = "data: café\r\n\r\n".encode("utf-8")
    # Split between the two bytes of "é" and between CR and LF
    split_char = payload.index(b"\xa9")
    chunks = [payload[:split_char], payload[split_char:split_char + 1], payload[split_char + 1:-3], payload[-3:]]

    parser.parse(ClosableChunks([c for c in chunks if c]))

    assert recorder.events == [ServerEvent(data="café")]


def test_iter_lines_keeps_trailing_partial_line():
    assert list(iter_lines([b"a\nb\r", b"\nc"])) == ["a", "b", "c"]


def test_read_failure_reports_exception_and_releases_stream(parser, recorder):
    stream = ClosableChunks([b"data: a\n\n", b"data: b\n"], fail_with=httpx.ReadError("connection reset"))

    parser.parse(stream)

    assert [e.data for e in recorder.events] == ["a"]
    assert len(recorder.exceptions) == 1
    error = recorder.exceptions[0]
    assert isinstance(error, TransportError)
    assert isinstance(error.__cause__, httpx.ReadError)
    assert recorder.completed == 0
    assert stream.close_calls == 1


def test_os_error_is_reported(parser, recorder):
    stream = ClosableChunks([], fail_with=OSError("broken pipe"))

    parser.parse(stream)

    assert len(recorder.exceptions) == 1
    assert "broken pipe" in str(recorder.exceptions[0])
    assert stream.close_calls == 1


def test_stream_closed_once_on_success(parser):
    stream = ClosableChunks([b"data: a\n\n"])

    parser.parse(stream)

    assert stream.close_calls == 1


def test_oversized_retry_does_not_abort_parsing(parser, recorder):
    parser.parse(as_stream("retry:" + "9" * 5000 + "\ndata: a\n\n"))

    assert recorder.events == [ServerEvent(data="a")]
    assert recorder.exceptions == []
    assert recorder.completed == 1
