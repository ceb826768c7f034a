from dataclasses import FrozenInstanceError, dataclass

import pytest
from pydantic import BaseModel

from sse_eventsource._errors import DataMappingError
from sse_eventsource._event import EventBuilder, ServerEvent


class User(BaseModel):
    name: str
    age: int


@dataclass
class Quote:
    symbol: str
    price: int


def test_parse_data_into_pydantic_model():
    event = ServerEvent(data='{"name": "name", "age": 18}')

    assert event.parse_data(User) == User(name="name", age=18)


def test_parse_data_into_dataclass_and_builtin_types():
    assert ServerEvent(data='{"symbol": "MSFT", "price": 15}').parse_data(Quote) == Quote("MSFT", 15)
    assert ServerEvent(data="[1, 2, 3]").parse_data(list[int]) == [1, 2, 3]


def test_parse_data_raises_mapping_error():
    event = ServerEvent(data="not json")

    with pytest.raises(DataMappingError) as exc:
        event.parse_data(User)

    assert exc.value.data == "not json"
    assert exc.value.target is User
    assert "User" in str(exc.value)


def test_custom_mapper_is_used_and_ignored_by_equality():
    calls = []

    def mapper(data, target):
        calls.append((data, target))
        return target(data.upper())

    event = ServerEvent(data="abc", mapper=mapper)

    assert event.parse_data(str) == "ABC"
    assert calls == [("abc", str)]
    assert event == ServerEvent(data="abc")


def test_custom_mapper_value_error_is_wrapped():
    def mapper(data, target):
        raise ValueError("bad payload")

    with pytest.raises(DataMappingError) as exc:
        ServerEvent(data="x", mapper=mapper).parse_data(dict)

    assert exc.value.reason == "bad payload"


def test_server_event_is_immutable():
    event = ServerEvent(data="x")

    with pytest.raises(FrozenInstanceError):
        event.data = "y"


def test_builder_build_and_reset():
    builder = EventBuilder()
    builder.id = "1"
    builder.name = "stock"
    builder.append_data("a")
    builder.append_data("b")
    builder.retry = 10

    assert builder.build() == ServerEvent(id="1", name="stock", data="a\nb", retry=10)

    builder.reset()

    assert builder.build() == ServerEvent()


def test_builder_passes_mapper_to_events():
    def mapper(data, target):
        return "mapped"

    builder = EventBuilder(mapper)

    assert builder.build().parse_data(dict) == "mapped"


def test_default_mapper_reuses_adapters():
    from sse_eventsource._event import _cached_adapter

    _cached_adapter.cache_clear()
    ServerEvent(data='{"name": "a", "age": 1}').parse_data(User)
    ServerEvent(data='{"name": "b", "age": 2}').parse_data(User)

    info = _cached_adapter.cache_info()
    assert info.misses == 1
    assert info.hits == 1
