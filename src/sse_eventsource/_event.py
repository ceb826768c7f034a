"""
Event value delivered to subscribers and the mutable builder the parser fills.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, TypeVar

from pydantic import TypeAdapter, ValidationError

from sse_eventsource._errors import DataMappingError

T = TypeVar("T")

Mapper = Callable[[str, Any], Any]


@lru_cache(maxsize=128)
def _cached_adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _adapter(target: Any) -> TypeAdapter[Any]:
    try:
        hash(target)
    except TypeError:
        return TypeAdapter(target)
    return _cached_adapter(target)


def pydantic_mapper(data: str, target: Any) -> Any:
    """Default mapper: validate the JSON text against ``target`` with pydantic."""
    try:
        return _adapter(target).validate_json(data)
    except ValidationError as e:
        raise DataMappingError(data=data, target=target, reason=str(e)) from e


@dataclass(frozen=True, slots=True)
class ServerEvent:
    """
    A single Server-Sent Event.

    ``data`` holds every ``data:`` line of the event joined by ``"\\n"``.
    ``retry`` is the reconnection time the server asked for, in milliseconds,
    or None when the event carried no valid ``retry:`` field.
    """

    id: str | None = None
    name: str | None = None
    data: str = ""
    retry: int | None = None

    mapper: Mapper = field(default=pydantic_mapper, compare=False, repr=False)

    def parse_data(self, target: type[T]) -> T:
        """
        Map the event data (JSON text) onto ``target``.

        Args:
            target: Pydantic model, dataclass, TypedDict or any type pydantic understands,
                unless a custom mapper was configured.

        Returns:
            The decoded value.

        Raises:
            DataMappingError: If the data cannot be converted.
        """
        try:
            return self.mapper(self.data, target)
        except DataMappingError:
            raise
        except (TypeError, ValueError) as e:
            raise DataMappingError(data=self.data, target=target, reason=str(e)) from e


class EventBuilder:
    """Accumulates the fields of the event currently being read."""

    __slots__ = ("id", "name", "data", "retry", "_mapper")

    def __init__(self, mapper: Mapper = pydantic_mapper) -> None:
        self._mapper = mapper
        self.id: str | None = None
        self.name: str | None = None
        self.data: str | None = None
        self.retry: int | None = None

    def append_data(self, value: str) -> None:
        if self.data is not None:
            self.data = f"{self.data}\n{value}"
        else:
            self.data = value

    def build(self) -> ServerEvent:
        return ServerEvent(
            id=self.id,
            name=self.name,
            data=self.data if self.data is not None else "",
            retry=self.retry,
            mapper=self._mapper,
        )

    def reset(self) -> None:
        self.id = None
        self.name = None
        self.data = None
        self.retry = None
