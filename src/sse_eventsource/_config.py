"""
Runtime settings for an event source.
Values can be passed explicitly or picked up from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

ENV_RECONNECTION_TIME = "SSE_RECONNECTION_TIME_MS"
ENV_CLOSE_TIMEOUT = "SSE_CLOSE_TIMEOUT_S"

DEFAULT_RECONNECTION_TIME_MS = 500
DEFAULT_CLOSE_TIMEOUT_S = 3.0


def _read_env_number(name: str, kind: type[int] | type[float]) -> int | float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return kind(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """
    Settings of one EventSource instance.

    reconnection_time_ms is only the starting value; the server can
    replace it at runtime with a ``retry:`` field.
    """

    reconnection_time_ms: int = DEFAULT_RECONNECTION_TIME_MS
    close_timeout_s: float = DEFAULT_CLOSE_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.reconnection_time_ms < 0:
            raise ValueError("reconnection_time_ms must be >= 0")
        if self.close_timeout_s < 0:
            raise ValueError("close_timeout_s must be >= 0")

    @staticmethod
    def from_env_or_value(
        reconnection_time_ms: int | None = None,
        close_timeout_s: float | None = None,
    ) -> SourceConfig:
        """
        Build a SourceConfig from explicit values, falling back to the environment.

        Args:
            reconnection_time_ms: Initial delay before reconnecting, in milliseconds.
            close_timeout_s: How long close() waits for the background worker.

        Returns:
            A validated SourceConfig. Missing values use the library defaults.

        Raises:
            ValueError: If a value is negative or an env var is not numeric.
        """
        if reconnection_time_ms is None:
            reconnection_time_ms = _read_env_number(ENV_RECONNECTION_TIME, int)
        if close_timeout_s is None:
            close_timeout_s = _read_env_number(ENV_CLOSE_TIMEOUT, float)

        return SourceConfig(
            reconnection_time_ms=(
                DEFAULT_RECONNECTION_TIME_MS if reconnection_time_ms is None else int(reconnection_time_ms)
            ),
            close_timeout_s=DEFAULT_CLOSE_TIMEOUT_S if close_timeout_s is None else float(close_timeout_s),
        )
