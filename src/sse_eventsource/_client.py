from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, ContextManager

import httpx

ENV_HTTP_DEBUG = "SSE_HTTP_DEBUG"

EVENT_STREAM = "text/event-stream"


@dataclass(frozen=True, slots=True)
class HttpConfig:
    # None disables the read timeout; event streams may stay idle for long periods
    timeout_s: float | None = None
    connect_timeout_s: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)
    transport: httpx.BaseTransport | None = None


def _redact_headers(headers: dict[str, Any]) -> dict[str, Any]:
    out = dict(headers)
    for k in ("authorization", "Authorization"):
        if k in out:
            out[k] = "***REDACTED***"
    return out


class SseHttpClient:
    """
    Thin httpx wrapper used by EventSource to open event streams.

    - GET requests streamed via httpx.Client.stream
    - Optional debug logging of requests/responses (SSE_HTTP_DEBUG=1)
    """

    def __init__(self, *, config: HttpConfig | None = None) -> None:
        self._config = config or HttpConfig()
        self._debug_http = os.getenv(ENV_HTTP_DEBUG, "").lower() in {"1", "true", "yes", "on"}

        def _log_request(request: httpx.Request) -> None:
            if not self._debug_http:
                return
            logging.warning("HTTPX REQUEST %s %s", request.method, request.url)
            logging.warning("HTTPX REQUEST headers=%s", _redact_headers(dict(request.headers)))

        def _log_response(response: httpx.Response) -> None:
            if not self._debug_http:
                return
            req = response.request
            logging.warning("HTTPX RESPONSE %s %s -> %s", req.method, req.url, response.status_code)
            logging.warning("HTTPX RESPONSE headers=%s", dict(response.headers))
            # Bodies are streamed to the parser; reading them here would block on the stream
            logging.warning("HTTPX RESPONSE body=(streamed; not auto-logged)")

        hooks: dict[str, list[Callable[..., Any]]] = {"request": [_log_request], "response": [_log_response]}

        self._client = httpx.Client(
            timeout=httpx.Timeout(self._config.timeout_s, connect=self._config.connect_timeout_s),
            headers=self._config.headers,
            transport=self._config.transport,
            event_hooks=hooks,
        )

    def close(self) -> None:
        self._client.close()

    def stream_get(self, url: str, *, headers: dict[str, str]) -> ContextManager[httpx.Response]:
        """
        Return an httpx stream context manager for a GET request.

        Usage:
            with client.stream_get(url, headers=...) as r:
                for chunk in r.iter_bytes():
                    ...
        """
        return self._client.stream("GET", url, headers=headers)
