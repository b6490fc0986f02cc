from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

import httpx

from apistress.runtime.config import Body, HttpMethod

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOutcome:
    """The normalised result of one request attempt."""

    success: bool
    status_code: int
    response_time_ms: int
    size_bytes: int = 0
    error_label: Optional[str] = None


class Executor(Protocol):
    async def execute(
        self,
        method: HttpMethod,
        endpoint: str,
        headers: Mapping[str, str],
        body: Optional[Body],
        timeout_ms: int,
    ) -> RequestOutcome:
        ...


# Order matters: more specific httpx exceptions first.
_ERROR_LABELS: tuple[tuple[type[Exception], str], ...] = (
    (httpx.TimeoutException, "timeout"),
    (httpx.ConnectError, "connect_error"),
    (httpx.ReadError, "read_error"),
    (httpx.WriteError, "write_error"),
    (httpx.RemoteProtocolError, "protocol_error"),
    (httpx.LocalProtocolError, "protocol_error"),
    (httpx.UnsupportedProtocol, "invalid_url"),
    (httpx.TransportError, "transport_error"),
    (httpx.HTTPError, "http_error"),
    (httpx.InvalidURL, "invalid_url"),
)


def error_label_for(exc: Exception) -> str:
    for exc_type, label in _ERROR_LABELS:
        if isinstance(exc, exc_type):
            return label
    return "unexpected_error"


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000.0))


def _body_kwargs(body: Optional[Body]) -> dict[str, Any]:
    if body is None:
        return {}
    if isinstance(body, (str, bytes)):
        return {"content": body}
    return {"json": body}


class RequestExecutor:
    """
    Sends single HTTP requests through one shared httpx.AsyncClient.

    execute() never raises: a received response of any status is a
    success, anything that prevented a response is captured as an
    error label with status code 0.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        client_kwargs: dict[str, Any] = {}
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(
        self,
        method: HttpMethod,
        endpoint: str,
        headers: Mapping[str, str],
        body: Optional[Body],
        timeout_ms: int,
    ) -> RequestOutcome:
        verb = getattr(method, "value", method)
        start = time.perf_counter()
        try:
            response = await self._client.request(
                HttpMethod.parse(method).value,
                endpoint,
                headers=dict(headers),
                timeout=timeout_ms / 1000.0,
                **_body_kwargs(body),
            )
        except Exception as exc:
            latency_ms = _elapsed_ms(start)
            label = error_label_for(exc)
            if label == "unexpected_error":
                log.exception("Unexpected error sending %s %s", verb, endpoint)
            else:
                log.debug("%s %s failed after %dms: %s (%s)", verb, endpoint, latency_ms, label, exc)
            return RequestOutcome(
                success=False,
                status_code=0,
                response_time_ms=latency_ms,
                size_bytes=0,
                error_label=label,
            )

        latency_ms = _elapsed_ms(start)
        return RequestOutcome(
            success=True,
            status_code=response.status_code,
            response_time_ms=latency_ms,
            size_bytes=len(response.content or b""),
        )
