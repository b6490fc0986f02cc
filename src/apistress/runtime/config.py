from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from apistress.errors import ValidationError

Body = Union[str, bytes, Mapping[str, Any], list]

DEFAULT_TOTAL_REQUESTS = 100
DEFAULT_CONCURRENCY = 10
DEFAULT_TIMEOUT_MS = 30_000


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Unsupported method {value!r}, expected one of: {allowed}") from None


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable description of one stress test run.

    Validated on construction so a bad config is rejected before
    the scheduler issues anything.
    """

    endpoint: str
    method: HttpMethod = HttpMethod.GET
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Body] = None
    total_requests: int = DEFAULT_TOTAL_REQUESTS
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if not isinstance(self.endpoint, str) or not self.endpoint.strip():
            raise ValidationError("Endpoint is required")
        object.__setattr__(self, "endpoint", self.endpoint.strip())
        object.__setattr__(self, "method", HttpMethod.parse(self.method))
        object.__setattr__(self, "headers", dict(self.headers or {}))
        for name, value in self.headers.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise ValidationError(f"Header {name!r} must map a string to a string")
        _require_positive("total_requests", self.total_requests)
        _require_positive("concurrency", self.concurrency)
        _require_positive("timeout_ms", self.timeout_ms)

    @property
    def effective_concurrency(self) -> int:
        return min(self.concurrency, self.total_requests)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def to_metadata(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "method": self.method.value,
            "headers": dict(self.headers),
            "totalRequests": self.total_requests,
            "concurrency": self.concurrency,
            "timeoutMs": self.timeout_ms,
        }


def _require_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")
