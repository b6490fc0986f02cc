import os
from pathlib import Path
from typing import Optional

from apistress.errors import ValidationError
from apistress.model import Body, Environment, HeadersBlock, Load, Target, TestFile
from apistress.runtime.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT_MS,
    HttpMethod,
    RunConfig,
)


def _where(node) -> str:
    test = getattr(node.root, "test", None)
    return f" (test '{test.display_name}')" if test is not None else ""


def resolve_ref(name: str, ctx: dict[str, str]) -> str:
    if name not in ctx:
        raise ValidationError(f"Reference '#{name}' not found.")
    return ctx[name]


def resolve_value_or_ref(vor, ctx: dict[str, str]) -> str:
    if vor is None:
        raise ValidationError("Missing value.")

    # REF branch
    ref = getattr(vor, "ref", None)
    if ref is not None:
        return resolve_ref(ref.name, ctx)

    # STRING branch, an empty string is a valid value here
    value = getattr(vor, "value", None)
    if value is not None:
        return value

    raise ValidationError("Invalid ValueOrRef: neither value nor ref set.")


def resolve_env(environment: Optional[Environment]) -> dict[str, str]:
    if environment is None:
        return {}

    resolved: dict[str, str] = {}
    for v in environment.envVars:
        key = v.value.key.strip('"')  # e.g. "API_TOKEN" -> API_TOKEN
        val = os.getenv(key)
        if val is None:
            raise ValidationError(
                f"Missing environment variable: {key}{_where(v)}\n"
                f"Expected in the environment or a .env file (cwd: {Path.cwd()})"
            )
        resolved[v.name] = val
    return resolved


def resolve_target(target: Optional[Target], ctx: dict[str, str]) -> Optional[str]:
    if target is None:
        return None
    if target.ref:
        return resolve_ref(target.ref.name, ctx)
    if target.value:
        return target.value.strip()
    return None


def resolve_headers(block: Optional[HeadersBlock], ctx: dict[str, str]) -> dict[str, str]:
    if block is None:
        return {}

    headers: dict[str, str] = {}
    for header in block.headers:
        if header.name in headers:
            raise ValidationError(f"Duplicate header: {header.name}{_where(header)}")
        headers[header.name] = resolve_value_or_ref(header.value, ctx)
    return headers


def resolve_body(body: Optional[Body], ctx: dict[str, str]) -> Optional[str]:
    if body is None:
        return None
    return resolve_value_or_ref(body.value, ctx)


def _load_settings(load: Optional[Load]) -> dict[str, int]:
    if load is None:
        return {}
    settings = {
        "total_requests": load.requests,
        "concurrency": DEFAULT_CONCURRENCY,
        "timeout_ms": DEFAULT_TIMEOUT_MS,
    }
    if load.concurrency is not None:
        settings["concurrency"] = load.concurrency.value
    if load.timeout is not None:
        settings["timeout_ms"] = load.timeout.total_milliseconds()
    return settings


def build_run_config(model: TestFile) -> RunConfig:
    if model.test is None:
        raise ValidationError("Invalid model: missing test block.")

    t = model.test
    ctx = resolve_env(t.environment)

    endpoint = resolve_target(t.target, ctx)
    if not endpoint:
        raise ValidationError("Endpoint is required")

    return RunConfig(
        endpoint=endpoint,
        method=HttpMethod.parse(t.method or HttpMethod.GET),
        headers=resolve_headers(t.headers, ctx),
        body=resolve_body(t.body, ctx),
        **_load_settings(t.load),
    )
