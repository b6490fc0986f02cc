import pytest
from textx.exceptions import TextXSyntaxError

from apistress.errors import ValidationError
from apistress.model import Test, TestFile
from apistress.parser.parse import parse_str
from apistress.runtime.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT_MS,
    HttpMethod,
    RunConfig,
)
from apistress.runtime.context import build_run_config, resolve_env, resolve_target

Test.__test__ = False
TestFile.__test__ = False


DSL = r'''
// orders endpoint under load
test "Hello DSL" {
  environment {
    baseUrl = env("BASE_URL")
    token = env("API_TOKEN")
  }

  target #baseUrl
  method POST

  headers {
    Authorization = #token
    Content-Type = "application/json"
  }

  body '{"sku": "A-1"}'

  load {
    requests 250
    concurrency 25
    timeout 5s
  }
}
'''

DSL_MINIMAL = r'''
test "minimal" {
  target "http://api.test/health"
  load {
    requests 10
  }
}
'''

DSL_NO_LOAD = r'''
test "no load" {
  target "http://api.test/health"
}
'''


def test_target_ref_resolves(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BASE_URL", "https://api.example.com/orders")
    monkeypatch.setenv("API_TOKEN", "Bearer abc")

    model: TestFile = parse_str(DSL)

    assert model.test is not None
    env_map = resolve_env(model.test.environment)

    assert env_map["baseUrl"] == "https://api.example.com/orders"
    assert env_map["token"] == "Bearer abc"

    target_url = resolve_target(model.test.target, env_map)
    assert target_url == "https://api.example.com/orders"


def test_full_definition_builds_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BASE_URL", "https://api.example.com/orders")
    monkeypatch.setenv("API_TOKEN", "Bearer abc")

    config = build_run_config(parse_str(DSL))

    assert config.endpoint == "https://api.example.com/orders"
    assert config.method is HttpMethod.POST
    assert config.headers == {
        "Authorization": "Bearer abc",
        "Content-Type": "application/json",
    }
    assert config.body == '{"sku": "A-1"}'
    assert config.total_requests == 250
    assert config.concurrency == 25
    assert config.timeout_ms == 5000


def test_defaults_apply_when_omitted():
    config = build_run_config(parse_str(DSL_MINIMAL))

    assert config.method is HttpMethod.GET
    assert config.headers == {}
    assert config.body is None
    assert config.total_requests == 10
    assert config.concurrency == DEFAULT_CONCURRENCY
    assert config.timeout_ms == DEFAULT_TIMEOUT_MS


def test_load_block_is_optional():
    config = build_run_config(parse_str(DSL_NO_LOAD))

    assert config.total_requests == 100
    assert config.effective_concurrency == DEFAULT_CONCURRENCY


@pytest.mark.parametrize(
    "timeout, expected_ms",
    [("250ms", 250), ("2s", 2000), ("1m", 60_000), ("3 s", 3000)],
)
def test_timeout_units(timeout, expected_ms):
    dsl = f'''
test "t" {{
  target "http://api.test"
  load {{
    requests 1
    timeout {timeout}
  }}
}}
'''
    assert build_run_config(parse_str(dsl)).timeout_ms == expected_ms


def test_missing_env_var_is_reported(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("BASE_URL", raising=False)
    monkeypatch.setenv("API_TOKEN", "x")

    with pytest.raises(ValidationError, match="BASE_URL"):
        build_run_config(parse_str(DSL))


def test_unknown_reference_is_reported():
    dsl = r'''
test "t" {
  target #nowhere
}
'''
    with pytest.raises(ValidationError, match="nowhere"):
        build_run_config(parse_str(dsl))


def test_duplicate_header_is_rejected():
    dsl = r'''
test "t" {
  target "http://api.test"
  headers {
    Accept = "a"
    Accept = "b"
  }
}
'''
    with pytest.raises(ValidationError, match=r"Duplicate header: Accept \(test 't'\)"):
        build_run_config(parse_str(dsl))


def test_zero_requests_is_rejected():
    dsl = r'''
test "t" {
  target "http://api.test"
  load {
    requests 0
  }
}
'''
    with pytest.raises(ValidationError, match="total_requests"):
        build_run_config(parse_str(dsl))


def test_zero_concurrency_is_rejected():
    dsl = r'''
test "t" {
  target "http://api.test"
  load {
    requests 5
    concurrency 0
  }
}
'''
    with pytest.raises(ValidationError, match="concurrency"):
        build_run_config(parse_str(dsl))


def test_explicit_concurrency_is_kept():
    dsl = r'''
test "t" {
  target "http://api.test"
  load {
    requests 5
    concurrency 1
  }
}
'''
    assert build_run_config(parse_str(dsl)).concurrency == 1


def test_unknown_method_is_a_syntax_error():
    dsl = r'''
test "t" {
  target "http://api.test"
  method TRACE
}
'''
    with pytest.raises(TextXSyntaxError):
        parse_str(dsl)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"endpoint": ""},
        {"endpoint": "   "},
        {"endpoint": "http://x", "total_requests": 0},
        {"endpoint": "http://x", "concurrency": -1},
        {"endpoint": "http://x", "timeout_ms": 0},
        {"endpoint": "http://x", "concurrency": True},
        {"endpoint": "http://x", "method": "HEAD"},
        {"endpoint": "http://x", "headers": {"X-Count": 1}},
    ],
)
def test_invalid_config_is_rejected(kwargs):
    with pytest.raises(ValidationError):
        RunConfig(**kwargs)


def test_config_normalises_method_and_concurrency():
    config = RunConfig(endpoint=" http://x ", method="delete", total_requests=3, concurrency=10)

    assert config.endpoint == "http://x"
    assert config.method is HttpMethod.DELETE
    assert config.effective_concurrency == 3
    assert config.timeout_seconds == 30.0
    assert config.to_metadata()["method"] == "DELETE"


def test_nodes_know_their_root():
    model = parse_str(DSL_MINIMAL)

    assert model.test.load.root is model
    assert model.test.display_name == "minimal"
