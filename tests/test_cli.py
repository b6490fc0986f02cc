import httpx
import pytest

from apistress import cli

DSL = r'''
test "cli" {
  environment {
    base = env("APISTRESS_TEST_URL")
  }
  target #base
  load {
    requests 4
    concurrency 2
  }
}
'''


@pytest.fixture
def mocked_network(monkeypatch: pytest.MonkeyPatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    original = cli.run_config_async

    async def with_transport(config, **kwargs):
        return await original(config, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(cli, "run_config_async", with_transport)


def _main(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def test_run_writes_report(tmp_path, monkeypatch, capsys, mocked_network):
    monkeypatch.chdir(tmp_path)
    # registered so the value loaded from .env is removed again on teardown
    monkeypatch.setenv("APISTRESS_TEST_URL", "")
    monkeypatch.delenv("APISTRESS_TEST_URL")
    (tmp_path / ".env").write_text("APISTRESS_TEST_URL=http://api.test/ping\n", encoding="utf-8")
    run_file = tmp_path / "ping.st"
    run_file.write_text(DSL, encoding="utf-8")
    reports = tmp_path / "out"

    code = _main(["run", str(run_file), "--reports-dir", str(reports), "--quiet"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Result: PASS" in out
    assert "Report saved to" in out
    assert len(list(reports.glob("stress-test-report-*.md"))) == 1

    assert _main(["reports", "--reports-dir", str(reports)]) == 0
    assert "stress-test-report-" in capsys.readouterr().out


def test_run_without_report(tmp_path, monkeypatch, mocked_network):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("APISTRESS_TEST_URL", "http://api.test/ping")
    monkeypatch.setenv("APISTRESS_REPORTS_DIR", str(tmp_path / "reports"))
    run_file = tmp_path / "ping.st"
    run_file.write_text(DSL, encoding="utf-8")

    assert _main(["run", str(run_file), "--no-report", "--quiet"]) == 0
    assert not (tmp_path / "reports").exists()


def test_missing_file_exits_2(tmp_path, capsys):
    assert _main(["run", str(tmp_path / "missing.st")]) == 2
    assert "File not found" in capsys.readouterr().err


def test_missing_env_var_exits_2(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("APISTRESS_TEST_URL", raising=False)
    run_file = tmp_path / "ping.st"
    run_file.write_text(DSL, encoding="utf-8")

    assert _main(["run", str(run_file), "--quiet"]) == 2
    assert "APISTRESS_TEST_URL" in capsys.readouterr().err


def test_reports_on_empty_directory(tmp_path, capsys):
    assert _main(["reports", "--reports-dir", str(tmp_path / "none")]) == 0
    assert "No reports" in capsys.readouterr().out
