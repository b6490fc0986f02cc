# src/apistress/cli.py
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from textx.exceptions import TextXError

from .errors import StressError
from .parser.parse import parse_file
from .report import ReportStore
from .runtime.config import RunConfig
from .runtime.context import build_run_config
from .runtime.load_result import StressTestResult
from .runtime.metrics import ProgressSnapshot
from .runtime.progress import ProgressBroadcaster
from .runtime.runner import run_config_async
from .settings import Settings

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="apistress", description="HTTP endpoint stress tester")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a stress test file")
    run.add_argument("file", type=Path, help="Run definition (.st)")
    run.add_argument("--env", type=Path, default=None, help="Path to a .env file")
    run.add_argument("--reports-dir", type=Path, default=None)
    run.add_argument("--no-report", action="store_true", help="Do not write a Markdown report")
    run.add_argument("--quiet", action="store_true", help="Hide the live progress line")

    reports = sub.add_parser("reports", help="List stored reports, newest first")
    reports.add_argument("--reports-dir", type=Path, default=None)
    return parser


def _configure_logging(settings: Settings, verbose: int) -> None:
    level = settings.log_level
    if verbose == 1:
        level = min(level, logging.INFO)
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_env(env: Optional[Path]) -> None:
    if env is None:
        dotenv_path = Path.cwd() / ".env"
        if dotenv_path.exists():
            load_dotenv(dotenv_path=dotenv_path, override=False)
        return
    env = env.resolve()
    if not env.exists():
        print(f"Env file not found: {env}", file=sys.stderr)
        raise SystemExit(2)
    load_dotenv(dotenv_path=env, override=False)
    log.debug("Loaded environment from %s", env)


def _format_progress(snapshot: ProgressSnapshot) -> str:
    return (
        f"\r{snapshot.completed}/{snapshot.total} ({snapshot.percentage:.1f}%) "
        f"ok {snapshot.success_count} fail {snapshot.fail_count} "
        f"avg {snapshot.avg_response_time:.2f}ms rps {snapshot.current_rps:.2f}"
    )


async def _print_progress(queue: asyncio.Queue) -> None:
    printed = False
    while True:
        event = await queue.get()
        if event is None:
            break
        sys.stderr.write(_format_progress(event))
        sys.stderr.flush()
        printed = True
    if printed:
        sys.stderr.write("\n")


async def _run_with_progress(config: RunConfig, test_name: str, quiet: bool) -> StressTestResult:
    broadcaster = ProgressBroadcaster()
    printer = None
    if not quiet:
        printer = asyncio.create_task(_print_progress(broadcaster.subscribe()))
    try:
        return await run_config_async(
            config,
            test_name=test_name,
            publisher=broadcaster,
            stop_on_interrupt=True,
        )
    finally:
        broadcaster.close()
        if printer is not None:
            await printer


def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    path = args.file.resolve()
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return 2
    model = parse_file(path)
    config = build_run_config(model)
    result = asyncio.run(_run_with_progress(config, model.test.display_name, args.quiet))
    print(result)

    if not args.no_report:
        store = ReportStore(args.reports_dir or settings.reports_dir)
        info = store.generate(result.record)
        print(f"\nReport saved to {info.path}")
    return 0 if result.success else 1


def _cmd_reports(args: argparse.Namespace, settings: Settings) -> int:
    store = ReportStore(args.reports_dir or settings.reports_dir)
    reports = store.list_reports()
    if not reports:
        print(f"No reports in {store.directory}")
        return 0
    for info in reports:
        print(f"{info.created:%Y-%m-%d %H:%M:%S}  {info.name}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        _load_env(args.env)
    settings = Settings.from_env()
    _configure_logging(settings, args.verbose)

    try:
        if args.command == "run":
            code = _cmd_run(args, settings)
        else:
            code = _cmd_reports(args, settings)
    except (StressError, TextXError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
