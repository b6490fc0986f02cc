from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from apistress.errors import NoCompletedRun
from apistress.runtime.controller import RunRecord

log = logging.getLogger(__name__)

REPORT_PREFIX = "stress-test-report-"
REPORT_SUFFIX = ".md"


@dataclass(frozen=True)
class ReportInfo:
    name: str
    path: Path
    created: datetime


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _cell(value: Optional[object]) -> str:
    return "n/a" if value is None else str(value)


def _ms_cell(value: Optional[int]) -> str:
    return "n/a" if value is None else f"{value}ms"


def _count_rows(counts: dict[str, int]) -> list[str]:
    return [f"| {key} | {count} |" for key, count in counts.items()]


def render_report(record: RunRecord, generated_at: Optional[datetime] = None) -> str:
    """Render the Markdown report for one finished run."""
    config = record.config
    s = record.summary
    generated_at = generated_at or datetime.now(timezone.utc)

    lines = [
        "# API Stress Test Report",
        "",
        "## Test Configuration",
        "| Parameter | Value |",
        "|-----------|-------|",
        f"| Endpoint | `{config.endpoint}` |",
        f"| Method | {config.method.value} |",
        f"| Total Requests | {config.total_requests} |",
        f"| Concurrency | {config.concurrency} |",
        f"| Start Time | {_iso(record.started_at)} |",
        f"| End Time | {_iso(record.ended_at)} |",
        "",
        "## Summary Results",
        "",
        "### Performance Metrics",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Time | {s.total_time}ms |",
        f"| Requests/Second | {s.requests_per_second:.2f} |",
        f"| Avg Response Time | {s.avg_response_time:.2f}ms |",
        f"| Min Response Time | {_ms_cell(s.min_response_time)} |",
        f"| Max Response Time | {_ms_cell(s.max_response_time)} |",
        "",
        "### Response Time Percentiles",
        "| Percentile | Time (ms) |",
        "|------------|-----------|",
        f"| P50 (Median) | {_cell(s.p50)} |",
        f"| P90 | {_cell(s.p90)} |",
        f"| P95 | {_cell(s.p95)} |",
        f"| P99 | {_cell(s.p99)} |",
        "",
        "### Success Rate",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Successful Requests | {s.successful_requests} |",
        f"| Failed Requests | {s.failed_requests} |",
        f"| Success Rate | {s.success_rate:.2f}% |",
        "",
        "### Status Code Distribution",
        "| Status Code | Count |",
        "|-------------|-------|",
        *_count_rows(s.status_codes),
        "",
    ]
    if s.errors:
        lines += [
            "### Errors",
            "| Error | Count |",
            "|-------|-------|",
            *_count_rows(s.errors),
            "",
        ]
    if s.stopped:
        lines += ["> Run was stopped by request; in-flight requests were drained.", ""]
    lines += [
        "---",
        f"*Report generated at {_iso(generated_at)}*",
        "",
    ]
    return "\n".join(lines)


def report_filename(moment: datetime) -> str:
    stamp = _iso(moment).replace(":", "-").replace(".", "-")
    return f"{REPORT_PREFIX}{stamp}{REPORT_SUFFIX}"


class ReportStore:
    """Persists Markdown reports in one directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def generate(self, record: Optional[RunRecord], now: Optional[datetime] = None) -> ReportInfo:
        if record is None:
            raise NoCompletedRun()
        now = now or datetime.now(timezone.utc)
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._write_new(report_filename(now), render_report(record, generated_at=now))
        log.info("Report for run %s written to %s", record.run_id, path)
        return ReportInfo(name=path.name, path=path, created=now)

    def _write_new(self, name: str, text: str) -> Path:
        # Never overwrite: a name taken in the same millisecond gets a -1, -2, ... suffix.
        stem = name[: -len(REPORT_SUFFIX)]
        candidate, n = name, 1
        while True:
            path = self.directory / candidate
            try:
                with path.open("x", encoding="utf-8") as fh:
                    fh.write(text)
                return path
            except FileExistsError:
                candidate = f"{stem}-{n}{REPORT_SUFFIX}"
                n += 1

    def list_reports(self) -> list[ReportInfo]:
        if not self.directory.is_dir():
            return []
        reports = []
        for path in self.directory.glob(f"*{REPORT_SUFFIX}"):
            # Reports are written once, so mtime stands in for creation time.
            created = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            reports.append(ReportInfo(name=path.name, path=path, created=created))
        reports.sort(key=lambda r: (r.created, r.name), reverse=True)
        return reports
