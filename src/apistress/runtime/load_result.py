from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from apistress.runtime.config import RunConfig
from apistress.runtime.controller import RunRecord
from apistress.runtime.metrics import RunSummary


class Color:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    DIM = "\033[2m"


def _ms(value: Optional[int]) -> str:
    return "n/a" if value is None else f"{value}"


@dataclass
class StressTestResult:
    """
    Final terminal report for a stress test run.

    Wraps the RunRecord produced by the controller.
    """

    test_name: str
    record: RunRecord

    @property
    def summary(self) -> RunSummary:
        return self.record.summary

    @property
    def config(self) -> RunConfig:
        return self.record.config

    @property
    def stopped(self) -> bool:
        return self.summary.stopped

    @property
    def success(self) -> bool:
        return self.summary.failed_requests == 0 and not self.stopped

    @property
    def total_requests(self) -> int:
        return self.summary.total_requests

    @property
    def failed(self) -> int:
        return self.summary.failed_requests

    def _render_header(self) -> list[str]:
        c = self.config
        return [
            f"{Color.BOLD}{Color.CYAN}apistress Stress Test Report{Color.RESET}",
            f"Test: {Color.BOLD}{self.test_name}{Color.RESET}",
            f"Target: {c.method.value} {c.endpoint}",
            f"Requests: {c.total_requests} "
            f"{Color.DIM}|{Color.RESET} Concurrency: {c.effective_concurrency} "
            f"{Color.DIM}|{Color.RESET} Timeout: {c.timeout_ms}ms",
            "",
        ]

    def _render_throughput(self) -> list[str]:
        s = self.summary
        return [
            f"{Color.BOLD}Throughput:{Color.RESET}",
            f"  Completed:      {s.total_requests:,}",
            f"  Total time:     {s.total_time:,}ms",
            f"  Requests/sec:   {s.requests_per_second:.2f}",
            "",
        ]

    def _render_latency(self) -> list[str]:
        s = self.summary
        return [
            f"{Color.BOLD}Latency (ms):{Color.RESET}",
            f"  Min: {_ms(s.min_response_time):<8} "
            f"Avg: {s.avg_response_time:<8.2f} "
            f"Max: {_ms(s.max_response_time):<8}",
            f"  p50: {_ms(s.p50):<8} "
            f"p90: {_ms(s.p90):<8} "
            f"p95: {_ms(s.p95):<8} "
            f"p99: {_ms(s.p99):<8}",
            "",
        ]

    def _render_success(self) -> list[str]:
        s = self.summary
        color = Color.GREEN if s.failed_requests == 0 else Color.RED
        return [
            f"{Color.BOLD}Success rate:{Color.RESET}",
            f"  {color}{s.success_rate:.2f}%{Color.RESET} "
            f"({s.successful_requests:,} ok, {s.failed_requests:,} failed)",
            "",
        ]

    def _render_table(self, title: str, counts: dict[str, int]) -> list[str]:
        if not counts:
            return []
        width = max(max(len(key) for key in counts), 8)
        lines = [f"{Color.BOLD}{title}:{Color.RESET}"]
        for key, count in counts.items():
            lines.append(f"  {key:<{width}}  {count:>6,}")
        lines.append("")
        return lines

    def _render_result_line(self) -> list[str]:
        if self.stopped:
            return [f"{Color.BOLD}{Color.YELLOW}Result: STOPPED{Color.RESET}"]
        if self.success:
            return [f"{Color.BOLD}{Color.GREEN}Result: PASS{Color.RESET}"]
        return [f"{Color.BOLD}{Color.RED}Result: FAIL{Color.RESET}"]

    def __str__(self) -> str:
        parts: list[str] = []
        parts += self._render_header()
        parts += self._render_throughput()
        parts += self._render_latency()
        parts += self._render_success()
        parts += self._render_table("Status codes", self.summary.status_codes)
        parts += self._render_table("Errors", self.summary.errors)
        parts += self._render_result_line()
        return "\n".join(parts)
