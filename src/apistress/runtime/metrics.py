from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from apistress.runtime.executor import RequestOutcome

NO_RESPONSE = "No Response"

PERCENTILES: tuple[tuple[str, float], ...] = (
    ("p50", 0.5),
    ("p90", 0.9),
    ("p95", 0.95),
    ("p99", 0.99),
)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Live progress of a run, published after every recorded outcome."""

    completed: int
    total: int
    percentage: float
    success_count: int
    fail_count: int
    avg_response_time: float
    current_rps: float
    elapsed_time: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "completed": self.completed,
            "total": self.total,
            "percentage": f"{self.percentage:.1f}",
            "successCount": self.success_count,
            "failCount": self.fail_count,
            "avgResponseTime": f"{self.avg_response_time:.2f}",
            "currentRPS": f"{self.current_rps:.2f}",
            "elapsedTime": self.elapsed_time,
        }


@dataclass(frozen=True)
class RunSummary:
    """Aggregate metrics for one finished (or stopped) run."""

    total_time: int
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float
    avg_response_time: float
    min_response_time: Optional[int]
    max_response_time: Optional[int]
    requests_per_second: float
    p50: Optional[int]
    p90: Optional[int]
    p95: Optional[int]
    p99: Optional[int]
    status_codes: dict[str, int] = field(default_factory=dict)
    errors: dict[str, int] = field(default_factory=dict)
    stopped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTime": self.total_time,
            "totalRequests": self.total_requests,
            "successfulRequests": self.successful_requests,
            "failedRequests": self.failed_requests,
            "successRate": f"{self.success_rate:.2f}",
            "avgResponseTime": f"{self.avg_response_time:.2f}",
            "minResponseTime": self.min_response_time,
            "maxResponseTime": self.max_response_time,
            "requestsPerSecond": f"{self.requests_per_second:.2f}",
            "p50": self.p50,
            "p90": self.p90,
            "p95": self.p95,
            "p99": self.p99,
            "statusCodes": dict(self.status_codes),
            "errors": dict(self.errors),
            "stopped": self.stopped,
        }


def percentile_index(length: int, fraction: float) -> int:
    """
    Index of the nearest-rank percentile in a sorted sequence of *length* items.
    Clamped to the last valid index so fraction * length == length never reads past the end.
    """
    if length <= 0:
        raise ValueError("percentile of an empty sequence")
    return min(math.floor(length * fraction), length - 1)


def percentile(sorted_values: Sequence[int], fraction: float) -> Optional[int]:
    if not sorted_values:
        return None
    return sorted_values[percentile_index(len(sorted_values), fraction)]


def _rate_per_second(count: int, elapsed_ms: float) -> float:
    if elapsed_ms <= 0:
        return 0.0
    return round(count / elapsed_ms * 1000.0, 2)


class StatsAccumulator:
    """
    Folds request outcomes into running totals for one run.

    Not locked: all outcomes are recorded from the scheduler's completion
    path on a single event loop, which serialises the calls.
    """

    def __init__(self, total_requests: int) -> None:
        self._total = total_requests
        self._outcomes: list[RequestOutcome] = []
        self._response_times: list[int] = []
        self._success_count = 0
        self._time_sum = 0
        self._time_min: Optional[int] = None
        self._time_max: Optional[int] = None

    @property
    def outcomes(self) -> list[RequestOutcome]:
        return self._outcomes

    @property
    def total(self) -> int:
        return self._total

    @property
    def count(self) -> int:
        return len(self._outcomes)

    @property
    def success_count(self) -> int:
        return self._success_count

    @property
    def fail_count(self) -> int:
        return self.count - self._success_count

    @property
    def average_response_time(self) -> float:
        if not self._outcomes:
            return 0.0
        return round(self._time_sum / len(self._outcomes), 2)

    def record(self, outcome: RequestOutcome) -> None:
        self._outcomes.append(outcome)
        elapsed = outcome.response_time_ms
        self._response_times.append(elapsed)
        self._time_sum += elapsed
        if outcome.success:
            self._success_count += 1
        if self._time_min is None or elapsed < self._time_min:
            self._time_min = elapsed
        if self._time_max is None or elapsed > self._time_max:
            self._time_max = elapsed

    def snapshot(self, elapsed_ms: int) -> ProgressSnapshot:
        completed = self.count
        percentage = round(completed / self._total * 100.0, 1) if self._total > 0 else 0.0
        return ProgressSnapshot(
            completed=completed,
            total=self._total,
            percentage=percentage,
            success_count=self._success_count,
            fail_count=self.fail_count,
            avg_response_time=self.average_response_time,
            current_rps=_rate_per_second(completed, elapsed_ms),
            elapsed_time=elapsed_ms,
        )

    def _histograms(self) -> tuple[dict[str, int], dict[str, int]]:
        status_codes: dict[str, int] = {}
        errors: dict[str, int] = {}
        for outcome in self._outcomes:
            code = str(outcome.status_code) if outcome.status_code else NO_RESPONSE
            status_codes[code] = status_codes.get(code, 0) + 1
            if outcome.error_label:
                errors[outcome.error_label] = errors.get(outcome.error_label, 0) + 1
        return status_codes, errors

    def finalize(self, total_elapsed_ms: int, stopped: bool = False) -> RunSummary:
        """
        Build the final summary. Reads the recorded state without changing it,
        so calling it twice on a finished run gives equal summaries.
        """
        total = self.count
        sorted_times = sorted(self._response_times)
        status_codes, errors = self._histograms()
        percentiles = {name: percentile(sorted_times, fraction) for name, fraction in PERCENTILES}
        success_rate = round(self._success_count / total * 100.0, 2) if total > 0 else 0.0

        return RunSummary(
            total_time=total_elapsed_ms,
            total_requests=total,
            successful_requests=self._success_count,
            failed_requests=total - self._success_count,
            success_rate=success_rate,
            avg_response_time=self.average_response_time,
            min_response_time=self._time_min,
            max_response_time=self._time_max,
            requests_per_second=_rate_per_second(total, total_elapsed_ms),
            p50=percentiles["p50"],
            p90=percentiles["p90"],
            p95=percentiles["p95"],
            p99=percentiles["p99"],
            status_codes=status_codes,
            errors=errors,
            stopped=stopped,
        )
