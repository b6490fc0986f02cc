from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from apistress.errors import AlreadyRunning, NoActiveRun
from apistress.runtime.config import RunConfig
from apistress.runtime.executor import Executor, RequestExecutor, RequestOutcome
from apistress.runtime.metrics import RunSummary, StatsAccumulator
from apistress.runtime.progress import NullPublisher, ProgressPublisher
from apistress.runtime.scheduler import ConcurrencyScheduler, RunState

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunRecord:
    """A finished run, kept for reports and history."""

    run_id: str
    config: RunConfig
    summary: RunSummary
    started_at: datetime
    ended_at: datetime


@dataclass(eq=False)
class RunHandle:
    run_id: str
    config: RunConfig
    scheduler: ConcurrencyScheduler = field(default_factory=ConcurrencyScheduler)
    accumulator: Optional[StatsAccumulator] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_mono: float = field(default_factory=time.perf_counter)
    task: Optional[asyncio.Task] = None
    record: Optional[RunRecord] = None

    def __post_init__(self) -> None:
        if self.accumulator is None:
            self.accumulator = StatsAccumulator(self.config.total_requests)

    @property
    def state(self) -> RunState:
        return self.scheduler.state

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_mono) * 1000.0)


def _new_run_id() -> str:
    return uuid.uuid4().hex


class RunController:
    """
    Orchestrates stress test runs, one at a time.

    start() schedules the run on the running event loop and returns a
    handle; await_result() waits for it and returns the final summary.
    A progress snapshot is published after every recorded outcome.
    """

    def __init__(
        self,
        publisher: Optional[ProgressPublisher] = None,
        *,
        executor: Optional[Executor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._publisher: ProgressPublisher = publisher or NullPublisher()
        self._executor = executor
        self._transport = transport
        self._active: Optional[RunHandle] = None
        self._history: list[RunRecord] = []

    @property
    def active_run(self) -> Optional[RunHandle]:
        if self._active is not None and self._active.done:
            return None
        return self._active

    @property
    def history(self) -> list[RunRecord]:
        return list(self._history)

    @property
    def last_run(self) -> Optional[RunRecord]:
        return self._history[-1] if self._history else None

    def start(self, config: RunConfig) -> RunHandle:
        """Start a run. Must be called while an event loop is running."""
        active = self.active_run
        if active is not None:
            raise AlreadyRunning(active.run_id)

        loop = asyncio.get_running_loop()
        handle = RunHandle(run_id=_new_run_id(), config=config)
        handle.task = loop.create_task(self._execute(handle), name=f"run-{handle.run_id}")
        self._active = handle
        log.info(
            "Run %s started: %s %s, %d requests, concurrency %d",
            handle.run_id,
            config.method.value,
            config.endpoint,
            config.total_requests,
            config.effective_concurrency,
        )
        return handle

    def request_stop(self, handle: Optional[RunHandle] = None) -> None:
        active = self.active_run
        if active is None or (handle is not None and handle is not active):
            raise NoActiveRun()
        if not active.state.stop_requested:
            log.warning("Stop requested for run %s", active.run_id)
        active.scheduler.request_stop()

    async def await_result(self, handle: RunHandle) -> RunSummary:
        if handle.task is None:
            raise NoActiveRun()
        record = await handle.task
        return record.summary

    async def run(self, config: RunConfig) -> RunSummary:
        return await self.await_result(self.start(config))

    def _on_outcome(self, handle: RunHandle, outcome: RequestOutcome) -> None:
        handle.accumulator.record(outcome)
        snapshot = handle.accumulator.snapshot(handle.elapsed_ms())
        try:
            self._publisher.publish(snapshot)
        except Exception:
            log.exception("Progress publisher failed for run %s", handle.run_id)

    async def _execute(self, handle: RunHandle) -> RunRecord:
        def on_outcome(outcome: RequestOutcome) -> None:
            self._on_outcome(handle, outcome)

        try:
            if self._executor is not None:
                await handle.scheduler.run(handle.config, self._executor, on_outcome)
            else:
                async with RequestExecutor(transport=self._transport) as executor:
                    await handle.scheduler.run(handle.config, executor, on_outcome)
        finally:
            if self._active is handle:
                self._active = None

        summary = handle.accumulator.finalize(
            handle.elapsed_ms(),
            stopped=handle.state.stop_requested,
        )
        record = RunRecord(
            run_id=handle.run_id,
            config=handle.config,
            summary=summary,
            started_at=handle.started_at,
            ended_at=datetime.now(timezone.utc),
        )
        handle.record = record
        self._history.append(record)
        log.info(
            "Run %s %s: %d/%d requests in %dms, success rate %.2f%%",
            handle.run_id,
            "stopped" if summary.stopped else "completed",
            summary.total_requests,
            handle.config.total_requests,
            summary.total_time,
            summary.success_rate,
        )
        return record
