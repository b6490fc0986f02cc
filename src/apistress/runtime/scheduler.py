from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from apistress.runtime.config import RunConfig
from apistress.runtime.executor import Executor, RequestOutcome

log = logging.getLogger(__name__)

OutcomeCallback = Callable[[RequestOutcome], None]


@dataclass
class RunState:
    """
    Counters for one run. The recorded outcomes are owned by the
    StatsAccumulator, which receives every completed outcome, so
    len(accumulator.outcomes) == requests_completed.
    """

    requests_issued: int = 0
    requests_completed: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0
    stop_requested: bool = False


class ConcurrencyScheduler:
    """
    Keeps min(concurrency, total_requests) requests in flight.

    Each slot is a loop that takes the next ticket from the shared counter,
    sends one request and records it, until the counter is exhausted or a
    stop was requested. A slow request only holds its own slot, so the
    other slots keep issuing. Stop is cooperative: in-flight requests are
    awaited and recorded, only new tickets are refused.
    """

    def __init__(self) -> None:
        self.state = RunState()

    def request_stop(self) -> None:
        if not self.state.stop_requested:
            log.debug(
                "Stop requested with %d issued, %d completed",
                self.state.requests_issued,
                self.state.requests_completed,
            )
        self.state.stop_requested = True

    def _take_ticket(self, total_requests: int) -> Optional[int]:
        # No await between the check and the increment, so slots cannot over-issue.
        state = self.state
        if state.stop_requested or state.requests_issued >= total_requests:
            return None
        ticket = state.requests_issued
        state.requests_issued += 1
        state.in_flight += 1
        state.peak_in_flight = max(state.peak_in_flight, state.in_flight)
        return ticket

    def _complete(self, outcome: RequestOutcome, on_outcome: OutcomeCallback) -> None:
        state = self.state
        state.in_flight -= 1
        state.requests_completed += 1
        on_outcome(outcome)

    async def _slot(
        self,
        slot_id: int,
        config: RunConfig,
        executor: Executor,
        on_outcome: OutcomeCallback,
    ) -> None:
        handled = 0
        while True:
            ticket = self._take_ticket(config.total_requests)
            if ticket is None:
                break
            outcome = await executor.execute(
                config.method,
                config.endpoint,
                config.headers,
                config.body,
                config.timeout_ms,
            )
            self._complete(outcome, on_outcome)
            handled += 1
        log.debug("Slot %d finished after %d requests", slot_id, handled)

    async def run(
        self,
        config: RunConfig,
        executor: Executor,
        on_outcome: OutcomeCallback,
    ) -> RunState:
        slots = config.effective_concurrency
        log.debug("Starting %d slots for %d requests", slots, config.total_requests)
        tasks = [
            asyncio.create_task(self._slot(i, config, executor, on_outcome), name=f"slot-{i}")
            for i in range(slots)
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return self.state
