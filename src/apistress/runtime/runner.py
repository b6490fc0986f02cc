from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import httpx

from apistress.errors import NoActiveRun
from apistress.model import TestFile
from apistress.runtime.config import RunConfig
from apistress.runtime.context import build_run_config
from apistress.runtime.controller import RunController, RunHandle
from apistress.runtime.load_result import StressTestResult
from apistress.runtime.progress import ProgressPublisher

log = logging.getLogger(__name__)


def _install_stop_handler(controller: RunController, handle: RunHandle) -> bool:
    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        try:
            controller.request_stop(handle)
        except NoActiveRun:
            log.debug("Interrupt received after run %s finished", handle.run_id)

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError):
        # Windows event loops and non-main threads have no signal handlers.
        return False
    return True


async def run_config_async(
    config: RunConfig,
    *,
    test_name: str = "",
    transport: Optional[httpx.AsyncBaseTransport] = None,
    publisher: Optional[ProgressPublisher] = None,
    stop_on_interrupt: bool = False,
) -> StressTestResult:
    """
    Run one stress test on the current event loop.
    With stop_on_interrupt, Ctrl-C stops issuing and lets in-flight requests drain.
    """
    controller = RunController(publisher, transport=transport)
    handle = controller.start(config)
    installed = stop_on_interrupt and _install_stop_handler(controller, handle)
    try:
        await controller.await_result(handle)
    finally:
        if installed:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    return StressTestResult(test_name=test_name, record=handle.record)


def run_test(
    model: TestFile,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    publisher: Optional[ProgressPublisher] = None,
) -> StressTestResult:
    config = build_run_config(model)
    return asyncio.run(
        run_config_async(
            config,
            test_name=model.test.display_name,
            transport=transport,
            publisher=publisher,
        )
    )
