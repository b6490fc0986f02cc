from __future__ import annotations


class StressError(Exception):
    """Base class for every error apistress raises to its callers."""


class ValidationError(StressError, ValueError):
    """A run configuration or run file is malformed. Raised before any request is issued."""


class OperationalError(StressError, RuntimeError):
    """The run controller was used in a way its current state does not allow."""


class AlreadyRunning(OperationalError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"A stress test is already running (run {run_id}).")
        self.run_id = run_id


class NoActiveRun(OperationalError):
    def __init__(self) -> None:
        super().__init__("No active stress test to stop.")


class NoCompletedRun(OperationalError):
    def __init__(self) -> None:
        super().__init__("No test results available. Run a stress test first.")
