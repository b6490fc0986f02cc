from .config import HttpMethod, RunConfig
from .controller import RunController, RunHandle, RunRecord
from .executor import RequestExecutor, RequestOutcome
from .metrics import ProgressSnapshot, RunSummary, StatsAccumulator
from .progress import NullPublisher, ProgressBroadcaster, ProgressPublisher
from .scheduler import ConcurrencyScheduler, RunState

__all__ = [
    "HttpMethod", "RunConfig",
    "RunController", "RunHandle", "RunRecord",
    "RequestExecutor", "RequestOutcome",
    "ProgressSnapshot", "RunSummary", "StatsAccumulator",
    "NullPublisher", "ProgressBroadcaster", "ProgressPublisher",
    "ConcurrencyScheduler", "RunState",
]
