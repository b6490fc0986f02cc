from dataclasses import dataclass
from typing import Optional

from apistress.model.base import TxNode

_UNIT_MS = {"ms": 1, "s": 1000, "m": 60_000}


@dataclass
class Duration(TxNode):
    amount: str = "0"  # digits, kept as text by the grammar
    unit: str = "ms"

    def total_milliseconds(self) -> int:
        return int(self.amount) * _UNIT_MS[self.unit]


@dataclass
class Concurrency(TxNode):
    value: int = 0


@dataclass
class Load(TxNode):
    requests: int = 0
    # None when left out of the run file
    concurrency: Optional[Concurrency] = None
    timeout: Optional[Duration] = None
