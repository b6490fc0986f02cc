from dataclasses import dataclass
from typing import Optional

from apistress.model.base import TxNode


@dataclass
class Ref(TxNode):
    name: str = ""


@dataclass
class ValueOrRef(TxNode):
    ref: Optional[Ref] = None
    value: str = ""
