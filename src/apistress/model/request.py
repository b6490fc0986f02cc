from dataclasses import dataclass, field
from typing import Optional

from apistress.model.base import TxNode
from apistress.model.values import ValueOrRef


@dataclass
class Header(TxNode):
    name: str = ""
    value: Optional[ValueOrRef] = None


@dataclass
class HeadersBlock(TxNode):
    headers: list[Header] = field(default_factory=list)


@dataclass
class Body(TxNode):
    value: Optional[ValueOrRef] = None
