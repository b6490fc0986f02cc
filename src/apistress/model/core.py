from dataclasses import dataclass, field
from typing import Optional

from apistress.model.base import TxNode
from apistress.model.load import Load
from apistress.model.request import Body, HeadersBlock
from apistress.model.values import Ref


@dataclass
class EnvCall(TxNode):
    key: str = ""


@dataclass
class EnvVar(TxNode):
    name: str = ""
    value: EnvCall = field(default_factory=EnvCall)


@dataclass
class Environment(TxNode):
    envVars: list[EnvVar] = field(default_factory=list)


@dataclass
class Target(TxNode):
    ref: Optional[Ref] = None
    value: Optional[str] = None


@dataclass
class Test(TxNode):
    name: str = ""
    environment: Optional[Environment] = None
    target: Optional[Target] = None
    method: str = ""
    headers: Optional[HeadersBlock] = None
    body: Optional[Body] = None
    load: Optional[Load] = None

    @property
    def display_name(self) -> str:
        return self.name.strip('"')


@dataclass
class TestFile(TxNode):
    test: Optional[Test] = None
