from .base import TxNode
from .values import ValueOrRef, Ref
from .load import Concurrency, Load, Duration
from .request import Header, HeadersBlock, Body
from .core import EnvCall, EnvVar, Environment, Target, Test, TestFile

__all__ = [
    "TxNode",
    "ValueOrRef", "Ref",
    "Concurrency", "Load", "Duration",
    "Header", "HeadersBlock", "Body",
    "EnvCall", "EnvVar", "Environment", "Target", "Test", "TestFile",
]
