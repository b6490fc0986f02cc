from functools import lru_cache
from pathlib import Path
from typing import Union

from textx.metamodel import TextXMetaModel

from .metamodel import build_metamodel
from ..model import TestFile


@lru_cache(maxsize=1)
def _metamodel() -> TextXMetaModel:
    # built once, shared by every parse
    return build_metamodel()


def parse_file(path: Union[str, Path]) -> TestFile:
    """
    Parse a run-definition file (.st) into a TestFile model.
    Syntax errors surface as textX.exceptions.TextXSyntaxError.
    """
    return _metamodel().model_from_file(str(path))


def parse_str(text: str) -> TestFile:
    return _metamodel().model_from_str(text)
