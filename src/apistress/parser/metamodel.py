from pathlib import Path

from textx import metamodel_from_file

from apistress.model import (
    Body,
    Concurrency,
    Duration,
    EnvCall,
    EnvVar,
    Environment,
    Header,
    HeadersBlock,
    Load,
    Ref,
    Target,
    Test,
    TestFile,
    ValueOrRef,
)

HERE = Path(__file__).resolve().parent.parent
GRAMMAR_PATH = HERE / "grammar" / "apistress.tx"


def build_metamodel():
    return metamodel_from_file(
        str(GRAMMAR_PATH),
        classes=[TestFile, Test,
            Environment, EnvVar, EnvCall,
            Ref, Target, ValueOrRef,
            HeadersBlock, Header, Body,
            Load, Concurrency, Duration],
    )
