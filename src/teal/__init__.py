"""Teal: a memoizing interpreter for libraries of single-parameter functions."""

from .cache import CacheInfo, CachedInterpreter
from .evaluator import BasicInterpreter
from .factory import basic_interpreter, cached_interpreter, make_interpreter
from .parser import TealParseError, parse, parse_expression
from .types import (
    ArgumentCountError,
    Frame,
    FunctionDef,
    Library,
    TealArgumentError,
    TealInterpretationError,
    UndefinedFunctionError,
    UndefinedVariableError,
)

__all__ = [
    "ArgumentCountError",
    "BasicInterpreter",
    "CacheInfo",
    "CachedInterpreter",
    "Frame",
    "FunctionDef",
    "Library",
    "TealArgumentError",
    "TealInterpretationError",
    "TealParseError",
    "UndefinedFunctionError",
    "UndefinedVariableError",
    "basic_interpreter",
    "cached_interpreter",
    "make_interpreter",
    "parse",
    "parse_expression",
]
