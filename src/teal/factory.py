from __future__ import annotations

from typing import Union

from .cache import CachedInterpreter
from .evaluator import BasicInterpreter
from .types import Library, TealArgumentError

Interpreter = Union[BasicInterpreter, CachedInterpreter]


def _check_library(library: Library) -> None:
    if library is None:
        raise TealArgumentError("library must not be None")
    if not isinstance(library, Library):
        raise TealArgumentError(f"expected a Library, got {type(library).__name__}")


def basic_interpreter(library: Library) -> BasicInterpreter:
    _check_library(library)
    return BasicInterpreter(library)


def cached_interpreter(library: Library) -> CachedInterpreter:
    _check_library(library)
    return CachedInterpreter(library)


def make_interpreter(library: Library, cached: bool = True) -> Interpreter:
    return cached_interpreter(library) if cached else basic_interpreter(library)
