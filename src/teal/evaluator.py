from __future__ import annotations

import logging
from typing import Callable, Optional

from .tree import Add, Call, Expr, Literal, Node, Variable
from .types import (
    ArgumentCountError,
    Frame,
    Library,
    TealArgumentError,
    TealInterpretationError,
    UndefinedFunctionError,
)

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, Optional[int], Optional[Frame]], int]


def _attach_location(exc: TealInterpretationError, node: Node, frame: Frame) -> None:
    # Only the innermost failing node annotates; outer frames let it pass.
    if exc.meta is not None:
        return

    exc.meta = node.meta
    exc.trace = frame.trace()


class BasicInterpreter:
    """Tree-walking interpreter over an immutable Library.

    Nested calls go through ``dispatch`` (``self.call`` unless a wrapper
    such as the result cache supplies its own entry point).
    """

    def __init__(self, library: Library, dispatch: Optional[Dispatch] = None):
        if library is None:
            raise TealArgumentError("library must not be None")
        if not isinstance(library, Library):
            raise TealArgumentError(f"expected a Library, got {type(library).__name__}")

        self.library = library
        self._dispatch: Dispatch = dispatch if dispatch is not None else self.call

    def invoke(self, function: Optional[str], argument: Optional[int] = None) -> int:
        return self.call(function, argument, None)

    def call(self, function: Optional[str], argument: Optional[int], caller: Optional[Frame]) -> int:
        """Invoke ``function`` with a fresh frame whose parent is ``caller``."""
        if function is None:
            raise TealArgumentError("function name must not be None")
        if not isinstance(function, str):
            raise TealArgumentError(f"function name must be a string, got {type(function).__name__}")

        fn = self.library.get(function)
        if fn is None:
            raise UndefinedFunctionError(function)

        if fn.param is None and argument is not None:
            raise ArgumentCountError(function, 0, 1)
        if fn.param is not None and argument is None:
            raise ArgumentCountError(function, 1, 0)

        logger.debug("invoke %s(%s)", function, "" if argument is None else argument)
        frame = Frame(function, fn.param, argument, parent=caller)

        return self.evaluate(fn.body, frame)

    def evaluate(self, node: Expr, frame: Optional[Frame] = None) -> int:
        """Evaluate ``node`` under ``frame`` (an empty top-level frame if omitted)."""
        if frame is None:
            frame = Frame()

        node.mark_visited()

        try:
            match node:
                case Literal(value):
                    return value
                case Variable(name):
                    return frame.lookup(name)
                case Add(left, right):
                    lhs = self.evaluate(left, frame)
                    rhs = self.evaluate(right, frame)
                    return lhs + rhs
                case Call(name, argument):
                    value = None if argument is None else self.evaluate(argument, frame)
                    return self._dispatch(name, value, frame)
                case _:
                    raise TypeError(f"Unknown node {node!r}")
        except TealInterpretationError as exc:
            _attach_location(exc, node, frame)
            raise
