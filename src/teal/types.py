from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional

from .tree import Expr, Meta

# ---------- Library model ----------

@dataclass(frozen=True)
class FunctionDef:
    name: str
    param: Optional[str]
    body: Expr
    meta: Meta = field(default_factory=Meta, compare=False, repr=False)

    @property
    def is_nullary(self) -> bool:
        return self.param is None

    def signature(self) -> str:
        return f"{self.name}({self.param or ''})"


class Library:
    """Immutable set of named function definitions produced by the parser."""

    def __init__(self, functions: Mapping[str, FunctionDef], source: Optional[str] = None):
        self._functions = MappingProxyType(dict(functions))
        self.source = source

    @property
    def functions(self) -> Mapping[str, FunctionDef]:
        return self._functions

    def get(self, name: str) -> Optional[FunctionDef]:
        return self._functions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        sigs = ", ".join(fn.signature() for fn in self._functions.values())
        return f"Library([{sigs}])"

# ---------- Call frames ----------

class Frame:
    """Binding of one function's parameter to its argument.

    Frames are created per invocation and passed down the evaluation; a
    variable only ever resolves against the innermost frame. ``parent`` links
    back to the caller for diagnostics.
    """
    __slots__ = ('function', 'param', 'argument', 'parent', 'depth')

    def __init__(
        self,
        function: Optional[str] = None,
        param: Optional[str] = None,
        argument: Optional[int] = None,
        parent: Optional['Frame'] = None,
    ):
        self.function = function
        self.param = param
        self.argument = argument
        self.parent = parent
        self.depth = 0 if parent is None else parent.depth + 1

    def lookup(self, name: str) -> int:
        if self.param is None or self.param != name:
            raise UndefinedVariableError(name, self.function)

        return self.argument  # type: ignore[return-value]

    def trace(self) -> List[str]:
        """Function names from the outermost call down to this frame."""
        names: List[str] = []
        frame: Optional[Frame] = self

        while frame is not None:
            if frame.function is not None:
                names.append(frame.function)
            frame = frame.parent

        names.reverse()
        return names

    def __repr__(self) -> str:
        if self.param is None:
            return f"Frame({self.function!r})"
        return f"Frame({self.function!r}, {self.param}={self.argument!r})"

# ---------- Exceptions ----------

class TealArgumentError(ValueError):
    """Public API misuse: missing library or function name."""


class TealInterpretationError(Exception):
    meta: Optional[Meta]
    trace: List[str]

    def __init__(self, message: str):
        super().__init__(message)
        self.meta = None
        self.trace = []

    def __str__(self) -> str:
        msg = super().__str__()

        if len(self.trace) > 1:
            msg = f"{msg} [in {' -> '.join(self.trace)}]"

        meta = self.meta
        if meta is None or meta.line is None:
            return msg

        if meta.column is None:
            return f"{msg} (line {meta.line})"

        return f"{msg} (line {meta.line}, col {meta.column})"


class UndefinedFunctionError(TealInterpretationError):
    def __init__(self, name: str):
        super().__init__(f"Undefined function '{name}'")
        self.name = name


class ArgumentCountError(TealInterpretationError):
    def __init__(self, name: str, expected: int, given: int):
        super().__init__(f"Function '{name}' expects {expected} argument(s); got {given}")
        self.name = name
        self.expected = expected
        self.given = given


class UndefinedVariableError(TealInterpretationError):
    def __init__(self, name: str, function: Optional[str] = None):
        where = f" in '{function}'" if function is not None else ""
        super().__init__(f"Undefined variable '{name}'{where}")
        self.name = name
        self.function = function
