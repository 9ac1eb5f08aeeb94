"""Expression tree nodes for Teal function bodies.

Every node counts how many times it has been evaluated. The counter is an
observability side channel: the interpreter bumps it on each genuine visit and
never reads it back, so cached results leave it untouched.
"""
from __future__ import annotations

import threading
from typing import Iterator, List, Optional, Union
from typing_extensions import TypeAlias


class Meta:
    """Source position of a node (1-based line and column)."""
    __slots__ = ('line', 'column')

    def __init__(self, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column

    @classmethod
    def from_lark(cls, meta: object) -> Meta:
        if getattr(meta, 'empty', True):
            return cls()
        return cls(getattr(meta, 'line', None), getattr(meta, 'column', None))

    def __repr__(self) -> str:
        return f'Meta(line={self.line!r}, column={self.column!r})'


class Node:
    """Base class for expression nodes."""
    __slots__ = ('meta', '_visits', '_lock')

    def __init__(self, meta: Optional[Meta] = None):
        self.meta = meta if meta is not None else Meta()
        self._visits = 0
        self._lock = threading.Lock()

    @property
    def visit_count(self) -> int:
        return self._visits

    def mark_visited(self) -> None:
        with self._lock:
            self._visits += 1

    def children(self) -> List[Expr]:
        return []

    def walk(self) -> Iterator[Expr]:
        """Yield this node and its descendants in pre-order."""
        stack: List[Node] = [self]
        while stack:
            node = stack.pop()
            yield node  # type: ignore[misc]
            stack.extend(reversed(node.children()))

    def label(self) -> str:
        return type(self).__name__.lower()

    def pretty(self, indent: str = '  ') -> str:
        """Return an indented dump of the subtree with visit counts."""
        def _pretty(node: Node, level: int) -> str:
            lines = [f'{indent * level}{node.label()}  (visits={node.visit_count})\n']
            for child in node.children():
                lines.append(_pretty(child, level + 1))
            return ''.join(lines)
        return _pretty(self, 0)


class Literal(Node):
    __slots__ = ('value',)
    __match_args__ = ('value',)

    def __init__(self, value: int, meta: Optional[Meta] = None):
        super().__init__(meta)
        self.value = value

    def label(self) -> str:
        return f'literal {self.value}'

    def __repr__(self) -> str:
        return f'Literal({self.value!r})'


class Variable(Node):
    __slots__ = ('name',)
    __match_args__ = ('name',)

    def __init__(self, name: str, meta: Optional[Meta] = None):
        super().__init__(meta)
        self.name = name

    def label(self) -> str:
        return f'variable {self.name}'

    def __repr__(self) -> str:
        return f'Variable({self.name!r})'


class Add(Node):
    __slots__ = ('left', 'right')
    __match_args__ = ('left', 'right')

    def __init__(self, left: Expr, right: Expr, meta: Optional[Meta] = None):
        super().__init__(meta)
        self.left = left
        self.right = right

    def children(self) -> List[Expr]:
        return [self.left, self.right]

    def __repr__(self) -> str:
        return f'Add({self.left!r}, {self.right!r})'


class Call(Node):
    __slots__ = ('name', 'argument')
    __match_args__ = ('name', 'argument')

    def __init__(self, name: str, argument: Optional[Expr] = None, meta: Optional[Meta] = None):
        super().__init__(meta)
        self.name = name
        self.argument = argument

    def children(self) -> List[Expr]:
        return [] if self.argument is None else [self.argument]

    def label(self) -> str:
        return f'call {self.name}'

    def __repr__(self) -> str:
        return f'Call({self.name!r}, {self.argument!r})'


Expr: TypeAlias = Union[Literal, Variable, Add, Call]


def total_visits(node: Node) -> int:
    """Sum of visit counts over a whole subtree."""
    return sum(n.visit_count for n in node.walk())
