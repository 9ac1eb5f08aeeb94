from __future__ import annotations

import logging
import threading
from typing import Dict, Hashable, NamedTuple, Optional, Tuple

from .evaluator import BasicInterpreter
from .tree import Expr
from .types import Frame, Library, TealArgumentError

logger = logging.getLogger(__name__)


class _Absent:
    """Cache key component for a call made without an argument."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "<absent>"


ABSENT = _Absent()

CacheKey = Tuple[str, Hashable]


class CacheInfo(NamedTuple):
    hits: int
    misses: int
    currsize: int


def cache_key(function: str, argument: Optional[int]) -> CacheKey:
    return (function, ABSENT if argument is None else argument)


class CachedInterpreter:
    """Memoizes ``(function, argument) -> result`` over a BasicInterpreter.

    The library is immutable, so entries never go stale and are never
    evicted. Only successful results are stored; a failing call is evaluated
    again on every retry.
    """

    def __init__(self, library: Library):
        if library is None:
            raise TealArgumentError("library must not be None")

        self._inner = BasicInterpreter(library, dispatch=self.call)
        self._entries: Dict[CacheKey, int] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def library(self) -> Library:
        return self._inner.library

    def invoke(self, function: Optional[str], argument: Optional[int] = None) -> int:
        return self.call(function, argument, None)

    def call(self, function: Optional[str], argument: Optional[int], caller: Optional[Frame]) -> int:
        if function is None:
            raise TealArgumentError("function name must not be None")
        if not isinstance(function, str):
            raise TealArgumentError(f"function name must be a string, got {type(function).__name__}")

        key = cache_key(function, argument)

        with self._lock:
            if key in self._entries:
                self._hits += 1
                logger.debug("cache hit %s", key)
                return self._entries[key]
            self._misses += 1

        logger.debug("cache miss %s", key)
        result = self._inner.call(function, argument, caller)

        with self._lock:
            # Another thread may have stored the same key meanwhile; both
            # values are equal since evaluation is pure.
            return self._entries.setdefault(key, result)

    def evaluate(self, node: Expr, frame: Optional[Frame] = None) -> int:
        return self._inner.evaluate(node, frame)

    def cache_info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(self._hits, self._misses, len(self._entries))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        function, argument = key
        try:
            hash(key)
        except TypeError:
            return False
        with self._lock:
            return cache_key(function, argument) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
