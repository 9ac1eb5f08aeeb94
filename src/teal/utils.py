from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEBUG_PY_TRACE_ENV = "TEAL_DEBUG_PY_TRACE"
LOG_LEVEL_ENV = "TEAL_LOG_LEVEL"
NO_CACHE_ENV = "TEAL_NO_CACHE"

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def debug_py_trace_enabled() -> bool:
    """Print Python tracebacks alongside Teal errors."""
    return _env_flag(DEBUG_PY_TRACE_ENV)


def cache_enabled_by_default() -> bool:
    return not _env_flag(NO_CACHE_ENV)


def log_level(explicit: Optional[str] = None) -> str:
    level = explicit or os.environ.get(LOG_LEVEL_ENV) or "WARNING"
    return level.upper()


def setup_logging(explicit: Optional[str] = None) -> None:
    logging.basicConfig(
        level=log_level(explicit),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def parse_argument(text: Optional[str]) -> Optional[int]:
    """CLI argument text to an invocation argument; blank means none."""
    if text is None or not text.strip():
        return None

    try:
        return int(text.strip())
    except ValueError:
        raise ValueError(f"argument must be an integer, got {text!r}") from None


def load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    if "\n" in arg:
        return arg

    candidate = Path(arg)
    try:
        is_file = candidate.is_file()
    except OSError:
        # Name too long to be a path; it can only be inline source.
        is_file = False

    if is_file:
        return candidate.read_text(encoding="utf-8")

    return arg
