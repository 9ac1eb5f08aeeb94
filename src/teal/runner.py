from __future__ import annotations

import argparse
import sys
import traceback
from typing import List, Optional, Sequence, TextIO

from .cache import CachedInterpreter
from .factory import Interpreter, make_interpreter
from .parser import TealParseError, parse
from .tree import total_visits
from .types import Library, TealArgumentError, TealInterpretationError
from .utils import (
    cache_enabled_by_default,
    debug_py_trace_enabled,
    load_source,
    parse_argument,
    setup_logging,
)


def run(src: str, function: str, argument: Optional[int] = None, *, cached: bool = True) -> int:
    """Parse ``src`` and invoke one of its functions."""
    library = parse(src)
    interpreter = make_interpreter(library, cached=cached)
    return interpreter.invoke(function, argument)


def format_stats(library: Library, interpreter: Interpreter) -> List[str]:
    lines = []

    for fn in library.functions.values():
        lines.append(f"{fn.signature()}: body visits {fn.body.visit_count}, subtree visits {total_visits(fn.body)}")

    if isinstance(interpreter, CachedInterpreter):
        info = interpreter.cache_info()
        lines.append(f"cache: hits={info.hits} misses={info.misses} size={info.currsize}")

    return lines


def report_error(exc: BaseException, stream: Optional[TextIO] = None) -> None:
    stream = stream if stream is not None else sys.stderr
    print(f"Error: {exc}", file=stream)
    if debug_py_trace_enabled():
        print("\nPython traceback:", file=stream)
        print("".join(traceback.format_exception(exc)), file=stream, end="")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="teal", description="Invoke a function from a Teal library.")
    ap.add_argument("source", help="Path to a library file, inline source, or '-' for stdin")
    ap.add_argument("function", help="Name of the function to invoke")
    ap.add_argument("argument", nargs="?", help="Integer argument (omit for nullary functions)")
    cache = ap.add_mutually_exclusive_group()
    cache.add_argument("--cached", dest="cached", action="store_true", default=None,
                       help="Memoize results per (function, argument) (default)")
    cache.add_argument("--no-cache", dest="cached", action="store_false",
                       help="Use the plain tree-walking interpreter")
    ap.add_argument("--stats", action="store_true", help="Print visit counts and cache info to stderr")
    ap.add_argument("--log-level", default=None, help="Logging level (default: $TEAL_LOG_LEVEL or WARNING)")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    setup_logging(args.log_level)

    try:
        argument = parse_argument(args.argument)
    except ValueError as exc:
        ap.error(str(exc))

    cached = cache_enabled_by_default() if args.cached is None else args.cached
    source = load_source(args.source)

    try:
        library = parse(source)
        interpreter = make_interpreter(library, cached=cached)
        result = interpreter.invoke(args.function, argument)
    except (TealParseError, TealInterpretationError, TealArgumentError) as exc:
        report_error(exc)
        return 1

    print(result)

    if args.stats:
        for line in format_stats(library, interpreter):
            print(line, file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
