"""Interactive REPL for Teal, powered by prompt_toolkit."""

from __future__ import annotations

import argparse
import os
import re
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .factory import Interpreter, make_interpreter
from .parser import TealParseError, parse, parse_expression
from .repl_highlight import TealLexer
from .runner import format_stats
from .types import Library, TealArgumentError, TealInterpretationError
from .utils import (
    DEBUG_PY_TRACE_ENV,
    cache_enabled_by_default,
    debug_py_trace_enabled,
    load_source,
    setup_logging,
)

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# A definition starts with `name(param):`; anything else is an expression.
_DEFINITION_RE = re.compile(r"^\s*[A-Za-z_][A-Za-z0-9_]*\s*\(\s*[A-Za-z0-9_]*\s*\)\s*:")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/ast": ("Show a function body with visit counts", "NAME"),
    "/cache": ("Toggle result caching", "[on|off]"),
    "/clear": ("Clear the terminal screen", ""),
    "/defs": ("List the current definitions", ""),
    "/load": ("Load definitions from a file", "PATH"),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Drop all definitions", ""),
    "/stats": ("Show visit counts and cache info", ""),
}

REPL_ERRORS = (TealParseError, TealInterpretationError, TealArgumentError)


@dataclass
class Session:
    """Definitions typed so far plus the interpreter built over them.

    A Library is immutable, so every change of definitions builds a new
    library and a new interpreter (which also starts with an empty cache).
    """

    cached: bool = True
    definitions: Dict[str, str] = field(default_factory=dict)
    library: Library = field(default_factory=lambda: Library({}))
    interpreter: Optional[Interpreter] = None

    def __post_init__(self) -> None:
        if self.interpreter is None:
            self.interpreter = make_interpreter(self.library, cached=self.cached)

    def define(self, text: str) -> List[str]:
        """Add or replace the definitions in ``text``; return their names."""
        parsed = parse(text)
        lines = text.splitlines()
        updated = dict(self.definitions)
        names: List[str] = []

        for name, fn in parsed.functions.items():
            updated[name] = lines[fn.meta.line - 1].strip()
            names.append(name)

        self._rebuild(updated)
        return names

    def reset(self) -> None:
        self._rebuild({})

    def set_cached(self, cached: bool) -> None:
        self.cached = cached
        self.interpreter = make_interpreter(self.library, cached=cached)

    def evaluate(self, text: str) -> int:
        expr = parse_expression(text)
        assert self.interpreter is not None
        return self.interpreter.evaluate(expr)

    def _rebuild(self, definitions: Dict[str, str]) -> None:
        library = parse("\n".join(definitions.values()))
        self.definitions = definitions
        self.library = library
        self.interpreter = make_interpreter(library, cached=self.cached)


def repl_eval(text: str, session: Session) -> Tuple[Optional[int], bool]:
    """Evaluate one REPL entry; returns (value, was_definition)."""
    if _DEFINITION_RE.match(text):
        session.define(text)
        return None, True

    return session.evaluate(text), False


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _parse_on_off(arg: str) -> Optional[bool]:
    if arg.lower() in ("on", "1", "true", "yes"):
        return True
    if arg.lower() in ("off", "0", "false", "no"):
        return False
    return None


def _handle_slash(line: str, session: Session) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/defs":
        if not session.definitions:
            print("(no definitions)")
        for text in session.definitions.values():
            print(text)
        return True

    if cmd == "/load":
        if not arg:
            print("Usage: /load PATH", file=sys.stderr)
            return True
        try:
            source = Path(arg).read_text(encoding="utf-8")
            names = session.define(source)
        except (OSError, TealParseError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return True
        print(f"Loaded {len(names)} function(s): {', '.join(names)}")
        return True

    if cmd == "/reset":
        session.reset()
        print("Definitions cleared.")
        return True

    if cmd == "/cache":
        flag = _parse_on_off(arg) if arg else not session.cached
        if flag is None:
            print("Usage: /cache [on|off]", file=sys.stderr)
            return True
        session.set_cached(flag)
        print(f"Caching: {'on' if flag else 'off'}")
        return True

    if cmd == "/stats":
        assert session.interpreter is not None
        for text in format_stats(session.library, session.interpreter):
            print(text)
        return True

    if cmd == "/ast":
        fn = session.library.get(arg)
        if fn is None:
            print(f"Unknown function: {arg or '(none)'}", file=sys.stderr)
            return True
        print(fn.signature())
        print(fn.body.pretty(), end="")
        return True

    if cmd == "/py-traceback":
        flag = _parse_on_off(arg) if arg else not debug_py_trace_enabled()
        if flag is None:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True
        if flag:
            os.environ[DEBUG_PY_TRACE_ENV] = "1"
        else:
            os.environ.pop(DEBUG_PY_TRACE_ENV, None)
        print(f"Python traceback: {'on' if flag else 'off'}")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def process_line(text: str, session: Session) -> None:
    """Run one line of input and print its outcome."""
    text = _normalize(text)
    if not text.strip():
        return

    if _handle_slash(text, session):
        return

    try:
        result, was_definition = repl_eval(text, session)
    except REPL_ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if debug_py_trace_enabled():
            print("\nPython traceback:", file=sys.stderr)
            print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
        return

    if not was_definition:
        print(result)


def repl(source: Optional[str] = None, cached: Optional[bool] = None) -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    session = Session(cached=cache_enabled_by_default() if cached is None else cached)
    if source:
        session.define(source)

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    prompt: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=TealLexer(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
    )

    print("teal repl (Ctrl-D to exit, / for commands)")

    while True:
        try:
            text = prompt.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        process_line(text, session)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="teal-repl", description="Interactive Teal session.")
    ap.add_argument("source", nargs="?", help="Library file or inline source to preload")
    ap.add_argument("--no-cache", dest="cached", action="store_false", default=None,
                    help="Start with the plain interpreter")
    ap.add_argument("--log-level", default=None, help="Logging level (default: $TEAL_LOG_LEVEL or WARNING)")
    args = ap.parse_args(argv)
    setup_logging(args.log_level)

    source = load_source(args.source) if args.source else None
    try:
        repl(source, cached=args.cached)
    except TealParseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
