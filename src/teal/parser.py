from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, NoReturn, Optional

from lark import Lark, Token, Transformer, UnexpectedInput
from lark.visitors import v_args

from .tree import Add, Call, Expr, Literal, Meta, Variable
from .types import FunctionDef, Library

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).resolve().parent / "grammar.lark"

START_SYMBOLS = ("library", "expression")


class TealParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None,
                 context: Optional[str] = None):
        self.message = message
        self.line = line
        self.column = column
        self.context = context
        super().__init__(
            f"{message} at line {line}, col {column}" if line is not None else message
        )


def _read_grammar(grammar_path: Optional[str] = None) -> str:
    if grammar_path:
        p = Path(grammar_path)
        if p.exists():
            return p.read_text(encoding="utf-8")

    if GRAMMAR_PATH.exists():
        return GRAMMAR_PATH.read_text(encoding="utf-8")

    raise FileNotFoundError("grammar.lark not found. pass an explicit path")


@lru_cache(maxsize=None)
def make_parser(grammar_path: Optional[str] = None) -> Lark:
    return Lark(
        _read_grammar(grammar_path),
        parser="lalr",
        lexer="basic",
        start=list(START_SYMBOLS),
        maybe_placeholders=True,
        propagate_positions=True,
    )


class BuildTree(Transformer):
    """Turn the lark parse tree into Teal nodes and function definitions."""

    @v_args(meta=True, inline=True)
    def literal(self, meta, tok: Token) -> Literal:
        return Literal(int(tok), Meta.from_lark(meta))

    @v_args(meta=True, inline=True)
    def variable(self, meta, tok: Token) -> Variable:
        return Variable(str(tok), Meta.from_lark(meta))

    @v_args(meta=True, inline=True)
    def add(self, meta, left: Expr, right: Expr) -> Add:
        return Add(left, right, Meta.from_lark(meta))

    @v_args(meta=True, inline=True)
    def call(self, meta, name: Token, argument: Optional[Expr]) -> Call:
        return Call(str(name), argument, Meta.from_lark(meta))

    @v_args(inline=True)
    def expression(self, body: Expr) -> Expr:
        return body

    @v_args(meta=True, inline=True)
    def function(self, meta, name: Token, param: Optional[Token], body: Expr) -> FunctionDef:
        return FunctionDef(
            name=str(name),
            param=None if param is None else str(param),
            body=body,
            meta=Meta.from_lark(meta),
        )

    def library(self, children: List[FunctionDef]) -> List[FunctionDef]:
        return list(children)


# Readable names for grammar terminals in error messages.
TERMINAL_NAMES = {
    "$END": "end of input",
    "_NL": "newline",
    "INT": "integer",
    "NAME": "name",
    "BANG": "'!'",
    "PLUS": "'+'",
    "COLON": "':'",
    "LPAR": "'('",
    "RPAR": "')'",
}


def describe_terminal(name: str) -> str:
    return TERMINAL_NAMES.get(name, name)


def _raise_parse_error(err: UnexpectedInput, code: str) -> NoReturn:
    ctx = err.get_context(code, span=40)
    token = getattr(err, "token", None)
    char = getattr(err, "char", None)
    if token is not None and token.type != "$END":
        saw = f"{describe_terminal(token.type)} {str(token)!r}"
    elif char is not None:
        saw = f"character {char!r}"
    else:
        saw = "end of input"
    expected = getattr(err, "expected", None) or getattr(err, "allowed", None) or []
    message = f"Unexpected {saw}"
    if expected:
        message += f"; expected one of: {', '.join(sorted(describe_terminal(name) for name in expected))}"
    raise TealParseError(message, line=err.line, column=err.column, context=ctx) from err


def _parse_tree(code: str, start: str, grammar_path: Optional[str] = None):
    parser = make_parser(grammar_path)
    try:
        return parser.parse(code, start=start)
    except UnexpectedInput as err:
        _raise_parse_error(err, code)


def parse(code: str, grammar_path: Optional[str] = None) -> Library:
    """Parse source text into a Library, or raise TealParseError."""
    if code is None:
        raise TealParseError("No source text given")

    tree = _parse_tree(code, "library", grammar_path)
    definitions: List[FunctionDef] = BuildTree().transform(tree)

    functions: Dict[str, FunctionDef] = {}
    for fn in definitions:
        if fn.name in functions:
            raise TealParseError(
                f"Duplicate function '{fn.name}'",
                line=fn.meta.line,
                column=fn.meta.column,
            )
        functions[fn.name] = fn

    logger.debug("parsed library with %d function(s): %s", len(functions), ", ".join(functions))
    return Library(functions, source=code)


def parse_expression(code: str, grammar_path: Optional[str] = None) -> Expr:
    """Parse a single free-standing expression such as ``!f(3) + 1``."""
    tree = _parse_tree(code.strip(), "expression", grammar_path)
    return BuildTree().transform(tree)
