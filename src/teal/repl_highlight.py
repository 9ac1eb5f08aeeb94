"""prompt_toolkit lexer for live Teal syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable, List

from lark import Token
from lark.exceptions import UnexpectedInput
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .parser import make_parser

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "number": "ansimagenta",
    "identifier": "",
    "parameter": "italic",
    "function": "bold ansiyellow",
    "call": "bold ansicyan",
    "operator": "",
    "punctuation": "",
    "error": "bold ansired",
}

_TT_GROUP = {
    "INT": "number",
    "NAME": "identifier",
    "PLUS": "operator",
    "BANG": "call",
    "LPAR": "punctuation",
    "RPAR": "punctuation",
    "COLON": "punctuation",
}


def _token_group(tokens: List[Token], i: int) -> str:
    tok = tokens[i]
    if tok.type != "NAME":
        return _TT_GROUP.get(tok.type, "")

    prev = tokens[i - 1].type if i > 0 else None
    nxt = tokens[i + 1].type if i + 1 < len(tokens) else None

    if prev == "BANG":
        return "call"
    if prev is None and nxt == "LPAR":
        return "function"
    if prev == "LPAR" and i >= 2 and tokens[i - 2].type == "NAME" and (i < 3 or tokens[i - 3].type != "BANG"):
        return "parameter"
    return "identifier"


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    tokens: List[Token] = []
    error_at = None
    try:
        for tok in make_parser().lex(text):
            tokens.append(tok)
    except UnexpectedInput as err:
        error_at = err.pos_in_stream

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        start = tok.start_pos if tok.start_pos is not None else text.find(str(tok), pos)
        if start is None or start < pos:
            continue

        # Unstyled gap before token.
        if start > pos:
            result.append(("", text[pos:start]))

        style = GROUP_STYLE.get(_token_group(tokens, i), "")
        result.append((style, str(tok)))
        pos = start + len(str(tok))

    if error_at is not None and error_at >= pos:
        if error_at > pos:
            result.append(("", text[pos:error_at]))
        result.append((GROUP_STYLE["error"], text[error_at:]))
        pos = len(text)

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class TealLexer(Lexer):
    """prompt_toolkit Lexer that highlights Teal source using the lark lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        # Pre-compute highlights for all lines.
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
