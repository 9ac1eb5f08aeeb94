from __future__ import annotations

from pathlib import Path

import pytest

from tests.support.harness import EXAMPLE_LIBRARY, TealParseError, UndefinedFunctionError
from teal.cache import CachedInterpreter
from teal.evaluator import BasicInterpreter
from teal.repl import Session, _handle_slash, process_line, repl_eval
from teal.repl_highlight import GROUP_STYLE, _highlight_line


def test_definitions_then_expression() -> None:
    session = Session()

    assert repl_eval("f(n): n + 1", session) == (None, True)
    assert repl_eval("!f(41)", session) == (42, False)
    assert repl_eval("1 + 2", session) == (3, False)


def test_redefinition_replaces_function() -> None:
    session = Session()
    session.define("f(): 1")
    session.define("g(): !f() + 1")

    assert session.evaluate("!g()") == 2

    session.define("f(): 10")

    assert session.evaluate("!g()") == 11
    assert list(session.definitions) == ["f", "g"]
    assert session.definitions["f"] == "f(): 10"


def test_define_multiple_lines() -> None:
    session = Session()

    names = session.define(EXAMPLE_LIBRARY)

    assert names == ["double", "triple", "tenTimes", "hundredTimes"]
    assert session.evaluate("!hundredTimes(13)") == 1300


def test_bad_definition_keeps_previous_state() -> None:
    session = Session()
    session.define("f(): 1")

    with pytest.raises(TealParseError):
        session.define("g(): 1 +")

    assert list(session.library.functions) == ["f"]


def test_expression_errors_surface() -> None:
    session = Session()

    with pytest.raises(UndefinedFunctionError):
        session.evaluate("!nope()")


def test_process_line_prints(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()

    process_line("double(x): x + x", session)
    process_line("!double(21)", session)
    process_line("   ", session)
    process_line("!triple(1)", session)

    captured = capsys.readouterr()
    assert captured.out == "42\n"
    assert captured.err.startswith("Error: Undefined function 'triple'")


def test_process_line_strips_invisible_characters(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()

    process_line("\u200b1 + 1\ufeff", session)

    assert capsys.readouterr().out == "2\n"


def test_cache_toggle(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()
    assert isinstance(session.interpreter, CachedInterpreter)

    assert _handle_slash("/cache off", session)
    assert isinstance(session.interpreter, BasicInterpreter)
    assert not session.cached

    assert _handle_slash("/cache", session)
    assert isinstance(session.interpreter, CachedInterpreter)

    assert _handle_slash("/cache maybe", session)
    captured = capsys.readouterr()
    assert "Caching: off" in captured.out
    assert "Caching: on" in captured.out
    assert "Usage: /cache [on|off]" in captured.err


def test_defs_reset_and_stats(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()
    _handle_slash("/defs", session)
    session.define("f(n): 42")
    session.evaluate("!f(1) + !f(1)")

    _handle_slash("/defs", session)
    _handle_slash("/stats", session)
    _handle_slash("/reset", session)
    _handle_slash("/defs", session)

    out = capsys.readouterr().out
    assert out.count("(no definitions)") == 2
    assert "f(n): 42" in out
    assert "f(n): body visits 1" in out
    assert "cache: hits=1 misses=1 size=1" in out
    assert "Definitions cleared." in out


def test_ast_command(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()
    session.define("f(n): n + 1")

    _handle_slash("/ast f", session)
    _handle_slash("/ast g", session)

    captured = capsys.readouterr()
    assert captured.out == "f(n)\nadd  (visits=0)\n  variable n  (visits=0)\n  literal 1  (visits=0)\n"
    assert "Unknown function: g" in captured.err


def test_load_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()
    path = tmp_path / "lib.teal"
    path.write_text(EXAMPLE_LIBRARY, encoding="utf-8")

    _handle_slash(f"/load {path}", session)
    _handle_slash(f"/load {tmp_path / 'missing.teal'}", session)
    _handle_slash("/load", session)

    captured = capsys.readouterr()
    assert "Loaded 4 function(s): double, triple, tenTimes, hundredTimes" in captured.out
    assert captured.err.count("Error:") == 1
    assert "Usage: /load PATH" in captured.err
    assert session.evaluate("!tenTimes(2)") == 20


def test_py_traceback_toggle(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("TEAL_DEBUG_PY_TRACE", raising=False)
    session = Session()

    _handle_slash("/py-traceback on", session)
    process_line("!missing()", session)
    _handle_slash("/py-traceback off", session)

    captured = capsys.readouterr()
    assert "Python traceback: on" in captured.out
    assert "Python traceback: off" in captured.out
    assert "Python traceback:\n" in captured.err


def test_unknown_and_non_commands(capsys: pytest.CaptureFixture[str]) -> None:
    session = Session()

    assert not _handle_slash("1 + 1", session)
    assert _handle_slash("/bogus", session)
    assert "Unknown command: /bogus" in capsys.readouterr().err


def test_highlight_definition_line() -> None:
    spans = _highlight_line("f(n): !g(n) + 1")

    assert "".join(text for _, text in spans) == "f(n): !g(n) + 1"
    assert (GROUP_STYLE["function"], "f") in spans
    assert (GROUP_STYLE["parameter"], "n") in spans
    assert (GROUP_STYLE["call"], "g") in spans
    assert (GROUP_STYLE["number"], "1") in spans


def test_highlight_marks_bad_characters() -> None:
    spans = _highlight_line("f(): 1 * 2")

    assert "".join(text for _, text in spans) == "f(): 1 * 2"
    assert spans[-1] == (GROUP_STYLE["error"], "* 2")


def test_highlight_empty_line() -> None:
    assert _highlight_line("") == [("", "")]
