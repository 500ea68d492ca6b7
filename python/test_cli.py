"""
Tests for the proofreader command line.

Run: python3 test_cli.py
From: python/
"""

import io
import sys
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

sys.path.insert(0, '.')

from proofreader import __version__
from proofreader.cli import EXIT_PRECONDITION, main


def _run(*argv):
    """Runs the CLI with a throwaway settings file; returns (exit_code, stdout)."""
    out = io.StringIO()
    with tempfile.TemporaryDirectory() as tmp:
        settings = Path(tmp) / "settings.json"
        code = 0
        with redirect_stdout(out):
            try:
                main(["--settings", str(settings), *argv])
            except SystemExit as e:
                code = e.code
    return code, out.getvalue()


def test_markup_to_file():
    with tempfile.TemporaryDirectory() as tmp:
        original = Path(tmp) / "original.md"
        revised = Path(tmp) / "revised.md"
        output = Path(tmp) / "annotated.md"
        original.write_text("I like cats.", encoding="utf-8")
        revised.write_text("I like cat.", encoding="utf-8")

        code, _ = _run("markup", str(original), str(revised), "-o", str(output))

        assert code == 0
        assert output.read_text(encoding="utf-8") == "I like cat{--s--}."
    print("PASS: markup -o")


def test_markup_to_stdout_with_markdown_syntax():
    with tempfile.TemporaryDirectory() as tmp:
        original = Path(tmp) / "original.md"
        revised = Path(tmp) / "revised.md"
        original.write_text("I like cats.", encoding="utf-8")
        revised.write_text("I like cat.", encoding="utf-8")

        code, out = _run("--syntax", "markdown", "markup", str(original), str(revised))

        assert code == 0
        assert out == "I like cat~~s~~."
    print("PASS: markup to stdout")


def test_accept_in_place():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("a {++b++} c\nd {--e--}", encoding="utf-8")

        code, _ = _run("accept", str(path))

        assert code == 0
        assert path.read_text(encoding="utf-8") == "a b c\nd "
    print("PASS: accept in place")


def test_reject_one_line():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("a {++b++} c\nd {--e--}", encoding="utf-8")

        code, _ = _run("reject", str(path), "--line", "1")

        assert code == 0
        assert path.read_text(encoding="utf-8") == "a {++b++} c\nd e"
    print("PASS: reject one line")


def test_next_prints_new_cursor():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("x {++a++} y {--b--} z", encoding="utf-8")

        code, out = _run("next", str(path), "--cursor", "0", "--accept")

        assert code == 0
        assert out.strip() == "3"
        assert path.read_text(encoding="utf-8") == "x a y {--b--} z"
    print("PASS: next")


def test_proofread_with_pending_suggestions_exits_with_precondition_code():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("a {++b++} c", encoding="utf-8")

        code, _ = _run("proofread", str(path))

        assert code == EXIT_PRECONDITION
        assert path.read_text(encoding="utf-8") == "a {++b++} c"
    print("PASS: precondition exit code")


def test_malformed_markup_exits_with_precondition_code():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("a {++b c", encoding="utf-8")

        code, _ = _run("accept", str(path))

        assert code == EXIT_PRECONDITION
        assert path.read_text(encoding="utf-8") == "a {++b c"
    print("PASS: malformed markup left untouched")


def test_count_lists_regions():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "note.md"
        path.write_text("a {++b++} c", encoding="utf-8")

        code, out = _run("count", str(path), "--list")

        assert code == 0
        assert out.splitlines() == ["2:9\tADDITION\t'b'"]
    print("PASS: count --list")


def test_version_flag():
    code, out = _run("--version")
    assert code == 0
    assert out.startswith("proofreader ")
    assert out.split()[1] == __version__
    print("PASS: --version")


if __name__ == "__main__":
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_") and callable(v)]

    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            failed += 1

    print(f"\n{len(tests) - failed} passed, {failed} failed")
    sys.exit(1 if failed else 0)
