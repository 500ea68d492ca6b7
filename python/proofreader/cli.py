import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from proofreader import __version__
from proofreader.document import TextDocument
from proofreader.errors import CollaboratorError, PreconditionError, ProofreaderError
from proofreader.markup import annotate_revision
from proofreader.models import (
    SYNTAXES,
    Direction,
    NavigationStatus,
    Policy,
    ProofreadStatus,
    Scope,
)
from proofreader.proofread import Proofreader
from proofreader.scanner import SuggestionScanner
from proofreader.settings import default_settings_path, load_settings, save_settings

EXIT_PRECONDITION = 2
EXIT_COLLABORATOR = 3


def _configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(stream=sys.stderr, level=level, force=True)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _read_text(path: Path) -> str:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _open_document(path: Path) -> TextDocument:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    return TextDocument.from_path(path)


def _parse_range(value: str):
    try:
        start, end = value.split(":", 1)
        return int(start), int(end)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected START:END offsets, got '{value}'") from None


def _scope_from_args(document: TextDocument, args: argparse.Namespace) -> Scope:
    if getattr(args, "range", None):
        return document.selection_scope(*args.range)
    if getattr(args, "line", None) is not None:
        return document.line_scope(args.line)
    return document.body_scope()


def _load(args: argparse.Namespace):
    settings = load_settings(args.settings)
    updates = {}
    if getattr(args, "syntax", None):
        updates["markup_syntax"] = args.syntax
    if getattr(args, "preserve_quotes", False):
        updates["preserve_text_inside_quotes"] = True
    return settings.model_copy(update=updates) if updates else settings


def _write_output(document: TextDocument, output: Optional[Path]):
    path = document.save(output)
    print(f"✅ Saved to {path}", file=sys.stderr)


def handle_markup(args):
    """Annotate the differences between two text files without calling a model."""
    settings = _load(args)
    original = _read_text(args.original)
    revised = _read_text(args.revised)

    annotated = annotate_revision(original, revised, settings, truncated=args.truncated)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(annotated.text)
        print(f"✅ Saved {annotated.suggestion_count} suggestions to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(annotated.text)
        print(f"Stats: {annotated.suggestion_count} suggestions.", file=sys.stderr)


def handle_proofread(args):
    settings = _load(args)
    document = _open_document(args.input)
    scope = _scope_from_args(document, args)

    print(f"🤖 {scope.label} is being proofread…", file=sys.stderr)
    result = asyncio.run(Proofreader(settings).proofread(document, scope))

    if result.status == ProofreadStatus.UNCHANGED:
        print("✅ Text is good, nothing to change.", file=sys.stderr)
        return

    plural = "" if result.suggestion_count == 1 else "s"
    print(f"🤖 {result.suggestion_count} suggestion{plural} ready.", file=sys.stderr)
    if settings.llm_provider == "openai" and result.cost:
        print(f"est. cost: ${result.cost:.4f}", file=sys.stderr)
    if result.was_truncated:
        print("⚠️  The text was too long; the end was left unchanged.", file=sys.stderr)
    _write_output(document, args.output)


def _handle_resolve(args, policy: Policy):
    settings = _load(args)
    document = _open_document(args.input)
    scope = _scope_from_args(document, args)

    summary = Proofreader(settings).resolve_in_scope(document, scope, policy)
    if summary.resolved == 0:
        print(f"No suggestions in {scope.label.lower()}, nothing to do.", file=sys.stderr)
        return

    verb = "accepted" if policy == Policy.ACCEPT else "rejected"
    print(f"{'✅' if policy == Policy.ACCEPT else '❌'} {summary.resolved} suggestions {verb}.", file=sys.stderr)
    _write_output(document, args.output)


def handle_accept(args):
    _handle_resolve(args, Policy.ACCEPT)


def handle_reject(args):
    _handle_resolve(args, Policy.REJECT)


def handle_next(args):
    settings = _load(args)
    document = _open_document(args.input)
    policy = Policy.REJECT if args.reject else Policy.ACCEPT
    direction = Direction.BACKWARD if args.backward else Direction.FORWARD

    result = Proofreader(settings).resolve_next(document, args.cursor, policy, direction)
    if result.status == NavigationStatus.NOTHING_TO_DO:
        msg = "No suggestion found in that direction, nothing to do."
        if result.nearest_behind is not None:
            pos = document.offset_to_pos(result.nearest_behind.start)
            msg += f" Nearest suggestion behind the cursor is at line {pos.line + 1}."
        print(msg, file=sys.stderr)
        return

    pos = document.offset_to_pos(result.cursor)
    print(f"Resolved {result.region.kind.value.lower()} at offset {result.region.start}.", file=sys.stderr)
    print(f"Cursor: {result.cursor} (line {pos.line + 1}, ch {pos.ch})", file=sys.stderr)
    _write_output(document, args.output)
    print(result.cursor)


def handle_count(args):
    settings = _load(args)
    text = _read_text(args.input)
    count = 0
    for region in SuggestionScanner(text, SYNTAXES[settings.markup_syntax]):
        count += 1
        if args.list:
            print(f"{region.start}:{region.end}\t{region.kind.value}\t{region.inner_text!r}")
    print(f"Found {count} suggestions.", file=sys.stderr)


def handle_config(args):
    path = args.settings or default_settings_path()
    settings = load_settings(path)
    if args.init:
        save_settings(settings, path)
        print(f"✅ Settings written to {path}", file=sys.stderr)
        return

    print(f"📍 Settings: {path}{'' if path.exists() else ' (not created yet)'}", file=sys.stderr)
    for key, value in settings.model_dump().items():
        if key == "openai_api_key" and value:
            value = value[:5] + "…"
        elif key == "static_prompt":
            value = value[:60] + "…"
        print(f"{key} = {value!r}")


def _add_scope_arguments(parser: argparse.ArgumentParser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--line", type=int, help="Zero-based line (paragraph) to work on")
    group.add_argument("--range", type=_parse_range, help="START:END character offsets to work on")
    parser.add_argument("-o", "--output", type=Path, help="Output file (default: update input in place)")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="proofreader", description="Proofreader: AI suggestions as reviewable markup")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", type=Path, help=f"Settings JSON (default: {default_settings_path()})")
    parser.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    parser.add_argument("--syntax", choices=sorted(SYNTAXES), help="Override the markup syntax")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_markup = subparsers.add_parser("markup", help="Annotate the differences between two text files")
    p_markup.add_argument("original", type=Path, help="Original text file")
    p_markup.add_argument("revised", type=Path, help="Revised text file")
    p_markup.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")
    p_markup.add_argument("--truncated", action="store_true", help="The revision was cut off by an output cap")
    p_markup.add_argument("--preserve-quotes", action="store_true", help="Leave text inside double quotes alone")
    p_markup.set_defaults(func=handle_markup)

    p_proofread = subparsers.add_parser("proofread", help="Proofread a text file with the configured model")
    p_proofread.add_argument("input", type=Path, help="Text or Markdown file")
    p_proofread.add_argument("--preserve-quotes", action="store_true", help="Leave text inside double quotes alone")
    _add_scope_arguments(p_proofread)
    p_proofread.set_defaults(func=handle_proofread)

    p_accept = subparsers.add_parser("accept", help="Accept all suggestions in a scope")
    p_accept.add_argument("input", type=Path, help="Annotated file")
    _add_scope_arguments(p_accept)
    p_accept.set_defaults(func=handle_accept)

    p_reject = subparsers.add_parser("reject", help="Reject all suggestions in a scope")
    p_reject.add_argument("input", type=Path, help="Annotated file")
    _add_scope_arguments(p_reject)
    p_reject.set_defaults(func=handle_reject)

    p_next = subparsers.add_parser("next", help="Accept or reject the next suggestion after a cursor offset")
    p_next.add_argument("input", type=Path, help="Annotated file")
    p_next.add_argument("--cursor", type=int, default=0, help="Cursor offset (default: 0)")
    decision = p_next.add_mutually_exclusive_group(required=True)
    decision.add_argument("--accept", action="store_true", help="Accept the suggestion")
    decision.add_argument("--reject", action="store_true", help="Reject the suggestion")
    p_next.add_argument("--backward", action="store_true", help="Resolve the suggestion behind the cursor")
    p_next.add_argument("-o", "--output", type=Path, help="Output file (default: update input in place)")
    p_next.set_defaults(func=handle_next)

    p_count = subparsers.add_parser("count", help="Count (and optionally list) suggestions in a file")
    p_count.add_argument("input", type=Path, help="Annotated file")
    p_count.add_argument("--list", action="store_true", help="Print one line per suggestion")
    p_count.set_defaults(func=handle_count)

    p_config = subparsers.add_parser("config", help="Show the effective settings")
    p_config.add_argument("--init", action="store_true", help="Write the settings file with defaults filled in")
    p_config.set_defaults(func=handle_config)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        args.func(args)
    except PreconditionError as e:
        print(f"⚠️  {e}", file=sys.stderr)
        sys.exit(EXIT_PRECONDITION)
    except CollaboratorError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(EXIT_COLLABORATOR)
    except (ProofreaderError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
