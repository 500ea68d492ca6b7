import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
from mcp.server.fastmcp import FastMCP

from proofreader.document import TextDocument
from proofreader.errors import ProofreaderError
from proofreader.markup import annotate_revision
from proofreader.models import SYNTAXES, Direction, NavigationStatus, Policy, ProofreadStatus, Scope
from proofreader.proofread import Proofreader
from proofreader.scanner import SuggestionScanner
from proofreader.settings import load_settings

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio.
# CRITICAL: All logs must go to stderr. Any print to stdout will break the JSON-RPC protocol.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("Proofreader Suggestion Service")


def _scope(document: TextDocument, line: Optional[int], start: Optional[int], end: Optional[int]) -> Scope:
    if start is not None and end is not None:
        return document.selection_scope(start, end)
    if line is not None:
        return document.line_scope(line)
    return document.body_scope()


def _policy(value: str) -> Policy:
    try:
        return Policy(value.lower())
    except ValueError:
        raise ValueError(f"policy must be 'accept' or 'reject', got '{value}'") from None


@mcp.tool()
def markup_revision(
    original_text: str,
    revised_text: str,
    was_truncated: bool = False,
    preserve_text_inside_quotes: bool = False,
) -> str:
    """
    Annotates the differences between two versions of a text as inline suggestions.

    Args:
        original_text: The text before revision.
        revised_text: The revised text.
        was_truncated: Set when the revision was cut off by an output limit. The
                       original text after the cut-off is kept unchanged and a
                       notice marks the spot.
        preserve_text_inside_quotes: Leave text inside "double quotes" unchanged.

    Returns:
        The annotated text:
        - Additions: {++added text++}
        - Removals: {--removed text--}
    """
    try:
        settings = load_settings()
        if preserve_text_inside_quotes:
            settings = settings.model_copy(update={"preserve_text_inside_quotes": True})
        return annotate_revision(original_text, revised_text, settings, truncated=was_truncated).text
    except (ProofreaderError, ValueError) as e:
        return f"Error: {str(e)}"


@mcp.tool()
async def proofread_file(
    file_path: str,
    line: Optional[int] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> str:
    """
    Proofreads a text/Markdown file with the configured language model and writes
    the suggestions into the file as inline markup.

    Args:
        file_path: Absolute path to the file.
        line: Optional zero-based line (paragraph) to proofread.
        start: Optional start offset of a selection (use with `end`).
        end: Optional end offset of a selection.
        If neither a line nor a selection is given, the whole body (after any
        front matter) is proofread.
    """
    try:
        document = TextDocument.from_path(Path(file_path))
        scope = _scope(document, line, start, end)
        result = await Proofreader(load_settings()).proofread(document, scope)
        if result.status == ProofreadStatus.UNCHANGED:
            return "Text is good, nothing to change."
        document.save()
        note = " The text was too long; the end was left unchanged." if result.was_truncated else ""
        if result.cost:
            note += f" Est. cost: ${result.cost:.4f}."
        return f"{result.suggestion_count} suggestions written to {file_path}.{note}"
    except FileNotFoundError:
        return f"Error: File not found: {file_path}"
    except (ProofreaderError, ValueError) as e:
        return f"Error: {str(e)}"


@mcp.tool()
def resolve_suggestions(
    file_path: str,
    policy: str,
    line: Optional[int] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> str:
    """
    Accepts or rejects every suggestion in a file, a line, or a selection.

    Args:
        file_path: Absolute path to the annotated file.
        policy: "accept" or "reject".
        line: Optional zero-based line to restrict to.
        start: Optional selection start offset (use with `end`).
        end: Optional selection end offset.
    """
    try:
        document = TextDocument.from_path(Path(file_path))
        scope = _scope(document, line, start, end)
        summary = Proofreader(load_settings()).resolve_in_scope(document, scope, _policy(policy))
        if summary.resolved == 0:
            return "No suggestions found, nothing to do."
        document.save()
        return f"{summary.policy.value.capitalize()}ed {summary.resolved} suggestions in {file_path}."
    except FileNotFoundError:
        return f"Error: File not found: {file_path}"
    except (ProofreaderError, ValueError) as e:
        return f"Error: {str(e)}"


@mcp.tool()
def resolve_next_suggestion(file_path: str, cursor: int, policy: str, backward: bool = False) -> str:
    """
    Accepts or rejects the next suggestion after `cursor` (or the previous one
    before it when `backward` is set) and reports the new cursor offset.
    The search never wraps around to the start of the document.
    """
    try:
        document = TextDocument.from_path(Path(file_path))
        direction = Direction.BACKWARD if backward else Direction.FORWARD
        result = Proofreader(load_settings()).resolve_next(document, cursor, _policy(policy), direction)
        if result.status == NavigationStatus.NOTHING_TO_DO:
            msg = "No suggestion found, nothing to do."
            if result.nearest_behind is not None:
                msg += f" Nearest suggestion behind the cursor starts at offset {result.nearest_behind.start}."
            return msg
        document.save()
        return f"Resolved {result.region.kind.value.lower()} at offset {result.region.start}. Cursor: {result.cursor}"
    except FileNotFoundError:
        return f"Error: File not found: {file_path}"
    except (ProofreaderError, ValueError) as e:
        return f"Error: {str(e)}"


@mcp.tool()
def list_suggestions(text: str) -> str:
    """
    Lists the suggestions in annotated text, one per line as
    `START:END KIND 'inner text'` in document order.
    """
    try:
        syntax = SYNTAXES[load_settings().markup_syntax]
        lines = [
            f"{r.start}:{r.end} {r.kind.value} {r.inner_text!r}" for r in SuggestionScanner(text, syntax)
        ]
        return "\n".join(lines) if lines else "No suggestions."
    except (ProofreaderError, ValueError) as e:
        return f"Error: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
