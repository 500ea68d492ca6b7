# FILE: python/proofreader/markup.py
"""
Pure text transformation between diff operations and annotated text.

Encoding wraps insertions and deletions in the marker pairs of a
``MarkupSyntax`` (CriticMarkup by default):

- Additions: {++added text++}
- Removals:  {--removed text--}

Decoding strips the markers again under an accept or reject policy.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import structlog

from proofreader.diff import word_diff
from proofreader.errors import MalformedMarkupError, MarkupConflictError
from proofreader.models import (
    CRITIC_SYNTAX,
    SYNTAXES,
    DiffOp,
    MarkupSyntax,
    Operation,
    Policy,
    SuggestionKind,
    SuggestionRegion,
)
from proofreader.normalize import DiffNormalizer
from proofreader.scanner import SuggestionScanner
from proofreader.settings import ProofreaderSettings

logger = structlog.get_logger(__name__)

_QUOTED = re.compile(r'"([^"]+)"')

_KIND_BY_OPERATION = {
    Operation.INSERT: SuggestionKind.ADDITION,
    Operation.DELETE: SuggestionKind.REMOVAL,
}


class MarkupCodec:
    def __init__(self, syntax: MarkupSyntax = CRITIC_SYNTAX, preserve_text_inside_quotes: bool = False):
        self.syntax = syntax
        self.preserve_text_inside_quotes = preserve_text_inside_quotes

    @classmethod
    def from_settings(cls, settings) -> "MarkupCodec":
        return cls(
            syntax=SYNTAXES[settings.markup_syntax],
            preserve_text_inside_quotes=settings.preserve_text_inside_quotes,
        )

    def encode(self, ops: Sequence[DiffOp]) -> str:
        """
        Renders cleaned operations as annotated text.

        Never looks at the host document: the output depends only on ``ops``
        and the codec's configuration.
        """
        ops = _coalesce(ops)
        if self.preserve_text_inside_quotes:
            ops = _coalesce(_preserve_quoted_text(ops))

        parts = []
        expected: List[SuggestionRegion] = []
        pos = 0
        for op in ops:
            if self.syntax.contains_marker(op.text):
                raise MarkupConflictError(
                    f"Cannot encode text that already contains suggestion markers: '{op.text[:30]}...'"
                )
            if op.operation == Operation.EQUAL:
                part = op.text
            else:
                kind = _KIND_BY_OPERATION[op.operation]
                part = self.syntax.wrap(kind, op.text)
                expected.append(SuggestionRegion(kind, pos, pos + len(part), op.text))
            parts.append(part)
            pos += len(part)

        text = "".join(parts)
        self._check_regions(text, expected)
        return text

    def _check_regions(self, text: str, expected: List[SuggestionRegion]):
        """Markers must read back as exactly the regions that were written."""
        try:
            found = list(SuggestionScanner(text, self.syntax))
        except MalformedMarkupError as e:
            found = None
            logger.debug("Encoded text does not scan", error=str(e))
        if found != expected:
            raise MarkupConflictError(
                f"Text next to a change merges with the {self.syntax.name} markers and cannot be encoded."
            )

    def decode(self, text: str, policy: Policy) -> str:
        """
        Strips all markers from ``text``.

        ACCEPT keeps added text and drops removed text, REJECT does the
        opposite. ``text`` may be a sub-span cut through a region: a closer
        with no opener applies to everything before it, an opener with no
        closer applies to everything after it.
        """
        parts = []
        pos = 0
        while True:
            hit = self.syntax.find_token(text, pos)
            if hit is None:
                parts.append(text[pos:])
                break

            idx, token, kind, is_opener = hit
            if not is_opener:
                parts.append(_keep_or_drop(kind, text[pos:idx], policy))
                pos = idx + len(token)
                continue

            parts.append(text[pos:idx])
            inner_start = idx + len(token)
            close_idx = text.find(self.syntax.closer(kind), inner_start)
            if close_idx == -1:
                parts.append(_keep_or_drop(kind, text[inner_start:], policy))
                break
            parts.append(_keep_or_drop(kind, text[inner_start:close_idx], policy))
            pos = close_idx + len(self.syntax.closer(kind))

        return "".join(parts)


def _keep_or_drop(kind: SuggestionKind, inner: str, policy: Policy) -> str:
    keep = (kind == SuggestionKind.ADDITION) == (policy == Policy.ACCEPT)
    return inner if keep else ""


def _coalesce(ops: Sequence[DiffOp]) -> List[DiffOp]:
    """Joins neighbouring operations of the same type and drops empty ones."""
    result: List[DiffOp] = []
    for op in ops:
        if not op.text:
            continue
        if result and result[-1].operation == op.operation:
            result[-1] = DiffOp(op.operation, result[-1].text + op.text)
        else:
            result.append(op)
    return result


def _preserve_quoted_text(ops: Sequence[DiffOp]) -> List[DiffOp]:
    """
    Reverts changes that fall inside "double quotes" of the original text.

    Best effort only: a change crossing a quotation mark is left alone,
    and only straight double quotes are recognised.
    """
    original = "".join(op.text for op in ops if op.operation != Operation.INSERT)
    interiors: List[Tuple[int, int]] = [(m.start(1), m.end(1)) for m in _QUOTED.finditer(original)]
    if not interiors:
        return list(ops)

    result: List[DiffOp] = []
    pos = 0
    for op in ops:
        if op.operation == Operation.EQUAL:
            result.append(op)
            pos += len(op.text)
        elif op.operation == Operation.DELETE:
            end = pos + len(op.text)
            if any(start <= pos and end <= stop for start, stop in interiors):
                logger.debug(f"Restoring quoted text {op.text!r}")
                result.append(DiffOp.equal(op.text))
            else:
                result.append(op)
            pos = end
        else:
            if any(start <= pos <= stop for start, stop in interiors):
                logger.debug(f"Dropping insertion inside quotes {op.text!r}")
                continue
            result.append(op)
    return result


@dataclass(frozen=True)
class AnnotatedRevision:
    text: str
    suggestion_count: int
    was_truncated: bool = False


def annotate_revision(
    original_text: str,
    revised_text: str,
    settings=None,
    truncated: bool = False,
) -> AnnotatedRevision:
    """
    Diff -> normalize -> encode.

    Args:
        original_text: The text as the reviewer wrote it.
        revised_text: The text as the model returned it.
        settings: ``ProofreaderSettings``; defaults are used when omitted.
        truncated: The revision was cut off by an output-length cap.
    """
    if settings is None:
        settings = ProofreaderSettings()

    ops = word_diff(original_text, revised_text, with_space=settings.diff_with_space)
    ops = DiffNormalizer.from_settings(settings).normalize(ops, truncated=truncated)
    codec = MarkupCodec.from_settings(settings)
    text = codec.encode(ops)

    count = count_suggestions(text, codec.syntax)
    logger.debug("Annotated revision", suggestions=count, truncated=truncated)
    return AnnotatedRevision(text=text, suggestion_count=count, was_truncated=truncated)


def count_suggestions(text: str, syntax: MarkupSyntax = CRITIC_SYNTAX) -> int:
    return sum(1 for _ in SuggestionScanner(text, syntax))


def contains_markup(text: str, syntax: Optional[MarkupSyntax] = None) -> bool:
    """True if ``text`` holds any marker token of ``syntax`` (of any built-in syntax if omitted)."""
    if syntax is not None:
        return syntax.contains_marker(text)
    return any(s.contains_marker(text) for s in SYNTAXES.values())
