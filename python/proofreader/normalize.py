"""
Edge-case clean-up of raw word-diff operations before they are encoded.

The rules run in a fixed order:

1. Truncation: keep the original tail unmarked and announce the cut-off.
2. One-character fix-up: "cats" -> "cat" marks only the "s".
3. Typographic quotes: a straight quote swapped for a curly one is no edit.
4. Leading spaces: keep a space from sitting right inside an opening marker.

Apart from rule 1 (original tail kept) and rule 3 (original punctuation kept),
the accept and reject projections of the sequence are never changed.
"""

from typing import List, Optional, Sequence, Tuple

import structlog

from proofreader.models import DiffOp, Operation

logger = structlog.get_logger(__name__)

TRUNCATION_CALLOUT = (
    "\n\n"
    "> [!INFO] End of proofreading\n"
    "> The input text was too long. Text after this point is unchanged."
    "\n\n"
)

_SMART_QUOTES = str.maketrans({
    "“": '"',  # Left double quote
    "”": '"',  # Right double quote
    "‘": "'",  # Left single quote
    "’": "'",  # Right single quote
})

_SMART_PUNCTUATION = str.maketrans({
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "–": "-",  # En dash
    "—": "-",  # Em dash
    "…": "...",  # Ellipsis
})


class DiffNormalizer:
    def __init__(
        self,
        truncation_notice: str = TRUNCATION_CALLOUT,
        preserve_non_smart_punctuation: bool = False,
        slide_spaces: bool = True,
    ):
        self.truncation_notice = truncation_notice
        self.preserve_non_smart_punctuation = preserve_non_smart_punctuation
        # A slid run ends in a space, which Markdown emphasis does not allow.
        self.slide_spaces = slide_spaces

    @classmethod
    def from_settings(cls, settings) -> "DiffNormalizer":
        return cls(
            truncation_notice=settings.truncation_notice,
            preserve_non_smart_punctuation=settings.preserve_non_smart_punctuation,
            slide_spaces=settings.markup_syntax != "markdown",
        )

    def normalize(self, ops: Sequence[DiffOp], truncated: bool = False) -> List[DiffOp]:
        """
        Returns a cleaned copy of ``ops``.

        Args:
            ops: Raw operations from the word diff.
            truncated: True when the revision was cut off by an output-length
                cap. The removal in the trailing change run is then treated as
                unchanged, a half-written insertion next to it is dropped, and
                the truncation notice is placed right before that unchanged tail.
        """
        result = [op for op in ops if op.text]

        tail = None
        if truncated:
            result, tail = _split_truncated_tail(result)

        result = _merge_one_char_changes(result)
        result = _collapse_punctuation_swaps(result, self._straighten)
        result = _move_leading_spaces(result, slide=self.slide_spaces)

        if truncated:
            if tail:
                result.append(tail)
            result = self._insert_truncation_notice(result)

        return result

    def _straighten(self, text: str) -> str:
        table = _SMART_PUNCTUATION if self.preserve_non_smart_punctuation else _SMART_QUOTES
        return text.translate(table)

    def _insert_truncation_notice(self, ops: List[DiffOp]) -> List[DiffOp]:
        notice = DiffOp.equal(self.truncation_notice)
        if ops and ops[-1].operation == Operation.EQUAL:
            return ops[:-1] + [notice, ops[-1]]
        logger.warning("Truncated revision does not end in an unchanged run; appending notice at the end")
        return ops + [notice]


def _split_truncated_tail(ops: List[DiffOp]) -> Tuple[List[DiffOp], Optional[DiffOp]]:
    """
    Splits off the original text past the truncation point.

    The tail is the removed text of the trailing change run, returned as an
    EQUAL. A model cut off mid-word leaves a partial insertion beside it
    ("Gamma delta." -> "Gam"); that insertion is discarded.
    """
    start = len(ops)
    while start > 0 and ops[start - 1].is_change:
        start -= 1

    removed = "".join(op.text for op in ops[start:] if op.operation == Operation.DELETE)
    if not removed:
        return ops, None

    partial = "".join(op.text for op in ops[start:] if op.operation == Operation.INSERT)
    if partial:
        logger.debug(f"Dropping partial insertion at the truncation point {partial!r}")
    logger.info(f"Keeping {len(removed)} chars after the truncation point unchanged")
    return ops[:start], DiffOp.equal(removed)


def _split_one_char(removed: str, added: str) -> Optional[List[DiffOp]]:
    """
    If one side is the other plus a single trailing (or leading) character,
    returns the shared part as EQUAL and the odd character as the change.
    """
    if len(removed) == len(added) + 1:
        longer, shorter, operation = removed, added, Operation.DELETE
    elif len(added) == len(removed) + 1:
        longer, shorter, operation = added, removed, Operation.INSERT
    else:
        return None

    if not shorter:
        return None
    if longer.startswith(shorter):
        return [DiffOp.equal(shorter), DiffOp(operation, longer[-1])]
    if longer.endswith(shorter):
        return [DiffOp(operation, longer[0]), DiffOp.equal(shorter)]
    return None


def _merge_one_char_changes(ops: List[DiffOp]) -> List[DiffOp]:
    result: List[DiffOp] = []
    i = 0
    while i < len(ops):
        if _is_replacement_pair(ops, i):
            split = _split_one_char(ops[i].text, ops[i + 1].text)
            if split:
                logger.debug(f"One-char change: {ops[i].text!r} -> {ops[i + 1].text!r}")
                result.extend(split)
                i += 2
                continue
        result.append(ops[i])
        i += 1
    return result


def _collapse_punctuation_swaps(ops: List[DiffOp], straighten) -> List[DiffOp]:
    result: List[DiffOp] = []
    i = 0
    while i < len(ops):
        if _is_replacement_pair(ops, i):
            removed, added = ops[i].text, ops[i + 1].text
            if removed != added and straighten(added) == removed:
                logger.debug(f"Ignoring typographic swap {removed!r} -> {added!r}")
                result.append(DiffOp.equal(removed))
                i += 2
                continue
        result.append(ops[i])
        i += 1
    return result


def _move_leading_spaces(ops: List[DiffOp], slide: bool = True) -> List[DiffOp]:
    """
    Moves a space that opens a marked run to just before the opening marker.

    Two lossless moves exist: factor out a space shared by a removal and its
    replacement, or slide a single-kind run one character to the right when
    the text after it also starts with that space. Anything else is left as is.
    With ``slide`` off only the first move is made.
    """
    ops = list(ops)
    result: List[DiffOp] = []
    i = 0
    while i < len(ops):
        if not ops[i].is_change:
            result.append(ops[i])
            i += 1
            continue

        j = i
        while j < len(ops) and ops[j].is_change:
            j += 1
        deleted = "".join(op.text for op in ops[i:j] if op.operation == Operation.DELETE)
        inserted = "".join(op.text for op in ops[i:j] if op.operation == Operation.INSERT)

        marked = [text for text in (deleted, inserted) if text]
        if marked and all(text.startswith(" ") for text in marked):
            if len(marked) == 2:
                _append_equal(result, " ")
                deleted, inserted = deleted[1:], inserted[1:]
            elif slide and j < len(ops) and ops[j].text.startswith(" "):
                _append_equal(result, " ")
                if deleted:
                    deleted = deleted[1:] + " "
                else:
                    inserted = inserted[1:] + " "
                ops[j] = DiffOp.equal(ops[j].text[1:])
            else:
                logger.debug("Leading space left inside marker", text=marked[0][:20])

        if deleted:
            result.append(DiffOp.delete(deleted))
        if inserted:
            result.append(DiffOp.insert(inserted))
        i = j

    return [op for op in result if op.text]


def _append_equal(result: List[DiffOp], text: str):
    if result and result[-1].operation == Operation.EQUAL:
        result[-1] = DiffOp.equal(result[-1].text + text)
    else:
        result.append(DiffOp.equal(text))


def _is_replacement_pair(ops: List[DiffOp], i: int) -> bool:
    return (
        i + 1 < len(ops)
        and ops[i].operation == Operation.DELETE
        and ops[i + 1].operation == Operation.INSERT
    )
