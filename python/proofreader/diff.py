import re
from typing import Dict, List, Tuple

import structlog
from diff_match_patch import diff_match_patch

from proofreader.models import DiffOp, Operation

logger = structlog.get_logger(__name__)

_DMP_OPERATIONS = {
    diff_match_patch.DIFF_EQUAL: Operation.EQUAL,
    diff_match_patch.DIFF_INSERT: Operation.INSERT,
    diff_match_patch.DIFF_DELETE: Operation.DELETE,
}

_SPLIT_PATTERN = re.compile(r"(\s+|\w+|[^\w\s])")


def word_diff(original_text: str, revised_text: str, with_space: bool = False) -> List[DiffOp]:
    """
    Word-level diff of two flat texts.

    Within every change group deletions come before insertions. With
    ``with_space`` False, unchanged whitespace sitting between two changes is
    folded into them, so "a b" -> "x y" reads as one replacement instead of
    two.
    """
    dmp = diff_match_patch()

    # 1. Word-Level Tokenization & Encoding
    chars1, chars2, token_array = _words_to_chars(original_text, revised_text)

    # 2. Compute Diff on the Encoded Strings
    diffs = dmp.diff_main(chars1, chars2, False)

    # 3. Semantic Cleanup
    dmp.diff_cleanupSemantic(diffs)

    # 4. Decode back to Text
    dmp.diff_charsToLines(diffs, token_array)

    ops = [DiffOp(_DMP_OPERATIONS[op], text) for op, text in diffs if text]
    if not with_space:
        ops = _absorb_whitespace_equalities(ops)

    logger.debug("Computed word diff", ops=len(ops), changes=sum(1 for op in ops if op.is_change))
    return ops


def _words_to_chars(text1: str, text2: str) -> Tuple[str, str, List[str]]:
    """
    Splits text into words/tokens and encodes them as unique Unicode characters.
    """
    token_array: List[str] = []
    token_hash: Dict[str, int] = {}

    def encode_text(text: str) -> str:
        tokens = [t for t in _SPLIT_PATTERN.split(text) if t]
        encoded_chars = []
        for token in tokens:
            if token in token_hash:
                encoded_chars.append(chr(token_hash[token]))
            else:
                code = len(token_array)
                token_hash[token] = code
                token_array.append(token)
                encoded_chars.append(chr(code))
        return "".join(encoded_chars)

    chars1 = encode_text(text1)
    chars2 = encode_text(text2)
    return chars1, chars2, token_array


def _absorb_whitespace_equalities(ops: List[DiffOp]) -> List[DiffOp]:
    """
    Merges runs of the shape change, whitespace-equal, change into a single
    DELETE followed by a single INSERT. Both projections are preserved since
    the whitespace is copied into each side.
    """
    result: List[DiffOp] = []
    i = 0
    while i < len(ops):
        if not ops[i].is_change:
            result.append(ops[i])
            i += 1
            continue

        # Collect a group of changes joined only by whitespace equalities
        j = i
        group_end = i
        while j < len(ops):
            if ops[j].is_change:
                group_end = j
                j += 1
            elif ops[j].text.isspace() and j + 1 < len(ops) and ops[j + 1].is_change:
                j += 1
            else:
                break

        group = ops[i : group_end + 1]
        if any(not op.is_change for op in group):
            deleted = "".join(op.text for op in group if op.operation != Operation.INSERT)
            inserted = "".join(op.text for op in group if op.operation != Operation.DELETE)
            if deleted:
                result.append(DiffOp.delete(deleted))
            if inserted:
                result.append(DiffOp.insert(inserted))
        else:
            result.extend(group)
        i = group_end + 1

    return result
