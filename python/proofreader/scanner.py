from typing import Iterator

from proofreader.errors import MalformedMarkupError
from proofreader.models import CRITIC_SYNTAX, MarkupSyntax, SuggestionRegion


class SuggestionScanner:
    """
    Finds suggestion regions in annotated text.

    Iterating yields ``SuggestionRegion`` values lazily and in document order.
    Every ``iter()`` starts a fresh scan, so the same scanner can be walked
    again after a caller has looked at part of it. Offsets are shifted by
    ``base_offset`` so a scope can be scanned in document coordinates.

    Malformed markup raises ``MalformedMarkupError`` when the scan reaches it;
    regions before that point have already been yielded.
    """

    def __init__(self, text: str, syntax: MarkupSyntax = CRITIC_SYNTAX, base_offset: int = 0):
        self.text = text
        self.syntax = syntax
        self.base_offset = base_offset

    def __iter__(self) -> Iterator[SuggestionRegion]:
        return self._scan()

    def _scan(self) -> Iterator[SuggestionRegion]:
        text = self.text
        syntax = self.syntax
        pos = 0

        while True:
            hit = syntax.find_token(text, pos)
            if hit is None:
                return

            idx, token, kind, is_opener = hit
            if not is_opener:
                raise MalformedMarkupError(
                    f"Closing marker '{token}' without an opening marker.",
                    offset=self.base_offset + idx,
                )

            inner_start = idx + len(token)
            closer = syntax.closer(kind)
            close_idx = text.find(closer, inner_start)
            if close_idx == -1:
                raise MalformedMarkupError(
                    f"Opening marker '{token}' is never closed.",
                    offset=self.base_offset + idx,
                )

            inner = text[inner_start:close_idx]
            nested = syntax.find_token(inner)
            if nested is not None:
                raise MalformedMarkupError(
                    f"Marker '{nested[1]}' nested inside another suggestion.",
                    offset=self.base_offset + inner_start + nested[0],
                )

            end = close_idx + len(closer)
            yield SuggestionRegion(
                kind=kind,
                start=self.base_offset + idx,
                end=self.base_offset + end,
                inner_text=inner,
            )
            pos = end


def validate_markup(text: str, syntax: MarkupSyntax = CRITIC_SYNTAX, base_offset: int = 0) -> int:
    """Scans ``text`` to the end; returns the region count or raises ``MalformedMarkupError``."""
    count = 0
    for _ in SuggestionScanner(text, syntax, base_offset):
        count += 1
    return count
