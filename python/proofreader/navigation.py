"""
Cursor-relative navigation through suggestions.

Regions are rescanned from the current text on every step instead of being
kept between edits, so a step never works from stale offsets.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import structlog

from proofreader.models import (
    CRITIC_SYNTAX,
    Direction,
    MarkupSyntax,
    Policy,
    ResolutionStatus,
    SuggestionRegion,
)
from proofreader.resolver import SuggestionResolver
from proofreader.scanner import SuggestionScanner

logger = structlog.get_logger(__name__)


def find_next(regions: Iterable[SuggestionRegion], cursor: int) -> Optional[SuggestionRegion]:
    """First region starting at or after ``cursor``. Never wraps to the start."""
    for region in regions:
        if region.start >= cursor:
            return region
    return None


def find_previous(regions: Iterable[SuggestionRegion], cursor: int) -> Optional[SuggestionRegion]:
    """Last region starting before ``cursor``."""
    found = None
    for region in regions:
        if region.start >= cursor:
            break
        found = region
    return found


@dataclass(frozen=True)
class NavigationStep:
    text: str
    cursor: int
    region: SuggestionRegion


class NavigationCursor:
    def __init__(self, syntax: MarkupSyntax = CRITIC_SYNTAX):
        self.syntax = syntax
        self.resolver = SuggestionResolver(syntax)

    def apply_next(
        self,
        text: str,
        region: SuggestionRegion,
        policy: Policy,
        base_offset: int = 0,
    ) -> Tuple[str, int]:
        """
        Resolves ``region`` and returns ``(new_text, new_cursor)``.

        The new cursor sits right after the resolved text, i.e. at the old
        region end moved by the length delta, so repeated calls walk forward
        through the document.
        """
        result = self.resolver.resolve_one(text, region, policy, base_offset=base_offset)
        if result.status == ResolutionStatus.ALREADY_RESOLVED:
            return text, region.start
        return result.text, region.end + result.delta

    def step(
        self,
        text: str,
        cursor: int,
        policy: Policy,
        direction: Direction = Direction.FORWARD,
        base_offset: int = 0,
    ) -> Optional[NavigationStep]:
        """
        Rescans ``text`` and resolves the suggestion ahead of (or behind) ``cursor``.

        Returns None when there is nothing to do in that direction. Stepping
        backward leaves the cursor at the start of the resolved text.
        """
        regions = SuggestionScanner(text, self.syntax, base_offset)
        if direction == Direction.FORWARD:
            region = find_next(regions, cursor)
        else:
            region = find_previous(regions, cursor)

        if region is None:
            logger.debug("No suggestion found", cursor=cursor, direction=direction.value)
            return None

        new_text, new_cursor = self.apply_next(text, region, policy, base_offset=base_offset)
        if direction == Direction.BACKWARD:
            new_cursor = region.start
        return NavigationStep(text=new_text, cursor=new_cursor, region=region)
