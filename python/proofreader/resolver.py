from typing import List

import structlog

from proofreader.markup import MarkupCodec
from proofreader.models import (
    CRITIC_SYNTAX,
    MarkupSyntax,
    Policy,
    ResolutionStatus,
    ResolveResult,
    SuggestionRegion,
)
from proofreader.scanner import SuggestionScanner

logger = structlog.get_logger(__name__)


class SuggestionResolver:
    """Accepts or rejects suggestions, one region at a time or all at once."""

    def __init__(self, syntax: MarkupSyntax = CRITIC_SYNTAX):
        self.syntax = syntax
        self.codec = MarkupCodec(syntax)

    def regions(self, text: str, base_offset: int = 0) -> List[SuggestionRegion]:
        return list(SuggestionScanner(text, self.syntax, base_offset))

    def resolve_all(self, text: str, policy: Policy) -> str:
        """
        Resolves every region in ``text``.

        The whole text is scanned first, so malformed markup raises
        ``MalformedMarkupError`` before anything is decoded.
        """
        regions = self.regions(text)
        if not regions:
            return text

        parts = []
        pos = 0
        for region in regions:
            parts.append(text[pos : region.start])
            parts.append(region.resolved_text(policy))
            pos = region.end
        parts.append(text[pos:])

        logger.info(f"Resolved {len(regions)} suggestions", policy=policy.value)
        return "".join(parts)

    def resolve_one(
        self,
        text: str,
        region: SuggestionRegion,
        policy: Policy,
        base_offset: int = 0,
    ) -> ResolveResult:
        """
        Resolves exactly ``region`` and leaves every other byte of ``text`` alone.

        ``base_offset`` is the document offset of ``text[0]`` when the region
        was scanned in document coordinates. If the region's markup is no
        longer at its offsets (it was already resolved, or the text moved)
        the text is returned unchanged with ``ALREADY_RESOLVED``.
        """
        start = region.start - base_offset
        end = region.end - base_offset
        expected = self.syntax.wrap(region.kind, region.inner_text)

        if start < 0 or end > len(text) or text[start:end] != expected:
            logger.debug("Region no longer present", start=region.start, kind=region.kind.value)
            return ResolveResult(text=text, delta=0, status=ResolutionStatus.ALREADY_RESOLVED)

        replacement = self.codec.decode(expected, policy)
        new_text = text[:start] + replacement + text[end:]
        return ResolveResult(
            text=new_text,
            delta=len(replacement) - len(expected),
            status=ResolutionStatus.RESOLVED,
        )


def resolve_all(text: str, policy: Policy, syntax: MarkupSyntax = CRITIC_SYNTAX) -> str:
    return SuggestionResolver(syntax).resolve_all(text, policy)


def resolve_one(
    text: str,
    region: SuggestionRegion,
    policy: Policy,
    syntax: MarkupSyntax = CRITIC_SYNTAX,
) -> ResolveResult:
    return SuggestionResolver(syntax).resolve_one(text, region, policy)
