"""
End-to-end proofreading workflows over a host document.

- proofread():        guard -> request revision -> stale check -> annotate -> replace scope
- resolve_in_scope(): accept/reject every suggestion inside a scope
- resolve_next():     accept/reject the suggestion ahead of (or behind) the cursor

Nothing here keeps state between calls: every operation rescans the text it
works on, and the host document owns cursor and content.
"""

import asyncio
from typing import Optional

import structlog

from proofreader.document import TextDocument
from proofreader.errors import (
    EmptyScopeError,
    PendingSuggestionsError,
    ProviderError,
    StaleDocumentError,
)
from proofreader.markup import annotate_revision, contains_markup
from proofreader.models import (
    SYNTAXES,
    Direction,
    NavigationResult,
    NavigationStatus,
    Policy,
    ProofreadResult,
    ProofreadStatus,
    ResolutionSummary,
    Revision,
    Scope,
)
from proofreader.navigation import NavigationCursor, find_previous
from proofreader.providers import RevisionProvider, get_provider
from proofreader.resolver import SuggestionResolver
from proofreader.scanner import SuggestionScanner
from proofreader.settings import ProofreaderSettings

logger = structlog.get_logger(__name__)

LONG_INPUT_CHARS = 1500


class Proofreader:
    def __init__(self, settings: Optional[ProofreaderSettings] = None, provider: Optional[RevisionProvider] = None):
        self.settings = settings or ProofreaderSettings()
        self.syntax = SYNTAXES[self.settings.markup_syntax]
        self._provider = provider
        self.resolver = SuggestionResolver(self.syntax)
        self.navigator = NavigationCursor(self.syntax)

    @property
    def provider(self) -> RevisionProvider:
        if self._provider is None:
            self._provider = get_provider(self.settings.llm_provider)
        return self._provider

    # --- Encode path ---

    async def proofread(self, document: TextDocument, scope: Scope) -> ProofreadResult:
        """
        Asks the provider for a revision of the scope and writes it back as suggestions.

        Raises:
            EmptyScopeError / PendingSuggestionsError: before the provider is called.
            ProviderError: the request failed or the answer is unusable.
            StaleDocumentError: the document changed while the request was out.
        """
        old_text = document.read(scope)

        # GUARD valid start-text
        if old_text.strip() == "":
            raise EmptyScopeError(f"{scope.label} is empty.")
        if contains_markup(old_text, self.syntax):
            raise PendingSuggestionsError(
                f"{scope.label} already has suggestions.\n\n"
                "Please accept/reject the changes before making another proofreading request."
            )

        identity_before = document.identity
        if len(old_text) > LONG_INPUT_CHARS:
            logger.info(f"{scope.label} is long ({len(old_text)} chars), this may take a moment")
        else:
            logger.info(f"{scope.label} is being proofread", chars=len(old_text))

        revision = await asyncio.to_thread(self.provider, old_text, self.settings)

        if not isinstance(revision, Revision) or not revision.revised_text:
            raise ProviderError("The provider returned no revised text.")
        if document.identity != identity_before:
            logger.warning("Discarding revision for a document that is no longer active", identity=identity_before)
            raise StaleDocumentError("The active document changed since the proofread has been triggered. Aborting.")
        if scope.end > len(document) or document.read(scope) != old_text:
            logger.warning("Discarding revision, scope text changed during the request")
            raise StaleDocumentError("The text was changed while it was being proofread. Aborting.")

        new_text = revision.revised_text
        if new_text == old_text:
            return ProofreadResult(status=ProofreadStatus.UNCHANGED, cost=revision.cost)
        if contains_markup(new_text, self.syntax):
            raise ProviderError("The revised text contains suggestion markers and cannot be annotated.")

        annotated = annotate_revision(old_text, new_text, self.settings, truncated=revision.was_truncated)
        if annotated.suggestion_count == 0 or annotated.text == old_text:
            return ProofreadResult(status=ProofreadStatus.UNCHANGED, cost=revision.cost)

        new_scope = document.replace(scope, annotated.text)
        document.cursor = new_scope.start
        logger.info(f"{annotated.suggestion_count} suggestion(s) ready", truncated=revision.was_truncated)

        return ProofreadResult(
            status=ProofreadStatus.APPLIED,
            suggestion_count=annotated.suggestion_count,
            was_truncated=revision.was_truncated,
            cost=revision.cost,
            annotated_text=annotated.text,
            start=new_scope.start,
            end=new_scope.end,
        )

    # --- Decode path ---

    def resolve_in_scope(self, document: TextDocument, scope: Scope, policy: Policy) -> ResolutionSummary:
        """Accepts or rejects every suggestion in ``scope``. Malformed markup aborts untouched."""
        text = document.read(scope)
        regions = self.resolver.regions(text, base_offset=scope.start)
        if not regions:
            return ResolutionSummary(policy=policy)

        resolved = self.resolver.resolve_all(text, policy)
        document.replace(scope, resolved)
        return ResolutionSummary(policy=policy, resolved=len(regions), delta=len(resolved) - len(text))

    def resolve_next(
        self,
        document: TextDocument,
        cursor: Optional[int] = None,
        policy: Policy = Policy.ACCEPT,
        direction: Direction = Direction.FORWARD,
    ) -> NavigationResult:
        """
        Resolves the nearest suggestion in ``direction`` from the cursor and moves
        the cursor past it. Reports ``NOTHING_TO_DO`` (with the nearest region
        behind the cursor, if any) when the search is exhausted.
        """
        cursor = document.cursor if cursor is None else cursor
        body = document.body_scope()
        text = document.read(body)

        step = self.navigator.step(text, cursor, policy, direction=direction, base_offset=body.start)
        if step is None:
            behind = None
            if direction == Direction.FORWARD:
                behind = find_previous(SuggestionScanner(text, self.syntax, body.start), cursor)
            return NavigationResult(status=NavigationStatus.NOTHING_TO_DO, cursor=cursor, nearest_behind=behind)

        document.replace(body, step.text)
        document.cursor = step.cursor
        return NavigationResult(status=NavigationStatus.RESOLVED, cursor=step.cursor, region=step.region)
