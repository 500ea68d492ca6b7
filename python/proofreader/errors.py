"""
Error taxonomy for proofreading and suggestion resolution.

Every error carries a message that is safe to show to the person editing the
document. None of them is fatal: each is scoped to a single invocation and
is raised before the host document is mutated.
"""

from typing import Optional


class ProofreaderError(Exception):
    """Base class for all user-facing proofreading failures."""


# --- Input preconditions ---


class PreconditionError(ProofreaderError):
    """The scope cannot be processed as it stands. Nothing was called or changed."""


class EmptyScopeError(PreconditionError):
    pass


class PendingSuggestionsError(PreconditionError):
    pass


class MalformedMarkupError(PreconditionError):
    """An opening marker without its closer, a stray closer, or nested markers."""

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.offset = offset


# --- Collaborator failures ---


class CollaboratorError(ProofreaderError):
    """The revision provider or the host document let us down. Safe to retry."""


class ProviderError(CollaboratorError):
    pass


class StaleDocumentError(CollaboratorError):
    pass


class MarkupConflictError(ProofreaderError):
    """Text handed to the encoder contains, or merges with, suggestion markers."""
