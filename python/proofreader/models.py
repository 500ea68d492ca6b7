from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field


class Operation(str, Enum):
    EQUAL = "EQUAL"
    INSERT = "INSERT"
    DELETE = "DELETE"


class SuggestionKind(str, Enum):
    ADDITION = "ADDITION"
    REMOVAL = "REMOVAL"


class Policy(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class DiffOp:
    operation: Operation
    text: str

    @classmethod
    def equal(cls, text: str) -> "DiffOp":
        return cls(Operation.EQUAL, text)

    @classmethod
    def insert(cls, text: str) -> "DiffOp":
        return cls(Operation.INSERT, text)

    @classmethod
    def delete(cls, text: str) -> "DiffOp":
        return cls(Operation.DELETE, text)

    @property
    def is_change(self) -> bool:
        return self.operation != Operation.EQUAL


def accepted_text(ops: Iterable[DiffOp]) -> str:
    """The revised text: insertions present, deletions absent."""
    return "".join(op.text for op in ops if op.operation != Operation.DELETE)


def original_text(ops: Iterable[DiffOp]) -> str:
    """The original text: insertions absent, deletions present."""
    return "".join(op.text for op in ops if op.operation != Operation.INSERT)


@dataclass(frozen=True)
class MarkupSyntax:
    """
    Marker vocabulary for annotated text.

    Openers and closers may be identical (``==text==``); in that case the
    first token found outside a region always opens one.
    """

    name: str
    add_open: str
    add_close: str
    del_open: str
    del_close: str

    @property
    def symmetric(self) -> bool:
        return self.add_open == self.add_close and self.del_open == self.del_close

    def opener(self, kind: SuggestionKind) -> str:
        return self.add_open if kind == SuggestionKind.ADDITION else self.del_open

    def closer(self, kind: SuggestionKind) -> str:
        return self.add_close if kind == SuggestionKind.ADDITION else self.del_close

    def wrap(self, kind: SuggestionKind, text: str) -> str:
        return f"{self.opener(kind)}{text}{self.closer(kind)}"

    def tokens(self) -> List[Tuple[str, SuggestionKind, bool]]:
        """(token, kind, is_opener) for every distinct marker token."""
        found = []
        seen = set()
        for kind in (SuggestionKind.ADDITION, SuggestionKind.REMOVAL):
            for token, is_opener in ((self.opener(kind), True), (self.closer(kind), False)):
                if token in seen:
                    continue
                seen.add(token)
                found.append((token, kind, is_opener))
        return found

    def find_token(self, text: str, pos: int = 0) -> Optional[Tuple[int, str, SuggestionKind, bool]]:
        """Earliest marker token at or after ``pos`` as (index, token, kind, is_opener)."""
        best = None
        for token, kind, is_opener in self.tokens():
            idx = text.find(token, pos)
            if idx == -1:
                continue
            if best is None or idx < best[0] or (idx == best[0] and len(token) > len(best[1])):
                best = (idx, token, kind, is_opener)
        return best

    def contains_marker(self, text: str) -> bool:
        return self.find_token(text) is not None


CRITIC_SYNTAX = MarkupSyntax("critic", "{++", "++}", "{--", "--}")
MARKDOWN_SYNTAX = MarkupSyntax("markdown", "==", "==", "~~", "~~")

SYNTAXES = {
    CRITIC_SYNTAX.name: CRITIC_SYNTAX,
    MARKDOWN_SYNTAX.name: MARKDOWN_SYNTAX,
}


@dataclass(frozen=True)
class SuggestionRegion:
    kind: SuggestionKind
    start: int
    end: int
    inner_text: str

    def __len__(self) -> int:
        return self.end - self.start

    def resolved_text(self, policy: Policy) -> str:
        keep = (self.kind == SuggestionKind.ADDITION) == (policy == Policy.ACCEPT)
        return self.inner_text if keep else ""


class ResolutionStatus(str, Enum):
    RESOLVED = "RESOLVED"
    ALREADY_RESOLVED = "ALREADY_RESOLVED"


@dataclass(frozen=True)
class ResolveResult:
    text: str
    delta: int
    status: ResolutionStatus


@dataclass(frozen=True)
class Scope:
    """Absolute ``[start, end)`` offsets into the host document."""

    start: int
    end: int
    label: str = "Selection"

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid scope [{self.start}, {self.end})")

    def shifted(self, new_length: int) -> "Scope":
        return Scope(self.start, self.start + new_length, self.label)


class Revision(BaseModel):
    """What a language model provider hands back for one proofreading request."""

    revised_text: str = Field(..., description="The full revised text.")
    was_truncated: bool = Field(
        False,
        description="True when the answer hit the model's output cap; text beyond it must stay unchanged.",
    )
    cost: float = Field(0.0, description="Estimated request cost in USD, 0 when unknown.")


class ProofreadStatus(str, Enum):
    APPLIED = "APPLIED"
    UNCHANGED = "UNCHANGED"


class ProofreadResult(BaseModel):
    status: ProofreadStatus
    suggestion_count: int = 0
    was_truncated: bool = False
    cost: float = 0.0
    annotated_text: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None


class ResolutionSummary(BaseModel):
    policy: Policy
    resolved: int = 0
    delta: int = 0


class NavigationStatus(str, Enum):
    RESOLVED = "RESOLVED"
    NOTHING_TO_DO = "NOTHING_TO_DO"


class NavigationResult(BaseModel):
    status: NavigationStatus
    cursor: int
    region: Optional[SuggestionRegion] = None
    nearest_behind: Optional[SuggestionRegion] = None
