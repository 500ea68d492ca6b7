"""
Tests for proofreader.proofread: end-to-end workflows against a fake provider.

Run: python3 test_proofread.py
From: python/
"""

import asyncio
import sys

sys.path.insert(0, '.')

from proofreader.document import TextDocument
from proofreader.errors import (
    EmptyScopeError,
    PendingSuggestionsError,
    ProviderError,
    StaleDocumentError,
)
from proofreader.models import (
    Direction,
    NavigationStatus,
    Policy,
    ProofreadStatus,
    Revision,
    Scope,
)
from proofreader.normalize import TRUNCATION_CALLOUT
from proofreader.proofread import Proofreader


class FakeProvider:
    """Records calls and answers with a fixed transformation."""

    def __init__(self, transform=lambda text: text, truncated=False, cost=0.0):
        self.transform = transform
        self.truncated = truncated
        self.cost = cost
        self.calls = []

    def __call__(self, text, settings):
        self.calls.append(text)
        return Revision(revised_text=self.transform(text), was_truncated=self.truncated, cost=self.cost)


def _proofread(document, scope, provider):
    return asyncio.run(Proofreader(provider=provider).proofread(document, scope))


def _expect(exc_type, fn):
    try:
        fn()
    except exc_type as e:
        return e
    raise AssertionError(f"Should have raised {exc_type.__name__}")


# ---------------------------------------------------------------------------
# proofread()
# ---------------------------------------------------------------------------

def test_proofread_applies_suggestions():
    doc = TextDocument("I like cats.\nSecond line.")
    provider = FakeProvider(lambda text: text.replace("cats", "cat"), cost=0.0012)

    result = _proofread(doc, doc.line_scope(0), provider)

    assert result.status == ProofreadStatus.APPLIED
    assert result.suggestion_count == 1
    assert doc.text == "I like cat{--s--}.\nSecond line."
    assert (result.start, result.end) == (0, len("I like cat{--s--}."))
    assert doc.cursor == 0
    assert result.cost == 0.0012
    assert provider.calls == ["I like cats."]
    print("PASS: proofread applies suggestions")


def test_empty_scope_never_calls_provider():
    doc = TextDocument("   \nText")
    provider = FakeProvider()
    e = _expect(EmptyScopeError, lambda: _proofread(doc, doc.line_scope(0), provider))
    assert str(e) == "Paragraph is empty."
    assert provider.calls == []
    print("PASS: empty scope guarded")


def test_pending_suggestions_never_call_provider():
    doc = TextDocument("a {++b++} c")
    provider = FakeProvider()
    _expect(PendingSuggestionsError, lambda: _proofread(doc, doc.body_scope(), provider))
    assert provider.calls == []
    assert doc.text == "a {++b++} c"
    print("PASS: pending suggestions guarded")


def test_unchanged_text_reports_unchanged():
    doc = TextDocument("Nothing to fix.")
    result = _proofread(doc, doc.body_scope(), FakeProvider())
    assert result.status == ProofreadStatus.UNCHANGED
    assert doc.text == "Nothing to fix."
    assert doc.version == 0
    print("PASS: unchanged text")


def test_provider_failure_leaves_document_alone():
    def failing(text, settings):
        raise ProviderError("OpenAI API key is not valid. Please verify the key in the settings.")

    doc = TextDocument("Some text.")
    _expect(ProviderError, lambda: _proofread(doc, doc.body_scope(), failing))
    assert doc.text == "Some text."
    print("PASS: provider failure")


def test_empty_revision_is_a_provider_error():
    doc = TextDocument("Some text.")
    _expect(ProviderError, lambda: _proofread(doc, doc.body_scope(), FakeProvider(lambda text: "")))
    assert doc.version == 0
    print("PASS: empty revision rejected")


def test_stale_document_is_rejected():
    doc = TextDocument("I like cats.")

    def switching(text, settings):
        doc.identity = "another-note"
        return Revision(revised_text="I like cat.")

    _expect(StaleDocumentError, lambda: _proofread(doc, doc.body_scope(), switching))
    assert doc.text == "I like cats."
    print("PASS: stale document rejected")


def test_edited_scope_is_rejected():
    doc = TextDocument("I like cats.")

    def editing(text, settings):
        doc.replace_range(0, 1, "We")
        return Revision(revised_text="I like cat.")

    _expect(StaleDocumentError, lambda: _proofread(doc, Scope(0, 12), editing))
    assert doc.text == "We like cats."
    print("PASS: scope edited during request rejected")


def test_truncated_revision():
    doc = TextDocument("Alpha betta gamma delta epsilon. Zeta eta theta")
    provider = FakeProvider(lambda text: "Alpha beta gamma delta epsilon.", truncated=True)

    result = _proofread(doc, doc.body_scope(), provider)

    assert result.status == ProofreadStatus.APPLIED
    assert result.was_truncated
    assert result.suggestion_count == 2
    assert doc.text == (
        "Alpha {--betta--}{++beta++} gamma delta epsilon." + TRUNCATION_CALLOUT + " Zeta eta theta"
    )
    print("PASS: truncated revision")


# ---------------------------------------------------------------------------
# resolve_in_scope() / resolve_next()
# ---------------------------------------------------------------------------

def test_resolve_in_scope_only_touches_scope():
    doc = TextDocument("a {++b++} c\nd {--e--}")
    summary = Proofreader().resolve_in_scope(doc, doc.line_scope(0), Policy.ACCEPT)

    assert summary.resolved == 1
    assert summary.delta == -6
    assert doc.text == "a b c\nd {--e--}"
    print("PASS: resolve_in_scope")


def test_resolve_in_scope_without_markup():
    doc = TextDocument("plain")
    summary = Proofreader().resolve_in_scope(doc, doc.body_scope(), Policy.REJECT)
    assert summary.resolved == 0
    assert doc.version == 0
    print("PASS: resolve_in_scope with nothing to do")


def test_resolve_next_skips_front_matter():
    doc = TextDocument("---\nk: v\n---\nx {++a++} y")
    proofreader = Proofreader()

    result = proofreader.resolve_next(doc, policy=Policy.ACCEPT)
    assert result.status == NavigationStatus.RESOLVED
    assert doc.text == "---\nk: v\n---\nx a y"
    assert result.cursor == 16
    assert doc.cursor == 16

    result = proofreader.resolve_next(doc)
    assert result.status == NavigationStatus.NOTHING_TO_DO
    assert result.nearest_behind is None
    print("PASS: resolve_next over the body")


def test_resolve_next_reports_region_behind():
    doc = TextDocument("{++a++} b")
    result = Proofreader().resolve_next(doc, cursor=8)

    assert result.status == NavigationStatus.NOTHING_TO_DO
    assert result.nearest_behind.start == 0
    assert doc.text == "{++a++} b"
    print("PASS: region behind the cursor reported, not resolved")


def test_resolve_next_backward():
    doc = TextDocument("{++a++} b")
    result = Proofreader().resolve_next(doc, cursor=8, policy=Policy.REJECT, direction=Direction.BACKWARD)

    assert result.status == NavigationStatus.RESOLVED
    assert doc.text == " b"
    assert result.cursor == 0
    print("PASS: resolve_next backward")


if __name__ == "__main__":
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_") and callable(v)]

    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            failed += 1

    print(f"\n{len(tests) - failed} passed, {failed} failed")
    sys.exit(1 if failed else 0)
