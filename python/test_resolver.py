"""
Tests for proofreader.resolver and proofreader.navigation.

Run: python3 test_resolver.py
From: python/
"""

import sys

sys.path.insert(0, '.')

from proofreader.errors import MalformedMarkupError
from proofreader.models import Direction, Policy, ResolutionStatus
from proofreader.navigation import NavigationCursor, find_next, find_previous
from proofreader.resolver import SuggestionResolver, resolve_all, resolve_one
from proofreader.scanner import SuggestionScanner

# x {++a++} y {--b--} z
#   2      9  12     19
SAMPLE = "x {++a++} y {--b--} z"


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def test_resolve_all():
    text = "The {--quick--}{++fast++} fox"
    assert resolve_all(text, Policy.ACCEPT) == "The fast fox"
    assert resolve_all(text, Policy.REJECT) == "The quick fox"
    assert resolve_all("no markup", Policy.ACCEPT) == "no markup"
    print("PASS: resolve_all")


def test_resolve_all_aborts_on_malformed_markup():
    try:
        resolve_all("{++a++} and {++b", Policy.ACCEPT)
        assert False, "Should have raised MalformedMarkupError"
    except MalformedMarkupError:
        pass
    print("PASS: malformed markup aborts before any change")


def test_resolve_one_touches_only_its_region():
    regions = list(SuggestionScanner(SAMPLE))
    result = resolve_one(SAMPLE, regions[1], Policy.ACCEPT)

    assert result.status == ResolutionStatus.RESOLVED
    assert result.text == "x {++a++} y  z"
    assert result.delta == -len("{--b--}")
    print("PASS: resolve_one touches only its region")


def test_resolve_one_twice_is_a_no_op():
    region = list(SuggestionScanner(SAMPLE))[0]
    first = resolve_one(SAMPLE, region, Policy.REJECT)
    second = resolve_one(first.text, region, Policy.REJECT)

    assert first.text == "x  y {--b--} z"
    assert second.status == ResolutionStatus.ALREADY_RESOLVED
    assert second.text == first.text
    assert second.delta == 0
    print("PASS: resolving the same region twice")


def test_resolve_one_with_base_offset():
    resolver = SuggestionResolver()
    regions = resolver.regions(SAMPLE, base_offset=50)
    result = resolver.resolve_one(SAMPLE, regions[0], Policy.ACCEPT, base_offset=50)
    assert result.text == "x a y {--b--} z"
    print("PASS: resolve_one in document coordinates")


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def test_find_next_and_previous():
    regions = list(SuggestionScanner(SAMPLE))
    assert find_next(regions, 0) == regions[0]
    assert find_next(regions, 2) == regions[0]
    assert find_next(regions, 3) == regions[1]
    assert find_next(regions, 13) is None
    assert find_previous(regions, 2) is None
    assert find_previous(regions, 13) == regions[1]
    assert find_previous(regions, len(SAMPLE)) == regions[1]
    print("PASS: find_next / find_previous")


def test_walk_forward_terminates():
    navigator = NavigationCursor()
    text, cursor = SAMPLE, 0

    step = navigator.step(text, cursor, Policy.ACCEPT)
    assert step.text == "x a y {--b--} z"
    assert step.cursor == 3
    text, cursor = step.text, step.cursor

    step = navigator.step(text, cursor, Policy.REJECT)
    assert step.text == "x a y b z"
    assert step.cursor == 7
    assert step.cursor >= cursor
    text, cursor = step.text, step.cursor

    # Nothing ahead, and no wrap to the start.
    assert navigator.step(text, cursor, Policy.ACCEPT) is None
    print("PASS: forward walk terminates without wrapping")


def test_no_wrap_to_earlier_regions():
    navigator = NavigationCursor()
    assert navigator.step(SAMPLE, 13, Policy.ACCEPT) is None
    print("PASS: regions behind the cursor are not revisited")


def test_step_backward():
    navigator = NavigationCursor()
    step = navigator.step(SAMPLE, len(SAMPLE), Policy.REJECT, direction=Direction.BACKWARD)
    assert step.text == "x {++a++} y b z"
    assert step.cursor == 12
    assert step.region.start == 12
    print("PASS: backward step")


def test_apply_next_on_resolved_region():
    navigator = NavigationCursor()
    region = list(SuggestionScanner(SAMPLE))[0]
    text, cursor = navigator.apply_next("x a y {--b--} z", region, Policy.ACCEPT)
    assert text == "x a y {--b--} z"
    assert cursor == region.start
    print("PASS: apply_next on an already resolved region")


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
