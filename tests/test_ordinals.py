from __future__ import annotations

import pytest

from chatnav.routing.matchers.ordinals import (
    MatchMode,
    is_action_pronoun_reference,
    is_selection_like,
    is_strict_selection,
    resolve_ordinal,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("first", 0),
        ("second", 1),
        ("the third one", 2),
        ("last one", 2),
        ("2", 1),
        ("option 3", 2),
        ("2nd", 1),
        ("first optoin", 0),
        ("secnd pls", 1),
    ],
)
def test_strict_ordinals(text: str, expected: int) -> None:
    result = resolve_ordinal(text, 3, mode=MatchMode.STRICT)
    assert result.matched
    assert result.value == expected
    assert result.reason == "strict"


def test_out_of_range_ordinal_is_a_miss() -> None:
    result = resolve_ordinal("5", 3)
    assert not result.matched
    assert result.reason == "out_of_range"


def test_empty_list_never_matches() -> None:
    assert not resolve_ordinal("first", 0).matched


def test_badge_letters_only_when_badges_are_shown() -> None:
    assert not resolve_ordinal("b", 3).matched
    shown = resolve_ordinal("b", 3, show_badges=True)
    assert shown.matched and shown.value == 1


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("number two", 1),
        ("two", 1),
        ("top", 0),
        ("the bottom one", 3),
        ("i'll take the second one", 1),
        ("go with option 3", 2),
    ],
)
def test_permissive_ordinals(text: str, expected: int) -> None:
    assert not resolve_ordinal(text, 4, mode=MatchMode.STRICT).matched
    result = resolve_ordinal(text, 4, mode=MatchMode.PERMISSIVE)
    assert result.matched
    assert result.value == expected


def test_embedded_ordinal_needs_a_single_position() -> None:
    assert not resolve_ordinal("first or second", 3, mode=MatchMode.PERMISSIVE).matched


@pytest.mark.parametrize(
    "text",
    ["first", "2", "option b", "the other one", "that one", "next", "open it", "do that again"],
)
def test_selection_like_inputs(text: str) -> None:
    assert is_selection_like(text)


@pytest.mark.parametrize("text", ["hello", "open recent", "what is this", ""])
def test_not_selection_like(text: str) -> None:
    assert not is_selection_like(text)


def test_bare_badge_is_selection_like_only_with_badges() -> None:
    assert not is_selection_like("c")
    assert is_selection_like("c", show_badges=True)


def test_strict_selection_and_action_pronouns() -> None:
    assert is_strict_selection("the second option")
    assert not is_strict_selection("i want the second")
    assert is_action_pronoun_reference("open it")
    assert is_action_pronoun_reference("Do that again!")
    assert not is_action_pronoun_reference("open recent")
