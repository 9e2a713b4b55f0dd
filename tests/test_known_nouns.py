from __future__ import annotations

import pytest

from chatnav.routing.matchers.known_nouns import (
    find_near_known_noun,
    is_known_noun_question,
    looks_like_unknown_noun,
    match_known_noun,
    normalize_for_noun_match,
    resolve_visible_panel,
)
from chatnav.routing.types import OpenWidget


@pytest.mark.parametrize(
    ("text", "panel_type"),
    [
        ("recent", "recent"),
        ("open recent", "recent"),
        ("Show me the quick links panel", "quick-links"),
        ("quick links c", "quick-links-c"),
        ("widget manager", "widget-manager"),
        ("recent widget", "recent"),
        ("please open my navigator", "navigator"),
    ],
)
def test_exact_known_nouns(text: str, panel_type: str) -> None:
    result = match_known_noun(text)
    assert result.matched
    assert result.value.panel_type == panel_type


def test_noun_normalization_strips_verbs_and_punctuation() -> None:
    assert normalize_for_noun_match("Open the Quick-Links!") == "quick links"


@pytest.mark.parametrize(("text", "title"), [("recnet", "Recent"), ("navigatr", "Navigator"), ("quik links", "Quick Links")])
def test_near_matches(text: str, title: str) -> None:
    assert not match_known_noun(text).matched
    near = find_near_known_noun(text)
    assert near.matched
    assert near.value.title == title


def test_short_or_distant_inputs_have_no_near_match() -> None:
    assert not find_near_known_noun("rec").matched
    assert not find_near_known_noun("calendar").matched


def test_noun_questions() -> None:
    assert is_known_noun_question("what is recent?")
    assert is_known_noun_question("recent?")
    assert is_known_noun_question("tell me about quick links")
    assert not is_known_noun_question("open recent")


@pytest.mark.parametrize("text", ["zorbflux", "the blue folder"])
def test_unknown_noun_like(text: str) -> None:
    assert looks_like_unknown_noun(text)


@pytest.mark.parametrize("text", ["hello", "open it", "what is this", "zorbflux?", "one two three four five"])
def test_not_unknown_noun_like(text: str) -> None:
    assert not looks_like_unknown_noun(text)


def test_resolve_visible_panel_by_title_then_type() -> None:
    by_title = OpenWidget(surface_id="w1", title="Recent")
    by_type = OpenWidget(surface_id="w2", title="My stuff", widget_type="navigator")
    noun_recent = match_known_noun("recent").value
    noun_navigator = match_known_noun("navigator").value
    assert resolve_visible_panel(noun_recent, [by_type, by_title]) is by_title
    assert resolve_visible_panel(noun_navigator, [by_title, by_type]) is by_type
    assert resolve_visible_panel(match_known_noun("demo").value, [by_title]) is None
