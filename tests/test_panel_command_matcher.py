from __future__ import annotations

from chatnav.routing.matchers.commands import (
    canonicalize_command_input,
    is_explicit_command,
    is_polite_command,
    is_strict_title_match,
    match_visible_panel_command,
    strip_verb_prefix,
)
from chatnav.routing.types import OpenWidget

_LINKS_A = OpenWidget(surface_id="w-links-a", title="Quick Links A")
_LINKS_B = OpenWidget(surface_id="w-links-b", title="Quick Links B")
_RECENT = OpenWidget(surface_id="w-recent", title="Recent")


def test_canonicalize_strips_polite_prefix_articles_and_filler() -> None:
    assert canonicalize_command_input("Can you please open the recent panel?") == "open recent panel"
    assert canonicalize_command_input("show my links for me") == "show links"


def test_explicit_command_requires_a_verb_and_no_ordinal() -> None:
    assert is_explicit_command("open recent")
    assert is_explicit_command("opne recent")
    assert not is_explicit_command("open the second one")
    assert not is_explicit_command("recent")


def test_polite_command_versus_question() -> None:
    assert is_polite_command("can you open recent?")
    assert not is_polite_command("can you explain recent?")
    assert not is_polite_command("open recent")


def test_strip_verb_prefix() -> None:
    assert strip_verb_prefix("please open quick links") == "quick links"
    assert strip_verb_prefix("shwo recent") == "recent"


def test_partial_match_over_several_titles() -> None:
    match = match_visible_panel_command("open quick links", [_LINKS_A, _LINKS_B, _RECENT])
    assert match.type == "partial"
    assert [w.surface_id for w in match.matches] == ["w-links-a", "w-links-b"]


def test_exact_match_tolerates_typos() -> None:
    match = match_visible_panel_command("open quik links a", [_LINKS_A, _LINKS_B])
    assert match.type == "exact"
    assert match.matches == (_LINKS_A,)


def test_no_match() -> None:
    assert match_visible_panel_command("open calendar", [_LINKS_A, _RECENT]).type == "none"
    assert match_visible_panel_command("open recent", []).type == "none"


def test_strict_title_match() -> None:
    assert is_strict_title_match("open recent", "Recent")
    assert not is_strict_title_match("open recent items", "Recent")
