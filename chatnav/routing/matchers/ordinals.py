"""Ordinal resolution shared by every tier that maps input to a list position.

``MatchMode.STRICT`` only accepts input that is nothing but a position
reference and is used wherever a stale or paused list could be revived by
accident. ``MatchMode.PERMISSIVE`` also reads word numbers, top/bottom and
ordinals embedded in a short phrase, for in-flow selection against the list
the user is looking at.
"""

from __future__ import annotations

import re
from enum import Enum

from chatnav.routing.matchers.normalize import normalize_ordinal_typos, normalize_text
from chatnav.routing.matchers.result import NO_MATCH, MatchResult, hit, miss


class MatchMode(str, Enum):
    STRICT = "strict"
    PERMISSIVE = "permissive"


ORDINAL_WORDS = {
    "first": 0,
    "1st": 0,
    "second": 1,
    "2nd": 1,
    "third": 2,
    "3rd": 2,
    "fourth": 3,
    "4th": 3,
    "fifth": 4,
    "5th": 4,
    "sixth": 5,
    "6th": 5,
    "seventh": 6,
    "7th": 6,
    "eighth": 7,
    "8th": 7,
    "ninth": 8,
    "9th": 8,
}
WORD_NUMBERS = {
    "one": 0,
    "two": 1,
    "three": 2,
    "four": 3,
    "five": 4,
    "six": 5,
    "seven": 6,
    "eight": 7,
    "nine": 8,
}
BADGE_LETTERS = "abcde"

_ORD = r"(first|second|third|fourth|fifth|sixth|seventh|eighth|ninth|last|[1-9](?:st|nd|rd|th))"
_STRICT_ORDINAL = re.compile(rf"^(?:the\s+)?{_ORD}(?:\s+(?:one|option|choice|item))?$")
_STRICT_NUMBERED = re.compile(r"^(?:(?:option|item|choice|panel|number)\s*)?([1-9])$")
_STRICT_BADGE = re.compile(r"^(?:(?:option|panel)\s+)?([a-e])$")
_PERMISSIVE_WORD_NUMBER = re.compile(
    r"^(?:the\s+)?(?:number\s+|option\s+)?(one|two|three|four|five|six|seven|eight|nine)(?:\s+(?:option|choice|item))?$"
)
_TOP = re.compile(r"^(?:the\s+)?(?:top|upper|topmost)(?:\s+(?:one|option|choice|item))?$")
_BOTTOM = re.compile(r"^(?:the\s+)?(?:bottom|lower|bottommost)(?:\s+(?:one|option|choice|item))?$")
_EMBEDDED_ORDINAL = re.compile(rf"\b{_ORD}\b")
_EMBEDDED_NUMBERED = re.compile(r"\b(?:option|number|item|choice)\s*([1-9])\b")
_MAX_EMBEDDED_WORDS = 7

# Loose "does this look like a pick from a list" detector.
_SELECTION_LIKE_PATTERNS = (
    re.compile(r"\b(first|second|third|fourth|fifth|last|1st|2nd|3rd|4th|5th)\b"),
    re.compile(r"^[1-9]$"),
    re.compile(r"\b(option|item|choice)\s*[1-9a-e]?\b"),
    re.compile(r"\bpanel\s+[a-e1-9]$"),
    re.compile(r"^(the\s+)?(one|this one|that one|the other one|other one)$"),
    re.compile(r"^(the\s+)?(next|previous)(\s+(one|option))?$"),
    re.compile(r"^(the\s+)?(top|bottom)(\s+(one|option))?$"),
)
ACTION_PRONOUN_REF = re.compile(
    r"^(open|fix|run|show|delete|remove|close|do|undo|redo|rename|move|copy|create)\s+"
    r"(it|that|this|them)(\s+again)?$"
)
_ORDINAL_TOKEN = re.compile(
    r"\b(first|second|third|fourth|fifth|last|1st|2nd|3rd|4th|5th|[1-9])\b"
)


def resolve_ordinal(
    text: str,
    option_count: int,
    *,
    mode: MatchMode = MatchMode.STRICT,
    show_badges: bool = False,
) -> MatchResult:
    """Map input to a zero-based index into a list of ``option_count`` items."""
    if option_count <= 0:
        return miss("empty_list")
    value = normalize_ordinal_typos(text)
    if not value:
        return NO_MATCH
    index = _strict_index(value, option_count, show_badges=show_badges)
    if index is not None:
        return _bounded(index, option_count, confidence=1.0, reason="strict")
    if mode is MatchMode.STRICT:
        return NO_MATCH
    index = _permissive_index(value, option_count)
    if index is not None:
        return _bounded(index, option_count, confidence=0.85, reason="permissive")
    index = _embedded_index(value, option_count)
    if index is not None:
        return _bounded(index, option_count, confidence=0.75, reason="embedded")
    return NO_MATCH


def is_strict_selection(text: str, *, show_badges: bool = False) -> bool:
    value = normalize_ordinal_typos(text)
    return _strict_index(value, 9, show_badges=show_badges) is not None


def is_selection_like(text: str, *, show_badges: bool = False) -> bool:
    value = normalize_ordinal_typos(text)
    if not value:
        return False
    if show_badges and re.fullmatch(r"[a-e]", value):
        return True
    if ACTION_PRONOUN_REF.match(value):
        return True
    return any(pattern.search(value) for pattern in _SELECTION_LIKE_PATTERNS)


def is_action_pronoun_reference(text: str) -> bool:
    return bool(ACTION_PRONOUN_REF.match(normalize_text(text)))


def has_ordinal_token(text: str) -> bool:
    return bool(_ORDINAL_TOKEN.search(normalize_text(text)))


def _strict_index(value: str, option_count: int, *, show_badges: bool) -> int | None:
    match = _STRICT_ORDINAL.match(value)
    if match:
        return _ordinal_word_index(match.group(1), option_count)
    match = _STRICT_NUMBERED.match(value)
    if match:
        return int(match.group(1)) - 1
    if show_badges:
        match = _STRICT_BADGE.match(value)
        if match:
            return BADGE_LETTERS.index(match.group(1))
    return None


def _permissive_index(value: str, option_count: int) -> int | None:
    match = _PERMISSIVE_WORD_NUMBER.match(value)
    if match:
        return WORD_NUMBERS[match.group(1)]
    if _TOP.match(value):
        return 0
    if _BOTTOM.match(value):
        return option_count - 1
    return None


def _embedded_index(value: str, option_count: int) -> int | None:
    if len(value.split()) > _MAX_EMBEDDED_WORDS:
        return None
    found = {
        _ordinal_word_index(match.group(1), option_count)
        for match in _EMBEDDED_ORDINAL.finditer(value)
    }
    found.update(int(match.group(1)) - 1 for match in _EMBEDDED_NUMBERED.finditer(value))
    if len(found) != 1:
        return None
    return found.pop()


def _ordinal_word_index(word: str, option_count: int) -> int:
    if word == "last":
        return option_count - 1
    if word in ORDINAL_WORDS:
        return ORDINAL_WORDS[word]
    return int(word[0]) - 1


def _bounded(index: int, option_count: int, *, confidence: float, reason: str) -> MatchResult:
    if 0 <= index < option_count:
        return hit(index, confidence=confidence, reason=reason)
    return miss("out_of_range")
