from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from chatnav.routing.matchers.distance import levenshtein
from chatnav.routing.matchers.normalize import normalize_text
from chatnav.routing.matchers.phrases import QUESTION_INTENT_PATTERN, is_full_question
from chatnav.routing.matchers.result import NO_MATCH, MatchResult, hit
from chatnav.routing.types import OpenWidget


@dataclass(frozen=True)
class KnownNoun:
    panel_type: str
    title: str


KNOWN_NOUN_MAP: dict[str, KnownNoun] = {
    "recent": KnownNoun("recent", "Recent"),
    "recents": KnownNoun("recent", "Recent"),
    "recent items": KnownNoun("recent", "Recent"),
    "quick links": KnownNoun("quick-links", "Quick Links"),
    "quicklinks": KnownNoun("quick-links", "Quick Links"),
    "links": KnownNoun("quick-links", "Quick Links"),
    "links panel": KnownNoun("quick-links", "Quick Links"),
    "navigator": KnownNoun("navigator", "Navigator"),
    "demo": KnownNoun("demo", "Demo"),
    "widget manager": KnownNoun("widget-manager", "Widget Manager"),
    "quick capture": KnownNoun("quick-capture", "Quick Capture"),
    "links overview": KnownNoun("links-overview", "Links Overview"),
}
for _badge in "abcde":
    KNOWN_NOUN_MAP[f"quick links {_badge}"] = KnownNoun(
        f"quick-links-{_badge}", f"Quick Links {_badge.upper()}"
    )
    KNOWN_NOUN_MAP[f"links panel {_badge}"] = KnownNoun(
        f"quick-links-{_badge}", f"Links Panel {_badge.upper()}"
    )

_VERB_PREFIX = re.compile(
    r"^(?:(?:please|pls|can you|could you)\s+)*(?:open|show|go to|view|display|launch|bring up|pull up|take me to)\s+(?:me\s+)?(?:the\s+|my\s+)?"
)
_PUNCTUATION = re.compile(r"[^\w\s]")
_TRAILING_SUFFIX = re.compile(r"\s+(?:widget|panel)$")
_LEADING_WIDGET = re.compile(r"^widget\s+")
_NOT_NOUN_LIKE = {
    "yes",
    "no",
    "ok",
    "okay",
    "cancel",
    "stop",
    "help",
    "thanks",
    "thank you",
    "hi",
    "hello",
    "hey",
}
_PRONOUNS = re.compile(r"\b(it|that|this|them|these|those)\b")
_VERB_START = re.compile(
    r"^(open|show|go|list|view|create|rename|delete|remove|close|run|fix|do|undo|redo|move|copy|find|search)\b"
)


def normalize_for_noun_match(text: str) -> str:
    value = normalize_text(text).rstrip("?").strip()
    value = _PUNCTUATION.sub(" ", value)
    value = " ".join(value.split())
    value = _VERB_PREFIX.sub("", value)
    return value.strip()


def match_known_noun(text: str) -> MatchResult:
    value = normalize_for_noun_match(text)
    if not value:
        return NO_MATCH
    for candidate in (value, _TRAILING_SUFFIX.sub("", value), _LEADING_WIDGET.sub("", value)):
        noun = KNOWN_NOUN_MAP.get(candidate)
        if noun is not None:
            return hit(noun, confidence=1.0, reason="exact")
    return NO_MATCH


def find_near_known_noun(text: str) -> MatchResult:
    """Closest vocabulary entry at edit distance 1..2."""
    value = normalize_for_noun_match(text)
    if len(value) < 4:
        return NO_MATCH
    best: tuple[str, int] | None = None
    for key in KNOWN_NOUN_MAP:
        if abs(len(key) - len(value)) > 2:
            continue
        distance = levenshtein(value, key, limit=2)
        if 1 <= distance <= 2 and (best is None or distance < best[1]):
            best = (key, distance)
    if best is None:
        return NO_MATCH
    key, distance = best
    return hit(KNOWN_NOUN_MAP[key], confidence=1.0 - 0.2 * distance, reason=f"near:{key}")


def has_trailing_question_only(text: str) -> bool:
    value = normalize_text(text)
    return value.endswith("?") and not QUESTION_INTENT_PATTERN.match(value)


def is_known_noun_question(text: str) -> bool:
    return is_full_question(text) or has_trailing_question_only(text)


def looks_like_unknown_noun(text: str) -> bool:
    value = normalize_text(text)
    if not value or value.endswith("?"):
        return False
    words = value.split()
    if not 1 <= len(words) <= 4:
        return False
    if value in _NOT_NOUN_LIKE or QUESTION_INTENT_PATTERN.match(value):
        return False
    if _PRONOUNS.search(value) or _VERB_START.match(value):
        return False
    return any(ch.isalpha() for ch in value)


def resolve_visible_panel(noun: KnownNoun, widgets: Sequence[OpenWidget]) -> OpenWidget | None:
    title = noun.title.lower()
    for widget in widgets:
        if widget.title.lower() == title:
            return widget
    for widget in widgets:
        if widget.widget_type and widget.widget_type == noun.panel_type:
            return widget
    return None
