from __future__ import annotations

import re
from typing import Sequence

from chatnav.routing.matchers.normalize import normalize_text, strip_politeness, tokenize
from chatnav.routing.matchers.result import NO_MATCH, MatchResult, hit, miss

_LABEL_STOPWORDS = {"the", "an", "to", "of", "my", "please", "pls"}
_MICRO_ALIASES = {
    "panels": "panel",
    "links": "link",
    "notes": "note",
    "widgets": "widget",
    "items": "item",
    "options": "option",
    "workspaces": "workspace",
    "entries": "entry",
    "recents": "recent",
    "settings": "setting",
}


def canonical_tokens(text: str) -> frozenset[str]:
    tokens = [
        _MICRO_ALIASES.get(token, token)
        for token in tokenize(normalize_text(text))
        if token not in _LABEL_STOPWORDS
    ]
    return frozenset(tokens)


def is_exact_label(text: str, label: str) -> bool:
    """Raw exact match: case-insensitive, no other transformation."""
    return str(text or "").strip().lower() == str(label or "").strip().lower()


def find_matching_labels(text: str, labels: Sequence[str]) -> list[int]:
    """Indexes of labels matched by exact, contains, word-boundary or token-set equality."""
    value = strip_politeness(normalize_text(text)).rstrip("?").strip()
    if not value:
        return []
    exact = [i for i, label in enumerate(labels) if normalize_text(label) == value]
    if exact:
        return exact
    value_tokens = canonical_tokens(value)
    matches: list[int] = []
    for index, label in enumerate(labels):
        normalized_label = normalize_text(label)
        if not normalized_label:
            continue
        if len(value) >= 3 and value in normalized_label:
            matches.append(index)
            continue
        if re.search(rf"\b{re.escape(normalized_label)}\b", value):
            matches.append(index)
            continue
        if value_tokens and value_tokens == canonical_tokens(normalized_label):
            matches.append(index)
    return matches


def match_unique_label(text: str, labels: Sequence[str]) -> MatchResult:
    if not labels:
        return miss("empty_list")
    value = normalize_text(text)
    for index, label in enumerate(labels):
        if normalize_text(label) == value:
            return hit(index, confidence=1.0, reason="exact")
    matches = find_matching_labels(text, labels)
    if len(matches) == 1:
        return hit(matches[0], confidence=0.8, reason="partial")
    if len(matches) > 1:
        return MatchResult(matched=False, value=matches, confidence=0.0, reason="ambiguous")
    return NO_MATCH
