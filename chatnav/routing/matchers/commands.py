from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Sequence

from chatnav.routing.matchers.distance import closest
from chatnav.routing.matchers.labels import canonical_tokens
from chatnav.routing.matchers.normalize import normalize_text
from chatnav.routing.matchers.ordinals import has_ordinal_token
from chatnav.routing.matchers.phrases import is_full_question
from chatnav.routing.types import OpenWidget

COMMAND_VERBS = (
    "open",
    "show",
    "list",
    "view",
    "go",
    "back",
    "home",
    "create",
    "rename",
    "delete",
    "remove",
)
_COMMAND_VERB_PATTERN = re.compile(rf"\b({'|'.join(COMMAND_VERBS)})\b")
_POLITE_PREFIX = re.compile(
    r"^(?:(?:hey|ok|okay)[,\s]+)?(?:(?:can|could|would|will) you(?: please| pls)?|please|pls|plz|i want to|i'd like to|let's)\s+"
)
_TRAILING_FILLER = re.compile(r"(?:\s+(?:pls|plz|please|thanks|thank you|now|for me))+$")
_ARTICLES = re.compile(r"\b(the|a|an|my)\s+")
_VERB_PREFIX = re.compile(
    r"^(?:(?:can|could|would|will) you\s+|please\s+|pls\s+)*(?:open|show|go to|view|display|launch|bring up|pull up)\s+(?:me\s+)?"
)
_VERB_TYPOS = {"opne": "open", "opwn": "open", "oepn": "open", "shwo": "show", "sohw": "show"}
_REPEATED_LETTERS = re.compile(r"(.)\1+")

PanelMatchType = Literal["exact", "partial", "none"]


@dataclass(frozen=True)
class PanelMatch:
    type: PanelMatchType
    matches: tuple[OpenWidget, ...] = ()


def canonicalize_command_input(text: str) -> str:
    """Strip polite prefixes, articles and trailing filler from a command."""
    value = normalize_text(text).rstrip("?").strip()
    value = _POLITE_PREFIX.sub("", value)
    value = _TRAILING_FILLER.sub("", value)
    value = _ARTICLES.sub("", value)
    return " ".join(value.split())


def is_explicit_command(text: str) -> bool:
    value = normalize_text(text)
    if has_ordinal_token(value):
        return False
    return bool(_COMMAND_VERB_PATTERN.search(_fix_verb_typos(value)))


def strip_verb_prefix(text: str) -> str:
    value = _fix_verb_typos(normalize_text(text).rstrip("?").strip())
    return _VERB_PREFIX.sub("", value).strip()


def is_polite_command(text: str) -> bool:
    """True for "can you open recent?" but not for "can you explain recent?"."""
    value = normalize_text(text)
    if not _POLITE_PREFIX.match(value) or not is_explicit_command(value):
        return False
    return not is_full_question(canonicalize_command_input(value))


def match_visible_panel_command(text: str, widgets: Sequence[OpenWidget]) -> PanelMatch:
    """Match a panel command against visible panel titles.

    ``exact`` means the input names exactly one title's full token set;
    ``partial`` means every input token appears in one or more titles.
    """
    body = strip_verb_prefix(text)
    if not body or not widgets:
        return PanelMatch(type="none")
    vocabulary = sorted({token for widget in widgets for token in canonical_tokens(widget.title)})
    input_tokens = frozenset(_repair_token(token, vocabulary) for token in canonical_tokens(body))
    if not input_tokens:
        return PanelMatch(type="none")
    partial = tuple(
        widget for widget in widgets if input_tokens <= canonical_tokens(widget.title)
    )
    exact = tuple(widget for widget in partial if canonical_tokens(widget.title) == input_tokens)
    if len(exact) == 1 and len(partial) == 1:
        return PanelMatch(type="exact", matches=exact)
    if partial:
        return PanelMatch(type="partial", matches=partial)
    return PanelMatch(type="none")


def is_strict_title_match(text: str, title: str) -> bool:
    return strip_verb_prefix(text) == normalize_text(title)


def _repair_token(token: str, vocabulary: Sequence[str]) -> str:
    if token in vocabulary:
        return token
    collapsed = _REPEATED_LETTERS.sub(r"\1", token)
    if collapsed in vocabulary:
        return collapsed
    if len(token) < 4:
        return token
    match = closest(token, vocabulary, max_distance=1)
    return match[0] if match else token


def _fix_verb_typos(value: str) -> str:
    words = value.split()
    if words and words[0] in _VERB_TYPOS:
        words[0] = _VERB_TYPOS[words[0]]
    return " ".join(words)
