from __future__ import annotations

import re
import unicodedata

from chatnav.routing.matchers.distance import closest

ORDINAL_TARGETS = ("first", "second", "third", "fourth", "fifth", "last")
_NOUN_TARGETS = ("option", "choice", "item")

# Fixed misspellings seen in practice; applied before fuzzy correction.
ORDINAL_TYPOS = {
    "frist": "first",
    "fisrt": "first",
    "frst": "first",
    "sedond": "second",
    "secnd": "second",
    "secon": "second",
    "scond": "second",
    "secod": "second",
    "sceond": "second",
    "thrid": "third",
    "tird": "third",
    "foruth": "fourth",
    "fouth": "fourth",
    "fith": "fifth",
    "fifht": "fifth",
}

# Real words within edit distance 2 of an ordinal or option noun.
_PROTECTED_WORDS = {
    "list",
    "lists",
    "lost",
    "least",
    "past",
    "fast",
    "east",
    "best",
    "rest",
    "test",
    "host",
    "post",
    "cost",
    "fist",
    "firm",
    "fifty",
    "forth",
    "north",
    "worth",
    "fourteen",
    "seconds",
    "action",
    "actions",
    "motion",
    "potion",
    "notion",
    "items",
    "options",
    "choices",
    "chart",
    "thread",
    "thing",
    "vast",
    "lust",
    "mast",
    "cast",
    "portion",
}

_TRAILING_POLITENESS = re.compile(r"(?:[\s,]+(?:pls|plz|please|thx|thanks|thank you|ty))+$")
_LEADING_POLITENESS = re.compile(r"^(?:please|pls|plz)[\s,]+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.!,;:]+$")
_SPACE_BEFORE_QUESTION = re.compile(r"\s+\?")
_REPEATED_QUESTION = re.compile(r"\?+$")
_REPEATED_LETTERS = re.compile(r"(.)\1+")
_GLUED_ORDINAL = re.compile(r"^(first|second|third|fourth|fifth|last)(option|one)$")
_WORD_PATTERN = re.compile(r"[a-z0-9']+")
_QUOTES = str.maketrans({"‘": "'", "’": "'", "“": '"', "”": '"'})


def normalize_text(text: str) -> str:
    """Case-fold and tidy raw input. Idempotent."""
    value = unicodedata.normalize("NFKC", str(text or ""))
    value = _strip_diacritics(value).casefold().translate(_QUOTES)
    value = " ".join(value.split())
    value = _TRAILING_PUNCTUATION.sub("", value)
    value = _SPACE_BEFORE_QUESTION.sub("?", value)
    value = _REPEATED_QUESTION.sub("?", value)
    return value


def strip_trailing_question(text: str) -> str:
    return text.rstrip("?").rstrip()


def strip_politeness(text: str) -> str:
    value = _TRAILING_POLITENESS.sub("", text.strip())
    value = _LEADING_POLITENESS.sub("", value)
    return value.strip()


def has_trailing_question(raw_text: str) -> bool:
    return str(raw_text or "").rstrip().endswith("?")


def tokenize(text: str) -> list[str]:
    return _WORD_PATTERN.findall(text.lower())


def normalize_ordinal_typos(text: str) -> str:
    """Repair ordinal-ish input such as ``"secnd optoin pls"``. Idempotent."""
    value = normalize_text(text)
    previous = None
    while value != previous:
        previous = value
        value = strip_politeness(strip_trailing_question(value))
        value = _TRAILING_PUNCTUATION.sub("", value)
    words: list[str] = []
    for token in value.split():
        glued = _GLUED_ORDINAL.match(token)
        if glued:
            words.extend([glued.group(1), glued.group(2)])
            continue
        words.append(_correct_token(token))
    return " ".join(words)


def _correct_token(token: str) -> str:
    if not token.isalpha() or token in _PROTECTED_WORDS:
        return token
    if token in ORDINAL_TARGETS or token in _NOUN_TARGETS:
        return token
    if token in ORDINAL_TYPOS:
        return ORDINAL_TYPOS[token]
    collapsed = _REPEATED_LETTERS.sub(r"\1", token)
    if collapsed in ORDINAL_TARGETS or collapsed in _NOUN_TARGETS:
        return collapsed
    if collapsed in ORDINAL_TYPOS:
        return ORDINAL_TYPOS[collapsed]
    if len(token) >= 4:
        match = closest(token, ORDINAL_TARGETS, max_distance=_max_distance(token))
        if match is not None:
            return match[0]
    if len(token) >= 5:
        match = closest(token, _NOUN_TARGETS, max_distance=_max_distance(token))
        if match is not None:
            return match[0]
    return token


def _max_distance(token: str) -> int:
    return 2 if len(token) >= 6 else 1


def _strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return unicodedata.normalize("NFKC", stripped)
