from __future__ import annotations

import re

from chatnav.routing.matchers.normalize import normalize_text, strip_politeness

AFFIRMATION_PATTERN = re.compile(
    r"^(yes|yeah|yep|yup|sure|ok|okay|k|ya|ye|yea|mhm|uh\s*huh|go ahead|do it|proceed"
    r"|correct|right|exactly|confirm|confirmed)(\s+please)?$"
)
REJECTION_PATTERN = re.compile(
    r"^(no|nope|nah|negative|cancel|stop|abort|never\s*mind|forget it|don't|not now"
    r"|skip|pass|wrong|incorrect|not that)$"
)
QUESTION_INTENT_PATTERN = re.compile(
    r"^(what|how|where|when|why|who|which|can|could|would|should|tell|explain|help|is|are|do|does)\b"
)
HESITATION_PATTERN = re.compile(
    r"^(hmm+|hm+|um+|uh+|erm+|well|let me think|not sure|i'?m not sure|i don'?t know|idk|maybe)$"
)
_NOISE_PATTERN = re.compile(r"^[\W_]*$")
_VOWEL_PATTERN = re.compile(r"[aeiouy]")
META_PATTERNS = (
    re.compile(r"^what(\s+do\s+you)?\s+mean\??$"),
    re.compile(r"^explain(\s+that)?(\s+please)?$"),
    re.compile(r"^help(\s+me)?(\s+understand)?$"),
    re.compile(r"^what\s+are\s+(my\s+)?(the\s+)?options\??$"),
    re.compile(r"^what('s|s|\s+is)\s+the\s+difference\??$"),
    re.compile(r"^huh\??$"),
    re.compile(r"^\?+$"),
    re.compile(r"^what\??$"),
    re.compile(r"^clarify(\s+please)?$"),
)
RESHOW_PATTERNS = (
    re.compile(r"^show\s*(me\s*)?(the\s*)?options\??$"),
    re.compile(r"^(what\s*were\s*those|what\s*were\s*they)\??$"),
    re.compile(r"^i'?m\s*confused\??$"),
    re.compile(r"^(can\s*you\s*)?show\s*(me\s*)?(again|them)\??$"),
    re.compile(r"^remind\s*me\??$"),
    re.compile(r"^options\??$"),
)
CORRECTION_PHRASES = (
    "not that",
    "not what i meant",
    "not what i asked",
    "that's wrong",
    "thats wrong",
    "wrong",
    "incorrect",
    "try again",
)
FOLLOWUP_PHRASES = (
    "tell me more",
    "more details",
    "explain more",
    "go on",
    "what else",
    "expand on that",
    "elaborate",
)
_BARE_META_PHRASES = {
    "explain",
    "what do you mean",
    "explain that",
    "help me understand",
    "what is that",
}
_CONVERSATIONAL_PREFIXES = (
    re.compile(r"^(can|could|would|will) you (please |pls )?(tell me|explain|help me understand) "),
    re.compile(r"^(please |pls )?(tell me|explain) "),
    re.compile(r"^i('d| would) (like to|want to) (know|understand) "),
    re.compile(r"^(do you know|can you help me understand) "),
)
_FULL_QUESTION_PATTERN = re.compile(
    r"^(what is|what are|what's|whats|how does|how do|tell me about|explain|describe|define)\b"
)


def is_affirmation(text: str) -> bool:
    return bool(AFFIRMATION_PATTERN.match(strip_politeness(normalize_text(text))))


def is_rejection(text: str) -> bool:
    return bool(REJECTION_PATTERN.match(normalize_text(text)))


def is_hesitation(text: str) -> bool:
    return bool(HESITATION_PATTERN.match(normalize_text(text).rstrip("?")))


def is_noise(text: str) -> bool:
    value = normalize_text(text)
    if _NOISE_PATTERN.match(value):
        return True
    letters = re.sub(r"[^a-z]", "", value)
    return len(letters) >= 5 and " " not in value and not _VOWEL_PATTERN.search(letters)


def has_question_intent(text: str) -> bool:
    value = normalize_text(text)
    return bool(QUESTION_INTENT_PATTERN.match(value)) or value.endswith("?")


def is_full_question(text: str) -> bool:
    value = normalize_text(text)
    if _FULL_QUESTION_PATTERN.match(value):
        return True
    return bool(QUESTION_INTENT_PATTERN.match(value)) and value.endswith("?")


def is_meta_phrase(text: str) -> bool:
    value = normalize_text(text)
    return any(pattern.match(value) for pattern in META_PATTERNS)


def matches_reshow_phrase(text: str) -> bool:
    value = normalize_text(text)
    return any(pattern.match(value) for pattern in RESHOW_PATTERNS)


def is_correction_phrase(text: str) -> bool:
    value = normalize_text(text)
    return any(value == phrase or value.startswith(phrase + " ") for phrase in CORRECTION_PHRASES)


def is_followup_phrase(text: str) -> bool:
    value = normalize_text(text).rstrip("?")
    return any(value == phrase or value.startswith(phrase + " ") for phrase in FOLLOWUP_PHRASES)


def strip_conversational_prefix(text: str) -> str:
    value = normalize_text(text)
    for pattern in _CONVERSATIONAL_PREFIXES:
        stripped = pattern.sub("", value, count=1)
        if stripped != value:
            return stripped.strip()
    return value


def is_meta_explain(text: str) -> bool:
    """``what is X`` / ``explain X`` asked outside of an option list."""
    value = normalize_text(text).rstrip("?").strip()
    if value in _BARE_META_PHRASES:
        return True
    if value.startswith(("explain ", "what is ", "what are ")):
        return True
    stripped = strip_conversational_prefix(value)
    return stripped != value and stripped.startswith(("what is ", "what are "))


def is_informational_question(text: str) -> bool:
    return is_meta_explain(text) or has_question_intent(text)
