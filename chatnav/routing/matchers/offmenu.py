"""Map free text that is not an ordinal onto an active option list.

Canonical token equality with one option is a high-confidence hit; being a
subset of exactly one option's tokens is medium; several options matching is
ambiguous. Everything else is either a new topic or a miss that feeds the
re-prompt ladder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from chatnav.routing.matchers.labels import canonical_tokens
from chatnav.routing.matchers.normalize import normalize_text
from chatnav.routing.matchers.phrases import QUESTION_INTENT_PATTERN
from chatnav.routing.types import ClarificationOption, OptionKind

_STOPWORDS = {
    "i",
    "want",
    "would",
    "like",
    "the",
    "a",
    "an",
    "one",
    "please",
    "pls",
    "that",
    "this",
    "go",
    "with",
    "pick",
    "choose",
    "select",
    "open",
    "me",
    "just",
    "ok",
    "okay",
    "um",
    "uh",
}
_NEW_TOPIC_VERBS = {"create", "delete", "rename", "search", "find", "remove", "add", "make", "new"}
_NEW_TOPIC_MIN_WORDS = 6

EXIT_OPTIONS = (
    ClarificationOption(id="exit_none", label="None of these", kind=OptionKind.DESCRIPTIVE),
    ClarificationOption(id="exit_start_over", label="Start over", kind=OptionKind.DESCRIPTIVE),
)


class OffMenuConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    AMBIGUOUS = "ambiguous"
    NONE = "none"


@dataclass(frozen=True)
class OffMenuResult:
    confidence: OffMenuConfidence
    indexes: tuple[int, ...] = ()


def map_offmenu_input(text: str, options: Sequence[ClarificationOption]) -> OffMenuResult:
    tokens = _content_tokens(text)
    if not tokens or not options:
        return OffMenuResult(OffMenuConfidence.NONE)
    option_tokens = [canonical_tokens(option.label) for option in options]
    equal = tuple(i for i, label_tokens in enumerate(option_tokens) if label_tokens == tokens)
    if len(equal) == 1:
        return OffMenuResult(OffMenuConfidence.HIGH, equal)
    subsets = tuple(i for i, label_tokens in enumerate(option_tokens) if tokens <= label_tokens)
    if len(subsets) == 1:
        return OffMenuResult(OffMenuConfidence.MEDIUM, subsets)
    if len(subsets) > 1:
        return OffMenuResult(OffMenuConfidence.AMBIGUOUS, subsets)
    return OffMenuResult(OffMenuConfidence.NONE)


def detect_new_topic(text: str, options: Sequence[ClarificationOption]) -> bool:
    value = normalize_text(text)
    words = value.split()
    if not words:
        return False
    if QUESTION_INTENT_PATTERN.match(value) or value.endswith("?"):
        return True
    if words[0] in _NEW_TOPIC_VERBS:
        return True
    if len(words) >= _NEW_TOPIC_MIN_WORDS:
        label_tokens = frozenset().union(*(canonical_tokens(option.label) for option in options))
        return not (_content_tokens(value) & label_tokens)
    return False


def escalation_prompt(attempt: int, options: Sequence[ClarificationOption]) -> str:
    labels = ", ".join(f'"{option.label}"' for option in options)
    if attempt <= 1:
        return f"I didn't catch that. Which one did you mean: {labels}?"
    if attempt == 2:
        return "Still not sure which one you mean. You can say its number, or pick \"None of these\"."
    return "Let's try another way. Tell me what you're looking for, or say \"Start over\"."


def _content_tokens(text: str) -> frozenset[str]:
    return frozenset(token for token in canonical_tokens(text) if token not in _STOPWORDS)
