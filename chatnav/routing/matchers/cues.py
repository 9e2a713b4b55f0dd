from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from chatnav.routing.matchers.normalize import normalize_text, strip_politeness
from chatnav.routing.matchers.result import NO_MATCH, MatchResult, hit


class ExitIntent(str, Enum):
    EXPLICIT = "explicit"
    AMBIGUOUS = "ambiguous"
    NONE = "none"


class ScopeCue(str, Enum):
    CHAT = "chat"
    WIDGET = "widget"
    DASHBOARD = "dashboard"
    WORKSPACE = "workspace"


@dataclass(frozen=True)
class ScopeCueMatch:
    scope: ScopeCue
    cue: str
    remainder: str


RETURN_CUE_TOKENS = re.compile(
    r"\b(back|return|resume|continue|previous|old|earlier|before|again|options|list|choices)\b"
)
_RETURN_CUE_PATTERNS = (
    re.compile(r"^(go |take me |bring me |get me )?back$"),
    re.compile(
        r"^(go |take me |bring me |get me )?back to (the |those |my |that )?"
        r"(previous |earlier |old |last )?(options|list|choices|pills)$"
    ),
    re.compile(r"^(return|resume|continue) (to |with )?(the |those |my )?(previous |earlier )?(options|list|choices)$"),
    re.compile(r"^(show|give) me (the |those )?(previous|earlier|old|last) (options|list|choices)( again)?$"),
    re.compile(r"^(the )?(previous|earlier|old) (options|list|choices)$"),
    re.compile(r"^(those|the) options again$"),
    re.compile(r"^resume$"),
    re.compile(r"^where were we$"),
)
# "back to the options, the second one" style compounds.
_RETURN_COMPOUND = re.compile(
    r"^(?:go |take me )?back(?: to (?:the |those )?(?:previous |earlier )?(?:options|list|choices))?"
    r"(?:,|\s+and)?\s+(?:pick |choose |select |open )?(?P<remainder>.+)$"
)

_EXPLICIT_EXIT_PATTERNS = (
    re.compile(r"^(cancel|stop|exit|quit|end|drop)( this| that| it| everything| all of this)$"),
    re.compile(r"^(cancel|exit|quit|abort)$"),
    re.compile(r"^(never\s*mind|forget it|forget about it|start over|no thanks|no thank you|skip( this| it)?)$"),
    re.compile(r"^i('m| am) done$"),
    re.compile(r"^(please )?(cancel|stop) (it|this|that) (please|now)$"),
)
_AMBIGUOUS_EXIT_PATTERNS = (
    re.compile(r"^(stop|wait|hold on|halt|enough)$"),
    re.compile(r"^(stop|wait) (please|now)$"),
)
_KEEP_CHOOSING_PATTERN = re.compile(
    r"^(no|nope|nah|keep choosing|keep going|stay|continue|keep them|keep the options|no keep (them|going|choosing))$"
)
_REPAIR_PATTERN = re.compile(
    r"^(no,?\s*)?(i meant\s+)?(the other( one| option)?|other one|not that one|wrong one|the other choice)$"
)
_LIST_REJECTION_PATTERN = re.compile(
    r"^(none( of (these|those|them|the above))?|neither( of (these|those|them))?|not these|not any of (these|those))$"
)
_EXIT_PHRASE_PATTERN = re.compile(
    r"\b(cancel|never\s*mind|nevermind|stop|forget it|start over|exit|quit|no thanks|skip)\b"
)

_SCOPE_CUE_PATTERNS = (
    (
        ScopeCue.CHAT,
        re.compile(
            r"\b(back to options|from (the )?earlier options|from (the )?chat options?|from the chat|from chat|in chat)\b"
        ),
    ),
    (
        ScopeCue.WIDGET,
        re.compile(
            r"\b(from (the )?links panel(?: [a-e])?|from recent|from (the )?active widget|from the widget|in the widget)\b"
        ),
    ),
    (ScopeCue.DASHBOARD, re.compile(r"\b(from|on) (the )?dashboard\b")),
    (ScopeCue.WORKSPACE, re.compile(r"\b(from|in) (the |this )?workspace\b")),
)


def match_return_cue(text: str) -> MatchResult:
    """Deterministic return cue. Trailing politeness is stripped first."""
    value = strip_politeness(normalize_text(text)).rstrip("?").strip()
    if not value:
        return NO_MATCH
    for pattern in _RETURN_CUE_PATTERNS:
        if pattern.match(value):
            return hit(value, confidence=1.0, reason="return_cue")
    return NO_MATCH


def split_return_compound(text: str) -> str | None:
    """Remainder of a return cue followed by a pick, e.g. ``back to the options, second``."""
    value = strip_politeness(normalize_text(text)).rstrip("?").strip()
    if match_return_cue(value).matched:
        return None
    match = _RETURN_COMPOUND.match(value)
    if not match:
        return None
    remainder = match.group("remainder").strip(" ,")
    if not remainder or match_return_cue(remainder).matched:
        return None
    return remainder


def has_return_cue_tokens(text: str) -> bool:
    return bool(RETURN_CUE_TOKENS.search(normalize_text(text)))


def classify_exit_intent(text: str) -> ExitIntent:
    value = strip_politeness(normalize_text(text)).rstrip("?").strip()
    if not value:
        return ExitIntent.NONE
    if any(pattern.match(value) for pattern in _EXPLICIT_EXIT_PATTERNS):
        return ExitIntent.EXPLICIT
    if any(pattern.match(value) for pattern in _AMBIGUOUS_EXIT_PATTERNS):
        return ExitIntent.AMBIGUOUS
    return ExitIntent.NONE


def is_exit_phrase(text: str) -> bool:
    value = normalize_text(text)
    if is_list_rejection(value):
        return False
    if classify_exit_intent(value) is not ExitIntent.NONE:
        return True
    return bool(_EXIT_PHRASE_PATTERN.search(value)) and len(value.split()) <= 3


def is_keep_choosing(text: str) -> bool:
    return bool(_KEEP_CHOOSING_PATTERN.match(strip_politeness(normalize_text(text))))


def is_repair_phrase(text: str) -> bool:
    return bool(_REPAIR_PATTERN.match(strip_politeness(normalize_text(text))))


def is_list_rejection(text: str) -> bool:
    return bool(_LIST_REJECTION_PATTERN.match(strip_politeness(normalize_text(text))))


def resolve_scope_cue(text: str) -> ScopeCueMatch | None:
    """Scope cue in priority order chat > widget > dashboard > workspace."""
    value = normalize_text(text)
    for scope, pattern in _SCOPE_CUE_PATTERNS:
        match = pattern.search(value)
        if match:
            remainder = (value[: match.start()] + " " + value[match.end():]).strip(" ,?")
            return ScopeCueMatch(
                scope=scope,
                cue=match.group(0),
                remainder=" ".join(remainder.split()),
            )
    return None
