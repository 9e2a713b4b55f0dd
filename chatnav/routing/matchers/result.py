from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    value: Any = None
    confidence: float = 0.0
    reason: str = ""


NO_MATCH = MatchResult(matched=False)


def hit(value: Any, confidence: float = 1.0, reason: str = "") -> MatchResult:
    return MatchResult(matched=True, value=value, confidence=confidence, reason=reason)


def miss(reason: str) -> MatchResult:
    return MatchResult(matched=False, reason=reason)
