from __future__ import annotations

from typing import Callable

from chatnav.routing.tiers import (
    grounding_fallback,
    known_noun,
    new_topic,
    retrieval,
    return_resume,
    selection,
    stop,
)
from chatnav.routing.tiers.context import TierOutcome, TurnContext

TierHandler = Callable[[TurnContext], TierOutcome]

DEFAULT_TIERS: list[tuple[int, str, TierHandler]] = [
    (module.TIER, module.LABEL, module.handle)
    for module in (stop, return_resume, new_topic, selection, known_noun, grounding_fallback, retrieval)
]

__all__ = ["DEFAULT_TIERS", "TierHandler", "TierOutcome", "TurnContext"]
