"""Tier 6: terminal fallback. Whatever is left is a general query."""

from __future__ import annotations

from chatnav.routing.decisions import DeferToRetrieval
from chatnav.routing.matchers.phrases import strip_conversational_prefix
from chatnav.routing.state import SetLastRetrievalQuery
from chatnav.routing.tiers.context import TierOutcome, TurnContext, fire

TIER = 6
LABEL = "retrieval"


def handle(ctx: TurnContext) -> TierOutcome:
    query = strip_conversational_prefix(ctx.text) or ctx.text
    reason = "informational" if ctx.informational else "unresolved"
    return fire(DeferToRetrieval(query=query, reason=reason), [SetLastRetrievalQuery(query)])
