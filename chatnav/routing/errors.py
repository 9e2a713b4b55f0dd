from __future__ import annotations

from typing import Sequence


class RoutingError(Exception):
    """Base class for routing failures."""


class DeterministicMiss(RoutingError):
    """A deterministic matcher found nothing; the next tier should try."""


class AmbiguousGrounding(DeterministicMiss):
    """More than one candidate matched exactly."""

    def __init__(self, candidates: Sequence[object]) -> None:
        super().__init__(f"label matches={len(candidates)}")
        self.candidates = tuple(candidates)


class LLMError(RoutingError):
    status = "error"


class LLMTimeout(LLMError):
    status = "timeout"


class LLMInvalidResponse(LLMError):
    status = "invalid"


class LLMAbstain(LLMError):
    status = "abstain"


class NoGroundingEvidence(RoutingError):
    """No candidate set exists to ground the input against."""


class ContractViolationError(RoutingError):
    """A tier tried to act on a choice id missing from its own candidate set."""

    def __init__(self, choice_id: str, candidate_ids: list[str]) -> None:
        super().__init__(
            f"choice_id={choice_id!r} not in candidates={candidate_ids!r}"
        )
        self.choice_id = choice_id
        self.candidate_ids = candidate_ids
