from __future__ import annotations

import json
import threading

from chatnav.cognition.constrained_llm import CancellationToken, ConstrainedLLMClient
from chatnav.cognition.llm_contract import LLMStatus, TaskKind
from chatnav.routing.types import ClarificationOption

_CANDIDATES = [
    ClarificationOption(id="a", label="Alpha"),
    ClarificationOption(id="b", label="Beta"),
]


class _FakeLlm:
    def __init__(self, response: str) -> None:
        self.response = response
        self.calls: list[dict[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt})
        return self.response


class _RaisingLlm:
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        _ = system_prompt, user_prompt
        raise RuntimeError("connection refused")


class _SlowLlm:
    def __init__(self) -> None:
        self.release = threading.Event()

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        _ = system_prompt, user_prompt
        self.release.wait(timeout=2.0)
        return json.dumps({"decision": "select", "choiceId": "a", "confidence": 0.9})


def _answer(decision: str = "select", choice_id: str | None = "b", confidence: float = 0.9) -> str:
    return json.dumps({"decision": decision, "choiceId": choice_id, "confidence": confidence})


def test_valid_selection_is_ok() -> None:
    llm = _FakeLlm(_answer())
    outcome = ConstrainedLLMClient(llm).classify("the second", _CANDIDATES, TaskKind.GROUNDING)
    assert outcome.status is LLMStatus.OK
    assert outcome.selected
    assert outcome.choice_id == "b"
    assert outcome.confidence == 0.9
    prompt = json.loads(llm.calls[0]["user_prompt"])
    assert prompt == {
        "message": "the second",
        "candidates": [{"id": "a", "label": "Alpha"}, {"id": "b", "label": "Beta"}],
    }


def test_fenced_json_is_accepted() -> None:
    llm = _FakeLlm("```json\n" + _answer(choice_id="a") + "\n```")
    outcome = ConstrainedLLMClient(llm).classify("alpha", _CANDIDATES, TaskKind.GROUNDING)
    assert outcome.choice_id == "a"


def test_choice_outside_candidates_is_invalid() -> None:
    outcome = ConstrainedLLMClient(_FakeLlm(_answer(choice_id="zzz"))).classify(
        "x", _CANDIDATES, TaskKind.GROUNDING
    )
    assert outcome.status is LLMStatus.INVALID
    assert not outcome.selected


def test_candidate_without_an_id_is_invalid_without_calling_the_provider() -> None:
    llm = _FakeLlm(_answer(choice_id="a"))
    candidates = [ClarificationOption(id="", label="Alpha"), ClarificationOption(id="b", label="Beta")]
    outcome = ConstrainedLLMClient(llm).classify("alpha", candidates, TaskKind.GROUNDING)
    assert outcome.status is LLMStatus.INVALID
    assert llm.calls == []


def test_malformed_payloads_are_invalid() -> None:
    for raw in ("not json", "[1, 2]", json.dumps({"decision": "maybe"})):
        outcome = ConstrainedLLMClient(_FakeLlm(raw)).classify("x", _CANDIDATES, TaskKind.GROUNDING)
        assert outcome.status is LLMStatus.INVALID


def test_abstain_and_clarify_are_not_selections() -> None:
    for decision in ("abstain", "ask_clarify"):
        outcome = ConstrainedLLMClient(_FakeLlm(_answer(decision=decision, choice_id=None))).classify(
            "x", _CANDIDATES, TaskKind.GROUNDING
        )
        assert outcome.status is LLMStatus.ABSTAIN


def test_low_confidence_is_reported_with_threshold_override() -> None:
    client = ConstrainedLLMClient(_FakeLlm(_answer(confidence=0.5)), min_confidence=0.4)
    assert client.classify("x", _CANDIDATES, TaskKind.GROUNDING).status is LLMStatus.OK
    outcome = client.classify("x", _CANDIDATES, TaskKind.RETURN_CUE, min_confidence=0.6)
    assert outcome.status is LLMStatus.LOW_CONFIDENCE
    assert outcome.confidence == 0.5
    assert not outcome.selected


def test_provider_errors_become_error_outcomes() -> None:
    outcome = ConstrainedLLMClient(_RaisingLlm()).classify("x", _CANDIDATES, TaskKind.GROUNDING)
    assert outcome.status is LLMStatus.ERROR


def test_slow_provider_times_out() -> None:
    llm = _SlowLlm()
    try:
        outcome = ConstrainedLLMClient(llm, timeout_ms=50).classify("x", _CANDIDATES, TaskKind.GROUNDING)
    finally:
        llm.release.set()
    assert outcome.status is LLMStatus.TIMEOUT


def test_cancelled_turn_discards_the_result() -> None:
    token = CancellationToken("turn-1")
    token.cancel()
    llm = _SlowLlm()
    try:
        outcome = ConstrainedLLMClient(llm).classify(
            "x", _CANDIDATES, TaskKind.GROUNDING, cancel_token=token
        )
    finally:
        llm.release.set()
    assert outcome.status is LLMStatus.SUPERSEDED


def test_missing_client_or_candidates_skip() -> None:
    assert ConstrainedLLMClient(None).classify("x", _CANDIDATES, TaskKind.GROUNDING).status is LLMStatus.SKIPPED
    assert ConstrainedLLMClient(_FakeLlm(_answer())).classify("x", [], TaskKind.GROUNDING).status is LLMStatus.SKIPPED


def test_candidates_are_capped_at_twelve() -> None:
    llm = _FakeLlm(_answer(choice_id="c0"))
    many = [ClarificationOption(id=f"c{i}", label=f"Choice {i}") for i in range(20)]
    ConstrainedLLMClient(llm).classify("x", many, TaskKind.GROUNDING)
    sent = json.loads(llm.calls[0]["user_prompt"])["candidates"]
    assert len(sent) == 12
    assert sent[-1]["id"] == "c11"
