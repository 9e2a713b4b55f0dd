"""Time-boxed, cancellable classifier restricted to a given candidate list.

Nothing the model returns is trusted: the choice id must be one we sent,
confidence below the threshold counts as abstain, and timeout, provider
errors and malformed payloads all come back as a non-OK ``LLMOutcome``
instead of an exception.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Protocol, Sequence

from pydantic import ValidationError

from chatnav.cognition.llm_contract import (
    MAX_LLM_CANDIDATES,
    ClassifyRequest,
    ClassifyResponse,
    LLMCandidate,
    LLMOutcome,
    LLMStatus,
    TaskKind,
)
from chatnav.cognition.prompts import render_user_prompt, system_prompt_for
from chatnav.routing.errors import LLMAbstain, LLMError, LLMInvalidResponse, LLMTimeout

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.02
_EXECUTOR_LOCK = threading.Lock()
_EXECUTOR: ThreadPoolExecutor | None = None


class CompletionClient(Protocol):
    def complete(self, system_prompt: str, user_prompt: str) -> str: ...


class LabeledCandidate(Protocol):
    id: str
    label: str


class CancellationToken:
    """Set when a newer turn supersedes the one that owns this token."""

    def __init__(self, turn_id: str | None = None) -> None:
        self.turn_id = turn_id
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ConstrainedLLMClient:
    def __init__(
        self,
        llm_client: CompletionClient | None,
        *,
        timeout_ms: int = 800,
        min_confidence: float = 0.4,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._llm_client = llm_client
        self._timeout_seconds = max(timeout_ms, 1) / 1000.0
        self._min_confidence = min_confidence
        self._executor = executor

    def classify(
        self,
        input_text: str,
        candidates: Sequence[LabeledCandidate],
        task_kind: TaskKind,
        *,
        cancel_token: CancellationToken | None = None,
        min_confidence: float | None = None,
    ) -> LLMOutcome:
        if self._llm_client is None or not candidates:
            return LLMOutcome(status=LLMStatus.SKIPPED)
        threshold = self._min_confidence if min_confidence is None else min_confidence
        started = time.monotonic()
        try:
            request = _build_request(input_text, candidates, task_kind)
            raw = self._complete_within_deadline(request, cancel_token)
            response = _validate(raw, request, threshold)
        except _Superseded:
            logger.info("llm result discarded reason=superseded task=%s", task_kind.value)
            return LLMOutcome(status=LLMStatus.SUPERSEDED, latency_ms=_elapsed_ms(started))
        except LLMError as exc:
            status = LLMStatus(exc.status)
            logger.warning("constrained llm %s task=%s error=%s", status.value, task_kind.value, exc)
            return LLMOutcome(status=status, latency_ms=_elapsed_ms(started))
        except _LowConfidence as exc:
            return LLMOutcome(
                status=LLMStatus.LOW_CONFIDENCE,
                decision="select",
                confidence=exc.confidence,
                latency_ms=_elapsed_ms(started),
            )
        return LLMOutcome(
            status=LLMStatus.OK,
            decision=response.decision,
            choice_id=response.choice_id,
            confidence=response.confidence,
            latency_ms=_elapsed_ms(started),
        )

    def _complete_within_deadline(
        self,
        request: ClassifyRequest,
        cancel_token: CancellationToken | None,
    ) -> str:
        future: Future[str] = self._pool().submit(
            _call_llm,
            self._llm_client,
            system_prompt=system_prompt_for(request.task_kind),
            user_prompt=render_user_prompt(request),
        )
        deadline = time.monotonic() + self._timeout_seconds
        while True:
            if cancel_token is not None and cancel_token.cancelled:
                future.cancel()
                raise _Superseded()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                raise LLMTimeout(f"no answer within {self._timeout_seconds:.3f}s")
            try:
                raw = future.result(timeout=min(remaining, _POLL_SECONDS))
            except FutureTimeout:
                continue
            except Exception as exc:
                raise LLMError(str(exc)) from exc
            if cancel_token is not None and cancel_token.cancelled:
                raise _Superseded()
            return raw

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is not None:
            return self._executor
        return _shared_executor()


class _Superseded(Exception):
    pass


class _LowConfidence(Exception):
    def __init__(self, confidence: float) -> None:
        super().__init__(f"confidence={confidence:.2f}")
        self.confidence = confidence


def _build_request(
    input_text: str,
    candidates: Sequence[LabeledCandidate],
    task_kind: TaskKind,
) -> ClassifyRequest:
    try:
        return ClassifyRequest(
            input=input_text,
            candidates=[
                LLMCandidate(id=candidate.id, label=candidate.label)
                for candidate in list(candidates)[:MAX_LLM_CANDIDATES]
            ],
            task_kind=task_kind,
        )
    except ValidationError as exc:
        raise LLMInvalidResponse(f"candidates rejected: {exc.error_count()} errors") from exc


def _call_llm(llm_client: Any, *, system_prompt: str, user_prompt: str) -> str:
    return str(llm_client.complete(system_prompt=system_prompt, user_prompt=user_prompt))


def _validate(raw: str, request: ClassifyRequest, threshold: float) -> ClassifyResponse:
    parsed = _parse_json(raw)
    if not isinstance(parsed, dict):
        raise LLMInvalidResponse("payload is not a JSON object")
    try:
        response = ClassifyResponse.model_validate(parsed)
    except ValidationError as exc:
        raise LLMInvalidResponse(f"schema mismatch: {exc.error_count()} errors") from exc
    if response.decision != "select":
        raise LLMAbstain(f"decision={response.decision}")
    sent_ids = {candidate.id for candidate in request.candidates}
    if response.choice_id not in sent_ids:
        raise LLMInvalidResponse(f"choice_id={response.choice_id!r} was not offered")
    if response.confidence < threshold:
        raise _LowConfidence(response.confidence)
    return response


def _parse_json(raw: str) -> Any:
    candidate = str(raw or "").strip()
    if not candidate:
        return None
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.startswith("json"):
            candidate = candidate[4:].strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None


def _shared_executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    with _EXECUTOR_LOCK:
        if _EXECUTOR is None:
            _EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="chatnav-llm")
        return _EXECUTOR


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
