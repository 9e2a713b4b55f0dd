from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_LLM_CANDIDATES = 12


class TaskKind(str, Enum):
    GROUNDING = "grounding"
    RETURN_CUE = "return_cue"


class LLMStatus(str, Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"
    INVALID = "invalid"
    ABSTAIN = "abstain"
    LOW_CONFIDENCE = "low_confidence"
    SUPERSEDED = "superseded"
    SKIPPED = "skipped"


class LLMCandidate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    label: str


class ClassifyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input: str
    candidates: list[LLMCandidate] = Field(min_length=1, max_length=MAX_LLM_CANDIDATES)
    task_kind: TaskKind


class ClassifyResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    decision: Literal["select", "ask_clarify", "abstain"]
    choice_id: str | None = Field(default=None, alias="choiceId")
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> float:
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        return min(max(number, 0.0), 1.0)


@dataclass(frozen=True)
class LLMOutcome:
    status: LLMStatus
    decision: str = "abstain"
    choice_id: str | None = None
    confidence: float = 0.0
    latency_ms: int = 0

    @property
    def selected(self) -> bool:
        return self.status is LLMStatus.OK and self.decision == "select" and self.choice_id is not None
