"""Data models for reasoning-service calls and the reasoning trace."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class ThinkingEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def budget_tokens(self) -> int:
        return _THINKING_BUDGETS[self]

    @property
    def badge(self) -> str:
        return self.value.upper()


_THINKING_BUDGETS = {
    ThinkingEffort.LOW: 1024,
    ThinkingEffort.MEDIUM: 8192,
    ThinkingEffort.HIGH: 24576,
}


class ThoughtSignature(BaseModel):
    """Opaque continuation token returned by one reasoning call."""

    signature: str
    agent_id: str
    step: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReasoningTrace(BaseModel):
    """Ordered continuation tokens, one per reasoning call.

    Owned by whoever started the investigation and passed explicitly to every
    call that talks to the reasoning service.
    """

    signatures: list[ThoughtSignature] = []
    total_steps: int = 0

    def append(self, signature: ThoughtSignature) -> None:
        self.signatures.append(signature)
        self.total_steps += 1

    def record(self, token: str, agent_id: str) -> ThoughtSignature:
        sig = ThoughtSignature(signature=token, agent_id=agent_id, step=self.total_steps + 1)
        self.append(sig)
        return sig

    def extend(self, other: ReasoningTrace) -> None:
        for sig in list(other.signatures):
            self.append(sig)


class ReasoningResponse(BaseModel):
    text: str
    continuation_token: str
