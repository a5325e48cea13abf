"""Data models for investigation results and exports."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from archaeologist.evidence.models import EvidenceKind, clamp_confidence
from archaeologist.reasoning.models import ReasoningTrace


class Source(BaseModel):
    """A citation backed by an evidence item on the case."""

    type: Literal["commit", "pr", "issue"]
    id: str
    url: str | None = None
    description: str


class Recommendation(BaseModel):
    action: Literal["keep", "document", "refactor", "remove", "investigate"]
    reason: str
    priority: Literal["low", "medium", "high"] = "medium"


class TimelineEvent(BaseModel):
    date: datetime
    type: EvidenceKind
    title: str
    description: str = ""
    author: str = ""
    source_id: str
    source_url: str | None = None


class InvestigationResult(BaseModel):
    """Output of one investigation, derived from a completed case."""

    model_config = ConfigDict(validate_assignment=True)

    case_id: str
    file_path: str
    narrative: str
    summary: str
    confidence: int
    sources: list[Source] = []
    recommendations: list[Recommendation] = []
    timeline: list[TimelineEvent] = []
    trace: ReasoningTrace = Field(default_factory=ReasoningTrace)
    evidence_count: int = 0
    evidence_gaps: list[str] = []

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v: float) -> int:
        return clamp_confidence(v)


class MarkdownExport(BaseModel):
    content: str
    filename: str


class ADRExport(BaseModel):
    """Architecture Decision Record distilled from an investigation."""

    title: str
    status: Literal["proposed", "accepted", "deprecated", "superseded"]
    context: str
    decision: str
    consequences: str
