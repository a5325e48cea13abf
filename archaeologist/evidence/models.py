"""Data models for code selections, evidence records and the case file."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from archaeologist.reasoning.models import ReasoningTrace


def _now() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_confidence(value: float) -> int:
    return min(100, max(0, round_half_up(value)))


class CodeSelection(BaseModel):
    """The code a developer asked about. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    text: str
    file_path: str  # relative to repo_path
    line_start: int = Field(ge=1)
    line_end: int = Field(ge=1)
    repo_path: str
    repo_owner: str | None = None
    repo_name: str | None = None

    @model_validator(mode="after")
    def _check_range(self) -> CodeSelection:
        if self.line_end < self.line_start:
            raise ValueError(f"line_end {self.line_end} precedes line_start {self.line_start}")
        return self

    @property
    def midpoint_line(self) -> int:
        return (self.line_start + self.line_end) // 2


class RepositoryRef(BaseModel):
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


# ── Evidence payloads ─────────────────────────────────────────────


class BlameData(BaseModel):
    commit_hash: str
    author: str
    author_email: str = ""
    timestamp: datetime
    line_number: int
    line_content: str = ""


class CommitInfo(BaseModel):
    hash: str
    author: str
    author_email: str = ""
    date: datetime
    message: str
    diff: str = ""
    changed_files: list[str] = []

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


class PRComment(BaseModel):
    id: int
    author: str
    body: str = ""
    created_at: datetime


class PRReview(BaseModel):
    id: int
    author: str
    state: Literal["approved", "changes_requested", "commented", "dismissed", "pending"]
    body: str = ""
    created_at: datetime | None = None


class PullRequestData(BaseModel):
    number: int
    title: str
    body: str = ""
    author: str
    state: Literal["open", "closed", "merged"]
    url: str = ""
    created_at: datetime
    merged_at: datetime | None = None
    comments: list[PRComment] = []
    reviews: list[PRReview] = []
    linked_issues: list[int] = []


class IssueComment(BaseModel):
    id: int
    author: str
    body: str = ""
    created_at: datetime


class IssueData(BaseModel):
    number: int
    title: str
    body: str = ""
    author: str
    state: Literal["open", "closed"]
    url: str = ""
    created_at: datetime
    closed_at: datetime | None = None
    labels: list[str] = []
    comments: list[IssueComment] = []


# ── Evidence union ────────────────────────────────────────────────


class EvidenceKind(str, Enum):
    BLAME = "blame"
    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    ISSUE = "issue"
    FILE_HISTORY = "file_history"


class _EvidenceBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    captured_at: datetime = Field(default_factory=_now)
    provenance: str


class BlameEvidence(_EvidenceBase):
    kind: Literal["blame"] = "blame"
    data: BlameData
    provenance: str = "git blame"


class CommitEvidence(_EvidenceBase):
    kind: Literal["commit"] = "commit"
    data: CommitInfo
    provenance: str = "git log"


class PullRequestEvidence(_EvidenceBase):
    kind: Literal["pull_request"] = "pull_request"
    data: PullRequestData
    provenance: str = "GitHub API"


class IssueEvidence(_EvidenceBase):
    kind: Literal["issue"] = "issue"
    data: IssueData
    provenance: str = "GitHub API"


class FileHistoryEvidence(_EvidenceBase):
    kind: Literal["file_history"] = "file_history"
    data: list[CommitInfo]
    provenance: str = "git log --follow"


Evidence = Annotated[
    Union[BlameEvidence, CommitEvidence, PullRequestEvidence, IssueEvidence, FileHistoryEvidence],
    Field(discriminator="kind"),
]


# ── Case file ─────────────────────────────────────────────────────


class CaseStatus(str, Enum):
    INVESTIGATING = "investigating"
    COMPLETED = "completed"
    FAILED = "failed"


class EvidenceGap(BaseModel):
    """An evidence source that was skipped or failed during gathering."""

    step: str
    reason: str


class Case(BaseModel):
    """The investigation record. Only the orchestrator that created it writes to it."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    selection: CodeSelection
    repository: RepositoryRef | None = None
    evidence: list[Evidence] = []
    gaps: list[EvidenceGap] = []
    status: CaseStatus = CaseStatus.INVESTIGATING
    started_at: datetime = Field(default_factory=_now)
    completed_at: datetime | None = None
    confidence: int = Field(default=0, ge=0, le=100)
    failure_reason: str = ""
    trace: ReasoningTrace = Field(default_factory=ReasoningTrace)

    def add_evidence(self, item: Evidence) -> None:
        self.evidence.append(item)

    def record_gap(self, step: str, reason: str) -> None:
        self.gaps.append(EvidenceGap(step=step, reason=reason))

    def evidence_of(self, kind: EvidenceKind) -> list[Evidence]:
        return [e for e in self.evidence if e.kind == kind]

    def first(self, kind: EvidenceKind) -> Evidence | None:
        for e in self.evidence:
            if e.kind == kind:
                return e
        return None

    @property
    def is_final(self) -> bool:
        return self.status != CaseStatus.INVESTIGATING

    def complete(self, confidence: float, trace: ReasoningTrace) -> None:
        self._finalize(CaseStatus.COMPLETED)
        self.confidence = clamp_confidence(confidence)
        self.trace = trace

    def fail(self, reason: str) -> None:
        self._finalize(CaseStatus.FAILED)
        self.failure_reason = reason

    def _finalize(self, status: CaseStatus) -> None:
        if self.is_final:
            raise ValueError(f"Case {self.id} already finalized as {self.status.value}")
        self.status = status
        self.completed_at = _now()
