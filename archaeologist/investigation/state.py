"""Pipeline state — the typed state object that flows through the evidence graph."""

from __future__ import annotations

from typing import Annotated, TypedDict

from archaeologist.evidence.models import (
    BlameData,
    CodeSelection,
    CommitInfo,
    Evidence,
    EvidenceGap,
    PullRequestData,
    RepositoryRef,
)


def _merge_lists(left: list, right: list) -> list:
    return left + right


class PipelineState(TypedDict, total=False):
    # Input
    selection: CodeSelection

    # Accumulated, append-only
    evidence: Annotated[list[Evidence], _merge_lists]
    gaps: Annotated[list[EvidenceGap], _merge_lists]

    # Intermediate lookups later steps depend on
    blame: BlameData | None
    commit: CommitInfo | None
    repository: RepositoryRef | None
    pull_request: PullRequestData | None
