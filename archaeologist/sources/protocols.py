"""Collaborator contracts the investigation core depends on."""

from __future__ import annotations

from typing import Protocol

from archaeologist.evidence.models import (
    BlameData,
    CommitInfo,
    IssueData,
    PullRequestData,
    RepositoryRef,
)


class HistoryProvider(Protocol):
    """Version-control history for one repository.

    Lookups raise ``EvidenceUnavailable`` when the repository cannot answer.
    """

    async def blame(self, file_path: str, line: int) -> BlameData: ...

    async def commit(self, commit_hash: str) -> CommitInfo: ...

    async def file_history(self, file_path: str, max_count: int) -> list[CommitInfo]: ...

    async def remote_info(self) -> RepositoryRef | None: ...


class CodeHostProvider(Protocol):
    """Pull request and issue metadata from the code-hosting service."""

    async def find_pr_by_commit(
        self, owner: str, repo: str, commit_hash: str
    ) -> PullRequestData | None: ...

    async def get_issue(self, owner: str, repo: str, number: int) -> IssueData | None: ...
