"""Shared fixtures and in-memory collaborators for the test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from archaeologist.config import Settings
from archaeologist.errors import EvidenceUnavailable
from archaeologist.evidence.models import (
    BlameData,
    CodeSelection,
    CommitInfo,
    IssueData,
    PullRequestData,
    RepositoryRef,
)
from archaeologist.reasoning.models import ReasoningResponse, ThinkingEffort


def ts(day: int, month: int = 1, year: int = 2024) -> datetime:
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


class FakeHistory:
    """History provider backed by dictionaries."""

    def __init__(
        self,
        blames: dict[str, BlameData] | None = None,
        commits: dict[str, CommitInfo] | None = None,
        history: dict[str, list[CommitInfo]] | None = None,
        remote: RepositoryRef | None = None,
    ) -> None:
        self.blames = blames or {}
        self.commits = commits or {}
        self.history = history or {}
        self.remote = remote
        self.calls: list[tuple] = []

    async def blame(self, file_path: str, line: int) -> BlameData:
        self.calls.append(("blame", file_path, line))
        if file_path not in self.blames:
            raise EvidenceUnavailable("git blame", f"no such path '{file_path}'")
        return self.blames[file_path]

    async def commit(self, commit_hash: str) -> CommitInfo:
        self.calls.append(("commit", commit_hash))
        for full, info in self.commits.items():
            if full.startswith(commit_hash):
                return info
        raise EvidenceUnavailable("git show", f"bad object {commit_hash}")

    async def file_history(self, file_path: str, max_count: int) -> list[CommitInfo]:
        self.calls.append(("file_history", file_path, max_count))
        if file_path not in self.history:
            raise EvidenceUnavailable("git log", "no history")
        return self.history[file_path][:max_count]

    async def remote_info(self) -> RepositoryRef | None:
        return self.remote


class FakeCodeHost:
    def __init__(
        self,
        prs: dict[str, PullRequestData] | None = None,
        issues: dict[int, IssueData] | None = None,
    ) -> None:
        self.prs = prs or {}
        self.issues = issues or {}
        self.issue_requests: list[int] = []

    async def find_pr_by_commit(self, owner: str, repo: str, commit_hash: str) -> PullRequestData | None:
        return self.prs.get(commit_hash)

    async def get_issue(self, owner: str, repo: str, number: int) -> IssueData | None:
        self.issue_requests.append(number)
        return self.issues.get(number)


class FakeReasoner:
    """Returns queued responses in order; queued exceptions are raised instead."""

    def __init__(self, *responses: str | Exception, default: str | None = None) -> None:
        self.responses = list(responses)
        self.default = default
        self.prompts: list[str] = []
        self.calls: list[tuple[ThinkingEffort, float]] = []

    async def generate(self, prompt: str, effort: ThinkingEffort, temperature: float) -> ReasoningResponse:
        self.prompts.append(prompt)
        self.calls.append((effort, temperature))
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError("FakeReasoner ran out of responses")
        if isinstance(item, Exception):
            raise item
        return ReasoningResponse(text=item, continuation_token=f"sig-{len(self.prompts)}")


# ── Sample data ───────────────────────────────────────────────────

BLAMED_HASH = "abc1234" + "0" * 33


def make_blame(commit_hash: str = BLAMED_HASH, day: int = 10) -> BlameData:
    return BlameData(
        commit_hash=commit_hash,
        author="Ada",
        author_email="ada@example.com",
        timestamp=ts(day),
        line_number=12,
        line_content="scheduler.lock()",
    )


def make_commit(commit_hash: str = BLAMED_HASH, message: str = "Fix race condition in lane scheduler (#512)", day: int = 10) -> CommitInfo:
    return CommitInfo(
        hash=commit_hash,
        author="Ada",
        author_email="ada@example.com",
        date=ts(day),
        message=message,
        diff="+scheduler.lock()",
        changed_files=["src/scheduler.ts"],
    )


def make_issue(number: int = 512, day: int = 2) -> IssueData:
    return IssueData(
        number=number,
        title="Lanes deadlock under load",
        body="Two lanes grab the same slot.",
        author="grace",
        state="closed",
        url=f"https://github.com/acme/lanes/issues/{number}",
        created_at=ts(day),
        closed_at=ts(day + 8),
    )


def make_pr(number: int = 77, body: str = "Fixes #512", merged_day: int | None = 9) -> PullRequestData:
    return PullRequestData(
        number=number,
        title="Lock lanes before scheduling",
        body=body,
        author="ada",
        state="merged" if merged_day else "open",
        url=f"https://github.com/acme/lanes/pull/{number}",
        created_at=ts(5),
        merged_at=ts(merged_day) if merged_day else None,
        linked_issues=[512] if "#512" in body else [],
    )


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def cfg(tmp_path) -> Settings:
    return Settings(artifacts_dir=str(tmp_path / "reports"), anthropic_api_key="test")


@pytest.fixture
def selection(tmp_path) -> CodeSelection:
    return CodeSelection(
        text="function schedule(lane) {\n  scheduler.lock()\n}",
        file_path="src/scheduler.ts",
        line_start=11,
        line_end=13,
        repo_path=str(tmp_path),
        repo_owner="acme",
        repo_name="lanes",
    )


@pytest.fixture
def scenario_history() -> FakeHistory:
    """Blame points at abc1234, whose message references #512. No file history."""
    return FakeHistory(
        blames={"src/scheduler.ts": make_blame()},
        commits={BLAMED_HASH: make_commit()},
    )


@pytest.fixture
def scenario_codehost() -> FakeCodeHost:
    return FakeCodeHost(issues={512: make_issue()})
