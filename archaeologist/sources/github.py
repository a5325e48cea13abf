"""GitHub source — pull requests, issues and their discussions via the REST API."""

from __future__ import annotations

import logging
import re
from datetime import datetime

import httpx

from archaeologist.config import settings
from archaeologist.errors import EvidenceUnavailable
from archaeologist.evidence.models import (
    IssueComment,
    IssueData,
    PRComment,
    PRReview,
    PullRequestData,
)

logger = logging.getLogger("archaeologist.sources")

_CLOSING_REF = re.compile(r"(?:fix(?:es|ed)?|close[sd]?|resolve[sd]?)\s*#(\d+)", re.IGNORECASE)
_BARE_REF = re.compile(r"#(\d+)")


def extract_linked_issues(body: str) -> list[int]:
    """Issue numbers referenced by a description: closing keywords first, then bare #N."""
    numbers: list[int] = []
    for pattern in (_CLOSING_REF, _BARE_REF):
        for m in pattern.finditer(body or ""):
            n = int(m.group(1))
            if n not in numbers:
                numbers.append(n)
    return numbers


def _ts(raw: str | None) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def _login(obj: dict) -> str:
    return (obj.get("user") or {}).get("login") or "unknown"


class GitHubClient:
    def __init__(self, token: str | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        headers = {"Accept": "application/vnd.github+json"}
        token = settings.github_token if token is None else token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=settings.github_api_url,
            headers=headers,
            timeout=settings.github_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: dict | None = None) -> dict | list | None:
        """GET a JSON document; ``None`` on 404, ``EvidenceUnavailable`` on anything else."""
        try:
            resp = await self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise EvidenceUnavailable("GitHub API", f"{path}: {exc}") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise EvidenceUnavailable("GitHub API", f"{path}: HTTP {resp.status_code}")
        return resp.json()

    async def find_pr_by_commit(
        self, owner: str, repo: str, commit_hash: str
    ) -> PullRequestData | None:
        """Find the pull request that introduced a commit."""
        search = await self._get("/search/issues", params={
            "q": f"{commit_hash} repo:{owner}/{repo} is:pr",
            "per_page": 5,
        })
        items = (search or {}).get("items", [])
        if items:
            return await self.get_pull_request(owner, repo, items[0]["number"])

        associated = await self._get(f"/repos/{owner}/{repo}/commits/{commit_hash}/pulls")
        if not associated:
            logger.info("No PR found for commit %s in %s/%s", commit_hash[:7], owner, repo)
            return None
        return await self.get_pull_request(owner, repo, associated[0]["number"])

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestData | None:
        pr = await self._get(f"/repos/{owner}/{repo}/pulls/{number}")
        if pr is None:
            return None

        comments = await self._pr_comments(owner, repo, number)
        reviews = await self._pr_reviews(owner, repo, number)
        body = pr.get("body") or ""

        return PullRequestData(
            number=pr["number"],
            title=pr.get("title", ""),
            body=body,
            author=_login(pr),
            state="merged" if pr.get("merged") or pr.get("merged_at") else pr.get("state", "open"),
            url=pr.get("html_url", ""),
            created_at=_ts(pr["created_at"]),
            merged_at=_ts(pr.get("merged_at")),
            comments=comments,
            reviews=reviews,
            linked_issues=extract_linked_issues(body),
        )

    async def _pr_comments(self, owner: str, repo: str, number: int) -> list[PRComment]:
        issue_comments = await self._get(
            f"/repos/{owner}/{repo}/issues/{number}/comments", params={"per_page": 100}
        ) or []
        review_comments = await self._get(
            f"/repos/{owner}/{repo}/pulls/{number}/comments", params={"per_page": 100}
        ) or []

        comments = [
            PRComment(id=c["id"], author=_login(c), body=c.get("body") or "", created_at=_ts(c["created_at"]))
            for c in [*issue_comments, *review_comments]
        ]
        return sorted(comments, key=lambda c: c.created_at)

    async def _pr_reviews(self, owner: str, repo: str, number: int) -> list[PRReview]:
        reviews = await self._get(
            f"/repos/{owner}/{repo}/pulls/{number}/reviews", params={"per_page": 100}
        ) or []
        return [
            PRReview(
                id=r["id"],
                author=_login(r),
                state=r.get("state", "commented").lower(),
                body=r.get("body") or "",
                created_at=_ts(r.get("submitted_at")),
            )
            for r in reviews
        ]

    async def get_issue(self, owner: str, repo: str, number: int) -> IssueData | None:
        issue = await self._get(f"/repos/{owner}/{repo}/issues/{number}")
        if issue is None:
            return None
        if "pull_request" in issue:
            # The issues endpoint also serves PRs; those are not issues.
            return None

        raw_comments = await self._get(
            f"/repos/{owner}/{repo}/issues/{number}/comments", params={"per_page": 100}
        ) or []

        return IssueData(
            number=issue["number"],
            title=issue.get("title", ""),
            body=issue.get("body") or "",
            author=_login(issue),
            state=issue.get("state", "open"),
            url=issue.get("html_url", ""),
            created_at=_ts(issue["created_at"]),
            closed_at=_ts(issue.get("closed_at")),
            labels=[l if isinstance(l, str) else l.get("name", "") for l in issue.get("labels", [])],
            comments=[
                IssueComment(id=c["id"], author=_login(c), body=c.get("body") or "", created_at=_ts(c["created_at"]))
                for c in raw_comments
            ],
        )
