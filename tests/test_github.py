"""Tests for the GitHub client, driven through httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from archaeologist.errors import EvidenceUnavailable
from archaeologist.sources.github import GitHubClient, extract_linked_issues

SHA = "abc1234" + "0" * 33

PR = {
    "number": 77,
    "title": "Lock lanes before scheduling",
    "body": "Fixes #512. Related to #300 and #512.",
    "user": {"login": "ada"},
    "state": "closed",
    "merged": True,
    "merged_at": "2024-01-09T12:00:00Z",
    "created_at": "2024-01-05T12:00:00Z",
    "html_url": "https://github.com/acme/lanes/pull/77",
}


def _routes(extra: dict | None = None) -> dict:
    routes = {
        "/search/issues": {"items": [{"number": 77}]},
        "/repos/acme/lanes/pulls/77": PR,
        "/repos/acme/lanes/issues/77/comments": [
            {"id": 2, "user": {"login": "grace"}, "body": "later", "created_at": "2024-01-07T00:00:00Z"},
        ],
        "/repos/acme/lanes/pulls/77/comments": [
            {"id": 1, "user": {"login": "linus"}, "body": "earlier", "created_at": "2024-01-06T00:00:00Z"},
        ],
        "/repos/acme/lanes/pulls/77/reviews": [
            {"id": 9, "user": {"login": "grace"}, "state": "APPROVED", "body": "", "submitted_at": "2024-01-08T00:00:00Z"},
        ],
        "/repos/acme/lanes/issues/512": {
            "number": 512,
            "title": "Lanes deadlock under load",
            "body": "Two lanes grab the same slot.",
            "user": {"login": "grace"},
            "state": "closed",
            "html_url": "https://github.com/acme/lanes/issues/512",
            "created_at": "2024-01-02T12:00:00Z",
            "closed_at": "2024-01-10T12:00:00Z",
            "labels": [{"name": "bug"}],
        },
        "/repos/acme/lanes/issues/512/comments": [],
        "/repos/acme/lanes/issues/77": {"number": 77, "pull_request": {}, "created_at": "2024-01-05T12:00:00Z"},
    }
    routes.update(extra or {})
    return routes


def _client(routes: dict, requests: list | None = None) -> GitHubClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(body, int):
            return httpx.Response(body, json={"message": "error"})
        return httpx.Response(200, json=body)

    return GitHubClient(token="t0ken", transport=httpx.MockTransport(handler))


def test_extract_linked_issues_orders_closing_refs_first():
    assert extract_linked_issues("See #3. Closes #9, resolves #4 and #3") == [9, 4, 3]
    assert extract_linked_issues("") == []


@pytest.mark.asyncio
async def test_find_pr_by_commit_uses_search_first():
    requests: list[httpx.Request] = []
    client = _client(_routes(), requests)
    pr = await client.find_pr_by_commit("acme", "lanes", SHA)
    await client.close()

    assert pr.number == 77
    assert pr.state == "merged"
    assert pr.linked_issues == [512, 300]
    assert [c.author for c in pr.comments] == ["linus", "grace"]
    assert pr.reviews[0].state == "approved"
    assert requests[0].headers["Authorization"] == "Bearer t0ken"
    assert "repo:acme/lanes" in requests[0].url.params["q"]


@pytest.mark.asyncio
async def test_find_pr_falls_back_to_commit_pulls():
    client = _client(_routes({
        "/search/issues": {"items": []},
        f"/repos/acme/lanes/commits/{SHA}/pulls": [{"number": 77}],
    }))
    pr = await client.find_pr_by_commit("acme", "lanes", SHA)
    await client.close()
    assert pr.number == 77


@pytest.mark.asyncio
async def test_find_pr_returns_none_when_absent():
    client = _client(_routes({"/search/issues": {"items": []}}))
    assert await client.find_pr_by_commit("acme", "lanes", SHA) is None
    await client.close()


@pytest.mark.asyncio
async def test_get_issue():
    client = _client(_routes())
    issue = await client.get_issue("acme", "lanes", 512)
    await client.close()

    assert issue.state == "closed"
    assert issue.labels == ["bug"]
    assert issue.created_at.day == 2


@pytest.mark.asyncio
async def test_get_issue_skips_pull_requests():
    client = _client(_routes())
    assert await client.get_issue("acme", "lanes", 77) is None
    await client.close()


@pytest.mark.asyncio
async def test_missing_issue_is_none():
    client = _client(_routes())
    assert await client.get_issue("acme", "lanes", 9999) is None
    await client.close()


@pytest.mark.asyncio
async def test_server_error_is_evidence_unavailable():
    client = _client(_routes({"/repos/acme/lanes/issues/512": 500}))
    with pytest.raises(EvidenceUnavailable):
        await client.get_issue("acme", "lanes", 512)
    await client.close()


@pytest.mark.asyncio
async def test_transport_error_is_evidence_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = GitHubClient(transport=httpx.MockTransport(handler))
    with pytest.raises(EvidenceUnavailable):
        await client.get_issue("acme", "lanes", 512)
    await client.close()
