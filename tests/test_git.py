"""Tests for git output parsing and the git-backed history provider."""

from __future__ import annotations

import shutil
import subprocess
from datetime import datetime, timezone

import pytest

from archaeologist.errors import EvidenceUnavailable
from archaeologist.sources.git import GitHistory, parse_blame_porcelain, parse_commit_show, parse_remote_url

HASH = "abc1234def5678abc1234def5678abc1234def56"

PORCELAIN = f"""\
{HASH} 12 12 1
author Ada Lovelace
author-mail <ada@example.com>
author-time 1704888000
author-tz +0000
committer Ada Lovelace
committer-mail <ada@example.com>
committer-time 1704888000
committer-tz +0000
summary Fix race condition in lane scheduler (#512)
filename src/scheduler.ts
\tscheduler.lock()
"""


def test_parse_blame_porcelain():
    blame = parse_blame_porcelain(PORCELAIN, 12)

    assert blame.commit_hash == HASH
    assert blame.author == "Ada Lovelace"
    assert blame.author_email == "ada@example.com"
    assert blame.timestamp == datetime.fromtimestamp(1704888000, tz=timezone.utc)
    assert blame.line_number == 12
    assert blame.line_content == "scheduler.lock()"


def test_parse_blame_without_hash_is_unavailable():
    with pytest.raises(EvidenceUnavailable):
        parse_blame_porcelain("fatal: no such path", 3)


def test_parse_commit_show():
    show = (
        f"{HASH}\nAda Lovelace\nada@example.com\n2024-01-10T12:00:00+00:00\n"
        "Fix race condition in lane scheduler (#512)\n\nLanes could share a slot.\n"
    )
    commit = parse_commit_show(show, "+scheduler.lock()\n", "src/scheduler.ts\nsrc/lanes.ts\n")

    assert commit.hash == HASH
    assert commit.short_hash == "abc1234"
    assert commit.subject == "Fix race condition in lane scheduler (#512)"
    assert commit.message.endswith("Lanes could share a slot.")
    assert commit.date.year == 2024
    assert commit.changed_files == ["src/scheduler.ts", "src/lanes.ts"]


def test_parse_commit_show_rejects_garbage():
    with pytest.raises(EvidenceUnavailable):
        parse_commit_show("", "", "")


@pytest.mark.parametrize("url", [
    "https://github.com/acme/lanes.git",
    "https://github.com/acme/lanes",
    "git@github.com:acme/lanes.git",
])
def test_parse_remote_url(url):
    ref = parse_remote_url(url + "\n")
    assert ref is not None
    assert ref.slug == "acme/lanes"


def test_parse_remote_url_non_github():
    assert parse_remote_url("https://gitlab.com/acme/lanes.git") is None


# ── Against a real repository ─────────────────────────────────────


def _git(repo, *args: str) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Ada", "-c", "user.email=ada@example.com", *args],
        cwd=repo, check=True, capture_output=True,
    )


@pytest.fixture
def git_repo(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    _git(tmp_path, "init", "-q")
    (tmp_path / "lanes.py").write_text("def schedule():\n    return 1\n")
    _git(tmp_path, "add", "lanes.py")
    _git(tmp_path, "commit", "-q", "-m", "Add scheduler")
    (tmp_path / "lanes.py").write_text("def schedule():\n    lock()\n    return 1\n")
    _git(tmp_path, "commit", "-q", "-am", "Lock lanes before scheduling (#512)")
    return tmp_path


@pytest.mark.asyncio
async def test_history_against_real_repo(git_repo):
    history = GitHistory(str(git_repo))

    blame = await history.blame("lanes.py", 2)
    assert blame.line_content == "    lock()"
    assert blame.author == "Ada"

    commit = await history.commit(blame.commit_hash[:7])
    assert commit.subject == "Lock lanes before scheduling (#512)"
    assert commit.changed_files == ["lanes.py"]
    assert "+    lock()" in commit.diff

    commits = await history.file_history("lanes.py", 10)
    assert [c.subject for c in commits] == ["Lock lanes before scheduling (#512)", "Add scheduler"]

    assert await history.remote_info() is None


@pytest.mark.asyncio
async def test_blame_of_unknown_file_is_unavailable(git_repo):
    with pytest.raises(EvidenceUnavailable):
        await GitHistory(str(git_repo)).blame("missing.py", 1)
