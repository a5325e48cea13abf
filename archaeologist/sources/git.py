"""Git history source — blame, commit details and file history via the git CLI."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from datetime import datetime, timezone

from archaeologist.config import settings
from archaeologist.errors import EvidenceUnavailable
from archaeologist.evidence.models import BlameData, CommitInfo, RepositoryRef

logger = logging.getLogger("archaeologist.sources")

_HASH_LINE = re.compile(r"^([0-9a-f]{40}) \d+ \d+")
_REMOTE_PATTERNS = (
    re.compile(r"github\.com/([^/]+)/([^/.]+?)(?:\.git)?/?$"),  # https
    re.compile(r"github\.com:([^/]+)/([^/.]+?)(?:\.git)?$"),  # ssh
)

# Record layout for `git show --format`: hash, author, email, ISO date, raw body
_SHOW_FORMAT = "%H%n%an%n%ae%n%aI%n%B"


def parse_blame_porcelain(output: str, line_number: int) -> BlameData:
    commit_hash = ""
    author = ""
    author_email = ""
    timestamp = datetime.now(timezone.utc)
    line_content = ""

    for line in output.split("\n"):
        m = _HASH_LINE.match(line)
        if m and not commit_hash:
            commit_hash = m.group(1)
        elif line.startswith("author "):
            author = line[len("author "):]
        elif line.startswith("author-mail "):
            author_email = line[len("author-mail "):].strip("<>")
        elif line.startswith("author-time "):
            timestamp = datetime.fromtimestamp(int(line[len("author-time "):]), tz=timezone.utc)
        elif line.startswith("\t"):
            line_content = line[1:]

    if not commit_hash:
        raise EvidenceUnavailable("git blame", "no commit found in porcelain output")

    return BlameData(
        commit_hash=commit_hash,
        author=author,
        author_email=author_email,
        timestamp=timestamp,
        line_number=line_number,
        line_content=line_content,
    )


def parse_commit_show(show_output: str, diff_output: str, files_output: str) -> CommitInfo:
    lines = show_output.strip("\n").split("\n")
    if len(lines) < 4 or not lines[0]:
        raise EvidenceUnavailable("git show", "unexpected commit format")

    return CommitInfo(
        hash=lines[0],
        author=lines[1],
        author_email=lines[2],
        date=datetime.fromisoformat(lines[3]),
        message="\n".join(lines[4:]).strip(),
        diff=diff_output,
        changed_files=[f for f in files_output.strip().split("\n") if f],
    )


def parse_remote_url(url: str) -> RepositoryRef | None:
    url = url.strip()
    for pattern in _REMOTE_PATTERNS:
        m = pattern.search(url)
        if m:
            return RepositoryRef(owner=m.group(1), name=m.group(2))
    return None


class GitHistory:
    """History provider backed by a local clone."""

    def __init__(self, repo_path: str) -> None:
        self._repo_path = repo_path

    async def _run(self, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                settings.git_binary,
                *args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self._repo_path,
            )
        except OSError as exc:
            raise EvidenceUnavailable(f"git {args[0]}", str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=settings.git_timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise EvidenceUnavailable(
                f"git {args[0]}", f"timed out after {settings.git_timeout_seconds}s"
            ) from exc

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "unknown error"
            raise EvidenceUnavailable(f"git {args[0]}", message)

        return stdout.decode("utf-8", errors="replace")

    async def blame(self, file_path: str, line: int) -> BlameData:
        output = await self._run("blame", "-L", f"{line},{line}", "--porcelain", "--", file_path)
        return parse_blame_porcelain(output, line)

    async def commit(self, commit_hash: str) -> CommitInfo:
        show = await self._run("show", f"--format={_SHOW_FORMAT}", "--no-patch", commit_hash)
        diff = await self._run("show", "--format=", commit_hash)
        files = await self._run(
            "diff-tree", "--root", "--no-commit-id", "--name-only", "-r", commit_hash
        )
        return parse_commit_show(show, diff, files)

    async def file_history(self, file_path: str, max_count: int) -> list[CommitInfo]:
        output = await self._run(
            "log", "--follow", f"--max-count={max_count}", "--format=%H", "--", file_path
        )
        hashes = [h for h in output.strip().split("\n") if h]

        commits = []
        for h in hashes:
            commits.append(await self.commit(h))

        logger.info("Loaded %d history commits for %s", len(commits), file_path)
        return commits

    async def remote_info(self) -> RepositoryRef | None:
        try:
            output = await self._run("remote", "get-url", "origin")
        except EvidenceUnavailable:
            return None
        return parse_remote_url(output)
