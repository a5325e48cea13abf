"""LangGraph evidence pipeline — blame, commit, PR, issues and file history in order."""

from __future__ import annotations

import logging
from typing import Callable, Literal

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from archaeologist.config import Settings, settings as default_settings
from archaeologist.evidence.models import (
    BlameEvidence,
    Case,
    CodeSelection,
    CommitEvidence,
    EvidenceGap,
    FileHistoryEvidence,
    IssueEvidence,
    PullRequestEvidence,
    RepositoryRef,
)
from archaeologist.investigation.progress import ProgressCallback, emit
from archaeologist.investigation.state import PipelineState
from archaeologist.sources.git import GitHistory
from archaeologist.sources.github import extract_linked_issues
from archaeologist.sources.protocols import CodeHostProvider, HistoryProvider

logger = logging.getLogger("archaeologist.pipeline")


def _progress(config: RunnableConfig) -> ProgressCallback | None:
    return config.get("configurable", {}).get("progress")


def _gap(step: str, exc: Exception) -> dict:
    logger.warning("Evidence step '%s' failed: %s", step, exc)
    return {"gaps": [EvidenceGap(step=step, reason=str(exc))]}


def build_pipeline_graph(
    history: HistoryProvider,
    codehost: CodeHostProvider | None,
    cfg: Settings,
) -> StateGraph:
    """Construct the evidence-gathering state machine for one repository."""

    # ── Node functions ──────────────────────────────────────────────

    async def blame(state: PipelineState, config: RunnableConfig) -> dict:
        selection = state["selection"]
        emit(_progress(config), "analyzing_blame", "Analyzing git blame...", 10)
        try:
            data = await history.blame(selection.file_path, selection.midpoint_line)
        except Exception as exc:
            return {"blame": None, **_gap("blame", exc)}
        return {"blame": data, "evidence": [BlameEvidence(data=data)]}

    async def commit(state: PipelineState, config: RunnableConfig) -> dict:
        emit(_progress(config), "fetching_commits", "Retrieving commit details...", 25)
        try:
            data = await history.commit(state["blame"].commit_hash)
        except Exception as exc:
            return {"commit": None, **_gap("commit", exc)}
        return {"commit": data, "evidence": [CommitEvidence(data=data)]}

    async def resolve_repository(state: PipelineState) -> dict:
        selection = state["selection"]
        if selection.repo_owner and selection.repo_name:
            return {"repository": RepositoryRef(owner=selection.repo_owner, name=selection.repo_name)}

        try:
            repository = await history.remote_info()
        except Exception as exc:
            return {"repository": None, **_gap("repository", exc)}

        if repository is None:
            logger.warning("Could not determine repository owner/name, skipping PR lookup")
            return {
                "repository": None,
                "gaps": [EvidenceGap(step="repository", reason="no GitHub remote configured")],
            }
        return {"repository": repository}

    async def pull_request(state: PipelineState, config: RunnableConfig) -> dict:
        repo = state["repository"]
        emit(_progress(config), "searching_prs", f"Searching for PRs in {repo.slug}...", 45)
        try:
            pr = await codehost.find_pr_by_commit(repo.owner, repo.name, state["blame"].commit_hash)
        except Exception as exc:
            return {"pull_request": None, **_gap("pull_request", exc)}

        if pr is None:
            return {
                "pull_request": None,
                "gaps": [EvidenceGap(step="pull_request", reason="no pull request found for commit")],
            }
        return {"pull_request": pr, "evidence": [PullRequestEvidence(data=pr)]}

    async def issues(state: PipelineState, config: RunnableConfig) -> dict:
        repo = state["repository"]
        pr = state.get("pull_request")
        commit_info = state.get("commit")
        if pr is not None:
            numbers = pr.linked_issues
        elif commit_info is not None:
            numbers = extract_linked_issues(commit_info.message)
        else:
            numbers = []
        numbers = numbers[: cfg.max_linked_issues]
        if not numbers:
            return {"gaps": []}

        emit(_progress(config), "reading_issues", f"Found {len(numbers)} linked issues...", 60)
        found: list[IssueEvidence] = []
        gaps: list[EvidenceGap] = []
        for number in numbers:
            try:
                issue = await codehost.get_issue(repo.owner, repo.name, number)
            except Exception as exc:
                gaps.extend(_gap(f"issue #{number}", exc)["gaps"])
                continue
            if issue is not None:
                found.append(IssueEvidence(data=issue))
        return {"evidence": found, "gaps": gaps}

    async def file_history(state: PipelineState, config: RunnableConfig) -> dict:
        selection = state["selection"]
        emit(_progress(config), "fetching_commits", "Loading file history...", 70)
        try:
            commits = await history.file_history(selection.file_path, cfg.file_history_max_commits)
        except Exception as exc:
            return _gap("file_history", exc)
        return {"evidence": [FileHistoryEvidence(data=commits)]}

    # ── Routing logic ───────────────────────────────────────────────

    def after_blame(state: PipelineState) -> Literal["commit", "file_history"]:
        return "commit" if state.get("blame") else "file_history"

    def after_repository(state: PipelineState) -> Literal["pull_request", "file_history"]:
        if state.get("repository") is None or codehost is None:
            return "file_history"
        return "pull_request"

    # ── Build the graph ─────────────────────────────────────────────

    graph = StateGraph(PipelineState)

    graph.add_node("blame", blame)
    graph.add_node("commit", commit)
    graph.add_node("resolve_repository", resolve_repository)
    graph.add_node("pull_request", pull_request)
    graph.add_node("issues", issues)
    graph.add_node("file_history", file_history)

    graph.set_entry_point("blame")
    graph.add_conditional_edges("blame", after_blame, {
        "commit": "commit",
        "file_history": "file_history",
    })
    graph.add_edge("commit", "resolve_repository")
    graph.add_conditional_edges("resolve_repository", after_repository, {
        "pull_request": "pull_request",
        "file_history": "file_history",
    })
    graph.add_edge("pull_request", "issues")
    graph.add_edge("issues", "file_history")
    graph.add_edge("file_history", END)

    return graph


class EvidencePipeline:
    """Runs the evidence graph for a selection and returns the populated case."""

    def __init__(
        self,
        codehost: CodeHostProvider | None,
        history_factory: Callable[[str], HistoryProvider] = GitHistory,
        cfg: Settings | None = None,
    ) -> None:
        self._codehost = codehost
        self._history_factory = history_factory
        self._settings = cfg or default_settings

    def history_for(self, repo_path: str) -> HistoryProvider:
        return self._history_factory(repo_path)

    async def gather(self, selection: CodeSelection, progress: ProgressCallback | None = None) -> Case:
        case = Case(selection=selection)
        emit(progress, "initializing", "Starting investigation...", 0)

        graph = build_pipeline_graph(
            self.history_for(selection.repo_path), self._codehost, self._settings
        ).compile()

        final: PipelineState = {}
        async for values in graph.astream(
            {"selection": selection, "evidence": [], "gaps": []},
            config={"configurable": {"progress": progress}},
            stream_mode="values",
        ):
            for item in values.get("evidence", [])[len(case.evidence):]:
                case.add_evidence(item)
            final = values

        case.repository = final.get("repository")
        case.gaps.extend(final.get("gaps", []))

        logger.info(
            "Evidence gathered for case=%s file=%s: %d items, %d gaps",
            case.id,
            selection.file_path,
            len(case.evidence),
            len(case.gaps),
        )
        return case
