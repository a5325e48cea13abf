"""Shared collaborators for the service, built once at startup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from archaeologist.config import Settings, settings as default_settings
from archaeologist.deepdive.explorer import DeepDiveExplorer
from archaeologist.investigation.graph import EvidencePipeline
from archaeologist.investigation.investigator import Investigator
from archaeologist.reasoning.client import Reasoner, ReasoningService, build_chat_model
from archaeologist.reasoning.models import ThinkingEffort
from archaeologist.reporting.artifacts import ArtifactStore
from archaeologist.sources.git import GitHistory
from archaeologist.sources.github import GitHubClient
from archaeologist.sources.protocols import CodeHostProvider, HistoryProvider
from archaeologist.synthesis.synthesizer import Synthesizer


@dataclass
class Services:
    reasoner: Reasoner
    codehost: CodeHostProvider | None
    artifacts: ArtifactStore
    cfg: Settings = field(default_factory=lambda: default_settings)
    history_factory: Callable[[str], HistoryProvider] = GitHistory

    @classmethod
    def from_settings(cls, cfg: Settings) -> Services:
        llm = build_chat_model(cfg)
        return cls(
            reasoner=ReasoningService(llm, cfg.llm_provider, cfg.llm_model),
            codehost=GitHubClient(cfg.github_token),
            artifacts=ArtifactStore(cfg.artifacts_dir),
            cfg=cfg,
        )

    def investigator(self, effort: ThinkingEffort | None = None) -> Investigator:
        """A fresh investigator per request; nothing in flight is shared."""
        pipeline = EvidencePipeline(self.codehost, self.history_factory, self.cfg)
        return Investigator(pipeline, Synthesizer(self.reasoner, self.cfg, effort))

    def explorer(self, effort: ThinkingEffort | None = None) -> DeepDiveExplorer:
        return DeepDiveExplorer(self.investigator(effort), self.reasoner, self.cfg)

    async def close(self) -> None:
        if isinstance(self.codehost, GitHubClient):
            await self.codehost.close()
