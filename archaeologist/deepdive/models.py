"""Data models for deep-dive exploration."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Literal

from pydantic import BaseModel, Field

from archaeologist.config import Settings
from archaeologist.reasoning.models import ReasoningTrace
from archaeologist.reporting.models import InvestigationResult
from archaeologist.verification.models import VerificationReport


class DependencyNode(BaseModel):
    file: str  # relative to the repository root
    relation: Literal["root", "import", "export", "reference"] = "import"
    depth: int = 0
    children: list[DependencyNode] = []
    investigated: bool = False

    def walk(self):
        """Yield every node in the subtree, depth-first, self first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def count(self) -> int:
        return sum(1 for _ in self.walk())


class DeepDiveOptions(BaseModel):
    max_depth: int = Field(default=3, ge=0)
    max_files: int = Field(default=10, ge=1)
    verify: bool = True
    scan_references: bool = False

    @classmethod
    def from_settings(cls, cfg: Settings) -> DeepDiveOptions:
        return cls(
            max_depth=cfg.deep_dive_max_depth,
            max_files=cfg.deep_dive_max_files,
            verify=cfg.deep_dive_verify,
            scan_references=cfg.deep_dive_scan_references,
        )


class DeepDiveUpdate(BaseModel):
    phase: Literal["exploring", "investigating", "verifying", "synthesizing", "complete"]
    current_file: str | None = None
    files_explored: int
    total_files: int
    message: str
    depth: int = 0
    verification_status: Literal["pending", "verified", "failed"] | None = None


DeepDiveProgressCallback = Callable[[DeepDiveUpdate], None]


# ── Codebase references ───────────────────────────────────────────


ReferenceKind = Literal["import", "call", "extends", "implements", "reference"]


class ReferenceUsage(BaseModel):
    file: str
    line: int
    identifier: str
    kind: ReferenceKind
    snippet: str


class ReferenceSummary(BaseModel):
    """Where the identifiers declared in a selection are used across the repository."""

    identifiers: list[str] = []
    usages: list[ReferenceUsage] = []
    files_scanned: int = 0
    truncated: bool = False

    def counts(self) -> dict[str, int]:
        return dict(Counter(u.kind for u in self.usages))

    def files(self) -> list[str]:
        return list(dict.fromkeys(u.file for u in self.usages))

    def to_prompt_context(self, limit: int = 30) -> str:
        lines = [
            "## Codebase Usage",
            f"Identifiers declared in the selected code: {', '.join(self.identifiers)}",
            f"Found {len(self.usages)} usages across {len(self.files())} files:",
        ]
        lines.extend(
            f"- {u.file}:{u.line} [{u.kind}] {u.snippet}" for u in self.usages[:limit]
        )
        if len(self.usages) > limit:
            lines.append(f"... and {len(self.usages) - limit} more")
        return "\n".join(lines)

    def to_markdown(self) -> str:
        if not self.usages:
            return "## Codebase Usage\n\nNo usages found outside the investigated file."
        counts = ", ".join(f"{kind}: {n}" for kind, n in sorted(self.counts().items()))
        parts = [
            "## Codebase Usage",
            "",
            f"{len(self.usages)} usages in {len(self.files())} files ({counts}).",
        ]
        for file in self.files():
            parts.append("")
            parts.append(f"### {file}")
            parts.extend(
                f"- line {u.line} ({u.kind}): `{u.snippet}`" for u in self.usages if u.file == file
            )
        if self.truncated:
            parts.append("")
            parts.append("_Scan stopped early; results are partial._")
        return "\n".join(parts)


# ── Result ────────────────────────────────────────────────────────


class DeepDiveResult(BaseModel):
    main_investigation: InvestigationResult
    related_investigations: dict[str, InvestigationResult] = {}
    dependency_tree: DependencyNode
    verification_report: VerificationReport
    reference_summary: ReferenceSummary | None = None
    total_files_explored: int
    total_time_ms: int
    trace_length: int
    trace: ReasoningTrace = Field(default_factory=ReasoningTrace)
