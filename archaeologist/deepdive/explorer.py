"""Deep dive — investigates a selection, then the files it depends on, within a budget."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from archaeologist.config import Settings, settings as default_settings
from archaeologist.deepdive.dependencies import discover_dependencies, representative_excerpt
from archaeologist.deepdive.models import (
    DeepDiveOptions,
    DeepDiveProgressCallback,
    DeepDiveResult,
    DeepDiveUpdate,
    ReferenceSummary,
)
from archaeologist.deepdive.references import extract_identifiers, scan_references
from archaeologist.errors import ArchaeologistError, ReasoningError
from archaeologist.evidence.models import CodeSelection
from archaeologist.investigation.investigator import Investigator
from archaeologist.reasoning.client import Reasoner
from archaeologist.reasoning.models import ReasoningTrace, ThinkingEffort
from archaeologist.reporting.models import InvestigationResult
from archaeologist.verification.models import VerificationReport
from archaeologist.verification.verifier import Verifier

logger = logging.getLogger("archaeologist.deepdive")

AGENT_ID = "deep-dive"

_UNIFY_PROMPT = """\
Synthesize these related code archaeology findings into a coherent understanding:

Main Investigation:
{main}

Related Files:
{related}

Provide a unified narrative that connects these findings. Focus on:
1. How these files work together
2. The overall purpose of this code module
3. Any patterns or architectural decisions revealed"""


def _emit(callback: DeepDiveProgressCallback | None, **fields) -> None:
    if callback is None:
        return
    try:
        callback(DeepDiveUpdate(**fields))
    except Exception:
        logger.exception("Deep dive progress callback raised for phase=%s", fields.get("phase"))


class DeepDiveExplorer:
    def __init__(
        self,
        investigator: Investigator,
        reasoner: Reasoner,
        cfg: Settings | None = None,
    ) -> None:
        self.investigator = investigator
        self._reasoner = reasoner
        self._settings = cfg or default_settings

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _selection_for(root: CodeSelection, file: str) -> CodeSelection:
        text = (Path(root.repo_path) / file).read_text(encoding="utf-8", errors="replace")
        start, end, excerpt = representative_excerpt(text)
        return CodeSelection(
            text=excerpt,
            file_path=file,
            line_start=start,
            line_end=end,
            repo_path=root.repo_path,
            repo_owner=root.repo_owner,
            repo_name=root.repo_name,
        )

    async def _scan(self, selection: CodeSelection) -> ReferenceSummary | None:
        identifiers = extract_identifiers(selection.text)
        if not identifiers:
            return None
        return await asyncio.to_thread(
            scan_references,
            selection.repo_path,
            identifiers,
            selection.file_path,
            self._settings.reference_scan_max_files,
            self._settings.reference_scan_max_hits,
        )

    async def _unify(
        self,
        main: InvestigationResult,
        related: dict[str, InvestigationResult],
        trace: ReasoningTrace,
    ) -> None:
        prompt = _UNIFY_PROMPT.format(
            main=main.summary,
            related="\n".join(f"{file}: {result.summary}" for file, result in related.items()),
        )
        try:
            response = await self._reasoner.generate(prompt, ThinkingEffort.MEDIUM, self._settings.llm_temperature)
        except ReasoningError as exc:
            logger.warning("Unifying synthesis failed, keeping main narrative: %s", exc)
            return
        trace.record(response.continuation_token, AGENT_ID)
        if response.text:
            main.narrative += "\n\n## Synthesized Understanding\n\n" + response.text

    # ── Entry point ─────────────────────────────────────────────────

    async def deep_dive(
        self,
        selection: CodeSelection,
        options: DeepDiveOptions | None = None,
        progress: DeepDiveProgressCallback | None = None,
    ) -> DeepDiveResult:
        started = time.monotonic()
        options = options or DeepDiveOptions.from_settings(self._settings)
        trace = ReasoningTrace()
        explored: dict[str, None] = {}

        _emit(progress, phase="exploring", files_explored=0, total_files=options.max_files,
              message="Starting autonomous deep dive...")

        tree = await asyncio.to_thread(
            discover_dependencies, selection.repo_path, selection.file_path, options.max_depth
        )
        total = min(tree.count(), options.max_files)

        references = None
        extra_context = None
        if options.scan_references:
            references = await self._scan(selection)
            if references and references.usages:
                extra_context = references.to_prompt_context()

        # The root consumes one unit of the file budget.
        remaining = options.max_files - 1
        explored[selection.file_path] = None
        _emit(progress, phase="investigating", current_file=selection.file_path, files_explored=1,
              total_files=total, message=f"Investigating main target: {selection.file_path}")
        main = await self.investigator.investigate(selection, trace=trace, extra_context=extra_context)
        tree.investigated = True

        related: dict[str, InvestigationResult] = {}
        stack = list(reversed(tree.children))
        while stack and remaining > 0:
            node = stack.pop()
            if node.file in explored:
                continue
            remaining -= 1
            explored[node.file] = None

            _emit(progress, phase="investigating", current_file=node.file, files_explored=len(explored),
                  total_files=total, message=f"Autonomously exploring: {node.file}", depth=node.depth)
            try:
                sub_selection = await asyncio.to_thread(self._selection_for, selection, node.file)
                related[node.file] = await self.investigator.investigate(sub_selection, trace=trace)
            except (ArchaeologistError, OSError, ValueError) as exc:
                logger.warning("Skipping related file %s: %s", node.file, exc)
                continue
            node.investigated = True
            stack.extend(reversed(node.children))

        if references is not None:
            main.narrative += "\n\n" + references.to_markdown()

        if options.verify:
            _emit(progress, phase="verifying", files_explored=len(explored), total_files=len(explored),
                  message="Verifying investigation findings...", verification_status="pending")
            verifier = Verifier(
                self.investigator.pipeline.history_for(selection.repo_path), self._reasoner, self._settings
            )
            report = await verifier.verify(main, trace)
            main.confidence = report.overall_confidence
        else:
            report = VerificationReport(overall_confidence=main.confidence)

        _emit(progress, phase="synthesizing", files_explored=len(explored), total_files=len(explored),
              message="Synthesizing complete investigation report...")
        if related:
            await self._unify(main, related, trace)

        _emit(progress, phase="complete", files_explored=len(explored), total_files=len(explored),
              message=f"Deep dive complete! Explored {len(explored)} files.",
              verification_status="verified" if report.claims_failed == 0 else "failed")

        logger.info(
            "Deep dive complete for %s: %d files explored, %d related investigations, %d reasoning steps",
            selection.file_path,
            len(explored),
            len(related),
            trace.total_steps,
        )
        return DeepDiveResult(
            main_investigation=main,
            related_investigations=related,
            dependency_tree=tree,
            verification_report=report,
            reference_summary=references,
            total_files_explored=len(explored),
            total_time_ms=int((time.monotonic() - started) * 1000),
            trace_length=trace.total_steps,
            trace=trace,
        )
