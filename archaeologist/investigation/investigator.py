"""Investigator — gathers evidence, synthesizes, and finalizes the case."""

from __future__ import annotations

import logging

from archaeologist.errors import SynthesisFailed
from archaeologist.evidence.models import Case, CodeSelection
from archaeologist.investigation.graph import EvidencePipeline
from archaeologist.investigation.progress import ProgressCallback, emit
from archaeologist.reasoning.models import ReasoningTrace
from archaeologist.reporting.models import InvestigationResult
from archaeologist.synthesis.synthesizer import Synthesizer

logger = logging.getLogger("archaeologist.pipeline")


class Investigator:
    def __init__(self, pipeline: EvidencePipeline, synthesizer: Synthesizer) -> None:
        self.pipeline = pipeline
        self.synthesizer = synthesizer
        self.last_case: Case | None = None

    @staticmethod
    def _fail(case: Case, exc: SynthesisFailed, progress: ProgressCallback | None) -> None:
        case.fail(str(exc))
        logger.error("Investigation failed for case=%s: %s", case.id, exc)
        emit(progress, "failed", f"Investigation failed: {exc}", 0)

    async def investigate(
        self,
        selection: CodeSelection,
        progress: ProgressCallback | None = None,
        *,
        trace: ReasoningTrace | None = None,
        extra_context: str | None = None,
    ) -> InvestigationResult:
        """Run one investigation. A fresh trace is started unless the caller passes one in."""
        trace = trace if trace is not None else ReasoningTrace()

        case = await self.pipeline.gather(selection, progress)
        self.last_case = case

        badge = self.synthesizer.effort.badge
        emit(
            progress,
            "synthesizing",
            f"Lead Detective analyzing evidence [{badge} thinking]...",
            80,
            thinking_level=badge,
        )

        try:
            result = await self.synthesizer.synthesize(case, trace, extra_context)
        except SynthesisFailed as exc:
            self._fail(case, exc, progress)
            raise
        except Exception as exc:
            logger.exception("Unexpected synthesis error for case=%s", case.id)
            failure = SynthesisFailed(f"unexpected synthesis error: {exc}")
            self._fail(case, failure, progress)
            raise failure from exc

        case.complete(result.confidence, trace)
        emit(progress, "completed", "Investigation complete!", 100)
        logger.info(
            "Investigation complete for case=%s file=%s confidence=%d",
            case.id,
            selection.file_path,
            result.confidence,
        )
        return result
