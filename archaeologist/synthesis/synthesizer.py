"""Synthesizer — one reasoning call over the case evidence, parsed into a result."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from archaeologist.config import Settings, settings as default_settings
from archaeologist.errors import ReasoningError, ReasoningOverloaded, SynthesisFailed
from archaeologist.evidence.models import Case
from archaeologist.reasoning.client import Reasoner
from archaeologist.reasoning.models import ReasoningResponse, ReasoningTrace, ThinkingEffort
from archaeologist.reporting.models import InvestigationResult
from archaeologist.reporting.timeline import build_timeline
from archaeologist.synthesis.parser import parse_investigation_response
from archaeologist.synthesis.prompt import build_investigation_prompt

logger = logging.getLogger("archaeologist.synthesis")

AGENT_ID = "lead-detective"

Sleep = Callable[[float], Awaitable[None]]


class Synthesizer:
    """Turns a gathered case into an ``InvestigationResult``.

    Overloaded reasoning calls are retried with exponential backoff
    (base, 2×base, ...) up to ``reasoning_max_attempts`` attempts. Any other
    reasoning failure, or running out of attempts, raises ``SynthesisFailed``.
    """

    def __init__(
        self,
        reasoner: Reasoner,
        cfg: Settings | None = None,
        effort: ThinkingEffort | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._reasoner = reasoner
        self._settings = cfg or default_settings
        self.effort = effort or ThinkingEffort(self._settings.thinking_effort)
        self._sleep = sleep or asyncio.sleep

    async def _generate(self, prompt: str) -> ReasoningResponse:
        cfg = self._settings
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(cfg.reasoning_max_attempts),
            wait=wait_exponential(multiplier=cfg.reasoning_backoff_base_seconds),
            retry=retry_if_exception_type(ReasoningOverloaded),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._reasoner.generate(prompt, self.effort, cfg.llm_temperature)

    async def synthesize(
        self,
        case: Case,
        trace: ReasoningTrace,
        extra_context: str | None = None,
    ) -> InvestigationResult:
        prompt = build_investigation_prompt(case, trace, self._settings, extra_context)

        try:
            response = await self._generate(prompt)
        except ReasoningOverloaded as exc:
            raise SynthesisFailed(
                f"reasoning service still overloaded after "
                f"{self._settings.reasoning_max_attempts} attempts: {exc}"
            ) from exc
        except ReasoningError as exc:
            raise SynthesisFailed(f"reasoning service rejected the request: {exc}") from exc

        trace.record(response.continuation_token, AGENT_ID)
        parsed = parse_investigation_response(response.text, case, self._settings)

        logger.info(
            "Synthesis complete for case=%s: confidence=%d sources=%d recommendations=%d",
            case.id,
            parsed.confidence,
            len(parsed.sources),
            len(parsed.recommendations),
        )

        return InvestigationResult(
            case_id=case.id,
            file_path=case.selection.file_path,
            narrative=parsed.narrative,
            summary=parsed.summary,
            confidence=parsed.confidence,
            sources=parsed.sources,
            recommendations=parsed.recommendations,
            timeline=build_timeline(case.evidence),
            trace=trace,
            evidence_count=len(case.evidence),
            evidence_gaps=[f"{g.step}: {g.reason}" for g in case.gaps],
        )
