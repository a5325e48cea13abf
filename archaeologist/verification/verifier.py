"""Self-verification — re-checks citations and asks for a critique of the narrative."""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from archaeologist.config import Settings, settings as default_settings
from archaeologist.errors import EvidenceUnavailable, ReasoningError
from archaeologist.evidence.models import clamp_confidence, round_half_up
from archaeologist.reasoning.client import Reasoner
from archaeologist.reasoning.models import ReasoningTrace, ThinkingEffort
from archaeologist.reporting.models import InvestigationResult, Source
from archaeologist.sources.protocols import HistoryProvider
from archaeologist.verification.models import CritiqueResult, VerificationReport, VerifiedLink

logger = logging.getLogger("archaeologist.verification")

AGENT_ID = "verifier"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_CRITIQUE_PROMPT = """\
You are a critical reviewer of code archaeology investigations.

Review this investigation and identify any issues:

{narrative}

Identify:
1. Claims without source citations
2. Logical inconsistencies
3. Speculation presented as fact
4. Missing context

Respond in JSON format:
{{
  "issues_found": number,
  "suggestions": ["string"]
}}"""


def parse_critique(text: str) -> CritiqueResult:
    """Parse the reviewer's JSON. Anything unparseable counts as no issues."""
    m = _JSON_OBJECT.search(text)
    if not m:
        logger.warning("Self-critique returned no JSON object; assuming no issues")
        return CritiqueResult()
    try:
        return CritiqueResult.model_validate(json.loads(m.group(0)))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Self-critique JSON could not be parsed: %s", exc)
        return CritiqueResult()


def scale_confidence(confidence: int, verified: int, total: int) -> int:
    if total == 0:
        return confidence
    return round_half_up(confidence * verified / total)


class Verifier:
    def __init__(
        self,
        history: HistoryProvider,
        reasoner: Reasoner,
        cfg: Settings | None = None,
    ) -> None:
        self._history = history
        self._reasoner = reasoner
        self._settings = cfg or default_settings

    async def verify_source(self, source: Source) -> VerifiedLink:
        link = VerifiedLink(type=source.type, id=source.id, url=source.url)
        try:
            if source.type == "commit":
                await self._history.commit(source.id)
                link.verified = True
            elif source.url:
                # A URL only shows the item was fetched once; it is not re-fetched here.
                link.verified = True
            else:
                link.reason = "No URL available to verify"
        except EvidenceUnavailable as exc:
            link.reason = f"Commit not found in repository: {exc.reason}"
        except Exception as exc:
            logger.warning("Verification of %s %s failed: %s", source.type, source.id, exc)
            link.reason = f"Verification failed: {exc}"
        return link

    async def critique(self, result: InvestigationResult, trace: ReasoningTrace | None = None) -> CritiqueResult:
        narrative = result.narrative[: self._settings.critique_narrative_char_budget]
        try:
            response = await self._reasoner.generate(
                _CRITIQUE_PROMPT.format(narrative=narrative),
                ThinkingEffort.MEDIUM,
                self._settings.critique_temperature,
            )
        except ReasoningError as exc:
            logger.warning("Self-critique failed for case=%s: %s", result.case_id, exc)
            return CritiqueResult()

        if trace is not None:
            trace.record(response.continuation_token, AGENT_ID)
        return parse_critique(response.text)

    async def verify(self, result: InvestigationResult, trace: ReasoningTrace | None = None) -> VerificationReport:
        links = [await self.verify_source(source) for source in result.sources]
        verified = sum(1 for link in links if link.verified)

        confidence = scale_confidence(result.confidence, verified, len(links))
        critique = await self.critique(result, trace)
        if critique.issues_found > 0:
            confidence = max(0, confidence - self._settings.critique_penalty * critique.issues_found)

        report = VerificationReport(
            claims_verified=verified,
            claims_failed=len(links) - verified,
            links_checked=links,
            overall_confidence=clamp_confidence(confidence),
            critique=critique,
        )
        logger.info(
            "Verification for case=%s: %d/%d citations confirmed, %d critique issues, confidence %d -> %d",
            result.case_id,
            verified,
            len(links),
            critique.issues_found,
            result.confidence,
            report.overall_confidence,
        )
        return report
