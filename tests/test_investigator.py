"""Tests for the investigation orchestrator."""

from __future__ import annotations

import pytest

from archaeologist.errors import ReasoningError, SynthesisFailed
from archaeologist.evidence.models import CaseStatus
from archaeologist.investigation.graph import EvidencePipeline
from archaeologist.investigation.investigator import Investigator
from archaeologist.reasoning.models import ReasoningTrace, ThinkingEffort
from archaeologist.synthesis.synthesizer import Synthesizer

from conftest import FakeReasoner

ANSWER = "### SUMMARY\nLocks the scheduler.\n\nIt was introduced to fix issue #512. CONFIDENCE: 90%"


def _investigator(history, codehost, reasoner, cfg, effort=None) -> Investigator:
    pipeline = EvidencePipeline(codehost, history_factory=lambda _path: history, cfg=cfg)
    return Investigator(pipeline, Synthesizer(reasoner, cfg, effort))


@pytest.mark.asyncio
async def test_investigate_scenario(selection, scenario_history, scenario_codehost, cfg):
    investigator = _investigator(scenario_history, scenario_codehost, FakeReasoner(ANSWER), cfg)
    updates = []
    result = await investigator.investigate(selection, updates.append)

    assert result.evidence_count == 3
    assert [e.source_id for e in result.timeline] == ["Issue#512", "abc1234"]
    assert [s.id for s in result.sources] == ["Issue#512"]
    assert result.confidence == 90

    case = investigator.last_case
    assert case.status == CaseStatus.COMPLETED
    assert case.confidence == 90
    assert case.trace.total_steps == 1

    assert updates[-2].phase == "synthesizing"
    assert updates[-2].thinking_level == "HIGH"
    assert (updates[-1].phase, updates[-1].progress) == ("completed", 100)


@pytest.mark.asyncio
async def test_issue_not_cited_unless_mentioned(selection, scenario_history, scenario_codehost, cfg):
    reasoner = FakeReasoner("The lock prevents two lanes sharing a slot.")
    result = await _investigator(scenario_history, scenario_codehost, reasoner, cfg).investigate(selection)
    assert result.sources == []
    assert result.confidence == 92


@pytest.mark.asyncio
async def test_each_call_starts_a_fresh_trace(selection, scenario_history, scenario_codehost, cfg):
    investigator = _investigator(scenario_history, scenario_codehost, FakeReasoner(default=ANSWER), cfg)
    first = await investigator.investigate(selection)
    second = await investigator.investigate(selection)

    assert first.trace is not second.trace
    assert first.trace.total_steps == 1
    assert second.trace.total_steps == 1


@pytest.mark.asyncio
async def test_caller_trace_is_extended(selection, scenario_history, scenario_codehost, cfg):
    trace = ReasoningTrace()
    trace.record("prior", "deep-dive")
    investigator = _investigator(scenario_history, scenario_codehost, FakeReasoner(ANSWER), cfg)
    result = await investigator.investigate(selection, trace=trace)

    assert result.trace is trace
    assert trace.total_steps == 2


@pytest.mark.asyncio
async def test_synthesis_failure_fails_case(selection, scenario_history, scenario_codehost, cfg):
    reasoner = FakeReasoner(ReasoningError("invalid request"))
    investigator = _investigator(scenario_history, scenario_codehost, reasoner, cfg)
    updates = []

    with pytest.raises(SynthesisFailed):
        await investigator.investigate(selection, updates.append)

    assert investigator.last_case.status == CaseStatus.FAILED
    assert "invalid request" in investigator.last_case.failure_reason
    assert (updates[-1].phase, updates[-1].progress) == ("failed", 0)


@pytest.mark.asyncio
async def test_thinking_badge_follows_effort(selection, scenario_history, scenario_codehost, cfg):
    investigator = _investigator(
        scenario_history, scenario_codehost, FakeReasoner(ANSWER), cfg, effort=ThinkingEffort.MEDIUM
    )
    updates = []
    await investigator.investigate(selection, updates.append)
    assert [u.thinking_level for u in updates if u.phase == "synthesizing"] == ["MEDIUM"]


@pytest.mark.asyncio
async def test_unexpected_reasoner_error_fails_case(selection, scenario_history, scenario_codehost, cfg):
    reasoner = FakeReasoner(RuntimeError("socket closed"))
    investigator = _investigator(scenario_history, scenario_codehost, reasoner, cfg)
    updates = []

    with pytest.raises(SynthesisFailed, match="socket closed"):
        await investigator.investigate(selection, updates.append)

    assert investigator.last_case.status == CaseStatus.FAILED
    assert investigator.last_case.completed_at is not None
    assert (updates[-1].phase, updates[-1].progress) == ("failed", 0)
