"""Tests for the reasoning service wrapper."""

from __future__ import annotations

from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

from archaeologist.config import Settings
from archaeologist.errors import ReasoningError, ReasoningOverloaded
from archaeologist.reasoning.client import (
    ReasoningService,
    _split_content,
    build_chat_model,
    is_overload_error,
)
from archaeologist.reasoning.models import ThinkingEffort


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class _FailingChatModel(BaseChatModel):
    error: Any = None

    @property
    def _llm_type(self) -> str:
        return "failing"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        raise self.error


@pytest.mark.parametrize("exc,expected", [
    (_StatusError("busy", 529), True),
    (_StatusError("slow down", 429), True),
    (_StatusError("unavailable", 503), True),
    (Exception("Overloaded: please retry"), True),
    (Exception("rate limit exceeded"), True),
    (_StatusError("bad request", 400), False),
    (ValueError("prompt too long"), False),
])
def test_is_overload_error(exc, expected):
    assert is_overload_error(exc) is expected


def test_call_kwargs_per_provider():
    llm = FakeListChatModel(responses=["x"])

    anthropic = ReasoningService(llm, "anthropic", "claude-sonnet-4-5")._call_kwargs(ThinkingEffort.HIGH, 0.3)
    assert anthropic == {"thinking": {"type": "enabled", "budget_tokens": 24576}}

    o_series = ReasoningService(llm, "openai", "o3-mini")._call_kwargs(ThinkingEffort.LOW, 0.3)
    assert o_series == {"reasoning_effort": "low"}

    plain = ReasoningService(llm, "openai", "gpt-4o")._call_kwargs(ThinkingEffort.LOW, 0.3)
    assert plain == {"temperature": 0.3}


def test_split_content_reads_thinking_signature():
    message = AIMessage(content=[
        {"type": "thinking", "thinking": "hmm", "signature": "sig-123"},
        {"type": "text", "text": "### SUMMARY\n"},
        {"type": "text", "text": "• done"},
    ])
    assert _split_content(message) == ("### SUMMARY\n• done", "sig-123")


def test_split_content_plain_string():
    assert _split_content(AIMessage(content="hello")) == ("hello", None)


@pytest.mark.asyncio
async def test_generate_returns_text_and_fallback_token():
    service = ReasoningService(FakeListChatModel(responses=["  the answer  "]), "fake", "fake-model")
    response = await service.generate("why?", ThinkingEffort.MEDIUM, 0.3)

    assert response.text == "the answer"
    assert response.continuation_token.startswith("reasoning-")
    assert response.continuation_token.endswith("-1")


@pytest.mark.asyncio
async def test_generate_classifies_overload():
    service = ReasoningService(_FailingChatModel(error=_StatusError("overloaded", 529)), "fake")
    with pytest.raises(ReasoningOverloaded):
        await service.generate("why?", ThinkingEffort.LOW, 0.3)


@pytest.mark.asyncio
async def test_generate_classifies_other_failures():
    service = ReasoningService(_FailingChatModel(error=ValueError("invalid prompt")), "fake")
    with pytest.raises(ReasoningError) as info:
        await service.generate("why?", ThinkingEffort.LOW, 0.3)
    assert not isinstance(info.value, ReasoningOverloaded)


def test_build_chat_model_rejects_unknown_provider():
    with pytest.raises(ValueError):
        build_chat_model(Settings(llm_provider="carrier-pigeon"))
