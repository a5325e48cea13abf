"""Reasoning service — a single chat-model call with effort control and error classification."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage

from archaeologist.config import Settings
from archaeologist.errors import ReasoningError, ReasoningOverloaded
from archaeologist.reasoning.models import ReasoningResponse, ThinkingEffort

logger = logging.getLogger("archaeologist.reasoning")

_RETRYABLE_STATUS = {429, 503, 529}
_OVERLOAD_MARKERS = ("overloaded", "rate limit", "rate_limit", "too many requests", "resource_exhausted")
_OPENAI_REASONING_PREFIXES = ("o1", "o3", "o4", "gpt-5")


class Reasoner(Protocol):
    async def generate(
        self, prompt: str, effort: ThinkingEffort, temperature: float
    ) -> ReasoningResponse: ...


def is_overload_error(exc: BaseException) -> bool:
    """Rate-limit and overload signals are the only retryable reasoning failures."""
    for attr in ("status_code", "status", "code"):
        status = getattr(exc, attr, None)
        if isinstance(status, int) and status in _RETRYABLE_STATUS:
            return True
    text = str(exc).lower()
    return any(marker in text for marker in _OVERLOAD_MARKERS)


def build_chat_model(cfg: Settings) -> BaseChatModel:
    if cfg.llm_provider == "anthropic":
        from langchain_anthropic import ChatAnthropic
        return ChatAnthropic(
            model=cfg.llm_model,
            api_key=cfg.anthropic_api_key,
            max_tokens=cfg.llm_max_tokens,
        )
    elif cfg.llm_provider == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=cfg.llm_model,
            api_key=cfg.openai_api_key,
        )
    else:
        raise ValueError(f"Unsupported LLM provider: {cfg.llm_provider}")


def _split_content(message: AIMessage) -> tuple[str, str | None]:
    """Return the visible text and the provider thought signature, if any."""
    if isinstance(message.content, str):
        return message.content, None

    texts: list[str] = []
    signature = None
    for block in message.content:
        if isinstance(block, str):
            texts.append(block)
        elif block.get("type") == "text":
            texts.append(block.get("text", ""))
        elif block.get("type") == "thinking" and block.get("signature") and signature is None:
            signature = block["signature"]
    return "".join(texts), signature


class ReasoningService:
    """Wraps a LangChain chat model behind the ``Reasoner`` contract.

    One call per ``generate``; no retries here. Failures surface as
    ``ReasoningOverloaded`` (retryable) or ``ReasoningError``.
    """

    def __init__(self, llm: BaseChatModel, provider: str = "anthropic", model: str = "") -> None:
        self._llm = llm
        self._provider = provider
        self._model = model
        self._calls = itertools.count(1)

    def _call_kwargs(self, effort: ThinkingEffort, temperature: float) -> dict:
        if self._provider == "anthropic":
            # Extended thinking rejects any temperature other than the default.
            return {"thinking": {"type": "enabled", "budget_tokens": effort.budget_tokens}}
        if self._provider == "openai" and self._model.startswith(_OPENAI_REASONING_PREFIXES):
            return {"reasoning_effort": effort.value}
        return {"temperature": temperature}

    async def generate(
        self, prompt: str, effort: ThinkingEffort, temperature: float
    ) -> ReasoningResponse:
        step = next(self._calls)
        model = self._llm.bind(**self._call_kwargs(effort, temperature))

        try:
            response = await model.ainvoke([HumanMessage(content=prompt)])
        except Exception as exc:
            if is_overload_error(exc):
                raise ReasoningOverloaded(str(exc)) from exc
            raise ReasoningError(str(exc)) from exc

        text, signature = _split_content(response)
        token = signature or f"reasoning-{int(time.time() * 1000)}-{step}"

        logger.info(
            "Reasoning call %d complete: effort=%s chars=%d", step, effort.value, len(text)
        )
        return ReasoningResponse(text=text.strip(), continuation_token=token)
