# llm_client.py
"""Chat-completion client for the generative model.

Built once at startup (see ``edupath.main``) and handed to routes through
``edupath.routers.dependencies.get_llm_client``. Anything with an async
``complete(messages, json_mode=...)`` method can stand in for it in tests.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError

from edupath.config import Settings


logger = logging.getLogger(__name__)

ChatMessage = dict[str, str]


class LLMError(RuntimeError):
    pass


class LLMClient(Protocol):
    async def complete(self, messages: list[ChatMessage], *, json_mode: bool = False) -> str: ...


class OpenAIChatClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        if not api_key:
            raise LLMError("OPENAI_API_KEY not set in environment")
        self.model = model
        self.timeout = float(timeout)
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout,
            max_retries=max_retries,
        )

    async def complete(self, messages: list[ChatMessage], *, json_mode: bool = False) -> str:
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            # The SDK timeout covers each HTTP attempt; this bounds the whole call including retries.
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise LLMError(f"Model call timed out after {self.timeout:.0f}s") from exc
        except OpenAIError as exc:
            raise LLMError(f"Model call failed: {type(exc).__name__}: {exc}") from exc

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def close(self) -> None:
        await self._client.close()


def build_llm_client(settings: Settings) -> OpenAIChatClient | None:
    api_key = (settings.openai_api_key or "").strip()
    if not api_key:
        logger.warning("llm.client disabled reason=missing_api_key")
        return None
    logger.info("llm.client model=%s timeout=%ss", settings.openai_model, settings.llm_timeout_seconds)
    return OpenAIChatClient(
        api_key=api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=settings.llm_max_retries,
    )
