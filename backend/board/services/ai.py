"""AI chat-completion client used for opportunity extraction."""

import logging
from functools import lru_cache
from typing import Protocol

from openai import AsyncOpenAI

from board.config import get_settings
from board.monitoring import report_exception
from board.result import Result, fail, success

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    async def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0,
        max_tokens: int = 500,
    ) -> Result: ...


class OpenAIChatClient:
    """Thin wrapper around the OpenAI chat completions API.

    Works with any OpenAI-compatible endpoint (set ``openai_base_url``).
    Returns a ``Result`` holding the completion text instead of raising.
    """

    def __init__(self, api_key: str, model: str, base_url: str | None = None, timeout: float = 60.0):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.model = model

    async def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0,
        max_tokens: int = 500,
    ) -> Result:
        try:
            # A client per call: Celery workers run each job in a new event loop.
            async with AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout) as client:
                resp = await client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
        except Exception as e:
            report_exception(e, model=self.model)
            return fail(500, "Failed to get a chat completion.")

        content = resp.choices[0].message.content if resp.choices else ""
        content = (content or "").strip()
        if not content:
            logger.warning("Empty chat completion from %s", self.model)
            return fail(500, "Chat completion was empty.")

        return success(content)


@lru_cache
def get_completion_client() -> CompletionClient:
    settings = get_settings()
    return OpenAIChatClient(
        api_key=settings.openai_api_key,
        model=settings.ai_model,
        base_url=settings.openai_base_url,
        timeout=settings.ai_timeout,
    )
