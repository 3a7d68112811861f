"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible endpoints (Together, xAI) through base_url.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from finboard.models import Completion
from finboard.providers.base import LLMProvider, ProviderError, T, parse_structured, schema_instruction

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI (or OpenAI-compatible) provider via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        schema: type[T],
    ) -> Completion:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=[
                        {"role": "system", "content": system_prompt + schema_instruction(schema)},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=temperature,
                    max_tokens=min(max_tokens, self._config.max_tokens),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            schema.__name__,
            latency,
            token_count,
        )

        return Completion(
            provider=self._config.name,
            model=self._config.model,
            content=parse_structured(self._config.name, choice.message.content, schema),
            latency_sec=latency,
            token_count=token_count,
        )
