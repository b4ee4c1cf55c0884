"""
Shared AI inference client for the pipeline stages.

Every stage that talks to a generative model goes through ``AIClient.complete``.
``None`` means "no usable answer" (no key, provider error, timeout, empty
reply) and callers fall back to their deterministic path.
"""
import asyncio
from typing import Any, Optional

from loguru import logger
from openai import AsyncOpenAI

from config.settings import Settings


class AIClient:
    """Thin async wrapper over the OpenAI chat completions API."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.model = settings.analysis_model
        self.timeout = settings.ai_timeout
        self._client = client

        if self._client is None and settings.openai_api_key:
            self._client = AsyncOpenAI(api_key=settings.openai_api_key)

        if self._client is None:
            logger.warning("OpenAI API key not configured - AI stages will use fallbacks")

    @property
    def available(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        model: Optional[str] = None,
    ) -> Optional[str]:
        """
        Run one chat completion.

        Args:
            system_prompt: Role/instructions for the model
            user_prompt: The request itself
            temperature: Sampling temperature
            max_tokens: Optional completion cap
            json_mode: Ask the provider for a JSON object response
            model: Override the default analysis model

        Returns:
            The reply text, or None when no usable reply was produced
        """
        if not self.available:
            return None

        request = {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens:
            request["max_tokens"] = max_tokens
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**request),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"AI completion timed out after {self.timeout}s")
            return None
        except Exception as e:
            logger.error(f"AI completion failed: {e}")
            return None

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            logger.warning("AI completion returned no choices")
            return None

        if not content or not content.strip():
            return None
        return content
