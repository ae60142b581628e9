from typing import List, Dict, Any, Optional
import time

import anthropic
from anthropic import AsyncAnthropic

from .base import (
    LLMProvider, LLMMessage, LLMResponse,
    LLMProviderError, LLMProviderAPIError, LLMProviderAuthError, LLMProviderRateLimitError,
)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude LLM Provider implementation"""

    name = "anthropic"

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        if not model:
            raise ValueError("AnthropicProvider requires a model to be specified")

        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, timeout: float = 10.0, **kwargs) -> None:
        """Initialize the Anthropic client"""
        try:
            self.client = AsyncAnthropic(api_key=self.api_key, timeout=timeout)
        except Exception as e:
            self.logger.error(f"Failed to initialize Anthropic client: {e}")
            raise LLMProviderAuthError(f"Failed to initialize Anthropic client: {e}")

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from Claude.

        Claude has no JSON response mode; ``json_mode`` is carried by the
        system prompt and the caller parses the text.
        """
        start_time = time.time()

        # System messages go in the dedicated parameter
        system_parts = [msg.content for msg in messages if msg.role == "system"]
        anthropic_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system"
        ]

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": anthropic_messages,
            "max_tokens": max_tokens or 1024,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            request_params["temperature"] = temperature
        request_params.update(kwargs)

        try:
            response = await self.client.messages.create(**request_params)
        except anthropic.AuthenticationError as e:
            raise LLMProviderAuthError(f"Authentication failed: {e}") from e
        except anthropic.RateLimitError as e:
            raise LLMProviderRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            raise LLMProviderAPIError(f"API error: {e}") from e

        content = ""
        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                content += block.text

        return LLMResponse(
            content=content or None,
            tokens_used=response.usage.output_tokens if getattr(response, "usage", None) else None,
            model=self.model,
            finish_reason=getattr(response, "stop_reason", None),
            response_time_ms=self._measure_time(start_time),
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check Anthropic API health"""
        try:
            response = await self.generate_response(
                messages=[LLMMessage(role="user", content="ping")],
                max_tokens=4,
            )
            return {
                "status": "healthy",
                "provider": self.name,
                "model": self.model,
                "response_time_ms": response.response_time_ms,
            }
        except LLMProviderError as e:
            return {
                "status": "error",
                "provider": self.name,
                "model": self.model,
                "error": str(e),
            }

    async def close(self) -> None:
        await self.client.close()
