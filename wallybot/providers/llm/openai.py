"""Async LLM provider for OpenAI-compatible chat completion APIs."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import httpx

from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completion provider."""

    name = "openai"
    supports_json_mode = True

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: str | None = None,
        timeout: float = 10.0,
        **kwargs: Any,
    ) -> None:
        self.base_url = (base_url or "https://api.openai.com").rstrip("/")
        self.timeout = timeout
        self._chat_completions_path = "/v1/chat/completions"
        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, **kwargs: Any) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def _post(self, path: str, json: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = exc.response.text
            if status in (401, 403):
                raise LLMProviderAuthError(f"OpenAI authentication failed: {message}") from exc
            if status == 429:
                raise LLMProviderRateLimitError("OpenAI rate limit exceeded") from exc
            raise LLMProviderAPIError(f"OpenAI API error ({status}): {message}") from exc
        except httpx.RequestError as exc:
            raise LLMProviderAPIError(f"OpenAI request error: {exc}") from exc

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        start_time = time.time()

        payload = self._build_payload(
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=json_mode,
            extra=kwargs,
        )

        data = await self._post(self._chat_completions_path, json=payload)

        choices = data.get("choices", [])
        if not choices:
            raise LLMProviderError("OpenAI response missing choices")

        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content") or ""

        usage = data.get("usage", {})
        return self._create_response(
            content=content,
            tokens_used=usage.get("total_tokens"),
            finish_reason=choice.get("finish_reason"),
            response_time_ms=self._measure_time(start_time),
        )

    async def health_check(self) -> Dict[str, Any]:
        try:
            response = await self.generate_response(
                messages=[LLMMessage(role="user", content="ping")],
                max_tokens=4,
                temperature=0.0,
            )
            return {
                "status": "healthy",
                "provider": self.name,
                "model": self.model,
                "response_preview": (response.content or "")[:32],
            }
        except LLMProviderRateLimitError:
            return {
                "status": "degraded",
                "provider": self.name,
                "model": self.model,
                "error": "rate_limited",
            }
        except LLMProviderError as exc:
            return {
                "status": "error",
                "provider": self.name,
                "model": self.model,
                "error": str(exc),
            }

    async def close(self) -> None:
        await self._client.aclose()

    def _build_payload(
        self,
        *,
        messages: List[LLMMessage],
        max_tokens: Optional[int],
        temperature: Optional[float],
        json_mode: bool,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": msg.role, "content": msg.content}
                for msg in messages
            ],
        }

        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if temperature is not None:
            payload["temperature"] = temperature
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        if extra:
            for key, value in extra.items():
                if value is not None:
                    payload[key] = value

        return payload
