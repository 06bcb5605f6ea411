#!/usr/bin/env python3
# CUI // SP-PROPIN
"""OpenAI-compatible LLM provider.

Supports any OpenAI-compatible API: OpenAI, Ollama, vLLM, LM Studio.
A finish_reason of "length" surfaces as a truncated response.
"""

import logging
import time

from wbs_engine.llm.provider import LLMProvider, LLMRequest, LLMResponse, with_system_prompt

logger = logging.getLogger("wbs_engine.llm.openai")


class OpenAICompatibleProvider(LLMProvider):
    """Provider for OpenAI-compatible REST APIs."""

    def __init__(self, api_key: str = "", base_url: str = "https://api.openai.com/v1",
                 provider_label: str = "openai", requires_key: bool = True):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._label = provider_label
        self._requires_key = requires_key
        self._client = None

    @property
    def provider_name(self) -> str:
        return self._label

    def has_credentials(self) -> bool:
        return bool(self._api_key) or not self._requires_key

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self._api_key or "none", base_url=self._base_url)
        return self._client

    def invoke(self, request: LLMRequest, model_id: str, model_config: dict) -> LLMResponse:
        if not self.has_credentials():
            raise RuntimeError(f"{self._label} API key not configured")

        logger.debug("Invoking %s (max_tokens=%d)", model_id, request.max_tokens)
        client = self._get_client()
        start = time.time()

        try:
            resp = client.chat.completions.create(
                model=model_id,
                messages=with_system_prompt(request),
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except Exception as exc:
            raise RuntimeError(f"{self._label} invocation failed: {exc}") from exc

        choice = resp.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            model_id=model_id,
            provider=self._label,
            input_tokens=getattr(resp.usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(resp.usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.time() - start) * 1000),
            stop_reason=str(choice.finish_reason or ""),
        )

