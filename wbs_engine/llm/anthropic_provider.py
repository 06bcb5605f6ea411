#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Anthropic Messages API provider.

Default provider for WBS generation. The API key comes from the
environment variable named in llm_config.yaml (ANTHROPIC_API_KEY).
"""

import logging
import time

from wbs_engine.llm.provider import LLMProvider, LLMRequest, LLMResponse

logger = logging.getLogger("wbs_engine.llm.anthropic")


class AnthropicLLMProvider(LLMProvider):
    """Provider for the Anthropic Messages API."""

    def __init__(self, api_key: str = ""):
        self._api_key = api_key
        self._client = None

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def has_credentials(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def invoke(self, request: LLMRequest, model_id: str, model_config: dict) -> LLMResponse:
        if not self._api_key:
            raise RuntimeError("Anthropic API key not configured")

        logger.debug("Invoking %s (max_tokens=%d)", model_id, request.max_tokens)
        client = self._get_client()
        start = time.time()

        messages = [m for m in request.messages if m.get("role") != "system"]
        kwargs = {
            "model": model_id,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        try:
            message = client.messages.create(**kwargs)
        except Exception as exc:
            raise RuntimeError(f"anthropic invocation failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "")
            for block in message.content
            if getattr(block, "type", "") == "text"
        )
        usage = getattr(message, "usage", None)

        return LLMResponse(
            content=text,
            model_id=model_id,
            provider="anthropic",
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.time() - start) * 1000),
            stop_reason=message.stop_reason or "",
        )

