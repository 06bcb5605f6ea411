#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Bedrock LLM Provider for Anthropic models on AWS Bedrock (GovCloud)."""

import json
import logging
import time

import boto3

from wbs_engine.llm.provider import LLMProvider, LLMRequest, LLMResponse

logger = logging.getLogger("wbs_engine.llm.bedrock")


class BedrockLLMProvider(LLMProvider):
    """AWS Bedrock provider speaking the Anthropic message format."""

    def __init__(self, region: str = "us-gov-west-1"):
        self._region = region
        self._client = None

    @property
    def provider_name(self) -> str:
        return "bedrock"

    def has_credentials(self) -> bool:
        return boto3.session.Session().get_credentials() is not None

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("bedrock-runtime", region_name=self._region)
        return self._client

    def invoke(self, request: LLMRequest, model_id: str, model_config: dict) -> LLMResponse:
        logger.debug("Invoking %s (max_tokens=%d)", model_id, request.max_tokens)
        client = self._get_client()
        start = time.time()

        messages = []
        for msg in request.messages:
            role = msg.get("role", "user")
            if role == "system":
                continue
            content = msg.get("content", "")
            if isinstance(content, str):
                content = [{"type": "text", "text": content}]
            messages.append({"role": role, "content": content})

        body = {
            "anthropic_version": model_config.get("anthropic_version", "bedrock-2023-05-31"),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if request.system_prompt:
            body["system"] = request.system_prompt

        response = client.invoke_model(
            modelId=model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )
        result = json.loads(response["body"].read())

        text = "".join(
            block.get("text", "")
            for block in result.get("content", [])
            if block.get("type") == "text"
        )
        usage = result.get("usage", {})

        return LLMResponse(
            content=text,
            model_id=model_id,
            provider="bedrock",
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            duration_ms=int((time.time() - start) * 1000),
            stop_reason=result.get("stop_reason", "") or "",
        )

