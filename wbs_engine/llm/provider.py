#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Vendor-agnostic LLM provider base classes and data types.

Every provider speaks LLMRequest/LLMResponse so the estimate generator
never sees vendor payloads. Stop reasons are normalized here: a
length-limited response is flagged by ``LLMResponse.truncated`` no
matter which vendor produced it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

# Vendor stop reasons that mean the output hit a token limit.
LENGTH_STOP_REASONS = frozenset({"max_tokens", "length", "model_length"})


class LLMUnavailableError(RuntimeError):
    """Raised when all LLM providers fail or none can be built."""


@dataclass
class LLMRequest:
    """Vendor-agnostic LLM invocation request."""
    messages: List[Dict[str, Any]] = field(default_factory=list)
    system_prompt: str = ""
    model: str = ""
    max_tokens: int = 4096
    temperature: float = 0.3
    project_id: str = ""


@dataclass
class LLMResponse:
    """Vendor-agnostic LLM invocation response."""
    content: str = ""
    model_id: str = ""
    provider: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    stop_reason: str = ""

    @property
    def truncated(self) -> bool:
        return (self.stop_reason or "").lower() in LENGTH_STOP_REASONS


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier."""

    @abstractmethod
    def invoke(self, request: LLMRequest, model_id: str, model_config: dict) -> LLMResponse:
        """Invoke the LLM synchronously."""

    def has_credentials(self) -> bool:
        """Whether a credential is configured. Keyless local servers return True."""
        return True


def with_system_prompt(request: LLMRequest) -> List[Dict[str, Any]]:
    """Return request messages with the system prompt prepended as a message."""
    messages = list(request.messages)
    if request.system_prompt and not any(m.get("role") == "system" for m in messages):
        messages = [{"role": "system", "content": request.system_prompt}] + messages
    return messages
