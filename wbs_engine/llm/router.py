#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Config-driven LLM router for the WBS engine.

Reads args/llm_config.yaml and resolves each function (e.g.
``wbs_generation``) to a provider + model via a fallback chain.
Providers are created lazily and cached per router instance.
"""

import hashlib
import logging
import os
import re
import time
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from wbs_engine.llm.provider import LLMProvider, LLMRequest, LLMResponse, LLMUnavailableError

logger = logging.getLogger("wbs_engine.llm.router")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = Path(os.environ.get(
    "WBS_ENGINE_LLM_CONFIG", str(BASE_DIR / "args" / "llm_config.yaml")
))


def _expand_env(value):
    """Expand ${VAR:-default} patterns in string values."""
    if not isinstance(value, str):
        return value
    pattern = r'\$\{([^}]+)\}'

    def replacer(match):
        expr = match.group(1)
        if ":-" in expr:
            var, default = expr.split(":-", 1)
            return os.environ.get(var, default)
        return os.environ.get(expr, match.group(0))
    return re.sub(pattern, replacer, value)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class LLMRouter:
    """Config-driven router mapping engine functions to LLM providers.

    A model whose provider fails is skipped for
    ``settings.failure_backoff_seconds``; when every model in a
    chain is backed off, the whole chain is tried again.
    """

    def __init__(self, config_path=None, config: Optional[dict] = None):
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config: Dict = {}
        self._providers: Dict[str, LLMProvider] = {}
        self._unavailable_until: Dict[str, float] = {}
        if config is not None:
            self._config = config if isinstance(config, dict) else {}
        else:
            self._load_config()
        try:
            self._backoff_seconds = float(
                self._section("settings").get("failure_backoff_seconds", 1800)
            )
        except (TypeError, ValueError):
            logger.warning("Invalid failure_backoff_seconds; using 1800")
            self._backoff_seconds = 1800.0

    def _load_config(self):
        """Load and parse llm_config.yaml."""
        if not self._config_path.exists():
            logger.warning("LLM config not found at %s; using empty config", self._config_path)
            self._config = {}
            return
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load LLM config: %s", exc)
            data = {}
        if not isinstance(data, dict):
            logger.error("LLM config %s is not a mapping; using empty config", self._config_path)
            data = {}
        self._config = data

    def _section(self, name: str) -> dict:
        value = self._config.get(name)
        return value if isinstance(value, dict) else {}

    def _build_provider(self, provider_name: str, provider_cfg: dict) -> Optional[LLMProvider]:
        ptype = provider_cfg.get("type", "")
        api_key = provider_cfg.get("api_key", "")
        if not api_key and provider_cfg.get("api_key_env"):
            api_key = os.environ.get(provider_cfg["api_key_env"], "")

        if ptype == "anthropic":
            from wbs_engine.llm.anthropic_provider import AnthropicLLMProvider
            return AnthropicLLMProvider(api_key=api_key)

        if ptype in ("openai", "openai_compatible"):
            from wbs_engine.llm.openai_provider import OpenAICompatibleProvider
            return OpenAICompatibleProvider(
                api_key=api_key,
                base_url=_expand_env(provider_cfg.get("base_url", "https://api.openai.com/v1")),
                provider_label=provider_name,
                requires_key=ptype == "openai",
            )

        if ptype == "ollama":
            from wbs_engine.llm.openai_provider import OpenAICompatibleProvider
            return OpenAICompatibleProvider(
                api_key="ollama",
                base_url=_expand_env(provider_cfg.get("base_url", "http://localhost:11434/v1")),
                provider_label=provider_name,
                requires_key=False,
            )

        if ptype == "bedrock":
            from wbs_engine.llm.bedrock_provider import BedrockLLMProvider
            return BedrockLLMProvider(region=_expand_env(provider_cfg.get("region", "us-gov-west-1")))

        logger.warning("Unknown provider type '%s' for provider '%s'", ptype, provider_name)
        return None

    def _get_provider(self, provider_name: str) -> Optional[LLMProvider]:
        """Get or create a provider instance by name."""
        if provider_name in self._providers:
            return self._providers[provider_name]

        provider_cfg = self._section("providers").get(provider_name)
        if not isinstance(provider_cfg, dict) or not provider_cfg:
            return None

        try:
            instance = self._build_provider(provider_name, provider_cfg)
        except ImportError as exc:
            logger.warning("Could not import provider '%s': %s", provider_name, exc)
            return None

        if instance:
            self._providers[provider_name] = instance
        return instance

    def _get_model_config(self, model_name: str) -> dict:
        model_cfg = self._section("models").get(model_name)
        return model_cfg if isinstance(model_cfg, dict) else {}

    def chain_for(self, function: str) -> List[str]:
        """Model names tried, in order, for a function."""
        routing = self._section("routing")
        route = routing.get(function) or routing.get("default") or {}
        chain = route.get("chain") if isinstance(route, dict) else None
        return [str(m) for m in chain] if isinstance(chain, list) else []

    def is_configured(self, function: str) -> bool:
        """True when some model in the function's chain has a credentialed provider."""
        for model_name in self.chain_for(function):
            model_cfg = self._get_model_config(model_name)
            provider = self._get_provider(model_cfg.get("provider", ""))
            if provider is not None and provider.has_credentials():
                return True
        return False

    def mark_unavailable(self, model_name: str) -> None:
        self._unavailable_until[model_name] = time.time() + self._backoff_seconds

    def is_backed_off(self, model_name: str) -> bool:
        """True while a recently failed model is inside its back-off window."""
        until = self._unavailable_until.get(model_name)
        if until is None:
            return False
        if time.time() >= until:
            del self._unavailable_until[model_name]
            return False
        return True

    def invoke(self, function: str, request: LLMRequest) -> LLMResponse:
        """Resolve provider for function and invoke with fallback."""
        chain = self.chain_for(function)
        candidates = [m for m in chain if not self.is_backed_off(m)]
        if chain and not candidates:
            logger.warning("Every model for %s is backed off; retrying full chain", function)
            candidates = chain
        last_error = None

        for model_name in candidates:
            model_cfg = self._get_model_config(model_name)
            if not model_cfg:
                continue
            provider_name = model_cfg.get("provider", "")
            provider = self._get_provider(provider_name)
            if provider is None or not provider.has_credentials():
                continue
            model_id = request.model or model_cfg.get("model_id", "")
            try:
                response = provider.invoke(request, model_id, model_cfg)
            except Exception as exc:
                logger.warning(
                    "Provider %s failed for %s: %s; trying next",
                    provider_name, function, exc,
                )
                last_error = exc
                self.mark_unavailable(model_name)
                continue

            self._unavailable_until.pop(model_name, None)
            prompt_text = request.system_prompt + "".join(
                str(m.get("content", "")) for m in request.messages
            )
            logger.info(
                "llm call function=%s provider=%s model=%s in=%d out=%d ms=%d stop=%s "
                "prompt_sha256=%s response_sha256=%s",
                function, response.provider, response.model_id,
                response.input_tokens, response.output_tokens, response.duration_ms,
                response.stop_reason, _sha256(prompt_text)[:16],
                _sha256(response.content)[:16],
            )
            return response

        raise LLMUnavailableError(
            f"All providers in chain {chain} failed for function '{function}'. "
            f"Last error: {last_error}"
        )
