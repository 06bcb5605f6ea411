#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""WBS estimate generator: requirements + roster -> WBS elements.

Flow for one batch:
  1. No requirements            -> GenerationFailure(empty_input)
  2. No credentialed provider   -> mock generator, mock=True
  3. One LLM call for the whole batch via the router
  4. Classify the raw response before touching any field:
       empty text       -> empty_response
       length-limited   -> truncated (never parsed, even if it looks valid)
       unparsable JSON  -> malformed_json (bounded excerpt in details)
       zero elements    -> empty_element_set
  5. Normalize each candidate with an allocator-drawn fallback number,
     then reassign any number that collides with existing ones.

Batch failures come back as GenerationFailure values; nothing here
retries. Retrying with a smaller batch is the caller's decision.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from wbs_engine.estimate.config import load_settings
from wbs_engine.estimate.editing import renumber_collisions
from wbs_engine.estimate.mock_generator import generate_mock
from wbs_engine.estimate.models import ContractContext, Requirement, Role, WBSElement
from wbs_engine.estimate.normalizer import normalize_element
from wbs_engine.estimate.numbering import next_wbs_numbers
from wbs_engine.estimate.prompts import build_system_prompt, build_user_prompt
from wbs_engine.llm.provider import LLMRequest, LLMResponse, LLMUnavailableError

logger = logging.getLogger("wbs_engine.estimate.generator")

# Failure kinds
EMPTY_INPUT = "empty_input"
UPSTREAM_ERROR = "upstream_error"
EMPTY_RESPONSE = "empty_response"
TRUNCATED = "truncated"
MALFORMED_JSON = "malformed_json"
EMPTY_ELEMENT_SET = "empty_element_set"

# Failure kind -> caller-facing status classification.
STATUS_BY_KIND = {
    EMPTY_INPUT: "bad_input",
    UPSTREAM_ERROR: "upstream_service_error",
    EMPTY_RESPONSE: "upstream_service_error",
    TRUNCATED: "truncated",
    MALFORMED_JSON: "parse_error",
    EMPTY_ELEMENT_SET: "parse_error",
}

ERROR_MESSAGES = {
    EMPTY_INPUT: "No requirements provided",
    UPSTREAM_ERROR: "Generation service error",
    EMPTY_RESPONSE: "No response from generation service",
    TRUNCATED: "Generation response was truncated. Try generating fewer requirements at once.",
    MALFORMED_JSON: "Failed to parse generation response. The service may have returned invalid JSON.",
    EMPTY_ELEMENT_SET: "Generation service returned no WBS elements",
}

_OPEN_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?```\s*$")

_router = None


def _get_router():
    global _router
    if _router is None:
        from wbs_engine.llm.router import LLMRouter
        _router = LLMRouter()
    return _router


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class GenerationSuccess:
    elements: List[WBSElement]
    mock: bool = False
    usage: Optional[dict] = None
    ok = True

    def to_dict(self) -> dict:
        data = {
            "success": True,
            "wbsElements": [e.to_dict() for e in self.elements],
            "mock": self.mock,
        }
        if self.usage:
            data["usage"] = dict(self.usage)
        return data


@dataclass
class GenerationFailure:
    kind: str
    error: str = ""
    details: Optional[str] = None
    ok = False

    def __post_init__(self):
        if not self.error:
            self.error = ERROR_MESSAGES.get(self.kind, "WBS generation failed")

    @property
    def status(self) -> str:
        return STATUS_BY_KIND.get(self.kind, "upstream_service_error")

    def to_dict(self) -> dict:
        data = {"error": self.error, "status": self.status, "kind": self.kind}
        if self.details:
            data["details"] = self.details
        return data


GenerationResult = Union[GenerationSuccess, GenerationFailure]


@dataclass
class ClassifiedResponse:
    """Tagged view of a raw service response.

    ``kind`` is "success" or one of the failure kinds; ``candidates``
    is only populated for "success".
    """
    kind: str
    candidates: List[Any] = field(default_factory=list)
    excerpt: str = ""


# ---------------------------------------------------------------------------
# Response classification
# ---------------------------------------------------------------------------

def strip_code_fence(text: str) -> str:
    """Remove one optional markdown code fence around a payload."""
    text = text.strip()
    if text.startswith("```"):
        text = _OPEN_FENCE.sub("", text, count=1)
    if text.endswith("```"):
        text = _CLOSE_FENCE.sub("", text, count=1)
    return text.strip()


def classify_response(response: LLMResponse, excerpt_chars: int = 500) -> ClassifiedResponse:
    text = response.content or ""
    if not text.strip():
        return ClassifiedResponse(EMPTY_RESPONSE)
    if response.truncated:
        return ClassifiedResponse(TRUNCATED, excerpt=text[:excerpt_chars])

    body = strip_code_fence(text)
    try:
        parsed = json.loads(body)
    except ValueError:
        return ClassifiedResponse(MALFORMED_JSON, excerpt=body[:excerpt_chars])

    if isinstance(parsed, list):
        candidates = parsed
    elif isinstance(parsed, dict):
        candidates = parsed.get("wbsElements")
        if candidates is None:
            candidates = []
    else:
        return ClassifiedResponse(MALFORMED_JSON, excerpt=body[:excerpt_chars])

    if not isinstance(candidates, list):
        return ClassifiedResponse(MALFORMED_JSON, excerpt=body[:excerpt_chars])
    if not candidates:
        return ClassifiedResponse(EMPTY_ELEMENT_SET)
    return ClassifiedResponse("success", candidates=candidates)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def normalize_candidates(candidates: List[Any], requirements: List[Requirement],
                         roster: List[Role], existing_wbs_numbers: List[str]) -> List[WBSElement]:
    """Normalize a parsed batch; numbers are unique against existing ones."""
    fallbacks = next_wbs_numbers(existing_wbs_numbers, len(candidates))
    known = {r.id for r in requirements if r.id}
    elements = [
        normalize_element(raw, roster, fallback, known_requirement_ids=known)
        for raw, fallback in zip(candidates, fallbacks)
    ]
    return renumber_collisions(elements, existing_wbs_numbers)


def _mock(requirements, roster, existing, context, settings) -> GenerationSuccess:
    elements = generate_mock(requirements, roster, existing, context, settings=settings)
    return GenerationSuccess(elements=elements, mock=True)


def generate_wbs(requirements: List[Requirement], roster: List[Role],
                 existing_wbs_numbers: List[str], contract_context: ContractContext,
                 router=None, settings: Optional[dict] = None,
                 force_mock: bool = False) -> GenerationResult:
    """Generate WBS elements for a batch of requirements.

    Args:
        requirements: Requirements to estimate; must be non-empty.
        roster: Authoritative roles; generated labor must resolve here.
        existing_wbs_numbers: Numbers already minted for the proposal.
        contract_context: Title, agency, contract type, option years.
        router: LLM router; defaults to the shared config-driven router.
        settings: Estimator settings; defaults to estimate_config.yaml.
        force_mock: Skip the service and use the offline generator.

    Returns:
        GenerationSuccess or GenerationFailure.
    """
    if not requirements:
        return GenerationFailure(EMPTY_INPUT)

    settings = settings or load_settings()
    gen = settings.get("generation") or {}
    function = gen.get("function", "wbs_generation")
    excerpt_chars = int(gen.get("excerpt_chars", 500))
    existing = list(existing_wbs_numbers or [])
    roster = list(roster)

    if force_mock:
        return _mock(requirements, roster, existing, contract_context, settings)

    if router is None:
        try:
            router = _get_router()
        except Exception as exc:
            logger.warning("LLM router unavailable (%s); using mock generator", exc)
            return _mock(requirements, roster, existing, contract_context, settings)
    if not router.is_configured(function):
        logger.info("No credential configured for %s; using mock generator", function)
        return _mock(requirements, roster, existing, contract_context, settings)

    request = LLMRequest(
        messages=[{"role": "user", "content": build_user_prompt(requirements, existing)}],
        system_prompt=build_system_prompt(roster, contract_context),
        max_tokens=int(gen.get("max_tokens", 16384)),
        temperature=float(gen.get("temperature", 0.3)),
    )
    logger.info("Generating WBS for %d requirement(s) with %d role(s)",
                len(requirements), len(roster))

    try:
        response = router.invoke(function, request)
    except LLMUnavailableError as exc:
        if gen.get("mock_on_upstream_error"):
            logger.warning("Generation service failed (%s); falling back to mock", exc)
            return _mock(requirements, roster, existing, contract_context, settings)
        logger.error("Generation service failed: %s", exc)
        return GenerationFailure(UPSTREAM_ERROR, details=str(exc)[:excerpt_chars])

    classified = classify_response(response, excerpt_chars=excerpt_chars)
    if classified.kind != "success":
        logger.error("Generation response rejected: %s (stop_reason=%s, %d chars)",
                     classified.kind, response.stop_reason, len(response.content or ""))
        return GenerationFailure(classified.kind, details=classified.excerpt or None)

    elements = normalize_candidates(classified.candidates, requirements, roster, existing)
    if len(elements) != len(requirements):
        logger.warning("Requested %d element(s), service returned %d",
                       len(requirements), len(elements))

    return GenerationSuccess(
        elements=elements,
        mock=False,
        usage={"inputTokens": response.input_tokens, "outputTokens": response.output_tokens},
    )


def generate_from_request(payload: dict, router=None, settings: Optional[dict] = None,
                          force_mock: bool = False) -> GenerationResult:
    """Run generate_wbs on a wire-format request document."""
    payload = payload if isinstance(payload, dict) else {}
    requirements = [Requirement.from_dict(r) for r in payload.get("requirements") or []
                    if isinstance(r, dict)]
    roster = [Role.from_dict(r) for r in payload.get("availableRoles") or []
              if isinstance(r, dict)]
    existing = [str(n) for n in payload.get("existingWbsNumbers") or []]
    context = ContractContext.from_dict(payload.get("contractContext"))
    return generate_wbs(requirements, roster, existing, context,
                        router=router, settings=settings, force_mock=force_mock)
