#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Shared test fixtures for the WBS engine test suite."""

import copy
import sys
from pathlib import Path

import pytest

# Add project root to path
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from wbs_engine.estimate.config import DEFAULT_SETTINGS  # noqa: E402
from wbs_engine.estimate.models import ContractContext, Requirement, Role  # noqa: E402
from wbs_engine.llm.provider import LLMResponse, LLMUnavailableError  # noqa: E402


class FakeRouter:
    """Scripted stand-in for LLMRouter; records every request."""

    def __init__(self, response=None, configured=True, error=None):
        self.response = response
        self.configured = configured
        self.error = error
        self.requests = []

    def is_configured(self, function):
        return self.configured

    def invoke(self, function, request):
        self.requests.append((function, request))
        if self.error is not None:
            raise LLMUnavailableError(self.error)
        return self.response


def make_response(content, stop_reason="end_turn", input_tokens=1200, output_tokens=800):
    return LLMResponse(
        content=content,
        model_id="claude-sonnet-4-20250514",
        provider="anthropic",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        stop_reason=stop_reason,
    )


@pytest.fixture
def settings():
    """Built-in estimator settings, independent of args/estimate_config.yaml."""
    return copy.deepcopy(DEFAULT_SETTINGS)


@pytest.fixture
def roster():
    return [
        Role(id="role-pm", name="Delivery Manager", category="Management"),
        Role(id="role-be", name="Backend Developer", category="Engineering"),
        Role(id="role-qa", name="QA Engineer", category="Engineering"),
        Role(id="role-ux", name="Product Designer", category="Design"),
    ]


@pytest.fixture
def requirements():
    return [
        Requirement(
            id="REQ-001", reference_number="SOO 3.1", title="Case Management Portal",
            description="The contractor shall deliver a web portal for case intake "
                        "and tracking accessible to agency staff.",
            type="shall", category="functional", source="SOO Section 3.1",
        ),
        Requirement(
            id="REQ-002", reference_number="SOO 3.2", title="Monthly Status Reporting",
            description="The contractor should provide monthly status reports.",
            type="should", category="reporting", source="SOO Section 3.2",
        ),
    ]


@pytest.fixture
def contract_context():
    return ContractContext(
        title="Benefits Modernization", agency="Department of Veterans Affairs",
        contract_type="tm", base_year=True, option_years=2,
    )


@pytest.fixture
def fake_router():
    return FakeRouter


@pytest.fixture
def llm_response():
    return make_response
