#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Deterministic offline WBS generator.

Stands in for the generation service when no credential is configured:
one element per requirement, templated text, fixed hour sizing. Same
inputs always produce the same elements, so tests can assert exact
output without network mocks.

Hour sizing (estimate_config.yaml ``mock``):
  base      = base_hours[requirement type]  (shall > should/may/will)
  option N  = round(base * option_year_ratios[N-1]) while N <= declared
              option years, else 0
  roles     = the first ``max_roles`` roster roles
"""

import logging
from typing import List, Optional

from wbs_engine.estimate.config import load_settings
from wbs_engine.estimate.models import (
    PERIODS,
    ContractContext,
    LaborEstimate,
    Requirement,
    Role,
    WBSElement,
)
from wbs_engine.estimate.normalizer import content_id
from wbs_engine.estimate.numbering import next_wbs_numbers

logger = logging.getLogger("wbs_engine.estimate.mock_generator")

MOCK_ASSUMPTIONS = (
    "Requirements are stable and approved",
    "Resources will be available as planned",
    "Government will provide timely feedback",
)
MOCK_NOT_INCLUDED = (
    "Items not explicitly stated in the requirement. "
    "Third-party integrations unless specified."
)


def mock_hours(req_type: str, option_years: int, mock_settings: dict) -> dict:
    """Period->hours for one role on one requirement."""
    base_table = mock_settings.get("base_hours", {})
    base = int(base_table.get(req_type, base_table.get("should", 60)))
    ratios = list(mock_settings.get("option_year_ratios") or [])

    hours = {"base": base}
    for year, period in enumerate(PERIODS[1:], start=1):
        ratio = ratios[year - 1] if year - 1 < len(ratios) else 0
        hours[period] = int(round(base * ratio)) if year <= option_years else 0
    return hours


def _why(req: Requirement) -> str:
    ref = req.reference_number or req.id
    text = f"This work addresses the {req.type} requirement in {ref}."
    if req.description:
        text = f"{text} {req.description[:100]}"
    return text


def generate_mock(requirements: List[Requirement], roster: List[Role],
                  existing_wbs_numbers: List[str], contract_context: ContractContext,
                  settings: Optional[dict] = None) -> List[WBSElement]:
    """Build one WBS element per requirement without calling any service."""
    settings = settings or load_settings()
    mock_settings = settings.get("mock") or {}
    max_roles = int(mock_settings.get("max_roles", 3))
    roles = list(roster)[:max(0, max_roles)]
    numbers = next_wbs_numbers(existing_wbs_numbers, len(requirements))

    elements = []
    for req, wbs_number in zip(requirements, numbers):
        title = f"Implement: {req.title}"
        labor = [
            LaborEstimate(
                role_id=role.id,
                role_name=role.name,
                hours_by_period=mock_hours(req.type, contract_context.option_years, mock_settings),
                rationale=f"Standard estimate for {role.name} based on {req.type} requirement complexity",
                confidence="medium",
            )
            for role in roles
        ]
        elements.append(WBSElement(
            id=content_id("wbs", wbs_number, wbs_number, title),
            wbs_number=wbs_number,
            title=title,
            sow_reference=req.source or req.reference_number,
            why=_why(req),
            what=(
                f"Deliver solution components for: {req.title}. This includes analysis, "
                "design, development, testing, and documentation."
            ),
            not_included=MOCK_NOT_INCLUDED,
            assumptions=list(MOCK_ASSUMPTIONS),
            estimate_method="engineering",
            labor_estimates=labor,
            linked_requirement_ids=[req.id] if req.id else [],
            confidence="medium",
        ))

    logger.info("Mock generator produced %d element(s) across %d role(s)",
                len(elements), len(roles))
    return elements
