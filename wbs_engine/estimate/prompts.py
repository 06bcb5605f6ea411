#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Instruction payload for batch WBS generation.

One prompt covers the whole requirement batch so the model can
sequence elements and reference earlier WBS numbers as dependencies.
The roster is embedded as ids and names only.
"""

import json
from typing import List

from wbs_engine.estimate.models import ContractContext, Requirement, Role
from wbs_engine.estimate.numbering import next_wbs_number

RESPONSE_SHAPE = {
    "wbsElements": [
        {
            "linkedRequirementId": "the requirement ID from input",
            "wbsNumber": "sequential number like 1.4, 1.5",
            "title": "Action-oriented title",
            "sowReference": "from the requirement source",
            "why": "2-3 sentences explaining business purpose",
            "what": "2-3 sentences describing specific deliverables",
            "notIncluded": "What is explicitly NOT part of this work",
            "assumptions": ["assumption 1", "assumption 2"],
            "estimateMethod": "engineering",
            "laborEstimates": [
                {
                    "roleId": "exact role ID from available roles",
                    "roleName": "exact role name from available roles",
                    "hoursByPeriod": {
                        "base": 120, "option1": 40, "option2": 20,
                        "option3": 0, "option4": 0,
                    },
                    "rationale": "Why this role needs these hours",
                    "confidence": "high",
                }
            ],
            "risks": [
                {
                    "description": "What could go wrong",
                    "likelihood": "medium",
                    "impact": "medium",
                    "mitigation": "How to prevent or reduce this risk",
                }
            ],
            "suggestedDependencies": ["1.1", "1.2"],
        }
    ]
}


def _period_label(context: ContractContext) -> str:
    label = "Base Year" if context.base_year else "No Base Year"
    if context.option_years:
        label += f" + {context.option_years} Option Years"
    return label


def build_system_prompt(roster: List[Role], context: ContractContext) -> str:
    roles_text = "\n".join(f'- ID: "{r.id}", Name: "{r.name}"' for r in roster)

    return f"""You are an expert government contracting estimator creating Work Breakdown
Structure (WBS) elements for a federal proposal.

Each WBS element must:
1. Be action-oriented and specific
2. State clear deliverables (the "what")
3. Explain the business purpose (the "why")
4. List explicit exclusions to prevent scope creep
5. Include reasonable assumptions
6. Estimate labor hours by role and contract period

LABOR GUIDELINES:
- Government contracts typically run 40-400 hours per role per WBS element
- "shall" requirements are mandatory: base year typically 100-300 hours per major role
- "should" requirements: base year typically 40-150 hours per major role
- "may" requirements: base year typically 20-60 hours per major role
- Base year carries 60-80% of total effort
- Option year 1: 15-25% of base year hours; option year 2: 10-15%;
  option years 3-4: 5-10%
- Give 0 hours for option years the contract does not include
- Only include roles that genuinely contribute, and explain every estimate

RISKS AND DEPENDENCIES:
- Include 1-2 realistic risks per element (requirement ambiguity, resource
  availability, integration complexity, government feedback delays)
- Dependencies reference WBS numbers that must finish before this work starts
- Design follows requirements, development follows design, testing follows
  development; never create circular dependencies

CONTRACT CONTEXT:
- Title: {context.title}
- Agency: {context.agency}
- Contract Type: {context.contract_type.upper()}
- Period: {_period_label(context)}

AVAILABLE ROLES (use ONLY these; never invent roles):
{roles_text}

Use only roleIds and roleNames from the list above. If no listed role fits
some work, omit that labor estimate.

Respond with ONLY valid JSON matching this structure, no markdown and no
explanation:
{json.dumps(RESPONSE_SHAPE, indent=2)}"""


def build_user_prompt(requirements: List[Requirement], existing_wbs_numbers: List[str]) -> str:
    blocks = []
    for idx, req in enumerate(requirements, start=1):
        blocks.append(
            f"Requirement {idx}:\n"
            f'- ID: "{req.id}"\n'
            f"- Reference: {req.reference_number}\n"
            f"- Type: {req.type.upper()}\n"
            f"- Title: {req.title}\n"
            f"- Description: {req.description}\n"
            f"- Source: {req.source}\n"
            f"- Category: {req.category}"
        )
    listing = "\n---\n".join(blocks)
    count = len(requirements)

    return f"""Generate WBS elements for the following {count} requirements. Start WBS numbering from {next_wbs_number(existing_wbs_numbers)}.

REQUIREMENTS TO PROCESS:
{listing}

Generate exactly {count} WBS elements, one for each requirement. Respond with only the JSON object."""
