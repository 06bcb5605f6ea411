#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Data model for WBS estimates.

Requirements and roles are inputs; WBS elements carry per-role,
per-period labor hours. Wire dictionaries use camelCase keys, the
dataclasses use snake_case attributes.

``WBSElement.total_hours`` is derived from the labor lines on every
access, so it cannot drift from the hours it summarizes.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Contract periods, in order. Not user-extensible.
PERIODS = ("base", "option1", "option2", "option3", "option4")

REQUIREMENT_TYPES = ("shall", "should", "may", "will")
CONFIDENCE_LEVELS = ("high", "medium", "low")
ESTIMATE_METHODS = ("engineering", "analogous", "parametric", "level-of-effort", "expert")
CONTRACT_TYPES = ("tm", "ffp", "hybrid")
DEPENDENCY_TYPE = "finish-to-start"
MAX_OPTION_YEARS = len(PERIODS) - 1

# Larger hour values are treated as unreadable so sums stay finite.
MAX_HOURS = 1e12


@dataclass(frozen=True)
class PeriodConfig:
    id: str
    label: str
    short_label: str
    months_count: int = 12

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "shortLabel": self.short_label,
            "monthsCount": self.months_count,
        }


DEFAULT_PERIODS = [
    PeriodConfig("base", "Base Year", "BY"),
    PeriodConfig("option1", "Option Year 1", "OY1"),
    PeriodConfig("option2", "Option Year 2", "OY2"),
    PeriodConfig("option3", "Option Year 3", "OY3"),
    PeriodConfig("option4", "Option Year 4", "OY4"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def coerce_hours(value: Any):
    """Coerce a raw hour value to a non-negative number.

    Negative values clamp to 0. Booleans, None, NaN, infinities, values
    above MAX_HOURS and anything that is not a number (or numeric string)
    become 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    try:
        number = float(value)
    except OverflowError:
        return 0
    if not math.isfinite(number) or number <= 0 or number > MAX_HOURS:
        return 0
    if isinstance(value, int):
        return value
    return int(number) if number.is_integer() else number


def tidy_number(value):
    """Return integral floats as ints so totals serialize as whole hours."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def empty_hours() -> Dict[str, float]:
    return {p: 0 for p in PERIODS}


def coerce_hours_by_period(raw: Any) -> Dict[str, float]:
    """Build a full Period->hours map from a raw mapping, defaulting to 0."""
    raw = raw if isinstance(raw, dict) else {}
    return {p: coerce_hours(raw.get(p)) for p in PERIODS}


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _choice(value: Any, allowed, default: str) -> str:
    value = _text(value).strip().lower()
    return value if value in allowed else default


def _flag(value: Any, default: bool) -> bool:
    """Read a wire boolean; "false", "no", "0" and "off" are False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "1", "on"):
            return True
        if text in ("false", "no", "0", "off"):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass
class Requirement:
    """An extracted contract requirement. Read-only to the engine."""
    id: str
    reference_number: str = ""
    title: str = ""
    description: str = ""
    type: str = "shall"
    category: str = ""
    source: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Requirement":
        return cls(
            id=_text(data.get("id")),
            reference_number=_text(data.get("referenceNumber")),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            type=_choice(data.get("type"), REQUIREMENT_TYPES, "shall"),
            category=_text(data.get("category")),
            source=_text(data.get("source")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "referenceNumber": self.reference_number,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "source": self.source,
        }


@dataclass
class Role:
    """A labor role from the authoritative roster."""
    id: str
    name: str
    category: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Role":
        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name") or data.get("title")),
            category=_text(data.get("category")),
            description=_text(data.get("description")),
        )

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "category": self.category}
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class ContractContext:
    title: str = ""
    agency: str = ""
    contract_type: str = "tm"
    base_year: bool = True
    option_years: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ContractContext":
        data = data if isinstance(data, dict) else {}
        pop = data.get("periodOfPerformance")
        pop = pop if isinstance(pop, dict) else {}
        try:
            option_years = int(pop.get("optionYears") or 0)
        except (TypeError, ValueError):
            option_years = 0
        return cls(
            title=_text(data.get("title")),
            agency=_text(data.get("agency")),
            contract_type=_choice(data.get("contractType"), CONTRACT_TYPES, "tm"),
            base_year=_flag(pop.get("baseYear"), True),
            option_years=max(0, min(MAX_OPTION_YEARS, option_years)),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "agency": self.agency,
            "contractType": self.contract_type,
            "periodOfPerformance": {
                "baseYear": self.base_year,
                "optionYears": self.option_years,
            },
        }


# ---------------------------------------------------------------------------
# WBS elements
# ---------------------------------------------------------------------------

@dataclass
class LaborEstimate:
    role_id: str
    role_name: str
    hours_by_period: Dict[str, float] = field(default_factory=empty_hours)
    rationale: str = ""
    confidence: str = "medium"

    @property
    def total_hours(self):
        return tidy_number(math.fsum(self.hours_by_period.get(p, 0) for p in PERIODS))

    @classmethod
    def from_dict(cls, data: dict) -> "LaborEstimate":
        return cls(
            role_id=_text(data.get("roleId")),
            role_name=_text(data.get("roleName")),
            hours_by_period=coerce_hours_by_period(data.get("hoursByPeriod")),
            rationale=_text(data.get("rationale")),
            confidence=_choice(data.get("confidence"), CONFIDENCE_LEVELS, "medium"),
        )

    def to_dict(self) -> dict:
        return {
            "roleId": self.role_id,
            "roleName": self.role_name,
            "hoursByPeriod": {p: self.hours_by_period.get(p, 0) for p in PERIODS},
            "rationale": self.rationale,
            "confidence": self.confidence,
        }


@dataclass
class Risk:
    id: str
    description: str = ""
    likelihood: str = "medium"
    impact: str = "medium"
    mitigation: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "likelihood": self.likelihood,
            "impact": self.impact,
            "mitigation": self.mitigation,
        }


@dataclass
class Dependency:
    id: str
    predecessor_id: str
    type: str = DEPENDENCY_TYPE

    def to_dict(self) -> dict:
        return {"id": self.id, "predecessorId": self.predecessor_id, "type": self.type}


@dataclass
class WBSElement:
    id: str
    wbs_number: str
    title: str = ""
    sow_reference: str = ""
    why: str = ""
    what: str = ""
    not_included: str = ""
    assumptions: List[str] = field(default_factory=list)
    estimate_method: str = "engineering"
    labor_estimates: List[LaborEstimate] = field(default_factory=list)
    risks: List[Risk] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    linked_requirement_ids: List[str] = field(default_factory=list)
    confidence: str = "medium"

    @property
    def total_hours(self):
        return tidy_number(math.fsum(le.total_hours for le in self.labor_estimates))

    @classmethod
    def from_dict(cls, data: dict) -> "WBSElement":
        """Load a stored element. Untrusted payloads go through the normalizer."""
        return cls(
            id=_text(data.get("id")),
            wbs_number=_text(data.get("wbsNumber")),
            title=_text(data.get("title")),
            sow_reference=_text(data.get("sowReference")),
            why=_text(data.get("why")),
            what=_text(data.get("what")),
            not_included=_text(data.get("notIncluded")),
            assumptions=[_text(a) for a in data.get("assumptions") or []],
            estimate_method=_choice(data.get("estimateMethod"), ESTIMATE_METHODS, "engineering"),
            labor_estimates=[
                LaborEstimate.from_dict(le) for le in data.get("laborEstimates") or []
                if isinstance(le, dict)
            ],
            risks=[
                Risk(
                    id=_text(r.get("id")),
                    description=_text(r.get("description")),
                    likelihood=_choice(r.get("likelihood"), CONFIDENCE_LEVELS, "medium"),
                    impact=_choice(r.get("impact"), CONFIDENCE_LEVELS, "medium"),
                    mitigation=_text(r.get("mitigation")),
                )
                for r in data.get("risks") or [] if isinstance(r, dict)
            ],
            dependencies=[
                Dependency(id=_text(d.get("id")), predecessor_id=_text(d.get("predecessorId")))
                for d in data.get("dependencies") or [] if isinstance(d, dict)
            ],
            linked_requirement_ids=[_text(r) for r in data.get("linkedRequirementIds") or []],
            confidence=_choice(data.get("confidence"), CONFIDENCE_LEVELS, "medium"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wbsNumber": self.wbs_number,
            "title": self.title,
            "sowReference": self.sow_reference,
            "why": self.why,
            "what": self.what,
            "notIncluded": self.not_included,
            "assumptions": list(self.assumptions),
            "estimateMethod": self.estimate_method,
            "laborEstimates": [le.to_dict() for le in self.labor_estimates],
            "risks": [r.to_dict() for r in self.risks],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "linkedRequirementIds": list(self.linked_requirement_ids),
            "totalHours": self.total_hours,
            "confidence": self.confidence,
        }
