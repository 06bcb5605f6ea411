#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Normalize untrusted WBS candidates into valid WBSElements.

Every default lives in the table below. A candidate that is missing
fields, has the wrong types, or is not a mapping at all still yields a
minimally valid element; one bad candidate never fails its batch.

    field                 default
    --------------------  -----------------------------------------
    wbsNumber             fallback number (when missing or malformed)
    title / sowReference  ""
    why / what            ""
    notIncluded           ""
    assumptions           []
    estimateMethod        "engineering"
    confidence            "medium"
    laborEstimates        []   (lines with unresolved roles dropped)
    hoursByPeriod.<p>     0    (negative / non-numeric -> 0)
    risks[].likelihood    "medium"
    risks[].impact        "medium"
    risks[].id            synthesized, unique within the element
    dependencies[].id     synthesized, unique within the element
    linkedRequirementIds  []

Synthesized ids are derived from content plus a per-call counter, so
the same candidate always normalizes to the same ids.
"""

import hashlib
import itertools
import logging
from typing import Iterable, List, Optional

from wbs_engine.estimate.models import (
    CONFIDENCE_LEVELS,
    DEPENDENCY_TYPE,
    ESTIMATE_METHODS,
    Dependency,
    LaborEstimate,
    Risk,
    Role,
    WBSElement,
    coerce_hours_by_period,
)
from wbs_engine.estimate.numbering import is_valid_wbs_number
from wbs_engine.estimate.roles import resolve_role

logger = logging.getLogger("wbs_engine.estimate.normalizer")

# Estimate-method spellings seen from generators, mapped onto ESTIMATE_METHODS.
_METHOD_ALIASES = {
    "level of effort": "level-of-effort",
    "loe": "level-of-effort",
    "expert judgment": "expert",
    "expert-judgment": "expert",
    "analogy": "analogous",
}


def content_id(prefix: str, *parts) -> str:
    """Stable id from a prefix and the content it identifies."""
    digest = hashlib.sha256("\x1f".join(str(p) for p in parts).encode("utf-8"))
    return f"{prefix}-{digest.hexdigest()[:12]}"


def _text(value, default: str = "") -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _level(value, default: str = "medium") -> str:
    value = _text(value).lower()
    return value if value in CONFIDENCE_LEVELS else default


def _method(value) -> str:
    value = _text(value).lower()
    value = _METHOD_ALIASES.get(value, value)
    return value if value in ESTIMATE_METHODS else "engineering"


def _list(value) -> list:
    return value if isinstance(value, list) else []


def _labor(raw_lines, roster: List[Role]) -> List[LaborEstimate]:
    labor = []
    for line in _list(raw_lines):
        role = resolve_role(line, roster)
        if role is None:
            logger.debug(
                "Dropping labor line for unknown role id=%r name=%r",
                line.get("roleId") if isinstance(line, dict) else None,
                line.get("roleName") if isinstance(line, dict) else None,
            )
            continue
        labor.append(LaborEstimate(
            role_id=role.id,
            role_name=role.name,
            hours_by_period=coerce_hours_by_period(line.get("hoursByPeriod")),
            rationale=_text(line.get("rationale")),
            confidence=_level(line.get("confidence")),
        ))
    return labor


def _unique_id(candidate, used: set, mint) -> str:
    candidate = _text(candidate)
    if not candidate or candidate in used:
        candidate = mint()
        while candidate in used:
            candidate = mint()
    used.add(candidate)
    return candidate


def _risks(raw_risks, element_id: str) -> List[Risk]:
    counter = itertools.count(1)
    used = set()
    risks = []
    for raw in _list(raw_risks):
        if isinstance(raw, str):
            raw = {"description": raw}
        if not isinstance(raw, dict):
            continue
        risks.append(Risk(
            id=_unique_id(raw.get("id"), used, lambda: f"{element_id}-risk-{next(counter)}"),
            description=_text(raw.get("description")),
            likelihood=_level(raw.get("likelihood", raw.get("probability"))),
            impact=_level(raw.get("impact")),
            mitigation=_text(raw.get("mitigation")),
        ))
    return risks


def _dependencies(raw: dict, element_id: str, wbs_number: str) -> List[Dependency]:
    entries = raw.get("dependencies")
    if not isinstance(entries, list) or not entries:
        entries = _list(raw.get("suggestedDependencies"))

    counter = itertools.count(1)
    used = set()
    seen_predecessors = set()
    deps = []
    for entry in entries:
        dep_id = None
        if isinstance(entry, dict):
            dep_id = entry.get("id")
            predecessor = _text(entry.get("predecessorId"))
        else:
            predecessor = _text(entry)
        if not predecessor or predecessor == wbs_number or predecessor in seen_predecessors:
            continue
        seen_predecessors.add(predecessor)
        deps.append(Dependency(
            id=_unique_id(dep_id, used, lambda: f"{element_id}-dep-{next(counter)}"),
            predecessor_id=predecessor,
            type=DEPENDENCY_TYPE,
        ))
    return deps


def _linked_requirements(raw: dict, known: Optional[set]) -> List[str]:
    ids = raw.get("linkedRequirementIds")
    if not isinstance(ids, list):
        single = raw.get("linkedRequirementId")
        ids = [single] if single else []
    linked = []
    for rid in ids:
        rid = _text(rid)
        if rid and rid not in linked and (known is None or rid in known):
            linked.append(rid)
    return linked


def normalize_element(raw, roster: Iterable[Role], fallback_wbs_number: str,
                      known_requirement_ids: Optional[Iterable[str]] = None) -> WBSElement:
    """Coerce one raw candidate into a schema-valid WBSElement.

    Args:
        raw: Parsed JSON for one candidate element (any type).
        roster: Authoritative roles; labor lines must resolve against it.
        fallback_wbs_number: Used when the candidate's number is missing
            or not "<major>.<minor>".
        known_requirement_ids: When given, linked requirement ids outside
            this set are discarded.

    Never raises for malformed candidates.
    """
    raw = raw if isinstance(raw, dict) else {}
    roster = list(roster)
    known = set(known_requirement_ids) if known_requirement_ids is not None else None

    wbs_number = _text(raw.get("wbsNumber"))
    if not is_valid_wbs_number(wbs_number):
        wbs_number = fallback_wbs_number
    title = _text(raw.get("title"))
    element_id = content_id("wbs", fallback_wbs_number, wbs_number, title)

    labor = _labor(raw.get("laborEstimates"), roster)
    dropped = len(_list(raw.get("laborEstimates"))) - len(labor)
    if dropped:
        logger.info("WBS %s: dropped %d labor line(s) with unresolved roles", wbs_number, dropped)

    return WBSElement(
        id=element_id,
        wbs_number=wbs_number,
        title=title,
        sow_reference=_text(raw.get("sowReference")),
        why=_text(raw.get("why")),
        what=_text(raw.get("what")),
        not_included=_text(raw.get("notIncluded")),
        assumptions=[a for a in (_text(x) for x in _list(raw.get("assumptions"))) if a],
        estimate_method=_method(raw.get("estimateMethod")),
        labor_estimates=labor,
        risks=_risks(raw.get("risks"), element_id),
        dependencies=_dependencies(raw, element_id, wbs_number),
        linked_requirement_ids=_linked_requirements(raw, known),
        confidence=_level(raw.get("confidence")),
    )
