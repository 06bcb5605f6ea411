#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Edits to WBS elements after generation.

Labor-hour edits go through the same clamping as normalization, and
total hours stay derived from the labor lines. Deleting an element
retires its number; pass retired numbers to the allocator alongside
the live ones so numbers are never reissued.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from wbs_engine.estimate.models import (
    PERIODS,
    LaborEstimate,
    Role,
    WBSElement,
    coerce_hours,
    empty_hours,
)
from wbs_engine.estimate.normalizer import content_id
from wbs_engine.estimate.numbering import next_wbs_number, parse_wbs_number
from wbs_engine.estimate.roles import resolve_role

logger = logging.getLogger("wbs_engine.estimate.editing")


def set_labor_hours(element: WBSElement, role_id: str, period: str, hours,
                    roster: Optional[Iterable[Role]] = None) -> WBSElement:
    """Set one role's hours for one period, adding the labor line if needed.

    Raises:
        ValueError: unknown period, or a new line for a role not in the roster.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}'. Choose from: {', '.join(PERIODS)}")

    value = coerce_hours(hours)
    for labor in element.labor_estimates:
        if labor.role_id == role_id:
            labor.hours_by_period[period] = value
            return element

    role = resolve_role({"roleId": role_id}, roster or [])
    if role is None:
        raise ValueError(f"Role '{role_id}' is not in the roster")
    line = LaborEstimate(role_id=role.id, role_name=role.name, hours_by_period=empty_hours())
    line.hours_by_period[period] = value
    element.labor_estimates.append(line)
    return element


def link_requirement(element: WBSElement, requirement_id: str) -> WBSElement:
    if requirement_id and requirement_id not in element.linked_requirement_ids:
        element.linked_requirement_ids.append(requirement_id)
    return element


def create_manual_element(title: str, existing_wbs_numbers: Iterable[str],
                          linked_requirement_ids: Iterable[str] = ()) -> WBSElement:
    """Blank user-created element with the next WBS number."""
    wbs_number = next_wbs_number(existing_wbs_numbers)
    return WBSElement(
        id=content_id("wbs", wbs_number, wbs_number, title),
        wbs_number=wbs_number,
        title=title,
        linked_requirement_ids=list(dict.fromkeys(linked_requirement_ids)),
    )


def remove_element(elements: List[WBSElement],
                   element_id: str) -> Tuple[List[WBSElement], Optional[str]]:
    """Drop an element; returns (remaining, retired WBS number or None)."""
    remaining = []
    retired = None
    for element in elements:
        if element.id == element_id and retired is None:
            retired = element.wbs_number
            continue
        remaining.append(element)
    return remaining, retired


def renumber_collisions(elements: List[WBSElement],
                        existing: Iterable[str]) -> List[WBSElement]:
    """Give a fresh number to any element whose number is already taken.

    "Taken" means present in ``existing`` or used by an earlier element
    of ``elements``; comparison is on the parsed (major, minor) pair.
    """
    taken = list(existing)
    seen = {parse_wbs_number(n) for n in taken}
    for element in elements:
        key = parse_wbs_number(element.wbs_number)
        if key in seen:
            fresh = next_wbs_number(taken)
            logger.info("WBS number %s already in use; reassigned %s",
                        element.wbs_number, fresh)
            element.wbs_number = fresh
            key = parse_wbs_number(fresh)
        seen.add(key)
        taken.append(element.wbs_number)
    return elements
