#!/usr/bin/env python3
# CUI // SP-PROPIN
# Controlled by: WBS Estimate Engine
# CUI Category: PROPIN (Proprietary Business Information)
# Distribution: D
"""Hours, cost and FTE roll-ups over a set of WBS elements.

All functions are pure: no caching, no shared state, safe to re-run on
every render. The matrix, timeline and summary views are built from
the same period/role primitives so their totals always agree. Sums use
math.fsum, so results do not depend on element order. An empty element
list yields zeros, never an error.

Usage:
    python -m wbs_engine.scripts.generate_wbs --rollup --elements wbs.json --json
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence, Union

from wbs_engine.estimate.models import (
    DEFAULT_PERIODS,
    PERIODS,
    PeriodConfig,
    Requirement,
    Role,
    WBSElement,
    tidy_number,
)
from wbs_engine.estimate.numbering import wbs_sort_key

DEFAULT_BILLABLE_HOURS_PER_MONTH = 160
DEFAULT_MONTHS_PER_PERIOD = 12
STANDARD_ANNUAL_HOURS = 2080


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_period(period: str) -> None:
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}'. Choose from: {', '.join(PERIODS)}")


def _check_positive(name: str, value) -> None:
    if not value or value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")


def _check_months(months_in_period) -> None:
    _check_positive("months_in_period", months_in_period)
    if isinstance(months_in_period, bool) or int(months_in_period) != months_in_period:
        raise ValueError(f"months_in_period must be a whole number, got {months_in_period}")


def _role_ids(roles: Iterable[Union[Role, str]]) -> List[str]:
    ids = []
    for role in roles:
        role_id = role.id if isinstance(role, Role) else str(role)
        if role_id not in ids:
            ids.append(role_id)
    return ids


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------

def total_hours_for_element_in_period(element: WBSElement, period: str):
    _check_period(period)
    return tidy_number(math.fsum(
        le.hours_by_period.get(period, 0) for le in element.labor_estimates
    ))


def total_hours_for_period(elements: Iterable[WBSElement], period: str):
    _check_period(period)
    return tidy_number(math.fsum(
        le.hours_by_period.get(period, 0)
        for element in elements
        for le in element.labor_estimates
    ))


def total_hours_for_role_in_period(elements: Iterable[WBSElement], role_id: str, period: str):
    _check_period(period)
    return tidy_number(math.fsum(
        le.hours_by_period.get(period, 0)
        for element in elements
        for le in element.labor_estimates
        if le.role_id == role_id
    ))


def element_period_hours(element: WBSElement) -> Dict[str, float]:
    return {p: total_hours_for_element_in_period(element, p) for p in PERIODS}


def total_hours(elements: Iterable[WBSElement]):
    return tidy_number(math.fsum(e.total_hours for e in elements))


def hours_by_role(elements: Iterable[WBSElement], period: Optional[str] = None) -> Dict[str, float]:
    """role_id -> hours, for one period or across all periods."""
    periods = PERIODS if period is None else (period,)
    if period is not None:
        _check_period(period)
    buckets: Dict[str, List[float]] = {}
    for element in elements:
        for le in element.labor_estimates:
            buckets.setdefault(le.role_id, []).extend(
                le.hours_by_period.get(p, 0) for p in periods
            )
    return {role_id: tidy_number(math.fsum(v)) for role_id, v in buckets.items()}


# ---------------------------------------------------------------------------
# FTE
# ---------------------------------------------------------------------------

def monthly_fte_by_role(elements: Sequence[WBSElement], role_id: str, period: str,
                        months_in_period: int = DEFAULT_MONTHS_PER_PERIOD,
                        billable_hours_per_month: float = DEFAULT_BILLABLE_HOURS_PER_MONTH) -> List[float]:
    """Monthly FTE series for one role, hours spread evenly over the period."""
    _check_months(months_in_period)
    _check_positive("billable_hours_per_month", billable_hours_per_month)
    hours = total_hours_for_role_in_period(elements, role_id, period)
    monthly = hours / months_in_period / billable_hours_per_month
    return [monthly] * int(months_in_period)


def annual_fte_by_role(elements: Sequence[WBSElement], role_id: str, period: str,
                       months_in_period: int = DEFAULT_MONTHS_PER_PERIOD,
                       billable_hours_per_month: float = DEFAULT_BILLABLE_HOURS_PER_MONTH) -> float:
    _check_months(months_in_period)
    _check_positive("billable_hours_per_month", billable_hours_per_month)
    hours = total_hours_for_role_in_period(elements, role_id, period)
    return hours / (months_in_period * billable_hours_per_month)


def peak_monthly_fte(elements: Sequence[WBSElement], roles: Iterable[Union[Role, str]], period: str,
                     months_in_period: int = DEFAULT_MONTHS_PER_PERIOD,
                     billable_hours_per_month: float = DEFAULT_BILLABLE_HOURS_PER_MONTH) -> float:
    """Highest month-by-month total FTE across the given roles.

    Per-role series are summed month by month before taking the max, so
    roles that peak in different months are not double counted.
    """
    elements = list(elements)
    series = [
        monthly_fte_by_role(elements, role_id, period, months_in_period, billable_hours_per_month)
        for role_id in _role_ids(roles)
    ]
    if not series:
        return 0.0
    monthly_totals = [math.fsum(month) for month in zip(*series)]
    return max(monthly_totals, default=0.0)


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------

def loaded_hourly_rate(base_salary: float, fringe: float = 0.0, overhead: float = 0.0,
                       ga: float = 0.0, profit_margin_pct: float = 0.0,
                       standard_hours: float = STANDARD_ANNUAL_HOURS) -> float:
    """Fully burdened hourly rate.

    rate = salary / standard_hours x (1 + fringe) x (1 + overhead)
           x (1 + G&A) x (1 + profit% / 100)
    """
    _check_positive("standard_hours", standard_hours)
    rate = base_salary / standard_hours
    rate *= 1 + fringe
    rate *= 1 + overhead
    rate *= 1 + ga
    rate *= 1 + profit_margin_pct / 100
    return rate


def labor_cost(elements: Iterable[WBSElement], hourly_rates: Dict[str, float],
               period: Optional[str] = None) -> float:
    """Sum of hours x role rate. Roles without a rate cost nothing."""
    by_role = hours_by_role(elements, period)
    return math.fsum(hours * float(hourly_rates.get(role_id, 0) or 0)
                     for role_id, hours in by_role.items())


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def labor_matrix(elements: Sequence[WBSElement], roles: Sequence[Role], period: str) -> dict:
    """Labor matrix for one period: elements x roles actually used."""
    _check_period(period)
    elements = sorted(elements, key=lambda e: wbs_sort_key(e.wbs_number))
    used = {le.role_id for e in elements for le in e.labor_estimates}
    used_roles = [r for r in roles if r.id in used]

    rows = []
    for element in elements:
        cells = {
            role.id: total_hours_for_role_in_period([element], role.id, period)
            for role in used_roles
        }
        rows.append({
            "id": element.id,
            "wbsNumber": element.wbs_number,
            "title": element.title,
            "hoursByRole": cells,
            "total": total_hours_for_element_in_period(element, period),
        })

    totals = {role.id: total_hours_for_role_in_period(elements, role.id, period)
              for role in used_roles}
    totals["total"] = total_hours_for_period(elements, period)
    return {
        "period": period,
        "roles": [r.to_dict() for r in used_roles],
        "rows": rows,
        "totals": totals,
    }


def staffing_timeline(elements: Sequence[WBSElement], roles: Sequence[Role],
                      periods: Sequence[PeriodConfig] = tuple(DEFAULT_PERIODS),
                      billable_hours_per_month: float = DEFAULT_BILLABLE_HOURS_PER_MONTH) -> dict:
    """Per-period hours and FTE by role, with peak figures."""
    _check_positive("billable_hours_per_month", billable_hours_per_month)
    elements = list(elements)
    # Off-roster roles count toward period totals, so they count toward the peak too.
    peak_roles = _role_ids(list(roles) + [le.role_id for e in elements for le in e.labor_estimates])
    period_rows = []
    active = set()
    max_fte = 0.0
    peak = 0.0

    for period in periods:
        _check_period(period.id)
        _check_months(period.months_count)
        capacity = period.months_count * billable_hours_per_month
        role_data = {}
        for role in roles:
            hours = total_hours_for_role_in_period(elements, role.id, period.id)
            if hours > 0:
                active.add(role.id)
            role_data[role.id] = {"hours": hours, "fte": hours / capacity}
        period_hours = total_hours_for_period(elements, period.id)
        total_fte = period_hours / capacity
        max_fte = max(max_fte, total_fte)
        peak = max(peak, peak_monthly_fte(elements, peak_roles, period.id,
                                          period.months_count, billable_hours_per_month))
        period_rows.append({
            "period": period.to_dict(),
            "roleData": role_data,
            "totalHours": period_hours,
            "totalFte": total_fte,
        })

    return {
        "periods": period_rows,
        "maxFte": max_fte,
        "peakMonthlyFte": peak,
        "activeRoles": [r.id for r in roles if r.id in active],
    }


def estimate_summary(elements: Sequence[WBSElement], requirements: Sequence[Requirement] = (),
                     hourly_rates: Optional[Dict[str, float]] = None) -> dict:
    """Stats-bar summary: requirement coverage, hours and optional cost."""
    elements = list(elements)
    linked = {rid for e in elements for rid in e.linked_requirement_ids}
    mapped = sum(1 for r in requirements if r.id in linked)
    summary = {
        "total": len(requirements),
        "mapped": mapped,
        "unmapped": len(requirements) - mapped,
        "elementCount": len(elements),
        "totalHours": total_hours(elements),
        "hoursByPeriod": {p: total_hours_for_period(elements, p) for p in PERIODS},
    }
    if hourly_rates is not None:
        summary["estimatedCost"] = labor_cost(elements, hourly_rates)
    return summary
