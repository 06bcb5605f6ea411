#!/usr/bin/env python3
# CUI // SP-PROPIN
"""WBS engine test suite: numbering, roles, normalization, mock
generation, aggregation and editing.

Usage:
    pytest tests/test_wbs_engine.py -v --tb=short
"""

import json
import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from wbs_engine.estimate.models import (  # noqa: E402
    PERIODS,
    ContractContext,
    LaborEstimate,
    Requirement,
    WBSElement,
    coerce_hours,
)


def _element(wbs_number, lines, linked=()):
    """Build an element from (role_id, {period: hours}) pairs."""
    labor = []
    for role_id, hours in lines:
        full = {p: 0 for p in PERIODS}
        full.update(hours)
        labor.append(LaborEstimate(role_id=role_id, role_name=role_id, hours_by_period=full))
    return WBSElement(id=f"wbs-{wbs_number}", wbs_number=wbs_number,
                      title=f"Element {wbs_number}", labor_estimates=labor,
                      linked_requirement_ids=list(linked))


# =========================================================================
# NUMBERING TESTS
# =========================================================================
class TestNumbering:
    """WBS number allocation."""

    def test_empty_existing_starts_at_one(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        assert next_wbs_numbers([], 3) == ["1.1", "1.2", "1.3"]

    def test_appends_under_highest_major(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        assert next_wbs_numbers(["1.4", "2.1"], 2) == ["2.2", "2.3"]

    def test_malformed_numbers_count_as_one_zero(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        assert next_wbs_numbers(["abc", "xyz"], 1) == ["1.1"]

    def test_minor_compared_numerically(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        assert next_wbs_numbers(["1.9", "1.10", "1.2"], 2) == ["1.11", "1.12"]

    def test_zero_count(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        assert next_wbs_numbers(["1.1"], 0) == []

    def test_negative_count_rejected(self):
        from wbs_engine.estimate.numbering import next_wbs_numbers
        with pytest.raises(ValueError):
            next_wbs_numbers([], -1)

    @pytest.mark.parametrize("existing", [
        ["1.1"], ["3.7", "1.9"], ["2.1", "2.1", "bogus"], ["1.10", "1.9", "1.100"],
    ])
    def test_new_numbers_exceed_existing_and_are_distinct(self, existing):
        from wbs_engine.estimate.numbering import next_wbs_numbers, parse_wbs_number
        minted = next_wbs_numbers(existing, 4)
        assert len(set(minted)) == 4
        highest = max(parse_wbs_number(n) for n in existing)
        prior = highest
        for number in minted:
            assert parse_wbs_number(number) > prior
            prior = parse_wbs_number(number)

    def test_parse_is_lenient(self):
        from wbs_engine.estimate.numbering import parse_wbs_number
        assert parse_wbs_number("3") == (3, 0)
        assert parse_wbs_number("") == (1, 0)
        assert parse_wbs_number("2.x") == (2, 0)
        assert parse_wbs_number("0.5") == (1, 5)

    def test_valid_number_format(self):
        from wbs_engine.estimate.numbering import is_valid_wbs_number
        assert is_valid_wbs_number("1.1")
        assert is_valid_wbs_number("12.40")
        assert not is_valid_wbs_number("0.1")
        assert not is_valid_wbs_number("1.0")
        assert not is_valid_wbs_number("1")
        assert not is_valid_wbs_number(1.1)


# =========================================================================
# ROLE RESOLUTION TESTS
# =========================================================================
class TestRoleResolver:
    """Exact id / name lookup against the roster."""

    def test_resolves_by_id(self, roster):
        from wbs_engine.estimate.roles import resolve_role
        assert resolve_role({"roleId": "role-be"}, roster).name == "Backend Developer"

    def test_falls_back_to_name(self, roster):
        from wbs_engine.estimate.roles import resolve_role
        role = resolve_role({"roleId": "be-1", "roleName": "QA Engineer"}, roster)
        assert role.id == "role-qa"

    def test_id_match_wins_over_name(self, roster):
        from wbs_engine.estimate.roles import resolve_role
        role = resolve_role({"roleId": "role-qa", "roleName": "Backend Developer"}, roster)
        assert role.id == "role-qa"

    def test_no_fuzzy_matching(self, roster):
        from wbs_engine.estimate.roles import resolve_role
        assert resolve_role({"roleName": "backend developer"}, roster) is None
        assert resolve_role({"roleName": "Backend Dev"}, roster) is None

    def test_unknown_role(self, roster):
        from wbs_engine.estimate.roles import resolve_role
        assert resolve_role({"roleId": "ghost", "roleName": "Ghost"}, roster) is None
        assert resolve_role("role-be", roster) is None


# =========================================================================
# NORMALIZER TESTS
# =========================================================================
class TestNormalizer:
    """Coercion of untrusted candidates."""

    def test_unknown_role_dropped(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"laborEstimates": [{
            "roleId": "ghost",
            "hoursByPeriod": {"base": 100, "option1": 0, "option2": 0,
                              "option3": 0, "option4": 0},
        }]}
        element = normalize_element(raw, roster, "1.1")
        assert element.labor_estimates == []
        assert element.total_hours == 0

    def test_role_matched_by_name_uses_roster_identity(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"laborEstimates": [{"roleId": "qa", "roleName": "QA Engineer",
                                   "hoursByPeriod": {"base": 24}}]}
        element = normalize_element(raw, roster, "1.1")
        assert element.labor_estimates[0].role_id == "role-qa"
        assert element.labor_estimates[0].role_name == "QA Engineer"

    def test_hours_clamped(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"laborEstimates": [{
            "roleId": "role-be",
            "hoursByPeriod": {"base": -40, "option1": "abc", "option2": None,
                              "option3": "12", "option4": True},
        }]}
        hours = normalize_element(raw, roster, "1.1").labor_estimates[0].hours_by_period
        assert hours == {"base": 0, "option1": 0, "option2": 0, "option3": 12, "option4": 0}

    def test_missing_hours_default_to_zero(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"laborEstimates": [{"roleId": "role-be"}]}
        hours = normalize_element(raw, roster, "1.1").labor_estimates[0].hours_by_period
        assert set(hours) == set(PERIODS)
        assert all(v == 0 for v in hours.values())

    def test_total_hours_is_sum_of_retained_lines(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"laborEstimates": [
            {"roleId": "role-be", "hoursByPeriod": {"base": 40, "option1": 10}},
            {"roleId": "role-qa", "hoursByPeriod": {"base": 60}},
            {"roleId": "ghost", "hoursByPeriod": {"base": 500}},
        ]}
        element = normalize_element(raw, roster, "1.1")
        expected = sum(le.hours_by_period[p] for le in element.labor_estimates for p in PERIODS)
        assert element.total_hours == expected == 110
        assert element.to_dict()["totalHours"] == 110

    def test_empty_candidate_is_minimally_valid(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        element = normalize_element({}, roster, "1.7")
        assert element.wbs_number == "1.7"
        assert element.title == ""
        assert element.assumptions == []
        assert element.estimate_method == "engineering"
        assert element.confidence == "medium"
        assert element.labor_estimates == []
        assert element.risks == []
        assert element.dependencies == []
        assert element.id

    @pytest.mark.parametrize("raw", ["garbage", None, 42, ["a"], {"laborEstimates": "x",
                                                                   "risks": {"a": 1},
                                                                   "assumptions": "one"}])
    def test_never_raises_on_malformed_candidates(self, roster, raw):
        from wbs_engine.estimate.normalizer import normalize_element
        element = normalize_element(raw, roster, "2.3")
        assert element.wbs_number == "2.3"
        assert element.total_hours == 0

    def test_oversized_hour_value_reads_as_zero(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = json.loads('{"laborEstimates": [{"roleId": "role-be", "hoursByPeriod": '
                         '{"base": 1' + "0" * 400 + ', "option1": 1e300, "option2": 8}}]}')
        element = normalize_element(raw, roster, "1.1")
        data = element.to_dict()
        assert data["laborEstimates"][0]["hoursByPeriod"]["base"] == 0
        assert data["laborEstimates"][0]["hoursByPeriod"]["option1"] == 0
        assert data["totalHours"] == 8

    def test_malformed_wbs_number_uses_fallback(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        assert normalize_element({"wbsNumber": "A-1"}, roster, "1.5").wbs_number == "1.5"
        assert normalize_element({"wbsNumber": "1.9"}, roster, "1.5").wbs_number == "1.9"

    def test_risk_ids_synthesized_unique_and_stable(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"title": "Portal", "risks": [
            {"description": "Ambiguous scope", "probability": "high", "impact": "extreme"},
            {"description": "Feedback delays"},
            {"id": "r-1", "description": "Dup A"},
            {"id": "r-1", "description": "Dup B"},
        ]}
        first = normalize_element(raw, roster, "1.1")
        second = normalize_element(raw, roster, "1.1")
        ids = [r.id for r in first.risks]
        assert len(set(ids)) == 4
        assert "r-1" in ids
        assert ids == [r.id for r in second.risks]
        assert first.risks[0].likelihood == "high"
        assert first.risks[0].impact == "medium"

    def test_dependencies_from_suggestions(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        raw = {"wbsNumber": "1.3", "suggestedDependencies": ["1.1", "1.1", "1.3", "", None]}
        deps = normalize_element(raw, roster, "1.3").dependencies
        assert [d.predecessor_id for d in deps] == ["1.1"]
        assert deps[0].type == "finish-to-start"
        assert deps[0].id

    def test_estimate_method_coercion(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        assert normalize_element({"estimateMethod": "parametric"}, roster, "1.1").estimate_method == "parametric"
        assert normalize_element({"estimateMethod": "Level of Effort"}, roster, "1.1").estimate_method == "level-of-effort"
        assert normalize_element({"estimateMethod": "guess"}, roster, "1.1").estimate_method == "engineering"

    def test_linked_requirements_filtered_to_known(self, roster):
        from wbs_engine.estimate.normalizer import normalize_element
        element = normalize_element({"linkedRequirementId": "REQ-001"}, roster, "1.1",
                                    known_requirement_ids={"REQ-001"})
        assert element.linked_requirement_ids == ["REQ-001"]
        element = normalize_element({"linkedRequirementIds": ["REQ-404", "REQ-001"]}, roster,
                                    "1.1", known_requirement_ids={"REQ-001"})
        assert element.linked_requirement_ids == ["REQ-001"]


# =========================================================================
# MOCK GENERATOR TESTS
# =========================================================================
class TestMockGenerator:
    """Deterministic offline generation."""

    def test_one_element_per_requirement(self, requirements, roster, contract_context, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        elements = generate_mock(requirements, roster, [], contract_context, settings=settings)
        assert [e.wbs_number for e in elements] == ["1.1", "1.2"]
        assert [e.linked_requirement_ids for e in elements] == [["REQ-001"], ["REQ-002"]]
        assert elements[0].title == "Implement: Case Management Portal"
        assert elements[0].sow_reference == "SOO Section 3.1"
        assert elements[0].why.startswith("This work addresses the shall requirement in SOO 3.1.")

    def test_shall_sized_above_should(self, requirements, roster, contract_context, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        shall, should = generate_mock(requirements, roster, [], contract_context, settings=settings)
        assert [le.role_id for le in shall.labor_estimates] == ["role-pm", "role-be", "role-qa"]
        assert shall.labor_estimates[0].hours_by_period == {
            "base": 120, "option1": 30, "option2": 18, "option3": 0, "option4": 0,
        }
        assert should.labor_estimates[0].hours_by_period == {
            "base": 60, "option1": 15, "option2": 9, "option3": 0, "option4": 0,
        }
        assert shall.total_hours == 504
        assert should.total_hours == 252

    def test_option_years_follow_contract(self, requirements, roster, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        base_only = ContractContext(option_years=0)
        hours = generate_mock(requirements[:1], roster, [], base_only,
                              settings=settings)[0].labor_estimates[0].hours_by_period
        assert hours == {"base": 120, "option1": 0, "option2": 0, "option3": 0, "option4": 0}

        full = ContractContext(option_years=4)
        hours = generate_mock(requirements[:1], roster, [], full,
                              settings=settings)[0].labor_estimates[0].hours_by_period
        assert hours == {"base": 120, "option1": 30, "option2": 18, "option3": 12, "option4": 12}

    def test_numbers_continue_existing(self, requirements, roster, contract_context, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        elements = generate_mock(requirements, roster, ["1.4", "2.3"], contract_context,
                                 settings=settings)
        assert [e.wbs_number for e in elements] == ["2.4", "2.5"]

    def test_deterministic(self, requirements, roster, contract_context, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        first = generate_mock(requirements, roster, ["1.1"], contract_context, settings=settings)
        second = generate_mock(requirements, roster, ["1.1"], contract_context, settings=settings)
        for a, b in zip(first, second):
            assert (a.title, a.what, a.why) == (b.title, b.what, b.why)
            assert [le.hours_by_period for le in a.labor_estimates] == \
                [le.hours_by_period for le in b.labor_estimates]

    def test_empty_roster_gives_no_labor(self, requirements, contract_context, settings):
        from wbs_engine.estimate.mock_generator import generate_mock
        elements = generate_mock(requirements, [], [], contract_context, settings=settings)
        assert all(e.labor_estimates == [] and e.total_hours == 0 for e in elements)


# =========================================================================
# AGGREGATION TESTS
# =========================================================================
class TestAggregation:
    """Hours, FTE and cost roll-ups."""

    def test_role_hours_summed_across_elements(self):
        from wbs_engine.estimate.aggregation import total_hours_for_role_in_period
        elements = [_element("1.1", [("role-be", {"base": 40})]),
                    _element("1.2", [("role-be", {"base": 60})])]
        assert total_hours_for_role_in_period(elements, "role-be", "base") == 100

    def test_period_and_element_totals(self):
        from wbs_engine.estimate.aggregation import (
            total_hours_for_element_in_period,
            total_hours_for_period,
        )
        first = _element("1.1", [("role-be", {"base": 40, "option1": 8}),
                                 ("role-qa", {"base": 20})])
        second = _element("1.2", [("role-pm", {"base": 5.5})])
        assert total_hours_for_period([first, second], "base") == 65.5
        assert total_hours_for_period([first, second], "option1") == 8
        assert total_hours_for_element_in_period(first, "base") == 60

    def test_element_period_hours_match_total(self):
        from wbs_engine.estimate.aggregation import element_period_hours
        element = _element("1.1", [("role-be", {"base": 40, "option3": 2.5}),
                                   ("role-qa", {"base": 20})])
        by_period = element_period_hours(element)
        assert by_period == {"base": 60, "option1": 0, "option2": 0,
                             "option3": 2.5, "option4": 0}
        assert sum(by_period.values()) == element.total_hours

    def test_empty_elements_are_all_zero(self, roster, requirements):
        from wbs_engine.estimate import aggregation as agg
        assert agg.total_hours_for_period([], "base") == 0
        assert agg.total_hours_for_role_in_period([], "role-be", "option4") == 0
        assert agg.monthly_fte_by_role([], "role-be", "base") == [0.0] * 12
        assert agg.annual_fte_by_role([], "role-be", "base") == 0
        assert agg.peak_monthly_fte([], roster, "base") == 0
        assert agg.labor_cost([], {"role-be": 150}) == 0
        assert agg.total_hours([]) == 0
        summary = agg.estimate_summary([], requirements)
        assert summary["totalHours"] == 0
        assert summary["unmapped"] == 2
        timeline = agg.staffing_timeline([], roster)
        assert timeline["maxFte"] == 0
        assert timeline["peakMonthlyFte"] == 0
        assert timeline["activeRoles"] == []

    def test_monthly_fte_spreads_evenly(self):
        from wbs_engine.estimate.aggregation import annual_fte_by_role, monthly_fte_by_role
        elements = [_element("1.1", [("role-be", {"base": 1920})])]
        assert monthly_fte_by_role(elements, "role-be", "base", 12, 160) == [1.0] * 12
        assert annual_fte_by_role(elements, "role-be", "base", 12, 160) == 1.0
        assert monthly_fte_by_role(elements, "role-be", "base", 6, 160) == [2.0] * 6

    def test_peak_sums_roles_month_by_month(self, roster):
        from wbs_engine.estimate.aggregation import peak_monthly_fte
        elements = [_element("1.1", [("role-be", {"base": 1920}), ("role-qa", {"base": 960})]),
                    _element("1.2", [("role-qa", {"option1": 4000})])]
        assert peak_monthly_fte(elements, roster, "base", 12, 160) == pytest.approx(1.5)
        assert peak_monthly_fte(elements, ["role-be"], "base", 12, 160) == pytest.approx(1.0)

    def test_order_independent(self, roster):
        from wbs_engine.estimate.aggregation import staffing_timeline, total_hours_for_period
        elements = [_element(f"1.{i}", [("role-be", {"base": 0.1 * i}),
                                        ("role-qa", {"option2": 1e6 / i})])
                    for i in range(1, 30)]
        assert total_hours_for_period(elements, "base") == \
            total_hours_for_period(list(reversed(elements)), "base")
        assert staffing_timeline(elements, roster) == \
            staffing_timeline(list(reversed(elements)), roster)

    def test_timeline_peak_counts_off_roster_roles(self):
        from wbs_engine.estimate.aggregation import staffing_timeline
        from wbs_engine.estimate.models import Role
        elements = [_element("1.1", [("legacy", {"base": 1920})])]
        timeline = staffing_timeline(elements, [Role(id="role-be", name="Backend Developer")])
        assert timeline["maxFte"] == pytest.approx(1.0)
        assert timeline["peakMonthlyFte"] == pytest.approx(1.0)
        assert timeline["activeRoles"] == []

    def test_fractional_months_rejected(self):
        from wbs_engine.estimate.aggregation import (
            annual_fte_by_role,
            monthly_fte_by_role,
            staffing_timeline,
        )
        from wbs_engine.estimate.models import PeriodConfig
        elements = [_element("1.1", [("role-be", {"base": 100})])]
        with pytest.raises(ValueError):
            monthly_fte_by_role(elements, "role-be", "base", months_in_period=2.5)
        with pytest.raises(ValueError):
            annual_fte_by_role(elements, "role-be", "base", months_in_period=2.5)
        with pytest.raises(ValueError):
            staffing_timeline(elements, [], periods=[PeriodConfig("base", "Base Year", "BY", 0)])
        assert len(monthly_fte_by_role(elements, "role-be", "base", months_in_period=6.0)) == 6

    def test_invalid_arguments(self):
        from wbs_engine.estimate.aggregation import monthly_fte_by_role, total_hours_for_period
        with pytest.raises(ValueError):
            total_hours_for_period([], "option5")
        with pytest.raises(ValueError):
            monthly_fte_by_role([], "role-be", "base", months_in_period=0)
        with pytest.raises(ValueError):
            monthly_fte_by_role([], "role-be", "base", billable_hours_per_month=0)

    def test_loaded_hourly_rate(self):
        from wbs_engine.estimate.aggregation import loaded_hourly_rate
        rate = loaded_hourly_rate(104000, fringe=0.45, overhead=0.30, ga=0.10,
                                  profit_margin_pct=8)
        assert rate == pytest.approx(111.969)

    def test_labor_cost(self):
        from wbs_engine.estimate.aggregation import labor_cost
        elements = [_element("1.1", [("role-be", {"base": 40}), ("role-qa", {"option1": 10})]),
                    _element("1.2", [("role-be", {"base": 60}), ("role-ux", {"base": 99})])]
        rates = {"role-be": 100, "role-qa": 80}
        assert labor_cost(elements, rates) == 10800
        assert labor_cost(elements, rates, period="base") == 10000

    def test_labor_matrix(self, roster):
        from wbs_engine.estimate.aggregation import labor_matrix
        elements = [_element("1.10", [("role-qa", {"base": 8})]),
                    _element("1.2", [("role-be", {"base": 40}), ("role-qa", {"base": 4})]),
                    _element("1.3", [("orphan", {"base": 2})])]
        matrix = labor_matrix(elements, roster, "base")
        assert [r["id"] for r in matrix["roles"]] == ["role-be", "role-qa"]
        assert [row["wbsNumber"] for row in matrix["rows"]] == ["1.2", "1.3", "1.10"]
        assert matrix["rows"][0]["hoursByRole"] == {"role-be": 40, "role-qa": 4}
        assert matrix["rows"][0]["total"] == 44
        assert matrix["totals"] == {"role-be": 40, "role-qa": 12, "total": 54}

    def test_staffing_timeline(self, roster):
        from wbs_engine.estimate.aggregation import staffing_timeline
        elements = [_element("1.1", [("role-be", {"base": 1920, "option1": 960})]),
                    _element("1.2", [("role-qa", {"base": 960})])]
        timeline = staffing_timeline(elements, roster, billable_hours_per_month=160)
        base = timeline["periods"][0]
        assert base["period"]["id"] == "base"
        assert base["totalHours"] == 2880
        assert base["totalFte"] == pytest.approx(1.5)
        assert base["roleData"]["role-be"] == {"hours": 1920, "fte": 1.0}
        assert timeline["maxFte"] == pytest.approx(1.5)
        assert timeline["peakMonthlyFte"] == pytest.approx(1.5)
        assert timeline["activeRoles"] == ["role-be", "role-qa"]
        assert len(timeline["periods"]) == 5

    def test_estimate_summary(self, requirements):
        from wbs_engine.estimate.aggregation import estimate_summary
        elements = [_element("1.1", [("role-be", {"base": 100, "option1": 20})],
                             linked=["REQ-001"])]
        summary = estimate_summary(elements, requirements, hourly_rates={"role-be": 50})
        assert summary["total"] == 2
        assert summary["mapped"] == 1
        assert summary["unmapped"] == 1
        assert summary["totalHours"] == 120
        assert summary["hoursByPeriod"]["option1"] == 20
        assert summary["estimatedCost"] == 6000


# =========================================================================
# EDITING TESTS
# =========================================================================
class TestEditing:
    """Mutations keep totals derived and numbers unique."""

    def test_set_hours_recomputes_total(self, roster):
        from wbs_engine.estimate.editing import set_labor_hours
        element = _element("1.1", [("role-be", {"base": 40})])
        set_labor_hours(element, "role-be", "base", 80)
        assert element.total_hours == 80
        set_labor_hours(element, "role-be", "option1", -5)
        assert element.labor_estimates[0].hours_by_period["option1"] == 0

    def test_set_hours_adds_roster_role(self, roster):
        from wbs_engine.estimate.editing import set_labor_hours
        element = _element("1.1", [])
        set_labor_hours(element, "role-qa", "option2", 16, roster=roster)
        assert element.labor_estimates[0].role_name == "QA Engineer"
        assert element.total_hours == 16

    def test_set_hours_rejects_unknown(self, roster):
        from wbs_engine.estimate.editing import set_labor_hours
        element = _element("1.1", [])
        with pytest.raises(ValueError):
            set_labor_hours(element, "ghost", "base", 10, roster=roster)
        with pytest.raises(ValueError):
            set_labor_hours(element, "role-be", "option9", 10, roster=roster)

    def test_link_requirement_is_idempotent(self):
        from wbs_engine.estimate.editing import link_requirement
        element = _element("1.1", [])
        link_requirement(element, "REQ-001")
        link_requirement(element, "REQ-001")
        assert element.linked_requirement_ids == ["REQ-001"]

    def test_retired_numbers_not_reissued(self):
        from wbs_engine.estimate.editing import create_manual_element, remove_element
        elements = [_element("1.1", []), _element("1.2", [])]
        remaining, retired = remove_element(elements, "wbs-1.2")
        assert retired == "1.2"
        assert [e.wbs_number for e in remaining] == ["1.1"]
        live = [e.wbs_number for e in remaining]
        manual = create_manual_element("Transition-in", live + [retired], ["REQ-002"])
        assert manual.wbs_number == "1.3"
        assert manual.linked_requirement_ids == ["REQ-002"]

    def test_renumber_collisions(self):
        from wbs_engine.estimate.editing import renumber_collisions
        elements = [_element("1.2", []), _element("1.2", []), _element("1.7", [])]
        renumber_collisions(elements, ["1.1", "1.2"])
        assert [e.wbs_number for e in elements] == ["1.3", "1.4", "1.7"]


# =========================================================================
# MODEL & CONFIG TESTS
# =========================================================================
class TestModelsAndConfig:
    """Wire parsing and settings loading."""

    def test_coerce_hours(self):
        assert coerce_hours(12.0) == 12 and isinstance(coerce_hours(12.0), int)
        assert coerce_hours(7.5) == 7.5
        assert coerce_hours(float("nan")) == 0
        assert coerce_hours(float("inf")) == 0
        assert coerce_hours([1]) == 0

    def test_total_hours_derived_not_stored(self):
        element = WBSElement.from_dict({
            "id": "wbs-1", "wbsNumber": "1.1", "totalHours": 9999,
            "laborEstimates": [{"roleId": "role-be", "hoursByPeriod": {"base": 10}}],
        })
        assert element.total_hours == 10

    def test_contract_context_clamps_option_years(self):
        ctx = ContractContext.from_dict({"contractType": "FFP",
                                         "periodOfPerformance": {"optionYears": 7}})
        assert ctx.option_years == 4
        assert ctx.contract_type == "ffp"
        assert ContractContext.from_dict({"periodOfPerformance": {"optionYears": -2}}).option_years == 0
        assert ContractContext.from_dict(None).option_years == 0

    @pytest.mark.parametrize("raw,expected", [
        (False, False), ("false", False), ("No", False), ("0", False), (0, False),
        (True, True), ("true", True), (None, True), ("maybe", True), ([], True),
    ])
    def test_contract_context_base_year_flag(self, raw, expected):
        ctx = ContractContext.from_dict({"periodOfPerformance": {"baseYear": raw}})
        assert ctx.base_year is expected

    def test_contract_context_tolerates_bad_shapes(self):
        assert ContractContext.from_dict({"periodOfPerformance": "3 years"}).option_years == 0
        assert ContractContext.from_dict(["tm"]).contract_type == "tm"

    def test_oversized_hours_coerce_to_zero(self):
        assert coerce_hours(10 ** 400) == 0
        assert coerce_hours(1e300) == 0
        assert coerce_hours(10 ** 6) == 10 ** 6

    def test_requirement_type_defaults_to_shall(self):
        req = Requirement.from_dict({"id": "R1", "type": "MUST"})
        assert req.type == "shall"

    def test_settings_defaults_when_missing(self, tmp_path):
        from wbs_engine.estimate.config import DEFAULT_SETTINGS, load_settings
        assert load_settings(tmp_path / "nope.yaml") == DEFAULT_SETTINGS

    def test_settings_partial_override(self, tmp_path):
        from wbs_engine.estimate.config import load_settings
        path = tmp_path / "estimate_config.yaml"
        path.write_text("mock:\n  max_roles: 1\nstaffing:\n  billable_hours_per_month: 150\n")
        settings = load_settings(path)
        assert settings["mock"]["max_roles"] == 1
        assert settings["mock"]["base_hours"]["shall"] == 120
        assert settings["staffing"]["billable_hours_per_month"] == 150

    def test_settings_unreadable_yaml(self, tmp_path):
        from wbs_engine.estimate.config import DEFAULT_SETTINGS, load_settings
        path = tmp_path / "estimate_config.yaml"
        path.write_text("mock: [unclosed\n")
        assert load_settings(path) == DEFAULT_SETTINGS

    def test_settings_empty_sections_keep_defaults(self, tmp_path):
        from wbs_engine.estimate.config import DEFAULT_SETTINGS, load_settings
        path = tmp_path / "estimate_config.yaml"
        path.write_text("generation:\nmock:\n  base_hours:\n  max_roles: 2\nstaffing: 12\n")
        settings = load_settings(path)
        assert settings["generation"] == DEFAULT_SETTINGS["generation"]
        assert settings["mock"]["base_hours"] == DEFAULT_SETTINGS["mock"]["base_hours"]
        assert settings["mock"]["max_roles"] == 2
        assert settings["staffing"] == DEFAULT_SETTINGS["staffing"]

    def test_empty_sections_do_not_break_generation(self, tmp_path, requirements, roster,
                                                     contract_context, fake_router):
        from wbs_engine.estimate.config import load_settings
        from wbs_engine.estimate.generator import generate_wbs
        path = tmp_path / "estimate_config.yaml"
        path.write_text("generation:\nmock:\n  option_year_ratios:\n")
        result = generate_wbs(requirements, roster, [], contract_context,
                              router=fake_router(configured=False),
                              settings=load_settings(path))
        assert result.ok and result.mock
        hours = result.elements[0].labor_estimates[0].hours_by_period
        assert hours["base"] == 120
        assert hours["option1"] == 0
