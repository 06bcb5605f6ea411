#!/usr/bin/env python3
# CUI // SP-PROPIN
"""WBS generation and roll-up CLI.

Usage:
    python -m wbs_engine.scripts.generate_wbs --generate --request request.json --json
    python -m wbs_engine.scripts.generate_wbs --generate --request request.json --mock --json
    python -m wbs_engine.scripts.generate_wbs --rollup --elements wbs.json \\
        --requirements reqs.json --rates rates.json --billable-hours 160 --json
    python -m wbs_engine.scripts.generate_wbs --next-numbers --existing 1.4 2.1 --count 2

The request document follows the generate-wbs wire format:
    {requirements, availableRoles, existingWbsNumbers, contractContext}
An elements file is either a list of WBS elements or a generation
response ({"wbsElements": [...]}). Rates map role id -> hourly rate, or
role id -> {baseSalary, fringe, overhead, ga, profitMarginPct} for a loaded
rate over staffing.standard_annual_hours.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from wbs_engine.estimate.aggregation import (
    estimate_summary,
    labor_matrix,
    loaded_hourly_rate,
    staffing_timeline,
)
from wbs_engine.estimate.config import load_settings
from wbs_engine.estimate.generator import generate_from_request
from wbs_engine.estimate.models import DEFAULT_PERIODS, PERIODS, Requirement, Role, WBSElement
from wbs_engine.estimate.numbering import next_wbs_numbers

BASE_DIR = Path(__file__).resolve().parent.parent.parent

logger = logging.getLogger("wbs_engine.scripts.generate_wbs")


def _read_json(path):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _load_elements(path):
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("wbsElements") or []
    return [WBSElement.from_dict(e) for e in data if isinstance(e, dict)]


def _roles_from_elements(elements):
    """Roster stand-in when only elements are available: roles seen in labor lines."""
    roles = {}
    for element in elements:
        for le in element.labor_estimates:
            roles.setdefault(le.role_id, Role(id=le.role_id, name=le.role_name))
    return list(roles.values())


def run_generate(request_path, force_mock=False) -> dict:
    payload = _read_json(request_path)
    result = generate_from_request(payload, force_mock=force_mock)
    return result.to_dict()


def _hourly_rates(raw, standard_hours) -> dict:
    """Role id -> hourly rate. An entry is a rate, or salary plus wrap factors."""
    rates = {}
    for role_id, entry in (raw or {}).items():
        if isinstance(entry, dict):
            rates[role_id] = loaded_hourly_rate(
                float(entry.get("baseSalary", 0)),
                fringe=float(entry.get("fringe", 0)),
                overhead=float(entry.get("overhead", 0)),
                ga=float(entry.get("ga", 0)),
                profit_margin_pct=float(entry.get("profitMarginPct", 0)),
                standard_hours=standard_hours,
            )
        else:
            rates[role_id] = float(entry or 0)
    return rates


def run_rollup(elements_path, requirements_path=None, rates_path=None,
               roles_path=None, billable_hours=None) -> dict:
    settings = load_settings()
    staffing = settings.get("staffing") or {}
    if billable_hours is None:
        billable_hours = staffing.get("billable_hours_per_month", 160)
    months = staffing.get("months_per_period", 12)
    periods = [replace(p, months_count=months) for p in DEFAULT_PERIODS]

    elements = _load_elements(elements_path)
    requirements = []
    if requirements_path:
        requirements = [Requirement.from_dict(r) for r in _read_json(requirements_path)
                        if isinstance(r, dict)]
    if roles_path:
        roles = [Role.from_dict(r) for r in _read_json(roles_path) if isinstance(r, dict)]
    else:
        roles = _roles_from_elements(elements)
    rates = None
    if rates_path:
        rates = _hourly_rates(_read_json(rates_path),
                              staffing.get("standard_annual_hours", 2080))

    return {
        "success": True,
        "summary": estimate_summary(elements, requirements, hourly_rates=rates),
        "timeline": staffing_timeline(elements, roles, periods=periods,
                                     billable_hours_per_month=billable_hours),
        "matrices": {p: labor_matrix(elements, roles, p) for p in PERIODS},
    }


def _print_human(result):
    if "error" in result:
        print(f"ERROR [{result.get('status')}]: {result['error']}")
        if result.get("details"):
            print(f"  details: {result['details']}")
        return
    if "numbers" in result:
        print(" ".join(result["numbers"]))
        return
    if "wbsElements" in result:
        label = "mock" if result.get("mock") else "generated"
        print(f"{len(result['wbsElements'])} WBS element(s) {label}:")
        for el in result["wbsElements"]:
            print(f"  {el['wbsNumber']:<8} {el['title']}  ({el['totalHours']}h)")
        return
    summary = result["summary"]
    print(f"Requirements: {summary['total']} ({summary['mapped']} mapped, "
          f"{summary['unmapped']} unmapped)")
    print(f"WBS elements: {summary['elementCount']}  Total hours: {summary['totalHours']}")
    for row in result["timeline"]["periods"]:
        print(f"  {row['period']['shortLabel']:<4} {row['totalHours']:>10}h "
              f"{row['totalFte']:.2f} FTE")
    print(f"Peak monthly FTE: {result['timeline']['peakMonthlyFte']:.2f}")
    if "estimatedCost" in summary:
        print(f"Estimated cost: {summary['estimatedCost']:,.2f}")


def main():
    parser = argparse.ArgumentParser(description="WBS estimate generation and roll-ups")
    grp = parser.add_mutually_exclusive_group(required=True)
    grp.add_argument("--generate", action="store_true", help="Generate WBS elements")
    grp.add_argument("--rollup", action="store_true", help="Hours/FTE/cost roll-up")
    grp.add_argument("--next-numbers", action="store_true", help="Mint WBS numbers")

    parser.add_argument("--request", help="Generation request JSON file")
    parser.add_argument("--mock", action="store_true", help="Force the offline generator")
    parser.add_argument("--elements", help="WBS elements JSON file")
    parser.add_argument("--requirements", help="Requirements JSON file")
    parser.add_argument("--roles", help="Role roster JSON file")
    parser.add_argument("--rates", help="Role hourly rates JSON file")
    parser.add_argument("--billable-hours", type=float,
                        help="Billable hours per month (default from estimate_config.yaml)")
    parser.add_argument("--existing", nargs="*", default=[], help="Existing WBS numbers")
    parser.add_argument("--count", type=int, default=1)
    parser.add_argument("--json", action="store_true", dest="json_out")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(BASE_DIR / ".env", override=False)

    if args.generate:
        if not args.request:
            parser.error("--request required")
        result = run_generate(args.request, force_mock=args.mock)
    elif args.rollup:
        if not args.elements:
            parser.error("--elements required")
        if args.billable_hours is not None and args.billable_hours <= 0:
            parser.error("--billable-hours must be > 0")
        result = run_rollup(args.elements, args.requirements, args.rates,
                            args.roles, args.billable_hours)
    else:
        if args.count < 0:
            parser.error("--count must be >= 0")
        result = {"success": True, "numbers": next_wbs_numbers(args.existing, args.count)}

    if args.json_out:
        print(json.dumps(result, indent=2))
    else:
        _print_human(result)
    sys.exit(0 if result.get("success") else 1)


if __name__ == "__main__":
    main()
