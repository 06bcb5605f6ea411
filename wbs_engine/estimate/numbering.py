#!/usr/bin/env python3
# CUI // SP-PROPIN
"""WBS number allocation.

New numbers are appended under the major group of the highest existing
number: ["1.4", "2.1"] + 2 new -> ["2.2", "2.3"]. Malformed legacy
numbers count as 1.0 instead of failing the batch.

Callers that delete elements keep the retired numbers and pass them in
with the live ones, so a minted number is never handed out twice.
"""

import re
from typing import Iterable, List, Tuple

_WBS_NUMBER = re.compile(r"^\s*(\d+)\.(\d+)\s*$")
_LEADING_INT = re.compile(r"^\s*(\d+)")


def _segment(text: str, default: int) -> int:
    match = _LEADING_INT.match(text)
    if not match:
        return default
    value = int(match.group(1))
    return value if value else default


def parse_wbs_number(number) -> Tuple[int, int]:
    """Parse "<major>.<minor>" leniently.

    Each segment is read from its leading digits; an unreadable (or zero)
    major becomes 1 and an unreadable minor becomes 0.
    """
    parts = str(number if number is not None else "").split(".")
    major = _segment(parts[0], 1)
    minor = _segment(parts[1], 0) if len(parts) > 1 else 0
    return major, minor


def is_valid_wbs_number(number) -> bool:
    """True for "<major>.<minor>" with both integers >= 1."""
    if not isinstance(number, str):
        return False
    match = _WBS_NUMBER.match(number)
    return bool(match) and int(match.group(1)) >= 1 and int(match.group(2)) >= 1


def wbs_sort_key(number) -> Tuple[int, int]:
    return parse_wbs_number(number)


def next_wbs_numbers(existing: Iterable[str], count: int) -> List[str]:
    """Mint ``count`` sequential WBS numbers after the highest existing one.

    Args:
        existing: WBS numbers already in use (live and retired).
        count: How many numbers to mint (>= 0).

    Returns:
        List of ``count`` numbers, each greater than every existing number
        and than every number before it in the list.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    parsed = [parse_wbs_number(n) for n in existing]
    major, minor = max(parsed) if parsed else (1, 0)
    return [f"{major}.{minor + offset}" for offset in range(1, count + 1)]


def next_wbs_number(existing: Iterable[str]) -> str:
    return next_wbs_numbers(existing, 1)[0]
