#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Role resolution against the authoritative labor roster.

Exact id match first, then exact name match. No fuzzy matching: a
reference that does not resolve is rejected, never mapped to a
"closest" role.
"""

from typing import Iterable, Optional

from wbs_engine.estimate.models import Role


def resolve_role(candidate: dict, roster: Iterable[Role]) -> Optional[Role]:
    """Return the roster role a candidate refers to, or None.

    Args:
        candidate: Mapping with optional ``roleId`` and ``roleName``.
        roster: Roles the proposal may estimate against.
    """
    if not isinstance(candidate, dict):
        return None
    roster = list(roster)
    role_id = candidate.get("roleId")
    role_name = candidate.get("roleName")

    if isinstance(role_id, str) and role_id:
        for role in roster:
            if role.id == role_id:
                return role
    if isinstance(role_name, str) and role_name:
        for role in roster:
            if role.name == role_name:
                return role
    return None

