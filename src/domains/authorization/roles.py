# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role hierarchy.

Roles form a strict total order. A role satisfies a requirement when its
rank is at least the rank of the required role.

Example:
    >>> Role.COACH.rank
    2
    >>> has_minimum_role("branch_manager", Role.COACH)
    True
"""

from enum import Enum


class Role(str, Enum):
    """User roles, lowest to highest."""

    STUDENT = "student"
    COACH = "coach"
    BRANCH_MANAGER = "branch_manager"
    SYSTEM_MANAGER = "system_manager"

    @property
    def rank(self) -> int:
        """Position in the hierarchy, 1 for student to 4 for system_manager."""
        return ROLE_RANKS[self]

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        """Convert a role name to a Role.

        Raises:
            ValueError: If the name is not a known role.
        """
        if isinstance(value, cls):
            return value
        return cls(str(value))


ROLE_RANKS: dict[Role, int] = {
    Role.STUDENT: 1,
    Role.COACH: 2,
    Role.BRANCH_MANAGER: 3,
    Role.SYSTEM_MANAGER: 4,
}


def has_minimum_role(role: Role | str, minimum: Role | str) -> bool:
    """Check whether ``role`` ranks at least as high as ``minimum``.

    Unknown role names never satisfy a requirement.
    """
    try:
        return Role.parse(role).rank >= Role.parse(minimum).rank
    except ValueError:
        return False
