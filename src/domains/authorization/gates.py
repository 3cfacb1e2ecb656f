# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authorization gates.

Each gate is an independent check that raises ForbiddenError on denial and
returns None otherwise. Routes pick the gates that apply to them; the result
does not depend on the order they run in. authorize() composes them and
always runs the tenant gate first, so a cross-tenant request is refused
before anything about the resource is looked at.

The reason carried by ForbiddenError is for logs only. Callers receive a
generic message.

Example:
    >>> authorize(caller, minimum_role=Role.COACH, tenant_id=path_tenant_id)
"""

import logging
from typing import Protocol

from src.domains.authorization.roles import Role, has_minimum_role

logger = logging.getLogger(__name__)


class Caller(Protocol):
    """Verified identity of the caller, as carried by an access token."""

    user_id: str
    tenant_id: str
    role: str
    branch_id: str | None


class AuthorizationError(Exception):
    """Base exception for authorization decisions."""

    pass


class ForbiddenError(AuthorizationError):
    """Raised when a gate denies access.

    Attributes:
        reason: Internal explanation, never sent to the client.
    """

    def __init__(self, reason: str) -> None:
        super().__init__("Insufficient permissions")
        self.reason = reason


def _deny(caller: Caller, reason: str) -> ForbiddenError:
    logger.info(
        "Access denied: user=%s, tenant=%s, role=%s, reason=%s",
        caller.user_id,
        caller.tenant_id,
        caller.role,
        reason,
    )
    return ForbiddenError(reason)


def check_role(caller: Caller, minimum: Role | str) -> None:
    """Require the caller's rank to be at least that of ``minimum``."""
    if not has_minimum_role(caller.role, minimum):
        raise _deny(caller, f"role {caller.role} below {Role.parse(minimum).value}")


def check_tenant(caller: Caller, tenant_id: str | None) -> None:
    """Require the resource to belong to the caller's tenant.

    A missing tenant id passes.
    """
    if tenant_id is None:
        return
    if caller.tenant_id != tenant_id:
        raise _deny(caller, f"tenant mismatch ({tenant_id})")


def check_branch(caller: Caller, branch_id: str | None) -> None:
    """Require coaches and branch managers to stay within their branch.

    System managers always pass. Students are governed by the self-access
    gate instead. A missing branch id passes.
    """
    if branch_id is None:
        return

    try:
        role = Role.parse(caller.role)
    except ValueError:
        raise _deny(caller, f"unknown role {caller.role}") from None
    if role in (Role.SYSTEM_MANAGER, Role.STUDENT):
        return

    if caller.branch_id != branch_id:
        raise _deny(caller, f"branch mismatch ({branch_id})")


def check_self_access(caller: Caller, user_id: str) -> None:
    """Require students to only reach their own user record.

    Coaches and above may reach any user of their tenant.
    """
    if has_minimum_role(caller.role, Role.COACH):
        return

    if caller.user_id != user_id:
        raise _deny(caller, f"student accessing another user ({user_id})")


def check_role_assignment(caller: Caller, role: Role | str) -> None:
    """Refuse to create or promote a user above the caller's own rank."""
    if not has_minimum_role(caller.role, role):
        raise _deny(caller, f"cannot assign role {role}")


def check_rank_reach(caller: Caller, target_role: Role | str) -> None:
    """Refuse changes to a user who outranks the caller."""
    if not has_minimum_role(caller.role, target_role):
        raise _deny(caller, f"target role {target_role} outranks caller")


def authorize(
    caller: Caller,
    *,
    minimum_role: Role | str | None = None,
    tenant_id: str | None = None,
    branch_id: str | None = None,
    user_id: str | None = None,
) -> None:
    """Run every gate that has an argument, tenant gate first.

    Args:
        caller: Verified identity of the caller.
        minimum_role: Role gate requirement.
        tenant_id: Tenant owning the resource.
        branch_id: Branch of the resource.
        user_id: Target user, for the self-access gate.

    Raises:
        ForbiddenError: If any gate denies.
    """
    check_tenant(caller, tenant_id)

    if minimum_role is not None:
        check_role(caller, minimum_role)
    if branch_id is not None:
        check_branch(caller, branch_id)
    if user_id is not None:
        check_self_access(caller, user_id)
