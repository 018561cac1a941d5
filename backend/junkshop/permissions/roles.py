# Overview: Role policy table; the one place a role turns into capabilities.

"""
Role -> capability resolution.

Every enforcement point (route decorators, the access gate, the tenant
directory) asks resolve_policy() instead of comparing role strings inline.

Scopes:
- "business": sees every transaction in the business
- "own": sees only transactions the caller authored
"""

from __future__ import annotations

from dataclasses import dataclass

from .definitions import (
    CAN_INVITE_USERS,
    CAN_MANAGE_CASH,
    CAN_MANAGE_EMPLOYEES,
    CAN_MANAGE_SETTINGS,
    CAN_MANAGE_TRANSACTIONS,
    CAN_VIEW_REPORTS,
    get_all_capability_codes,
)


OWNER = "owner"
MANAGER = "manager"
EMPLOYEE = "employee"
VIEWER = "viewer"

VALID_ROLES = (OWNER, MANAGER, EMPLOYEE, VIEWER)

# Higher rank may grant lower-or-equal roles
ROLE_RANK = {VIEWER: 0, EMPLOYEE: 1, MANAGER: 2, OWNER: 3}

SCOPE_BUSINESS = "business"
SCOPE_OWN = "own"


@dataclass(frozen=True)
class RolePolicy:
    role: str
    capabilities: frozenset[str]
    transaction_scope: str
    may_edit_completed: bool

    def has(self, capability: str) -> bool:
        return capability in self.capabilities

    @property
    def sees_all_transactions(self) -> bool:
        return self.transaction_scope == SCOPE_BUSINESS

    def capability_map(self) -> dict[str, bool]:
        return {code: code in self.capabilities for code in get_all_capability_codes()}


ROLE_POLICIES = {
    OWNER: RolePolicy(
        role=OWNER,
        capabilities=frozenset(get_all_capability_codes()),
        transaction_scope=SCOPE_BUSINESS,
        may_edit_completed=True,
    ),
    MANAGER: RolePolicy(
        role=MANAGER,
        capabilities=frozenset({
            CAN_MANAGE_EMPLOYEES,
            CAN_MANAGE_TRANSACTIONS,
            CAN_MANAGE_CASH,
            CAN_VIEW_REPORTS,
            CAN_INVITE_USERS,
        }),
        transaction_scope=SCOPE_BUSINESS,
        may_edit_completed=True,
    ),
    EMPLOYEE: RolePolicy(
        role=EMPLOYEE,
        capabilities=frozenset({CAN_MANAGE_TRANSACTIONS, CAN_VIEW_REPORTS}),
        transaction_scope=SCOPE_OWN,
        may_edit_completed=False,
    ),
    VIEWER: RolePolicy(
        role=VIEWER,
        capabilities=frozenset({CAN_VIEW_REPORTS}),
        transaction_scope=SCOPE_OWN,
        may_edit_completed=False,
    ),
}


def validate_role(role: str) -> bool:
    return role in ROLE_POLICIES


def resolve_policy(role: str) -> RolePolicy:
    """
    Resolve the policy for a role.

    Unknown roles raise KeyError: a membership row with a role outside
    VALID_ROLES is a data bug, not something to guess around.
    """
    return ROLE_POLICIES[role]


def can_grant_role(granter_role: str, target_role: str) -> bool:
    return ROLE_RANK[granter_role] >= ROLE_RANK[target_role]
