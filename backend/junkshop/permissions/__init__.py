# Overview: Permission system package.
# Re-exports all public APIs for short imports.

from .definitions import (
    CAPABILITY_DEFINITIONS,
    CAN_MANAGE_EMPLOYEES,
    CAN_MANAGE_TRANSACTIONS,
    CAN_MANAGE_CASH,
    CAN_VIEW_REPORTS,
    CAN_MANAGE_SETTINGS,
    CAN_INVITE_USERS,
    get_all_capability_codes,
)
from .roles import (
    OWNER,
    MANAGER,
    EMPLOYEE,
    VIEWER,
    VALID_ROLES,
    ROLE_POLICIES,
    RolePolicy,
    resolve_policy,
    validate_role,
    can_grant_role,
)

__all__ = [
    "CAPABILITY_DEFINITIONS",
    "CAN_MANAGE_EMPLOYEES",
    "CAN_MANAGE_TRANSACTIONS",
    "CAN_MANAGE_CASH",
    "CAN_VIEW_REPORTS",
    "CAN_MANAGE_SETTINGS",
    "CAN_INVITE_USERS",
    "get_all_capability_codes",
    "OWNER",
    "MANAGER",
    "EMPLOYEE",
    "VIEWER",
    "VALID_ROLES",
    "ROLE_POLICIES",
    "RolePolicy",
    "resolve_policy",
    "validate_role",
    "can_grant_role",
]
