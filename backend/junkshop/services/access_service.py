# Overview: Caller resolution and role-gated access to transactions.

"""
Access Control Gate

Resolves who is calling (profile, business, role) and answers three
questions about transactions:

1. Visibility: may the caller see this row?
   - business-wide roles (owner, manager): any row in their business
   - own-scope roles (employee, viewer): rows they authored in their business
   Rows in another business are never visible.
2. Editability: may the caller change this row?
   - requires can_manage_transactions (viewers never write)
   - completed rows only by roles with may_edit_completed
3. Stamping: who wrote this row?

All checks are predicates over (created_by, business_id). The repository
receives the same rule as a scoped TransactionFilter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..models import Business, BusinessUser, Profile, Transaction
from ..models.transactions import STATUS_COMPLETED
from ..permissions import CAN_MANAGE_TRANSACTIONS, RolePolicy, resolve_policy
from junkshop.errors import AuthError, ForbiddenError, NotFoundError
from junkshop.validation import TransactionFilter


@dataclass(frozen=True)
class CallerContext:
    profile: Profile
    business: Business
    membership: BusinessUser
    policy: RolePolicy

    @property
    def profile_id(self) -> str:
        return self.profile.id

    @property
    def business_id(self) -> str:
        return self.business.id

    @property
    def role(self) -> str:
        return self.policy.role

    def to_dict(self) -> dict:
        return {
            "profile": self.profile.to_dict(),
            "business": self.business.to_dict(),
            "role": self.role,
            "permissions": self.policy.capability_map(),
        }


class AccessGate:
    def __init__(self, session, identity_provider, directory):
        self.session = session
        self.identity_provider = identity_provider
        self.directory = directory

    def resolve_caller(self, token: str | None) -> CallerContext:
        """
        Bearer token -> CallerContext.

        Raises:
            AuthError: missing/invalid token or unknown profile
            ForbiddenError: membership revoked
            InfrastructureError: tenant could not be resolved
        """
        profile = self.resolve_profile(token)
        business, membership = self.directory.resolve_membership(profile)
        return self.context_for(profile, business, membership)

    def resolve_profile(self, token: str | None) -> Profile:
        """Bearer token -> Profile, without resolving a business."""
        identity = self.identity_provider.resolve_caller(token)
        profile = self.session.get(Profile, identity.id)
        if profile is None or not profile.is_active:
            raise AuthError("Profile not found or inactive")
        return profile

    @staticmethod
    def context_for(profile: Profile, business: Business, membership: BusinessUser) -> CallerContext:
        return CallerContext(
            profile=profile,
            business=business,
            membership=membership,
            policy=resolve_policy(membership.role),
        )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @staticmethod
    def can_view(caller: CallerContext, created_by: str | None, business_id: str | None) -> bool:
        if business_id != caller.business_id:
            return False
        if caller.policy.sees_all_transactions:
            return True
        return created_by == caller.profile_id

    @classmethod
    def can_edit(cls, caller: CallerContext, created_by: str | None, business_id: str | None, status: str) -> bool:
        if not cls.can_view(caller, created_by, business_id):
            return False
        if not caller.policy.has(CAN_MANAGE_TRANSACTIONS):
            return False
        if status == STATUS_COMPLETED and not caller.policy.may_edit_completed:
            return False
        return True

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    def require_capability(self, caller: CallerContext, capability: str) -> None:
        if not caller.policy.has(capability):
            raise ForbiddenError(
                "You do not have permission to perform this action",
                {"required_permission": capability},
            )

    def require_visible(self, caller: CallerContext, tx: Transaction | None) -> Transaction:
        # Invisible rows are reported as missing so ids in other tenants do not leak
        if tx is None or not self.can_view(caller, tx.created_by, tx.business_id):
            raise NotFoundError("Transaction not found")
        return tx

    def require_editable(self, caller: CallerContext, tx: Transaction) -> None:
        self.require_visible(caller, tx)
        self.require_capability(caller, CAN_MANAGE_TRANSACTIONS)
        if tx.status == STATUS_COMPLETED and not caller.policy.may_edit_completed:
            raise ForbiddenError(
                "Completed transactions can only be modified by an owner or manager",
                {"status": tx.status, "role": caller.role},
            )

    def require_deletable(self, caller: CallerContext, tx: Transaction) -> None:
        self.require_visible(caller, tx)
        self.require_capability(caller, CAN_MANAGE_TRANSACTIONS)
        if not caller.policy.sees_all_transactions:
            raise ForbiddenError("Only an owner or manager can delete transactions", {"role": caller.role})
        if tx.status == STATUS_COMPLETED:
            raise ForbiddenError("Completed transactions cannot be deleted", {"status": tx.status})

    def scope_filter(self, caller: CallerContext, query: TransactionFilter) -> TransactionFilter:
        """Pin the list filter to the caller's business, and author when scope is 'own'."""
        if caller.policy.sees_all_transactions:
            return query.scoped(business_id=caller.business_id, created_by=None)
        return query.scoped(business_id=caller.business_id, created_by=caller.profile_id)

    def filter_visible(self, caller: CallerContext, rows: Iterable[Transaction]) -> list[Transaction]:
        return [tx for tx in rows if self.can_view(caller, tx.created_by, tx.business_id)]

    # ------------------------------------------------------------------
    # Audit stamps
    # ------------------------------------------------------------------

    @staticmethod
    def stamp_create(caller: CallerContext) -> dict:
        return {
            "business_id": caller.business_id,
            "created_by": caller.profile_id,
            "created_by_name": caller.profile.name,
            "created_by_role": caller.role,
        }

    @staticmethod
    def stamp_update(caller: CallerContext) -> dict:
        return {
            "updated_by": caller.profile_id,
            "updated_by_name": caller.profile.name,
        }
