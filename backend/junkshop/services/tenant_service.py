# Overview: Tenant (business) directory: businesses, memberships, invitations.

"""
Business Directory: Tenants, Memberships and Invitations

WHY: Every transaction belongs to exactly one business, and every caller acts
inside exactly one business at a time. This module owns the answer to
"which business is this profile in, and with which role?".

SECURITY INVARIANTS:
1. A profile's current-business pointer only moves to a business where it
   holds an active membership
2. Capabilities come from resolve_policy(role); no inline role checks
3. Invitation redemption flips status with a conditional UPDATE
   (WHERE status = 'pending'); zero rows updated means someone else won
4. Removing a member is a soft delete; the last active owner stays
5. Default-tenant recovery is logged and attempted once per resolution

USAGE:
    directory = get_services().directory
    business, membership = directory.resolve_membership(profile)
"""

from __future__ import annotations

import secrets
from contextlib import contextmanager
from datetime import timedelta
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..models import Business, BusinessInvitation, BusinessUser, Profile
from ..permissions import (
    CAN_INVITE_USERS,
    CAN_MANAGE_EMPLOYEES,
    CAN_MANAGE_SETTINGS,
    EMPLOYEE,
    OWNER,
    can_grant_role,
    resolve_policy,
    validate_role,
)
from junkshop.errors import (
    ForbiddenError,
    InfrastructureError,
    InvitationAlreadyUsedError,
    InvitationError,
    InvitationExpiredError,
    NotFoundError,
    ValidationError,
)
from junkshop.time_utils import utcnow


INVITATION_PENDING = "pending"
INVITATION_ACCEPTED = "accepted"
INVITATION_CANCELLED = "cancelled"
INVITATION_EXPIRED = "expired"

SUBSCRIPTION_PLANS = ("basic", "premium", "enterprise")

# Business attributes an owner may edit through update_business
BUSINESS_EDITABLE_FIELDS = (
    "name", "description", "address", "phone", "email", "logo_url", "settings", "subscription_plan",
)


class TenantDirectory:
    def __init__(
        self,
        session,
        default_business_id: str,
        default_business_name: str,
        bootstrap_owner_email: str | None,
        invitation_ttl: timedelta = timedelta(days=7),
        clock: Callable = utcnow,
    ):
        self.session = session
        self.default_business_id = default_business_id
        self.default_business_name = default_business_name
        self.bootstrap_owner_email = (bootstrap_owner_email or "").strip().lower() or None
        self.invitation_ttl = invitation_ttl
        self.clock = clock

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _writing(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error("Business directory failed to %s: %s", action, exc)
            raise InfrastructureError(f"Could not {action}") from exc

    def _membership(self, business_id: str, profile_id: str) -> BusinessUser | None:
        return self.session.query(BusinessUser).filter_by(
            business_id=business_id,
            profile_id=profile_id,
        ).first()

    def _active_membership(self, business_id: str, profile_id: str) -> BusinessUser | None:
        membership = self._membership(business_id, profile_id)
        if membership and membership.is_active:
            return membership
        return None

    def _require_capability(self, business_id: str, actor: Profile, capability: str) -> BusinessUser:
        membership = self._active_membership(business_id, actor.id)
        if membership is None:
            raise ForbiddenError("You are not a member of this business")
        if not resolve_policy(membership.role).has(capability):
            raise ForbiddenError(
                "You do not have permission to perform this action",
                {"required_permission": capability},
            )
        return membership

    def _require_business(self, business_id: str) -> Business:
        business = self.session.get(Business, business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business

    def _active_owner_count(self, business_id: str) -> int:
        return self.session.query(BusinessUser).filter_by(
            business_id=business_id,
            role=OWNER,
            is_active=True,
        ).count()

    # ------------------------------------------------------------------
    # Businesses
    # ------------------------------------------------------------------

    def create_business(
        self,
        creator: Profile,
        name: str,
        description: str | None = None,
        address: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> tuple[Business, BusinessUser]:
        """
        Create a business, make the creator its owner, and point the
        creator's profile at it. One commit: all three land or none do.
        """
        if not name or not name.strip():
            raise ValidationError("Business name is required", field="name")

        now = self.clock()
        with self._writing("create business"):
            business = Business(
                name=name.strip(),
                description=description,
                address=address,
                phone=phone,
                email=email,
                created_by=creator.id,
                settings={},
            )
            self.session.add(business)
            self.session.flush()

            membership = BusinessUser(
                business_id=business.id,
                profile_id=creator.id,
                role=OWNER,
                is_active=True,
                joined_at=now,
            )
            self.session.add(membership)

            creator.current_business_id = business.id
            self.session.commit()

        return business, membership

    def get_business(self, business_id: str) -> Business:
        return self._require_business(business_id)

    def update_business(self, actor: Profile, business_id: str, changes: dict) -> Business:
        """Owner-only (can_manage_settings) edit of business attributes."""
        business = self._require_business(business_id)
        self._require_capability(business_id, actor, CAN_MANAGE_SETTINGS)

        unknown = set(changes) - set(BUSINESS_EDITABLE_FIELDS)
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Unknown field: {field}", field=field)
        if "name" in changes and (not isinstance(changes["name"], str) or not changes["name"].strip()):
            raise ValidationError("Business name is required", field="name")
        if "subscription_plan" in changes and changes["subscription_plan"] not in SUBSCRIPTION_PLANS:
            raise ValidationError("Invalid subscription plan", field="subscription_plan")
        if "settings" in changes and not isinstance(changes["settings"], dict):
            raise ValidationError("settings must be an object", field="settings")

        with self._writing("update business"):
            for key, value in changes.items():
                setattr(business, key, value.strip() if key == "name" else value)
            self.session.commit()

        return business

    def list_user_businesses(self, profile: Profile) -> list[dict]:
        """Active businesses where the profile holds an active membership."""
        rows = (
            self.session.query(BusinessUser, Business)
            .join(Business, Business.id == BusinessUser.business_id)
            .filter(
                BusinessUser.profile_id == profile.id,
                BusinessUser.is_active.is_(True),
                Business.is_active.is_(True),
            )
            .order_by(Business.name)
            .all()
        )
        return [
            {
                "business": business.to_dict(),
                "role": membership.role,
                "permissions": membership.permissions,
                "is_current": business.id == profile.current_business_id,
            }
            for membership, business in rows
        ]

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _load_memberships(self, business_id: str) -> list[BusinessUser]:
        return (
            self.session.query(BusinessUser)
            .filter_by(business_id=business_id, is_active=True)
            .order_by(BusinessUser.joined_at)
            .all()
        )

    def list_members(self, actor: Profile, business_id: str) -> list[dict]:
        """
        Active members of a business. Requires can_manage_employees.

        If the membership query fails or comes back empty, members are
        reconstructed from profiles whose current business is this one.
        Reconstructed entries are display-only: they carry no role and no
        capabilities, and nothing is written.
        """
        self._require_capability(business_id, actor, CAN_MANAGE_EMPLOYEES)
        try:
            memberships = self._load_memberships(business_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.warning("Membership query failed for business %s: %s", business_id, exc)
            memberships = []

        if memberships:
            return [m.to_dict() for m in memberships]

        current_app.logger.warning(
            "No memberships found for business %s; falling back to profile pointers",
            business_id,
        )
        profiles = self.session.query(Profile).filter_by(current_business_id=business_id).all()
        return [
            {
                "id": None,
                "business_id": business_id,
                "profile_id": p.id,
                "name": p.name,
                "email": p.email,
                "role": None,
                "permissions": {},
                "is_active": p.is_active,
                "reconstructed": True,
            }
            for p in profiles
        ]

    def update_user_role(self, actor: Profile, business_id: str, profile_id: str, role: str) -> BusinessUser:
        if not validate_role(role):
            raise ValidationError(f"Invalid role '{role}'", field="role")

        actor_membership = self._require_capability(business_id, actor, CAN_MANAGE_EMPLOYEES)
        if not can_grant_role(actor_membership.role, role):
            raise ForbiddenError(f"A {actor_membership.role} cannot grant the {role} role")

        membership = self._active_membership(business_id, profile_id)
        if membership is None:
            raise NotFoundError("Member not found")
        if not can_grant_role(actor_membership.role, membership.role):
            raise ForbiddenError(f"A {actor_membership.role} cannot change the role of a {membership.role}")

        if membership.role == OWNER and role != OWNER and self._active_owner_count(business_id) <= 1:
            raise ForbiddenError("A business must keep at least one owner")

        with self._writing("update member role"):
            membership.role = role
            self.session.commit()

        return membership

    def remove_user_from_business(self, actor: Profile, business_id: str, profile_id: str) -> BusinessUser:
        """Soft delete: the membership row stays for authorship history."""
        actor_membership = self._require_capability(business_id, actor, CAN_MANAGE_EMPLOYEES)

        membership = self._active_membership(business_id, profile_id)
        if membership is None:
            raise NotFoundError("Member not found")
        if not can_grant_role(actor_membership.role, membership.role):
            raise ForbiddenError(f"A {actor_membership.role} cannot remove a {membership.role}")
        if membership.role == OWNER and self._active_owner_count(business_id) <= 1:
            raise ForbiddenError("Cannot remove the last owner of a business")

        with self._writing("remove member"):
            membership.is_active = False
            self.session.commit()

        return membership

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    def invite_user(self, actor: Profile, business_id: str, email: str, role: str) -> BusinessInvitation:
        """
        Create a pending invitation. Does not create a membership.

        Raises:
            ValidationError: bad email/role, or already an active member
            ForbiddenError: caller lacks can_invite_users or outranks
        """
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email address is required", field="email")
        if not validate_role(role):
            raise ValidationError(f"Invalid role '{role}'", field="role")

        business = self._require_business(business_id)
        actor_membership = self._require_capability(business_id, actor, CAN_INVITE_USERS)
        if not can_grant_role(actor_membership.role, role):
            raise ForbiddenError(f"A {actor_membership.role} cannot invite a {role}")

        existing = (
            self.session.query(BusinessUser)
            .join(Profile, Profile.id == BusinessUser.profile_id)
            .filter(
                BusinessUser.business_id == business.id,
                BusinessUser.is_active.is_(True),
                Profile.email == email,
            )
            .first()
        )
        if existing:
            raise ValidationError("This user is already a member of the business", field="email")

        with self._writing("create invitation"):
            invitation = BusinessInvitation(
                business_id=business.id,
                email=email,
                role=role,
                token=secrets.token_hex(32),
                expires_at=self.clock() + self.invitation_ttl,
                status=INVITATION_PENDING,
                invited_by=actor.id,
            )
            self.session.add(invitation)
            self.session.commit()

        return invitation

    def list_invitations(self, actor: Profile, business_id: str, status: str | None = INVITATION_PENDING) -> list[BusinessInvitation]:
        self._require_capability(business_id, actor, CAN_INVITE_USERS)
        query = self.session.query(BusinessInvitation).filter_by(business_id=business_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(BusinessInvitation.created_at.desc()).all()

    def cancel_invitation(self, actor: Profile, invitation_id: str) -> BusinessInvitation:
        invitation = self.session.get(BusinessInvitation, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        self._require_capability(invitation.business_id, actor, CAN_INVITE_USERS)

        if invitation.status != INVITATION_PENDING:
            raise InvitationError(f"Invitation is already {invitation.status}")

        with self._writing("cancel invitation"):
            updated = (
                self.session.query(BusinessInvitation)
                .filter_by(id=invitation.id, status=INVITATION_PENDING)
                .update({"status": INVITATION_CANCELLED, "updated_at": self.clock()}, synchronize_session=False)
            )
            if updated != 1:
                self.session.rollback()
                raise InvitationAlreadyUsedError("Invitation is no longer pending")
            self.session.commit()

        self.session.refresh(invitation)
        return invitation

    def accept_invitation(self, profile: Profile, token: str) -> BusinessUser:
        """
        Redeem an invitation token for the calling profile.

        Order of checks: existence, accepted, cancelled, expiry, email
        match. The status flip is a conditional UPDATE; if another request
        redeemed the token first, zero rows change and this call fails.
        """
        if not token:
            raise ValidationError("Invitation token is required", field="token")

        invitation = self.session.query(BusinessInvitation).filter_by(token=token).first()
        if invitation is None:
            raise NotFoundError("Invitation not found")

        if invitation.status == INVITATION_ACCEPTED:
            raise InvitationAlreadyUsedError("Invitation has already been accepted")
        if invitation.status == INVITATION_CANCELLED:
            raise InvitationError("Invitation has been cancelled")

        now = self.clock()
        if invitation.status == INVITATION_EXPIRED or now >= invitation.expires_at:
            if invitation.status == INVITATION_PENDING:
                with self._writing("expire invitation"):
                    invitation.status = INVITATION_EXPIRED
                    self.session.commit()
            raise InvitationExpiredError("Invitation has expired")

        if (profile.email or "").strip().lower() != invitation.email.strip().lower():
            raise ForbiddenError("This invitation was sent to a different email address")

        business = self.session.get(Business, invitation.business_id)
        if business is None or not business.is_active:
            raise InvitationError("The inviting business is no longer active")

        with self._writing("accept invitation"):
            updated = (
                self.session.query(BusinessInvitation)
                .filter_by(id=invitation.id, status=INVITATION_PENDING)
                .update(
                    {"status": INVITATION_ACCEPTED, "accepted_by": profile.id, "updated_at": now},
                    synchronize_session=False,
                )
            )
            if updated != 1:
                self.session.rollback()
                raise InvitationAlreadyUsedError("Invitation has already been used")

            membership = self._membership(invitation.business_id, profile.id)
            if membership is None:
                membership = BusinessUser(
                    business_id=invitation.business_id,
                    profile_id=profile.id,
                )
                self.session.add(membership)
            membership.role = invitation.role
            membership.is_active = True
            membership.invited_by = invitation.invited_by
            membership.invited_at = invitation.created_at
            membership.joined_at = now

            if not profile.current_business_id:
                profile.current_business_id = invitation.business_id

            self.session.commit()

        self.session.refresh(invitation)
        return membership

    # ------------------------------------------------------------------
    # Current business
    # ------------------------------------------------------------------

    def switch_business(self, profile: Profile, business_id: str) -> tuple[Business, BusinessUser]:
        """Move the profile's pointer. On any failure the pointer is unchanged."""
        business = self.session.get(Business, business_id)
        membership = self._active_membership(business_id, profile.id) if business else None
        if business is None or not business.is_active or membership is None:
            raise ForbiddenError("You do not have access to this business")

        with self._writing("switch business"):
            profile.current_business_id = business.id
            self.session.commit()

        return business, membership

    def _lookup_current(self, profile: Profile) -> tuple[Business, BusinessUser] | None:
        """
        Return (business, active membership) for the profile's pointer, or
        None when the pointer does not resolve.

        An inactive membership in an active business is a real denial, not
        a missing tenant.
        """
        if not profile.current_business_id:
            return None

        business = self.session.get(Business, profile.current_business_id)
        if business is None or not business.is_active:
            return None

        membership = self._membership(business.id, profile.id)
        if membership is None:
            return None
        if not membership.is_active:
            raise ForbiddenError("Your access to this business has been revoked")

        return business, membership

    def ensure_default_business(self) -> Business:
        business = self.session.get(Business, self.default_business_id)
        if business is None:
            with self._writing("create default business"):
                business = Business(
                    id=self.default_business_id,
                    name=self.default_business_name,
                    settings={},
                )
                self.session.add(business)
                self.session.commit()
        return business

    def _recover_default(self, profile: Profile) -> None:
        current_app.logger.warning(
            "Profile %s (%s) has no resolvable business (pointer=%s); assigning default business %s",
            profile.id,
            profile.email,
            profile.current_business_id,
            self.default_business_id,
        )
        business = self.ensure_default_business()

        membership = self._membership(business.id, profile.id)
        if membership is not None and not membership.is_active:
            raise ForbiddenError("Your access to this business has been revoked")

        with self._writing("assign default business"):
            if membership is None:
                is_bootstrap_owner = (
                    self.bootstrap_owner_email is not None
                    and (profile.email or "").lower() == self.bootstrap_owner_email
                )
                self.session.add(BusinessUser(
                    business_id=business.id,
                    profile_id=profile.id,
                    role=OWNER if is_bootstrap_owner else EMPLOYEE,
                    is_active=True,
                    joined_at=self.clock(),
                ))
            profile.current_business_id = business.id
            self.session.commit()

    def resolve_membership(self, profile: Profile) -> tuple[Business, BusinessUser]:
        """
        Resolve the caller's current business and membership.

        If the pointer does not resolve, default-tenant recovery runs once
        and the lookup is retried once. A second miss is an infrastructure
        problem, not something to paper over.
        """
        resolved = self._lookup_current(profile)
        if resolved is not None:
            return resolved

        self._recover_default(profile)

        resolved = self._lookup_current(profile)
        if resolved is None:
            current_app.logger.error(
                "Default business recovery did not produce a membership for profile %s",
                profile.id,
            )
            raise InfrastructureError("Could not resolve a business for this account")
        return resolved
