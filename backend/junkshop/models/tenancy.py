from __future__ import annotations

import uuid

from ..extensions import db
from ..permissions import resolve_policy
from junkshop.time_utils import to_utc_z


def new_uuid() -> str:
    return str(uuid.uuid4())


class Business(db.Model):
    """
    Multi-tenant root: every tenant is a Business.

    All memberships, invitations and transactions belong to exactly one
    business. No data may cross business boundaries.
    """
    __tablename__ = "businesses"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    # Opaque per-tenant settings (currency, timezone, feature flags...)
    settings = db.Column(db.JSON, nullable=False, default=dict)
    subscription_plan = db.Column(db.String(16), nullable=False, default="basic")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Identity of the creating profile; not a FK so a business can outlive it
    created_by = db.Column(db.String(36), nullable=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "logo_url": self.logo_url,
            "settings": self.settings or {},
            "subscription_plan": self.subscription_plan,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BusinessUser(db.Model):
    """
    Membership: binds a profile to a business with a role.

    Capabilities are not stored; they are resolved from the role so that
    every enforcement point agrees. is_active=False is a soft delete that
    keeps authorship history intact.
    """
    __tablename__ = "business_users"
    __table_args__ = (
        db.UniqueConstraint("business_id", "profile_id", name="uq_business_users_business_profile"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    business_id = db.Column(db.String(36), db.ForeignKey("businesses.id"), nullable=False, index=True)
    profile_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False, index=True)

    role = db.Column(db.String(16), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    invited_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)
    invited_at = db.Column(db.DateTime(timezone=True), nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("memberships", lazy=True))
    profile = db.relationship("Profile", foreign_keys=[profile_id], backref=db.backref("memberships", lazy=True))

    @property
    def permissions(self) -> dict[str, bool]:
        return resolve_policy(self.role).capability_map()

    def __repr__(self) -> str:
        return f"<BusinessUser business={self.business_id} profile={self.profile_id} role={self.role}>"

    def to_dict(self) -> dict:
        profile = self.profile
        return {
            "id": self.id,
            "business_id": self.business_id,
            "profile_id": self.profile_id,
            "name": profile.name if profile else None,
            "email": profile.email if profile else None,
            "role": self.role,
            "permissions": self.permissions,
            "is_active": self.is_active,
            "invited_by": self.invited_by,
            "invited_at": to_utc_z(self.invited_at),
            "joined_at": to_utc_z(self.joined_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BusinessInvitation(db.Model):
    """
    Invitation to join a business.

    Redeemable only while status == "pending" and now < expires_at.
    The status column doubles as the single-writer gate for redemption.
    """
    __tablename__ = "business_invitations"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    business_id = db.Column(db.String(36), db.ForeignKey("businesses.id"), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)
    token = db.Column(db.String(128), nullable=False, unique=True, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    invited_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)
    accepted_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("invitations", lazy=True))

    def to_dict(self, include_token: bool = False) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "email": self.email,
            "role": self.role,
            "expires_at": to_utc_z(self.expires_at),
            "status": self.status,
            "invited_by": self.invited_by,
            "accepted_by": self.accepted_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_token:
            data["token"] = self.token
        return data
