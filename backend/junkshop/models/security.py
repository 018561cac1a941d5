from __future__ import annotations

from ..extensions import db
from junkshop.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log with tenant context.

    Records denied edits, cross-business lookups and sign-in failures.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_profile_type", "profile_id", "event_type"),
        db.Index("ix_security_events_business_occurred", "business_id", "occurred_at"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Nullable for pre-auth events
    business_id = db.Column(db.String(36), db.ForeignKey("businesses.id"), nullable=True, index=True)
    profile_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # FORBIDDEN, SIGNIN_FAILED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g. "/api/transactions/TXN-1"
    action = db.Column(db.String(64), nullable=True)     # e.g. "PUT"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "profile_id": self.profile_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
