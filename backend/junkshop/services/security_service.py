# Overview: Append-only security event audit trail.

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent
from junkshop.time_utils import utcnow


def log_security_event(
    profile_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    business_id: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - FORBIDDEN
    - INVALID_TRANSITION
    - SIGNIN_FAILED
    - SIGNOUT
    - BUSINESS_SWITCH_DENIED
    - INVITATION_REJECTED
    """
    event = SecurityEvent(
        profile_id=profile_id,
        business_id=business_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event
