# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management

Tokens are cryptographically secure, hashed in the database, and
time-limited. This module is the identity provider for the rest of the
system: resolve_caller(token) -> CallerIdentity or AuthError.

Tenant context is NOT captured in the session. The caller's business is
resolved on every request from the profile's current-business pointer, so
switching business takes effect immediately without re-login.

SECURITY FEATURES:
- 32 bytes of entropy per token (secrets.token_hex)
- Tokens hashed with SHA-256 before storage
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on signout
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import Profile, SessionToken
from junkshop.errors import AuthError
from junkshop.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


@dataclass(frozen=True)
class CallerIdentity:
    id: str
    email: str


def generate_token() -> str:
    """Return a 64-character hex token (plaintext; sent to the client once)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    profile_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for a profile.

    Returns (session_record, plaintext_token).
    """
    profile = db.session.get(Profile, profile_id)
    if not profile or not profile.is_active:
        raise AuthError("Profile not found or inactive")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        profile_id=profile_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionToken | None:
    """
    Validate session token and return the live SessionToken.

    Returns None if the token is unknown, revoked, expired, idle too long,
    or belongs to a deactivated profile. Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "Idle timeout"
        db.session.commit()
        return None

    profile = session.profile
    if not profile or not profile.is_active:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "Profile deactivated"
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return session


def revoke_session(token: str, reason: str = "User signout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    now = utcnow()
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason
    if session.profile:
        session.profile.last_logout_at = now

    db.session.commit()
    return True


class SessionIdentityProvider:
    """Identity provider backed by session tokens."""

    def resolve_caller(self, token: str | None) -> CallerIdentity:
        if not token:
            raise AuthError("Authentication required")

        session = validate_session(token)
        if session is None:
            raise AuthError("Invalid or expired token")

        return CallerIdentity(id=session.profile.id, email=session.profile.email)
