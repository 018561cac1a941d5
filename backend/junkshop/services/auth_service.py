# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Profile Authentication Service

WHY: Every transaction must be attributable to a person. Uses bcrypt for
password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import Profile
from junkshop.errors import ValidationError
from junkshop.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str):
        super().__init__(message, field="password")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> None:
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email address is required", field="email")


def validate_password_strength(password: str | None) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_profile(email: str, name: str, password: str, phone: str | None = None) -> Profile:
    """
    Create a new profile with a bcrypt password hash.

    The profile starts without a current business; the tenant directory
    either attaches one (create_business / accept_invitation) or falls back
    to default-tenant recovery on first use.

    Raises:
        ValidationError: bad email/name, or email already registered
        PasswordValidationError: weak password
    """
    email = normalize_email(email)
    validate_email(email)

    if not name or not name.strip():
        raise ValidationError("Name is required", field="name")

    existing = db.session.query(Profile).filter_by(email=email).first()
    if existing:
        raise ValidationError("Email is already registered", field="email")

    profile = Profile(
        email=email,
        name=name.strip(),
        phone=phone,
        password_hash=hash_password(password),
    )

    db.session.add(profile)
    db.session.commit()
    return profile


def authenticate(email: str, password: str) -> Profile | None:
    """
    Authenticate a profile by email and password.

    Returns the Profile if credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    profile = db.session.query(Profile).filter(
        Profile.email == normalize_email(email),
        Profile.is_active.is_(True),
    ).first()

    if not profile:
        return None

    if verify_password(password, profile.password_hash):
        profile.last_login_at = utcnow()
        db.session.commit()
        return profile

    return None
