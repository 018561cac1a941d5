# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/junkshop/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on signup
- bcrypt password hashes
- Opaque session tokens, hashed at rest, revocable on signout
- Failed sign-ins recorded as security events
"""

from flask import Blueprint, g, jsonify, request

from .. import get_services
from ..decorators import require_auth
from ..errors import JunkshopError
from ..services import auth_service, security_service, session_service
from .common import bearer_token, error_response, internal_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(profile, token, session):
    """Signin/signup response: token plus the resolved tenant context."""
    caller = get_services().gate.context_for(
        profile, *get_services().directory.resolve_membership(profile)
    )
    payload = caller.to_dict()
    payload["token"] = token
    payload["session"] = session.to_dict()
    return payload


@auth_bp.post("/signup")
def signup_route():
    """
    Create a profile and sign it in.

    With "business_name", the new profile also creates that business and
    becomes its owner. Without it, the profile lands in the default business
    on first resolution.
    """
    try:
        data = request.get_json(silent=True) or {}
        profile = auth_service.create_profile(
            email=data.get("email"),
            name=data.get("name"),
            password=data.get("password"),
            phone=data.get("phone"),
        )

        business_name = data.get("business_name")
        if business_name:
            get_services().directory.create_business(profile, business_name)

        session, token = session_service.create_session(
            profile_id=profile.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        payload = _session_payload(profile, token, session)
        payload["message"] = "Signup successful"
        return jsonify(payload), 201

    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("sign up profile")


@auth_bp.post("/signin")
def signin_route():
    """
    Authenticate by email and password and create a session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        profile = auth_service.authenticate(email, password)

        if not profile:
            security_service.log_security_event(
                profile_id=None,
                event_type="SIGNIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"Invalid credentials for {auth_service.normalize_email(email)}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            profile_id=profile.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )

        payload = _session_payload(profile, token, session)
        payload["message"] = "Signin successful"
        return jsonify(payload), 200

    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("sign in profile")


@auth_bp.post("/signout")
def signout_route():
    """Revoke the current session token."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authentication required"}), 401

    try:
        revoked = session_service.revoke_session(token)
    except Exception:
        return internal_error("sign out profile")

    if not revoked:
        return jsonify({"error": "Session not found"}), 404

    return jsonify({"message": "Signed out"}), 200


@auth_bp.get("/profile")
@require_auth
def profile_route():
    """Return the caller's profile, current business, role and capabilities."""
    return jsonify(g.caller.to_dict()), 200
