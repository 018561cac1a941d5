# Overview: Request and capability decorators for API routes.

from functools import wraps

from flask import g, jsonify

from . import get_services
from .errors import JunkshopError
from .routes.common import bearer_token, error_response


def require_auth(f):
    """
    Require authentication and establish tenant context.

    Sets g.caller (CallerContext: profile, business, membership, policy).
    The business is resolved from the profile's current-business pointer on
    every request, so a switch takes effect on the next call.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - Profile deactivated
    Returns 403 if the membership in the current business was revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            g.caller = get_services().gate.resolve_caller(token)
            g.profile = g.caller.profile
        except JunkshopError as e:
            return error_response(e)

        return f(*args, **kwargs)

    return decorated_function


def require_profile(f):
    """
    Require authentication only; sets g.profile.

    For routes that pick or join a business (create, switch, accept
    invitation) and so must work before a business resolves.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            g.profile = get_services().gate.resolve_profile(token)
        except JunkshopError as e:
            return error_response(e)

        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """
    Require a capability resolved from the caller's role.

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            caller = getattr(g, "caller", None)
            if caller is None:
                return jsonify({"error": "Authentication required"}), 401

            try:
                get_services().gate.require_capability(caller, capability)
            except JunkshopError as e:
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
