# Overview: Shared helpers for API routes: bearer tokens and error rendering.

from flask import current_app, g, jsonify, request

from ..errors import ForbiddenError, InfrastructureError, InvalidTransitionError, JunkshopError
from ..services import security_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _log_denial(e: JunkshopError) -> None:
    caller = getattr(g, "caller", None)
    event_type = "INVALID_TRANSITION" if isinstance(e, InvalidTransitionError) else "FORBIDDEN"
    try:
        security_service.log_security_event(
            profile_id=caller.profile_id if caller else None,
            business_id=caller.business_id if caller else None,
            event_type=event_type,
            success=False,
            resource=request.path,
            action=request.method,
            reason=e.message,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
    except Exception:
        # The denial itself is still returned; only the audit row is lost
        current_app.logger.exception("Failed to record security event")


def error_response(e: JunkshopError):
    """Render a domain error as {"error", "details"} with its status code."""
    if isinstance(e, (ForbiddenError, InvalidTransitionError)):
        _log_denial(e)
    elif isinstance(e, InfrastructureError):
        current_app.logger.error("Infrastructure failure: %s (cause: %r)", e.message, e.__cause__)
    return jsonify(e.to_dict()), e.status_code


def internal_error(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
