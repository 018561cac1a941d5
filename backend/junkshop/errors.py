# Overview: Domain error taxonomy shared by services and routes.

"""
Junkshop error taxonomy.

Every domain error carries the HTTP status it maps to and an optional
``details`` mapping, so routes can render any of them the same way:

    except JunkshopError as e:
        return jsonify(e.to_dict()), e.status_code

Validation and authorization errors are raised before any write.
InfrastructureError wraps store failures; the original exception is kept
as ``__cause__`` for logging.
"""


class JunkshopError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(JunkshopError):
    """400-level input problem, identified by field (and item index)."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None, index: int | None = None):
        details = {}
        if field is not None:
            details["field"] = field
        if index is not None:
            details["index"] = index
        super().__init__(message, details)
        self.field = field
        self.index = index


class AuthError(JunkshopError):
    """Missing, invalid or expired credential."""

    status_code = 401


class ForbiddenError(JunkshopError):
    """Role or ownership violation."""

    status_code = 403


class InvalidTransitionError(JunkshopError):
    """Illegal status change (e.g. leaving a terminal state)."""

    status_code = 403

    def __init__(self, from_status: str, to_status: str, message: str | None = None):
        super().__init__(
            message or f"Cannot move transaction from '{from_status}' to '{to_status}'",
            {"from_status": from_status, "to_status": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class NotFoundError(JunkshopError):
    status_code = 404


class InvitationError(JunkshopError):
    """Invitation cannot be redeemed."""

    status_code = 400


class InvitationExpiredError(InvitationError):
    pass


class InvitationAlreadyUsedError(InvitationError):
    pass


class InfrastructureError(JunkshopError):
    """Store or network failure. Message is generic; the cause is chained."""

    status_code = 500
