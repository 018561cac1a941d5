# Overview: Transaction status state machine.

"""
Junkshop Transaction Lifecycle

================================================================================
PURPOSE: Enforce the for-payment -> in-progress -> completed | cancelled lifecycle
================================================================================

STATE MACHINE:
    for-payment -> in-progress -> completed
    for-payment -> completed            (paid on the spot)
    for-payment | in-progress -> cancelled

    for-payment:  Weighed and priced, waiting for cash to change hands
    in-progress:  Being worked (pickup/delivery underway)
    completed:    Paid. Terminal.
    cancelled:    Abandoned. Terminal.

RULES:
1. completed and cancelled are terminal; nothing leaves them
2. No backwards movement (in-progress -> for-payment is forbidden)
3. Setting the current status again is a no-op, not an error
4. Status changes never touch subtotal/total
================================================================================
"""

from __future__ import annotations

from junkshop.errors import InvalidTransitionError, ValidationError
from junkshop.models.transactions import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FOR_PAYMENT,
    STATUS_IN_PROGRESS,
    TRANSACTION_STATUSES,
)


VALID_STATUSES = set(TRANSACTION_STATUSES)
TERMINAL_STATUSES = {STATUS_COMPLETED, STATUS_CANCELLED}

VALID_TRANSITIONS = {
    (STATUS_FOR_PAYMENT, STATUS_IN_PROGRESS),
    (STATUS_FOR_PAYMENT, STATUS_COMPLETED),
    (STATUS_IN_PROGRESS, STATUS_COMPLETED),
    (STATUS_FOR_PAYMENT, STATUS_CANCELLED),
    (STATUS_IN_PROGRESS, STATUS_CANCELLED),
}


def validate_status(status: str) -> None:
    """
    Validate that a status value is one of the allowed states.

    Raises:
        ValidationError: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}",
            field="status",
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Same-state "transitions" are allowed so that an update echoing the
    current status is harmless.
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True

    return (from_status, to_status) in VALID_TRANSITIONS


def require_transition(from_status: str, to_status: str) -> None:
    """Raise InvalidTransitionError unless from_status -> to_status is legal."""
    if can_transition(from_status, to_status):
        return

    if is_terminal(from_status):
        raise InvalidTransitionError(
            from_status,
            to_status,
            f"Transaction is '{from_status}' and can no longer change status",
        )
    raise InvalidTransitionError(from_status, to_status)
