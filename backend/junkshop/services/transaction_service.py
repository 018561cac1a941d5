# Overview: Transaction use cases: create, update, mark paid, read, list, delete.

"""
Transaction Lifecycle Manager

Every write follows the same order:
    validate -> load + authorize -> check transition -> derive money
    -> stamp audit -> persist (one commit) -> return the stored row

MONEY RULES:
- subtotal and total are never taken from the caller
- items changed:         subtotal = sum(items), total = subtotal + expenses
                         (expenses = new value if sent, else stored value)
- only expenses changed: total = stored subtotal + new expenses
- neither changed:       money untouched (status changes included)

CASH: completing a transaction posts its total to the cash ledger in the
same commit; changing the total of a completed one posts the difference.

Errors are raised before anything is written. Store failures surface as
InfrastructureError from the repository; nothing here retries.
"""

from __future__ import annotations

from typing import Any, Callable

from . import calculator
from .lifecycle_service import is_terminal, require_transition
from ..models import Transaction
from ..models.transactions import STATUS_COMPLETED, STATUS_FOR_PAYMENT
from ..permissions import CAN_MANAGE_TRANSACTIONS
from junkshop.errors import InvalidTransitionError
from junkshop.time_utils import utcnow
from junkshop.validation import (
    CreateTransactionRequest,
    TransactionFilter,
    UpdateTransactionRequest,
    validate_create,
    validate_filter,
    validate_update,
)


class TransactionLifecycleManager:
    def __init__(self, repository, gate, cash=None, clock: Callable = utcnow):
        self.repository = repository
        self.gate = gate
        self.cash = cash
        self.clock = clock

    def create(self, caller, request: CreateTransactionRequest) -> Transaction:
        """
        Create a transaction in the caller's current business.

        Status always starts at for-payment and timestamp is server time.
        """
        self.gate.require_capability(caller, CAN_MANAGE_TRANSACTIONS)
        validate_create(request)

        subtotal = calculator.subtotal(request.items)
        expenses = calculator.cents(request.expenses)

        record: dict[str, Any] = {
            "type": request.type,
            "customer_type": request.customer_type,
            "customer_name": request.customer_name,
            "employee": request.employee,
            "location": request.location,
            "items": [item.to_record() for item in request.items],
            "trip_expenses": [e.to_record() for e in request.trip_expenses],
            "delivery_expenses": [e.to_record() for e in request.delivery_expenses],
            "session_images": list(request.session_images),
            "is_pickup": request.is_pickup,
            "is_delivery": request.is_delivery,
            "session_type": request.session_type,
            "status": STATUS_FOR_PAYMENT,
            "subtotal": subtotal,
            "expenses": expenses,
            "total": calculator.total(subtotal, expenses),
            "timestamp": self.clock(),
            "completed_at": None,
        }
        record.update(self.gate.stamp_create(caller))

        return self.repository.create(record)

    def update(self, caller, request: UpdateTransactionRequest) -> Transaction:
        validate_update(request)

        tx = self.gate.require_visible(caller, self.repository.get_by_id(request.id))
        self.gate.require_editable(caller, tx)

        changes = request.changes()

        if request.provided("status"):
            require_transition(tx.status, request.status)
            if request.status == STATUS_COMPLETED and tx.status != STATUS_COMPLETED:
                changes["completed_at"] = self.clock()

        if request.provided("items"):
            subtotal = calculator.subtotal(request.items)
            expenses = (
                calculator.cents(request.expenses)
                if request.provided("expenses")
                else calculator.cents(tx.expenses)
            )
            changes["items"] = [item.to_record() for item in request.items]
            changes["subtotal"] = subtotal
            changes["expenses"] = expenses
            changes["total"] = calculator.total(subtotal, expenses)
        elif request.provided("expenses"):
            expenses = calculator.cents(request.expenses)
            changes["expenses"] = expenses
            changes["total"] = calculator.total(tx.subtotal, expenses)

        for key in ("trip_expenses", "delivery_expenses"):
            if key in changes:
                changes[key] = [e.to_record() for e in changes[key]]
        if "session_images" in changes:
            changes["session_images"] = list(changes["session_images"])

        if self.cash is not None:
            if changes.get("status") == STATUS_COMPLETED and tx.status != STATUS_COMPLETED:
                self.cash.stage_completion(caller, tx, changes.get("total", tx.total))
            elif tx.status == STATUS_COMPLETED and "total" in changes:
                self.cash.stage_correction(caller, tx, changes["total"])

        changes.update(self.gate.stamp_update(caller))
        return self.repository.update(tx.id, changes)

    def mark_paid(self, caller, transaction_id: str) -> Transaction:
        """
        Complete a transaction and stamp completed_at. Money is not touched.

        Already completed or cancelled -> InvalidTransitionError, for every
        role.
        """
        tx = self.gate.require_visible(caller, self.repository.get_by_id(transaction_id))
        self.gate.require_capability(caller, CAN_MANAGE_TRANSACTIONS)

        if is_terminal(tx.status):
            raise InvalidTransitionError(
                tx.status,
                STATUS_COMPLETED,
                f"Transaction is already {tx.status}",
            )
        require_transition(tx.status, STATUS_COMPLETED)

        changes = {"status": STATUS_COMPLETED, "completed_at": self.clock()}
        if self.cash is not None:
            self.cash.stage_completion(caller, tx, tx.total)
        changes.update(self.gate.stamp_update(caller))
        return self.repository.update(tx.id, changes)

    def get(self, caller, transaction_id: str) -> Transaction:
        return self.gate.require_visible(caller, self.repository.get_by_id(transaction_id))

    def list(self, caller, query: TransactionFilter | None = None) -> list[Transaction]:
        """Newest first, restricted to what the caller's role may see."""
        query = query or TransactionFilter()
        validate_filter(query)
        rows = self.repository.list(self.gate.scope_filter(caller, query))
        return self.gate.filter_visible(caller, rows)

    def delete(self, caller, transaction_id: str) -> None:
        tx = self.gate.require_visible(caller, self.repository.get_by_id(transaction_id))
        self.gate.require_deletable(caller, tx)
        self.repository.delete(tx.id)
