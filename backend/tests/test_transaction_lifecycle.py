# Overview: Pytest coverage for transaction lifecycle behavior.

"""
Transaction Lifecycle Tests

Covers the create/update/mark-paid use cases end to end against the SQL
repository:
1. Totals are derived on create and recomputed on item/expense changes
2. Status-only changes never touch money
3. Terminal states (completed, cancelled) cannot be left
4. Audit attributes are stamped by the server
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from junkshop.errors import InfrastructureError, InvalidTransitionError, NotFoundError
from junkshop.models import Transaction
from junkshop.services import lifecycle_service
from junkshop.validation import UpdateTransactionRequest, parse_update_request


class TestStateMachine:
    @pytest.mark.parametrize("from_status,to_status", [
        ("for-payment", "in-progress"),
        ("for-payment", "completed"),
        ("in-progress", "completed"),
        ("for-payment", "cancelled"),
        ("in-progress", "cancelled"),
        ("completed", "completed"),
    ])
    def test_allowed(self, from_status, to_status):
        assert lifecycle_service.can_transition(from_status, to_status)

    @pytest.mark.parametrize("from_status,to_status", [
        ("in-progress", "for-payment"),
        ("completed", "for-payment"),
        ("completed", "cancelled"),
        ("cancelled", "for-payment"),
        ("cancelled", "completed"),
    ])
    def test_forbidden(self, from_status, to_status):
        with pytest.raises(InvalidTransitionError):
            lifecycle_service.require_transition(from_status, to_status)


class TestCreate:
    def test_create_derives_totals_and_stamps(self, create_tx, owner_a, business_a):
        tx = create_tx(owner_a)

        assert tx.id.startswith("TXN-")
        assert tx.status == "for-payment"
        assert tx.subtotal == Decimal("765")
        assert tx.total == Decimal("815")
        assert tx.business_id == business_a.id
        assert tx.created_by == owner_a.id
        assert tx.created_by_name == owner_a.name
        assert tx.created_by_role == "owner"
        assert tx.timestamp is not None
        assert tx.completed_at is None
        assert [item["total"] for item in tx.items] == [750.0, 15.0]

    def test_create_persists(self, create_tx, db_session, employee_a):
        tx = create_tx(employee_a)
        db_session.expire_all()
        assert db_session.get(Transaction, tx.id) is not None

    def test_store_failure_surfaces_as_infrastructure_error(
        self, services, caller_for, owner_a, tx_payload, monkeypatch, db_session
    ):
        from junkshop.validation import parse_create_request

        def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        request = parse_create_request(tx_payload())
        caller = caller_for(owner_a)
        monkeypatch.setattr(db_session, "commit", broken_commit)

        with pytest.raises(InfrastructureError) as exc:
            services.transactions.create(caller, request)
        assert isinstance(exc.value.__cause__, OperationalError)

        monkeypatch.undo()
        assert db_session.query(Transaction).count() == 0


class TestFractionalMoney:
    def test_stored_total_matches_stored_parts(self, create_tx, db_session, owner_a):
        tx = create_tx(owner_a, items=[{"name": "Wire", "weight": 0.75, "price": 1.5}], expenses=0.125)
        db_session.expire_all()
        stored = db_session.get(Transaction, tx.id)

        assert stored.subtotal == Decimal("1.13")
        assert stored.expenses == Decimal("0.13")
        assert stored.total == stored.subtotal + stored.expenses

    def test_expenses_only_update_keeps_total_consistent(self, services, create_tx, caller_for, db_session, owner_a):
        tx = create_tx(owner_a, items=[{"name": "Wire", "weight": 0.75, "price": 1.5}], expenses=0)
        services.transactions.update(caller_for(owner_a), parse_update_request(tx.id, {"expenses": 0.125}))
        db_session.expire_all()
        stored = db_session.get(Transaction, tx.id)

        assert stored.total == Decimal("1.26")
        assert stored.total == stored.subtotal + stored.expenses


class TestUpdate:
    def test_items_change_recomputes_with_existing_expenses(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        request = parse_update_request(tx.id, {"items": [{"name": "Iron", "weight": 10, "price": 20}]})

        updated = services.transactions.update(caller_for(owner_a), request)

        assert updated.subtotal == Decimal("200")
        assert updated.total == Decimal("250")

    def test_items_and_expenses_change_together(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        request = parse_update_request(tx.id, {
            "items": [{"name": "Iron", "weight": 10, "price": 20}],
            "expenses": 5,
        })

        updated = services.transactions.update(caller_for(owner_a), request)

        assert updated.subtotal == Decimal("200")
        assert updated.total == Decimal("205")

    def test_expenses_only_uses_stored_subtotal(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        request = parse_update_request(tx.id, {"expenses": 0})

        updated = services.transactions.update(caller_for(owner_a), request)

        assert updated.subtotal == Decimal("765")
        assert updated.total == Decimal("765")

    def test_status_change_leaves_money_untouched(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        request = parse_update_request(tx.id, {"status": "in-progress"})

        updated = services.transactions.update(caller_for(owner_a), request)

        assert updated.status == "in-progress"
        assert updated.subtotal == Decimal("765")
        assert updated.total == Decimal("815")

    def test_completion_by_update_stamps_completed_at(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        updated = services.transactions.update(
            caller_for(owner_a), parse_update_request(tx.id, {"status": "completed"})
        )
        assert updated.completed_at is not None

    def test_same_status_is_noop(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        updated = services.transactions.update(
            caller_for(owner_a), parse_update_request(tx.id, {"status": "for-payment"})
        )
        assert updated.status == "for-payment"

    def test_cannot_leave_cancelled(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        caller = caller_for(owner_a)
        services.transactions.update(caller, parse_update_request(tx.id, {"status": "cancelled"}))

        with pytest.raises(InvalidTransitionError):
            services.transactions.update(caller, parse_update_request(tx.id, {"status": "for-payment"}))

    def test_backwards_move_rejected(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        caller = caller_for(owner_a)
        services.transactions.update(caller, parse_update_request(tx.id, {"status": "in-progress"}))

        with pytest.raises(InvalidTransitionError):
            services.transactions.update(caller, parse_update_request(tx.id, {"status": "for-payment"}))

    def test_update_stamps_editor_and_keeps_author(self, services, create_tx, caller_for, owner_a, manager_a):
        tx = create_tx(owner_a)
        updated = services.transactions.update(
            caller_for(manager_a), parse_update_request(tx.id, {"customer_name": "Pedro"})
        )
        assert updated.customer_name == "Pedro"
        assert updated.created_by == owner_a.id
        assert updated.updated_by == manager_a.id
        assert updated.updated_by_name == manager_a.name

    def test_timestamp_is_immutable(self, services, create_tx, caller_for, owner_a):
        tx = create_tx(owner_a)
        original = tx.timestamp
        updated = services.transactions.update(
            caller_for(owner_a), parse_update_request(tx.id, {"location": "Yard 2"})
        )
        assert updated.timestamp == original

    def test_unknown_id(self, services, caller_for, owner_a):
        with pytest.raises(NotFoundError):
            services.transactions.update(caller_for(owner_a), UpdateTransactionRequest(id="TXN-missing", location="x"))


class TestMarkPaid:
    def test_mark_paid_completes_without_touching_money(self, services, create_tx, caller_for, employee_a):
        tx = create_tx(employee_a)

        paid = services.transactions.mark_paid(caller_for(employee_a), tx.id)

        assert paid.status == "completed"
        assert paid.completed_at is not None
        assert paid.total == Decimal("815")

    @pytest.mark.parametrize("terminal", ["completed", "cancelled"])
    def test_mark_paid_on_terminal_rejected(self, services, create_tx, caller_for, owner_a, terminal):
        tx = create_tx(owner_a)
        caller = caller_for(owner_a)
        services.transactions.update(caller, parse_update_request(tx.id, {"status": terminal}))

        with pytest.raises(InvalidTransitionError):
            services.transactions.mark_paid(caller, tx.id)

    def test_employee_marking_own_completed_gets_transition_error(self, services, create_tx, caller_for, employee_a):
        tx = create_tx(employee_a)
        caller = caller_for(employee_a)
        services.transactions.mark_paid(caller, tx.id)

        with pytest.raises(InvalidTransitionError):
            services.transactions.mark_paid(caller, tx.id)
