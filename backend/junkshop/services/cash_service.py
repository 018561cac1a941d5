# Overview: Cash drawer ledger: manual entries, transaction postings, paging and metrics.

"""
Cash Ledger

Every movement of money through a business's drawer is one CashEntry with a
signed amount (in positive, out negative):

    opening     +amount   start-of-day float
    expense     -amount   utilities, fuel, ...
    adjustment  +/-amount funds added or removed by hand
    sell        +total    posted when a sell transaction completes
    buy         -total    posted when a buy transaction completes

Postings for transactions are staged on the session by the lifecycle manager
and committed together with the status change, so a completed transaction
and its cash entry land or fail as one write. Editing the money of a
completed transaction posts the difference, never a rewrite of history.

Reading or writing the ledger requires can_manage_cash.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Callable

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from . import calculator
from ..models import CashEntry, Transaction
from ..models.cash import (
    CASH_ADJUSTMENT,
    CASH_BUY,
    CASH_EXPENSE,
    CASH_OPENING,
    CASH_SELL,
    CASH_TRANSACTION,
    MANUAL_CASH_TYPES,
)
from ..permissions import CAN_MANAGE_CASH
from junkshop.errors import ForbiddenError, InfrastructureError, NotFoundError
from junkshop.time_utils import to_utc_z, utcnow
from junkshop.validation import CashEntryRequest, CashFilter, validate_cash_entry


def signed_transaction_amount(tx_type: str, total) -> Decimal:
    amount = calculator.cents(total)
    return -amount if tx_type == "buy" else amount


def _money(value: Decimal) -> float:
    return float(calculator.cents(value))


class CashLedger:
    def __init__(self, session, gate, clock: Callable = utcnow):
        self.session = session
        self.gate = gate
        self.clock = clock

    @contextmanager
    def _writing(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error("Cash ledger failed to %s: %s", action, exc)
            raise InfrastructureError(f"Could not {action}") from exc

    def _scoped(self, caller, query: CashFilter):
        q = self.session.query(CashEntry).filter(CashEntry.business_id == caller.business_id)
        if query.type:
            q = q.filter(CashEntry.type == query.type)
        if query.date_from:
            q = q.filter(CashEntry.timestamp >= query.date_from)
        if query.date_to:
            q = q.filter(CashEntry.timestamp <= query.date_to)
        return q

    # ------------------------------------------------------------------
    # Transaction postings
    # ------------------------------------------------------------------

    def stage_posting(self, caller, tx: Transaction, amount: Decimal, description: str) -> CashEntry | None:
        """Add (without committing) a buy/sell entry for a transaction. Zero amounts post nothing."""
        if amount == 0:
            return None
        entry = CashEntry(
            business_id=tx.business_id,
            type=CASH_BUY if tx.type == "buy" else CASH_SELL,
            amount=amount,
            description=description,
            employee=tx.employee,
            transaction_id=tx.id,
            timestamp=self.clock(),
            created_by=caller.profile_id,
            created_by_name=caller.profile.name,
        )
        self.session.add(entry)
        return entry

    def stage_completion(self, caller, tx: Transaction, total) -> CashEntry | None:
        label = "Purchase" if tx.type == "buy" else "Sale"
        return self.stage_posting(
            caller,
            tx,
            signed_transaction_amount(tx.type, total),
            f"{label} - {tx.customer_name or 'Customer'}",
        )

    def stage_correction(self, caller, tx: Transaction, new_total) -> CashEntry | None:
        """Post the difference when a completed transaction's total changes."""
        delta = signed_transaction_amount(tx.type, new_total) - signed_transaction_amount(tx.type, tx.total)
        return self.stage_posting(caller, tx, delta, f"Correction to {tx.id}")

    # ------------------------------------------------------------------
    # Manual entries
    # ------------------------------------------------------------------

    def record_entry(self, caller, request: CashEntryRequest) -> CashEntry:
        self.gate.require_capability(caller, CAN_MANAGE_CASH)
        validate_cash_entry(request)

        amount = calculator.cents(request.amount)
        if request.type == CASH_EXPENSE:
            amount = -amount

        with self._writing("record cash entry"):
            entry = CashEntry(
                business_id=caller.business_id,
                type=request.type,
                amount=amount,
                description=(request.description or "").strip() or None,
                employee=request.employee or caller.profile.name,
                timestamp=self.clock(),
                created_by=caller.profile_id,
                created_by_name=caller.profile.name,
            )
            self.session.add(entry)
            self.session.commit()
            self.session.refresh(entry)
            return entry

    def get_entry(self, caller, entry_id: str) -> CashEntry:
        self.gate.require_capability(caller, CAN_MANAGE_CASH)
        entry = self.session.get(CashEntry, entry_id)
        # Entries of other businesses are reported as missing
        if entry is None or entry.business_id != caller.business_id:
            raise NotFoundError("Cash entry not found")
        return entry

    def delete_entry(self, caller, entry_id: str) -> None:
        entry = self.get_entry(caller, entry_id)
        if entry.type not in MANUAL_CASH_TYPES:
            raise ForbiddenError(
                "Cash posted by a transaction cannot be deleted",
                {"type": entry.type, "transaction_id": entry.transaction_id},
            )
        with self._writing("delete cash entry"):
            self.session.delete(entry)
            self.session.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_entries(self, caller, query: CashFilter | None = None) -> dict:
        """One page of entries, newest first, plus the total row count."""
        self.gate.require_capability(caller, CAN_MANAGE_CASH)
        query = query or CashFilter()

        with self._writing("list cash entries"):
            q = self._scoped(caller, query)
            total = q.count()
            offset = (query.page - 1) * query.page_size
            entries = (
                q.order_by(CashEntry.timestamp.desc(), CashEntry.id.desc())
                .offset(offset)
                .limit(query.page_size)
                .all()
            )

        return {
            "entries": entries,
            "total": total,
            "page": query.page,
            "page_size": query.page_size,
            "has_more": offset + query.page_size < total,
        }

    def metrics(self, caller, query: CashFilter | None = None) -> dict:
        """
        Drawer totals over the filter window.

        current_balance is the sum of every entry in the window; expense
        figures are reported as positive amounts.
        """
        self.gate.require_capability(caller, CAN_MANAGE_CASH)
        query = query or CashFilter()

        with self._writing("summarize cash"):
            rows = (
                self._scoped(caller, query.scoped(type=None))
                .with_entities(CashEntry.type, func.sum(CashEntry.amount))
                .group_by(CashEntry.type)
                .all()
            )
        sums = {entry_type: calculator.to_decimal(amount) for entry_type, amount in rows}

        sell_income = sums.get(CASH_SELL, Decimal("0"))
        buy_expenses = abs(sums.get(CASH_BUY, Decimal("0")))
        general_expenses = abs(sums.get(CASH_EXPENSE, Decimal("0")))

        return {
            "business_id": caller.business_id,
            "opening": _money(sums.get(CASH_OPENING, Decimal("0"))),
            "transaction_income": _money(sell_income),
            "sell_income": _money(sell_income),
            "buy_expenses": _money(buy_expenses),
            "general_expenses": _money(general_expenses),
            "total_expenses": _money(buy_expenses + general_expenses),
            "adjustments": _money(sums.get(CASH_ADJUSTMENT, Decimal("0"))),
            "legacy_transactions": _money(sums.get(CASH_TRANSACTION, Decimal("0"))),
            "current_balance": _money(sum(sums.values(), Decimal("0"))),
            "date_from": to_utc_z(query.date_from),
            "date_to": to_utc_z(query.date_to),
        }
