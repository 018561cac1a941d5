# Overview: Service-layer operations for reporting; totals over the caller's visible transactions.

from __future__ import annotations

from collections import Counter
from decimal import Decimal

from . import calculator
from ..models.transactions import STATUS_COMPLETED, TRANSACTION_STATUSES, TRANSACTION_TYPES
from ..permissions import CAN_VIEW_REPORTS
from junkshop.time_utils import to_utc_z
from junkshop.validation import TransactionFilter


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def transaction_summary(manager, caller, query: TransactionFilter | None = None) -> dict:
    """
    Counts and money totals for the transactions the caller can see.

    Buy/sell money totals only include completed transactions; open and
    cancelled ones show up in the counts only. Employees and viewers get a
    summary of their own transactions, owners and managers of the business.
    """
    manager.gate.require_capability(caller, CAN_VIEW_REPORTS)
    query = query or TransactionFilter()
    rows = manager.list(caller, query)

    by_status = Counter(tx.status for tx in rows)
    by_type = Counter(tx.type for tx in rows)

    totals = {t: Decimal("0") for t in TRANSACTION_TYPES}
    expenses = Decimal("0")
    weight = Decimal("0")
    for tx in rows:
        if tx.status != STATUS_COMPLETED:
            continue
        totals[tx.type] += calculator.to_decimal(tx.total)
        expenses += calculator.to_decimal(tx.expenses)
        for item in tx.items or []:
            weight += calculator.to_decimal(item.get("weight"))

    return {
        "business_id": caller.business_id,
        "scope": caller.policy.transaction_scope,
        "count": len(rows),
        "by_status": {s: by_status.get(s, 0) for s in TRANSACTION_STATUSES},
        "by_type": {t: by_type.get(t, 0) for t in TRANSACTION_TYPES},
        "completed_totals": {t: _money(v) for t, v in totals.items()},
        "completed_expenses": _money(expenses),
        "completed_weight": float(weight),
        "net": _money(totals["sell"] - totals["buy"]),
        "date_from": to_utc_z(query.date_from),
        "date_to": to_utc_z(query.date_to),
    }
