from __future__ import annotations

from ..extensions import db
from .tenancy import new_uuid
from junkshop.time_utils import to_utc_z


# opening/expense/adjustment are entered by hand; buy/sell are posted when a
# transaction completes. "transaction" is the legacy single type for both.
CASH_OPENING = "opening"
CASH_TRANSACTION = "transaction"
CASH_EXPENSE = "expense"
CASH_ADJUSTMENT = "adjustment"
CASH_SELL = "sell"
CASH_BUY = "buy"
CASH_ENTRY_TYPES = (CASH_OPENING, CASH_TRANSACTION, CASH_EXPENSE, CASH_ADJUSTMENT, CASH_SELL, CASH_BUY)
MANUAL_CASH_TYPES = (CASH_OPENING, CASH_EXPENSE, CASH_ADJUSTMENT)


class CashEntry(db.Model):
    """
    One movement in a business's cash drawer.

    amount is signed: money in is positive, money out (buys, expenses) is
    negative. The balance over any window is the plain sum of amounts.
    """
    __tablename__ = "cash_entries"
    __table_args__ = (
        db.Index("ix_cash_entries_business_timestamp", "business_id", "timestamp"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    business_id = db.Column(db.String(36), db.ForeignKey("businesses.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)
    employee = db.Column(db.String(255), nullable=True)
    transaction_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=True, index=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<CashEntry {self.type} {self.amount} business={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "type": self.type,
            "amount": float(self.amount) if self.amount is not None else None,
            "description": self.description,
            "employee": self.employee,
            "transaction_id": self.transaction_id,
            "timestamp": to_utc_z(self.timestamp),
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
