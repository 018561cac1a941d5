from __future__ import annotations

import secrets
import time

from ..extensions import db
from junkshop.time_utils import to_utc_z


TRANSACTION_TYPES = ("buy", "sell")
CUSTOMER_TYPES = ("person", "company", "government")

STATUS_FOR_PAYMENT = "for-payment"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
TRANSACTION_STATUSES = (STATUS_FOR_PAYMENT, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED)


def generate_transaction_id() -> str:
    """Human-scannable id, e.g. TXN-1737400000000-9f2c1a7b3e."""
    return f"TXN-{int(time.time() * 1000)}-{secrets.token_hex(5)}"


def _money(value) -> float | None:
    return float(value) if value is not None else None


class Transaction(db.Model):
    """
    A scrap buy/sell transaction.

    subtotal and total are derived columns: they are only ever written by
    TransactionLifecycleManager after recomputing from items/expenses.

    Ownership is normalized into (business_id, created_by); the access gate
    authorizes against those two columns only.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_business_timestamp", "business_id", "timestamp"),
        db.Index("ix_transactions_business_author", "business_id", "created_by"),
    )

    id = db.Column(db.String(64), primary_key=True, default=generate_transaction_id)

    business_id = db.Column(db.String(36), db.ForeignKey("businesses.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_FOR_PAYMENT, index=True)

    customer_type = db.Column(db.String(16), nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)
    employee = db.Column(db.String(255), nullable=True, index=True)
    location = db.Column(db.Text, nullable=True)

    # Line items and sub-expenses are stored as JSON documents
    items = db.Column(db.JSON, nullable=False, default=list)
    trip_expenses = db.Column(db.JSON, nullable=False, default=list)
    delivery_expenses = db.Column(db.JSON, nullable=False, default=list)
    session_images = db.Column(db.JSON, nullable=False, default=list)

    is_pickup = db.Column(db.Boolean, nullable=False, default=False)
    is_delivery = db.Column(db.Boolean, nullable=False, default=False)
    session_type = db.Column(db.String(64), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    expenses = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    # Creation time; never rewritten after insert
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Audit trail
    created_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False, index=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_by_role = db.Column(db.String(16), nullable=True)
    updated_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)
    updated_by_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("transactions", lazy=True))

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "type": self.type,
            "status": self.status,
            "customer_type": self.customer_type,
            "customer_name": self.customer_name,
            "employee": self.employee,
            "location": self.location,
            "items": self.items or [],
            "trip_expenses": self.trip_expenses or [],
            "delivery_expenses": self.delivery_expenses or [],
            "session_images": self.session_images or [],
            "is_pickup": self.is_pickup,
            "is_delivery": self.is_delivery,
            "session_type": self.session_type,
            "subtotal": _money(self.subtotal),
            "expenses": _money(self.expenses),
            "total": _money(self.total),
            "timestamp": to_utc_z(self.timestamp),
            "completed_at": to_utc_z(self.completed_at),
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_by_role": self.created_by_role,
            "updated_by": self.updated_by,
            "updated_by_name": self.updated_by_name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
