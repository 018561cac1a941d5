# Overview: Persistence adapter for transactions over SQLAlchemy.

"""
SQL-backed transaction repository.

Contract used by TransactionLifecycleManager:
    create(record)          -> Transaction
    get_by_id(id)           -> Transaction | None
    list(filter)            -> list[Transaction], newest first
    update(id, fields)      -> Transaction
    delete(id)              -> None

Every write is a single commit. On any SQLAlchemy failure the session is
rolled back, the error is logged, and InfrastructureError is raised with the
original exception chained. No retries here.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from junkshop.errors import InfrastructureError, NotFoundError
from junkshop.models import Transaction
from junkshop.validation import TransactionFilter


class SqlTransactionRepository:
    def __init__(self, session):
        self.session = session

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error("Transaction store failed to %s: %s", action, exc)
            raise InfrastructureError(f"Could not {action} transaction") from exc

    def create(self, record: dict[str, Any]) -> Transaction:
        with self._guard("create"):
            tx = Transaction(**record)
            self.session.add(tx)
            self.session.commit()
            # Re-read so generated id/defaults reflect the store of record
            self.session.refresh(tx)
            return tx

    def get_by_id(self, transaction_id: str) -> Transaction | None:
        with self._guard("load"):
            return self.session.get(Transaction, transaction_id)

    def list(self, query: TransactionFilter) -> list[Transaction]:
        with self._guard("list"):
            q = self.session.query(Transaction)

            if query.business_id is not None:
                q = q.filter(Transaction.business_id == query.business_id)
            if query.created_by is not None:
                q = q.filter(Transaction.created_by == query.created_by)
            if query.type:
                q = q.filter(Transaction.type == query.type)
            if query.status:
                q = q.filter(Transaction.status == query.status)
            if query.employee:
                q = q.filter(Transaction.employee == query.employee)
            if query.date_from:
                q = q.filter(Transaction.timestamp >= query.date_from)
            if query.date_to:
                q = q.filter(Transaction.timestamp <= query.date_to)

            q = q.order_by(Transaction.timestamp.desc(), Transaction.id.desc())
            return q.limit(query.limit).all()

    def update(self, transaction_id: str, changes: dict[str, Any]) -> Transaction:
        with self._guard("update"):
            tx = self.session.get(Transaction, transaction_id)
            if tx is None:
                raise NotFoundError("Transaction not found")
            for key, value in changes.items():
                setattr(tx, key, value)
            self.session.commit()
            self.session.refresh(tx)
            return tx

    def delete(self, transaction_id: str) -> None:
        with self._guard("delete"):
            tx = self.session.get(Transaction, transaction_id)
            if tx is None:
                raise NotFoundError("Transaction not found")
            self.session.delete(tx)
            self.session.commit()
