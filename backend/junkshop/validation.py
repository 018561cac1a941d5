from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from junkshop.errors import ValidationError
from junkshop.models.cash import CASH_ADJUSTMENT, CASH_ENTRY_TYPES, CASH_EXPENSE, MANUAL_CASH_TYPES
from junkshop.models.transactions import CUSTOMER_TYPES, TRANSACTION_STATUSES, TRANSACTION_TYPES
from junkshop.services import calculator
from junkshop.time_utils import parse_iso_datetime


class _Unset:
    """Marker for 'field omitted from the request' (distinct from None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# Server-owned transaction fields. Clients may never write these.
DERIVED_FIELDS = {"subtotal", "total"}
SERVER_FIELDS = {
    "timestamp", "completed_at", "business_id",
    "created_by", "created_by_name", "created_by_role",
    "updated_by", "updated_by_name", "created_at", "updated_at",
}

ITEM_FIELDS = {"name", "weight", "pieces", "price", "category", "images", "total"}
EXPENSE_FIELDS = {"id", "type", "amount", "description"}


# =============================================================================
# REQUEST SHAPES
# =============================================================================

@dataclass(frozen=True)
class TransactionItemInput:
    name: str
    price: Any
    weight: Any = None
    pieces: Any = None
    category: str | None = None
    images: tuple[str, ...] = ()

    def to_record(self) -> dict:
        """JSON document stored on the transaction, with the derived line total."""
        record = {
            "name": self.name.strip(),
            "price": self.price,
            "total": float(calculator.line_total(self)),
        }
        if self.weight is not None:
            record["weight"] = self.weight
        if self.pieces is not None:
            record["pieces"] = self.pieces
        if self.category is not None:
            record["category"] = self.category
        if self.images:
            record["images"] = list(self.images)
        return record


@dataclass(frozen=True)
class ExpenseInput:
    """A trip or delivery expense line."""
    type: str
    amount: Any
    description: str = ""
    id: str | None = None

    def to_record(self) -> dict:
        return {
            "id": self.id or str(uuid.uuid4()),
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
        }


@dataclass(frozen=True)
class CreateTransactionRequest:
    type: str
    customer_type: str
    items: tuple[TransactionItemInput, ...]
    customer_name: str | None = None
    employee: str | None = None
    location: str | None = None
    expenses: Any = 0
    trip_expenses: tuple[ExpenseInput, ...] = ()
    delivery_expenses: tuple[ExpenseInput, ...] = ()
    session_images: tuple[str, ...] = ()
    is_pickup: bool = False
    is_delivery: bool = False
    session_type: str | None = None


@dataclass(frozen=True)
class UpdateTransactionRequest:
    """
    Partial update. Every field except id defaults to UNSET; only fields
    that were actually provided are merged over the stored transaction.
    """
    id: str
    status: Any = UNSET
    customer_type: Any = UNSET
    customer_name: Any = UNSET
    employee: Any = UNSET
    location: Any = UNSET
    items: Any = UNSET
    expenses: Any = UNSET
    trip_expenses: Any = UNSET
    delivery_expenses: Any = UNSET
    session_images: Any = UNSET
    is_pickup: Any = UNSET
    is_delivery: Any = UNSET
    session_type: Any = UNSET

    def provided(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "id" and getattr(self, f.name) is not UNSET
        }


@dataclass(frozen=True)
class TransactionFilter:
    """
    List filter handed to the repository.

    business_id and created_by are never parsed from client input; the
    access gate fills them in (see AccessGate.scope_filter).
    """
    type: str | None = None
    status: str | None = None
    employee: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    business_id: str | None = None
    created_by: str | None = None
    limit: int = 500

    def scoped(self, **kwargs) -> "TransactionFilter":
        return replace(self, **kwargs)


# =============================================================================
# PRIMITIVE CHECKS
# =============================================================================

def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Decimal)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def _require_number(value: Any, field_name: str, index: int | None = None) -> None:
    if value is not None and not _is_number(value):
        raise ValidationError(f"{field_name} must be a number", field=field_name, index=index)


def _optional_str(payload: Mapping, key: str) -> Any:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", field=key)
    return value


def _bool(payload: Mapping, key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false", field=key)
    return value


def _list(payload: Mapping, key: str) -> list:
    value = payload[key]
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list", field=key)
    return value


def _require_object(payload: Any) -> Mapping:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _reject_unknown(payload: Mapping, allowed: set[str], prefix: str = "") -> None:
    for key in payload:
        if key in DERIVED_FIELDS and not prefix:
            raise ValidationError(f"{key} is calculated by the server and cannot be set", field=key)
        if key in SERVER_FIELDS and not prefix:
            raise ValidationError(f"{key} is assigned by the server and cannot be set", field=key)
        if key not in allowed:
            raise ValidationError(f"Unknown field: {prefix}{key}", field=f"{prefix}{key}")


# =============================================================================
# VALIDATORS
# =============================================================================

def validate_item(item: TransactionItemInput, index: int) -> None:
    """Validate one line item. Messages use 1-based positions like the UI."""
    position = index + 1
    if not isinstance(item.name, str) or not item.name.strip():
        raise ValidationError(f"Item {position} must have a name", field="name", index=index)

    _require_number(item.weight, "weight", index)
    _require_number(item.pieces, "pieces", index)
    _require_number(item.price, "price", index)

    weight = calculator.to_decimal(item.weight)
    pieces = calculator.to_decimal(item.pieces)
    if weight < 0 or pieces < 0:
        raise ValidationError(f"Item {position} must have a valid quantity", field="quantity", index=index)
    if weight > 0 and pieces > 0:
        raise ValidationError(
            f"Item {position} must be measured by weight or by pieces, not both",
            field="quantity",
            index=index,
        )
    if calculator.quantity(item) <= 0:
        raise ValidationError(f"Item {position} must have a valid quantity", field="quantity", index=index)

    if item.price is None or calculator.to_decimal(item.price) <= 0:
        raise ValidationError(f"Item {position} must have a valid price", field="price", index=index)


def _validate_items(items: Any) -> None:
    if not items:
        raise ValidationError("Transaction must have at least one item", field="items")
    for index, item in enumerate(items):
        validate_item(item, index)


def _validate_expenses(expenses: Any) -> None:
    if not _is_number(expenses):
        raise ValidationError("expenses must be a number", field="expenses")
    if calculator.to_decimal(expenses) < 0:
        raise ValidationError("expenses cannot be negative", field="expenses")


def _validate_expense_lines(lines: Any, field_name: str) -> None:
    for index, line in enumerate(lines):
        if not isinstance(line.type, str) or not line.type.strip():
            raise ValidationError(f"{field_name} entry {index + 1} must have a type", field=field_name, index=index)
        if not _is_number(line.amount) or calculator.to_decimal(line.amount) < 0:
            raise ValidationError(
                f"{field_name} entry {index + 1} must have a non-negative amount",
                field=field_name,
                index=index,
            )


def validate_create(request: CreateTransactionRequest) -> None:
    if request.type not in TRANSACTION_TYPES:
        raise ValidationError("Invalid transaction type", field="type")
    if request.customer_type not in CUSTOMER_TYPES:
        raise ValidationError("Invalid customer type", field="customer_type")
    _validate_items(request.items)
    _validate_expenses(request.expenses)
    _validate_expense_lines(request.trip_expenses, "trip_expenses")
    _validate_expense_lines(request.delivery_expenses, "delivery_expenses")


def validate_update(request: UpdateTransactionRequest) -> None:
    if not request.id or not str(request.id).strip():
        raise ValidationError("Transaction ID is required", field="id")
    if request.provided("status") and request.status not in TRANSACTION_STATUSES:
        raise ValidationError("Invalid transaction status", field="status")
    if request.provided("customer_type") and request.customer_type not in CUSTOMER_TYPES:
        raise ValidationError("Invalid customer type", field="customer_type")
    if request.provided("items"):
        _validate_items(request.items)
    if request.provided("expenses"):
        _validate_expenses(request.expenses)
    if request.provided("trip_expenses"):
        _validate_expense_lines(request.trip_expenses, "trip_expenses")
    if request.provided("delivery_expenses"):
        _validate_expense_lines(request.delivery_expenses, "delivery_expenses")


def validate_filter(query: TransactionFilter) -> None:
    if query.type and query.type not in TRANSACTION_TYPES:
        raise ValidationError("Invalid transaction type filter", field="type")
    if query.status and query.status not in TRANSACTION_STATUSES:
        raise ValidationError("Invalid transaction status filter", field="status")
    if query.date_from and query.date_to and query.date_from > query.date_to:
        raise ValidationError("date_from cannot be after date_to", field="date_from")


# =============================================================================
# PAYLOAD PARSING (JSON -> closed request shapes)
# =============================================================================

def _parse_item(raw: Any, index: int) -> TransactionItemInput:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Item {index + 1} must be an object", field="items", index=index)
    _reject_unknown(raw, ITEM_FIELDS, prefix=f"items[{index}].")
    name = raw.get("name")
    if name is not None and not isinstance(name, str):
        raise ValidationError(f"Item {index + 1} name must be a string", field="name", index=index)
    images = raw.get("images") or []
    if not isinstance(images, list):
        raise ValidationError(f"Item {index + 1} images must be a list", field="images", index=index)
    # A client-sent line "total" is ignored; it is recomputed in to_record()
    return TransactionItemInput(
        name=name or "",
        price=raw.get("price"),
        weight=raw.get("weight"),
        pieces=raw.get("pieces"),
        category=raw.get("category"),
        images=tuple(images),
    )


def _parse_items(raw: Any) -> tuple[TransactionItemInput, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError("items must be a list", field="items")
    return tuple(_parse_item(item, i) for i, item in enumerate(raw))


def _parse_expense_lines(raw: list, field_name: str) -> tuple[ExpenseInput, ...]:
    lines = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            raise ValidationError(f"{field_name} entry {index + 1} must be an object", field=field_name, index=index)
        _reject_unknown(entry, EXPENSE_FIELDS, prefix=f"{field_name}[{index}].")
        lines.append(ExpenseInput(
            type=entry.get("type") or "",
            amount=entry.get("amount"),
            description=entry.get("description") or "",
            id=entry.get("id"),
        ))
    return tuple(lines)


_CREATE_FIELDS = {f.name for f in fields(CreateTransactionRequest)}
_UPDATE_FIELDS = {f.name for f in fields(UpdateTransactionRequest)} - {"id"}


def parse_create_request(payload: Mapping | None) -> CreateTransactionRequest:
    """Build and validate a CreateTransactionRequest from a JSON body."""
    payload = _require_object(payload)
    if "status" in payload:
        raise ValidationError("status is assigned by the server on create", field="status")
    if "id" in payload:
        raise ValidationError("id is assigned by the server", field="id")
    _reject_unknown(payload, _CREATE_FIELDS)

    kwargs: dict[str, Any] = {
        "type": payload.get("type"),
        "customer_type": payload.get("customer_type"),
        "items": _parse_items(payload.get("items")),
        "customer_name": _optional_str(payload, "customer_name"),
        "employee": _optional_str(payload, "employee"),
        "location": _optional_str(payload, "location"),
        "session_type": _optional_str(payload, "session_type"),
    }
    if payload.get("expenses") is not None:
        kwargs["expenses"] = payload["expenses"]
    for key in ("trip_expenses", "delivery_expenses"):
        if key in payload:
            kwargs[key] = _parse_expense_lines(_list(payload, key), key)
    if "session_images" in payload:
        kwargs["session_images"] = tuple(_list(payload, "session_images"))
    for key in ("is_pickup", "is_delivery"):
        if key in payload:
            kwargs[key] = _bool(payload, key)

    request = CreateTransactionRequest(**kwargs)
    validate_create(request)
    return request


def parse_update_request(transaction_id: str, payload: Mapping | None) -> UpdateTransactionRequest:
    """
    Build and validate an UpdateTransactionRequest.

    Keys absent from the payload stay UNSET. An explicit null on a text
    field clears it; an explicit null on items/expenses is rejected.
    """
    payload = _require_object(payload)
    if "id" in payload and payload["id"] != transaction_id:
        raise ValidationError("id in body does not match the URL", field="id")
    body = {k: v for k, v in payload.items() if k != "id"}
    _reject_unknown(body, _UPDATE_FIELDS)

    kwargs: dict[str, Any] = {}
    for key in ("status", "customer_type", "customer_name", "employee", "location", "session_type"):
        if key in body:
            kwargs[key] = _optional_str(body, key)
    if "items" in body:
        if body["items"] is None:
            raise ValidationError("items cannot be null", field="items")
        kwargs["items"] = _parse_items(body["items"])
    if "expenses" in body:
        kwargs["expenses"] = body["expenses"]
    for key in ("trip_expenses", "delivery_expenses"):
        if key in body:
            kwargs[key] = _parse_expense_lines(_list(body, key), key)
    if "session_images" in body:
        kwargs["session_images"] = tuple(_list(body, "session_images"))
    for key in ("is_pickup", "is_delivery"):
        if key in body:
            kwargs[key] = _bool(body, key)

    request = UpdateTransactionRequest(id=transaction_id, **kwargs)
    validate_update(request)
    return request


def parse_transaction_filter(args: Mapping | None) -> TransactionFilter:
    """Parse list query-string arguments (type, status, employee, date_from, date_to)."""
    args = args or {}
    try:
        date_from = parse_iso_datetime(args.get("date_from"))
    except ValueError:
        raise ValidationError("date_from must be an ISO-8601 date", field="date_from")
    try:
        date_to = parse_iso_datetime(args.get("date_to"))
    except ValueError:
        raise ValidationError("date_to must be an ISO-8601 date", field="date_to")

    query = TransactionFilter(
        type=args.get("type") or None,
        status=args.get("status") or None,
        employee=args.get("employee") or None,
        date_from=date_from,
        date_to=date_to,
    )
    validate_filter(query)
    return query


# =============================================================================
# CASH LEDGER
# =============================================================================

CASH_ENTRY_FIELDS = {"type", "amount", "description", "employee"}
MAX_CASH_PAGE_SIZE = 100


@dataclass(frozen=True)
class CashEntryRequest:
    """
    A hand-entered cash movement.

    amount is always sent positive for opening and expense (expenses are
    stored negative); adjustments carry their own sign.
    """
    type: str
    amount: Any
    description: str | None = None
    employee: str | None = None


@dataclass(frozen=True)
class CashFilter:
    type: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = 1
    page_size: int = 10
    business_id: str | None = None

    def scoped(self, **kwargs) -> "CashFilter":
        return replace(self, **kwargs)


def validate_cash_entry(request: CashEntryRequest) -> None:
    if request.type not in MANUAL_CASH_TYPES:
        raise ValidationError(
            f"type must be one of: {', '.join(MANUAL_CASH_TYPES)}",
            field="type",
        )
    if not _is_number(request.amount):
        raise ValidationError("amount must be a number", field="amount")

    amount = calculator.cents(request.amount)
    if request.type == CASH_ADJUSTMENT:
        if amount == 0:
            raise ValidationError("Adjustment amount cannot be zero", field="amount")
    elif amount <= 0:
        raise ValidationError("amount must be greater than zero", field="amount")

    if request.type == CASH_EXPENSE and not (request.description or "").strip():
        raise ValidationError("Expenses need a description", field="description")


def parse_cash_entry_request(payload: Any) -> CashEntryRequest:
    payload = _require_object(payload)
    for key in payload:
        if key not in CASH_ENTRY_FIELDS:
            raise ValidationError(f"Unknown field: {key}", field=key)

    request = CashEntryRequest(
        type=payload.get("type"),
        amount=payload.get("amount"),
        description=_optional_str(payload, "description"),
        employee=_optional_str(payload, "employee"),
    )
    validate_cash_entry(request)
    return request


def _positive_int(args: Mapping, key: str, default: int) -> int:
    raw = args.get(key)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a whole number", field=key)
    if value < 1:
        raise ValidationError(f"{key} must be at least 1", field=key)
    return value


def parse_cash_filter(args: Mapping | None) -> CashFilter:
    """Query-string arguments: type, date_from, date_to, page, page_size."""
    args = args or {}
    try:
        date_from = parse_iso_datetime(args.get("date_from"))
    except ValueError:
        raise ValidationError("date_from must be an ISO-8601 date", field="date_from")
    try:
        date_to = parse_iso_datetime(args.get("date_to"))
    except ValueError:
        raise ValidationError("date_to must be an ISO-8601 date", field="date_to")
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must be before date_to", field="date_from")

    entry_type = args.get("type") or None
    if entry_type is not None and entry_type not in CASH_ENTRY_TYPES:
        raise ValidationError("Invalid cash entry type", field="type")

    page_size = _positive_int(args, "page_size", 10)
    if page_size > MAX_CASH_PAGE_SIZE:
        raise ValidationError(f"page_size cannot exceed {MAX_CASH_PAGE_SIZE}", field="page_size")

    return CashFilter(
        type=entry_type,
        date_from=date_from,
        date_to=date_to,
        page=_positive_int(args, "page", 1),
        page_size=page_size,
    )
