# Overview: Pytest coverage for transaction request parsing and validation.

import pytest

from junkshop.errors import ValidationError
from junkshop.validation import (
    UNSET,
    TransactionFilter,
    parse_create_request,
    parse_transaction_filter,
    parse_update_request,
    validate_filter,
)


def _payload(**overrides):
    payload = {
        "type": "buy",
        "customer_type": "person",
        "items": [{"name": "Copper", "weight": 2, "price": 300}],
    }
    payload.update(overrides)
    return payload


class TestCreateValidation:
    def test_valid_payload(self):
        request = parse_create_request(_payload())
        assert request.type == "buy"
        assert request.items[0].name == "Copper"
        assert request.expenses == 0

    @pytest.mark.parametrize("field,value", [
        ("type", "trade"),
        ("customer_type", "alien"),
    ])
    def test_rejects_bad_enums(self, field, value):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(**{field: value}))
        assert exc.value.field == field

    def test_rejects_empty_items(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=[]))
        assert exc.value.field == "items"

    def test_item_without_price_names_its_position(self):
        items = [
            {"name": "Copper", "weight": 2, "price": 300},
            {"name": "Brass", "weight": 1},
        ]
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=items))
        assert exc.value.message == "Item 2 must have a valid price"
        assert exc.value.index == 1

    def test_zero_price_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=[{"name": "Copper", "weight": 2, "price": 0}]))
        assert exc.value.field == "price"

    def test_item_needs_a_name(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=[{"name": "  ", "pieces": 1, "price": 5}]))
        assert exc.value.field == "name"

    def test_item_needs_positive_quantity(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=[{"name": "Tin", "price": 5}]))
        assert exc.value.field == "quantity"

    def test_item_cannot_use_both_measures(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(items=[{"name": "Tin", "weight": 1, "pieces": 2, "price": 5}]))
        assert "not both" in exc.value.message

    def test_negative_expenses_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(expenses=-1))
        assert exc.value.field == "expenses"

    @pytest.mark.parametrize("field", ["subtotal", "total", "timestamp", "created_by", "business_id"])
    def test_server_owned_fields_rejected(self, field):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(**{field: 1}))
        assert exc.value.field == field

    def test_status_and_id_rejected_on_create(self):
        with pytest.raises(ValidationError):
            parse_create_request(_payload(status="completed"))
        with pytest.raises(ValidationError):
            parse_create_request(_payload(id="TXN-1"))

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_create_request(_payload(discount=5))
        assert "discount" in exc.value.message

    def test_client_item_total_is_ignored(self):
        request = parse_create_request(_payload(items=[{"name": "Copper", "weight": 2, "price": 300, "total": 1}]))
        assert request.items[0].to_record()["total"] == 600.0

    def test_boolean_flags_must_be_booleans(self):
        with pytest.raises(ValidationError):
            parse_create_request(_payload(is_pickup="yes"))

    def test_sub_expense_lines_get_ids(self):
        request = parse_create_request(_payload(trip_expenses=[{"type": "fuel", "amount": 120}]))
        record = request.trip_expenses[0].to_record()
        assert record["id"]
        assert record["amount"] == 120


class TestUpdateValidation:
    def test_omitted_fields_stay_unset(self):
        request = parse_update_request("TXN-1", {"customer_name": "Maria"})
        assert request.customer_name == "Maria"
        assert request.items is UNSET
        assert request.changes() == {"customer_name": "Maria"}

    def test_explicit_null_clears_text_field(self):
        request = parse_update_request("TXN-1", {"location": None})
        assert request.provided("location")
        assert request.location is None

    def test_invalid_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_update_request("TXN-1", {"status": "paid"})
        assert exc.value.field == "status"

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            parse_update_request("TXN-1", {"items": []})

    def test_null_items_rejected(self):
        with pytest.raises(ValidationError):
            parse_update_request("TXN-1", {"items": None})

    def test_id_required(self):
        with pytest.raises(ValidationError) as exc:
            parse_update_request("", {"customer_name": "x"})
        assert exc.value.field == "id"

    def test_body_id_must_match(self):
        with pytest.raises(ValidationError):
            parse_update_request("TXN-1", {"id": "TXN-2"})

    def test_derived_fields_rejected(self):
        with pytest.raises(ValidationError):
            parse_update_request("TXN-1", {"total": 10})


class TestFilterValidation:
    def test_parses_dates(self):
        query = parse_transaction_filter({"date_from": "2025-01-01", "date_to": "2025-01-31T23:59:59Z"})
        assert query.date_from.day == 1
        assert query.date_to.day == 31

    def test_rejects_inverted_range(self):
        with pytest.raises(ValidationError):
            parse_transaction_filter({"date_from": "2025-02-01", "date_to": "2025-01-01"})

    def test_rejects_bad_date(self):
        with pytest.raises(ValidationError) as exc:
            parse_transaction_filter({"date_from": "yesterday"})
        assert exc.value.field == "date_from"

    def test_rejects_bad_status(self):
        with pytest.raises(ValidationError):
            validate_filter(TransactionFilter(status="paid"))
