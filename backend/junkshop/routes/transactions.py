# Overview: Flask API routes for transaction operations; parses input and returns JSON responses.

# backend/junkshop/routes/transactions.py
"""
Transaction API routes

Every route runs as the authenticated caller (g.caller). Visibility and
edit rights are decided by the access gate inside the lifecycle manager;
routes only parse input and render output.
"""

from flask import Blueprint, g, jsonify, request

from .. import get_services
from ..decorators import require_auth, require_capability
from ..errors import JunkshopError
from ..permissions import CAN_VIEW_REPORTS
from ..services import reporting_service
from ..validation import parse_create_request, parse_transaction_filter, parse_update_request
from .common import error_response, internal_error


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    List transactions visible to the caller, newest first.

    Query params: type, status, employee, date_from, date_to (ISO-8601)
    """
    try:
        query = parse_transaction_filter(request.args)
        rows = get_services().transactions.list(g.caller, query)
        return jsonify({"transactions": [tx.to_dict() for tx in rows], "count": len(rows)}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("list transactions")


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    try:
        create_request = parse_create_request(request.get_json(silent=True))
        tx = get_services().transactions.create(g.caller, create_request)
        return jsonify({"transaction": tx.to_dict()}), 201
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("create transaction")


@transactions_bp.get("/summary")
@require_auth
@require_capability(CAN_VIEW_REPORTS)
def transaction_summary_route():
    try:
        query = parse_transaction_filter(request.args)
        summary = reporting_service.transaction_summary(get_services().transactions, g.caller, query)
        return jsonify(summary), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("summarize transactions")


@transactions_bp.get("/<transaction_id>")
@require_auth
def get_transaction_route(transaction_id: str):
    try:
        tx = get_services().transactions.get(g.caller, transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("load transaction")


@transactions_bp.route("/<transaction_id>", methods=["PUT", "PATCH"])
@require_auth
def update_transaction_route(transaction_id: str):
    """
    Partial update. Only keys present in the body change; subtotal/total
    are recomputed when items or expenses change.
    """
    try:
        update_request = parse_update_request(transaction_id, request.get_json(silent=True))
        tx = get_services().transactions.update(g.caller, update_request)
        return jsonify({"transaction": tx.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("update transaction")


@transactions_bp.post("/<transaction_id>/mark-paid")
@require_auth
def mark_paid_route(transaction_id: str):
    try:
        tx = get_services().transactions.mark_paid(g.caller, transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("mark transaction paid")


@transactions_bp.delete("/<transaction_id>")
@require_auth
def delete_transaction_route(transaction_id: str):
    try:
        get_services().transactions.delete(g.caller, transaction_id)
        return jsonify({"message": "Transaction deleted", "id": transaction_id}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete transaction")
