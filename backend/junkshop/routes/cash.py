# Overview: Flask API routes for the cash drawer ledger of the current business.

from flask import Blueprint, g, jsonify, request

from .. import get_services
from ..decorators import require_auth, require_capability
from ..errors import JunkshopError
from ..permissions import CAN_MANAGE_CASH
from ..validation import parse_cash_entry_request, parse_cash_filter
from .common import error_response, internal_error


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.get("")
@require_auth
@require_capability(CAN_MANAGE_CASH)
def list_cash_entries_route():
    """
    One page of cash entries, newest first.

    Query params: type, date_from, date_to (ISO-8601), page, page_size
    """
    try:
        query = parse_cash_filter(request.args)
        result = get_services().cash.list_entries(g.caller, query)
        result["entries"] = [entry.to_dict() for entry in result["entries"]]
        return jsonify(result), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("list cash entries")


@cash_bp.post("")
@require_auth
@require_capability(CAN_MANAGE_CASH)
def create_cash_entry_route():
    """Record an opening float, an expense or an adjustment."""
    try:
        entry_request = parse_cash_entry_request(request.get_json(silent=True))
        entry = get_services().cash.record_entry(g.caller, entry_request)
        return jsonify({"entry": entry.to_dict()}), 201
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("record cash entry")


@cash_bp.get("/metrics")
@require_auth
@require_capability(CAN_MANAGE_CASH)
def cash_metrics_route():
    try:
        query = parse_cash_filter(request.args)
        return jsonify(get_services().cash.metrics(g.caller, query)), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("summarize cash")


@cash_bp.get("/<entry_id>")
@require_auth
@require_capability(CAN_MANAGE_CASH)
def get_cash_entry_route(entry_id: str):
    try:
        entry = get_services().cash.get_entry(g.caller, entry_id)
        return jsonify({"entry": entry.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("load cash entry")


@cash_bp.delete("/<entry_id>")
@require_auth
@require_capability(CAN_MANAGE_CASH)
def delete_cash_entry_route(entry_id: str):
    try:
        get_services().cash.delete_entry(g.caller, entry_id)
        return jsonify({"message": "Cash entry deleted", "id": entry_id}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete cash entry")
