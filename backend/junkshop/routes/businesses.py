# Overview: Flask API routes for business, membership and invitation operations.

# backend/junkshop/routes/businesses.py
"""
Business (tenant) API routes

MULTI-TENANT: Routes that choose or join a business (create, list mine,
switch, accept invitation) only need an authenticated profile (g.profile).
Everything else acts on the caller's current business (g.caller.business).
Capability checks live in the tenant directory; routes parse and render.
"""

from flask import Blueprint, g, jsonify, request

from .. import get_services
from ..decorators import require_auth, require_profile
from ..errors import JunkshopError, ValidationError
from .common import error_response, internal_error


businesses_bp = Blueprint("businesses", __name__, url_prefix="/api/businesses")
invitations_bp = Blueprint("invitations", __name__, url_prefix="/api/invitations")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@businesses_bp.post("")
@require_profile
def create_business_route():
    """Create a business; the caller becomes its owner and switches into it."""
    try:
        data = _json_body()
        business, membership = get_services().directory.create_business(
            g.profile,
            data.get("name"),
            description=data.get("description"),
            address=data.get("address"),
            phone=data.get("phone"),
            email=data.get("email"),
        )
        return jsonify({"business": business.to_dict(), "membership": membership.to_dict()}), 201
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("create business")


@businesses_bp.get("")
@require_profile
def list_businesses_route():
    try:
        businesses = get_services().directory.list_user_businesses(g.profile)
        return jsonify({"businesses": businesses}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("list businesses")


@businesses_bp.get("/current")
@require_auth
def current_business_route():
    return jsonify(g.caller.to_dict()), 200


@businesses_bp.patch("/current")
@require_auth
def update_current_business_route():
    try:
        business = get_services().directory.update_business(
            g.caller.profile,
            g.caller.business_id,
            _json_body(),
        )
        return jsonify({"business": business.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("update business")


@businesses_bp.post("/switch")
@require_profile
def switch_business_route():
    try:
        business_id = _json_body().get("business_id")
        if not business_id:
            raise ValidationError("business_id is required", field="business_id")

        services = get_services()
        business, membership = services.directory.switch_business(g.profile, business_id)
        caller = services.gate.context_for(g.profile, business, membership)
        return jsonify(caller.to_dict()), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("switch business")


@businesses_bp.get("/members")
@require_auth
def list_members_route():
    try:
        members = get_services().directory.list_members(g.caller.profile, g.caller.business_id)
        return jsonify({"members": members}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("list members")


@businesses_bp.patch("/members/<profile_id>")
@require_auth
def update_member_role_route(profile_id: str):
    try:
        role = _json_body().get("role")
        membership = get_services().directory.update_user_role(
            g.caller.profile,
            g.caller.business_id,
            profile_id,
            role,
        )
        return jsonify({"member": membership.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("update member role")


@businesses_bp.delete("/members/<profile_id>")
@require_auth
def remove_member_route(profile_id: str):
    try:
        membership = get_services().directory.remove_user_from_business(
            g.caller.profile,
            g.caller.business_id,
            profile_id,
        )
        return jsonify({"member": membership.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("remove member")


@businesses_bp.get("/invitations")
@require_auth
def list_invitations_route():
    """Query param "status" (default pending; "all" for every status)."""
    try:
        status = request.args.get("status", "pending")
        invitations = get_services().directory.list_invitations(
            g.caller.profile,
            g.caller.business_id,
            status=None if status == "all" else status,
        )
        return jsonify({"invitations": [i.to_dict() for i in invitations]}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("list invitations")


@businesses_bp.post("/invitations")
@require_auth
def invite_user_route():
    """
    Invite an email address to the caller's current business.

    The token is returned once here so it can be delivered out of band.
    """
    try:
        data = _json_body()
        invitation = get_services().directory.invite_user(
            g.caller.profile,
            g.caller.business_id,
            data.get("email"),
            data.get("role"),
        )
        return jsonify({"invitation": invitation.to_dict(include_token=True)}), 201
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("invite user")


@businesses_bp.post("/invitations/<invitation_id>/cancel")
@require_auth
def cancel_invitation_route(invitation_id: str):
    try:
        invitation = get_services().directory.cancel_invitation(g.caller.profile, invitation_id)
        return jsonify({"invitation": invitation.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("cancel invitation")


@invitations_bp.post("/accept")
@require_profile
def accept_invitation_route():
    try:
        token = _json_body().get("token")
        membership = get_services().directory.accept_invitation(g.profile, token)
        return jsonify({"member": membership.to_dict()}), 200
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("accept invitation")
