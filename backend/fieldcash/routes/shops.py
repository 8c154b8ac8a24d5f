# Overview: Flask API routes for shops and their balance ledger; parses input and returns JSON responses.

# backend/fieldcash/routes/shops.py
"""
Shop and Ledger API Routes

DESIGN:
- Shops are created and tombstoned by admins, never hard-deleted
- Balance changes only through the ledger service (override or correction),
  each producing one audit row
- Audit log is read-only

SECURITY:
- admin role for every mutation
- any authenticated employee may read shops
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..services import ledger_service, shop_service
from ..services.concurrency import run_with_retry


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.post("")
@require_auth
@require_role("admin")
def create_shop_route():
    """
    Create a shop.

    Request body:
    {
        "name": "Sharma General Store",
        "address": "12 Market Road",
        "zone": "North",
        "phone": "9876543210",          (optional)
        "opening_balance_cents": 500000  (optional, default 0)
    }
    """
    data = request.get_json(silent=True) or {}

    shop = shop_service.create_shop(
        g.request_context,
        name=data.get("name"),
        address=data.get("address"),
        zone=data.get("zone"),
        phone=data.get("phone"),
        opening_balance_cents=data.get("opening_balance_cents", 0),
    )

    return jsonify({"shop": shop.to_dict()}), 201


@shops_bp.get("")
@require_auth
def list_shops_route():
    """List shops. Query params: zone, include_deleted=true."""
    zone = request.args.get("zone")
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"

    shops = shop_service.list_shops(zone=zone, include_deleted=include_deleted)

    return jsonify({"shops": [s.to_dict() for s in shops]}), 200


@shops_bp.get("/<int:shop_id>")
@require_auth
def get_shop_route(shop_id: int):
    shop = shop_service.get_shop(shop_id, include_deleted=True)
    return jsonify({"shop": shop.to_dict()}), 200


@shops_bp.delete("/<int:shop_id>")
@require_auth
@require_role("admin")
def delete_shop_route(shop_id: int):
    """Soft delete (tombstone) a shop."""
    shop = shop_service.soft_delete_shop(g.request_context, shop_id)
    return jsonify({"shop": shop.to_dict()}), 200


@shops_bp.put("/<int:shop_id>/balance")
@require_auth
@require_role("admin")
def override_balance_route(shop_id: int):
    """
    Manually set a shop balance.

    Request body:
    {
        "new_balance_cents": 250000,
        "note": "Agreed settlement after dispute"   (required)
    }
    """
    data = request.get_json(silent=True) or {}

    entry = run_with_retry(lambda: ledger_service.override_balance(
        g.request_context,
        shop_id,
        data.get("new_balance_cents"),
        data.get("note"),
    ))

    return jsonify({
        "shop_id": shop_id,
        "current_balance_cents": entry.new_balance_cents,
        "audit_entry": entry.to_dict(),
    }), 200


@shops_bp.post("/<int:shop_id>/corrections")
@require_auth
@require_role("admin")
def add_correction_route(shop_id: int):
    """
    Add a signed balance correction.

    Request body:
    {
        "amount_cents": -5000,   // positive raises what the shop owes
        "note": "Damaged goods returned"   (required)
    }
    """
    data = request.get_json(silent=True) or {}

    entry = run_with_retry(lambda: ledger_service.add_correction(
        g.request_context,
        shop_id,
        data.get("amount_cents"),
        data.get("note"),
    ))

    return jsonify({
        "shop_id": shop_id,
        "current_balance_cents": entry.new_balance_cents,
        "audit_entry": entry.to_dict(),
    }), 201


@shops_bp.get("/<int:shop_id>/audit-log")
@require_auth
@require_role("admin")
def audit_log_route(shop_id: int):
    """Balance audit trail, newest first. Query param: limit (1-500, default 100)."""
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    entries = ledger_service.get_shop_audit_log(shop_id, limit=limit)

    return jsonify({
        "items": [e.to_dict() for e in entries],
        "limit": limit,
    }), 200
