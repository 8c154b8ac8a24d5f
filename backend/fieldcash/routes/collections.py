# Overview: Flask API routes for field collections; parses input and returns JSON responses.

# backend/fieldcash/routes/collections.py
"""
Collection API Routes

WHY: Field agents log every payment they take from a shop. The same call
credits the shop ledger.

SECURITY:
- POST requires field_staff and may only log for the caller's own id
- Field staff only see their own collections and cash in bag; admins see all
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..services import collection_service, handover_service
from ..services.concurrency import run_with_retry
from ..services.permission_service import PermissionDeniedError
from ..time_utils import parse_business_date
from ..validation import coerce_id


collections_bp = Blueprint("collections", __name__, url_prefix="/api/collections")


def _scoped_employee_id(requested: int | None) -> int | None:
    ctx = g.request_context
    if ctx.is_admin:
        return requested
    if requested is not None and requested != ctx.employee_id:
        raise PermissionDeniedError("You can only view your own collections")
    return ctx.employee_id


def _parse_bool(raw: str | None) -> bool | None:
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


@collections_bp.post("")
@require_auth
@require_role("field_staff")
def record_collection_route():
    """
    Record a collection.

    Request body:
    {
        "employee_id": 7,               // defaults to the caller
        "shop_id": 3,
        "amount_cents": 200000,
        "payment_mode": "cash",         // cash, upi, cheque
        "reference": "UTR123",          (optional)
        "geolocation": {"lat": 19.07, "lng": 72.87}   (required)
    }
    """
    data = request.get_json(silent=True) or {}
    ctx = g.request_context

    employee_id = data.get("employee_id")
    employee_id = ctx.employee_id if employee_id is None else coerce_id(employee_id, "employee_id")
    shop_id = coerce_id(data.get("shop_id"), "shop_id")

    txn = run_with_retry(lambda: collection_service.record_collection(
        ctx,
        employee_id=employee_id,
        shop_id=shop_id,
        amount_cents=data.get("amount_cents"),
        payment_mode=data.get("payment_mode"),
        reference=data.get("reference"),
        geolocation=data.get("geolocation"),
    ))

    return jsonify({"transaction": txn.to_dict()}), 201


@collections_bp.get("")
@require_auth
def list_collections_route():
    """Query params: employee_id, shop_id, date (YYYY-MM-DD), is_verified, payment_mode."""
    employee_id = _scoped_employee_id(request.args.get("employee_id", type=int))
    date_raw = request.args.get("date")

    txns = collection_service.list_transactions(
        employee_id=employee_id,
        shop_id=request.args.get("shop_id", type=int),
        business_date=parse_business_date(date_raw) if date_raw else None,
        is_verified=_parse_bool(request.args.get("is_verified")),
        payment_mode=request.args.get("payment_mode"),
    )

    return jsonify({"transactions": [t.to_dict() for t in txns]}), 200


@collections_bp.get("/cash-in-bag")
@require_auth
def cash_in_bag_route():
    """Unverified cash for an employee. Query params: employee_id, date (optional)."""
    employee_id = _scoped_employee_id(request.args.get("employee_id", type=int))
    if employee_id is None:
        return jsonify({"error": "employee_id required"}), 400
    date_raw = request.args.get("date")

    bag = handover_service.cash_in_bag(
        employee_id,
        parse_business_date(date_raw) if date_raw else None,
    )

    return jsonify(bag.to_dict()), 200
