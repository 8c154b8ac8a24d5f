# Overview: Flask API routes for cash settlement batches; parses input and returns JSON responses.

# backend/fieldcash/routes/settlements.py
"""
Settlement API Routes

WHY: The office keeps one record per cash batch an agent hands over, with
what it expected, what it counted and the variance.

SECURITY:
- Field staff may open and read settlements for themselves only
- Receiving, one-step verification and status overrides are admin only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import settlement_service
from ..services.concurrency import run_with_retry
from ..services.permission_service import PermissionDeniedError


settlements_bp = Blueprint("settlements", __name__, url_prefix="/api/settlements")


def _log_received(settlement) -> None:
    current_app.logger.info(
        "Settlement received: id=%s employee=%s status=%s variance_cents=%s by=%s",
        settlement.id,
        settlement.employee_id,
        settlement.status,
        settlement.variance_cents,
        g.request_context.employee_id,
    )


@settlements_bp.post("")
@require_auth
def create_settlement_route():
    """
    Open a pending settlement.

    Request body:
    {
        "employee_id": 7,               // defaults to the caller
        "transaction_ids": [11, 12],    (optional, defaults to all unbatched cash)
        "note": "Evening drop"          (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    ctx = g.request_context

    settlement = run_with_retry(lambda: settlement_service.create_settlement(
        ctx,
        employee_id=data.get("employee_id", ctx.employee_id),
        transaction_ids=data.get("transaction_ids"),
        note=data.get("note"),
    ))

    return jsonify({"settlement": settlement.to_dict()}), 201


@settlements_bp.post("/<int:settlement_id>/receive")
@require_auth
@require_role("admin")
def receive_settlement_route(settlement_id: int):
    """
    Record the counted cash for a pending settlement.

    Request body:
    {
        "received_amount_cents": 200000,
        "note": "Two notes torn"        (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get("received_amount_cents") is None:
        return jsonify({"error": "received_amount_cents required"}), 400

    settlement = run_with_retry(lambda: settlement_service.receive_settlement(
        g.request_context,
        settlement_id,
        received_amount_cents=data.get("received_amount_cents"),
        note=data.get("note"),
    ))
    _log_received(settlement)

    return jsonify({"settlement": settlement.to_dict()}), 200


@settlements_bp.post("/verify")
@require_auth
@require_role("admin")
def verify_settlement_route():
    """
    Open and receive a settlement in one step.

    Request body:
    {
        "employee_id": 7,
        "received_amount_cents": 200000,   (optional, defaults to expected)
        "transaction_ids": [11, 12],       (optional)
        "note": "Counted at desk"          (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get("employee_id") is None:
        return jsonify({"error": "employee_id required"}), 400

    settlement = run_with_retry(lambda: settlement_service.verify_settlement(
        g.request_context,
        employee_id=data.get("employee_id"),
        received_amount_cents=data.get("received_amount_cents"),
        transaction_ids=data.get("transaction_ids"),
        note=data.get("note"),
    ))
    _log_received(settlement)

    return jsonify({"settlement": settlement.to_dict()}), 201


@settlements_bp.patch("/<int:settlement_id>/status")
@require_auth
@require_role("admin")
def update_settlement_status_route(settlement_id: int):
    """
    Request body:
    {
        "status": "received",           // pending, received, discrepancy
        "note": "Shortfall recovered"   (required)
    }
    """
    data = request.get_json(silent=True) or {}

    settlement = run_with_retry(lambda: settlement_service.update_settlement_status(
        g.request_context,
        settlement_id,
        status=data.get("status"),
        note=data.get("note"),
    ))

    return jsonify({"settlement": settlement.to_dict()}), 200


@settlements_bp.get("")
@require_auth
def list_settlements_route():
    """Query params: employee_id, status. Field staff only see their own."""
    ctx = g.request_context
    employee_id = request.args.get("employee_id", type=int)
    if not ctx.is_admin:
        if employee_id is not None and employee_id != ctx.employee_id:
            raise PermissionDeniedError("You can only view your own settlements")
        employee_id = ctx.employee_id

    rows = settlement_service.list_settlements(employee_id=employee_id, status=request.args.get("status"))
    return jsonify({"settlements": [s.to_dict() for s in rows]}), 200


@settlements_bp.get("/<int:settlement_id>")
@require_auth
def get_settlement_route(settlement_id: int):
    settlement = settlement_service.get_settlement(settlement_id)
    ctx = g.request_context
    if not ctx.is_admin and settlement.employee_id != ctx.employee_id:
        raise PermissionDeniedError("You can only view your own settlements")
    return jsonify({"settlement": settlement.to_dict()}), 200
