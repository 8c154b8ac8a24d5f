# Overview: Flask API routes for daily reconciliation; parses input and returns JSON responses.

# backend/fieldcash/routes/reconciliations.py
"""
Daily Reconciliation API Routes

DESIGN:
- verify replaces the (employee, date) record; it never creates a second one
- status override by id needs a note
- close-day closes every record of a date at once (irreversible)

SECURITY:
- admin role for everything
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import reconciliation_service
from ..models.reconciliations import STATUS_PENDING
from ..services.concurrency import run_with_retry
from ..validation import coerce_id


reconciliations_bp = Blueprint("reconciliations", __name__, url_prefix="/api/reconciliations")


@reconciliations_bp.post("/verify")
@require_auth
@require_role("admin")
def verify_route():
    """
    Record the office's cash count for an employee and day.

    Request body:
    {
        "employee_id": 7,
        "date": "2026-10-19",
        "actual_cash_cents": 200000,
        "note": "Counted twice",        (optional)
        "status": "verified"            (optional override, requires note)
    }
    """
    data = request.get_json(silent=True) or {}

    if data.get("employee_id") is None or data.get("actual_cash_cents") is None:
        return jsonify({"error": "employee_id, date, and actual_cash_cents required"}), 400
    employee_id = coerce_id(data.get("employee_id"), "employee_id")

    reconciliation = run_with_retry(lambda: reconciliation_service.verify(
        g.request_context,
        employee_id=employee_id,
        business_date=data.get("date"),
        actual_cash_cents=data.get("actual_cash_cents"),
        note=data.get("note"),
        forced_status=data.get("status"),
    ))

    current_app.logger.info(
        "Reconciliation verified: employee=%s date=%s status=%s variance_cents=%s",
        reconciliation.employee_id,
        reconciliation.business_date.isoformat(),
        reconciliation.status,
        reconciliation.variance_cents,
    )

    return jsonify({"reconciliation": reconciliation.to_dict()}), 200


@reconciliations_bp.get("")
@require_auth
@require_role("admin")
def list_reconciliations_route():
    """Query params: date, employee_id, status."""
    rows = reconciliation_service.list_reconciliations(
        business_date=request.args.get("date"),
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"reconciliations": [r.to_dict() for r in rows]}), 200


@reconciliations_bp.get("/<int:employee_id>/<date_str>")
@require_auth
@require_role("admin")
def get_reconciliation_route(employee_id: int, date_str: str):
    """One employee's day. status "pending" with no record when not yet verified."""
    row = reconciliation_service.get_reconciliation(employee_id, date_str)
    if row is None:
        return jsonify({
            "reconciliation": None,
            "employee_id": employee_id,
            "date": date_str,
            "status": STATUS_PENDING,
        }), 200
    return jsonify({"reconciliation": row.to_dict(), "status": row.status}), 200


@reconciliations_bp.patch("/<int:reconciliation_id>/status")
@require_auth
@require_role("admin")
def override_status_route(reconciliation_id: int):
    """
    Admin override of a reconciliation status.

    Request body:
    {
        "status": "verified",           // verified or mismatch
        "note": "Shortfall paid next morning",   (required)
        "actual_cash_cents": 180000     (optional, recomputes variance)
    }
    """
    data = request.get_json(silent=True) or {}

    reconciliation = run_with_retry(lambda: reconciliation_service.override_status(
        g.request_context,
        reconciliation_id,
        status=data.get("status"),
        note=data.get("note"),
        actual_cash_cents=data.get("actual_cash_cents"),
    ))

    return jsonify({"reconciliation": reconciliation.to_dict()}), 200


@reconciliations_bp.post("/close-day")
@require_auth
@require_role("admin")
def close_day_route():
    """
    Close every reconciliation of a date.

    Request body:
    {
        "date": "2026-10-19"
    }
    """
    data = request.get_json(silent=True) or {}

    closed = run_with_retry(lambda: reconciliation_service.close_day(g.request_context, data.get("date")))

    current_app.logger.info(
        "Day closed: date=%s records=%s by=%s", data.get("date"), closed, g.request_context.employee_id
    )

    return jsonify({"date": data.get("date"), "closed": closed}), 200
