# Overview: Flask API routes for cash handover verification; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import handover_service
from ..services.concurrency import run_with_retry


handovers_bp = Blueprint("handovers", __name__, url_prefix="/api/handovers")


@handovers_bp.get("/pending")
@require_auth
@require_role("admin")
def pending_handovers_route():
    """Employees still holding unverified cash."""
    return jsonify({"pending": handover_service.pending_handovers()}), 200


@handovers_bp.post("/<int:employee_id>/verify")
@require_auth
@require_role("admin")
def verify_handover_route(employee_id: int):
    """
    Confirm the office received an employee's cash.

    Marks every unverified cash collection of the employee as verified.
    Returns verified_count 0 when nothing was pending.
    """
    result = run_with_retry(lambda: handover_service.verify_handover(g.request_context, employee_id))

    if result.verified_count:
        current_app.logger.info(
            "Handover verified: employee=%s count=%s amount_cents=%s by=%s",
            employee_id, result.verified_count, result.amount_cents, g.request_context.employee_id,
        )

    return jsonify(result.to_dict()), 200
