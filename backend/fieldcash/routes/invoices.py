# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..services import invoice_service
from ..services.concurrency import run_with_retry


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("")
@require_auth
@require_role("admin")
def create_invoice_route():
    """
    Bill a shop (raises its balance).

    Request body:
    {
        "shop_id": 3,
        "amount_cents": 150000,
        "invoice_number": "INV-1042",
        "invoice_date": "2026-10-19",
        "reference": "PO 88"    (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    shop_id = data.get("shop_id")
    if shop_id is None:
        return jsonify({"error": "shop_id required"}), 400

    invoice = run_with_retry(lambda: invoice_service.create_invoice(
        g.request_context,
        shop_id=shop_id,
        amount_cents=data.get("amount_cents"),
        invoice_number=data.get("invoice_number"),
        invoice_date=data.get("invoice_date"),
        reference=data.get("reference"),
    ))

    return jsonify({"invoice": invoice.to_dict()}), 201


@invoices_bp.patch("/<int:invoice_id>")
@require_auth
@require_role("admin")
def update_invoice_route(invoice_id: int):
    """Correct an invoice amount. Request body: {"amount_cents": 120000}"""
    data = request.get_json(silent=True) or {}

    invoice = run_with_retry(lambda: invoice_service.update_invoice_amount(
        g.request_context,
        invoice_id,
        data.get("amount_cents"),
    ))

    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/cancel")
@require_auth
@require_role("admin")
def cancel_invoice_route(invoice_id: int):
    invoice = run_with_retry(lambda: invoice_service.cancel_invoice(g.request_context, invoice_id))
    return jsonify({"invoice": invoice.to_dict()}), 200
