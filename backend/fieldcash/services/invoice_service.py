# Overview: Service-layer operations for invoices; every amount change goes through the shop ledger.

from __future__ import annotations

from ..models import Invoice
from .. import repositories
from ..time_utils import parse_business_date, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, clean_optional_text, require_positive_cents
from .concurrency import atomic
from .ledger_service import BalanceDelta, apply_balance_change
from .permission_service import RequestContext, require_role


def create_invoice(
    ctx: RequestContext,
    shop_id: int,
    amount_cents,
    invoice_number: str,
    invoice_date,
    reference: str | None = None,
) -> Invoice:
    """
    Bill a shop. The shop balance rises by the invoice amount and the audit
    row references the invoice.
    """
    require_role(ctx, "admin")
    amount_cents = require_positive_cents(amount_cents)
    invoice_number = clean_optional_text(invoice_number, "invoice_number", 64)
    if not invoice_number:
        raise ValidationError("invoice_number required")
    invoice_date = parse_business_date(invoice_date)
    reference = clean_optional_text(reference, "reference", 128)

    with atomic():
        if repositories.shops.get_live(shop_id) is None:
            raise NotFoundError("Shop not found")
        duplicate = repositories.invoices.query(shop_id=shop_id, invoice_number=invoice_number).first()
        if duplicate:
            raise ConflictError(f"Invoice '{invoice_number}' already exists for this shop")

        invoice = repositories.invoices.insert(Invoice(
            shop_id=shop_id,
            amount_cents=amount_cents,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            reference=reference,
            status="active",
            created_by_employee_id=ctx.employee_id,
            created_at=utcnow(),
        ))

        apply_balance_change(
            shop_id,
            BalanceDelta(amount_cents, change_type="invoice"),
            actor_employee_id=ctx.employee_id,
            note=f"Invoice {invoice_number}",
            reference_type="invoice",
            reference_id=invoice.id,
            commit=False,
        )

    return invoice


def update_invoice_amount(ctx: RequestContext, invoice_id: int, amount_cents) -> Invoice:
    """Correct an invoice amount; the shop balance moves by the difference."""
    require_role(ctx, "admin")
    amount_cents = require_positive_cents(amount_cents)

    with atomic():
        invoice = repositories.invoices.get(invoice_id, for_update=True)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        if invoice.status == "cancelled":
            raise ConflictError("Cannot update a cancelled invoice")

        delta = amount_cents - invoice.amount_cents
        if delta == 0:
            return invoice

        repositories.invoices.patch(invoice, amount_cents=amount_cents)
        apply_balance_change(
            invoice.shop_id,
            BalanceDelta(delta, change_type="invoice_adjustment"),
            actor_employee_id=ctx.employee_id,
            note=f"Invoice {invoice.invoice_number} amount adjusted",
            reference_type="invoice",
            reference_id=invoice.id,
            commit=False,
        )

    return invoice


def cancel_invoice(ctx: RequestContext, invoice_id: int) -> Invoice:
    """Cancel an invoice and take its amount back out of the shop balance."""
    require_role(ctx, "admin")

    with atomic():
        invoice = repositories.invoices.get(invoice_id, for_update=True)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        if invoice.status == "cancelled":
            raise ConflictError("Invoice already cancelled")

        repositories.invoices.patch(
            invoice,
            status="cancelled",
            cancelled_at=utcnow(),
            cancelled_by_employee_id=ctx.employee_id,
        )
        apply_balance_change(
            invoice.shop_id,
            BalanceDelta(-invoice.amount_cents, change_type="invoice_cancel"),
            actor_employee_id=ctx.employee_id,
            note=f"Invoice {invoice.invoice_number} cancelled",
            reference_type="invoice",
            reference_id=invoice.id,
            commit=False,
        )

    return invoice
