"""
Daily Reconciliation Engine

WHY: At the end of the day the office counts the cash each agent handed in
and compares it with what the agent's collections say they should have.

LIFECYCLE (per employee per date):
- pending: implicit, no row yet
- verified: actual == expected (or admin override with a note)
- mismatch: actual != expected (or admin override with a note)
- closed: end-of-day sweep over the whole date (terminal)

DESIGN PRINCIPLES:
- expected cash is recomputed from transactions on every verify(), never
  read from a previously stored value
- variance = actual - expected, always
- verify() REPLACES the (employee, date) row; it never appends a second one.
  This is the opposite of the balance audit log, which only appends.
- close_day() touches reconciliation rows only, never transactions or
  balances
"""

from __future__ import annotations

from datetime import date

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..models import DailyReconciliation
from ..models.reconciliations import STATUS_CLOSED, STATUS_MISMATCH, STATUS_VERIFIED
from .. import repositories
from ..time_utils import parse_business_date, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_cents,
    coerce_id,
    require_note,
)
from .concurrency import atomic
from .permission_service import RequestContext, require_role


# Statuses an admin may force; closed is only reachable through close_day()
OVERRIDABLE_STATUSES = (STATUS_VERIFIED, STATUS_MISMATCH)

# verify() re-reads and replaces once if a concurrent insert won the race
UPSERT_ATTEMPTS = 2


def compute_expected_cash(employee_id: int, business_date: date) -> int:
    """Sum of the employee's completed cash collections on that day."""
    txns = repositories.transactions.search(
        employee_id=employee_id,
        business_date=business_date,
        payment_mode="cash",
        status="completed",
    )
    return sum(t.amount_cents for t in txns)


def status_for_variance(variance_cents: int) -> str:
    return STATUS_VERIFIED if variance_cents == 0 else STATUS_MISMATCH


def _allow_verify_after_close() -> bool:
    if has_app_context():
        return bool(current_app.config.get("ALLOW_VERIFY_AFTER_CLOSE", False))
    return False


def _require_forced_status(forced_status: str | None, note: str | None) -> tuple[str | None, str | None]:
    if forced_status is None:
        return None, note
    status = str(forced_status).strip().lower()
    if status not in OVERRIDABLE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(OVERRIDABLE_STATUSES)}")
    return status, require_note(note, "a reconciliation status override")


def verify(
    ctx: RequestContext,
    employee_id: int,
    business_date,
    actual_cash_cents,
    note: str | None = None,
    forced_status: str | None = None,
) -> DailyReconciliation:
    """
    Record the office's cash count for one employee and day.

    Args:
        ctx: Caller; must be admin
        employee_id: Agent being reconciled
        business_date: Day being reconciled (date or "YYYY-MM-DD")
        actual_cash_cents: Cash the office counted
        note: Optional; mandatory with forced_status
        forced_status: verified or mismatch, regardless of variance

    Returns:
        The single reconciliation row for (employee_id, business_date).

    Raises:
        ValidationError: malformed employee id, date or amount; forced status
            without a note
        NotFoundError: no such employee
        ConflictError: the row is closed (unless ALLOW_VERIFY_AFTER_CLOSE)
    """
    require_role(ctx, "admin")
    employee_id = coerce_id(employee_id, "employee_id")
    if repositories.employees.get(employee_id) is None:
        raise NotFoundError("Employee not found")
    business_date = parse_business_date(business_date)
    actual_cash_cents = coerce_cents(actual_cash_cents, "actual_cash_cents")
    if actual_cash_cents < 0:
        raise ValidationError("actual_cash_cents cannot be negative")
    forced_status, note = _require_forced_status(forced_status, note)

    for attempt in range(UPSERT_ATTEMPTS):
        try:
            with atomic():
                existing = repositories.reconciliations.get_by_key(employee_id, business_date, for_update=True)
                if existing is not None and existing.status == STATUS_CLOSED and not _allow_verify_after_close():
                    raise ConflictError(f"Reconciliation for {business_date.isoformat()} is already closed")

                expected_cash = compute_expected_cash(employee_id, business_date)
                variance = actual_cash_cents - expected_cash
                status = forced_status or status_for_variance(variance)

                reconciliation, _created = repositories.reconciliations.replace(
                    employee_id,
                    business_date,
                    expected_cash_cents=expected_cash,
                    actual_cash_cents=actual_cash_cents,
                    variance_cents=variance,
                    status=status,
                    note=note,
                    verified_at=utcnow(),
                    verified_by_employee_id=ctx.employee_id,
                    closed_at=None,
                    closed_by_employee_id=None,
                )
            return reconciliation
        except IntegrityError:
            # Another request inserted the same (employee, date) first; the
            # next attempt finds that row and replaces it.
            if attempt >= UPSERT_ATTEMPTS - 1:
                raise ConflictError("Reconciliation was modified concurrently, retry the request")

    raise ConflictError("Reconciliation was modified concurrently, retry the request")


def override_status(
    ctx: RequestContext,
    reconciliation_id: int,
    status: str,
    note: str | None,
    actual_cash_cents=None,
) -> DailyReconciliation:
    """
    Admin override of an existing reconciliation by id.

    With actual_cash_cents, variance is recomputed against the stored
    expected cash. The note is mandatory.
    """
    require_role(ctx, "admin")
    status, note = _require_forced_status(status, note)
    if actual_cash_cents is not None:
        actual_cash_cents = coerce_cents(actual_cash_cents, "actual_cash_cents")
        if actual_cash_cents < 0:
            raise ValidationError("actual_cash_cents cannot be negative")

    with atomic():
        reconciliation = repositories.reconciliations.get(reconciliation_id, for_update=True)
        if reconciliation is None:
            raise NotFoundError("Reconciliation not found")
        if reconciliation.status == STATUS_CLOSED:
            raise ConflictError("Closed reconciliations cannot be changed")

        fields = {
            "status": status,
            "note": note,
            "verified_at": utcnow(),
            "verified_by_employee_id": ctx.employee_id,
        }
        if actual_cash_cents is not None:
            fields["actual_cash_cents"] = actual_cash_cents
            fields["variance_cents"] = actual_cash_cents - reconciliation.expected_cash_cents
        repositories.reconciliations.patch(reconciliation, **fields)

    return reconciliation


def close_day(ctx: RequestContext, business_date) -> int:
    """
    End-of-day sweep: every reconciliation for the date becomes closed.

    Prior status does not matter. Irreversible. Transactions and shop
    balances are not touched. Returns how many rows the date now has closed.
    """
    require_role(ctx, "admin")
    business_date = parse_business_date(business_date)

    with atomic():
        rows = repositories.reconciliations.for_date(business_date, for_update=True)
        now = utcnow()
        for row in rows:
            if row.status == STATUS_CLOSED:
                continue
            repositories.reconciliations.patch(
                row,
                status=STATUS_CLOSED,
                closed_at=now,
                closed_by_employee_id=ctx.employee_id,
            )

    return len(rows)


def get_reconciliation(employee_id: int, business_date) -> DailyReconciliation | None:
    """The row for (employee, date), or None while the day is still pending."""
    return repositories.reconciliations.get_by_key(employee_id, parse_business_date(business_date))


def list_reconciliations(
    business_date=None,
    employee_id: int | None = None,
    status: str | None = None,
) -> list[DailyReconciliation]:
    if business_date is not None:
        business_date = parse_business_date(business_date)
    return repositories.reconciliations.search(
        business_date=business_date,
        employee_id=employee_id,
        status=status,
    )
