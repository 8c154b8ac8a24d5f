# Overview: Service-layer operations for cash handover; moves cash from "in bag" to "in office".

"""
Handover Verification

WHY: Cash collected by an agent stays "in the bag" until the office
confirms it physically received it. Verification is the custody transfer.

DESIGN:
- Only cash transactions are handed over (UPI/cheque never sit in a bag)
- verify_handover() snapshots every unverified cash transaction of one
  employee under a row lock and marks the whole snapshot verified in the
  same transaction. Rows created after the snapshot stay unverified.
- is_verified is monotonic: False -> True once, never back
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import func, case

from ..extensions import db
from ..models import CollectionTransaction, Employee
from .. import repositories
from ..time_utils import utcnow
from .concurrency import atomic
from .permission_service import RequestContext, require_role


@dataclass
class HandoverResult:
    employee_id: int
    verified_count: int = 0
    amount_cents: int = 0
    transaction_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "verified_count": self.verified_count,
            "amount_cents": self.amount_cents,
            "transaction_ids": list(self.transaction_ids),
        }


@dataclass(frozen=True)
class CashInBag:
    employee_id: int
    business_date: date | None
    total_cents: int
    count: int

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "date": self.business_date.isoformat() if self.business_date else None,
            "total_cents": self.total_cents,
            "count": self.count,
        }


def verify_handover(ctx: RequestContext, employee_id: int) -> HandoverResult:
    """
    Mark all of an employee's unverified cash transactions as verified.

    All-or-nothing per call. Returns an empty result (not an error) when
    nothing is pending.
    """
    require_role(ctx, "admin")
    result = HandoverResult(employee_id=employee_id)

    with atomic():
        pending = repositories.transactions.search(
            employee_id=employee_id,
            payment_mode="cash",
            is_verified=False,
            for_update=True,
        )
        mark_handed_over(pending, ctx.employee_id, result)

    return result


def mark_handed_over(
    txns: list[CollectionTransaction],
    verifier_employee_id: int,
    result: HandoverResult,
) -> HandoverResult:
    """
    Stamp a locked snapshot as received by the office, all with one
    verified_at. Already verified rows are skipped. The caller owns the
    unit of work.
    """
    now = utcnow()
    for txn in txns:
        if txn.is_verified:
            continue
        repositories.transactions.patch(
            txn,
            is_verified=True,
            verified_at=now,
            verified_by_employee_id=verifier_employee_id,
        )
        result.verified_count += 1
        result.amount_cents += txn.amount_cents
        result.transaction_ids.append(txn.id)
    return result


def cash_in_bag(employee_id: int, business_date: date | None = None) -> CashInBag:
    """
    Cash collected by an agent that the office has not verified yet.

    With business_date, only collections made on that UTC day count.
    """
    pending = repositories.transactions.search(
        employee_id=employee_id,
        business_date=business_date,
        payment_mode="cash",
        is_verified=False,
    )
    return CashInBag(
        employee_id=employee_id,
        business_date=business_date,
        total_cents=sum(t.amount_cents for t in pending),
        count=len(pending),
    )


def pending_handovers() -> list[dict]:
    """
    Employees who still hold unverified cash, for the office handover screen.

    Totals cover every unverified transaction; only employees with a cash
    amount above zero are listed.
    """
    cash_amount = func.sum(
        case((CollectionTransaction.payment_mode == "cash", CollectionTransaction.amount_cents), else_=0)
    )
    rows = (
        db.session.query(
            CollectionTransaction.employee_id,
            Employee.name,
            func.sum(CollectionTransaction.amount_cents),
            cash_amount,
            func.count(CollectionTransaction.id),
        )
        .outerjoin(Employee, Employee.id == CollectionTransaction.employee_id)
        .filter(CollectionTransaction.is_verified.is_(False))
        .group_by(CollectionTransaction.employee_id, Employee.name)
        .order_by(CollectionTransaction.employee_id)
        .all()
    )

    result = []
    for employee_id, name, total, cash_total, count in rows:
        if not cash_total:
            continue
        result.append({
            "employee_id": employee_id,
            "employee_name": name or "Unknown",
            "total_amount_cents": int(total or 0),
            "cash_amount_cents": int(cash_total or 0),
            "transaction_count": count,
        })
    return result
