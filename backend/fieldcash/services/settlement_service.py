# Overview: Service-layer operations for cash settlements; batches an agent's cash and records what the office counted.

"""
Cash Settlement Batches

WHY: verify_handover() flips transactions to verified but keeps no record of
what was handed over or whether the count matched. A settlement is that
record: one batch of an agent's cash with the amount the batch should hold,
the amount the office counted and the difference.

LIFECYCLE:
- pending: batch opened, expected amount frozen from its transactions
- received: office counted exactly the expected amount
- discrepancy: office counted a different amount

DESIGN PRINCIPLES:
- Only completed, unverified cash collections of the same agent can be
  batched, and each one lands in at most one settlement
- variance = received - expected, the same rule as daily reconciliation
- Receiving a batch is the custody transfer: its transactions are marked
  verified in the same unit of work as the settlement
- Status overrides need a note and never un-verify transactions
"""

from __future__ import annotations

from .. import repositories
from ..models import CollectionTransaction, Settlement
from ..models.settlements import (
    SETTLEMENT_DISCREPANCY,
    SETTLEMENT_PENDING,
    SETTLEMENT_RECEIVED,
    SETTLEMENT_STATUSES,
)
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_optional_text,
    coerce_cents,
    coerce_id,
    require_note,
)
from .concurrency import atomic
from .handover_service import HandoverResult, mark_handed_over
from .permission_service import RequestContext, require_role, require_self_or_admin


def status_for_variance(variance_cents: int) -> str:
    return SETTLEMENT_RECEIVED if variance_cents == 0 else SETTLEMENT_DISCREPANCY


def _require_employee(employee_id: int) -> None:
    if repositories.employees.get(employee_id) is None:
        raise NotFoundError("Employee not found")


def _require_received(value) -> int:
    cents = coerce_cents(value, "received_amount_cents")
    if cents < 0:
        raise ValidationError("received_amount_cents cannot be negative")
    return cents


def _select_batch(employee_id: int, transaction_ids) -> list[CollectionTransaction]:
    """Lock the transactions going into a new batch and check each one."""
    if transaction_ids is None:
        return repositories.transactions.search(
            employee_id=employee_id,
            payment_mode="cash",
            status="completed",
            is_verified=False,
            settled=False,
            for_update=True,
        )

    if not isinstance(transaction_ids, (list, tuple)):
        raise ValidationError("transaction_ids must be a list")
    ids = list(dict.fromkeys(coerce_id(t, "transaction_ids") for t in transaction_ids))
    txns = repositories.transactions.by_ids(ids, for_update=True)

    missing = sorted(set(ids) - {t.id for t in txns})
    if missing:
        raise NotFoundError(f"Transactions not found: {', '.join(str(i) for i in missing)}")

    for txn in txns:
        if txn.employee_id != employee_id:
            raise ValidationError(f"Transaction {txn.id} belongs to another employee")
        if txn.payment_mode != "cash" or txn.status != "completed":
            raise ValidationError(f"Transaction {txn.id} is not a completed cash collection")
        if txn.settlement_id is not None:
            raise ConflictError(f"Transaction {txn.id} is already in settlement {txn.settlement_id}")
        if txn.is_verified:
            raise ConflictError(f"Transaction {txn.id} was already handed over")
    return txns


def _open(ctx: RequestContext, employee_id: int, transaction_ids, note: str | None) -> Settlement:
    txns = _select_batch(employee_id, transaction_ids)
    if not txns:
        raise ValidationError("No unverified cash to settle")

    settlement = repositories.settlements.insert(Settlement(
        employee_id=employee_id,
        expected_amount_cents=sum(t.amount_cents for t in txns),
        status=SETTLEMENT_PENDING,
        note=note,
        created_at=utcnow(),
        created_by_employee_id=ctx.employee_id,
    ))
    for txn in txns:
        repositories.transactions.patch(txn, settlement_id=settlement.id)
    return settlement


def _receive(ctx: RequestContext, settlement: Settlement, received_cents: int, note: str | None) -> Settlement:
    variance = received_cents - settlement.expected_amount_cents
    repositories.settlements.patch(
        settlement,
        received_amount_cents=received_cents,
        variance_cents=variance,
        status=status_for_variance(variance),
        received_at=utcnow(),
        received_by_employee_id=ctx.employee_id,
        note=note if note is not None else settlement.note,
    )
    mark_handed_over(
        repositories.transactions.for_settlement(settlement.id, for_update=True),
        ctx.employee_id,
        HandoverResult(employee_id=settlement.employee_id),
    )
    return settlement


def create_settlement(
    ctx: RequestContext,
    employee_id,
    transaction_ids: list[int] | None = None,
    note: str | None = None,
) -> Settlement:
    """
    Open a pending settlement for cash an agent is about to hand over.

    Args:
        ctx: Caller; the agent themselves or an admin
        employee_id: Agent handing over
        transaction_ids: Cash collections to batch; all unbatched,
            unverified cash of the agent when omitted
        note: Optional free text

    Raises:
        PermissionDeniedError: field staff opening a batch for someone else
        NotFoundError: unknown employee or transaction id
        ValidationError: nothing to settle, or a transaction that is not the
            agent's completed cash
        ConflictError: a transaction is already batched or handed over
    """
    employee_id = coerce_id(employee_id, "employee_id")
    require_self_or_admin(ctx, employee_id, "open settlements")
    _require_employee(employee_id)
    note = clean_optional_text(note, "note", 500)

    with atomic():
        settlement = _open(ctx, employee_id, transaction_ids, note)

    return settlement


def receive_settlement(
    ctx: RequestContext,
    settlement_id: int,
    received_amount_cents,
    note: str | None = None,
) -> Settlement:
    """
    Record what the office counted for a pending settlement.

    Status becomes received when the count matches, discrepancy otherwise.
    The batch's transactions are marked verified in the same unit.
    """
    require_role(ctx, "admin")
    received_cents = _require_received(received_amount_cents)
    note = clean_optional_text(note, "note", 500)

    with atomic():
        settlement = repositories.settlements.get(settlement_id, for_update=True)
        if settlement is None:
            raise NotFoundError("Settlement not found")
        if settlement.status != SETTLEMENT_PENDING:
            raise ConflictError(f"Settlement {settlement.id} was already received")
        _receive(ctx, settlement, received_cents, note)

    return settlement


def verify_settlement(
    ctx: RequestContext,
    employee_id,
    received_amount_cents=None,
    transaction_ids: list[int] | None = None,
    note: str | None = None,
) -> Settlement:
    """
    Open and receive a settlement in one step, at the office counter.

    Without received_amount_cents the count is taken to match the expected
    amount.
    """
    require_role(ctx, "admin")
    employee_id = coerce_id(employee_id, "employee_id")
    _require_employee(employee_id)
    received_cents = None if received_amount_cents is None else _require_received(received_amount_cents)
    note = clean_optional_text(note, "note", 500)

    with atomic():
        settlement = _open(ctx, employee_id, transaction_ids, note)
        if received_cents is None:
            received_cents = settlement.expected_amount_cents
        _receive(ctx, settlement, received_cents, note)

    return settlement


def update_settlement_status(ctx: RequestContext, settlement_id: int, status: str, note: str | None) -> Settlement:
    """Admin override of a settlement status. The note is mandatory."""
    require_role(ctx, "admin")
    status = str(status or "").strip().lower()
    if status not in SETTLEMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SETTLEMENT_STATUSES)}")
    note = require_note(note, "a settlement status override")

    with atomic():
        settlement = repositories.settlements.get(settlement_id, for_update=True)
        if settlement is None:
            raise NotFoundError("Settlement not found")
        repositories.settlements.patch(settlement, status=status, note=note)

    return settlement


def get_settlement(settlement_id: int) -> Settlement:
    settlement = repositories.settlements.get(settlement_id)
    if settlement is None:
        raise NotFoundError("Settlement not found")
    return settlement


def list_settlements(employee_id: int | None = None, status: str | None = None) -> list[Settlement]:
    if status is not None and status not in SETTLEMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SETTLEMENT_STATUSES)}")
    return repositories.settlements.search(employee_id=employee_id, status=status)
