# Overview: Service-layer operations for the shop balance ledger; encapsulates business logic and database work.

"""
Shop Balance Ledger Invariants (authoritative)

- shops.current_balance_cents only changes through apply_balance_change().
- Every change appends exactly one BalanceAuditLog row in the same DB
  transaction as the balance write. Both land or neither does.
- Audit rows are append-only: change_amount = new_balance - previous_balance.
- opening_balance + sum(change_amount) == current_balance for every shop.
- The balance is read fresh (locked) on every call; nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..models import BalanceAuditLog
from .. import repositories
from ..time_utils import utcnow
from ..validation import NotFoundError, ValidationError, coerce_cents, require_note
from .balance_policies import BalancePolicy
from .concurrency import atomic
from .permission_service import RequestContext, require_role


@dataclass(frozen=True)
class BalanceDelta:
    """Signed change to the balance (invoices, corrections)."""
    amount_cents: int
    change_type: str = "correction"

    def resolve(self, current_balance_cents: int) -> int:
        return current_balance_cents + self.amount_cents


@dataclass(frozen=True)
class BalanceOverride:
    """Absolute balance set by an admin. Always needs a note."""
    new_balance_cents: int
    change_type: str = "override"

    def resolve(self, current_balance_cents: int) -> int:
        return self.new_balance_cents


@dataclass(frozen=True)
class CollectionCredit:
    """Collected money applied through an overcollection policy."""
    collected_cents: int
    policy: BalancePolicy
    change_type: str = "collection"

    def resolve(self, current_balance_cents: int) -> int:
        return self.policy(current_balance_cents, self.collected_cents)


BalanceChange = Union[BalanceDelta, BalanceOverride, CollectionCredit]


def apply_balance_change(
    shop_id: int,
    change: BalanceChange,
    actor_employee_id: int,
    note: Optional[str] = None,
    *,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    commit: bool = True,
) -> BalanceAuditLog:
    """
    Read, recompute, persist and audit a shop balance as one unit.

    Args:
        shop_id: Shop whose balance changes
        change: BalanceDelta, BalanceOverride or CollectionCredit
        actor_employee_id: Who made the change (recorded on the audit row)
        note: Free text; mandatory for BalanceOverride
        reference_type/reference_id: Source document (transaction, invoice)
        commit: False when the caller folds this into a larger transaction

    Returns:
        The appended audit row; its new_balance_cents is the new balance.

    Raises:
        NotFoundError: shop missing or soft-deleted
        ValidationError: override without a note, non-integer amounts
    """
    if isinstance(change, BalanceOverride):
        note = require_note(note, "a manual balance override")
        coerce_cents(change.new_balance_cents, "new_balance_cents")
    elif isinstance(change, BalanceDelta):
        coerce_cents(change.amount_cents, "amount_cents")
    elif not isinstance(change, CollectionCredit):
        raise ValidationError(f"Unsupported balance change: {type(change).__name__}")

    with atomic(commit=commit):
        shop = repositories.shops.get_live(shop_id, for_update=True)
        if shop is None:
            raise NotFoundError("Shop not found")

        previous_balance = shop.current_balance_cents
        new_balance = change.resolve(previous_balance)
        now = utcnow()

        repositories.shops.patch(shop, current_balance_cents=new_balance)

        entry = repositories.audit_logs.append(BalanceAuditLog(
            shop_id=shop.id,
            previous_balance_cents=previous_balance,
            new_balance_cents=new_balance,
            change_amount_cents=new_balance - previous_balance,
            change_type=change.change_type,
            reference_type=reference_type,
            reference_id=reference_id,
            note=note,
            actor_employee_id=actor_employee_id,
            changed_at=now,
        ))

    return entry


def override_balance(ctx: RequestContext, shop_id: int, new_balance_cents, note: str | None) -> BalanceAuditLog:
    """Admin sets an absolute balance (manual correction, note required)."""
    require_role(ctx, "admin")
    new_balance_cents = coerce_cents(new_balance_cents, "new_balance_cents")
    return apply_balance_change(
        shop_id,
        BalanceOverride(new_balance_cents),
        actor_employee_id=ctx.employee_id,
        note=note,
    )


def add_correction(ctx: RequestContext, shop_id: int, amount_cents, note: str | None) -> BalanceAuditLog:
    """
    Admin adds a signed adjustment that does not come from an invoice or a
    collection. Positive raises what the shop owes, negative lowers it.
    """
    require_role(ctx, "admin")
    amount_cents = coerce_cents(amount_cents, "amount_cents")
    if amount_cents == 0:
        raise ValidationError("amount_cents must be non-zero for a correction")
    note = require_note(note, "a balance correction")
    return apply_balance_change(
        shop_id,
        BalanceDelta(amount_cents, change_type="correction"),
        actor_employee_id=ctx.employee_id,
        note=note,
    )


def get_balance(shop_id: int) -> int:
    shop = repositories.shops.get_live(shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop.current_balance_cents


def get_shop_audit_log(shop_id: int, limit: int | None = None) -> list[BalanceAuditLog]:
    """Audit rows for a shop, newest first. Tombstoned shops keep their history."""
    if repositories.shops.get(shop_id) is None:
        raise NotFoundError("Shop not found")
    return repositories.audit_logs.for_shop(shop_id, limit=limit)


@dataclass(frozen=True)
class LedgerDrift:
    shop_id: int
    opening_balance_cents: int
    audited_change_cents: int
    current_balance_cents: int
    entry_count: int

    @property
    def expected_balance_cents(self) -> int:
        return self.opening_balance_cents + self.audited_change_cents

    @property
    def drift_cents(self) -> int:
        return self.current_balance_cents - self.expected_balance_cents

    @property
    def is_consistent(self) -> bool:
        return self.drift_cents == 0

    def to_dict(self) -> dict:
        return {
            "shop_id": self.shop_id,
            "opening_balance_cents": self.opening_balance_cents,
            "audited_change_cents": self.audited_change_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "current_balance_cents": self.current_balance_cents,
            "drift_cents": self.drift_cents,
            "entry_count": self.entry_count,
            "is_consistent": self.is_consistent,
        }


def ledger_drift(shop_id: int) -> LedgerDrift:
    """
    Replay the audit log against the stored balance.

    current_balance_cents stays the source of truth; this only reports
    whether the audit trail still explains it.
    """
    shop = repositories.shops.get(shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return LedgerDrift(
        shop_id=shop.id,
        opening_balance_cents=shop.opening_balance_cents,
        audited_change_cents=repositories.audit_logs.sum_changes(shop.id),
        current_balance_cents=shop.current_balance_cents,
        entry_count=repositories.audit_logs.count_for_shop(shop.id),
    )
