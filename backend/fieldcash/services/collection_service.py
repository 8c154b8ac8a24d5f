"""
Collection Recording Service

WHY: A field collection is the main business event. It creates the
transaction the office later verifies and lowers what the shop owes.

DESIGN PRINCIPLES:
- Field staff record collections for themselves only
- Transaction insert, balance write and audit row commit together
- Every collection starts unverified ("cash in bag")
- How an overcollection is handled is a policy, not inline arithmetic
"""

from __future__ import annotations

from datetime import date, datetime

from ..models import CollectionTransaction
from .. import repositories
from ..time_utils import utcnow
from ..validation import (
    NotFoundError,
    clean_optional_text,
    parse_geolocation,
    require_payment_mode,
    require_positive_cents,
)
from .balance_policies import BalancePolicy, get_policy
from .concurrency import atomic
from .ledger_service import CollectionCredit, apply_balance_change
from .permission_service import RequestContext, require_role, require_self


def record_collection(
    ctx: RequestContext,
    employee_id: int,
    shop_id: int,
    amount_cents,
    payment_mode: str,
    geolocation: dict,
    reference: str | None = None,
    *,
    policy: BalancePolicy | None = None,
    collected_at: datetime | None = None,
) -> CollectionTransaction:
    """
    Record money collected at a shop and credit the shop ledger.

    Args:
        ctx: Caller; must be field_staff and the same employee as employee_id
        employee_id: Agent who collected the money
        shop_id: Shop paying
        amount_cents: Amount collected (> 0)
        payment_mode: cash, upi or cheque
        geolocation: {"lat": .., "lng": ..} where the collection happened (required)
        reference: UTR / cheque number
        policy: Overcollection policy; defaults to OVERCOLLECTION_POLICY
        collected_at: Business time of the collection (defaults to now)

    Raises:
        PermissionDeniedError: wrong role or recording for someone else
        InvalidAmountError: amount_cents <= 0
        ValidationError: bad payment mode, missing or bad geolocation
        NotFoundError: shop missing or soft-deleted
    """
    require_role(ctx, "field_staff")
    require_self(ctx, employee_id, "log collections")

    amount_cents = require_positive_cents(amount_cents)
    payment_mode = require_payment_mode(payment_mode)
    reference = clean_optional_text(reference, "reference", 64)
    latitude, longitude = parse_geolocation(geolocation)
    policy = policy or get_policy()
    collected_at = collected_at or utcnow()

    with atomic():
        if repositories.shops.get_live(shop_id) is None:
            raise NotFoundError("Shop not found")

        txn = repositories.transactions.insert(CollectionTransaction(
            employee_id=employee_id,
            shop_id=shop_id,
            amount_cents=amount_cents,
            payment_mode=payment_mode,
            reference=reference,
            latitude=latitude,
            longitude=longitude,
            status="completed",
            collected_at=collected_at,
            is_verified=False,
        ))

        entry = apply_balance_change(
            shop_id,
            CollectionCredit(amount_cents, policy),
            actor_employee_id=employee_id,
            note=f"Collection via {payment_mode}",
            reference_type="collection_transaction",
            reference_id=txn.id,
            commit=False,
        )
        repositories.shops.patch(entry.shop, last_collection_date=collected_at.date())

    return txn


def list_transactions(
    employee_id: int | None = None,
    shop_id: int | None = None,
    business_date: date | None = None,
    is_verified: bool | None = None,
    payment_mode: str | None = None,
) -> list[CollectionTransaction]:
    """Read-only listing for reports and the field app."""
    if payment_mode is not None:
        payment_mode = require_payment_mode(payment_mode)
    return repositories.transactions.search(
        employee_id=employee_id,
        shop_id=shop_id,
        business_date=business_date,
        is_verified=is_verified,
        payment_mode=payment_mode,
    )
