# Overview: Swappable policies for applying a collection to a shop balance.

"""
Overcollection policies

A policy maps (current_balance_cents, collected_cents) -> new_balance_cents.
The collection recorder never does the arithmetic itself; it asks the policy,
so "what happens when an agent collects more than the shop owes" can change
without touching the recorder.
"""

from __future__ import annotations

from typing import Callable

from flask import current_app, has_app_context

from ..validation import OvercollectionError, ValidationError


BalancePolicy = Callable[[int, int], int]


def floor_at_zero(current_balance_cents: int, collected_cents: int) -> int:
    """Excess over the amount owed is discarded; the balance never goes negative."""
    return max(0, current_balance_cents - collected_cents)


def reject_overcollection(current_balance_cents: int, collected_cents: int) -> int:
    if collected_cents > max(current_balance_cents, 0):
        raise OvercollectionError(
            f"Collection of {collected_cents} exceeds outstanding balance of {current_balance_cents}"
        )
    return current_balance_cents - collected_cents


def track_as_credit(current_balance_cents: int, collected_cents: int) -> int:
    """Excess is kept as a negative balance (shop is in credit)."""
    return current_balance_cents - collected_cents


POLICIES: dict[str, BalancePolicy] = {
    "floor": floor_at_zero,
    "reject": reject_overcollection,
    "credit": track_as_credit,
}

DEFAULT_POLICY = "floor"


def get_policy(name: str | None = None) -> BalancePolicy:
    """
    Resolve a policy by name. With no name, use OVERCOLLECTION_POLICY from the
    active app config, falling back to "floor".
    """
    if name is None:
        name = DEFAULT_POLICY
        if has_app_context():
            name = current_app.config.get("OVERCOLLECTION_POLICY") or DEFAULT_POLICY
    key = str(name).strip().lower()
    if key not in POLICIES:
        raise ValidationError(f"Unknown overcollection policy: {name!r}")
    return POLICIES[key]
