# Overview: Service-layer operations for shop lifecycle (create, tombstone, read).

from __future__ import annotations

from ..models import Shop
from .. import repositories
from ..time_utils import utcnow
from ..validation import NotFoundError, ValidationError, clean_optional_text, coerce_cents
from .concurrency import atomic
from .permission_service import RequestContext, require_role


def create_shop(
    ctx: RequestContext,
    name: str,
    address: str,
    zone: str,
    phone: str | None = None,
    opening_balance_cents=0,
) -> Shop:
    """
    Create a shop with its opening balance.

    The opening balance is stored on the shop itself rather than as an audit
    row, so later audit rows explain every change after creation.
    """
    require_role(ctx, "admin")

    name = clean_optional_text(name, "name", 128)
    address = clean_optional_text(address, "address", 255)
    zone = clean_optional_text(zone, "zone", 64)
    if not all([name, address, zone]):
        raise ValidationError("name, address, and zone required")
    opening_balance_cents = coerce_cents(opening_balance_cents, "opening_balance_cents")

    with atomic():
        shop = repositories.shops.insert(Shop(
            name=name,
            address=address,
            zone=zone,
            phone=clean_optional_text(phone, "phone", 32),
            opening_balance_cents=opening_balance_cents,
            current_balance_cents=opening_balance_cents,
        ))

    return shop


def soft_delete_shop(ctx: RequestContext, shop_id: int) -> Shop:
    """
    Tombstone a shop.

    WHY: Shops are never deleted (preserve balance history). A tombstoned
    shop rejects further balance changes but keeps its audit log readable.
    """
    require_role(ctx, "admin")
    with atomic():
        shop = repositories.shops.get_live(shop_id, for_update=True)
        if shop is None:
            raise NotFoundError("Shop not found")
        repositories.shops.patch(shop, deleted_at=utcnow())
    return shop


def get_shop(shop_id: int, *, include_deleted: bool = False) -> Shop:
    shop = repositories.shops.get(shop_id) if include_deleted else repositories.shops.get_live(shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop


def list_shops(zone: str | None = None, include_deleted: bool = False) -> list[Shop]:
    return repositories.shops.list(zone=zone, include_deleted=include_deleted)
