# Overview: Typed per-entity repositories over the Flask-SQLAlchemy session.

"""
Repository layer

Every service reads and writes through one of these classes instead of
building ad-hoc queries against db.session. Each repository is bound to a
single model, so a Shop repository can never return a transaction row.

WRITE KINDS:
- APPEND: rows are inserted once and never changed (balance audit log)
- REPLACE: one row per natural key, re-writing overwrites it in place
  (daily reconciliation)
- PATCH: ordinary mutable entities (shops, transactions, invoices,
  settlements)

Nothing here commits. Callers own the transaction boundary.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import func

from .extensions import db
from .models import BalanceAuditLog, CollectionTransaction, DailyReconciliation, Employee, Invoice, Settlement, Shop
from .services.concurrency import lock_for_update
from .time_utils import day_bounds


M = TypeVar("M", bound=db.Model)


class WriteKind(str, Enum):
    APPEND = "append"
    REPLACE = "replace"
    PATCH = "patch"


class Repository(Generic[M]):
    model: Type[M]
    write_kind: WriteKind = WriteKind.PATCH

    def get(self, entity_id: int, *, for_update: bool = False) -> Optional[M]:
        query = db.session.query(self.model).filter_by(id=entity_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def query(self, **filters: Any):
        return db.session.query(self.model).filter_by(**filters)

    def insert(self, row: M) -> M:
        db.session.add(row)
        db.session.flush()  # ensures row.id is assigned without committing
        return row

    def patch(self, row: M, **values: Any) -> M:
        if self.write_kind is WriteKind.APPEND:
            raise TypeError(f"{self.model.__name__} rows are append-only")
        for key, value in values.items():
            if not hasattr(row, key):
                raise AttributeError(f"{self.model.__name__} has no field {key!r}")
            setattr(row, key, value)
        db.session.flush()
        return row


class EmployeeRepository(Repository[Employee]):
    model = Employee


class ShopRepository(Repository[Shop]):
    model = Shop

    def get_live(self, shop_id: int, *, for_update: bool = False) -> Optional[Shop]:
        """Shop by id, ignoring tombstoned rows."""
        shop = self.get(shop_id, for_update=for_update)
        if shop is None or shop.is_deleted:
            return None
        return shop

    def list(self, *, zone: str | None = None, include_deleted: bool = False) -> list[Shop]:
        query = db.session.query(Shop)
        if zone:
            query = query.filter(Shop.zone == zone)
        if not include_deleted:
            query = query.filter(Shop.deleted_at.is_(None))
        return query.order_by(Shop.name, Shop.id).all()


class BalanceAuditLogRepository(Repository[BalanceAuditLog]):
    model = BalanceAuditLog
    write_kind = WriteKind.APPEND

    def append(self, entry: BalanceAuditLog) -> BalanceAuditLog:
        return self.insert(entry)

    def for_shop(self, shop_id: int, *, limit: int | None = None) -> list[BalanceAuditLog]:
        query = db.session.query(BalanceAuditLog).filter_by(shop_id=shop_id).order_by(
            BalanceAuditLog.changed_at.desc(), BalanceAuditLog.id.desc()
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def count_for_shop(self, shop_id: int) -> int:
        return db.session.query(func.count(BalanceAuditLog.id)).filter_by(shop_id=shop_id).scalar() or 0

    def sum_changes(self, shop_id: int) -> int:
        total = db.session.query(func.sum(BalanceAuditLog.change_amount_cents)).filter_by(shop_id=shop_id).scalar()
        return int(total or 0)


class CollectionTransactionRepository(Repository[CollectionTransaction]):
    model = CollectionTransaction

    def for_settlement(self, settlement_id: int, *, for_update: bool = False) -> list[CollectionTransaction]:
        query = db.session.query(CollectionTransaction).filter_by(settlement_id=settlement_id)
        query = query.order_by(CollectionTransaction.id)
        if for_update:
            query = lock_for_update(query)
        return query.all()

    def search(
        self,
        *,
        employee_id: int | None = None,
        shop_id: int | None = None,
        business_date: date | None = None,
        payment_mode: str | None = None,
        is_verified: bool | None = None,
        status: str | None = None,
        settled: bool | None = None,
        for_update: bool = False,
    ) -> list[CollectionTransaction]:
        query = db.session.query(CollectionTransaction)
        if employee_id is not None:
            query = query.filter(CollectionTransaction.employee_id == employee_id)
        if shop_id is not None:
            query = query.filter(CollectionTransaction.shop_id == shop_id)
        if business_date is not None:
            start, end = day_bounds(business_date)
            query = query.filter(
                CollectionTransaction.collected_at >= start,
                CollectionTransaction.collected_at < end,
            )
        if payment_mode is not None:
            query = query.filter(CollectionTransaction.payment_mode == payment_mode)
        if is_verified is not None:
            query = query.filter(CollectionTransaction.is_verified.is_(is_verified))
        if status is not None:
            query = query.filter(CollectionTransaction.status == status)
        if settled is True:
            query = query.filter(CollectionTransaction.settlement_id.isnot(None))
        elif settled is False:
            query = query.filter(CollectionTransaction.settlement_id.is_(None))
        query = query.order_by(CollectionTransaction.collected_at, CollectionTransaction.id)
        if for_update:
            query = lock_for_update(query)
        return query.all()

    def by_ids(self, transaction_ids: list[int], *, for_update: bool = False) -> list[CollectionTransaction]:
        query = db.session.query(CollectionTransaction).filter(CollectionTransaction.id.in_(transaction_ids))
        query = query.order_by(CollectionTransaction.id)
        if for_update:
            query = lock_for_update(query)
        return query.all()


class DailyReconciliationRepository(Repository[DailyReconciliation]):
    model = DailyReconciliation
    write_kind = WriteKind.REPLACE

    def get_by_key(self, employee_id: int, business_date: date, *, for_update: bool = False) -> Optional[DailyReconciliation]:
        query = db.session.query(DailyReconciliation).filter_by(
            employee_id=employee_id,
            business_date=business_date,
        )
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def replace(self, employee_id: int, business_date: date, **fields: Any) -> tuple[DailyReconciliation, bool]:
        """
        Overwrite the row for (employee_id, business_date), or insert it.

        Returns (row, created). A concurrent insert for the same key surfaces
        as IntegrityError at flush; the caller decides how to absorb it.
        """
        row = self.get_by_key(employee_id, business_date, for_update=True)
        if row is not None:
            return self.patch(row, **fields), False
        row = DailyReconciliation(employee_id=employee_id, business_date=business_date, **fields)
        return self.insert(row), True

    def for_date(self, business_date: date, *, for_update: bool = False) -> list[DailyReconciliation]:
        query = db.session.query(DailyReconciliation).filter_by(business_date=business_date).order_by(
            DailyReconciliation.employee_id
        )
        if for_update:
            query = lock_for_update(query)
        return query.all()

    def search(
        self,
        *,
        business_date: date | None = None,
        employee_id: int | None = None,
        status: str | None = None,
    ) -> list[DailyReconciliation]:
        query = db.session.query(DailyReconciliation)
        if business_date is not None:
            query = query.filter(DailyReconciliation.business_date == business_date)
        if employee_id is not None:
            query = query.filter(DailyReconciliation.employee_id == employee_id)
        if status is not None:
            query = query.filter(DailyReconciliation.status == status)
        return query.order_by(DailyReconciliation.business_date.desc(), DailyReconciliation.employee_id).all()


class InvoiceRepository(Repository[Invoice]):
    model = Invoice


class SettlementRepository(Repository[Settlement]):
    model = Settlement

    def search(self, *, employee_id: int | None = None, status: str | None = None) -> list[Settlement]:
        query = db.session.query(Settlement)
        if employee_id is not None:
            query = query.filter(Settlement.employee_id == employee_id)
        if status is not None:
            query = query.filter(Settlement.status == status)
        return query.order_by(Settlement.created_at.desc(), Settlement.id.desc()).all()


employees = EmployeeRepository()
shops = ShopRepository()
audit_logs = BalanceAuditLogRepository()
transactions = CollectionTransactionRepository()
reconciliations = DailyReconciliationRepository()
invoices = InvoiceRepository()
settlements = SettlementRepository()
