from .employees import Employee
from .shops import Shop, BalanceAuditLog
from .transactions import CollectionTransaction
from .reconciliations import DailyReconciliation
from .invoices import Invoice
from .settlements import Settlement

__all__ = [
    'Employee',
    'Shop', 'BalanceAuditLog',
    'CollectionTransaction',
    'DailyReconciliation',
    'Invoice',
    'Settlement',
]
