# Overview: Service-layer role checks; turns an employee into a request-scoped context.

"""
Role-Based Access Checks

WHY: Every core operation is role-gated. The caller's identity is resolved
once per request (by the HTTP layer or the CLI) into a RequestContext, and
that value is passed explicitly into each service call. Services never look
up "the current user" on their own.

ROLES:
- field_staff: records collections for themselves only
- admin: shop, ledger, handover and reconciliation operations
- super_admin: everything admin can do

DESIGN PRINCIPLES:
- Fail closed: deny unless the role explicitly allows the action
- Self-ownership is checked separately from role (field staff may only
  record collections under their own employee id)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models import Employee
from ..models.employees import ROLE_ADMIN, ROLE_FIELD_STAFF, ROLE_SUPER_ADMIN, ROLES
from .. import repositories


# Roles that satisfy a required role. super_admin is a superset of admin.
ROLE_GRANTS = {
    ROLE_FIELD_STAFF: {ROLE_FIELD_STAFF},
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_SUPER_ADMIN},
    ROLE_SUPER_ADMIN: {ROLE_SUPER_ADMIN},
}


class PermissionDeniedError(Exception):
    """Raised when the caller's role or ownership does not allow the action."""
    pass


class IdentityError(Exception):
    """Raised when a caller cannot be resolved to an active employee."""
    pass


@dataclass(frozen=True)
class RequestContext:
    """Who is calling: resolved once per request, passed into every operation."""
    employee_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ROLE_GRANTS[ROLE_ADMIN]


def make_context(*, employee_id: int) -> RequestContext:
    """Build a context from the employees table (used by resolvers and the CLI)."""
    employee = repositories.employees.get(employee_id)
    if employee is None or not employee.is_active:
        raise IdentityError("Employee not found or inactive")
    return context_for(employee)


def context_for(employee: Employee) -> RequestContext:
    if employee.role not in ROLES:
        raise IdentityError(f"Unknown role: {employee.role}")
    return RequestContext(employee_id=employee.id, role=employee.role)


def has_role(ctx: RequestContext, required_role: str) -> bool:
    return ctx.role in ROLE_GRANTS.get(required_role, set())


def require_role(ctx: RequestContext, required_role: str) -> None:
    if ctx is None:
        raise PermissionDeniedError("Not authenticated")
    if not has_role(ctx, required_role):
        raise PermissionDeniedError(f"This action requires {required_role} role")


def require_self(ctx: RequestContext, employee_id: int, action: str) -> None:
    if ctx.employee_id != employee_id:
        raise PermissionDeniedError(f"You can only {action} for yourself")


def require_self_or_admin(ctx: RequestContext, employee_id: int, action: str) -> None:
    """Admins act for anyone; field staff only for themselves."""
    if ctx is not None and ctx.is_admin:
        return
    require_role(ctx, ROLE_FIELD_STAFF)
    require_self(ctx, employee_id, action)
