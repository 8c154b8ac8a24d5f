# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import permission_service
from .services.permission_service import IdentityError, RequestContext


EMPLOYEE_HEADER = "X-Employee-Id"


def header_identity_resolver(req) -> RequestContext | None:
    """
    Default identity resolver.

    Authentication happens upstream (identity provider / gateway), which
    forwards the authenticated employee id in X-Employee-Id. The role always
    comes from the employees table, never from the request.
    """
    raw = req.headers.get(EMPLOYEE_HEADER)
    if not raw:
        return None
    try:
        employee_id = int(raw)
    except ValueError:
        return None
    try:
        return permission_service.make_context(employee_id=employee_id)
    except IdentityError:
        return None


def _resolve_identity():
    resolver = current_app.config.get("IDENTITY_RESOLVER") or header_identity_resolver
    return resolver(request)


def require_auth(f):
    """
    Require a resolved caller and establish the request context.

    Sets g.request_context (RequestContext) for the route, which passes it
    explicitly into service calls.

    Returns 401 if the caller cannot be resolved to an active employee.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = _resolve_identity()

        if not context:
            return jsonify({"error": "Authentication required"}), 401

        g.request_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require a role (admin also accepts super_admin).

    Services re-check roles themselves; this gives routes an early 403.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not hasattr(g, "request_context"):
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.has_role(g.request_context, role):
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                    "message": f"This action requires {role} role",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
