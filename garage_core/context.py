# garage_core/context.py
from dataclasses import dataclass
from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required


@dataclass(frozen=True)
class TenantContext:
    """Who is acting, and for which service (tenant)."""

    user: object
    service_id: str
    role: str

    @property
    def uid(self):
        return self.user.uid

    @property
    def is_owner(self):
        return self.role == 'owner'


def tenant_context():
    """Resolve the tenant for the logged-in user, once per request."""
    ctx = g.get('tenant_context')
    if ctx is not None:
        return ctx
    if not current_user.is_authenticated:
        abort(401)
    if not current_user.service_id:
        abort(403, description="Your account is not attached to a service.")
    ctx = TenantContext(
        user=current_user._get_current_object(),
        service_id=current_user.service_id,
        role=current_user.user_role or 'member',
    )
    g.tenant_context = ctx
    return ctx


def tenant_required(f):
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        tenant_context()
        return f(*args, **kwargs)
    return decorated_function


def role_required(roles):
    def decorator(f):
        @wraps(f)
        @tenant_required
        def decorated_function(*args, **kwargs):
            if tenant_context().role not in roles:
                abort(403, description="You don't have permission to do that.")
            return f(*args, **kwargs)
        return decorated_function
    return decorator
