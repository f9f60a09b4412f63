from functools import wraps
from flask import g

from services.errors import Unauthorized
from utils.auth_context import current_identity_or_raise

def has_role(*role_names: str) -> bool:
    identity = getattr(g, "identity", None)
    if not identity:
        return False
    return identity.role in role_names

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN", "STAFF")

    SUPER_ADMIN passes every check. Missing or insufficient identity is a 401.
    """
    allowed = set(role_names) | {"SUPER_ADMIN"}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = current_identity_or_raise()
            if identity.role not in allowed:
                raise Unauthorized("Insufficient role")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
