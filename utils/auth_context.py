from functools import wraps
from flask import g
from services.errors import ServiceError, Unauthorized
from services.identity import get_current_identity
from security.session import read_request_token

def load_current_identity():
    """
    Populate g.identity for the request.

    A sync mismatch is kept on g instead of raised here, so public endpoints
    still work and only the protected ones report it.
    """
    g.identity = None
    g.identity_error = None
    g.auth_source = None

    raw_token, source = read_request_token()
    if not raw_token:
        return

    try:
        g.identity = get_current_identity()
    except ServiceError as exc:
        g.identity_error = exc
        return
    if g.identity is not None:
        g.auth_source = source

def current_identity_or_raise():
    identity = getattr(g, "identity", None)
    if identity is None:
        error = getattr(g, "identity_error", None)
        raise error or Unauthorized("Authentication required")
    return identity

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        current_identity_or_raise()
        return fn(*args, **kwargs)
    return wrapper
