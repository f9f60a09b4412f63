from urllib.parse import urlencode

from flask import current_app, jsonify, request

from services.errors import ServiceError, SyncMismatch, Unauthorized


def ok(data=None, message=None, status=200):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(code: str, message: str, status: int, details=None, **extra):
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    body = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def is_form_submission() -> bool:
    return not request.is_json and request.mimetype in (
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    )


def login_url(next_path=None) -> str:
    """Login surface with the original destination kept for the post-login redirect."""
    base = current_app.config.get("ADMIN_LOGIN_PATH", "/admin/login")
    next_path = next_path or request.full_path.rstrip("?")
    return f"{base}?{urlencode({'callbackUrl': next_path})}"


def safe_redirect_target(target, default="/admin/dashboard") -> str:
    # only same-site paths; anything else falls back to the dashboard
    if not target or not isinstance(target, str):
        return default
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return default
    return target


def error_response(exc: ServiceError):
    extra = {}
    if isinstance(exc, (Unauthorized, SyncMismatch)):
        extra["loginUrl"] = login_url()
    resp, status = fail(exc.code, exc.message, exc.http_status, exc.details, **extra)
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        resp.headers["Retry-After"] = str(retry_after)
    return resp, status
