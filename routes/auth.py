from flask import Blueprint, request, current_app, g

from security.csrf import issue_csrf_token
from security.session import read_request_token
from services import identity as identity_service
from services.validation import LoginRequest, RegisterBusinessRequest, parse
from utils.auth_context import login_required
from utils.responses import ok, safe_redirect_target

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _set_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "spotless_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp)


@auth_bp.post("/register")
def register():
    """Sign up a business owner: auth account, business and ADMIN user."""
    data = parse(RegisterBusinessRequest, request.get_json(silent=True), "Invalid registration data")

    business, user = identity_service.register_business(
        owner_email=data.email,
        password=data.password,
        owner_name=data.owner_name,
        owner_phone=data.phone,
        business_name=data.business_name,
        slug=data.slug,
        business_email=data.business_email,
        business_phone=data.business_phone,
        address=data.address,
        description=data.description,
    )
    return ok(
        {
            "user": identity_service.identity_from_user(user).to_dict(),
            "business": {"id": business.id, "name": business.name, "slug": business.slug},
        },
        "Registered successfully",
        201,
    )


@auth_bp.post("/login")
def login():
    data = parse(LoginRequest, request.get_json(silent=True), "Invalid login data")
    raw_token, identity = identity_service.login(data.email, data.password)

    resp, status = ok(
        {
            "user": identity.to_dict(),
            "token": raw_token,
            "redirect_to": safe_redirect_target(data.callback_url),
        },
        "Login OK",
    )
    return _set_session_cookie(resp, raw_token), status


@auth_bp.post("/logout")
@login_required
def logout():
    raw_token, _ = read_request_token()
    identity_service.logout(raw_token, g.identity)

    resp, status = ok(None, "Logged out")
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "spotless_session"), path="/")
    return resp, status


@auth_bp.get("/me")
@login_required
def me():
    return ok(g.identity.to_dict())
