from flask import Blueprint, jsonify, g, request

from security.rbac import require_roles
from services import admin_queries
from services import identity as identity_service
from services.validation import StaffRequest, parse
from utils.audit import log_event
from utils.responses import ok

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/dashboard")
@require_roles("STAFF", "ADMIN")
def dashboard():
    stats = admin_queries.dashboard_stats(g.identity.business_id)
    log_event("ADMIN_DASHBOARD_VIEW", user_id=g.identity.user_id)
    return ok(stats)


@admin_bp.post("/staff")
@require_roles("ADMIN")
def add_staff():
    data = parse(StaffRequest, request.get_json(silent=True), "Invalid staff data")
    user = identity_service.add_staff_member(
        g.identity,
        email=data.email,
        password=data.password,
        name=data.name,
        phone=data.phone,
    )
    return ok(identity_service.identity_from_user(user).to_dict(), "Staff member added", 201)


@admin_bp.get("/login")
def login_page():
    # The dashboard frontend renders the form; the API just echoes where to go afterwards.
    return jsonify(
        login_endpoint="/auth/login",
        callbackUrl=request.args.get("callbackUrl") or "/admin/dashboard",
    ), 200
