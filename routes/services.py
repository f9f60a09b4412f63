from flask import Blueprint, g

from services import repository
from utils.auth_context import login_required
from utils.responses import ok, fail

services_bp = Blueprint("services", __name__)


def _service_row(service) -> dict:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "price": float(service.price),
        # stored in minutes, displayed in hours
        "duration": service.duration / 60,
    }


@services_bp.get("/services")
@login_required
def list_services():
    if not g.identity.business_id:
        return fail("BUSINESS_NOT_FOUND", "Business not found", 404)

    business = repository.get_active_business(g.identity.business_id)
    if business is None:
        return fail("BUSINESS_NOT_FOUND", "Business not found", 404)

    services = repository.list_active_services(business.id)
    return ok([_service_row(s) for s in services], "Services retrieved successfully")


@services_bp.get("/businesses/<slug>")
def public_business(slug: str):
    business = repository.get_business_by_slug(slug)
    if business is None:
        return fail("BUSINESS_NOT_FOUND", "Business not found", 404)

    data = business.public_contact()
    data.update({
        "slug": business.slug,
        "description": business.description,
        "services": [_service_row(s) for s in repository.list_active_services(business.id)],
    })
    return ok(data)
