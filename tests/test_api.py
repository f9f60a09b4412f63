import config
from app import create_app
from models import db
from models.booking import Booking
from models.user import User

from conftest import OWNER_EMAIL, OWNER_PASSWORD, bearer, booking_payload


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_create_fetch_and_confirm_booking(client, service, admin_token):
    resp = client.post("/bookings", json=booking_payload(service.id))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["message"] == "Booking created successfully"
    assert body["data"]["status"] == "PENDING"
    assert body["data"]["serviceName"] == "Basic House Cleaning"

    detail = client.get(f"/bookings/{body['data']['id']}").get_json()
    assert detail["data"]["confirmationCode"] == body["data"]["confirmationCode"]
    assert detail["data"]["totalPrice"] == 120.0

    booking_id = body["data"]["id"]
    resp = client.patch(f"/bookings/{booking_id}", json={"status": "CONFIRMED"}, headers=bearer(admin_token))
    assert resp.status_code == 200

    detail = client.get(f"/bookings/{booking_id}").get_json()
    assert detail["data"]["status"] == "CONFIRMED"
    assert detail["data"]["completedAt"] is None


def test_invalid_booking_lists_field_errors(client, service):
    resp = client.post("/bookings", json=booking_payload(service.id, customerEmail="nope", time="7pm"))

    assert resp.status_code == 400
    error = resp.get_json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {d["field"] for d in error["details"]} == {"customerEmail", "time"}


def test_unknown_service_is_400(client, business):
    resp = client.post("/bookings", json=booking_payload("nope"))

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "SERVICE_NOT_FOUND"


def test_sixth_booking_in_a_minute_is_rate_limited(client, service, frozen_limiters, clock):
    for _ in range(5):
        assert client.post("/bookings", json=booking_payload(service.id)).status_code == 201

    resp = client.post("/bookings", json=booking_payload(service.id))

    assert resp.status_code == 429
    assert resp.get_json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert int(resp.headers["Retry-After"]) >= 1
    assert Booking.query.count() == 5

    clock.advance(60)
    assert client.post("/bookings", json=booking_payload(service.id)).status_code == 201


def test_form_submission_redirects_to_confirmation(client, service):
    resp = client.post("/bookings", data=booking_payload(service.id))

    assert resp.status_code == 303
    assert "/confirmation?code=BK-" in resp.headers["Location"]

    page = client.get(resp.headers["Location"])
    assert page.status_code == 200
    assert page.get_json()["data"]["status"] == "PENDING"


def test_form_submission_redirects_to_error_page(client, service):
    resp = client.post("/bookings", data=booking_payload(service.id, customerName="J"))

    assert resp.status_code == 303
    assert resp.headers["Location"].endswith("/error?reason=VALIDATION_ERROR")

    page = client.get(resp.headers["Location"]).get_json()
    assert page["data"]["reason"] == "VALIDATION_ERROR"


def test_missing_booking_is_404(client, app):
    resp = client.get("/bookings/does-not-exist")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "BOOKING_NOT_FOUND"


def test_put_and_delete_are_not_allowed(client, make_booking):
    booking = make_booking()

    for method in (client.put, client.delete):
        resp = method(f"/bookings/{booking.id}")
        assert resp.status_code == 405
        assert resp.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    assert client.delete("/bookings").status_code == 405


def test_anonymous_status_update_is_401_with_login_url(client, make_booking):
    booking = make_booking()

    resp = client.patch(f"/bookings/{booking.id}", json={"status": "CONFIRMED"})

    assert resp.status_code == 401
    body = resp.get_json()
    assert body["error"]["code"] == "UNAUTHORIZED"
    assert body["loginUrl"].startswith("/admin/login?callbackUrl=")
    db.session.refresh(booking)
    assert booking.status == "PENDING"


def test_customer_cannot_update_status(client, make_booking, customer_token):
    booking = make_booking()

    resp = client.patch(f"/bookings/{booking.id}", json={"status": "CONFIRMED"}, headers=bearer(customer_token))

    assert resp.status_code == 401


def test_staff_updates_status(client, make_booking, staff_token):
    booking = make_booking()

    resp = client.patch(f"/bookings/{booking.id}", json={"status": "COMPLETED"}, headers=bearer(staff_token))

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "COMPLETED"
    assert data["completedAt"] is not None


def test_status_update_validates_value(client, make_booking, staff_token):
    booking = make_booking()

    for body in ({}, {"status": "DONE"}, {"status": 3}):
        resp = client.patch(f"/bookings/{booking.id}", json=body, headers=bearer(staff_token))
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_STATUS"


def test_status_update_unknown_booking(client, staff_token):
    resp = client.patch("/bookings/missing", json={"status": "CONFIRMED"}, headers=bearer(staff_token))

    assert resp.status_code == 404


def test_admin_lists_bookings(client, make_booking, admin_token):
    for i in range(12):
        make_booking(customer_name=f"Smith {i}" if i % 2 else f"Jones {i}")

    resp = client.get("/bookings?search=smith&limit=5&page=2", headers=bearer(admin_token))

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["pagination"]["total"] == 6
    assert data["pagination"]["totalPages"] == 2
    assert len(data["bookings"]) == 1
    assert data["bookings"][0]["service"]["name"] == "Basic House Cleaning"


def test_listing_rejects_unknown_status_filter(client, admin_token):
    resp = client.get("/bookings?status=done", headers=bearer(admin_token))

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_STATUS"


def test_listing_requires_staff(client, customer_token):
    assert client.get("/bookings").status_code == 401
    assert client.get("/bookings", headers=bearer(customer_token)).status_code == 401


def test_dashboard(client, make_booking, admin_token):
    make_booking(status="CONFIRMED")

    resp = client.get("/admin/dashboard", headers=bearer(admin_token))

    assert resp.status_code == 200
    assert resp.get_json()["data"]["confirmed"] == 1


def test_services_are_listed_in_hours(client, admin_token):
    resp = client.get("/services", headers=bearer(admin_token))

    assert resp.status_code == 200
    by_name = {s["name"]: s for s in resp.get_json()["data"]}
    assert by_name["Deep Cleaning Service"]["duration"] == 4
    assert by_name["Basic House Cleaning"]["price"] == 120.0


def test_services_without_business_is_404(client, customer_token):
    resp = client.get("/services", headers=bearer(customer_token))

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "BUSINESS_NOT_FOUND"


def test_public_business_page(client, business):
    data = client.get("/businesses/sparkle-clean").get_json()["data"]

    assert data["name"] == "SparkleClean Professional Services"
    assert len(data["services"]) == 3

    assert client.get("/businesses/nope").status_code == 404


def test_register_and_login_flow(client):
    resp = client.post("/auth/register", json={
        "ownerName": "Olivia Owner",
        "email": "owner@freshhome.com",
        "password": "owner123",
        "businessName": "Fresh Home",
        "slug": "fresh-home",
        "businessEmail": "hello@freshhome.com",
        "businessPhone": "555-200-3000",
    })
    assert resp.status_code == 201
    assert resp.get_json()["data"]["user"]["role"] == "ADMIN"

    resp = client.post("/auth/login", json={
        "email": "owner@freshhome.com",
        "password": "owner123",
        "callbackUrl": "/admin/bookings",
    })
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["redirect_to"] == "/admin/bookings"

    me = client.get("/auth/me").get_json()["data"]
    assert me["email"] == "owner@freshhome.com"


def test_login_ignores_offsite_callback(client, business):
    resp = client.post("/auth/login", json={
        "email": OWNER_EMAIL,
        "password": OWNER_PASSWORD,
        "callbackUrl": "https://evil.example.com/",
    })

    assert resp.get_json()["data"]["redirect_to"] == "/admin/dashboard"


def test_cookie_session_requires_csrf_header(client, make_booking, business):
    booking = make_booking()
    client.post("/auth/login", json={"email": OWNER_EMAIL, "password": OWNER_PASSWORD})

    resp = client.patch(f"/bookings/{booking.id}", json={"status": "CONFIRMED"})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "CSRF_FAILED"

    csrf = client.get_cookie("csrf_token").value
    resp = client.patch(
        f"/bookings/{booking.id}",
        json={"status": "CONFIRMED"},
        headers={"X-CSRF-Token": csrf},
    )
    assert resp.status_code == 200


def test_sync_mismatch_is_reported_on_protected_routes(client, customer_token):
    user = User.query.filter_by(email="jane@example.com").one()
    user.is_active = False
    db.session.commit()

    resp = client.get("/auth/me", headers=bearer(customer_token))

    assert resp.status_code == 403
    body = resp.get_json()
    assert body["error"]["code"] == "SYNC_MISMATCH"
    assert body["error"]["details"]["reason"] == "User is inactive or deleted"
    assert "loginUrl" in body


def test_admin_adds_staff(client, admin_token):
    resp = client.post("/admin/staff", json={
        "name": "Emma Davis",
        "email": "emma@sparkleclean.com",
        "password": "staff123",
    }, headers=bearer(admin_token))

    assert resp.status_code == 201
    assert resp.get_json()["data"]["role"] == "STAFF"


def test_logout(client, customer_token):
    assert client.post("/auth/logout", headers=bearer(customer_token)).status_code == 200
    assert client.get("/auth/me", headers=bearer(customer_token)).status_code == 401


def _login_with_cookie(client, email, password):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return client.get_cookie("csrf_token").value


def test_signed_in_customer_books_through_the_form(client, service, customer_token):
    csrf = _login_with_cookie(client, "jane@example.com", "secret123")

    resp = client.post("/bookings", data=dict(booking_payload(service.id), csrf_token=csrf))

    assert resp.status_code == 303
    assert "/confirmation?code=BK-" in resp.headers["Location"]
    booking = Booking.query.one()
    assert booking.user_id == User.query.filter_by(email="jane@example.com").one().id


def test_form_without_csrf_token_lands_on_error_page(client, service, customer_token):
    _login_with_cookie(client, "jane@example.com", "secret123")

    resp = client.post("/bookings", data=booking_payload(service.id))

    assert resp.status_code == 303
    assert resp.headers["Location"].endswith("/error?reason=CSRF_FAILED")
    assert Booking.query.count() == 0

    page = client.get(resp.headers["Location"]).get_json()["data"]
    assert page["reason"] == "CSRF_FAILED"
    assert "reload" in page["message"]


def test_forged_forwarded_for_does_not_reset_booking_limit(client, service, frozen_limiters):
    for n in range(5):
        headers = {"X-Forwarded-For": f"198.51.100.{n}"}
        assert client.post("/bookings", json=booking_payload(service.id), headers=headers).status_code == 201

    resp = client.post("/bookings", json=booking_payload(service.id), headers={"X-Forwarded-For": "198.51.100.99"})

    assert resp.status_code == 429


class ProxiedConfig(config.TestConfig):
    TRUSTED_PROXY_COUNT = 1


def test_trusted_proxy_forwarded_for_identifies_client():
    proxied = create_app(ProxiedConfig)
    with proxied.app_context():
        db.create_all()
        proxied.test_client().post("/bookings", json={}, headers={"X-Forwarded-For": "203.0.113.7"})

        keys = list(proxied.extensions["rate_limiters"]["booking"]._counters)
        db.session.remove()
        db.drop_all()

    assert [k.rsplit(":", 1)[0] for k in keys] == ["203.0.113.7"]
