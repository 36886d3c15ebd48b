import pytest

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, TECHNICIAN, auth


def _create_payload(**overrides):
    payload = {
        "serviceType": "Solar Panel Cleaning",
        "address": "22-B Gulberg III, Lahore",
        "bookingDate": "2026-11-10T08:30:00Z",
        "wantsSubscription": True,
        "payment": {"method": "Cash on Delivery"},
    }
    payload.update(overrides)
    return payload


async def _create(client, **overrides):
    resp = await client.post("/bookings", json=_create_payload(**overrides), headers=auth(CUSTOMER))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["service"] == "booking-service"
    assert resp.json()["events_enabled"] is False


async def test_create_booking_shape(client):
    data = await _create(client)
    assert data["amountDue"] == 12000
    assert data["isSubscriptionBooking"] is True
    assert data["status"] == "Pending"
    assert data["customer"] == CUSTOMER.user_id
    assert data["technician"] is None
    assert data["payment"] == {
        "method": "Cash on Delivery",
        "status": "Pending",
        "paymentId": None,
        "paymentReceivedBy": None,
        "paymentReceivedAt": None,
    }
    assert data["images"] == {"before": None, "after": None}


async def test_request_id_echoed(client):
    resp = await client.get("/health", headers={"X-Request-Id": "req-123"})
    assert resp.headers["X-Request-Id"] == "req-123"


class TestAuthentication:
    async def test_missing_token(self, client):
        resp = await client.get("/bookings")
        assert resp.status_code == 401
        assert resp.json()["reason"] == "not_authenticated"

    async def test_garbage_token(self, client):
        resp = await client.get("/bookings", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    async def test_admin_cannot_book(self, client):
        resp = await client.post("/bookings", json=_create_payload(), headers=auth(ADMIN))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Admin users cannot book services."


class TestCreateValidation:
    async def test_missing_transaction_id(self, client):
        resp = await client.post(
            "/bookings",
            json=_create_payload(payment={"method": "Easypaisa/Jazzcash"}),
            headers=auth(CUSTOMER),
        )
        assert resp.status_code == 400
        assert resp.json()["reason"] == "invalid_request"

    async def test_missing_address(self, client):
        payload = _create_payload()
        del payload["address"]
        resp = await client.post("/bookings", json=payload, headers=auth(CUSTOMER))
        assert resp.status_code == 400

    async def test_nothing_persisted_on_rejection(self, client):
        await client.post(
            "/bookings", json=_create_payload(payment={"method": "Cheque"}), headers=auth(CUSTOMER)
        )
        resp = await client.get("/bookings", headers=auth(ADMIN))
        assert resp.json()["data"] == []


async def test_full_cash_job(client):
    booking = await _create(client, wantsSubscription=False)
    booking_id = booking["id"]
    assert booking["amountDue"] == 2000

    resp = await client.put(
        f"/bookings/{booking_id}",
        json={"technician": TECHNICIAN.user_id, "status": "Completed"},
        headers=auth(ADMIN),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Assigned"

    resp = await client.put(
        f"/bookings/{booking_id}/images", json={"before": "img-before"}, headers=auth(TECHNICIAN)
    )
    assert resp.json()["data"]["images"]["before"] == "img-before"

    for status in ("In Progress", "Completed"):
        resp = await client.post(
            f"/bookings/{booking_id}/status", json={"status": status}, headers=auth(TECHNICIAN)
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["status"] == status

    resp = await client.put(
        f"/bookings/{booking_id}",
        json={"payment": {"status": "Paid"}, "paymentReceivedBy": "technician"},
        headers=auth(TECHNICIAN),
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["message"] == "Payment confirmed! Admin has been notified."
    assert body["data"]["payment"]["status"] == "Paid"
    assert body["data"]["payment"]["paymentReceivedBy"] == "technician"
    assert body["data"]["payment"]["paymentReceivedAt"] is not None

    resp = await client.post(f"/bookings/{booking_id}/payment/confirm", headers=auth(TECHNICIAN))
    assert resp.status_code == 409
    assert resp.json()["reason"] == "payment_already_paid"

    resp = await client.get("/bookings/attention", headers=auth(ADMIN))
    assert [b["id"] for b in resp.json()["data"]] == [booking_id]

    resp = await client.post(f"/bookings/{booking_id}/rating", json={"rating": 5}, headers=auth(CUSTOMER))
    assert resp.status_code == 200
    assert resp.json()["data"]["rating"] == 5
    assert resp.json()["data"]["amountDue"] == 2000


async def test_rating_in_progress_job(client):
    booking = await _create(client)
    booking_id = booking["id"]
    await client.post(
        f"/bookings/{booking_id}/assign", json={"technician": TECHNICIAN.user_id}, headers=auth(ADMIN)
    )
    await client.post(f"/bookings/{booking_id}/status", json={"status": "In Progress"}, headers=auth(TECHNICIAN))

    resp = await client.put(f"/bookings/{booking_id}", json={"rating": 3}, headers=auth(CUSTOMER))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You can only rate completed services."

    resp = await client.get(f"/bookings/{booking_id}", headers=auth(CUSTOMER))
    assert resp.json()["data"]["rating"] is None


async def test_unknown_booking(client):
    resp = await client.get("/bookings/does-not-exist", headers=auth(ADMIN))
    assert resp.status_code == 404


async def test_other_customer_forbidden(client):
    booking = await _create(client)
    resp = await client.get(f"/bookings/{booking['id']}", headers=auth(OTHER_CUSTOMER))
    assert resp.status_code == 403


async def test_technician_skip_is_conflict(client):
    booking = await _create(client)
    await client.post(
        f"/bookings/{booking['id']}/assign", json={"technician": TECHNICIAN.user_id}, headers=auth(ADMIN)
    )
    resp = await client.post(
        f"/bookings/{booking['id']}/status", json={"status": "Completed"}, headers=auth(TECHNICIAN)
    )
    assert resp.status_code == 409
    assert resp.json()["reason"] == "invalid_transition"


async def test_attention_forbidden_for_customers(client):
    resp = await client.get("/bookings/attention", headers=auth(CUSTOMER))
    assert resp.status_code == 403


@pytest.mark.parametrize("identity, expected", [(CUSTOMER, 1), (OTHER_CUSTOMER, 0), (ADMIN, 1), (TECHNICIAN, 0)])
async def test_list_scoped_by_role(client, identity, expected):
    await _create(client)
    resp = await client.get("/bookings", headers=auth(identity))
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == expected
