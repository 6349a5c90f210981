"""API tests for traveller booking routes."""

import uuid

from tests.conftest import auth, upcoming_booking


async def create_booking(client, user, **kwargs):
    response = await client.post("/api/v1/bookings", json=upcoming_booking(**kwargs), headers=auth(user))
    assert response.status_code == 201, response.text
    return response.json()["booking"]


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_status_catalog(client):
    response = await client.get("/api/v1/bookings/statuses")

    assert response.status_code == 200
    catalog = {entry["status"]: entry for entry in response.json()}
    assert len(catalog) == 6
    assert catalog["pending_payment"]["next_statuses"] == [
        "cancelled",
        "payment_completed",
        "payment_confirmed_partial",
    ]
    assert catalog["confirmed"]["badge"] == {
        "badge_class": "bg-green-100 text-green-800",
        "label": "confirmed",
    }
    assert catalog["cancelled"]["terminal"] is True
    assert catalog["trek_completed"]["progress"] == {"step": 4, "total": 4, "label": "Trek Completed"}


async def test_create_booking(client, traveller):
    booking = await create_booking(client, traveller)

    assert booking["status"] == "pending_payment"
    assert booking["booking_number"].startswith("TRK-")
    assert booking["user_id"] == str(traveller.id)
    assert booking["badge"]["badge_class"] == "bg-yellow-100 text-yellow-800"
    assert booking["resume_action"]["text"] == "Complete Payment"
    assert booking["resume_action"]["link"] == f"/payment/{booking['id']}"
    assert booking["progress"] == {"step": 1, "total": 4, "label": "Payment Pending"}
    assert booking["partial_payment_details"] is None


async def test_create_partial_booking(client, traveller):
    booking = await create_booking(client, traveller, partial=True, auto_cancel_on_due_date=True)

    details = booking["partial_payment_details"]
    assert booking["payment_mode"] == "partial"
    assert details["initial_amount"] == 300_000
    assert details["auto_cancel_on_due_date"] is True


async def test_partial_booking_needs_terms(client, traveller):
    payload = upcoming_booking()
    payload["payment_mode"] = "partial"

    response = await client.post("/api/v1/bookings", json=payload, headers=auth(traveller))

    assert response.status_code == 422


async def test_create_requires_token(client):
    response = await client.post("/api/v1/bookings", json=upcoming_booking())

    assert response.status_code in (401, 403)


async def test_invalid_token(client):
    response = await client.get(
        "/api/v1/bookings/user/mybookings", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


async def test_my_bookings_only_lists_own(client, traveller, other_traveller):
    mine = await create_booking(client, traveller)
    await create_booking(client, other_traveller)

    response = await client.get("/api/v1/bookings/user/mybookings", headers=auth(traveller))

    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [mine["id"]]


async def test_booking_access(client, traveller, other_traveller, admin):
    booking = await create_booking(client, traveller)
    url = f"/api/v1/bookings/{booking['id']}"

    assert (await client.get(url, headers=auth(traveller))).status_code == 200
    assert (await client.get(url, headers=auth(other_traveller))).status_code == 403
    assert (await client.get(url, headers=auth(admin))).status_code == 200


async def test_unknown_booking(client, traveller):
    response = await client.get(f"/api/v1/bookings/{uuid.uuid4()}", headers=auth(traveller))

    assert response.status_code == 404


async def test_update_participants(client, traveller):
    booking = await create_booking(client, traveller)
    participants = [
        {
            "name": "Asha Rao",
            "age": 29,
            "gender": "Female",
            "emergency_contact": {"name": "Vikram Rao", "relationship": "Brother", "phone": "+919800000002"},
            "custom_field_responses": [
                {"field_id": "tshirt", "field_name": "T-shirt size", "value": "M"},
            ],
        },
        {"name": "Kiran Rao", "age": 31, "medical_conditions": "Mild asthma"},
    ]

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/participants",
        json={"participants": participants},
        headers=auth(traveller),
    )

    assert response.status_code == 200, response.text
    saved = response.json()["participants"]
    assert [p["name"] for p in saved] == ["Asha Rao", "Kiran Rao"]
    assert saved[0]["emergency_contact"]["relationship"] == "Brother"
    assert saved[0]["custom_field_responses"][0]["value"] == "M"


async def test_participants_limited_to_seats(client, traveller):
    booking = await create_booking(client, traveller, participants=1)

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/participants",
        json={"participants": [{"name": "Asha"}, {"name": "Kiran"}]},
        headers=auth(traveller),
    )

    assert response.status_code == 422


async def test_cancel_booking(client, traveller):
    booking = await create_booking(client, traveller)
    url = f"/api/v1/bookings/{booking['id']}/cancel"

    response = await client.post(url, json={"reason": "Change of plans"}, headers=auth(traveller))

    assert response.status_code == 200
    cancelled = response.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_by"] == "user"
    assert cancelled["resume_action"] is None
    assert cancelled["progress"]["step"] == 0

    again = await client.post(url, json={"reason": "Change of plans"}, headers=auth(traveller))
    assert again.status_code == 422
    assert again.json()["detail"] == "Invalid booking transition: cancelled → cancelled"


async def test_admin_cancel_through_user_route(client, traveller, admin):
    booking = await create_booking(client, traveller)

    response = await client.post(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Batch withdrawn"},
        headers=auth(admin),
    )

    assert response.json()["cancelled_by"] == "admin"


async def test_invoice(client, traveller, admin):
    booking = await create_booking(client, traveller)
    url = f"/api/v1/bookings/{booking['id']}/invoice"

    assert (await client.get(url, headers=auth(traveller))).status_code == 400

    await client.post(
        f"/api/v1/admin/bookings/{booking['id']}/payments",
        json={"amount": 1_000_000},
        headers=auth(admin),
    )
    response = await client.get(url, headers=auth(traveller))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        f"attachment; filename=invoice_{booking['booking_number']}.pdf"
    )
    assert response.content.startswith(b"%PDF")
