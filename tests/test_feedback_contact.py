from models.contact_message import ContactMessage


def _book(client, service_id, day):
    return client.post("/bookings", json={
        "service_id": service_id,
        "booking_date": day.isoformat(),
        "time_slot": "10:00",
    }).get_json()["id"]


def test_feedback_on_own_booking(customer_client, client, services, day):
    booking_id = _book(customer_client, services[0], day)

    resp = customer_client.post("/feedback", json={"booking_id": booking_id, "rating": 5, "comment": "Lovely"})
    assert resp.status_code == 201
    assert resp.get_json()["service_id"] == services[0]

    rows = client.get(f"/feedback?service_id={services[0]}").get_json()
    assert [r["comment"] for r in rows] == ["Lovely"]

    mine = customer_client.get("/bookings/mine").get_json()
    assert mine[0]["feedback"]["rating"] == 5


def test_feedback_rating_range(customer_client, services):
    for rating in (0, 6, "5", True):
        resp = customer_client.post("/feedback", json={"service_id": services[0], "rating": rating})
        assert resp.status_code == 400


def test_feedback_on_someone_elses_booking(customer_client, other_client, services, day):
    booking_id = _book(customer_client, services[0], day)

    resp = other_client.post("/feedback", json={"booking_id": booking_id, "rating": 4})
    assert resp.status_code == 403


def test_feedback_unknown_service(customer_client):
    resp = customer_client.post("/feedback", json={"service_id": 999, "rating": 4})
    assert resp.status_code == 404


def test_hidden_feedback_not_listed(customer_client, admin_client, client, services):
    fb_id = customer_client.post("/feedback", json={"service_id": services[0], "rating": 2}).get_json()["id"]

    resp = admin_client.put(f"/feedback/{fb_id}/visibility", json={"is_visible": False})
    assert resp.status_code == 200

    assert client.get("/feedback").get_json() == []
    assert len(admin_client.get("/feedback/admin/all").get_json()) == 1


def test_contact_message_flow(client, admin_client):
    resp = client.post("/contact", json={"name": "Dev", "email": "dev@example.com", "message": "Open on Sunday?"})
    assert resp.status_code == 201
    msg_id = resp.get_json()["id"]

    assert len(admin_client.get("/contact/admin/all?unread=1").get_json()) == 1
    assert admin_client.put(f"/contact/{msg_id}/read").status_code == 200
    assert admin_client.get("/contact/admin/all?unread=1").get_json() == []

    assert admin_client.delete(f"/contact/{msg_id}").status_code == 200
    assert ContactMessage.query.count() == 0


def test_contact_message_validation(client):
    assert client.post("/contact", json={"name": "Dev", "email": "nope", "message": "hi"}).status_code == 400
    assert client.post("/contact", json={"name": "", "email": "a@b.c", "message": "hi"}).status_code == 400
    assert client.post("/contact", json={"name": "Dev", "email": "a@b.c", "message": " "}).status_code == 400


def test_contact_admin_only(customer_client):
    assert customer_client.get("/contact/admin/all").status_code == 403


def test_feedback_rejects_non_numeric_ids(customer_client, services):
    resp = customer_client.post("/feedback", json={"booking_id": "abc", "rating": 4})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "validation_error"

    resp = customer_client.post("/feedback", json={"service_id": [services[0]], "rating": 4})
    assert resp.status_code == 400
