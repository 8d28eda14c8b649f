from scheduling import TransientStorageError


def booking_payload(day, *service_ids, time_slot="10:00"):
    body = {"booking_date": day.isoformat(), "time_slot": time_slot}
    if len(service_ids) == 1:
        body["service_id"] = service_ids[0]
    else:
        body["services"] = [{"service_id": sid} for sid in service_ids]
    return body


def test_create_requires_login(client, services, day):
    resp = client.post("/bookings", json=booking_payload(day, services[0]))
    assert resp.status_code == 401


def test_create_single(customer_client, services, day):
    resp = customer_client.post("/bookings", json=booking_payload(day, services[0]))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["status"] == "PENDING"
    assert body["is_bulk"] is False
    assert body["time_slot"] == "10:00:00"
    assert body["total_price"] == 1000.0
    assert body["service_names"] == "Haircut"


def test_create_bulk(customer_client, services, day):
    resp = customer_client.post("/bookings", json=booking_payload(day, *services))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["is_bulk"] is True
    assert body["total_price"] == 1500.0
    assert body["total_duration"] == 50
    assert body["service_names"] == "Haircut, Manicure"
    assert body["service_prices"] == [1000.0, 500.0]
    assert body["service_durations"] == [30, 20]


def test_bulk_with_one_service_rejected(customer_client, services, day):
    resp = customer_client.post("/bookings", json={
        "booking_date": day.isoformat(),
        "time_slot": "10:00",
        "services": [{"service_id": services[0]}],
    })

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "validation_error"


def test_missing_service_rejected(customer_client, services, day):
    resp = customer_client.post("/bookings", json={"booking_date": day.isoformat(), "time_slot": "10:00"})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please select a service to book."


def test_bad_time_rejected(customer_client, services, day):
    resp = customer_client.post("/bookings", json=booking_payload(day, services[0], time_slot="7pm"))

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["kind"] == "validation_error"
    assert "time_slot" in body["fields"]


def test_unknown_service_is_404(customer_client, services, day):
    resp = customer_client.post("/bookings", json=booking_payload(day, 999))

    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "not_found"


def test_conflict_between_customers(customer_client, other_client, services, day):
    assert customer_client.post("/bookings", json=booking_payload(day, *services)).status_code == 201

    resp = other_client.post("/bookings", json=booking_payload(day, services[0]))

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["kind"] == "conflict"
    assert body["error"] == f"slot unavailable for service {services[0]}"


def test_busy_storage_is_503(customer_client, services, day, monkeypatch):
    def busy(work, *args, **kwargs):
        raise TransientStorageError()

    monkeypatch.setattr("routes.bookings.run_in_unit_of_work", busy)
    resp = customer_client.post("/bookings", json=booking_payload(day, services[0]))

    assert resp.status_code == 503
    assert resp.get_json()["retryable"] is True


def test_my_bookings_only_lists_own(customer_client, other_client, services, day):
    customer_client.post("/bookings", json=booking_payload(day, services[0]))
    other_client.post("/bookings", json=booking_payload(day, services[1]))

    rows = customer_client.get("/bookings/mine").get_json()

    assert len(rows) == 1
    assert rows[0]["service_id"] == services[0]
    assert "user_email" not in rows[0]


def test_get_booking_hidden_from_other_customers(customer_client, other_client, admin_client, services, day):
    booking_id = customer_client.post("/bookings", json=booking_payload(day, services[0])).get_json()["id"]

    assert customer_client.get(f"/bookings/{booking_id}").status_code == 200
    assert other_client.get(f"/bookings/{booking_id}").status_code == 404
    assert admin_client.get(f"/bookings/{booking_id}").get_json()["user_email"] == "alice@example.com"


def test_cancel_request(customer_client, services, day):
    booking_id = customer_client.post("/bookings", json=booking_payload(day, services[0])).get_json()["id"]

    resp = customer_client.put(f"/bookings/{booking_id}/cancel", json={"cancellation_reason": "Sick"})

    assert resp.status_code == 200
    booking = resp.get_json()["booking"]
    assert booking["status"] == "CANCEL_REQUESTED"
    assert booking["cancellation_reason"] == "Sick"


def test_cancel_request_twice_rejected(customer_client, services, day):
    booking_id = customer_client.post("/bookings", json=booking_payload(day, services[0])).get_json()["id"]
    customer_client.put(f"/bookings/{booking_id}/cancel", json={})

    resp = customer_client.put(f"/bookings/{booking_id}/cancel", json={})

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "validation_error"


def test_status_update_is_admin_only(customer_client, services, day):
    booking_id = customer_client.post("/bookings", json=booking_payload(day, services[0])).get_json()["id"]

    resp = customer_client.put(f"/bookings/{booking_id}/status", json={"status": "CONFIRMED"})

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Admin access required"


def test_admin_status_flow(customer_client, admin_client, services, stylist, day):
    booking_id = customer_client.post("/bookings", json=booking_payload(day, services[0])).get_json()["id"]

    resp = admin_client.put(f"/bookings/{booking_id}/status", json={"status": "CONFIRMED", "stylist_id": stylist})
    assert resp.status_code == 200
    assert resp.get_json()["booking"]["status"] == "CONFIRMED"
    assert resp.get_json()["booking"]["stylist_name"] == "Asha"

    resp = admin_client.put(f"/bookings/{booking_id}/status", json={"status": "PENDING"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["kind"] == "invalid_transition"
    assert body["current_status"] == "CONFIRMED"

    resp = admin_client.put(f"/bookings/{booking_id}/status", json={"status": "COMPLETED"})
    assert resp.get_json()["booking"]["stylist_id"] == stylist


def test_admin_status_unknown_booking(admin_client):
    resp = admin_client.put("/bookings/4040/status", json={"status": "CONFIRMED"})
    assert resp.status_code == 404
