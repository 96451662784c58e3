"""HTTP surface: envelope, roles and the public booking flow."""

from datetime import datetime

from homecare.booking import SLOT_TAKEN_MESSAGE
from homecare.deps import get_now
from homecare.main import app

from conftest import NEXT_MONDAY, OTHER_RUT, auth_headers, booking_data, make_rule


def post_booking(client, service_id, headers=None, **overrides):
    return client.post("/booking", json=booking_data(service_id, **overrides), headers=headers or {})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["success"] is True


class TestBookingFlow:
    def test_admin_configures_and_patients_book(self, client, admin_user):
        admin = auth_headers(admin_user)

        created = client.post("/services", json={"title": "Curaciones Avanzadas", "duration": 60}, headers=admin)
        assert created.status_code == 201
        service_id = created.json()["data"]["id"]

        rule = client.post(
            "/availability/rules",
            json={"day_of_week": 1, "start_time": "08:00", "end_time": "10:00", "slot_duration": 60},
            headers=admin,
        )
        assert rule.status_code == 201

        slots = client.get("/booking/slots", params={"date": NEXT_MONDAY.isoformat(), "serviceId": service_id})
        assert [(s["start_time"], s["available"]) for s in slots.json()["data"]["slots"]] == [
            ("08:00", True),
            ("09:00", True),
        ]

        booked = post_booking(client, service_id)
        assert booked.status_code == 201
        body = booked.json()
        assert body["success"] is True
        assert body["data"]["end_time"] == "09:00"
        assert body["data"]["cancel_url"].endswith(body["data"]["cancel_token"])

        slots = client.get("/booking/slots", params={"date": NEXT_MONDAY.isoformat(), "serviceId": service_id})
        first = slots.json()["data"]["slots"][0]
        assert (first["start_time"], first["available"], first["bookings_count"]) == ("08:00", False, 1)

        again = post_booking(client, service_id, patient_rut=OTHER_RUT)
        assert again.status_code == 409
        assert again.json() == {"success": False, "message": SLOT_TAKEN_MESSAGE}

    def test_missing_fields(self, client, service, monday_rule):
        response = client.post("/booking", json={"service_id": service.id})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert {e["field"] for e in body["errors"]} == {
            "date",
            "start_time",
            "patient_name",
            "patient_rut",
            "patient_email",
        }

    def test_invalid_rut(self, client, service, monday_rule):
        response = post_booking(client, service.id, patient_rut="12.345.678-4")

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_same_patient_same_day(self, client, service, monday_rule):
        post_booking(client, service.id)

        response = post_booking(client, service.id, start_time="09:00")

        assert response.status_code == 409

    def test_logged_in_patient_books_with_profile(self, client, service, monday_rule, patient_user):
        headers = auth_headers(patient_user)

        response = client.post(
            "/booking",
            json={"service_id": service.id, "date": NEXT_MONDAY.isoformat(), "start_time": "08:00"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["patient_name"] == "Pedro Soto"
        mine = client.get("/appointments/mine", headers=headers).json()["data"]
        assert len(mine) == 1
        assert mine[0]["patient_rut"] == OTHER_RUT

    def test_invalid_token_on_booking_is_rejected(self, client, service, monday_rule):
        response = post_booking(client, service.id, headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_slots_for_past_date(self, client, service, monday_rule):
        response = client.get("/booking/slots", params={"date": "2030-01-07", "serviceId": service.id})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["reason"] == "past"
        assert data["slots"] == []
        assert response.json()["message"]

    def test_unknown_service_filter(self, client):
        response = client.get("/booking/slots", params={"date": "2030-01-14", "serviceId": 999})

        assert response.status_code == 404

    def test_calendar(self, client, service, monday_rule):
        response = client.get("/booking/calendar", params={"month": 1, "year": 2030, "serviceId": service.id})

        days = {d["date"]: d for d in response.json()["data"]["days"]}
        assert len(days) == 31
        assert days["2030-01-08"]["reason"] == "past"
        assert days["2030-01-14"]["available"] is True
        assert days["2030-01-13"]["reason"] == "closed"

    def test_calendar_defaults_to_current_month(self, client):
        data = client.get("/booking/calendar").json()["data"]

        assert (data["year"], data["month"]) == (2030, 1)

    def test_calendar_invalid_month(self, client):
        assert client.get("/booking/calendar", params={"month": 13}).status_code == 400


class TestSelfServiceCancel:
    def test_search_never_returns_the_token(self, client, service, monday_rule):
        token = post_booking(client, service.id).json()["data"]["cancel_token"]

        results = client.get("/booking/search", params={"rut": "12345678-5"}).json()["data"]

        assert len(results) == 1
        assert "cancel_token" not in results[0]
        assert results[0]["cancel_url"].endswith(token)

    def test_search_needs_an_identifier(self, client):
        assert client.get("/booking/search").status_code == 400

    def test_lookup_and_cancel(self, client, service, monday_rule):
        token = post_booking(client, service.id).json()["data"]["cancel_token"]

        summary = client.get(f"/booking/cancel/{token}").json()["data"]
        assert summary["can_cancel"] is True

        response = client.post(f"/booking/cancel/{token}", json={"reason": "Viaje"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        # the slot is free again
        assert post_booking(client, service.id, patient_rut=OTHER_RUT).status_code == 201

    def test_cancel_without_body(self, client, service, monday_rule):
        token = post_booking(client, service.id).json()["data"]["cancel_token"]

        assert client.post(f"/booking/cancel/{token}").status_code == 200

    def test_late_cancel(self, client, service, monday_rule):
        token = post_booking(client, service.id).json()["data"]["cancel_token"]
        app.dependency_overrides[get_now] = lambda: datetime(2030, 1, 14, 7, 0)

        response = client.post(f"/booking/cancel/{token}")

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_unknown_token(self, client):
        assert client.get("/booking/cancel/nope").status_code == 404


class TestStaffEndpoints:
    def test_requires_login(self, client):
        response = client.get("/appointments")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_patients_are_forbidden(self, client, patient_user):
        response = client.get("/appointments", headers=auth_headers(patient_user))

        assert response.status_code == 403

    def test_list_with_pagination(self, client, service, monday_rule, staff_user):
        post_booking(client, service.id)
        post_booking(client, service.id, start_time="09:00", patient_rut=OTHER_RUT)

        body = client.get("/appointments", params={"limit": 1}, headers=auth_headers(staff_user)).json()

        assert len(body["data"]) == 1
        assert body["data"][0]["start_time"] == "08:00"
        assert "cancel_token" not in body["data"][0]
        assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}

    def test_search_filter(self, client, service, monday_rule, staff_user):
        post_booking(client, service.id)
        post_booking(client, service.id, start_time="09:00", patient_rut=OTHER_RUT, patient_name="Juan Pérez")

        data = client.get("/appointments", params={"search": "juan"}, headers=auth_headers(staff_user)).json()["data"]

        assert [a["patient_name"] for a in data] == ["Juan Pérez"]

    def test_status_update(self, client, service, monday_rule, staff_user):
        appointment_id = post_booking(client, service.id).json()["data"]["id"]
        headers = auth_headers(staff_user)

        response = client.put(f"/appointments/{appointment_id}/status", json={"status": "confirmed"}, headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "confirmed"
        assert response.json()["data"]["confirmed_at"] is not None

    def test_illegal_transition(self, client, service, monday_rule, staff_user):
        appointment_id = post_booking(client, service.id).json()["data"]["id"]

        response = client.put(
            f"/appointments/{appointment_id}/status", json={"status": "completed"}, headers=auth_headers(staff_user)
        )

        assert response.status_code == 409

    def test_no_show_needs_admin(self, client, service, monday_rule, staff_user, admin_user):
        appointment_id = post_booking(client, service.id).json()["data"]["id"]
        url = f"/appointments/{appointment_id}/status"

        assert client.put(url, json={"status": "no_show"}, headers=auth_headers(staff_user)).status_code == 403
        assert client.put(url, json={"status": "no_show"}, headers=auth_headers(admin_user)).status_code == 200

    def test_admin_override_needs_changes(self, client, service, monday_rule, admin_user):
        appointment_id = post_booking(client, service.id).json()["data"]["id"]

        response = client.put(f"/appointments/{appointment_id}", json={}, headers=auth_headers(admin_user))

        assert response.status_code == 400

    def test_stats_admin_only(self, client, staff_user, admin_user):
        assert client.get("/appointments/stats", headers=auth_headers(staff_user)).status_code == 403
        assert client.get("/appointments/stats", headers=auth_headers(admin_user)).json()["data"]["total"] == 0

    def test_delete(self, client, service, monday_rule, admin_user):
        appointment_id = post_booking(client, service.id).json()["data"]["id"]
        headers = auth_headers(admin_user)

        assert client.delete(f"/appointments/{appointment_id}", headers=headers).status_code == 200
        assert client.get(f"/appointments/{appointment_id}", headers=headers).status_code == 404


class TestUsers:
    def test_register_login_me(self, client):
        created = client.post(
            "/users",
            json={"email": "Nueva@Example.com", "password": "secret123", "first_name": "Nueva", "rut": "123456785"},
        )
        assert created.status_code == 201
        assert created.json()["data"]["rut"] == "12.345.678-5"

        login = client.post("/auth/login", data={"username": "nueva@example.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get("/me", headers={"Authorization": f"Bearer {token}"}).json()["data"]
        assert me["email"] == "nueva@example.com"
        assert me["role"] == "patient"

    def test_self_registration_cannot_pick_a_role(self, client):
        created = client.post("/users", json={"email": "x@example.com", "password": "secret123", "role": "admin"})

        assert created.json()["data"]["role"] == "patient"

    def test_admin_creates_staff(self, client, admin_user):
        created = client.post(
            "/users",
            json={"email": "nurse@example.com", "password": "secret123", "role": "staff"},
            headers=auth_headers(admin_user),
        )

        assert created.json()["data"]["role"] == "staff"

    def test_duplicate_email(self, client, patient_user):
        response = client.post("/users", json={"email": "patient@example.com", "password": "secret123"})

        assert response.status_code == 409

    def test_bad_login(self, client, patient_user):
        response = client.post("/auth/login", data={"username": "patient@example.com", "password": "wrong-pass"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}


class TestServicesAndRules:
    def test_slug_gets_a_suffix(self, client, admin_user):
        headers = auth_headers(admin_user)

        first = client.post("/services", json={"title": "Toma de Muestras"}, headers=headers).json()["data"]
        second = client.post("/services", json={"title": "Toma de Muestras"}, headers=headers).json()["data"]

        assert first["slug"] == "toma-de-muestras"
        assert second["slug"] == "toma-de-muestras-2"
        assert client.get("/services/toma-de-muestras-2").json()["data"]["id"] == second["id"]

    def test_patients_cannot_create_services(self, client, patient_user):
        response = client.post("/services", json={"title": "Curaciones"}, headers=auth_headers(patient_user))

        assert response.status_code == 403

    def test_delete_with_appointments_disables(self, client, service, monday_rule, admin_user):
        post_booking(client, service.id)

        response = client.delete(f"/services/{service.id}", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False
        assert client.get("/services", params={"active": True}).json()["data"] == []

    def test_overlapping_rule(self, client, admin_user, monday_rule):
        response = client.post(
            "/availability/rules",
            json={"day_of_week": 1, "start_time": "09:00", "end_time": "11:00"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 409

    def test_overlap_in_another_scope_is_allowed(self, client, admin_user, monday_rule):
        response = client.post(
            "/availability/rules",
            json={"day_of_week": 1, "start_time": "09:00", "end_time": "11:00", "resource_type": "driver"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201

    def test_inverted_window(self, client, admin_user):
        response = client.post(
            "/availability/rules",
            json={"day_of_week": 1, "start_time": "10:00", "end_time": "08:00"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400

    def test_partial_block_needs_a_window(self, client, admin_user):
        response = client.post(
            "/availability/blocked-dates",
            json={"date": "2030-01-14", "is_full_day": False},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400

    def test_full_day_block_closes_the_slots(self, client, service, monday_rule, admin_user):
        client.post(
            "/availability/blocked-dates",
            json={"date": "2030-01-14", "reason": "Feriado"},
            headers=auth_headers(admin_user),
        )

        data = client.get("/booking/slots", params={"date": "2030-01-14", "serviceId": service.id}).json()["data"]

        assert data["reason"] == "blocked"
        assert post_booking(client, service.id).status_code == 400


class TestRegressions:
    def test_override_moves_into_a_slot_with_room_left(self, client, session, service, admin_user):
        make_rule(session, max_bookings=2)
        first = post_booking(client, service.id).json()["data"]["id"]
        post_booking(client, service.id, start_time="09:00", patient_rut=OTHER_RUT)

        response = client.put(f"/appointments/{first}", json={"start_time": "09:00"}, headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json()["data"]["start_time"] == "09:00"

    def test_override_onto_a_full_slot_is_a_conflict(self, client, service, monday_rule, admin_user):
        first = post_booking(client, service.id).json()["data"]["id"]
        post_booking(client, service.id, start_time="09:00", patient_rut=OTHER_RUT)

        response = client.put(f"/appointments/{first}", json={"start_time": "09:00"}, headers=auth_headers(admin_user))

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_deleting_a_service_removes_its_rules(self, client, admin_user):
        headers = auth_headers(admin_user)
        service_id = client.post("/services", json={"title": "Curaciones"}, headers=headers).json()["data"]["id"]
        client.post(
            "/availability/rules",
            json={"day_of_week": 2, "start_time": "06:00", "end_time": "07:00", "service_id": service_id},
            headers=headers,
        )

        assert client.delete(f"/services/{service_id}", headers=headers).status_code == 200

        assert client.get("/availability/rules").json()["data"] == []
        slots = client.get("/booking/slots", params={"date": "2030-01-15"}).json()["data"]["slots"]
        # back on the default weekday hours
        assert slots[0]["start_time"] == "08:00"

    def test_disabling_a_service_deactivates_its_rules(self, client, admin_user, service):
        headers = auth_headers(admin_user)
        client.post(
            "/availability/rules",
            json={"day_of_week": 1, "start_time": "08:00", "end_time": "10:00", "service_id": service.id},
            headers=headers,
        )
        post_booking(client, service.id)

        client.delete(f"/services/{service.id}", headers=headers)

        rules = client.get("/availability/rules").json()["data"]
        assert [r["is_active"] for r in rules] == [False]

    def test_calendar_month_zero_is_rejected(self, client):
        response = client.get("/booking/calendar", params={"month": 0, "year": 2030})

        assert response.status_code == 400

    def test_calendar_year_zero_is_rejected(self, client):
        assert client.get("/booking/calendar", params={"month": 1, "year": 0}).status_code == 400
