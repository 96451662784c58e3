"""Booking emails: content, and failures that must not escape."""

import resend

from homecare import notifications
from homecare.booking import create_booking
from homecare.notifications import appointment_snapshot, send_booking_confirmation, send_cancellation_notice
from homecare.schemas import BookingCreate

from conftest import NOW, booking_data


def snapshot(session, service):
    appointment = create_booking(session, BookingCreate(**booking_data(service.id)), NOW)
    return appointment, appointment_snapshot(appointment)


def test_skipped_without_api_key(session, service, monday_rule, monkeypatch):
    monkeypatch.setattr(notifications, "RESEND_API_KEY", None)
    _, data = snapshot(session, service)

    assert send_booking_confirmation(data) is None


def test_confirmation_email(session, service, monday_rule, monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "email-1"})
    appointment, data = snapshot(session, service)

    assert send_booking_confirmation(data) == {"id": "email-1"}

    assert sent[0]["to"] == ["maria@example.com"]
    assert service.title in sent[0]["html"]
    assert appointment.cancel_token in sent[0]["html"]


def test_cancellation_email_escapes_reason(session, service, monday_rule, monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "email-2"})
    _, data = snapshot(session, service)
    data["cancel_reason"] = "<b>viaje</b>"

    send_cancellation_notice(data)

    assert "&lt;b&gt;viaje&lt;/b&gt;" in sent[0]["html"]


def test_send_error_is_logged_not_raised(session, service, monday_rule, monkeypatch, caplog):
    def boom(params):
        raise RuntimeError("resend down")

    monkeypatch.setattr(notifications, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(resend.Emails, "send", boom)
    _, data = snapshot(session, service)

    assert send_booking_confirmation(data) is None
    assert "resend down" in caplog.text
