# homecare/notifications.py

"""Booking emails sent through Resend.

These run as FastAPI background tasks after the booking transaction has
committed. A failed email is logged and dropped, it never fails the booking.
"""

import html
import logging
from typing import Optional

import resend

from .booking import build_cancel_url
from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, MIN_HOURS_BEFORE_CANCEL, RESEND_API_KEY
from .models import Appointment

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def appointment_snapshot(appointment: Appointment) -> dict:
    """Plain data for a background task, the request session is closed by the time it runs."""
    return {
        "id": appointment.id,
        "service": appointment.service.title if appointment.service else "",
        "date": appointment.date.isoformat(),
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "patient_name": appointment.patient_name,
        "patient_email": appointment.patient_email,
        "cancel_url": f"{FRONTEND_URL}{build_cancel_url(appointment.cancel_token)}",
        "cancel_reason": appointment.cancel_reason,
    }


def send_email(to: str, subject: str, body: str) -> Optional[dict]:
    if not RESEND_API_KEY:
        logger.info(f"Email to {to} skipped, RESEND_API_KEY is not configured: {subject}")
        return None

    try:
        response = resend.Emails.send({"from": EMAIL_FROM_ADDRESS, "to": [to], "subject": subject, "html": body})
    except Exception as e:
        logger.error(f"Email send error to {to}: {e}")
        return None

    logger.info(f"Email sent to {to}: {subject}")
    return response


def send_booking_confirmation(snapshot: dict) -> Optional[dict]:
    body = (
        f"<p>Hola {html.escape(snapshot['patient_name'])},</p>"
        f"<p>Tu cita de <strong>{html.escape(snapshot['service'])}</strong> quedó agendada para el "
        f"{snapshot['date']} entre {snapshot['start_time']} y {snapshot['end_time']}.</p>"
        f"<p>Si necesitas cancelarla, puedes hacerlo hasta {MIN_HOURS_BEFORE_CANCEL:g} horas antes en "
        f"<a href=\"{snapshot['cancel_url']}\">este enlace</a>.</p>"
    )
    return send_email(snapshot["patient_email"], "Confirmación de tu cita", body)


def send_cancellation_notice(snapshot: dict) -> Optional[dict]:
    body = (
        f"<p>Hola {html.escape(snapshot['patient_name'])},</p>"
        f"<p>Tu cita de <strong>{html.escape(snapshot['service'])}</strong> del {snapshot['date']} a las "
        f"{snapshot['start_time']} fue cancelada.</p>"
    )
    if snapshot.get("cancel_reason"):
        body += f"<p>Motivo: {html.escape(snapshot['cancel_reason'])}</p>"
    return send_email(snapshot["patient_email"], "Cancelación de tu cita", body)
