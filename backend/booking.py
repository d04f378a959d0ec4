"""
booking.py – turn a submitted form into a calendar event

Each request goes RECEIVED → VALIDATED → SUBMITTED → CONFIRMED | REJECTED.
Nothing is stored locally, so a rejected booking leaves nothing behind.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from calendar_utils import CalendarEvent, RemoteBookingError
from config import DATETIME_FORMAT, EVENT_DESCRIPTION, EVENT_DURATION, SUMMARY_TEMPLATE, TIME_ZONE

logger = logging.getLogger(__name__)

LOCAL_TZ = ZoneInfo(TIME_ZONE)

# strptime alone lets "2025-3-1T9:5" through
_DATETIME_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}")

INVALID_DATETIME = "invalid_datetime"
REMOTE_BOOKING_ERROR = "remote_booking_error"

_STATUS_BY_ERROR = {
    None: 200,
    INVALID_DATETIME: 400,
    REMOTE_BOOKING_ERROR: 500,
}


class InvalidDateTime(ValueError):
    """fecha/hora do not form a valid YYYY-MM-DDTHH:MM instant."""


@dataclass(frozen=True)
class BookingRequest:
    nombre: str
    email: str
    fecha: str
    hora: str

    @classmethod
    def from_form(cls, form) -> "BookingRequest":
        return cls(
            nombre=form.get("nombre", ""),
            email=form.get("email", ""),
            fecha=form.get("fecha", ""),
            hora=form.get("hora", ""),
        )


@dataclass(frozen=True)
class BookingResult:
    success: bool
    nombre: str = ""
    fecha: str = ""
    hora: str = ""
    error: Optional[str] = None
    event_id: Optional[str] = None

    @property
    def status_code(self) -> int:
        return _STATUS_BY_ERROR[self.error]

    def template_context(self) -> dict:
        return {
            "confirmacion": self.success,
            "nombre": self.nombre,
            "fecha": self.fecha,
            "hora": self.hora,
        }


def parse_start(fecha: str, hora: str) -> datetime:
    """Combine date and time into an aware datetime in the booking time zone."""
    combined = f"{fecha}T{hora}"
    if not _DATETIME_RE.fullmatch(combined):
        raise InvalidDateTime(f"{combined!r} does not match YYYY-MM-DDTHH:MM")
    try:
        naive = datetime.strptime(combined, DATETIME_FORMAT)
    except ValueError as e:
        raise InvalidDateTime(f"{combined!r}: {e}") from e
    return naive.replace(tzinfo=LOCAL_TZ)


def build_event(req: BookingRequest, start: datetime) -> CalendarEvent:
    return CalendarEvent(
        summary=SUMMARY_TEMPLATE.format(nombre=req.nombre),
        description=EVENT_DESCRIPTION,
        start=start,
        end=(start.astimezone(timezone.utc) + EVENT_DURATION).astimezone(start.tzinfo),
        time_zone=TIME_ZONE,
        attendees=[req.email],
    )


def handle_booking(form, client) -> BookingResult:
    req = BookingRequest.from_form(form)
    logger.debug("booking received for %s on %s %s", req.email, req.fecha, req.hora)

    try:
        start = parse_start(req.fecha, req.hora)
    except InvalidDateTime as e:
        logger.info("Rejected booking: %s", e)
        return BookingResult(success=False, error=INVALID_DATETIME)

    event = build_event(req, start)
    logger.debug("booking validated, submitting %s", event.summary)

    try:
        event_id = client.create_event(event)
    except RemoteBookingError as e:
        logger.warning("Booking for %s not created: %s", req.email, e)
        return BookingResult(success=False, error=REMOTE_BOOKING_ERROR)

    logger.debug("booking confirmed as %s", event_id)
    return BookingResult(
        success=True,
        nombre=req.nombre,
        fecha=req.fecha,
        hora=req.hora,
        event_id=event_id,
    )
