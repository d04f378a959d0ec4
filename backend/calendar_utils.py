from dataclasses import dataclass, field
from datetime import datetime
import logging

import httplib2
from google.auth.exceptions import GoogleAuthError
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError

from config import CALENDAR_ID, TIME_ZONE

logger = logging.getLogger(__name__)


class RemoteBookingError(Exception):
    """The calendar service refused or failed to create the event."""

# ──────────────────────────────────────────────
# Event payload
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class CalendarEvent:
    summary: str
    description: str
    start: datetime
    end: datetime
    time_zone: str = TIME_ZONE
    attendees: list = field(default_factory=list)

    def to_body(self) -> dict:
        """Event resource as the Calendar v3 API expects it."""
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.time_zone},
            "attendees": [{"email": email} for email in self.attendees],
        }

# ──────────────────────────────────────────────
# Google API service
# ──────────────────────────────────────────────

def get_service(creds):
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


class CalendarClient:
    """Thin wrapper over the authorized service; one instance serves every request.

    httplib2.Http is not thread-safe, so every call gets its own connection
    authorized with the shared credentials.
    """

    def __init__(self, service, credentials, calendar_id: str = CALENDAR_ID):
        self._service = service
        self._credentials = credentials
        self.calendar_id = calendar_id

    def _http(self):
        return AuthorizedHttp(self._credentials, http=httplib2.Http())

    def create_event(self, event: CalendarEvent) -> str:
        try:
            created = (
                self._service.events()
                .insert(calendarId=self.calendar_id, body=event.to_body())
                .execute(http=self._http())
            )
        except (GoogleApiError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
            logger.error("Event insert on %s failed: %s", self.calendar_id, e)
            raise RemoteBookingError(str(e)) from e

        event_id = created.get("id", "")
        logger.info("Created event %s (%s → %s)", event_id,
                    event.start.strftime("%Y-%m-%d %H:%M"), event.end.strftime("%H:%M"))
        return event_id
