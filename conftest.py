"""
Pytest configuration and shared fixtures.
"""
import json
import sys
from pathlib import Path

import pytest

# Backend modules import each other flat, the same way run.py sets them up
sys.path.insert(0, str(Path(__file__).parent / "backend"))


CLIENT_SECRET = {
    "installed": {
        "client_id": "1234.apps.googleusercontent.com",
        "project_id": "turnos-test",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_secret": "s3cret",
        "redirect_uris": ["http://localhost"],
    }
}


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(CLIENT_SECRET))
    return path


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "token.json"


@pytest.fixture
def client_credentials(credentials_file):
    from token_store import load_client_credentials

    return load_client_credentials(credentials_file)


class FakeCalendarClient:
    """Stands in for CalendarClient; records every event it is asked to create."""

    def __init__(self, error=None, event_id="evt123"):
        self.events = []
        self.error = error
        self.event_id = event_id

    def create_event(self, event):
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.event_id


@pytest.fixture
def fake_client():
    return FakeCalendarClient()
