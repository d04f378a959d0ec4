# Google OAuth settings & booking policy
import os
from datetime import timedelta
from pathlib import Path

SCOPES = ["https://www.googleapis.com/auth/calendar"]
CALENDAR_ID = "primary"
AUTH_STATE = "state-token"

CREDENTIALS_FILE = os.getenv("CREDENTIALS_FILE", "credentials.json")   # downloaded from Google Cloud Console
TOKEN_FILE = os.getenv("TOKEN_FILE", "token.json")

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = PROJECT_ROOT / "templates"
STATIC_DIR = PROJECT_ROOT / "static"

TIME_ZONE = "America/Argentina/Buenos_Aires"
EVENT_DURATION = timedelta(hours=1)
EVENT_DESCRIPTION = "Turno reservado desde la web"
SUMMARY_TEMPLATE = "Consulta con {nombre}"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M"   # fecha "YYYY-MM-DD" + "T" + hora "HH:MM"

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8080"))
DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
