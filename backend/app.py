import logging
import sys

from flask import Flask, current_app, make_response, render_template, request

from auth_utils import FatalStartupError, acquire_token, token_to_credentials
from booking import INVALID_DATETIME, handle_booking
from calendar_utils import CalendarClient, get_service
from config import CREDENTIALS_FILE, DEBUG, HOST, LOG_LEVEL, PORT, STATIC_DIR, TEMPLATES_DIR, TOKEN_FILE
from token_store import CredentialsError, load_client_credentials

logger = logging.getLogger(__name__)

_ERROR_TEXT = {
    INVALID_DATETIME: "Fecha u hora inválida",
}
_DEFAULT_ERROR_TEXT = "Error al crear el evento"


def _plain_text(body: str, status: int):
    response = make_response(body, status)
    response.headers["Content-Type"] = "text/plain; charset=utf-8"
    return response


def create_app(calendar_client) -> Flask:
    """Build the web app around an already authorized calendar client."""
    app = Flask(
        __name__,
        template_folder=str(TEMPLATES_DIR),
        static_folder=str(STATIC_DIR),
        static_url_path="/static",
    )
    app.extensions["calendar_client"] = calendar_client

    # ---------- routes ----------
    @app.route("/", methods=["GET"])
    def index():
        return render_template("index.html")

    @app.route("/reservar", methods=["POST"])
    def reservar():
        result = handle_booking(request.form, current_app.extensions["calendar_client"])
        if not result.success:
            return _plain_text(_ERROR_TEXT.get(result.error, _DEFAULT_ERROR_TEXT), result.status_code)
        return render_template("index.html", **result.template_context())

    return app


# ---------- startup ----------
def build_calendar_client(credentials_path=CREDENTIALS_FILE, token_path=TOKEN_FILE,
                          operator=None) -> CalendarClient:
    """Credentials → token → authorized calendar client. Raises FatalStartupError."""
    try:
        credentials = load_client_credentials(credentials_path)
    except CredentialsError as e:
        raise FatalStartupError(str(e)) from e

    token = acquire_token(credentials, token_path, operator=operator)
    creds = token_to_credentials(token, credentials)
    return CalendarClient(get_service(creds), creds)


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        client = build_calendar_client()
    except FatalStartupError as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    app = create_app(client)
    print(f"✅ Server started at http://{HOST}:{PORT}")
    app.run(host=HOST, port=PORT, debug=DEBUG, use_reloader=False)


if __name__ == "__main__":
    main()
