"""
auth_utils.py – obtain a usable OAuth token for the calendar

A stored token is reused as is. Without one, the operator is walked through
Google's consent screen once: the authorization URL is shown, the code that
Google hands back is read, exchanged, and saved for the next start.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import Enum
from urllib.parse import parse_qs, urlparse

import requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from config import AUTH_STATE, TOKEN_FILE
from token_store import (
    ClientCredentials,
    Token,
    TokenNotFoundError,
    TokenParseError,
    load_token,
    save_token,
)

logger = logging.getLogger(__name__)


class FatalStartupError(Exception):
    """The server cannot start: no credentials, or no token could be issued."""


class AuthState(Enum):
    AWAITING_CONSENT = "awaiting_consent"
    AWAITING_CODE = "awaiting_code"
    EXCHANGING = "exchanging"
    ISSUED = "issued"


# ---------- operator channel ----------
class OperatorChannel(ABC):
    """Where the authorization URL goes and where the code comes back from."""

    @abstractmethod
    def present_url(self, url: str) -> None: ...

    @abstractmethod
    def receive_code(self) -> str: ...


class ConsoleOperator(OperatorChannel):
    def present_url(self, url: str) -> None:
        print(f"\n🔑 Visit the following URL to authorize the application:\n{url}\n")

    def receive_code(self) -> str:
        try:
            return input("Enter the authorization code: ")
        except EOFError as e:
            raise FatalStartupError("could not read the authorization code") from e


def _extract_code(answer: str) -> str:
    """Accept either the bare code or the whole redirect URL it arrived on."""
    answer = (answer or "").strip()
    if answer.startswith(("http://", "https://")):
        return parse_qs(urlparse(answer).query).get("code", [""])[0]
    return answer


# ---------- token helpers ----------
def token_from_oauth_response(resp: dict) -> Token:
    expiry = None
    if resp.get("expires_at"):
        expiry = datetime.fromtimestamp(float(resp["expires_at"]), tz=timezone.utc)
    elif resp.get("expires_in"):
        expiry = datetime.now(timezone.utc) + timedelta(seconds=int(resp["expires_in"]))

    return Token(
        access_token=resp["access_token"],
        refresh_token=resp.get("refresh_token"),
        expiry=expiry,
        token_type=resp.get("token_type") or "Bearer",
    )


def token_to_credentials(token: Token, client: ClientCredentials) -> Credentials:
    """Google credentials for the API client. google-auth wants naive UTC expiries."""
    expiry = None
    if token.expiry is not None:
        expiry = token.expiry.astimezone(timezone.utc).replace(tzinfo=None)
    return Credentials(
        token=token.access_token,
        refresh_token=token.refresh_token,
        token_uri=client.token_uri,
        client_id=client.client_id,
        client_secret=client.client_secret,
        scopes=list(client.scopes),
        expiry=expiry,
    )


def _default_flow(credentials: ClientCredentials) -> Flow:
    return Flow.from_client_config(
        credentials.client_config,
        scopes=list(credentials.scopes),
        redirect_uri=credentials.redirect_uri,
    )


# ---------- interactive authorization ----------
class AuthorizationFlow:
    """One pass through consent → code → exchange → issued."""

    def __init__(self, credentials: ClientCredentials, operator: OperatorChannel, flow_factory=None):
        self.credentials = credentials
        self.operator = operator
        self.flow_factory = flow_factory or _default_flow
        self.state = AuthState.AWAITING_CONSENT

    def _advance(self, state: AuthState) -> None:
        logger.debug("authorization %s → %s", self.state.value, state.value)
        self.state = state

    def run(self, token_path) -> Token:
        flow = self.flow_factory(self.credentials)
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=AUTH_STATE,
        )
        self.operator.present_url(auth_url)

        self._advance(AuthState.AWAITING_CODE)
        code = _extract_code(self.operator.receive_code())
        if not code:
            raise FatalStartupError("no authorization code was entered")

        self._advance(AuthState.EXCHANGING)
        try:
            resp = flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException, ValueError, Warning) as e:
            raise FatalStartupError(f"could not exchange the authorization code: {e}") from e

        token = token_from_oauth_response(resp)
        self._advance(AuthState.ISSUED)

        try:
            save_token(token_path, token)
        except OSError as e:
            raise FatalStartupError(f"could not save token to {token_path}: {e}") from e
        print(f"💾 Token saved to {token_path}")
        return token


def acquire_token(credentials: ClientCredentials, token_path=TOKEN_FILE,
                  operator: OperatorChannel = None, flow_factory=None, force=False) -> Token:
    """Return a stored token, or run the consent flow once and store the result.

    A missing token file and an unreadable one both lead to re-authorization;
    the latter is logged as a warning so real corruption is still visible.
    """
    if not force:
        try:
            token = load_token(token_path)
        except TokenNotFoundError:
            logger.info("No stored token at %s, starting authorization", token_path)
        except TokenParseError as e:
            logger.warning("Ignoring unusable token file: %s", e)
        else:
            logger.info("Using stored token from %s", token_path)
            return token

    flow = AuthorizationFlow(credentials, operator or ConsoleOperator(), flow_factory)
    return flow.run(token_path)
