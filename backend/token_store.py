"""
token_store.py – client credentials & OAuth token persistence

Reads the client-secret JSON downloaded from Google Cloud Console and keeps
the user's token in a small JSON document next to it:

    {"access_token": "...", "token_type": "Bearer",
     "refresh_token": "...", "expiry": "2025-03-10T13:00:00+00:00"}

Nothing here retries; callers decide what a failure means.
"""
import json
import os
import pathlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import isoparse

from config import SCOPES

_CLIENT_TYPES = ("installed", "web")
_REQUIRED_CLIENT_KEYS = ("client_id", "client_secret", "auth_uri", "token_uri")
DEFAULT_REDIRECT_URI = "http://localhost"


class TokenStoreError(Exception):
    """Base class for token file problems."""


class TokenNotFoundError(TokenStoreError):
    """No token has been saved yet."""


class TokenParseError(TokenStoreError):
    """The token file exists but does not hold a usable token."""


class CredentialsError(Exception):
    """The client credentials file is missing, unreadable or malformed."""


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str
    client_secret: str
    auth_uri: str
    token_uri: str
    redirect_uris: tuple = ()
    scopes: tuple = tuple(SCOPES)
    client_type: str = "installed"
    client_config: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def redirect_uri(self) -> str:
        return self.redirect_uris[0] if self.redirect_uris else DEFAULT_REDIRECT_URI


@dataclass(frozen=True)
class Token:
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None   # always timezone-aware
    token_type: str = "Bearer"

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        if not isinstance(data, dict):
            raise TokenParseError("token document is not a JSON object")
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenParseError("token document has no access_token")
        refresh_token = data.get("refresh_token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TokenParseError("refresh_token must be a string")

        expiry = data.get("expiry")
        if expiry:
            if not isinstance(expiry, str):
                raise TokenParseError(f"bad expiry {expiry!r}: not a string")
            try:
                expiry = isoparse(expiry)
            except (TypeError, ValueError) as e:
                raise TokenParseError(f"bad expiry {expiry!r}: {e}") from e
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            # Go's oauth2 package writes its zero time for "never expires"
            if expiry.year == 1:
                expiry = None
        else:
            expiry = None

        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expiry=expiry,
            token_type=data.get("token_type") or "Bearer",
        )


# ---------- client credentials ----------
def load_client_credentials(path) -> ClientCredentials:
    path = pathlib.Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CredentialsError(f"could not read credentials file {path}: {e}") from e
    except ValueError as e:
        raise CredentialsError(f"could not parse credentials file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise CredentialsError(f"credentials file {path} is not a JSON object")

    client_type = next((t for t in _CLIENT_TYPES if t in raw), None)
    if client_type is None:
        raise CredentialsError(
            f"credentials file {path} has neither an 'installed' nor a 'web' section"
        )

    info = raw[client_type]
    if not isinstance(info, dict):
        raise CredentialsError(f"credentials file {path}: '{client_type}' is not a JSON object")
    missing = [k for k in _REQUIRED_CLIENT_KEYS if not info.get(k)]
    if missing:
        raise CredentialsError(f"credentials file {path} is missing {', '.join(missing)}")

    return ClientCredentials(
        client_id=info["client_id"],
        client_secret=info["client_secret"],
        auth_uri=info["auth_uri"],
        token_uri=info["token_uri"],
        redirect_uris=tuple(info.get("redirect_uris") or ()),
        client_type=client_type,
        client_config=raw,
    )


# ---------- user token ----------
def load_token(path) -> Token:
    path = pathlib.Path(path)
    if not path.exists():
        raise TokenNotFoundError(f"no token at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise TokenParseError(f"could not read token file {path}: {e}") from e
    return Token.from_dict(data)


def save_token(path, token: Token) -> None:
    """Write the token atomically: a sibling temp file renamed over the target."""
    path = pathlib.Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(json.dumps(token.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
