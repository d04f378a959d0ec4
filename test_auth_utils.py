from datetime import datetime, timezone

import pytest
from oauthlib.oauth2.rfc6749.errors import InvalidGrantError

from auth_utils import (
    AuthState,
    AuthorizationFlow,
    ConsoleOperator,
    FatalStartupError,
    OperatorChannel,
    acquire_token,
    token_from_oauth_response,
    token_to_credentials,
)
from token_store import Token, load_token, save_token

OAUTH_RESPONSE = {
    "access_token": "ya29.fresh",
    "refresh_token": "1//fresh",
    "token_type": "Bearer",
    "expires_in": 3599,
    "expires_at": 1741611600.0,   # 2025-03-10T13:00:00Z
}


class ScriptedOperator(OperatorChannel):
    def __init__(self, *answers):
        self.answers = list(answers)
        self.urls = []
        self.reads = 0

    def present_url(self, url):
        self.urls.append(url)

    def receive_code(self):
        self.reads += 1
        return self.answers.pop(0)


class FakeFlow:
    def __init__(self, response=OAUTH_RESPONSE, error=None):
        self.response = response
        self.error = error
        self.auth_kwargs = None
        self.codes = []

    def authorization_url(self, **kwargs):
        self.auth_kwargs = kwargs
        return "https://accounts.google.com/o/oauth2/auth?state=state-token", kwargs.get("state")

    def fetch_token(self, code):
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return dict(self.response)


@pytest.fixture
def fake_flow():
    return FakeFlow()


def test_stored_token_skips_authorization(client_credentials, token_file, capsys):
    stored = Token(access_token="ya29.stored", refresh_token="1//stored")
    save_token(token_file, stored)
    operator = ScriptedOperator()

    def no_flow(_):
        raise AssertionError("authorization flow must not run")

    token = acquire_token(client_credentials, token_file, operator=operator, flow_factory=no_flow)

    assert token == stored
    assert operator.urls == []
    assert operator.reads == 0
    assert capsys.readouterr().out == ""


def test_missing_token_runs_flow_once(client_credentials, token_file, fake_flow):
    operator = ScriptedOperator("4/0Acode")

    token = acquire_token(client_credentials, token_file, operator=operator,
                          flow_factory=lambda _: fake_flow)

    assert len(operator.urls) == 1
    assert operator.reads == 1
    assert fake_flow.codes == ["4/0Acode"]
    assert fake_flow.auth_kwargs == {"access_type": "offline", "prompt": "consent", "state": "state-token"}
    assert token.access_token == "ya29.fresh"
    assert token.expiry == datetime(2025, 3, 10, 13, 0, tzinfo=timezone.utc)
    assert load_token(token_file) == token


def test_corrupt_token_runs_flow_and_warns(client_credentials, token_file, fake_flow, caplog):
    token_file.write_text("{not json")
    operator = ScriptedOperator("4/0Acode")

    with caplog.at_level("WARNING", logger="auth_utils"):
        token = acquire_token(client_credentials, token_file, operator=operator,
                              flow_factory=lambda _: fake_flow)

    assert operator.reads == 1
    assert load_token(token_file) == token
    assert "Ignoring unusable token file" in caplog.text


def test_force_ignores_stored_token(client_credentials, token_file, fake_flow):
    save_token(token_file, Token(access_token="ya29.old"))
    operator = ScriptedOperator("4/0Acode")

    token = acquire_token(client_credentials, token_file, operator=operator,
                          flow_factory=lambda _: fake_flow, force=True)

    assert token.access_token == "ya29.fresh"
    assert load_token(token_file).access_token == "ya29.fresh"


def test_pasted_redirect_url_is_accepted(client_credentials, token_file, fake_flow):
    operator = ScriptedOperator("http://localhost/?state=state-token&code=4/0Apasted&scope=x")
    acquire_token(client_credentials, token_file, operator=operator, flow_factory=lambda _: fake_flow)
    assert fake_flow.codes == ["4/0Apasted"]


def test_blank_code_is_fatal(client_credentials, token_file, fake_flow):
    operator = ScriptedOperator("   ")
    with pytest.raises(FatalStartupError, match="no authorization code"):
        acquire_token(client_credentials, token_file, operator=operator,
                      flow_factory=lambda _: fake_flow)
    assert not token_file.exists()


def test_failed_exchange_is_fatal(client_credentials, token_file):
    flow = FakeFlow(error=InvalidGrantError(description="Bad Request"))
    auth = AuthorizationFlow(client_credentials, ScriptedOperator("expired"), lambda _: flow)

    with pytest.raises(FatalStartupError, match="could not exchange"):
        auth.run(token_file)

    assert auth.state is AuthState.EXCHANGING
    assert not token_file.exists()


def test_flow_reaches_issued(client_credentials, token_file, fake_flow):
    auth = AuthorizationFlow(client_credentials, ScriptedOperator("code"), lambda _: fake_flow)
    assert auth.state is AuthState.AWAITING_CONSENT
    auth.run(token_file)
    assert auth.state is AuthState.ISSUED


def test_unwritable_token_path_is_fatal(client_credentials, tmp_path, fake_flow):
    auth = AuthorizationFlow(client_credentials, ScriptedOperator("code"), lambda _: fake_flow)
    with pytest.raises(FatalStartupError, match="could not save token"):
        auth.run(tmp_path / "missing" / "token.json")


def test_default_flow_builds_google_url(client_credentials, token_file):
    operator = ScriptedOperator("")
    with pytest.raises(FatalStartupError):
        acquire_token(client_credentials, token_file, operator=operator)

    url = operator.urls[0]
    assert url.startswith("https://accounts.google.com/o/oauth2/auth?")
    assert "client_id=1234.apps.googleusercontent.com" in url
    assert "access_type=offline" in url
    assert "state=state-token" in url


def test_console_operator(monkeypatch, capsys):
    operator = ConsoleOperator()
    operator.present_url("https://example.com/auth")
    assert "https://example.com/auth" in capsys.readouterr().out

    monkeypatch.setattr("builtins.input", lambda prompt="": "4/0Aconsole")
    assert operator.receive_code() == "4/0Aconsole"


def test_console_operator_eof_is_fatal(monkeypatch):
    def eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    with pytest.raises(FatalStartupError):
        ConsoleOperator().receive_code()


def test_token_from_response_without_expires_at():
    token = token_from_oauth_response({"access_token": "a", "expires_in": 60})
    assert token.refresh_token is None
    assert token.token_type == "Bearer"
    assert token.expiry > datetime.now(timezone.utc)


def test_token_to_credentials(client_credentials):
    token = Token(
        access_token="ya29.abc",
        refresh_token="1//r",
        expiry=datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc),
    )
    creds = token_to_credentials(token, client_credentials)

    assert creds.token == "ya29.abc"
    assert creds.refresh_token == "1//r"
    assert creds.client_id == "1234.apps.googleusercontent.com"
    assert creds.token_uri == "https://oauth2.googleapis.com/token"
    assert creds.expiry == datetime(2025, 3, 10, 10, 0)
