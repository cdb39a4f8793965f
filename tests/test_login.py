"""Tests for login.py — the slot is filled by hand, time never really passes."""

from unittest.mock import MagicMock, patch

import pytest

import login
from callback_server import CodeSlot
from errors import AuthorizationTimeout, LoginError, ProviderApiError, TokenExchangeError


class FakeSession:
    def __init__(self, name="Deezer", token="tok", user_error=None, exchange_error=None):
        self.name = name
        self.access_token = ""
        self.user_name = ""
        self._token = token
        self._user_error = user_error
        self._exchange_error = exchange_error
        self.codes = []

    def auth_url(self):
        return f"https://example.test/{self.name}/authorize"

    def fetch_token(self, code):
        self.codes.append(code)
        if self._exchange_error:
            raise self._exchange_error
        self.access_token = self._token
        return self._token

    def fetch_user(self):
        if self._user_error:
            raise self._user_error
        self.user_name = "someone"


# ---------------------------------------------------------------------------
# wait_for_code()
# ---------------------------------------------------------------------------

class TestWaitForCode:
    def test_code_already_there(self):
        slot = CodeSlot("Deezer")
        slot.set("d1")
        sleep = MagicMock()
        assert login.wait_for_code(slot, "Deezer", 2, 150, sleep=sleep) == "d1"
        sleep.assert_not_called()

    def test_code_arrives_while_polling(self):
        slot = CodeSlot("Spotify")
        calls = []

        def sleep(seconds):
            calls.append(seconds)
            if len(calls) == 3:
                slot.set("s1")

        assert login.wait_for_code(slot, "Spotify", 10, 12, sleep=sleep) == "s1"
        assert calls == [10, 10, 10]

    def test_code_on_last_check(self):
        slot = CodeSlot("Spotify")
        calls = []

        def sleep(seconds):
            calls.append(seconds)
            if len(calls) == 4:
                slot.set("late")

        assert login.wait_for_code(slot, "Spotify", 1, 4, sleep=sleep) == "late"

    def test_timeout_names_provider_and_duration(self):
        slot = CodeSlot("Deezer")
        sleep = MagicMock()
        with pytest.raises(AuthorizationTimeout) as exc:
            login.wait_for_code(slot, "Deezer", 2, 3, sleep=sleep)
        assert sleep.call_count == 3
        assert exc.value.provider == "Deezer"
        assert exc.value.seconds == 6
        assert str(exc.value) == "[6s timeout] Failed to login to Deezer"

    def test_default_policy_message(self):
        with pytest.raises(AuthorizationTimeout, match=r"\[5min timeout\] Failed to login to Spotify"):
            login.wait_for_code(CodeSlot("Spotify"), "Spotify", 2, 150, sleep=lambda s: None)


# ---------------------------------------------------------------------------
# login()
# ---------------------------------------------------------------------------

class TestLogin:
    def test_success_exchanges_the_slot_code(self, caplog):
        slot = CodeSlot("Deezer")
        slot.set("d1")
        session = FakeSession()

        assert login.login(session, slot, 2, 150, sleep=lambda s: None) is session
        assert session.codes == ["d1"]
        assert session.access_token == "tok"
        assert "https://example.test/Deezer/authorize" in caplog.text
        assert "Logged in to Deezer as someone!" in caplog.text

    def test_timeout_skips_exchange(self):
        session = FakeSession("Spotify")
        with pytest.raises(AuthorizationTimeout):
            login.login(session, CodeSlot("Spotify"), 1, 2, sleep=lambda s: None)
        assert session.codes == []

    def test_exchange_failure_propagates(self):
        slot = CodeSlot("Spotify")
        slot.set("bad")
        session = FakeSession("Spotify", exchange_error=TokenExchangeError("Spotify", "invalid_grant"))
        with pytest.raises(TokenExchangeError, match="invalid_grant"):
            login.login(session, slot, 1, 1, sleep=lambda s: None)

    def test_empty_token_is_a_failure(self):
        slot = CodeSlot("Deezer")
        slot.set("d1")
        with pytest.raises(TokenExchangeError):
            login.login(FakeSession(token=""), slot, 1, 1, sleep=lambda s: None)

    def test_account_lookup_failure_is_login_error(self):
        slot = CodeSlot("Deezer")
        slot.set("d1")
        session = FakeSession(user_error=ProviderApiError("Deezer", "GET /user/me returned 500"))
        with pytest.raises(LoginError) as exc:
            login.login(session, slot, 1, 1, sleep=lambda s: None)
        assert exc.value.provider == "Deezer"

    def test_open_browser(self):
        slot = CodeSlot("Deezer")
        slot.set("d1")
        with patch.object(login.webbrowser, "open") as mock_open:
            login.login(FakeSession(), slot, 1, 1, open_browser=True, sleep=lambda s: None)
        mock_open.assert_called_once_with("https://example.test/Deezer/authorize")
