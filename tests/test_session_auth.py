"""
Unit tests for session sign-in state. Streamlit and the endpoint module are
patched; session state is a plain dict with attribute access.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from clinic_dashboard.infrastructure.api.client import SESSION_CLIENT_KEY, ApiClient, ApiError
from clinic_dashboard.infrastructure.auth import session_auth
from clinic_dashboard.utils.config import ERROR_MESSAGES


class SessionState(dict):
    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value


@pytest.fixture
def state() -> SessionState:
    return SessionState()


@pytest.fixture
def fake_st(state):
    with patch.object(session_auth, "st") as mocked:
        mocked.session_state = state
        mocked.stop.side_effect = RuntimeError("stopped")
        yield mocked


@pytest.fixture
def api():
    with patch.object(session_auth, "endpoints") as mocked:
        yield mocked


class TestLogin:
    def test_success_stores_user_and_tenant(self, fake_st, state, api) -> None:
        api.login.return_value = {"user": {"id": "u1", "tenantId": "t1"}}
        api.get_tenant.return_value = {"id": "t1", "name": "Calm Mind"}

        user = session_auth.login_user("ana@calm.test", "Secret123")

        assert user["id"] == "u1"
        assert state.authenticated is True
        assert state.tenant["name"] == "Calm Mind"
        assert isinstance(state[SESSION_CLIENT_KEY], ApiClient)

    def test_tenant_failure_is_tolerated(self, fake_st, state, api) -> None:
        api.login.return_value = {"user": {"id": "u1"}}
        api.get_tenant.side_effect = ApiError("Boom", status_code=500)

        session_auth.login_user("ana@calm.test", "Secret123")

        assert state.authenticated is True
        assert state.tenant is None

    @pytest.mark.parametrize(
        "error, message",
        [
            (ApiError("Bad", status_code=401), ERROR_MESSAGES["invalid_credentials"]),
            (ApiError("down", code="NETWORK_ERROR"), ERROR_MESSAGES["network_error"]),
            (ApiError("Tenant suspended", status_code=403), "❌ Tenant suspended"),
        ],
    )
    def test_failures(self, fake_st, state, api, error, message) -> None:
        api.login.side_effect = error
        with pytest.raises(session_auth.AuthenticationError, match=message):
            session_auth.login_user("ana@calm.test", "wrong")
        assert not state.get("authenticated")


class TestSessionChecks:
    def test_logout_resets_state(self, fake_st, state, api) -> None:
        state.user = {"id": "u1"}
        state.authenticated = True
        api.logout.side_effect = ApiError("down", code="NETWORK_ERROR")

        with patch.object(session_auth, "clear_all_caches") as clear:
            session_auth.logout_user()

        clear.assert_called_once()
        assert state.user is None
        assert state.authenticated is False

    def test_logout_all_devices(self, fake_st, state, api) -> None:
        with patch.object(session_auth, "clear_all_caches"):
            session_auth.logout_user(all_devices=True)
        api.logout_all.assert_called_once()
        api.logout.assert_not_called()

    def test_dropped_token_logs_out(self, fake_st, state) -> None:
        state.authenticated = True
        state.user = {"id": "u1"}
        state[SESSION_CLIENT_KEY] = ApiClient(session=MagicMock())

        assert not session_auth.is_logged_in()
        assert state.user is None

    def test_require_login_stops_anonymous(self, fake_st, state) -> None:
        with pytest.raises(RuntimeError, match="stopped"):
            session_auth.require_login()
        fake_st.info.assert_called_once()

    def test_require_login_returns_client_and_user(self, fake_st, state) -> None:
        client = ApiClient(session=MagicMock())
        client.set_tokens("access")
        state.update(
            {SESSION_CLIENT_KEY: client, "authenticated": True, "user": {"id": "u1"}}
        )

        assert session_auth.require_login() == (client, {"id": "u1"})

    def test_current_user(self, fake_st, state) -> None:
        assert session_auth.current_user() is None
        state.user = {"id": "u1"}
        assert session_auth.current_user() == {"id": "u1"}
