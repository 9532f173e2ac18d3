# clinic_dashboard/infrastructure/auth/session_auth.py
"""
Sign-in state for the Streamlit session.

The API client lives in st.session_state so every browser session holds its
own tokens. Pages call require_login() before rendering anything tenant-scoped.
"""

from typing import Any, Dict, Optional, Tuple

import streamlit as st

from clinic_dashboard.infrastructure.api import endpoints
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError, get_api_client
from clinic_dashboard.infrastructure.api.queries import clear_all_caches
from clinic_dashboard.utils.config import ERROR_MESSAGES, INFO_MESSAGES
from clinic_dashboard.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Custom exception for sign-in failures"""

    pass


def initialize_session_state() -> None:
    """Initialize auth-related session state variables"""
    if "user" not in st.session_state:
        st.session_state.user = None
        logger.debug("Initialized user")

    if "tenant" not in st.session_state:
        st.session_state.tenant = None
        logger.debug("Initialized tenant")

    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False


def get_client() -> ApiClient:
    """API client of the current browser session"""
    return get_api_client(st.session_state)


def login_user(email: str, password: str) -> Dict[str, Any]:
    """
    Sign in and store the user and tenant in the session.

    Args:
        email: User email
        password: User password

    Returns:
        Normalised user dictionary

    Raises:
        AuthenticationError: If the credentials are rejected or the server
            cannot be reached
    """
    logger.info(f"Login attempt for {email}")
    client = get_client()

    try:
        result = endpoints.login(client, email, password)
    except ApiError as e:
        logger.warning(f"Login failed for {email}: {e!r}")
        if e.is_network_error:
            raise AuthenticationError(ERROR_MESSAGES["network_error"]) from e
        if e.is_unauthorized:
            raise AuthenticationError(ERROR_MESSAGES["invalid_credentials"]) from e
        raise AuthenticationError(f"❌ {e.message}") from e

    user = result["user"]
    st.session_state.user = user
    st.session_state.authenticated = True

    # Tenant details are nice to have; the dashboard works without them
    try:
        st.session_state.tenant = endpoints.get_tenant(client)
    except ApiError as e:
        logger.warning(f"Could not load tenant after login: {e!r}")
        st.session_state.tenant = None

    logger.info(f"User {user.get('id')} signed in to tenant {client.tenant_id}")
    return user


def logout_user(all_devices: bool = False) -> None:
    """Sign out, forget the session user and drop cached data"""
    logger.info("Signing out")
    client = get_client()

    try:
        if all_devices:
            endpoints.logout_all(client)
        else:
            endpoints.logout(client)
    except ApiError as e:
        # Tokens are cleared locally either way
        logger.warning(f"Logout request failed: {e!r}")

    st.session_state.user = None
    st.session_state.tenant = None
    st.session_state.authenticated = False
    clear_all_caches()


def is_logged_in() -> bool:
    """True when the session has a user and the client still holds a token"""
    if not st.session_state.get("authenticated"):
        return False
    if not get_client().is_authenticated:
        # The client dropped its tokens after a 401
        logger.info("Session token no longer valid")
        st.session_state.authenticated = False
        st.session_state.user = None
        return False
    return True


def require_login() -> Tuple[ApiClient, Dict[str, Any]]:
    """
    Stop the page unless someone is signed in.

    Returns:
        Tuple of (client, user)
    """
    initialize_session_state()
    if not is_logged_in():
        st.info(INFO_MESSAGES["login_required"])
        st.page_link("Main.py", label="Go to sign in", icon="🔐")
        st.stop()
    return get_client(), st.session_state.user


def current_user() -> Optional[Dict[str, Any]]:
    return st.session_state.get("user")


def current_tenant() -> Optional[Dict[str, Any]]:
    return st.session_state.get("tenant")


def test_and_display_connection() -> None:
    """Test the backend connection and cache the result"""
    logger.info("Manual connection test requested")

    with st.spinner("Testing connection..."):
        is_connected, message = get_client().test_connection()
        st.session_state.connection_status = is_connected

        if is_connected:
            st.success(f"✅ {message}")
            logger.info("Manual connection test successful")
        else:
            st.error(f"❌ {message}")
            logger.error(f"Manual connection test failed: {message}")
