# clinic_dashboard/infrastructure/api/client.py
"""
REST API client for the clinic backend.

Wraps a requests.Session with the base URL, timeout, bearer token and
error normalisation shared by every endpoint.
"""

from typing import Any, BinaryIO, Dict, MutableMapping, Optional, Tuple, Union

import requests

from clinic_dashboard.utils.config import API_BASE_URL, API_TIMEOUT
from clinic_dashboard.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

# Backend codes that mean a plan limit was hit
LIMIT_ERROR_CODES = {
    "SEAT_LIMIT_REACHED",
    "PATIENT_LIMIT_REACHED",
    "STORAGE_LIMIT_REACHED",
    "FEATURE_NOT_AVAILABLE",
    "PLAN_LIMIT_EXCEEDED",
}
LIMIT_STATUS_CODES = {402, 403, 413}

# Auth endpoints never clear the session on 401 (wrong password is a 401)
PUBLIC_AUTH_PATHS = (
    "/auth/login",
    "/auth/refresh",
    "/auth/forgot-password",
    "/auth/reset-password",
)


class ApiError(Exception):
    """Normalised error raised for any failed API call"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        field: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.field = field
        self.details = details
        self.status_code = status_code

    @property
    def is_network_error(self) -> bool:
        return self.code == NETWORK_ERROR

    @property
    def is_validation_error(self) -> bool:
        return self.status_code in (400, 422)

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_limit_error(self) -> bool:
        # 403 is also a plain permission error, so it needs a limit code
        if self.code in LIMIT_ERROR_CODES:
            return True
        return self.status_code in LIMIT_STATUS_CODES and self.status_code != 403

    @property
    def kind(self) -> str:
        """network, validation, limit, server, auth or unknown"""
        if self.is_network_error:
            return "network"
        if self.is_unauthorized:
            return "auth"
        if self.is_limit_error:
            return "limit"
        if self.is_validation_error:
            return "validation"
        if self.is_server_error:
            return "server"
        return "unknown"

    def __repr__(self) -> str:
        return f"ApiError(code={self.code!r}, status={self.status_code}, message={self.message!r})"


def normalize_error(error: Exception) -> ApiError:
    """
    Convert a requests exception (or an error response) into an ApiError.

    Args:
        error: Exception raised while performing the request

    Returns:
        ApiError with message, code, field and details taken from the server
        body when one is available
    """
    if isinstance(error, ApiError):
        return error

    response = getattr(error, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            return ApiError(
                message=body.get("message") or "An error occurred",
                code=body.get("code") or body.get("error"),
                field=body.get("field"),
                details=body.get("details"),
                status_code=response.status_code,
            )

        return ApiError(
            message=response.reason or "An error occurred",
            code=UNKNOWN_ERROR,
            status_code=response.status_code,
        )

    if isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return ApiError(
            message="No response from server. Please check your internet connection.",
            code=NETWORK_ERROR,
        )

    return ApiError(message=str(error) or "An unexpected error occurred", code=UNKNOWN_ERROR)


class ApiClient:
    """
    HTTP client with auth token management and error normalisation.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: int = API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.tenant_id: Optional[str] = None

    # =========================================================================
    # TOKEN MANAGEMENT
    # =========================================================================

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def set_tenant(self, tenant_id: Optional[str]) -> None:
        self.tenant_id = tenant_id

    def clear_auth_data(self) -> None:
        """Forget tokens and tenant; the user has to sign in again."""
        logger.info("Clearing API client auth data")
        self.access_token = None
        self.refresh_token = None
        self.tenant_id = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters (None values are dropped)
            json: JSON body
            files: Multipart files
            data: Multipart form fields

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            ApiError: On network failure or a non-2xx response
        """
        headers = self._auth_headers()
        if files is not None:
            # Let requests set the multipart boundary
            headers["Content-Type"] = None

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        logger.debug(f"{method} {path} params={params}")

        try:
            response = self.session.request(
                method,
                self._url(path),
                params=params,
                json=json,
                files=files,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            api_error = normalize_error(e)
            logger.error(f"{method} {path} failed: {api_error!r}")

            if api_error.is_unauthorized and not path.startswith(PUBLIC_AUTH_PATHS):
                self.clear_auth_data()
            raise api_error

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            logger.warning(f"{method} {path} returned a non-JSON body")
            return response.text

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Any = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def upload(
        self,
        path: str,
        file_name: str,
        content: Union[bytes, BinaryIO],
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Upload a file as multipart/form-data.

        Args:
            path: Upload endpoint path
            file_name: Name sent with the file part
            content: File bytes or file-like object
            content_type: MIME type of the file
            metadata: Extra form fields sent alongside the file

        Returns:
            Decoded JSON body
        """
        logger.info(f"Uploading {file_name} to {path}")
        files = {"file": (file_name, content, content_type)}
        fields = {k: str(v) for k, v in (metadata or {}).items() if v is not None}
        return self.request("POST", path, files=files, data=fields)

    def test_connection(self) -> Tuple[bool, str]:
        """
        Check that the backend answers.

        Returns:
            Tuple of (is_reachable, message)
        """
        try:
            self.session.get(self.base_url, timeout=self.timeout)
            return True, f"Connected to {self.base_url}"
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection test failed: {str(e)}")
            return False, normalize_error(e).message


# Global client instance, used when no per-session store is given
_api_client: Optional[ApiClient] = None

SESSION_CLIENT_KEY = "api_client"


def get_api_client(store: Optional[MutableMapping[str, Any]] = None) -> ApiClient:
    """
    Get the API client instance.

    Args:
        store: Per-user mapping (st.session_state) holding the client, so
            tokens are never shared between browser sessions. Without it the
            process-wide client is returned.

    Returns:
        ApiClient instance
    """
    global _api_client
    if store is not None:
        if SESSION_CLIENT_KEY not in store:
            store[SESSION_CLIENT_KEY] = ApiClient()
        return store[SESSION_CLIENT_KEY]

    if _api_client is None:
        _api_client = ApiClient()
    return _api_client


def reset_api_client() -> None:
    global _api_client
    _api_client = None
