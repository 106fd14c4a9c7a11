"""
app/services/backend_client.py

Purpose: HTTP transport to the master-data backend

- Shared httpx.AsyncClient with configured base URL and timeout
- Forwards the operator's bearer token
- Unwraps the {success, data, message} envelope
- Turns error responses into typed exceptions with the backend's message
- No automatic retries; timeouts come from settings
"""

from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ConsoleError
from app.core.logging import get_logger
from app.models.session import OperatorSession

logger = get_logger(__name__)


class BackendError(ConsoleError):
    """Raised when the backend returns an error or cannot be reached."""

    def __init__(self, message: str, upstream_status: Optional[int] = None, details: Optional[Any] = None):
        self.upstream_status = upstream_status
        super().__init__(message, code="BACKEND_ERROR", status_code=502, details=details)

    @property
    def is_not_found(self) -> bool:
        return self.upstream_status == 404


def extract_error_message(response: httpx.Response) -> str:
    """
    Pulls a readable message out of a backend error response.

    Handles a list of validation messages, a plain message string and an
    "error" field; falls back to the HTTP status line.
    """
    fallback = f"HTTP {response.status_code}: {response.reason_phrase}"

    try:
        error_data = response.json()
    except ValueError:
        return fallback

    if not isinstance(error_data, dict):
        return fallback

    message = error_data.get("message")
    if isinstance(message, list):
        return ", ".join(str(m) for m in message)
    if isinstance(message, str) and message:
        return message

    error = error_data.get("error")
    if isinstance(error, str) and error:
        return error
    if error:
        return str(error)

    if message:
        return str(message)

    return fallback


class BackendClient:
    """
    Thin async client for the backend REST API.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.BACKEND_API_URL,
            timeout=timeout or settings.BACKEND_TIMEOUT,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        session: OperatorSession,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Sends a request and returns the envelope's data.

        Args:
            method: HTTP method
            endpoint: Path relative to the backend base URL
            session: Operator session (bearer token is forwarded)
            json: Request body
            params: Query parameters

        Returns:
            The "data" member of the response envelope, or None for 204

        Raises:
            AuthenticationError: On 401/403
            BackendError: On any other error status or transport failure
        """
        headers = {}
        if session.token:
            headers["Authorization"] = f"Bearer {session.token}"

        logger.debug(f"Backend request: {method} {endpoint}")

        try:
            response = await self._client.request(
                method,
                endpoint,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Backend request failed: {method} {endpoint}: {e}")
            raise BackendError(f"Network error: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(extract_error_message(response))

        if response.is_error:
            message = extract_error_message(response)
            logger.warning(
                f"Backend rejected {method} {endpoint}: {response.status_code} {message}"
            )
            raise BackendError(message, upstream_status=response.status_code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise BackendError("Backend returned a non-JSON response", upstream_status=response.status_code) from e

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def close(self):
        await self._client.aclose()


# Global client instance
_backend_client: Optional[BackendClient] = None


def get_backend_client() -> BackendClient:
    """
    Returns the shared backend client, creating it on first use.
    """
    global _backend_client
    if _backend_client is None:
        _backend_client = BackendClient()
    return _backend_client


async def close_backend_client():
    """
    Closes the shared backend client.
    Called during application shutdown.
    """
    global _backend_client
    if _backend_client is not None:
        await _backend_client.close()
        _backend_client = None
