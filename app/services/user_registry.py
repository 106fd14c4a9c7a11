"""
app/services/user_registry.py

Purpose: User operations on the master-data backend

- Lookup by id, by username and by company
- Complete create/update of a user record
- Activation, deactivation and password operations
- Write failures are reported as PersistenceError with the backend's message
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from app.core.exceptions import PersistenceError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.models.session import OperatorSession
from app.models.user import ActivationSettings, PersistedUser, TemporaryCredential
from app.services.backend_client import BackendClient, BackendError
from utils.time_utils import parse_timestamp

logger = get_logger(__name__)


def parse_credential(data: Dict[str, Any]) -> TemporaryCredential:
    """
    Builds a TemporaryCredential from an activate/reset response.
    """
    if not data or not data.get("temporaryPassword"):
        raise PersistenceError("Backend did not return a temporary password")

    return TemporaryCredential(
        user_id=data["userId"],
        user_name=data.get("userName") or "",
        plaintext_secret=data["temporaryPassword"],
        expiry_instant=parse_timestamp(data.get("temporaryPasswordExpiry")),
        force_password_change=bool(data.get("forcePasswordChange", True)),
    )


class UserRegistry:
    """
    Gateway for /users endpoints.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    async def _write(self, method: str, endpoint: str, session: OperatorSession, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            return await self._client.request(method, endpoint, session, json=json)
        except BackendError as e:
            raise PersistenceError(e.message, upstream_status=e.upstream_status) from e

    async def get_by_id(self, user_id: str, session: OperatorSession) -> PersistedUser:
        """
        Fetches a user by canonical id.

        Raises:
            ResourceNotFoundError: If the backend has no such user
        """
        try:
            data = await self._client.request("GET", f"/users/{quote(user_id, safe='')}", session)
        except BackendError as e:
            if e.is_not_found:
                raise ResourceNotFoundError(f"User {user_id} not found") from e
            raise
        return PersistedUser.model_validate(data)

    async def get_by_username(self, user_name: str, session: OperatorSession) -> PersistedUser:
        try:
            data = await self._client.request("GET", f"/users/username/{quote(user_name, safe='')}", session)
        except BackendError as e:
            if e.is_not_found:
                raise ResourceNotFoundError(f"User {user_name} not found") from e
            raise
        return PersistedUser.model_validate(data)

    async def list_by_company(self, company_id: str, session: OperatorSession) -> List[PersistedUser]:
        data = await self._client.request("GET", f"/users/company/{quote(company_id, safe='')}", session)
        return [PersistedUser.model_validate(item) for item in data or []]

    async def create_complete(self, payload: Dict[str, Any], session: OperatorSession) -> PersistedUser:
        """
        Creates a user with every wizard group in one call.

        Raises:
            PersistenceError: If the backend rejects the payload
        """
        data = await self._write("POST", "/users/complete", session, json=payload)
        user = PersistedUser.model_validate(data)
        logger.info(f"User created: {user.user_id}")
        return user

    async def update_complete(self, user_id: str, payload: Dict[str, Any], session: OperatorSession) -> PersistedUser:
        data = await self._write("PUT", f"/users/{quote(user_id, safe='')}/complete", session, json=payload)
        logger.info(f"User updated: {user_id}")
        return PersistedUser.model_validate(data)

    async def delete(self, user_id: str, session: OperatorSession) -> None:
        await self._write("DELETE", f"/users/{quote(user_id, safe='')}", session)
        logger.info(f"User deleted: {user_id}")

    async def activate(self, user_id: str, settings: ActivationSettings, session: OperatorSession) -> PersistedUser:
        data = await self._write("POST", f"/users/{quote(user_id, safe='')}/activate", session, json=settings.to_payload())
        return PersistedUser.model_validate(data)

    async def activate_with_password(
        self,
        user_id: str,
        settings: ActivationSettings,
        session: OperatorSession,
    ) -> TemporaryCredential:
        """
        Activates a user and has the backend generate a temporary password.
        """
        with LogContext(user_id=user_id):
            data = await self._write(
                "POST",
                f"/users/{quote(user_id, safe='')}/activate-with-password",
                session,
                json=settings.to_payload(),
            )
            credential = parse_credential(data)
            logger.info("Temporary password issued on activation")
            return credential

    async def deactivate(self, user_id: str, session: OperatorSession) -> PersistedUser:
        data = await self._write("POST", f"/users/{quote(user_id, safe='')}/deactivate", session)
        return PersistedUser.model_validate(data)

    async def reset_password(self, user_id: str, session: OperatorSession) -> TemporaryCredential:
        with LogContext(user_id=user_id):
            data = await self._write("POST", f"/users/{quote(user_id, safe='')}/reset-password", session)
            credential = parse_credential(data)
            logger.info("Temporary password issued on reset")
            return credential

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        session: OperatorSession,
    ) -> Dict[str, Any]:
        return await self._write(
            "POST",
            f"/users/{quote(user_id, safe='')}/change-password",
            session,
            json={"currentPassword": current_password, "newPassword": new_password},
        )
