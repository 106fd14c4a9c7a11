"""
app/services/session_service.py

Purpose: Wizard session persistence

- Stores one WizardController document per open wizard
- Tracks last interaction time and rolls the idle expiry forward
- Expired sessions read as not found (the TTL index removes them later)
- Atomic save claim so two requests cannot submit the same draft at once
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError, SaveInProgressError
from app.core.logging import get_logger, LogContext
from app.flow.wizard import WizardController
from utils.time_utils import calculate_session_expiry, is_expired, utc_now

logger = get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # pymongo hands back naive UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WizardSessionStore:
    """
    MongoDB-backed store for wizard sessions.

    Takes the collection so tests can hand in a mock.
    """

    def __init__(
        self,
        collection,
        timeout_minutes: Optional[int] = None,
        claim_timeout_seconds: Optional[float] = None,
    ):
        self._collection = collection
        self._timeout = timeout_minutes or settings.WIZARD_SESSION_TIMEOUT_MINUTES
        self._claim_timeout = timedelta(seconds=claim_timeout_seconds or settings.WIZARD_SAVE_CLAIM_TIMEOUT_SECONDS)

    def _timestamps(self) -> Dict[str, datetime]:
        now = utc_now()
        return {
            "last_interaction": now,
            "expires_at": calculate_session_expiry(now, self._timeout),
        }

    async def create(self, wizard: WizardController, operator_id: Optional[str]) -> WizardController:
        """
        Persists a new wizard and assigns its session id.

        Args:
            wizard: Freshly built controller
            operator_id: Operator who opened it, for auditing

        Returns:
            The same controller with session_id set
        """
        wizard.session_id = uuid.uuid4().hex

        with LogContext(session_id=wizard.session_id, user_id=operator_id):
            doc: Dict[str, Any] = wizard.to_document()
            doc.update(self._timestamps())
            doc["operator_id"] = operator_id
            doc["created_at"] = doc["last_interaction"]
            doc["saving"] = False
            doc["save_claimed_at"] = None

            await self._collection.insert_one(doc)
            logger.info(f"Wizard session opened ({wizard.mode.value})")

        return wizard

    async def load(self, session_id: str) -> WizardController:
        """
        Raises:
            ResourceNotFoundError: If the session does not exist or has expired
        """
        doc = await self._collection.find_one({"session_id": session_id})
        if doc is None:
            raise ResourceNotFoundError("Wizard session not found", details={"session_id": session_id})

        expires_at = _as_utc(doc.get("expires_at"))
        if is_expired(expires_at):
            logger.info(f"Wizard session {session_id} expired")
            raise ResourceNotFoundError("Wizard session has expired", details={"session_id": session_id})

        wizard = WizardController.from_document(doc)
        wizard.saving = self._claim_is_live(doc)
        return wizard

    async def save(self, wizard: WizardController) -> None:
        """
        Writes the wizard state back and extends its idle expiry.
        """
        update = wizard.to_document()
        update.pop("session_id", None)
        update.update(self._timestamps())

        result = await self._collection.update_one(
            {"session_id": wizard.session_id},
            {"$set": update}
        )
        if result.matched_count == 0:
            raise ResourceNotFoundError("Wizard session not found", details={"session_id": wizard.session_id})

    async def delete(self, session_id: str) -> bool:
        result = await self._collection.delete_one({"session_id": session_id})
        deleted = result.deleted_count > 0
        if deleted:
            logger.info(f"Wizard session {session_id} closed")
        return deleted

    def _claim_is_live(self, doc: Dict[str, Any]) -> bool:
        if not doc.get("saving"):
            return False
        claimed_at = _as_utc(doc.get("save_claimed_at"))
        if claimed_at is None:
            return True
        return utc_now() - claimed_at < self._claim_timeout

    async def begin_save(self, session_id: str) -> None:
        """
        Claims the session for a save.

        A claim older than the claim timeout is treated as abandoned (the
        process holding it died mid-save) and can be taken over.

        Raises:
            SaveInProgressError: If another request holds a live claim
        """
        now = utc_now()
        doc = await self._collection.find_one_and_update(
            {
                "session_id": session_id,
                "$or": [
                    {"saving": {"$ne": True}},
                    {"save_claimed_at": {"$lt": now - self._claim_timeout}},
                ],
            },
            {"$set": {"saving": True, "save_claimed_at": now}}
        )
        if doc is None:
            logger.warning(f"Duplicate save rejected for wizard session {session_id}")
            raise SaveInProgressError()

        if doc.get("saving"):
            logger.warning(f"Took over an abandoned save claim on wizard session {session_id}")

    async def end_save(self, session_id: str) -> None:
        await self._collection.update_one(
            {"session_id": session_id},
            {"$set": {"saving": False, "save_claimed_at": None}}
        )
