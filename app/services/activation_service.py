"""
app/services/activation_service.py

Purpose: Account lifecycle and temporary credentials

- Draft -> Active/Inactive, Active <-> Inactive; never back to Draft
- Activation with password issues a one-time temporary credential
- Password reset always issues a new credential and supersedes the old one
- Self-service password change requires a resolved canonical id
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from app.core.exceptions import InvalidTransitionError, ValidationError
from app.core.logging import get_logger, LogContext
from app.models.session import OperatorSession
from app.models.user import (
    AccountStatus,
    ActivationSettings,
    OneTimeCredential,
    TemporaryCredential,
    is_valid_status_transition,
)
from app.services.identity_resolver import ResolvedProfile, require_canonical_id
from app.services.user_registry import UserRegistry
from utils.constants import PASSWORD_RULE_MESSAGES
from utils.time_utils import is_expired, utc_now
from utils.validation_utils import check_password_policy

logger = get_logger(__name__)


@dataclass(frozen=True)
class Issuance:
    """Latest credential issued for a user. Holds no secret."""
    issuance_id: str
    expiry_instant: Optional[datetime]


def check_transition(current: Optional[AccountStatus], target: AccountStatus) -> None:
    """
    Raises:
        InvalidTransitionError: If current -> target is not allowed
    """
    if current is None:
        return
    if not is_valid_status_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


class ActivationManager:
    """
    Drives activation, deactivation and password operations on the backend.

    Keeps a per-user ledger of the latest credential issuance so a
    superseded credential is reported invalid.
    """

    def __init__(self, users: UserRegistry, clock: Callable[[], datetime] = utc_now):
        self._users = users
        self._clock = clock
        self._ledger: Dict[str, Issuance] = {}

    def _issue(self, credential: TemporaryCredential) -> OneTimeCredential:
        one_time = OneTimeCredential(credential)
        previous = self._ledger.get(credential.user_id)
        self._ledger[credential.user_id] = Issuance(one_time.issuance_id, credential.expiry_instant)
        if previous is not None:
            logger.info(f"Previous temporary credential for {credential.user_id} superseded")
        return one_time

    def is_credential_valid(self, credential: OneTimeCredential, now: Optional[datetime] = None) -> bool:
        """
        A credential is valid until its expiry and until a newer one is
        issued for the same user.
        """
        latest = self._ledger.get(credential.user_id)
        if latest is None or latest.issuance_id != credential.issuance_id:
            return False
        return not is_expired(credential.expiry_instant, now or self._clock())

    async def activate(
        self,
        user_id: str,
        settings: ActivationSettings,
        session: OperatorSession,
        current_status: Optional[AccountStatus] = None,
    ) -> Optional[OneTimeCredential]:
        """
        Activates a user and applies the access toggles.

        Args:
            user_id: Canonical user id
            settings: Toggles to apply
            session: Operator session
            current_status: Status the caller last saw, if known

        Returns:
            OneTimeCredential when settings.password_enabled, else None

        Raises:
            InvalidTransitionError: If the user cannot become Active
            PersistenceError: If the backend rejects the call
        """
        check_transition(current_status, AccountStatus.ACTIVE)

        with LogContext(user_id=user_id):
            if settings.password_enabled:
                credential = await self._users.activate_with_password(user_id, settings, session)
                logger.info("User activated with temporary password")
                return self._issue(credential)

            await self._users.activate(user_id, settings, session)
            logger.info("User activated")
            return None

    async def deactivate(
        self,
        user_id: str,
        session: OperatorSession,
        current_status: Optional[AccountStatus] = None,
    ) -> None:
        """
        Moves a user to Inactive. Outstanding credentials are left alone.
        """
        check_transition(current_status, AccountStatus.INACTIVE)

        with LogContext(user_id=user_id):
            await self._users.deactivate(user_id, session)
            logger.info("User deactivated")

    async def reset_password(self, user_id: str, session: OperatorSession) -> OneTimeCredential:
        """
        Issues a brand-new temporary credential, regardless of whether
        password login is currently enabled. Any earlier credential for the
        user stops being valid.
        """
        with LogContext(user_id=user_id):
            credential = await self._users.reset_password(user_id, session)
            return self._issue(credential)

    async def change_password(
        self,
        profile: ResolvedProfile,
        current_password: str,
        new_password: str,
        confirm_password: str,
        session: OperatorSession,
    ) -> None:
        """
        Changes the operator's own password.

        Raises:
            ValidationError: If the new password breaks the policy
            UnresolvedIdentityError: If the profile has no canonical id
            PersistenceError: If the backend rejects the change
        """
        if not current_password:
            raise ValidationError(["Current Password"])

        rules = check_password_policy(new_password, confirm_password)
        failed = [PASSWORD_RULE_MESSAGES[name] for name, passed in rules.items() if not passed]
        if failed:
            raise ValidationError(failed, message=failed[0])

        user_id = require_canonical_id(profile)

        with LogContext(user_id=user_id):
            await self._users.change_password(user_id, current_password, new_password, session)
            logger.info("Password changed")
