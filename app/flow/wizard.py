"""
app/flow/wizard.py

Purpose: User onboarding wizard

- Owns the draft for the duration of a wizard session
- Gates forward navigation with the step validator
- Back navigation is free; jumps are free only in view mode
- Final save re-validates, resolves company/role references, then
  creates or updates the user on the backend
- A failed save leaves the wizard on the summary step with the draft intact
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.exceptions import (
    InvalidTransitionError,
    NavigationError,
    PersistenceError,
    ResolutionWarning,
    SaveInProgressError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.flow.steps import (
    FIRST_STEP,
    LAST_STEP,
    WizardStep,
    get_progress_message,
    get_step_metadata,
    validate_step,
)
from app.models.session import OperatorSession
from app.models.user import (
    AccountStatus,
    PersistedUser,
    UserDraft,
    is_valid_status_transition,
)
from app.services.directory_service import DirectorySnapshot
from app.services.identity_resolver import (
    resolve_company_id,
    resolve_draft_display,
    resolve_role_for_payload,
)
from app.services.user_registry import UserRegistry
from utils.validation_utils import find_format_issues

logger = get_logger(__name__)


class WizardMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    VIEW = "view"


@dataclass
class SaveResult:
    user: PersistedUser
    created: bool
    notices: List[ResolutionWarning] = field(default_factory=list)


class WizardController:
    """
    Six-step onboarding flow over a single UserDraft.
    """

    def __init__(
        self,
        mode: WizardMode = WizardMode.CREATE,
        draft: Optional[UserDraft] = None,
        step: int = FIRST_STEP,
        origin_user_id: Optional[str] = None,
        origin_status: Optional[AccountStatus] = None,
        session_id: Optional[str] = None,
    ):
        if mode != WizardMode.CREATE and origin_user_id is None:
            raise ValueError(f"{mode.value} mode needs the id of an existing user")

        self.mode = mode
        self.draft = draft or UserDraft()
        self.step = WizardStep(step)
        self.origin_user_id = origin_user_id
        self.origin_status = origin_status
        self.session_id = session_id
        self.missing: List[str] = []
        self.last_error: Optional[str] = None
        self.saving = False

    @classmethod
    def for_existing(
        cls,
        user: PersistedUser,
        mode: WizardMode = WizardMode.EDIT,
        session_id: Optional[str] = None,
    ) -> "WizardController":
        """
        Opens the wizard on a backend record for edit or view.
        """
        return cls(
            mode=mode,
            draft=UserDraft.from_persisted(user),
            origin_user_id=user.user_id,
            origin_status=user.status,
            session_id=session_id,
        )

    @property
    def read_only(self) -> bool:
        return self.mode == WizardMode.VIEW

    @property
    def is_update(self) -> bool:
        return self.origin_user_id is not None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> WizardStep:
        """
        Advances one step if the current step's requirements are met.

        Returns:
            The new current step

        Raises:
            ValidationError: With the missing labels; the step does not change
            NavigationError: If already on the last step
        """
        with LogContext(session_id=self.session_id, step=int(self.step)):
            if self.step == LAST_STEP:
                raise NavigationError("Already on the last step; use save")

            if not self.read_only:
                result = validate_step(self.step, self.draft)
                if not result.valid:
                    self.missing = result.missing
                    logger.info(f"Step gate failed: {', '.join(result.missing)}")
                    raise ValidationError(result.missing, step=int(self.step))

            self.missing = []
            self.step = WizardStep(self.step + 1)
            logger.debug(f"Advanced to step {int(self.step)}")
            return self.step

    def back(self) -> WizardStep:
        """
        Goes back one step without validation.

        Raises:
            NavigationError: If already on the first step
        """
        if self.step == FIRST_STEP:
            raise NavigationError("Already on the first step")

        self.missing = []
        self.step = WizardStep(self.step - 1)
        return self.step

    def go_to_step(self, step: int) -> WizardStep:
        """
        Jumps to a step.

        Any step is reachable in view mode. In create/edit mode only
        backward jumps are allowed; moving forward goes through next().
        """
        try:
            target = WizardStep(step)
        except ValueError:
            raise NavigationError(f"Unknown step {step}", details={"step": step})

        if not self.read_only and target > self.step:
            raise NavigationError(
                "Forward jumps are only allowed in view mode",
                details={"current": int(self.step), "requested": int(target)}
            )

        self.missing = []
        self.step = target
        return self.step

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def update_fields(self, values: Dict[str, Any]) -> UserDraft:
        """
        Applies field edits to the draft.

        Raises:
            NavigationError: In view mode
            ValueError: For unknown field names
        """
        if self.read_only:
            raise NavigationError("This wizard is read-only")

        known = set(UserDraft.field_names())
        unknown = [name for name in values if name not in known]
        if unknown:
            raise ValueError(f"Unknown draft fields: {', '.join(unknown)}")

        # company_ref first so a role chosen in the same edit survives
        if "company_ref" in values:
            self.draft.company_ref = values["company_ref"]
        for name, value in values.items():
            if name != "company_ref":
                setattr(self.draft, name, value)

        self.last_error = None
        return self.draft

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save(
        self,
        users: UserRegistry,
        directory: DirectorySnapshot,
        session: OperatorSession,
    ) -> SaveResult:
        """
        Persists the draft. Only callable from the summary step.

        Args:
            users: Backend user gateway
            directory: Loaded companies and roles for reference resolution
            session: Operator session

        Returns:
            SaveResult with the stored record and any resolution notices

        Raises:
            NavigationError: Outside the summary step or in view mode
            SaveInProgressError: If a save is already outstanding
            ValidationError: If steps 1-2 no longer pass
            InvalidTransitionError: If the edit would move status back to Draft
            UnresolvedIdentityError: If the company cannot be resolved
            PersistenceError: If the backend rejects the write
        """
        if self.read_only:
            raise NavigationError("This wizard is read-only")
        if self.step != LAST_STEP:
            raise NavigationError("Save is only available on the summary step")
        if self.saving:
            raise SaveInProgressError()

        with LogContext(session_id=self.session_id, step=int(self.step), user_id=self.origin_user_id):
            result = validate_step(LAST_STEP, self.draft)
            if not result.valid:
                self.missing = result.missing
                logger.info(f"Save blocked, missing: {', '.join(result.missing)}")
                raise ValidationError(result.missing, step=int(LAST_STEP))
            self.missing = []

            if self.origin_status is not None and not is_valid_status_transition(self.origin_status, self.draft.status):
                raise InvalidTransitionError(self.origin_status.value, self.draft.status.value)

            company_id = resolve_company_id(self.draft.company_ref, directory.companies)
            role = resolve_role_for_payload(
                self.draft.role_ref,
                directory.roles_for_company(company_id),
                roles_loaded=directory.roles_loaded,
            )
            payload = self.draft.to_payload(company_id, role.role_id)

            self.saving = True
            self.last_error = None
            try:
                if self.is_update:
                    user = await users.update_complete(self.origin_user_id, payload, session)
                else:
                    user = await users.create_complete(payload, session)
            except PersistenceError as e:
                self.last_error = e.message
                logger.warning(f"Save failed: {e.message}")
                raise
            finally:
                self.saving = False

            logger.info(f"Wizard saved as user {user.user_id}")
            return SaveResult(user=user, created=not self.is_update, notices=role.notices)

    # ------------------------------------------------------------------
    # Rendering / storage
    # ------------------------------------------------------------------

    def snapshot(self, directory: Optional[DirectorySnapshot] = None) -> Dict[str, Any]:
        """
        State the UI renders: current step, draft, last failure list.

        Company and role names come from directory when given; without it
        they stay pending.
        """
        metadata = get_step_metadata(self.step)
        company, role = resolve_draft_display(self.draft.company_ref, self.draft.role_ref, directory)
        return {
            "session_id": self.session_id,
            "mode": self.mode.value,
            "step": int(self.step),
            "title": metadata.title,
            "progress": get_progress_message(self.step),
            "read_only": self.read_only,
            "origin_user_id": self.origin_user_id,
            "draft": self.draft.to_document(),
            "company_display": {"text": company.text, "state": company.state.value},
            "role_display": {"text": role.text, "state": role.state.value},
            "missing": list(self.missing),
            "format_issues": find_format_issues(self.draft.values()) if self.step == LAST_STEP else [],
            "last_error": self.last_error,
            "saving": self.saving,
        }

    def to_document(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "mode": self.mode.value,
            "step": int(self.step),
            "origin_user_id": self.origin_user_id,
            "origin_status": self.origin_status.value if self.origin_status else None,
            "draft": self.draft.to_document(),
            "missing": list(self.missing),
            "last_error": self.last_error,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WizardController":
        origin_status = doc.get("origin_status")
        wizard = cls(
            mode=WizardMode(doc["mode"]),
            draft=UserDraft.from_document(doc.get("draft") or {}),
            step=doc.get("step", FIRST_STEP),
            origin_user_id=doc.get("origin_user_id"),
            origin_status=AccountStatus(origin_status) if origin_status else None,
            session_id=doc.get("session_id"),
        )
        wizard.missing = list(doc.get("missing") or [])
        wizard.last_error = doc.get("last_error")
        return wizard
