"""
app/services/identity_resolver.py

Purpose: Translate between canonical ids and display names

- Role display for list rows, with a pending state until roles load
- reconcile(): one pass over all displayed rows once roles are available
- Role and company id resolution for the save payload
- Read paths (company, own profile) degrade to a session projection
  with a non-blocking notice
- Write paths require a resolved canonical id and fail explicitly
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import (
    ResolutionWarning,
    ResourceNotFoundError,
    UnresolvedIdentityError,
)
from app.core.logging import get_logger
from app.models.directory import Company, Role
from app.models.reference import ById, ByName, Reference
from app.models.session import OperatorSession
from app.models.user import PersistedUser
from app.services.backend_client import BackendError
from app.services.directory_service import CompanyDirectory, DirectorySnapshot
from app.services.user_registry import UserRegistry
from utils.constants import (
    FALLBACK_DISPLAY,
    NOTICE_COMPANY_FROM_SESSION,
    NOTICE_PROFILE_FROM_SESSION,
    NOTICE_ROLE_OMITTED,
    PENDING_PLACEHOLDER,
)

logger = get_logger(__name__)


class DisplayState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class DisplayValue:
    state: DisplayState
    text: str


PENDING_DISPLAY = DisplayValue(DisplayState.PENDING, PENDING_PLACEHOLDER)
UNKNOWN_DISPLAY = DisplayValue(DisplayState.FALLBACK, FALLBACK_DISPLAY)


@dataclass(frozen=True)
class UserRow:
    """
    One row of the user list as shown to the operator.
    """
    user_id: str
    user_name: str
    company_id: str
    company_name: str
    role_ref: Optional[Reference]
    role_display: DisplayValue
    employee_code: Optional[str] = None
    email_address: Optional[str] = None
    mobile_number: Optional[str] = None
    employment_type: Optional[str] = None
    status: str = "Draft"


def resolve_role_display(role_ref: Optional[Reference], loaded_roles: Optional[Sequence[Role]]) -> DisplayValue:
    """
    Works out what to show for a stored role reference.

    Args:
        role_ref: Stored reference (id from the backend, or a name)
        loaded_roles: Current role snapshot; None or empty while loading

    Returns:
        PENDING until roles are available (callers re-invoke via reconcile),
        the role name when known, "-" otherwise
    """
    if not loaded_roles:
        return PENDING_DISPLAY

    if role_ref is None:
        return UNKNOWN_DISPLAY

    if isinstance(role_ref, ByName):
        return DisplayValue(DisplayState.RESOLVED, role_ref.name)

    for role in loaded_roles:
        if role.id == role_ref.id:
            return DisplayValue(DisplayState.RESOLVED, role.name)

    return UNKNOWN_DISPLAY


def reconcile(rows: Iterable[UserRow], roles: Optional[Sequence[Role]]) -> List[UserRow]:
    """
    Re-resolves the role display of every row in a single pass.

    Pure: returns new rows and leaves the input untouched. Run whenever the
    role snapshot changes.
    """
    return [
        replace(row, role_display=resolve_role_display(row.role_ref, roles))
        for row in rows
    ]


def resolve_role_id(role_ref: Optional[Reference], roles_scoped_to_company: Sequence[Role]) -> Optional[str]:
    """
    Resolves a role reference to a canonical id.

    A ById reference is returned unchanged, so resolving twice gives the
    same id. A ByName reference must match exactly one role name among the
    given (company-scoped) roles.

    Returns:
        Canonical id, or None when the role cannot be resolved
    """
    if role_ref is None:
        return None

    if isinstance(role_ref, ById):
        return role_ref.id

    matches = [role for role in roles_scoped_to_company if role.name == role_ref.name]
    if len(matches) == 1:
        return matches[0].id

    if len(matches) > 1:
        logger.warning(f"Role name '{role_ref.name}' is ambiguous within the company")
    else:
        logger.warning(f"Role '{role_ref.name}' not found for the selected company")
    return None


def resolve_company_id(company_ref: Optional[Reference], companies: Optional[Sequence[Company]]) -> str:
    """
    Resolves the company reference for a write.

    Raises:
        UnresolvedIdentityError: If no single company matches
    """
    if company_ref is None:
        raise UnresolvedIdentityError("A company is required to save a user")

    if isinstance(company_ref, ById):
        return company_ref.id

    matches = [c for c in companies or [] if c.name == company_ref.name]
    if len(matches) != 1:
        raise UnresolvedIdentityError(
            f"Company '{company_ref.name}' could not be resolved",
            details={"company": company_ref.name, "matches": len(matches)}
        )
    return matches[0].id


def scoped_roles(company_ref: Optional[Reference], snapshot: DirectorySnapshot) -> List[Role]:
    """
    Roles belonging to the company currently named by company_ref.
    """
    if company_ref is None or not snapshot.roles_loaded:
        return []

    if isinstance(company_ref, ById):
        company_id = company_ref.id
    else:
        matches = [c for c in snapshot.companies or [] if c.name == company_ref.name]
        if len(matches) != 1:
            return []
        company_id = matches[0].id

    return snapshot.roles_for_company(company_id)


def resolve_company_display(company_ref: Optional[Reference], companies: Optional[Sequence[Company]]) -> DisplayValue:
    """
    Company name for a stored reference; pending until companies load.
    """
    if company_ref is None:
        return UNKNOWN_DISPLAY
    if companies is None:
        return PENDING_DISPLAY
    if isinstance(company_ref, ByName):
        return DisplayValue(DisplayState.RESOLVED, company_ref.name)

    for company in companies:
        if company.id == company_ref.id:
            return DisplayValue(DisplayState.RESOLVED, company.name)
    return UNKNOWN_DISPLAY


def resolve_draft_display(
    company_ref: Optional[Reference],
    role_ref: Optional[Reference],
    snapshot: Optional[DirectorySnapshot],
) -> Tuple[DisplayValue, DisplayValue]:
    """
    Company and role names for the wizard header.

    The role is looked up only among the roles of the draft's company.
    """
    snapshot = snapshot or DirectorySnapshot()
    company = resolve_company_display(company_ref, snapshot.companies)

    if not snapshot.roles_loaded:
        return company, PENDING_DISPLAY
    if role_ref is None:
        return company, UNKNOWN_DISPLAY

    roles = scoped_roles(company_ref, snapshot)
    if not roles:
        # nothing to match against; a typed name still shows as typed
        if isinstance(role_ref, ByName):
            return company, DisplayValue(DisplayState.RESOLVED, role_ref.name)
        return company, UNKNOWN_DISPLAY
    return company, resolve_role_display(role_ref, roles)


@dataclass
class RoleResolution:
    role_id: Optional[str]
    notices: List[ResolutionWarning] = field(default_factory=list)


def resolve_role_for_payload(
    role_ref: Optional[Reference],
    roles_scoped_to_company: Sequence[Role],
    roles_loaded: bool = True,
) -> RoleResolution:
    """
    Decides the role id written with a create/update.

    Unresolvable roles are left out of the payload instead of failing the
    save; role assignment is optional for the backend. A stored id that no
    longer matches a loaded role (deleted or moved) is left out too.
    """
    if role_ref is None:
        return RoleResolution(role_id=None)

    role_id = resolve_role_id(role_ref, roles_scoped_to_company)

    if role_id is not None and isinstance(role_ref, ById) and roles_loaded:
        if all(role.id != role_id for role in roles_scoped_to_company):
            logger.warning(f"Stored role {role_id} is not among the company's roles; omitting")
            role_id = None

    if role_id is None:
        return RoleResolution(
            role_id=None,
            notices=[ResolutionWarning(
                message=NOTICE_ROLE_OMITTED.format(role=str(role_ref)),
                entity="role",
                reference=str(role_ref),
            )],
        )

    return RoleResolution(role_id=role_id)


@dataclass
class ResolvedCompany:
    """
    Outcome of a company read. canonical_id is None for a session projection.
    """
    display_name: str
    canonical_id: Optional[str]
    company: Optional[Company] = None
    notices: List[ResolutionWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.canonical_id is None


@dataclass
class ResolvedProfile:
    """
    Outcome of loading the operator's own user record.
    """
    user_name: str
    canonical_id: Optional[str]
    email_address: Optional[str] = None
    mobile_number: str = FALLBACK_DISPLAY
    employee_code: Optional[str] = None
    role_display: Optional[str] = None
    status: str = "Active"
    record: Optional[PersistedUser] = None
    notices: List[ResolutionWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.canonical_id is None


def profile_from_record(record: PersistedUser) -> ResolvedProfile:
    return ResolvedProfile(
        user_name=record.user_name,
        canonical_id=record.user_id,
        email_address=record.email_address,
        mobile_number=record.mobile_number or FALLBACK_DISPLAY,
        employee_code=record.employee_code,
        role_display=record.user_role_id,
        status=record.status.value,
        record=record,
    )


def require_canonical_id(profile: ResolvedProfile) -> str:
    """
    Gate for write paths that act on the operator's own account.

    Raises:
        UnresolvedIdentityError: If the profile came from the session projection
    """
    if profile.canonical_id is None:
        raise UnresolvedIdentityError(
            "Your account could not be identified. Please sign in again before changing it."
        )
    return profile.canonical_id


class IdentityResolver:
    """
    Read-path lookups that talk to the backend.

    The operator session is always passed in by the caller.
    """

    def __init__(self, companies: CompanyDirectory, users: UserRegistry):
        self._companies = companies
        self._users = users

    async def resolve_company(self, company_ref: Optional[Reference], session: OperatorSession) -> ResolvedCompany:
        """
        Loads a company for display.

        Tries the id, then a unique display-name match, then falls back to
        what the session knows, with a notice. Never raises for lookup
        failures.
        """
        if isinstance(company_ref, ById):
            try:
                company = await self._companies.get_by_id(company_ref.id, session)
                return ResolvedCompany(display_name=company.name, canonical_id=company.id, company=company)
            except (ResourceNotFoundError, BackendError) as e:
                logger.info(f"Company lookup by id failed, trying by name: {e.message}")

        name = company_ref.name if isinstance(company_ref, ByName) else session.company_name
        if name:
            try:
                companies = await self._companies.list(session)
                matches = [c for c in companies if c.name == name]
                if len(matches) == 1:
                    company = matches[0]
                    return ResolvedCompany(display_name=company.name, canonical_id=company.id, company=company)
                logger.info(f"Company name '{name}' matched {len(matches)} records")
            except BackendError as e:
                logger.info(f"Company lookup by name failed: {e.message}")

        logger.warning("Company resolution degraded to session projection")
        return ResolvedCompany(
            display_name=session.company_name or FALLBACK_DISPLAY,
            canonical_id=None,
            notices=[ResolutionWarning(
                message=NOTICE_COMPANY_FROM_SESSION,
                entity="company",
                reference=str(company_ref) if company_ref else None,
            )],
        )

    async def load_own_profile(self, session: OperatorSession) -> ResolvedProfile:
        """
        Loads the operator's own user record.

        Tries the session's user id, then its user name, then builds a
        minimal profile from the session with a notice.
        """
        record: Optional[PersistedUser] = None

        if session.user_id:
            try:
                record = await self._users.get_by_id(session.user_id, session)
            except (ResourceNotFoundError, BackendError) as e:
                logger.info(f"User lookup by id failed, trying by username: {e.message}")

        if record is None and session.user_name:
            try:
                record = await self._users.get_by_username(session.user_name, session)
            except (ResourceNotFoundError, BackendError) as e:
                logger.info(f"User lookup by username failed: {e.message}")

        if record is not None:
            return profile_from_record(record)

        logger.warning("Profile resolution degraded to session projection")
        return ResolvedProfile(
            user_name=session.user_name or FALLBACK_DISPLAY,
            canonical_id=None,
            email_address=session.email,
            role_display=", ".join(session.roles) or None,
            notices=[ResolutionWarning(message=NOTICE_PROFILE_FROM_SESSION, entity="user")],
        )
