"""
app/api/users.py

Purpose: User list and account lifecycle endpoints

- Lists a company's users; role names are filled in once roles load
- Activate / deactivate / reset password / delete
- A temporary password is returned in the activation or reset response
  only, and only once
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import (
    get_activation_manager,
    get_directory_loader,
    get_identity_resolver,
    get_operator_session,
    get_user_registry,
)
from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.models.directory import Role
from app.models.reference import ById
from app.models.session import OperatorSession
from app.models.user import AccountStatus, PersistedUser
from app.schemas.response import notices_from
from app.schemas.users import (
    ActivationRequest,
    CredentialResponse,
    StatusChangeResponse,
    UserListResponse,
    UserRowResponse,
)
from app.services.activation_service import ActivationManager
from app.services.backend_client import BackendError
from app.services.directory_service import DirectoryLoader
from app.services.identity_resolver import (
    PENDING_DISPLAY,
    IdentityResolver,
    UserRow,
    reconcile,
)
from app.services.user_registry import UserRegistry

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


def _pending_row(user: PersistedUser, company_name: str) -> UserRow:
    return UserRow(
        user_id=user.user_id,
        user_name=user.user_name,
        company_id=user.company_id,
        company_name=company_name,
        role_ref=ById(user.user_role_id) if user.user_role_id else None,
        role_display=PENDING_DISPLAY,
        employee_code=user.employee_code,
        email_address=user.email_address,
        mobile_number=user.mobile_number,
        employment_type=user.employment_type,
        status=user.status.value,
    )


@router.get("", response_model=UserListResponse)
async def list_users(
    company_id: Optional[str] = Query(None, description="Defaults to the operator's company"),
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
    loader: DirectoryLoader = Depends(get_directory_loader),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """
    Lists users of a company.

    Rows start with a pending role; one reconcile pass fills every row in
    when the company's roles arrive.
    """
    company_id = company_id or session.company_id
    if not company_id:
        raise ValidationError(["company_id"], message="A company is required to list users")

    with LogContext(company_id=company_id):
        company = await resolver.resolve_company(ById(company_id), session)
        records = await users.list_by_company(company_id, session)

        rows: List[UserRow] = [_pending_row(user, company.display_name) for user in records]

        def on_roles(roles: List[Role]) -> None:
            rows[:] = reconcile(rows, roles)

        loader.subscribe(on_roles)
        try:
            await loader.load(session, company_id=company_id)
        except BackendError as e:
            logger.warning(f"Roles not loaded, rows stay pending: {e.message}")

        logger.info(f"Listed {len(rows)} users")

    return UserListResponse(
        company_id=company.canonical_id,
        company_name=company.display_name,
        users=[UserRowResponse.from_row(row) for row in rows],
        notices=notices_from(company.notices),
    )


@router.post("/{user_id}/activate", response_model=StatusChangeResponse)
async def activate_user(
    user_id: str,
    body: ActivationRequest,
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
    manager: ActivationManager = Depends(get_activation_manager),
):
    """
    Activates a Draft or Inactive user.

    With password login enabled the response carries a temporary password.
    It is not stored anywhere and cannot be fetched again.
    """
    user = await users.get_by_id(user_id, session)
    one_time = await manager.activate(user_id, body.to_settings(), session, current_status=user.status)

    credential = CredentialResponse.from_credential(one_time.take()) if one_time else None
    return StatusChangeResponse(user_id=user_id, status=AccountStatus.ACTIVE.value, credential=credential)


@router.post("/{user_id}/deactivate", response_model=StatusChangeResponse)
async def deactivate_user(
    user_id: str,
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
    manager: ActivationManager = Depends(get_activation_manager),
):
    user = await users.get_by_id(user_id, session)
    await manager.deactivate(user_id, session, current_status=user.status)
    return StatusChangeResponse(user_id=user_id, status=AccountStatus.INACTIVE.value)


@router.post("/{user_id}/reset-password", response_model=CredentialResponse)
async def reset_password(
    user_id: str,
    session: OperatorSession = Depends(get_operator_session),
    manager: ActivationManager = Depends(get_activation_manager),
):
    """
    Issues a new temporary password. Any earlier one stops working.
    """
    one_time = await manager.reset_password(user_id, session)
    return CredentialResponse.from_credential(one_time.take())


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
):
    await users.delete(user_id, session)
