"""
app/api/profile.py

Purpose: Operator's own profile

- Read degrades to what the session knows, with a notice
- Password change and contact edits need the account resolved to its
  canonical id
"""

from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_activation_manager,
    get_identity_resolver,
    get_operator_session,
    get_user_registry,
)
from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.models.reference import ById, ByName, Reference
from app.models.session import OperatorSession
from app.schemas.response import notices_from
from app.schemas.users import (
    CONTACT_FIELDS,
    ChangePasswordRequest,
    ContactUpdateRequest,
    ProfileResponse,
)
from app.services.activation_service import ActivationManager
from app.services.identity_resolver import (
    IdentityResolver,
    ResolvedProfile,
    profile_from_record,
    require_canonical_id,
)
from app.services.user_registry import UserRegistry

logger = get_logger(__name__)
router = APIRouter(prefix="/profile", tags=["Profile"])


def _session_company(session: OperatorSession) -> Optional[Reference]:
    if session.company_id:
        return ById(session.company_id)
    if session.company_name:
        return ByName(session.company_name)
    return None


async def _profile_response(
    profile: ResolvedProfile,
    session: OperatorSession,
    resolver: IdentityResolver,
) -> ProfileResponse:
    company_ref = ById(profile.record.company_id) if profile.record else _session_company(session)
    company = await resolver.resolve_company(company_ref, session)

    return ProfileResponse.from_profile(
        profile,
        company_name=company.display_name,
        company_id=company.canonical_id,
        notices=notices_from(profile.notices + company.notices),
    )


@router.get("", response_model=ProfileResponse)
async def get_profile(
    session: OperatorSession = Depends(get_operator_session),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    profile = await resolver.load_own_profile(session)
    return await _profile_response(profile, session, resolver)


@router.patch("/contact", response_model=ProfileResponse)
async def update_contact(
    body: ContactUpdateRequest,
    session: OperatorSession = Depends(get_operator_session),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    users: UserRegistry = Depends(get_user_registry),
):
    """
    Updates the operator's own e-mail, emergency contact and address.

    Only non-blank fields are sent. Returns 409 when the account only
    resolved to the session projection.
    """
    profile = await resolver.load_own_profile(session)
    user_id = require_canonical_id(profile)

    payload = body.to_payload()
    if not payload:
        raise ValidationError(list(CONTACT_FIELDS), message="No contact details to update")

    with LogContext(user_id=user_id):
        record = await users.update_complete(user_id, payload, session)
        logger.info(f"Contact details updated: {', '.join(sorted(payload))}")

    return await _profile_response(profile_from_record(record), session, resolver)


@router.post("/password")
async def change_password(
    body: ChangePasswordRequest,
    session: OperatorSession = Depends(get_operator_session),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    manager: ActivationManager = Depends(get_activation_manager),
):
    """
    Changes the operator's password.

    Returns 409 when the account only resolved to the session projection.
    """
    profile = await resolver.load_own_profile(session)
    await manager.change_password(
        profile,
        body.current_password,
        body.new_password,
        body.confirm_password,
        session,
    )
    return {"success": True, "message": "Password changed"}
