"""
app/api/wizard.py

Purpose: Onboarding wizard endpoints

- Opens a wizard session (create, edit or view an existing user)
- Draft edits, step navigation and final save
- Company and role choices for step 1, roles scoped to the draft's company
- Wizard state lives in MongoDB between requests
- A failed save keeps the session on the summary step with the draft intact
"""

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_directory_loader,
    get_operator_session,
    get_session_store,
    get_user_registry,
)
from app.core.exceptions import ConsoleError, UnresolvedIdentityError, ValidationError
from app.core.logging import get_logger, LogContext
from app.flow.wizard import WizardController, WizardMode
from app.models.directory import RecordStatus
from app.models.session import OperatorSession
from app.schemas.response import notices_from
from app.schemas.wizard import (
    DraftUpdate,
    GoToStepRequest,
    OptionOut,
    WizardOptionsResponse,
    WizardSaveResponse,
    WizardSnapshotResponse,
    WizardStartRequest,
)
from app.services.backend_client import BackendError
from app.services.directory_service import DirectoryLoader
from app.services.identity_resolver import resolve_company_id, scoped_roles
from app.services.session_service import WizardSessionStore
from app.services.user_registry import UserRegistry

logger = get_logger(__name__)
router = APIRouter(prefix="/wizard", tags=["Wizard"])


def _snapshot(wizard: WizardController) -> WizardSnapshotResponse:
    return WizardSnapshotResponse(**wizard.snapshot())


@router.post("", response_model=WizardSnapshotResponse, status_code=201)
async def start_wizard(
    body: WizardStartRequest,
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
    store: WizardSessionStore = Depends(get_session_store),
):
    """
    Opens a wizard session.

    Create mode starts from an empty draft. Edit and view mode load the
    user from the backend first.
    """
    if body.mode == WizardMode.CREATE:
        wizard = WizardController()
    else:
        if not body.user_id:
            raise ValidationError(["user_id"], message=f"{body.mode.value} mode needs a user_id")
        user = await users.get_by_id(body.user_id, session)
        wizard = WizardController.for_existing(user, mode=body.mode)

    await store.create(wizard, operator_id=session.user_id)
    return _snapshot(wizard)


@router.get("/{session_id}", response_model=WizardSnapshotResponse)
async def get_wizard(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    wizard = await store.load(session_id)
    return _snapshot(wizard)


@router.patch("/{session_id}/draft", response_model=WizardSnapshotResponse)
async def update_draft(
    session_id: str,
    body: DraftUpdate,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    """
    Applies field edits. Changing the company clears the selected role.
    """
    wizard = await store.load(session_id)
    wizard.update_fields(body.to_values())
    await store.save(wizard)
    return _snapshot(wizard)


@router.post("/{session_id}/next", response_model=WizardSnapshotResponse)
async def next_step(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    wizard = await store.load(session_id)
    try:
        wizard.next()
    except ConsoleError:
        # keep the missing-field list for the next render
        await store.save(wizard)
        raise
    await store.save(wizard)
    return _snapshot(wizard)


@router.post("/{session_id}/back", response_model=WizardSnapshotResponse)
async def previous_step(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    wizard = await store.load(session_id)
    wizard.back()
    await store.save(wizard)
    return _snapshot(wizard)


@router.post("/{session_id}/goto", response_model=WizardSnapshotResponse)
async def go_to_step(
    session_id: str,
    body: GoToStepRequest,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    wizard = await store.load(session_id)
    wizard.go_to_step(body.step)
    await store.save(wizard)
    return _snapshot(wizard)


async def _load_directory(wizard: WizardController, loader: DirectoryLoader, session: OperatorSession):
    """
    Companies, then the roles of the draft's company.

    A failed role fetch leaves roles unloaded; the save then keeps a stored
    role id as is and drops an unresolvable role name.
    """
    await loader.load_companies(session, active_only=False)

    try:
        company_id = resolve_company_id(wizard.draft.company_ref, loader.snapshot.companies)
    except UnresolvedIdentityError:
        return loader.snapshot

    try:
        await loader.load_roles(session, company_id=company_id)
    except BackendError as e:
        logger.warning(f"Roles unavailable: {e.message}")
    return loader.snapshot


@router.get("/{session_id}/options", response_model=WizardOptionsResponse)
async def get_options(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    loader: DirectoryLoader = Depends(get_directory_loader),
    store: WizardSessionStore = Depends(get_session_store),
):
    """
    Company and role choices for step 1.

    Companies load first; roles are fetched only for the draft's company.
    Inactive records are left out of the pickers but still resolve the
    names of a stored user's company and role.
    """
    wizard = await store.load(session_id)
    directory = await _load_directory(wizard, loader, session)

    roles = scoped_roles(wizard.draft.company_ref, directory)
    snapshot = wizard.snapshot(directory)
    return WizardOptionsResponse(
        companies=[
            OptionOut(id=c.id, name=c.name)
            for c in directory.companies or []
            if c.status == RecordStatus.ACTIVE
        ],
        roles=[OptionOut(id=r.id, name=r.name) for r in roles if r.status == RecordStatus.ACTIVE],
        roles_loaded=directory.roles_loaded,
        company_display=snapshot["company_display"],
        role_display=snapshot["role_display"],
    )


@router.post("/{session_id}/save", response_model=WizardSaveResponse)
async def save_wizard(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    users: UserRegistry = Depends(get_user_registry),
    loader: DirectoryLoader = Depends(get_directory_loader),
    store: WizardSessionStore = Depends(get_session_store),
):
    """
    Creates or updates the user from the draft.

    Only one save per session can be in flight; a second request gets 409.
    On success the wizard session is closed.
    """
    wizard = await store.load(session_id)

    with LogContext(session_id=session_id):
        await store.begin_save(session_id)
        try:
            directory = await _load_directory(wizard, loader, session)
            result = await wizard.save(users, directory, session)
        except ConsoleError:
            await store.save(wizard)
            raise
        finally:
            await store.end_save(session_id)

        await store.delete(session_id)

    return WizardSaveResponse(
        created=result.created,
        user_id=result.user.user_id,
        user_name=result.user.user_name,
        status=result.user.status.value,
        notices=notices_from(result.notices),
    )


@router.delete("/{session_id}", status_code=204)
async def cancel_wizard(
    session_id: str,
    session: OperatorSession = Depends(get_operator_session),
    store: WizardSessionStore = Depends(get_session_store),
):
    """
    Discards the draft. Nothing is written to the backend.
    """
    await store.delete(session_id)
