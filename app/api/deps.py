"""
app/api/deps.py

Purpose: FastAPI dependencies

- Builds the OperatorSession from the Authorization header and the
  identity headers set by the gateway
- Hands out gateways and services so tests can override them
"""

from typing import Optional

from fastapi import Depends, Header

from app.core.exceptions import AuthenticationError
from app.db.mongo import get_wizard_sessions_collection
from app.models.session import OperatorSession
from app.services.activation_service import ActivationManager
from app.services.backend_client import BackendClient, get_backend_client
from app.services.directory_service import CompanyDirectory, DirectoryLoader, RoleDirectory
from app.services.identity_resolver import IdentityResolver
from app.services.session_service import WizardSessionStore
from app.services.user_registry import UserRegistry
from utils.constants import (
    HEADER_COMPANY_ID,
    HEADER_COMPANY_NAME,
    HEADER_USER_EMAIL,
    HEADER_USER_ID,
    HEADER_USER_NAME,
    HEADER_USER_ROLES,
)

_activation_manager: Optional[ActivationManager] = None


def get_operator_session(
    authorization: Optional[str] = Header(None),
    header_user_id: Optional[str] = Header(None, alias=HEADER_USER_ID),
    header_user_name: Optional[str] = Header(None, alias=HEADER_USER_NAME),
    header_email: Optional[str] = Header(None, alias=HEADER_USER_EMAIL),
    header_roles: Optional[str] = Header(None, alias=HEADER_USER_ROLES),
    header_company_id: Optional[str] = Header(None, alias=HEADER_COMPANY_ID),
    header_company_name: Optional[str] = Header(None, alias=HEADER_COMPANY_NAME),
) -> OperatorSession:
    """
    Parameter names carry a header_ prefix so they never clash with the
    path and query parameters of the routes that depend on this.

    Raises:
        AuthenticationError: If no bearer token was sent
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing bearer token")

    token = authorization[len("bearer "):].strip()
    if not token:
        raise AuthenticationError("Missing bearer token")

    return OperatorSession(
        token=token,
        user_id=header_user_id or None,
        user_name=header_user_name or None,
        email=header_email or None,
        roles=[r.strip() for r in (header_roles or "").split(",") if r.strip()],
        company_id=header_company_id or None,
        company_name=header_company_name or None,
    )


def get_client() -> BackendClient:
    return get_backend_client()


def get_user_registry(client: BackendClient = Depends(get_client)) -> UserRegistry:
    return UserRegistry(client)


def get_company_directory(client: BackendClient = Depends(get_client)) -> CompanyDirectory:
    return CompanyDirectory(client)


def get_role_directory(client: BackendClient = Depends(get_client)) -> RoleDirectory:
    return RoleDirectory(client)


def get_directory_loader(
    companies: CompanyDirectory = Depends(get_company_directory),
    roles: RoleDirectory = Depends(get_role_directory),
) -> DirectoryLoader:
    # One loader per request; its snapshot and epochs are request-scoped
    return DirectoryLoader(companies, roles)


def get_identity_resolver(
    companies: CompanyDirectory = Depends(get_company_directory),
    users: UserRegistry = Depends(get_user_registry),
) -> IdentityResolver:
    return IdentityResolver(companies, users)


def get_activation_manager() -> ActivationManager:
    """
    Process-wide manager: the credential ledger has to outlive a request.
    """
    global _activation_manager
    if _activation_manager is None:
        _activation_manager = ActivationManager(UserRegistry(get_backend_client()))
    return _activation_manager


def get_session_store() -> WizardSessionStore:
    return WizardSessionStore(get_wizard_sessions_collection())
