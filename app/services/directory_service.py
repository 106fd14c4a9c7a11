"""
app/services/directory_service.py

Purpose: Company and role reference data

- CompanyDirectory / RoleDirectory gateways for /companies and /roles
- DirectoryLoader enforces load order: roles are fetched only after
  companies have loaded, because roles are filtered by company id
- Each fetch is tagged with an epoch; a response older than the latest
  request for the same resource is discarded
- Listeners are notified whenever a new role snapshot is applied
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.models.directory import Company, Role
from app.models.session import OperatorSession
from app.services.backend_client import BackendClient, BackendError

logger = get_logger(__name__)

RESOURCE_COMPANIES = "companies"
RESOURCE_ROLES = "roles"


class CompanyDirectory:
    """
    Gateway for /companies endpoints.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    async def list(self, session: OperatorSession, active_only: bool = False) -> List[Company]:
        params = {"activeOnly": "true"} if active_only else None
        data = await self._client.request("GET", "/companies", session, params=params)
        return [Company.model_validate(item) for item in data or []]

    async def get_by_id(self, company_id: str, session: OperatorSession) -> Company:
        """
        Fetches a company by canonical id.

        Raises:
            ResourceNotFoundError: If the backend has no such company
        """
        try:
            data = await self._client.request("GET", f"/companies/{quote(company_id, safe='')}", session)
        except BackendError as e:
            if e.is_not_found:
                raise ResourceNotFoundError(f"Company {company_id} not found") from e
            raise
        return Company.model_validate(data)


class RoleDirectory:
    """
    Gateway for /roles endpoints.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    async def list(
        self,
        session: OperatorSession,
        company_id: Optional[str] = None,
        active_only: bool = False,
    ) -> List[Role]:
        params = {}
        if company_id:
            params["companyId"] = company_id
        if active_only:
            params["activeOnly"] = "true"
        data = await self._client.request("GET", "/roles", session, params=params or None)
        return [Role.model_validate(item) for item in data or []]


@dataclass
class DirectorySnapshot:
    """
    Reference data currently available to the wizard and user list.

    None means "not loaded yet", which is different from an empty list.
    """
    companies: Optional[List[Company]] = None
    roles: Optional[List[Role]] = None
    roles_company_id: Optional[str] = None

    @property
    def companies_loaded(self) -> bool:
        return self.companies is not None

    @property
    def roles_loaded(self) -> bool:
        return self.roles is not None

    def roles_for_company(self, company_id: Optional[str]) -> List[Role]:
        if not self.roles or not company_id:
            return []
        return [role for role in self.roles if role.company_id == company_id]


RolesListener = Callable[[List[Role]], None]


class DirectoryLoader:
    """
    Loads companies, then roles, into a DirectorySnapshot.
    """

    def __init__(self, companies: CompanyDirectory, roles: RoleDirectory):
        self._companies = companies
        self._roles = roles
        self.snapshot = DirectorySnapshot()
        self._latest_epoch: Dict[str, int] = {RESOURCE_COMPANIES: 0, RESOURCE_ROLES: 0}
        self._listeners: List[RolesListener] = []

    def subscribe(self, listener: RolesListener) -> None:
        """Registers a callback run after each applied role snapshot."""
        self._listeners.append(listener)

    def _begin(self, resource: str) -> int:
        self._latest_epoch[resource] += 1
        return self._latest_epoch[resource]

    def _is_stale(self, resource: str, epoch: int) -> bool:
        return epoch < self._latest_epoch[resource]

    async def load_companies(self, session: OperatorSession, active_only: bool = True) -> bool:
        """
        Fetches the company list.

        Returns:
            True if the response was applied, False if a newer request superseded it
        """
        epoch = self._begin(RESOURCE_COMPANIES)
        companies = await self._companies.list(session, active_only=active_only)

        if self._is_stale(RESOURCE_COMPANIES, epoch):
            logger.debug(f"Discarding stale company list (epoch {epoch})")
            return False

        self.snapshot.companies = companies
        logger.info(f"Loaded {len(companies)} companies")
        return True

    async def load_roles(
        self,
        session: OperatorSession,
        company_id: Optional[str] = None,
        active_only: bool = False,
    ) -> bool:
        """
        Fetches roles, scoped to company_id when given.

        Companies are loaded first if they are not available yet.

        Returns:
            True if the response was applied, False if a newer request superseded it
        """
        if not self.snapshot.companies_loaded:
            await self.load_companies(session)

        with LogContext(company_id=company_id):
            epoch = self._begin(RESOURCE_ROLES)
            roles = await self._roles.list(session, company_id=company_id, active_only=active_only)

            if self._is_stale(RESOURCE_ROLES, epoch):
                logger.debug(f"Discarding stale role list (epoch {epoch})")
                return False

            self.snapshot.roles = roles
            self.snapshot.roles_company_id = company_id
            logger.info(f"Loaded {len(roles)} roles")

            for listener in self._listeners:
                listener(roles)

            return True

    async def load(self, session: OperatorSession, company_id: Optional[str] = None) -> DirectorySnapshot:
        """
        Loads companies and then roles, in that order.
        """
        await self.load_companies(session)
        await self.load_roles(session, company_id=company_id)
        return self.snapshot
