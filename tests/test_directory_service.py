"""Tests for company/role gateways and the ordered directory loader."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import ResourceNotFoundError
from app.services.directory_service import (
    CompanyDirectory,
    DirectoryLoader,
    DirectorySnapshot,
    RoleDirectory,
)
from conftest import ACME_ID, envelope


COMPANY_ROWS = [
    {"id": ACME_ID, "companyCode": "ACME", "companyName": "Acme", "status": "Active"},
]
ROLE_ROWS = [
    {"roleId": "r-sup", "roleName": "Supervisor", "companyId": ACME_ID, "status": "Active"},
]


class TestGateways:
    @pytest.mark.asyncio
    async def test_company_list_parses_backend_shape(self, backend, client, operator_session):
        backend.on("GET", "/companies", envelope(COMPANY_ROWS))
        companies = await CompanyDirectory(client).list(operator_session, active_only=True)

        assert companies[0].name == "Acme"
        assert backend.requests[0].url.params["activeOnly"] == "true"
        assert backend.requests[0].headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_company_not_found(self, backend, client, operator_session):
        with pytest.raises(ResourceNotFoundError):
            await CompanyDirectory(client).get_by_id("c-missing", operator_session)

    @pytest.mark.asyncio
    async def test_roles_filtered_by_company(self, backend, client, operator_session):
        backend.on("GET", "/roles", envelope(ROLE_ROWS))
        roles = await RoleDirectory(client).list(operator_session, company_id=ACME_ID)

        assert roles[0].company_id == ACME_ID
        assert backend.requests[0].url.params["companyId"] == ACME_ID


def test_snapshot_distinguishes_unloaded_from_empty(roles):
    assert not DirectorySnapshot().roles_loaded
    assert DirectorySnapshot(roles=[]).roles_loaded
    assert [r.id for r in DirectorySnapshot(roles=roles).roles_for_company(ACME_ID)] == ["r-sup", "r-drv"]


class TestDirectoryLoader:
    @pytest.mark.asyncio
    async def test_companies_load_before_roles(self, operator_session, companies, roles):
        calls = []
        company_dir = AsyncMock()
        role_dir = AsyncMock()
        company_dir.list.side_effect = lambda *a, **k: calls.append("companies") or companies
        role_dir.list.side_effect = lambda *a, **k: calls.append("roles") or roles

        loader = DirectoryLoader(company_dir, role_dir)
        await loader.load_roles(operator_session, company_id=ACME_ID)

        assert calls == ["companies", "roles"]
        assert loader.snapshot.companies_loaded

    @pytest.mark.asyncio
    async def test_listener_runs_on_applied_roles(self, operator_session, companies, roles):
        company_dir = AsyncMock()
        role_dir = AsyncMock()
        company_dir.list.return_value = companies
        role_dir.list.return_value = roles

        seen = []
        loader = DirectoryLoader(company_dir, role_dir)
        loader.subscribe(seen.append)
        await loader.load(operator_session, company_id=ACME_ID)

        assert seen == [roles]

    @pytest.mark.asyncio
    async def test_stale_role_response_is_discarded(self, operator_session, companies, roles):
        slow_started = asyncio.Event()
        release_slow = asyncio.Event()
        old_roles = roles[:1]
        new_roles = roles[1:]

        async def list_roles(session, company_id=None, active_only=False):
            if company_id == "c-old":
                slow_started.set()
                await release_slow.wait()
                return old_roles
            return new_roles

        company_dir = AsyncMock()
        company_dir.list.return_value = companies
        role_dir = AsyncMock()
        role_dir.list.side_effect = list_roles

        seen = []
        loader = DirectoryLoader(company_dir, role_dir)
        await loader.load_companies(operator_session)
        loader.subscribe(seen.append)

        slow = asyncio.create_task(loader.load_roles(operator_session, company_id="c-old"))
        await slow_started.wait()
        applied_new = await loader.load_roles(operator_session, company_id="c-new")
        release_slow.set()
        applied_old = await slow

        assert applied_new is True
        assert applied_old is False
        assert loader.snapshot.roles == new_roles
        assert loader.snapshot.roles_company_id == "c-new"
        assert seen == [new_roles]
