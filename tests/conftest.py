"""Shared fixtures: operator session, backend stand-in, in-memory session collection."""

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from app.models.directory import Company, Role
from app.models.reference import ById
from app.models.session import OperatorSession
from app.models.user import UserDraft
from app.services.backend_client import BackendClient


ACME_ID = "c-acme"
GLOBEX_ID = "c-globex"


@pytest.fixture
def operator_session():
    return OperatorSession(
        token="test-token",
        user_id="u-operator",
        user_name="operator",
        email="operator@acme.test",
        roles=["Admin"],
        company_id=ACME_ID,
        company_name="Acme",
    )


@pytest.fixture
def companies():
    return [
        Company(id=ACME_ID, code="ACME", name="Acme"),
        Company(id=GLOBEX_ID, code="GLBX", name="Globex"),
    ]


@pytest.fixture
def roles():
    return [
        Role(id="r-sup", name="Supervisor", company_id=ACME_ID),
        Role(id="r-drv", name="Driver", company_id=ACME_ID),
        Role(id="r-glb-sup", name="Supervisor", company_id=GLOBEX_ID),
    ]


@pytest.fixture
def complete_draft():
    """Draft that passes steps 1 and 2."""
    return UserDraft(
        company_ref=ById(ACME_ID),
        user_name="asha.k",
        mobile_number="9876543210",
        employee_code="EMP-001",
        role_ref=ById("r-sup"),
        employment_type="Permanent",
        designation="Supervisor",
    )


def user_json(user_id: str = "u-1", **overrides) -> Dict[str, Any]:
    """Backend UserResponse body."""
    data = {
        "userId": user_id,
        "companyId": ACME_ID,
        "userName": "asha.k",
        "mobileNumber": "9876543210",
        "employeeCode": "EMP-001",
        "userRoleId": "r-sup",
        "status": "Draft",
        "passwordEnabled": False,
        "otpEnabled": False,
        "webLogin": False,
        "mobileAppAccess": False,
        "employmentType": "Permanent",
        "designation": "Supervisor",
    }
    data.update(overrides)
    return data


def envelope(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"success": True, "data": data})


Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """
    Route table for httpx.MockTransport. Records every request it serves.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, handler):
        if not callable(handler):
            response = handler
            handler = lambda request: response
        self.routes[(method, path)] = handler
        return self

    def json_body(self, index: int = -1) -> Optional[Dict[str, Any]]:
        content = self.requests[index].content
        return json.loads(content) if content else None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        return handler(request)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    return BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(backend))


class FakeCollection:
    """
    Enough of a Motor collection for the wizard session store.
    Supports equality filters, {"$ne": v}, {"$lt": v} and a top-level $or.
    """

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []

    @staticmethod
    def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, expected in query.items():
            if key == "$or":
                if not any(FakeCollection._matches(doc, branch) for branch in expected):
                    return False
            elif isinstance(expected, dict) and "$ne" in expected:
                if doc.get(key) == expected["$ne"]:
                    return False
            elif isinstance(expected, dict) and "$lt" in expected:
                value = doc.get(key)
                if value is None or not value < expected["$lt"]:
                    return False
            elif doc.get(key) != expected:
                return False
        return True

    def _find(self, query):
        return next((doc for doc in self.docs if self._matches(doc, query)), None)

    async def insert_one(self, doc):
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=len(self.docs))

    async def find_one(self, query):
        doc = self._find(query)
        return dict(doc) if doc is not None else None

    async def update_one(self, query, update):
        doc = self._find(query)
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        doc.update(update.get("$set", {}))
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def find_one_and_update(self, query, update):
        doc = self._find(query)
        if doc is None:
            return None
        before = dict(doc)
        doc.update(update.get("$set", {}))
        return before

    async def delete_one(self, query):
        doc = self._find(query)
        if doc is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return SimpleNamespace(deleted_count=1)


@pytest.fixture
def collection():
    return FakeCollection()
