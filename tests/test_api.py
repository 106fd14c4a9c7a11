"""End-to-end API tests: FastAPI app, mocked backend, in-memory session collection."""

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.main import app
from app.services.activation_service import ActivationManager
from app.services.session_service import WizardSessionStore
from app.services.user_registry import UserRegistry
from utils.constants import NOTICE_CREDENTIAL_ONCE, NOTICE_PROFILE_FROM_SESSION
from conftest import ACME_ID, envelope, user_json


AUTH = {
    "Authorization": "Bearer test-token",
    "X-User-Id": "u-operator",
    "X-User-Name": "operator",
    "X-Company-Id": ACME_ID,
    "X-Company-Name": "Acme",
}

COMPANIES = [
    {"id": ACME_ID, "companyCode": "ACME", "companyName": "Acme"},
    {"id": "c-globex", "companyCode": "GLBX", "companyName": "Globex"},
]
ROLES = [
    {"roleId": "r-sup", "roleName": "Supervisor", "companyId": ACME_ID},
    {"roleId": "r-drv", "roleName": "Driver", "companyId": ACME_ID},
]


@pytest.fixture
def api(backend, client, collection):
    manager = ActivationManager(UserRegistry(client))
    app.dependency_overrides[deps.get_client] = lambda: client
    app.dependency_overrides[deps.get_session_store] = lambda: WizardSessionStore(collection)
    app.dependency_overrides[deps.get_activation_manager] = lambda: manager

    backend.on("GET", "/companies", envelope(COMPANIES))
    backend.on("GET", f"/companies/{ACME_ID}", envelope(COMPANIES[0]))
    backend.on("GET", "/roles", envelope(ROLES))

    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(api):
    response = api.post("/api/v1/wizard", json={"mode": "create"}, headers=AUTH)
    assert response.status_code == 201
    return response.json()["session_id"]


def _fill_and_reach_summary(api, session_id, role=None):
    role = role or {"kind": "name", "value": "Driver"}
    api.patch(f"/api/v1/wizard/{session_id}/draft", headers=AUTH, json={
        "company_ref": {"kind": "id", "value": ACME_ID},
        "role_ref": role,
        "user_name": "ravi.m",
        "mobile_number": "9123456780",
        "employee_code": "EMP-042",
        "employment_type": "Contract",
        "designation": "Driver",
        "contractor_name": "FleetCo",
    })
    for _ in range(5):
        response = api.post(f"/api/v1/wizard/{session_id}/next", headers=AUTH)
        assert response.status_code == 200, response.json()
    return response.json()


# ---------------------------------------------------------------------------
# Session / auth
# ---------------------------------------------------------------------------

def test_missing_bearer_token(api):
    response = api.post("/api/v1/wizard", json={})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"


def test_unknown_wizard_session(api):
    response = api.get("/api/v1/wizard/does-not-exist", headers=AUTH)
    assert response.status_code == 404


def test_path_and_query_params_are_not_taken_from_session_headers(api, backend):
    # X-User-Id / X-Company-Id name the operator, never the target
    backend.on("GET", "/users/u-1", envelope(user_json("u-1", status="Active")))
    backend.on("POST", "/users/u-1/deactivate", envelope(user_json("u-1", status="Inactive")))
    backend.on("GET", "/users/company/c-globex", envelope([]))
    backend.on("GET", "/companies/c-globex", envelope(COMPANIES[1]))

    response = api.post("/api/v1/users/u-1/deactivate", headers=AUTH)
    assert response.status_code == 200
    assert response.json()["user_id"] == "u-1"
    assert response.json()["status"] == "Inactive"

    listed = api.get("/api/v1/users", params={"company_id": "c-globex"}, headers=AUTH).json()
    assert listed["company_name"] == "Globex"
    assert "/users/company/c-globex" in [r.url.path for r in backend.requests]


def test_every_console_route_is_registered():
    paths = {route.path for route in app.routes}
    assert {
        "/api/v1/users/{user_id}/activate",
        "/api/v1/users/{user_id}/deactivate",
        "/api/v1/users/{user_id}/reset-password",
        "/api/v1/users/{user_id}",
        "/api/v1/wizard/{session_id}/options",
        "/api/v1/profile/contact",
    } <= paths


# ---------------------------------------------------------------------------
# Wizard
# ---------------------------------------------------------------------------

class TestWizardApi:
    def test_next_reports_missing_fields(self, api):
        session_id = _start(api)

        response = api.post(f"/api/v1/wizard/{session_id}/next", headers=AUTH)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["missing"][0] == "Company"

        snapshot = api.get(f"/api/v1/wizard/{session_id}", headers=AUTH).json()
        assert snapshot["step"] == 1
        assert "User Role" in snapshot["missing"]

    def test_company_change_clears_role(self, api):
        session_id = _start(api)
        api.patch(f"/api/v1/wizard/{session_id}/draft", headers=AUTH, json={
            "company_ref": {"kind": "id", "value": ACME_ID},
            "role_ref": {"kind": "id", "value": "r-sup"},
        })

        snapshot = api.patch(f"/api/v1/wizard/{session_id}/draft", headers=AUTH, json={
            "company_ref": {"kind": "name", "value": "Globex"},
        }).json()

        assert snapshot["draft"]["company_ref"] == {"kind": "name", "value": "Globex"}
        assert snapshot["draft"]["role_ref"] is None

    def test_blank_reference_rejected(self, api):
        session_id = _start(api)
        response = api.patch(f"/api/v1/wizard/{session_id}/draft", headers=AUTH, json={
            "role_ref": {"kind": "id", "value": "  "},
        })
        assert response.status_code == 422
        assert response.json()["code"] == "REQUEST_VALIDATION_ERROR"

    def test_full_create_flow(self, api, backend):
        backend.on("POST", "/users/complete", envelope(user_json("u-new", userName="ravi.m"), status_code=201))
        session_id = _start(api)

        summary = _fill_and_reach_summary(api, session_id)
        assert summary["step"] == 6
        assert summary["title"] == "Review & Confirm"

        response = api.post(f"/api/v1/wizard/{session_id}/save", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is True
        assert body["user_id"] == "u-new"
        assert body["notices"] == []

        payload = backend.json_body()
        assert payload["companyId"] == ACME_ID
        assert payload["userRoleId"] == "r-drv"
        assert payload["contractorName"] == "FleetCo"

        # session closed after a successful save
        assert api.get(f"/api/v1/wizard/{session_id}", headers=AUTH).status_code == 404

    def test_unknown_role_name_saved_without_role(self, api, backend):
        backend.on("POST", "/users/complete", envelope(user_json("u-new", userRoleId=None)))
        session_id = _start(api)
        _fill_and_reach_summary(api, session_id, role={"kind": "name", "value": "Auditor"})

        body = api.post(f"/api/v1/wizard/{session_id}/save", headers=AUTH).json()

        assert "userRoleId" not in backend.json_body()
        assert body["notices"][0]["entity"] == "role"

    def test_failed_save_keeps_summary_and_draft(self, api, backend):
        backend.on("POST", "/users/complete",
                   httpx.Response(409, json={"message": "Employee code EMP-042 already exists"}))
        session_id = _start(api)
        _fill_and_reach_summary(api, session_id)

        response = api.post(f"/api/v1/wizard/{session_id}/save", headers=AUTH)

        assert response.status_code == 409
        assert response.json()["error"] == "Employee code EMP-042 already exists"

        snapshot = api.get(f"/api/v1/wizard/{session_id}", headers=AUTH).json()
        assert snapshot["step"] == 6
        assert snapshot["draft"]["employee_code"] == "EMP-042"
        assert snapshot["last_error"] == "Employee code EMP-042 already exists"
        assert snapshot["saving"] is False

    def test_save_rejected_while_claimed(self, api, collection):
        session_id = _start(api)
        _fill_and_reach_summary(api, session_id)
        collection.docs[0]["saving"] = True

        response = api.post(f"/api/v1/wizard/{session_id}/save", headers=AUTH)

        assert response.status_code == 409
        assert response.json()["code"] == "SAVE_IN_PROGRESS"

    def test_view_mode(self, api, backend):
        backend.on("GET", "/users/u-1", envelope(user_json("u-1", status="Active")))

        response = api.post("/api/v1/wizard", json={"mode": "view", "user_id": "u-1"}, headers=AUTH)
        session_id = response.json()["session_id"]
        assert response.json()["read_only"] is True

        jumped = api.post(f"/api/v1/wizard/{session_id}/goto", json={"step": 6}, headers=AUTH)
        assert jumped.json()["step"] == 6

        edit = api.patch(f"/api/v1/wizard/{session_id}/draft", json={"user_name": "x"}, headers=AUTH)
        assert edit.status_code == 409

    def test_options_resolve_edit_wizard_names(self, api, backend):
        backend.on("GET", "/users/u-1", envelope(user_json("u-1", userRoleId="r-sup", status="Active")))
        started = api.post("/api/v1/wizard", json={"mode": "edit", "user_id": "u-1"}, headers=AUTH).json()

        assert started["role_display"] == {"text": "Loading...", "state": "pending"}

        options = api.get(f"/api/v1/wizard/{started['session_id']}/options", headers=AUTH).json()

        assert [c["name"] for c in options["companies"]] == ["Acme", "Globex"]
        assert [r["name"] for r in options["roles"]] == ["Supervisor", "Driver"]
        assert options["roles_loaded"] is True
        assert options["company_display"] == {"text": "Acme", "state": "resolved"}
        assert options["role_display"] == {"text": "Supervisor", "state": "resolved"}

        # companies are fetched before roles
        paths = [r.url.path for r in backend.requests]
        assert paths.index("/companies") < paths.index("/roles")

    def test_options_without_company_leave_roles_pending(self, api, backend):
        session_id = _start(api)

        options = api.get(f"/api/v1/wizard/{session_id}/options", headers=AUTH).json()

        assert len(options["companies"]) == 2
        assert options["roles"] == []
        assert options["roles_loaded"] is False
        assert options["role_display"]["state"] == "pending"
        assert "/roles" not in [r.url.path for r in backend.requests]

    def test_options_when_role_fetch_fails(self, api, backend):
        backend.on("GET", "/roles", httpx.Response(500, json={"message": "db down"}))
        session_id = _start(api)
        api.patch(f"/api/v1/wizard/{session_id}/draft", headers=AUTH, json={
            "company_ref": {"kind": "id", "value": ACME_ID},
        })

        response = api.get(f"/api/v1/wizard/{session_id}/options", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["roles_loaded"] is False
        assert response.json()["company_display"]["text"] == "Acme"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class TestUsersApi:
    def test_list_resolves_role_names(self, api, backend):
        backend.on("GET", f"/users/company/{ACME_ID}", envelope([
            user_json("u-1", userRoleId="r-sup"),
            user_json("u-2", userRoleId="r-gone"),
        ]))

        body = api.get("/api/v1/users", headers=AUTH).json()

        assert body["company_name"] == "Acme"
        assert [u["role"] for u in body["users"]] == ["Supervisor", "-"]
        assert [u["role_state"] for u in body["users"]] == ["resolved", "fallback"]

    def test_activate_shows_credential_once(self, api, backend):
        backend.on("GET", "/users/u-1", envelope(user_json("u-1")))
        backend.on("POST", "/users/u-1/activate-with-password", envelope({
            "userId": "u-1",
            "userName": "asha.k",
            "temporaryPassword": "Tmp#9931",
            "temporaryPasswordExpiry": "2030-01-01T00:00:00Z",
        }))

        response = api.post("/api/v1/users/u-1/activate", headers=AUTH, json={"password_enabled": True})

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "Active"
        assert body["credential"]["temporary_password"] == "Tmp#9931"
        assert body["credential"]["notice"] == NOTICE_CREDENTIAL_ONCE

    def test_reactivate_without_password(self, api, backend):
        backend.on("GET", "/users/u-1", envelope(user_json("u-1", status="Inactive")))
        backend.on("POST", "/users/u-1/activate", envelope(user_json("u-1", status="Active")))

        response = api.post("/api/v1/users/u-1/activate", headers=AUTH, json={"web_login": True})

        assert response.status_code == 200
        assert response.json()["credential"] is None

    def test_reset_password(self, api, backend):
        backend.on("POST", "/users/u-1/reset-password", envelope({
            "userId": "u-1",
            "userName": "asha.k",
            "temporaryPassword": "Reset#4410",
        }))

        body = api.post("/api/v1/users/u-1/reset-password", headers=AUTH).json()

        assert body["temporary_password"] == "Reset#4410"
        assert body["force_password_change"] is True


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class TestProfileApi:
    def test_profile_degrades_to_session(self, api, backend):
        # no user routes: both lookups 404
        body = api.get("/api/v1/profile", headers=AUTH).json()

        assert body["user_id"] is None
        assert body["user_name"] == "operator"
        assert body["mobile_number"] == "-"
        assert body["company_name"] == "Acme"
        assert body["can_change_password"] is False
        assert body["notices"][0]["message"] == NOTICE_PROFILE_FROM_SESSION

    def test_change_password_needs_resolved_account(self, api):
        response = api.post("/api/v1/profile/password", headers=AUTH, json={
            "current_password": "Old#Pass1",
            "new_password": "New#Pass1",
            "confirm_password": "New#Pass1",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "UNRESOLVED_IDENTITY"

    def test_change_password(self, api, backend):
        backend.on("GET", "/users/u-operator", envelope(user_json("u-operator", userName="operator")))
        backend.on("POST", "/users/u-operator/change-password", envelope(None))

        response = api.post("/api/v1/profile/password", headers=AUTH, json={
            "current_password": "Old#Pass1",
            "new_password": "New#Pass1",
            "confirm_password": "New#Pass1",
        })

        assert response.status_code == 200
        assert backend.json_body() == {"currentPassword": "Old#Pass1", "newPassword": "New#Pass1"}

    def test_contact_update_sends_only_filled_fields(self, api, backend):
        backend.on("GET", "/users/u-operator", envelope(user_json("u-operator", userName="operator")))
        backend.on("PUT", "/users/u-operator/complete", envelope(user_json(
            "u-operator", userName="operator", city="Pune", pincode="411001",
        )))

        response = api.patch("/api/v1/profile/contact", headers=AUTH, json={
            "city": "Pune",
            "pincode": " 411001 ",
            "area": "",
        })

        assert response.status_code == 200
        put = [r.method for r in backend.requests].index("PUT")
        assert backend.json_body(put) == {"city": "Pune", "pincode": "411001"}
        body = response.json()
        assert body["city"] == "Pune"
        assert body["can_edit_contact"] is True

    def test_contact_update_needs_resolved_account(self, api, backend):
        response = api.patch("/api/v1/profile/contact", headers=AUTH, json={"city": "Pune"})

        assert response.status_code == 409
        assert response.json()["code"] == "UNRESOLVED_IDENTITY"
        assert all(r.method == "GET" for r in backend.requests)

    def test_empty_contact_update_rejected(self, api, backend):
        backend.on("GET", "/users/u-operator", envelope(user_json("u-operator", userName="operator")))

        response = api.patch("/api/v1/profile/contact", headers=AUTH, json={"city": "  "})

        assert response.status_code == 422
        assert all(r.method == "GET" for r in backend.requests)
