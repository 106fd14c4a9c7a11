"""
app/schemas/wizard.py

Purpose: Request/response bodies for the onboarding wizard API

- References arrive with an explicit kind tag; nothing guesses id vs name
- DraftUpdate carries only the fields the client actually sent
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional

from app.flow.wizard import WizardMode
from app.models.reference import KIND_ID, KIND_NAME, Reference, make_reference
from app.models.user import AccountStatus
from app.schemas.response import Notice

TOGGLE_FIELDS = (
    "web_login",
    "mobile_app_access",
    "password_enabled",
    "otp_enabled",
    "force_otp_on_next_login",
)


class ReferenceIn(BaseModel):
    """
    Company or role reference as sent by the client.
    """
    kind: Literal["id", "name"] = Field(..., description="'id' for a canonical id, 'name' for a display name")
    value: str = Field(..., min_length=1)

    @field_validator("value")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value must not be blank")
        return v.strip()

    def to_reference(self) -> Reference:
        return make_reference(self.kind, self.value)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"kind": KIND_ID, "value": "8f6c0c1e-6a43-4b59-9f0e-2f1b8e9d1a77"},
                {"kind": KIND_NAME, "value": "Field Supervisor"},
            ]
        }
    }


class WizardStartRequest(BaseModel):
    mode: WizardMode = WizardMode.CREATE
    user_id: Optional[str] = Field(None, description="Existing user for edit/view mode")

    @field_validator("user_id")
    @classmethod
    def strip_user_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class DraftUpdate(BaseModel):
    """
    Partial draft edit. Unset fields are left alone; an explicit null clears.
    """
    company_ref: Optional[ReferenceIn] = None
    user_name: Optional[str] = None
    mobile_number: Optional[str] = None
    employee_code: Optional[str] = None
    role_ref: Optional[ReferenceIn] = None
    email_address: Optional[str] = None

    employment_type: Optional[str] = None
    designation: Optional[str] = None
    contractor_name: Optional[str] = None
    third_party_company_name: Optional[str] = None
    gross_salary: Optional[float] = Field(None, ge=0)

    aadhaar: Optional[str] = None
    pan: Optional[str] = None
    driving_license: Optional[str] = None
    pf_number: Optional[str] = None
    uan: Optional[str] = None
    esi_number: Optional[str] = None

    address_line: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None

    web_login: Optional[bool] = None
    mobile_app_access: Optional[bool] = None
    status: Optional[AccountStatus] = None
    password_enabled: Optional[bool] = None
    otp_enabled: Optional[bool] = None
    force_otp_on_next_login: Optional[bool] = None

    def to_values(self) -> Dict[str, Any]:
        """
        Draft field values for the fields present in the request.
        """
        values: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if isinstance(value, ReferenceIn):
                value = value.to_reference()
            if value is None and name in TOGGLE_FIELDS:
                value = False
            if value is None and name == "status":
                continue
            values[name] = value
        return values


class GoToStepRequest(BaseModel):
    step: int = Field(..., ge=1)


class DisplayOut(BaseModel):
    text: str
    state: Literal["pending", "resolved", "fallback"]


class WizardSnapshotResponse(BaseModel):
    session_id: Optional[str]
    mode: str
    step: int
    title: str
    progress: str
    read_only: bool
    origin_user_id: Optional[str] = None
    draft: Dict[str, Any]
    company_display: DisplayOut
    role_display: DisplayOut
    missing: List[str] = []
    format_issues: List[str] = []
    last_error: Optional[str] = None
    saving: bool = False


class OptionOut(BaseModel):
    id: str
    name: str


class WizardOptionsResponse(BaseModel):
    """
    Step 1 pickers: all companies, and the roles of the draft's company.

    roles_loaded is False while no company is selected or the role fetch
    failed; the role picker stays in its loading state.
    """
    companies: List[OptionOut]
    roles: List[OptionOut]
    roles_loaded: bool
    company_display: DisplayOut
    role_display: DisplayOut


class WizardSaveResponse(BaseModel):
    success: bool = True
    created: bool
    user_id: str
    user_name: str
    status: str
    notices: List[Notice] = []
