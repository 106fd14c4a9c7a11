"""
app/schemas/users.py

Purpose: Request/response bodies for user list, activation and profile

- Temporary credentials appear in exactly one response and nowhere else
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from app.models.user import PAYLOAD_KEYS, ActivationSettings, TemporaryCredential
from app.schemas.response import Notice
from app.services.identity_resolver import ResolvedProfile, UserRow
from utils.constants import NOTICE_CREDENTIAL_ONCE


class UserRowResponse(BaseModel):
    user_id: str
    user_name: str
    company_id: str
    company_name: str
    role: str = Field(..., description="Role name, 'Loading...' while roles load, '-' if unknown")
    role_state: str
    employee_code: Optional[str] = None
    email_address: Optional[str] = None
    mobile_number: Optional[str] = None
    employment_type: Optional[str] = None
    status: str

    @classmethod
    def from_row(cls, row: UserRow) -> "UserRowResponse":
        return cls(
            user_id=row.user_id,
            user_name=row.user_name,
            company_id=row.company_id,
            company_name=row.company_name,
            role=row.role_display.text,
            role_state=row.role_display.state.value,
            employee_code=row.employee_code,
            email_address=row.email_address,
            mobile_number=row.mobile_number,
            employment_type=row.employment_type,
            status=row.status,
        )


class UserListResponse(BaseModel):
    company_id: Optional[str]
    company_name: str
    users: List[UserRowResponse]
    notices: List[Notice] = []


class ActivationRequest(BaseModel):
    web_login: bool = False
    mobile_app_access: bool = False
    password_enabled: bool = False
    otp_enabled: bool = False
    force_otp_on_next_login: bool = False

    def to_settings(self) -> ActivationSettings:
        return ActivationSettings(**self.model_dump())


class CredentialResponse(BaseModel):
    """
    The one response that carries a temporary password.
    """
    user_id: str
    user_name: str
    temporary_password: str
    expires_at: Optional[datetime] = None
    force_password_change: bool = True
    notice: str = NOTICE_CREDENTIAL_ONCE

    @classmethod
    def from_credential(cls, credential: TemporaryCredential) -> "CredentialResponse":
        return cls(
            user_id=credential.user_id,
            user_name=credential.user_name,
            temporary_password=credential.plaintext_secret,
            expires_at=credential.expiry_instant,
            force_password_change=credential.force_password_change,
        )


class StatusChangeResponse(BaseModel):
    success: bool = True
    user_id: str
    status: str
    credential: Optional[CredentialResponse] = None


CONTACT_FIELDS = (
    "email_address",
    "emergency_contact",
    "address_line",
    "area",
    "city",
    "district",
    "pincode",
)


class ProfileResponse(BaseModel):
    user_name: str
    user_id: Optional[str] = Field(None, description="Null when the account could not be resolved")
    email_address: Optional[str] = None
    mobile_number: str
    employee_code: Optional[str] = None
    role: Optional[str] = None
    status: str
    company_name: str
    company_id: Optional[str] = None
    emergency_contact: Optional[str] = None
    address_line: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    pincode: Optional[str] = None
    can_change_password: bool
    can_edit_contact: bool
    notices: List[Notice] = []

    @classmethod
    def from_profile(cls, profile: ResolvedProfile, company_name: str,
                     company_id: Optional[str], notices: List[Notice]) -> "ProfileResponse":
        record = profile.record
        return cls(
            user_name=profile.user_name,
            user_id=profile.canonical_id,
            email_address=profile.email_address,
            mobile_number=profile.mobile_number,
            employee_code=profile.employee_code,
            role=profile.role_display,
            status=profile.status,
            company_name=company_name,
            company_id=company_id,
            emergency_contact=record.emergency_contact if record else None,
            address_line=record.address_line if record else None,
            area=record.area if record else None,
            city=record.city if record else None,
            district=record.district if record else None,
            pincode=record.pincode if record else None,
            can_change_password=not profile.degraded,
            can_edit_contact=not profile.degraded,
            notices=notices,
        )


class ContactUpdateRequest(BaseModel):
    """
    Own contact and address details. Blank or missing fields are not sent,
    so they keep their stored value.
    """
    email_address: Optional[str] = None
    emergency_contact: Optional[str] = None
    address_line: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    pincode: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        payload = {}
        for name in CONTACT_FIELDS:
            value = (getattr(self, name) or "").strip()
            if value:
                payload[PAYLOAD_KEYS[name]] = value
        return payload


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., repr=False)
    new_password: str = Field(..., repr=False)
    confirm_password: str = Field(..., repr=False)
