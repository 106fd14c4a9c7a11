"""
app/models/user.py

Purpose: User records and the wizard working copy

- UserDraft: mutable working copy owned by the wizard
- PersistedUser: backend record (company/role stored as ids)
- AccountStatus and its allowed transitions
- ActivationSettings toggles
- TemporaryCredential and its take-once wrapper
"""

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.exceptions import CredentialConsumedError
from app.models.reference import (
    ById,
    Reference,
    reference_from_document,
    reference_to_document,
)


class AccountStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


# Nothing ever returns to Draft
STATUS_TRANSITIONS: Dict[AccountStatus, List[AccountStatus]] = {
    AccountStatus.DRAFT: [AccountStatus.DRAFT, AccountStatus.ACTIVE, AccountStatus.INACTIVE],
    AccountStatus.ACTIVE: [AccountStatus.ACTIVE, AccountStatus.INACTIVE],
    AccountStatus.INACTIVE: [AccountStatus.INACTIVE, AccountStatus.ACTIVE],
}


def is_valid_status_transition(from_status: AccountStatus, to_status: AccountStatus) -> bool:
    """
    Checks if an account status change is allowed.

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_status in STATUS_TRANSITIONS.get(from_status, [])


# Draft field -> backend payload key. Company and role are resolved separately.
PAYLOAD_KEYS: Dict[str, str] = {
    "user_name": "userName",
    "mobile_number": "mobileNumber",
    "employee_code": "employeeCode",
    "email_address": "emailAddress",
    "employment_type": "employmentType",
    "designation": "designation",
    "contractor_name": "contractorName",
    "third_party_company_name": "companyNameThirdParty",
    "gross_salary": "grossSalary",
    "aadhaar": "aadhaarNumber",
    "pan": "panNumber",
    "driving_license": "drivingLicenseNumber",
    "pf_number": "pfNumber",
    "uan": "uanNumber",
    "esi_number": "esiNumber",
    "address_line": "addressLine",
    "area": "area",
    "city": "city",
    "district": "district",
    "pincode": "pincode",
    "emergency_contact": "emergencyContact",
    "web_login": "webLogin",
    "mobile_app_access": "mobileAppAccess",
    "status": "status",
    "password_enabled": "passwordEnabled",
    "otp_enabled": "otpEnabled",
    "force_otp_on_next_login": "forceOtpOnNextLogin",
}

REFERENCE_FIELDS = ("company_ref", "role_ref")


class PersistedUser(BaseModel):
    """
    User record as returned by the backend.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    company_id: str
    user_name: str
    mobile_number: Optional[str] = None
    employee_code: Optional[str] = None
    user_role_id: Optional[str] = None
    status: AccountStatus = AccountStatus.DRAFT
    password_enabled: bool = False
    otp_enabled: bool = False
    web_login: bool = False
    mobile_app_access: bool = False
    force_otp_on_next_login: bool = False

    email_address: Optional[str] = None
    employment_type: Optional[str] = None
    designation: Optional[str] = None
    contractor_name: Optional[str] = None
    company_name_third_party: Optional[str] = None
    gross_salary: Optional[float] = None

    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    driving_license_number: Optional[str] = None
    pf_number: Optional[str] = None
    uan_number: Optional[str] = None
    esi_number: Optional[str] = None

    address_line: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None

    created_on: Optional[str] = None
    modified_on: Optional[str] = None


@dataclass
class UserDraft:
    """
    In-progress user record held by the wizard.

    Assigning a different company_ref clears role_ref, whatever code path
    does the assignment: a role only means something within its company.
    """

    # Identity
    company_ref: Optional[Reference] = None
    user_name: Optional[str] = None
    mobile_number: Optional[str] = None
    employee_code: Optional[str] = None
    role_ref: Optional[Reference] = None
    email_address: Optional[str] = None

    # Profile
    employment_type: Optional[str] = None
    designation: Optional[str] = None
    contractor_name: Optional[str] = None
    third_party_company_name: Optional[str] = None
    gross_salary: Optional[float] = None

    # Compliance
    aadhaar: Optional[str] = None
    pan: Optional[str] = None
    driving_license: Optional[str] = None
    pf_number: Optional[str] = None
    uan: Optional[str] = None
    esi_number: Optional[str] = None

    # Address
    address_line: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    pincode: Optional[str] = None
    emergency_contact: Optional[str] = None

    # Activation
    web_login: bool = False
    mobile_app_access: bool = False
    status: AccountStatus = AccountStatus.DRAFT
    password_enabled: bool = False
    otp_enabled: bool = False
    force_otp_on_next_login: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "company_ref" and "company_ref" in self.__dict__:
            if value != self.__dict__["company_ref"]:
                super().__setattr__("role_ref", None)
        super().__setattr__(name, value)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_persisted(cls, user: PersistedUser) -> "UserDraft":
        """
        Seeds a draft from a backend record. Stored ids become ById references.
        """
        return cls(
            company_ref=ById(user.company_id) if user.company_id else None,
            user_name=user.user_name,
            mobile_number=user.mobile_number,
            employee_code=user.employee_code,
            role_ref=ById(user.user_role_id) if user.user_role_id else None,
            email_address=user.email_address,
            employment_type=user.employment_type,
            designation=user.designation,
            contractor_name=user.contractor_name,
            third_party_company_name=user.company_name_third_party,
            gross_salary=user.gross_salary,
            aadhaar=user.aadhaar_number,
            pan=user.pan_number,
            driving_license=user.driving_license_number,
            pf_number=user.pf_number,
            uan=user.uan_number,
            esi_number=user.esi_number,
            address_line=user.address_line,
            area=user.area,
            city=user.city,
            district=user.district,
            pincode=user.pincode,
            emergency_contact=user.emergency_contact,
            web_login=user.web_login,
            mobile_app_access=user.mobile_app_access,
            status=user.status,
            password_enabled=user.password_enabled,
            otp_enabled=user.otp_enabled,
            force_otp_on_next_login=user.force_otp_on_next_login,
        )

    def values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.field_names()}

    def to_payload(self, company_id: str, role_id: Optional[str]) -> Dict[str, Any]:
        """
        Builds the backend create/update payload.

        Blank strings are sent as null. The role key is left out entirely
        when role_id is None.

        Args:
            company_id: Resolved canonical company id
            role_id: Resolved canonical role id, or None to omit

        Returns:
            Payload dict with backend keys
        """
        payload: Dict[str, Any] = {"companyId": company_id}
        if role_id is not None:
            payload["userRoleId"] = role_id

        for name, key in PAYLOAD_KEYS.items():
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip() or None
            if isinstance(value, AccountStatus):
                value = value.value
            payload[key] = value

        return payload

    def to_document(self) -> Dict[str, Any]:
        doc = self.values()
        for name in REFERENCE_FIELDS:
            doc[name] = reference_to_document(doc[name])
        doc["status"] = self.status.value
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserDraft":
        known = set(cls.field_names())
        values = {k: v for k, v in (doc or {}).items() if k in known}
        for name in REFERENCE_FIELDS:
            values[name] = reference_from_document(values.get(name))
        if "status" in values:
            values["status"] = AccountStatus(values["status"])
        return cls(**values)


class ActivationSettings(BaseModel):
    """
    Access toggles applied by activation.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    web_login: bool = False
    mobile_app_access: bool = False
    password_enabled: bool = False
    otp_enabled: bool = False
    force_otp_on_next_login: bool = False

    def to_payload(self) -> Dict[str, bool]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class TemporaryCredential:
    """
    Temporary password issued by activation or reset.

    The secret is excluded from repr so it cannot leak through logging.
    """
    user_id: str
    user_name: str
    plaintext_secret: str = field(repr=False)
    expiry_instant: Optional[datetime] = None
    force_password_change: bool = True


class OneTimeCredential:
    """
    Holder that hands out a temporary credential exactly once.

    After take() or clear() the secret is dropped from memory and any
    further take() raises CredentialConsumedError.
    """

    def __init__(self, credential: TemporaryCredential, issuance_id: Optional[str] = None):
        self._credential: Optional[TemporaryCredential] = credential
        self.issuance_id = issuance_id or uuid.uuid4().hex
        self.user_id = credential.user_id
        self.user_name = credential.user_name
        self.expiry_instant = credential.expiry_instant
        self.force_password_change = credential.force_password_change

    @property
    def consumed(self) -> bool:
        return self._credential is None

    def take(self) -> TemporaryCredential:
        if self._credential is None:
            raise CredentialConsumedError()
        credential, self._credential = self._credential, None
        return credential

    def clear(self) -> None:
        """Drops the secret on operator acknowledgment."""
        self._credential = None

    def __repr__(self) -> str:
        state = "consumed" if self.consumed else "pending"
        return f"OneTimeCredential(user_id={self.user_id!r}, {state})"
