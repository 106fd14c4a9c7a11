"""
app/flow/steps.py

Purpose: Defines the onboarding wizard steps and their gates

- Enum for each step of the six-step flow
- Single source of truth for step titles and required fields
- validate_step(): pure per-step and aggregate validation
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Tuple

from app.models.user import UserDraft
from utils.constants import (
    EMPLOYMENT_TYPE_CONTRACT,
    LABEL_COMPANY,
    LABEL_CONTRACTOR_NAME,
    LABEL_DESIGNATION,
    LABEL_EMPLOYEE_CODE,
    LABEL_EMPLOYMENT_TYPE,
    LABEL_MOBILE_NUMBER,
    LABEL_USER_NAME,
    LABEL_USER_ROLE,
    STEP_TITLE_ACTIVATION,
    STEP_TITLE_ADDRESS,
    STEP_TITLE_COMPLIANCE,
    STEP_TITLE_IDENTITY,
    STEP_TITLE_PROFILE,
    STEP_TITLE_SUMMARY,
    TOTAL_STEPS,
)
from utils.validation_utils import is_blank


class WizardStep(IntEnum):
    """
    Steps of the user onboarding wizard, in order.
    """
    IDENTITY = 1
    PROFILE = 2
    COMPLIANCE = 3
    ADDRESS = 4
    ACTIVATION = 5
    SUMMARY = 6


FIRST_STEP = WizardStep.IDENTITY
LAST_STEP = WizardStep.SUMMARY


@dataclass(frozen=True)
class RequiredField:
    """
    A draft field that must be filled, optionally only under a condition.
    """
    name: str
    label: str
    applies: Optional[Callable[[UserDraft], bool]] = None

    def is_missing(self, draft: UserDraft) -> bool:
        if self.applies is not None and not self.applies(draft):
            return False
        return is_blank(getattr(draft, self.name))


def _is_contract(draft: UserDraft) -> bool:
    return (draft.employment_type or "").strip() == EMPLOYMENT_TYPE_CONTRACT


@dataclass(frozen=True)
class StepMetadata:
    """
    Metadata associated with each wizard step.
    """
    step: WizardStep
    title: str
    required: Tuple[RequiredField, ...] = ()
    # Steps whose requirements are re-checked in full (summary step)
    aggregates: Tuple[WizardStep, ...] = ()
    fields: Tuple[str, ...] = ()


STEP_METADATA: Dict[WizardStep, StepMetadata] = {
    WizardStep.IDENTITY: StepMetadata(
        step=WizardStep.IDENTITY,
        title=STEP_TITLE_IDENTITY,
        required=(
            RequiredField("company_ref", LABEL_COMPANY),
            RequiredField("user_name", LABEL_USER_NAME),
            RequiredField("mobile_number", LABEL_MOBILE_NUMBER),
            RequiredField("employee_code", LABEL_EMPLOYEE_CODE),
            RequiredField("role_ref", LABEL_USER_ROLE),
        ),
        fields=("company_ref", "user_name", "mobile_number", "employee_code", "role_ref", "email_address"),
    ),
    WizardStep.PROFILE: StepMetadata(
        step=WizardStep.PROFILE,
        title=STEP_TITLE_PROFILE,
        required=(
            RequiredField("employment_type", LABEL_EMPLOYMENT_TYPE),
            RequiredField("designation", LABEL_DESIGNATION),
            RequiredField("contractor_name", LABEL_CONTRACTOR_NAME, applies=_is_contract),
        ),
        fields=("employment_type", "designation", "contractor_name", "third_party_company_name", "gross_salary"),
    ),
    WizardStep.COMPLIANCE: StepMetadata(
        step=WizardStep.COMPLIANCE,
        title=STEP_TITLE_COMPLIANCE,
        fields=("aadhaar", "pan", "driving_license", "pf_number", "uan", "esi_number"),
    ),
    WizardStep.ADDRESS: StepMetadata(
        step=WizardStep.ADDRESS,
        title=STEP_TITLE_ADDRESS,
        fields=("address_line", "area", "city", "district", "pincode", "emergency_contact"),
    ),
    WizardStep.ACTIVATION: StepMetadata(
        step=WizardStep.ACTIVATION,
        title=STEP_TITLE_ACTIVATION,
        fields=("web_login", "mobile_app_access", "status", "password_enabled", "otp_enabled", "force_otp_on_next_login"),
    ),
    WizardStep.SUMMARY: StepMetadata(
        step=WizardStep.SUMMARY,
        title=STEP_TITLE_SUMMARY,
        aggregates=(WizardStep.IDENTITY, WizardStep.PROFILE),
    ),
}


@dataclass(frozen=True)
class StepValidation:
    """
    Result of validating one step against a draft.
    """
    step: WizardStep
    valid: bool
    missing: List[str]


def get_step_metadata(step: int) -> StepMetadata:
    """
    Retrieves metadata for a given step.

    Raises:
        ValueError: If step is outside 1..6
    """
    return STEP_METADATA[WizardStep(step)]


def _missing_for(step: WizardStep, draft: UserDraft) -> List[str]:
    metadata = STEP_METADATA[step]
    missing = [req.label for req in metadata.required if req.is_missing(draft)]
    for aggregated in metadata.aggregates:
        for label in _missing_for(aggregated, draft):
            if label not in missing:
                missing.append(label)
    return missing


def validate_step(step: int, draft: UserDraft) -> StepValidation:
    """
    Checks a draft against one step's required-field table.

    Pure: reads only the draft, so the same draft always gives the same
    result. The summary step re-checks the identity and profile steps in
    full, because edits made after passing a step can re-break it.

    Args:
        step: Step number (1-6)
        draft: Draft being edited

    Returns:
        StepValidation with missing labels in table order
    """
    wizard_step = WizardStep(step)
    missing = _missing_for(wizard_step, draft)
    return StepValidation(step=wizard_step, valid=not missing, missing=missing)


def get_progress_message(step: int) -> str:
    """
    Generates a progress label for the current step (e.g., "Step 3 of 6: ...").
    """
    metadata = get_step_metadata(step)
    return f"Step {int(metadata.step)} of {TOTAL_STEPS}: {metadata.title}"
