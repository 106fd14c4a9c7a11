"""
utils/validation_utils.py

Purpose: Input validation

- Blank checks shared by the step validator
- Indian identity document formats (Aadhaar, PAN)
- Mobile number, pincode and e-mail formats
- Password policy for self-service password change
"""

import re
from typing import Any, Dict, List, Optional

from utils.constants import (
    LABEL_AADHAAR,
    LABEL_EMAIL,
    LABEL_EMERGENCY_CONTACT,
    LABEL_MOBILE_NUMBER,
    LABEL_PAN,
    LABEL_PINCODE,
    PASSWORD_MIN_LENGTH,
)


def is_blank(value: Any) -> bool:
    """
    Checks if a draft value counts as missing.

    None and whitespace-only strings are blank. Booleans and numbers
    (including 0 and False) are never blank.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def normalize_mobile_number(phone: Optional[str]) -> str:
    """
    Strips separators and a leading +91/91 country code.
    """
    if not phone:
        return ""

    phone = re.sub(r"[\s\-\(\)]", "", phone)

    if phone.startswith("+91"):
        phone = phone[3:]
    elif phone.startswith("91") and len(phone) == 12:
        phone = phone[2:]

    return phone


def validate_phone_number(phone: Optional[str]) -> bool:
    """
    Validates Indian mobile number format.

    Args:
        phone: Phone number string

    Returns:
        True if valid Indian mobile number
    """
    if not phone:
        return False

    # Starts with 6-9, 10 digits total
    return bool(re.match(r"^[6-9]\d{9}$", normalize_mobile_number(phone)))


def validate_aadhaar(aadhaar: Optional[str]) -> bool:
    """
    Validates a 12-digit Aadhaar number (spaces and dashes allowed).
    """
    if not aadhaar:
        return False
    digits = re.sub(r"[\s\-]", "", aadhaar)
    return bool(re.match(r"^\d{12}$", digits))


def validate_pan(pan: Optional[str]) -> bool:
    """
    Validates PAN format: 5 letters, 4 digits, 1 letter (e.g. ABCDE1234F).
    """
    if not pan:
        return False
    return bool(re.match(r"^[A-Z]{5}[0-9]{4}[A-Z]$", pan.strip().upper()))


def validate_pincode(pincode: Optional[str]) -> bool:
    """
    Validates a 6-digit Indian postal code.
    """
    if not pincode:
        return False
    return bool(re.match(r"^[1-9]\d{5}$", pincode.strip()))


def validate_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email.strip()))


# Format checks run on the summary step; keyed by draft field
FORMAT_CHECKS = {
    "mobile_number": (LABEL_MOBILE_NUMBER, validate_phone_number),
    "email_address": (LABEL_EMAIL, validate_email),
    "aadhaar": (LABEL_AADHAAR, validate_aadhaar),
    "pan": (LABEL_PAN, validate_pan),
    "pincode": (LABEL_PINCODE, validate_pincode),
    "emergency_contact": (LABEL_EMERGENCY_CONTACT, validate_phone_number),
}


def find_format_issues(values: Dict[str, Any]) -> List[str]:
    """
    Lists labels of filled-in fields whose format looks wrong.

    Blank fields are skipped; requiredness is the step validator's job.
    These issues are advisory and never block navigation.

    Args:
        values: Mapping of draft field name to value

    Returns:
        Ordered list of field labels
    """
    issues = []
    for field, (label, check) in FORMAT_CHECKS.items():
        value = values.get(field)
        if is_blank(value):
            continue
        if not check(str(value)):
            issues.append(label)
    return issues


# Characters that satisfy the "special" password rule
SPECIAL_CHARACTERS = r'[!@#$%^&*(),.?":{}|<>]'


def check_password_policy(new_password: str, confirm_password: str) -> Dict[str, bool]:
    """
    Evaluates each rule of the password policy.

    Returns:
        Dict of rule name to pass/fail
    """
    new_password = new_password or ""
    return {
        "length": len(new_password) >= PASSWORD_MIN_LENGTH,
        "uppercase": bool(re.search(r"[A-Z]", new_password)),
        "lowercase": bool(re.search(r"[a-z]", new_password)),
        "number": bool(re.search(r"\d", new_password)),
        "special": bool(re.search(SPECIAL_CHARACTERS, new_password)),
        "match": bool(new_password) and new_password == confirm_password,
    }
