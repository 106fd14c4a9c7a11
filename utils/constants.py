"""
utils/constants.py

Purpose: Centralized static content

- Field labels shown in validation messages
- Wizard step titles
- Display placeholders and operator notices
- Reusable constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# FIELD LABELS
# ============================================================

# Identity
LABEL_COMPANY = "Company"
LABEL_USER_NAME = "User Name"
LABEL_MOBILE_NUMBER = "Mobile Number"
LABEL_EMPLOYEE_CODE = "Employee Code"
LABEL_USER_ROLE = "User Role"
LABEL_EMAIL = "Email Address"

# Profile
LABEL_EMPLOYMENT_TYPE = "Employment Type"
LABEL_DESIGNATION = "Designation"
LABEL_CONTRACTOR_NAME = "Contractor Name"

# Compliance
LABEL_AADHAAR = "Aadhaar Number"
LABEL_PAN = "PAN Number"

# Address
LABEL_PINCODE = "Pincode"
LABEL_EMERGENCY_CONTACT = "Emergency Contact"


# ============================================================
# WIZARD STEPS
# ============================================================

STEP_TITLE_IDENTITY = "Create User"
STEP_TITLE_PROFILE = "Employee Profile"
STEP_TITLE_COMPLIANCE = "Identity & Compliance"
STEP_TITLE_ADDRESS = "Address & Emergency"
STEP_TITLE_ACTIVATION = "User Activation"
STEP_TITLE_SUMMARY = "Review & Confirm"

TOTAL_STEPS = 6

EMPLOYMENT_TYPE_CONTRACT = "Contract"


# ============================================================
# DISPLAY PLACEHOLDERS
# ============================================================

# Shown while companies or roles have not loaded yet
PENDING_PLACEHOLDER = "Loading..."

# Shown when a stored reference no longer matches a known record
FALLBACK_DISPLAY = "-"


# ============================================================
# OPERATOR NOTICES
# ============================================================

NOTICE_PROFILE_FROM_SESSION = (
    "Showing basic information from your session. Some details may be incomplete."
)
NOTICE_COMPANY_FROM_SESSION = (
    "Company details could not be loaded. Showing what your session knows."
)
NOTICE_ROLE_OMITTED = (
    "Role \"{role}\" was not found for the selected company and was not saved."
)
NOTICE_CREDENTIAL_ONCE = (
    "Copy this temporary password now. It will not be shown again."
)


# ============================================================
# PASSWORD POLICY
# ============================================================

PASSWORD_MIN_LENGTH = 8

PASSWORD_RULE_MESSAGES = {
    "length": f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
    "uppercase": "Password must contain at least one uppercase letter",
    "lowercase": "Password must contain at least one lowercase letter",
    "number": "Password must contain at least one number",
    "special": "Password must contain at least one special character",
    "match": "New password and confirm password do not match",
}


# ============================================================
# SESSION HEADERS
# ============================================================

HEADER_USER_ID = "X-User-Id"
HEADER_USER_NAME = "X-User-Name"
HEADER_USER_EMAIL = "X-User-Email"
HEADER_USER_ROLES = "X-User-Roles"
HEADER_COMPANY_ID = "X-Company-Id"
HEADER_COMPANY_NAME = "X-Company-Name"
