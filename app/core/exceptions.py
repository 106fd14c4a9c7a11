from dataclasses import dataclass
from typing import Optional, Any, List


class ConsoleError(Exception):
    """
    Base exception for the onboarding console.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(ConsoleError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class AuthenticationError(ConsoleError):
    """
    Raised when the operator session is missing or rejected upstream.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class ValidationError(ConsoleError):
    """
    Raised when required fields are missing for a wizard step.

    Blocks forward navigation or save only; the draft is left untouched.
    """
    def __init__(self, missing: List[str], step: Optional[int] = None, message: Optional[str] = None):
        self.step = step
        self.missing = list(missing)
        if message is None:
            message = f"Please fill in: {', '.join(self.missing)}" if self.missing else "Validation error"
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            status_code=422,
            details={"step": step, "missing": self.missing}
        )


class NavigationError(ConsoleError):
    """
    Raised for wizard moves the current mode or step does not allow.
    """
    def __init__(self, message: str = "Navigation not allowed", details: Optional[Any] = None):
        super().__init__(message, code="NAVIGATION_ERROR", status_code=409, details=details)


class SaveInProgressError(ConsoleError):
    """
    Raised when a save is requested while one for the same draft is outstanding.
    """
    def __init__(self, message: str = "A save for this draft is already in progress"):
        super().__init__(message, code="SAVE_IN_PROGRESS", status_code=409)


class InvalidTransitionError(ConsoleError):
    """
    Raised when an account status change is not permitted.
    """
    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Cannot change status from {from_status} to {to_status}",
            code="INVALID_STATUS_TRANSITION",
            status_code=409,
            details={"from": from_status, "to": to_status}
        )


class PersistenceError(ConsoleError):
    """
    Raised when the backend rejects a create/update/activate/reset call.

    The backend's message is carried verbatim.
    """
    def __init__(self, message: str, upstream_status: Optional[int] = None, details: Optional[Any] = None):
        self.upstream_status = upstream_status
        # Client errors from the backend are passed through; everything else is a bad gateway
        if upstream_status is not None and 400 <= upstream_status < 500:
            status_code = upstream_status
        else:
            status_code = 502
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=status_code, details=details)


class UnresolvedIdentityError(ConsoleError):
    """
    Raised when a write path needs a canonical id that could not be resolved.
    """
    def __init__(self, message: str = "Could not resolve a canonical identity", details: Optional[Any] = None):
        super().__init__(message, code="UNRESOLVED_IDENTITY", status_code=409, details=details)


class CredentialConsumedError(ConsoleError):
    """
    Raised when a one-time credential is read after it was already taken.
    """
    def __init__(self, message: str = "Temporary credential has already been displayed"):
        super().__init__(message, code="CREDENTIAL_CONSUMED", status_code=410)


@dataclass(frozen=True)
class ResolutionWarning:
    """
    Non-blocking notice produced when a read-path lookup degraded.

    Never raised; attached to read results and shown to the operator.
    """
    message: str
    entity: str
    reference: Optional[str] = None
