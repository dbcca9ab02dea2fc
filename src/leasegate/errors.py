"""LeaseGate errors."""

import ssl

import httpx

ALREADY_EXISTS_CODE = 409
NOT_FOUND_CODE = 404


class LeaseGateError(Exception):
    """Base error for LeaseGate operations."""

    def __init__(self, message: str, code: str = "LEASEGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class LeaseApiError(LeaseGateError):
    """The lease API answered with a non-success status."""

    def __init__(self, status_code: int, message: str = "", code: str = "LEASE_API_ERROR"):
        super().__init__(
            message or f"Lease API request failed with status {status_code}",
            code,
        )
        self.status_code = status_code


class LeaseConflict(LeaseApiError):
    """Lease already exists."""

    def __init__(self, name: str = "", message: str = ""):
        super().__init__(
            ALREADY_EXISTS_CODE,
            message or f"Lease already exists: {name}",
            "LEASE_CONFLICT",
        )
        self.name = name


class LeaseNotFound(LeaseApiError):
    """Lease does not exist."""

    def __init__(self, name: str = "", message: str = ""):
        super().__init__(
            NOT_FOUND_CODE,
            message or f"Lease not found: {name}",
            "LEASE_NOT_FOUND",
        )
        self.name = name


class LostLeadership(LeaseGateError):
    """A renewal showed that somebody else owns the lease."""

    def __init__(self, current_owner: str | None):
        super().__init__(f"Lost leadership to {current_owner}", "LOST_LEADERSHIP")
        self.current_owner = current_owner


class IdentityError(LeaseGateError):
    """Candidate identity is missing or unsafe."""

    def __init__(self, message: str):
        super().__init__(message, "IDENTITY_ERROR")


# Infrastructure failures worth retrying. ssl.SSLError is an OSError but is
# listed on its own so the intent stays visible.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    LeaseApiError,
    httpx.TransportError,
    ssl.SSLError,
    TimeoutError,
    OSError,
)


def is_already_exists(error: BaseException) -> bool:
    """True for the authoritative "someone else created it first" answer."""
    return isinstance(error, LeaseApiError) and error.status_code == ALREADY_EXISTS_CODE
