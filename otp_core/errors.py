"""
OTP Exceptions
==============
Exception hierarchy shared by the issuer, redeemer, rate guard and stores.
"""

from typing import Optional, Any


class OTPError(Exception):
    """Base exception for all one-time code errors."""

    retryable: bool = False

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationFailed(OTPError):
    """Raised when an identity does not match the shape its channel expects."""

    def __init__(self, message: str, field: str = "identity", details: Any = None):
        super().__init__(message, details=details)
        self.field = field


class RateLimited(OTPError):
    """Raised when issuance or redemption is throttled."""

    def __init__(self, message: str, scope: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.scope = scope
        self.retry_after = retry_after


class InvalidCode(OTPError):
    """A presented code cannot be redeemed."""
    pass


class CodeNotFound(InvalidCode):
    """No record exists: never issued, already consumed, or evicted."""
    pass


class CodeExpired(InvalidCode):
    """The record existed but was past its expiry when redeemed."""
    pass


class DeliveryFailed(OTPError):
    """
    Raised when the delivery sender could not hand the code to the user.

    The stored record is kept; it simply expires unused.
    """

    retryable = True

    def __init__(self, message: str, issued: Any = None, reason: Optional[str] = None):
        super().__init__(message, details=reason)
        self.issued = issued
        self.reason = reason


class StoreUnavailable(OTPError):
    """Raised when the key/value store is unreachable or timing out."""

    retryable = True

    def __init__(self, message: str, operation: str = "unknown", details: Any = None):
        super().__init__(f"[{operation}] {message}", details=details)
        self.operation = operation
