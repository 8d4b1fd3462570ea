"""
OTP Core Library
================
One-time signin codes for the landlord and tenant portals.
"""

__version__ = "1.0.0"

# Errors
from otp_core.errors import (
    OTPError,
    ValidationFailed,
    RateLimited,
    InvalidCode,
    CodeNotFound,
    CodeExpired,
    DeliveryFailed,
    StoreUnavailable,
)

# Config
from otp_core.config import OTPConfig

# Store
from otp_core.store import (
    KeyValueStore,
    InMemoryStore,
    RedisStore,
    CounterState,
)

# Rate Guard
from otp_core.rate_guard import (
    RateGuard,
    RateGuardResult,
    RateDecision,
)

# OTP
from otp_core.otp import (
    Channel,
    OtpRecord,
    IssuedCode,
    RedeemedCode,
    OTPIssuer,
    OTPRedeemer,
    normalize_identity,
)

# Delivery
from otp_core.delivery import (
    DeliveryResult,
    DeliverySender,
    DeliveryRouter,
    WhatsAppSender,
    EmailerSender,
)

# Service
from otp_core.service import OTPService, build_sender

__all__ = [
    # Errors
    "OTPError",
    "ValidationFailed",
    "RateLimited",
    "InvalidCode",
    "CodeNotFound",
    "CodeExpired",
    "DeliveryFailed",
    "StoreUnavailable",
    # Config
    "OTPConfig",
    # Store
    "KeyValueStore",
    "InMemoryStore",
    "RedisStore",
    "CounterState",
    # Rate Guard
    "RateGuard",
    "RateGuardResult",
    "RateDecision",
    # OTP
    "Channel",
    "OtpRecord",
    "IssuedCode",
    "RedeemedCode",
    "OTPIssuer",
    "OTPRedeemer",
    "normalize_identity",
    # Delivery
    "DeliveryResult",
    "DeliverySender",
    "DeliveryRouter",
    "WhatsAppSender",
    "EmailerSender",
    # Service
    "OTPService",
    "build_sender",
]
