"""
OTP Issuance and Redemption
===========================
One-time signin codes bound to a phone number or email address.
"""

from .models import Channel, OtpRecord, IssuedCode, RedeemedCode
from .codes import generate_code, is_well_formed_code, hash_identity, mask_code
from .validation import normalize_identity, normalize_phone, normalize_email, parse_channel
from .issuer import OTPIssuer, record_key
from .redeemer import OTPRedeemer

__all__ = [
    # Models
    "Channel",
    "OtpRecord",
    "IssuedCode",
    "RedeemedCode",
    # Codes
    "generate_code",
    "is_well_formed_code",
    "hash_identity",
    "mask_code",
    # Validation
    "normalize_identity",
    "normalize_phone",
    "normalize_email",
    "parse_channel",
    # Issuer / Redeemer
    "OTPIssuer",
    "OTPRedeemer",
    "record_key",
]
