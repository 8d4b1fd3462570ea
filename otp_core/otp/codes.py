"""
Code Utilities
==============
Code generation and log-safe representations of codes and identities.
"""

import hashlib
import re
import secrets

# Alphabet of secrets.token_urlsafe
_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def generate_code(num_bytes: int = 16) -> str:
    """
    Generate an unguessable one-time code.

    Args:
        num_bytes: Bytes of randomness (16 bytes = 128 bits)

    Returns:
        URL-safe code string
    """
    return secrets.token_urlsafe(num_bytes)


def is_well_formed_code(code: str) -> bool:
    """Check that a presented code could have been produced by generate_code."""
    return bool(code) and bool(_CODE_PATTERN.match(code))


def hash_identity(identity: str, pepper: str = "") -> str:
    """
    Hash an identity for privacy in logs.

    Args:
        identity: Phone number or email address
        pepper: Optional secret pepper

    Returns:
        Truncated SHA-256 hash
    """
    return hashlib.sha256(f"{pepper}:{identity}".encode()).hexdigest()[:16]


def mask_code(code: str) -> str:
    """Return a prefix of the code that is safe to log."""
    return code[:8]
