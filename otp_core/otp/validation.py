"""
Identity Validation
===================
Normalization and shape checks for identities per delivery channel.
"""

import re
from typing import Union

from pydantic import EmailStr, TypeAdapter, ValidationError

from otp_core.errors import ValidationFailed

from .models import Channel

# E.164 in ASCII digits, with the leading + optional on input
_PHONE_PATTERN = re.compile(r"^\+?[1-9][0-9]{1,14}$")

_email_adapter = TypeAdapter(EmailStr)


def parse_channel(channel: Union[Channel, str]) -> Channel:
    """Coerce a channel name into a Channel."""
    if isinstance(channel, Channel):
        return channel
    try:
        return Channel(str(channel).strip().lower())
    except ValueError:
        raise ValidationFailed(f"Unsupported channel: {channel!r}", field="channel")


def normalize_phone(phone: str) -> str:
    """
    Validate and normalize a WhatsApp phone number.

    Returns:
        Phone number in +<digits> form
    """
    phone = (phone or "").strip()
    if not _PHONE_PATTERN.match(phone):
        raise ValidationFailed("Invalid phone number")
    return phone if phone.startswith("+") else f"+{phone}"


def normalize_email(email: str) -> str:
    """
    Validate and normalize an email address.

    Returns:
        Trimmed, lowercased address
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationFailed("Missing email address")
    try:
        return _email_adapter.validate_python(email)
    except ValidationError as e:
        raise ValidationFailed("Invalid email address", details=str(e)) from e


def normalize_identity(identity: str, channel: Union[Channel, str]) -> str:
    """
    Normalize an identity for the channel it will be delivered through.

    Raises:
        ValidationFailed: If the identity does not fit the channel
    """
    channel = parse_channel(channel)
    if not isinstance(identity, str):
        raise ValidationFailed("Identity must be a string")
    if channel == Channel.WHATSAPP:
        return normalize_phone(identity)
    return normalize_email(identity)
