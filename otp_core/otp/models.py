"""
OTP Models
==========
Data models and enums for code issuance and redemption.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Channel(str, Enum):
    """OTP delivery channels."""
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class OtpRecord(BaseModel):
    """
    One outstanding code as persisted in the store.

    The record is immutable; it is created once and removed by redemption
    or store expiry. Serialized as fixed-schema JSON.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    code: str
    identity: str
    channel: Channel
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def encode(self) -> str:
        return self.model_dump_json()

    @classmethod
    def decode(cls, raw: str) -> "OtpRecord":
        return cls.model_validate_json(raw)


@dataclass(frozen=True)
class IssuedCode:
    """A code that was persisted (and handed to delivery)."""
    code: str
    identity: str
    channel: Channel
    created_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.created_at).total_seconds())


@dataclass(frozen=True)
class RedeemedCode:
    """The identity a successfully redeemed code was bound to."""
    identity: str
    channel: Channel
    issued_at: datetime


def utc_from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)
