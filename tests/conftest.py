"""
Shared fixtures for otp-core tests.
"""

from typing import List, Optional, Tuple

import pytest

from otp_core.config import OTPConfig
from otp_core.delivery import DeliveryResult, DeliverySender
from otp_core.otp import Channel
from otp_core.service import OTPService
from otp_core.store import InMemoryStore


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSender(DeliverySender):
    """Sender that remembers every code it was asked to deliver."""

    name = "recording"

    def __init__(self, fail_with: Optional[str] = None, raise_exc: Optional[Exception] = None):
        self.sent: List[Tuple[str, str, Channel]] = []
        self.locales: List[Optional[str]] = []
        self.fail_with = fail_with
        self.raise_exc = raise_exc

    async def send(
        self,
        identity: str,
        code: str,
        channel: Channel,
        locale: Optional[str] = None,
    ) -> DeliveryResult:
        self.sent.append((identity, code, channel))
        self.locales.append(locale)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.fail_with is not None:
            return DeliveryResult(success=False, error=self.fail_with)
        return DeliveryResult(success=True, message_id=f"msg-{len(self.sent)}")

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def config() -> OTPConfig:
    return OTPConfig()


@pytest.fixture
def service(store, sender, config, clock) -> OTPService:
    return OTPService.create(store, sender, config=config, clock=clock)
