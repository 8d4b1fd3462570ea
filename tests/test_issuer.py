"""
Unit Tests for the OTP Issuer
=============================
"""

import asyncio
from datetime import timedelta

import pytest

from otp_core.config import OTPConfig
from otp_core.errors import DeliveryFailed, RateLimited, ValidationFailed
from otp_core.otp import Channel, OTPIssuer, OtpRecord, record_key
from otp_core.rate_guard import RateGuard

from tests.conftest import RecordingSender


class TestIssue:
    """Tests for code issuance."""

    @pytest.mark.asyncio
    async def test_issue_whatsapp(self, service, store, sender, clock):
        issued = await service.issue("+18095551234", Channel.WHATSAPP)

        assert issued.identity == "+18095551234"
        assert issued.channel == Channel.WHATSAPP
        assert issued.expires_at - issued.created_at == timedelta(seconds=300)
        assert issued.created_at.timestamp() == clock.now
        assert issued.expires_in == 300
        assert sender.sent == [("+18095551234", issued.code, Channel.WHATSAPP)]

        raw = await store.get(record_key("otp", issued.code))
        record = OtpRecord.decode(raw)
        assert record.code == issued.code
        assert record.identity == "+18095551234"
        assert record.channel == Channel.WHATSAPP

    @pytest.mark.asyncio
    async def test_record_ttl_matches_expiry(self, service, store, clock):
        issued = await service.issue("a@b.com", "email")
        key = record_key("otp", issued.code)

        clock.advance(299)
        assert await store.get(key) is not None

        clock.advance(1)
        assert await store.get(key) is None

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, service, sender):
        issued = await service.issue("  Tenant@Example.COM ", "email")

        assert issued.identity == "tenant@example.com"
        assert sender.sent[0][0] == "tenant@example.com"

    @pytest.mark.asyncio
    async def test_phone_without_plus_is_normalized(self, service):
        issued = await service.issue("18095551234", Channel.WHATSAPP)

        assert issued.identity == "+18095551234"

    @pytest.mark.asyncio
    async def test_codes_are_unique_and_long(self, store, clock):
        config = OTPConfig(identity_rate_limit=100)
        sender = RecordingSender()
        issuer = OTPIssuer(store, sender, config=config, clock=clock)

        codes = {(await issuer.issue("a@b.com", Channel.EMAIL)).code for _ in range(50)}

        assert len(codes) == 50
        assert all(len(code) >= 21 for code in codes)

    @pytest.mark.asyncio
    async def test_delimiter_characters_survive_round_trip(self, service, store):
        issued = await service.issue("o'brien+rent=due@example.com", Channel.EMAIL)

        record = OtpRecord.decode(await store.get(record_key("otp", issued.code)))
        assert record.identity == "o'brien+rent=due@example.com"

    @pytest.mark.asyncio
    async def test_admit_counts_without_sending(self, service, store, sender):
        identity, channel = await service.admit(" A@B.com ", "email", source="10.0.0.1")

        assert (identity, channel) == ("a@b.com", Channel.EMAIL)
        assert await store.get("otp:rate:identity:a@b.com") == "1"
        assert await store.get("otp:rate:source:10.0.0.1") == "1"
        assert sender.sent == []

        issued = await service.send_code(identity, channel)
        assert sender.sent == [("a@b.com", issued.code, Channel.EMAIL)]
        assert await store.get("otp:rate:identity:a@b.com") == "1"

    @pytest.mark.asyncio
    async def test_locale_reaches_sender(self, service, sender):
        await service.issue("a@b.com", Channel.EMAIL, locale="es-DO")

        assert sender.locales == ["es-DO"]


class TestValidation:
    """Malformed input is rejected before the rate guard or store."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", ["not-a-phone", "", "+0123", "+1234567890123456", "a@b.com"])
    async def test_bad_phone(self, service, store, sender, identity):
        with pytest.raises(ValidationFailed):
            await service.issue(identity, Channel.WHATSAPP)

        assert await store.get(f"otp:rate:identity:{identity}") is None
        assert sender.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", ["not-an-email", "", "a@", "@b.com", "+18095551234"])
    async def test_bad_email(self, service, sender, identity):
        with pytest.raises(ValidationFailed):
            await service.issue(identity, Channel.EMAIL)

        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_malformed_identity_does_not_count(self, service, store):
        with pytest.raises(ValidationFailed):
            await service.issue("not-a-phone", Channel.WHATSAPP)

        assert await store.get("otp:rate:identity:not-a-phone") is None
        assert store._data == {}

    @pytest.mark.asyncio
    async def test_unknown_channel(self, service, sender):
        with pytest.raises(ValidationFailed) as exc_info:
            await service.issue("+18095551234", "sms")

        assert exc_info.value.field == "channel"
        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_non_ascii_digits_rejected(self, service, sender):
        for _ in range(5):
            await service.issue("+18095551234", Channel.WHATSAPP)

        # Arabic-Indic digits spelling the same number
        with pytest.raises(ValidationFailed):
            await service.issue("+1٨٠٩٥٥٥١٢٣٤", Channel.WHATSAPP)

        with pytest.raises(RateLimited):
            await service.issue("18095551234", Channel.WHATSAPP)
        assert len(sender.sent) == 5


class TestRateLimiting:
    """Issuance throttling per identity and per source."""

    @pytest.mark.asyncio
    async def test_identity_limit(self, service, sender):
        for _ in range(5):
            await service.issue("+18095551234", Channel.WHATSAPP)

        with pytest.raises(RateLimited) as exc_info:
            await service.issue("+18095551234", Channel.WHATSAPP)

        assert exc_info.value.scope == "identity"
        assert exc_info.value.retry_after == 900
        assert len(sender.sent) == 5

    @pytest.mark.asyncio
    async def test_limit_is_per_identity(self, service):
        for _ in range(5):
            await service.issue("+18095551234", Channel.WHATSAPP)

        issued = await service.issue("+18095559999", Channel.WHATSAPP)
        assert issued.identity == "+18095559999"

    @pytest.mark.asyncio
    async def test_source_limit(self, store, clock):
        config = OTPConfig(source_rate_limit=2)
        sender = RecordingSender()
        issuer = OTPIssuer(store, sender, config=config, clock=clock)

        await issuer.issue("a@b.com", Channel.EMAIL, source="10.0.0.1")
        await issuer.issue("c@d.com", Channel.EMAIL, source="10.0.0.1")

        with pytest.raises(RateLimited) as exc_info:
            await issuer.issue("e@f.com", Channel.EMAIL, source="10.0.0.1")

        assert exc_info.value.scope == "source"
        # The victim identity was not charged for the denied attempt
        assert await store.get("otp:rate:identity:e@f.com") is None

    @pytest.mark.asyncio
    async def test_concurrent_issuance_never_exceeds_limit(self, service, sender):
        results = await asyncio.gather(
            *[service.issue("+18095551234", Channel.WHATSAPP) for _ in range(20)],
            return_exceptions=True,
        )

        issued = [r for r in results if not isinstance(r, Exception)]
        limited = [r for r in results if isinstance(r, RateLimited)]
        assert len(issued) == 5
        assert len(limited) == 15
        assert len(sender.sent) == 5

    @pytest.mark.asyncio
    async def test_limit_lifts_after_window(self, service, clock):
        for _ in range(5):
            await service.issue("a@b.com", Channel.EMAIL)

        clock.advance(901)

        issued = await service.issue("a@b.com", Channel.EMAIL)
        assert issued.identity == "a@b.com"

    @pytest.mark.asyncio
    async def test_custom_rate_guard(self, store, clock):
        guard = RateGuard(store, prefix="tenant-otp")
        issuer = OTPIssuer(store, RecordingSender(), rate_guard=guard, clock=clock)

        await issuer.issue("a@b.com", Channel.EMAIL)

        assert await store.get("tenant-otp:rate:identity:a@b.com") == "1"


class TestDelivery:
    """Delivery failures are reported without unwinding the record."""

    @pytest.mark.asyncio
    async def test_failed_delivery_keeps_record(self, store, clock):
        sender = RecordingSender(fail_with="template not approved")
        issuer = OTPIssuer(store, sender, clock=clock)

        with pytest.raises(DeliveryFailed) as exc_info:
            await issuer.issue("+18095551234", Channel.WHATSAPP)

        issued = exc_info.value.issued
        assert exc_info.value.reason == "template not approved"
        assert issued.identity == "+18095551234"
        assert await store.get(record_key("otp", issued.code)) is not None

    @pytest.mark.asyncio
    async def test_sender_exception_is_wrapped(self, store, clock):
        sender = RecordingSender(raise_exc=ConnectionError("provider down"))
        issuer = OTPIssuer(store, sender, clock=clock)

        with pytest.raises(DeliveryFailed) as exc_info:
            await issuer.issue("a@b.com", Channel.EMAIL)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.issued is not None
