"""
OTP Configuration
=================
Configuration for code issuance, rate limiting, storage and delivery.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OTPConfig:
    """Configuration for one-time signin codes."""
    code_ttl_seconds: int = 300  # 5 minutes
    code_bytes: int = 16
    key_prefix: str = "otp"

    # 5 attempts per 15 minutes, per account and per source IP
    identity_rate_limit: int = 5
    identity_rate_window_seconds: int = 900
    source_rate_limit: int = 5
    source_rate_window_seconds: int = 900

    # Redemption attempts per source IP
    verify_rate_limit: int = 5
    verify_rate_window_seconds: int = 900

    redis_url: str = "redis://localhost:6379/0"
    store_timeout_seconds: float = 2.0

    whatsapp_api_url: str = "https://graph.facebook.com/v18.0"
    whatsapp_access_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_template_name: str = "otpcode"
    whatsapp_template_language: str = "es"

    emailer_url: Optional[str] = None
    delivery_timeout_seconds: float = 10.0

    log_level: str = "INFO"
    json_logs: bool = True

    @classmethod
    def from_env(cls) -> "OTPConfig":
        """Build a config from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            code_ttl_seconds=int(os.environ.get("OTP_CODE_TTL_SECONDS", defaults.code_ttl_seconds)),
            code_bytes=int(os.environ.get("OTP_CODE_BYTES", defaults.code_bytes)),
            key_prefix=os.environ.get("OTP_KEY_PREFIX", defaults.key_prefix),
            identity_rate_limit=int(os.environ.get("OTP_IDENTITY_RATE_LIMIT", defaults.identity_rate_limit)),
            identity_rate_window_seconds=int(
                os.environ.get("OTP_IDENTITY_RATE_WINDOW", defaults.identity_rate_window_seconds)
            ),
            source_rate_limit=int(os.environ.get("OTP_SOURCE_RATE_LIMIT", defaults.source_rate_limit)),
            source_rate_window_seconds=int(
                os.environ.get("OTP_SOURCE_RATE_WINDOW", defaults.source_rate_window_seconds)
            ),
            verify_rate_limit=int(os.environ.get("OTP_VERIFY_RATE_LIMIT", defaults.verify_rate_limit)),
            verify_rate_window_seconds=int(
                os.environ.get("OTP_VERIFY_RATE_WINDOW", defaults.verify_rate_window_seconds)
            ),
            redis_url=os.environ.get("REDIS_URL", defaults.redis_url),
            store_timeout_seconds=float(
                os.environ.get("OTP_STORE_TIMEOUT_SECONDS", defaults.store_timeout_seconds)
            ),
            whatsapp_api_url=os.environ.get("WHATSAPP_API_URL", defaults.whatsapp_api_url),
            whatsapp_access_token=os.environ.get("WHATSAPP_ACCESS_TOKEN"),
            whatsapp_phone_number_id=os.environ.get("WHATSAPP_PHONE_NUMBER_ID"),
            whatsapp_template_name=os.environ.get(
                "WHATSAPP_LOGIN_TEMPLATE_NAME", defaults.whatsapp_template_name
            ),
            whatsapp_template_language=os.environ.get(
                "WHATSAPP_LOGIN_TEMPLATE_LANGUAGE", defaults.whatsapp_template_language
            ),
            emailer_url=os.environ.get("EMAILER_URL"),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level),
            json_logs=_env_bool("LOG_JSON", defaults.json_logs),
        )
