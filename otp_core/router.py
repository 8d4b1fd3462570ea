"""
OTP Router
==========
FastAPI endpoints for requesting and redeeming signin codes.
"""

from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog

from otp_core.errors import (
    DeliveryFailed,
    InvalidCode,
    OTPError,
    RateLimited,
    StoreUnavailable,
    ValidationFailed,
)
from otp_core.otp import Channel, RedeemedCode, hash_identity
from otp_core.service import OTPService

logger = structlog.get_logger(__name__)

AccountLookup = Callable[[str, Channel], Awaitable[bool]]
OnVerified = Callable[[RedeemedCode], Awaitable[Any]]


class SigninRequest(BaseModel):
    identity: str
    channel: str = Channel.EMAIL.value


def request_locale(request: Request) -> Optional[str]:
    """First language tag of the Accept-Language header, if any."""
    header = request.headers.get("accept-language", "")
    tag = header.split(",")[0].split(";")[0].strip()
    return tag or None


def to_http_error(exc: OTPError) -> HTTPException:
    """Map an OTP error onto the response the client sees."""
    if isinstance(exc, ValidationFailed):
        return HTTPException(status_code=422, detail={"error": exc.message, "field": exc.field})
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return HTTPException(
            status_code=429,
            detail={"error": exc.message, "retryAfter": exc.retry_after},
            headers=headers,
        )
    if isinstance(exc, InvalidCode):
        # Not found and expired look the same to the client
        return HTTPException(status_code=401, detail={"error": "invalid otp"})
    if isinstance(exc, DeliveryFailed):
        return HTTPException(status_code=502, detail={"error": "Failed to deliver code"})
    if isinstance(exc, StoreUnavailable):
        return HTTPException(
            status_code=503,
            detail={"error": "Service temporarily unavailable, please try again."},
        )
    return HTTPException(status_code=500, detail={"error": "Internal error"})


def create_otp_router(
    service: OTPService,
    account_lookup: Optional[AccountLookup] = None,
    on_verified: Optional[OnVerified] = None,
) -> APIRouter:
    """
    Create the signin router.

    Args:
        service: Issuer/redeemer pair
        account_lookup: Returns whether an account exists for an identity;
            unknown identities get the same 204 without a code being issued
        on_verified: Mints the session for a redeemed code; its return value
            is the response body

    Returns:
        FastAPI router with /signin, /signedin and /health endpoints
    """
    router = APIRouter(tags=["OTP"])

    @router.post("/signin", status_code=204)
    async def signin(body: SigninRequest, request: Request) -> Response:
        source = request.client.host if request.client else None
        try:
            # Counted before the lookup so unknown accounts are throttled too
            identity, channel = await service.admit(body.identity, body.channel, source=source)

            if account_lookup is not None and not await account_lookup(identity, channel):
                logger.info(
                    "Signin for unknown account",
                    identity_hash=hash_identity(identity),
                    channel=channel.value,
                )
                return Response(status_code=204)

            await service.send_code(identity, channel, locale=request_locale(request))
        except OTPError as e:
            raise to_http_error(e) from e

        return Response(status_code=204)

    @router.get("/signedin")
    async def signedin(request: Request, otp: str = Query(default="")) -> Any:
        source = request.client.host if request.client else None
        try:
            redeemed = await service.redeem(otp, source=source)
        except OTPError as e:
            raise to_http_error(e) from e

        if on_verified is not None:
            return await on_verified(redeemed)
        return {"identity": redeemed.identity, "channel": redeemed.channel.value}

    @router.get("/health")
    async def health() -> Any:
        try:
            await service.store.ping()
        except StoreUnavailable:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "store": service.store.name},
            )
        return {"status": "healthy", "store": service.store.name}

    return router
