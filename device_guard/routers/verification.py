"""
Email verification endpoints – send a one-time code, verify it, and look
up whether a customer is already verified.
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from device_guard.dependencies import Mailer, Otp, Shopify
from device_guard.errors import BadRequest, EmailDeliveryError, TagMutationError
from device_guard.models import (
    EmailSendRequest,
    EmailVerifyRequest,
    StatusResponse,
    VerifiedStatus,
)
from device_guard.rate_limit import AUTH, STRICT, limiter
from device_guard.services.otp import VerifyOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["verification"])


def _disallowed(status_code: int, reason: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=StatusResponse(status="disallowed", reason=reason, message=message).model_dump(
            exclude_none=True
        ),
    )


@router.post(
    "/email/send",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    operation_id="sendVerificationCode",
    summary="Send (or resend) the account's verification code",
)
@limiter.limit(STRICT)
async def send_code(request: Request, body: EmailSendRequest, otp: Otp, mailer: Mailer):
    """
    Reuse the account's live code or issue a new one, then email it.

    A delivery failure is reported as a soft 400: the code is already
    stored, so the customer can simply press resend.
    """
    if not body.address:
        raise BadRequest("accountId and address are required.")

    code = await otp.issue_or_reuse(body.account_id)
    logger.info("[EMAIL - %s] Sending verification code", body.address)
    try:
        await mailer.send_code(body.address, code)
    except EmailDeliveryError:
        logger.warning("[EMAIL - %s] Delivery failed", body.address)
        return _disallowed(
            status.HTTP_400_BAD_REQUEST,
            "delivery_failed",
            "Could not send the code. Please try again.",
        )
    return StatusResponse(status="allowed")


@router.post(
    "/email/verify",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    operation_id="verifyCode",
    summary="Verify a code and tag the customer as verified",
)
@limiter.limit(AUTH)
async def verify_code(request: Request, body: EmailVerifyRequest, otp: Otp):
    try:
        outcome = await otp.verify(body.account_id, body.external_customer_id, body.code)
    except TagMutationError:
        logger.exception(
            "[EMAIL - %s] Code consumed but the verified tag could not be added",
            body.external_customer_id,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=StatusResponse(
                status="error",
                reason="tag_failed",
                message="Your code was accepted but verification could not be saved. "
                "Please request a new code.",
            ).model_dump(exclude_none=True),
        )

    if outcome is VerifyOutcome.VERIFIED:
        return StatusResponse(status="allowed")
    return _disallowed(status.HTTP_400_BAD_REQUEST, outcome.value, outcome.message)


@router.get(
    "/customers/{external_customer_id}/verified",
    response_model=VerifiedStatus,
    operation_id="getCustomerVerified",
    summary="Whether the Shopify customer carries the verified tag",
)
async def get_customer_verified(external_customer_id: str, shopify: Shopify) -> VerifiedStatus:
    verified = await shopify.has_verified_tag(external_customer_id)
    return VerifiedStatus(external_customer_id=external_customer_id, verified=verified)
