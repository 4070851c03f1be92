"""
One-time code lifecycle for email verification.

Per account a code moves through Absent → Active → (Consumed | Expired).
Expiry is lazy: an expired record is removed the next time it is read.

The store is the `otp_codes` table (see ``db``): one row per account,
replaced on issuance. Consumption is a conditional delete, so two
concurrent verifications of the right code cannot both succeed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Protocol

from device_guard import db
from device_guard.config import OTP_TTL_MINUTES
from device_guard.errors import BadRequest

logger = logging.getLogger(__name__)


class CustomerTagger(Protocol):
    """Anything that can mark a storefront customer as verified."""

    async def add_verified_tag(self, customer_id: str) -> None: ...


class VerifyOutcome(str, Enum):
    VERIFIED = "verified"
    INVALID_CODE = "invalid_code"
    CODE_EXPIRED = "code_expired"
    NO_CODE_FOUND = "no_code_found"

    @property
    def message(self) -> str:
        return _OUTCOME_MESSAGES[self]


_OUTCOME_MESSAGES = {
    VerifyOutcome.VERIFIED: "Email verified.",
    VerifyOutcome.INVALID_CODE: "Invalid code.",
    VerifyOutcome.CODE_EXPIRED: "Code expired. Request a new one with the resend button.",
    VerifyOutcome.NO_CODE_FOUND: "No code found. Request a new one.",
}


def generate_code() -> str:
    """Uniform six-digit code in [100000, 999999]."""
    return str(100_000 + secrets.randbelow(900_000))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _required(value: str | None, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise BadRequest(message)
    return value


class OtpManager:
    """Issues, resends and consumes verification codes."""

    def __init__(
        self,
        tagger: CustomerTagger,
        *,
        ttl: timedelta = timedelta(minutes=OTP_TTL_MINUTES),
        clock: Callable[[], datetime] = _utcnow,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._tagger = tagger
        self._ttl = ttl
        self._clock = clock
        self._code_factory = code_factory

    async def issue_or_reuse(self, account_id: str | None) -> str:
        """
        Return the account's live code, issuing a fresh one if there is
        none or the stored one has expired.

        Reusing a live code does not extend its expiry.
        """
        account_id = _required(account_id, "accountId is required.")
        now = self._clock()

        record = await db.read_otp(account_id)
        if record is not None:
            if not record.is_expired(now):
                return record.code
            await db.delete_otp(account_id, record.code)
            logger.info("Expired code for account '%s' discarded", account_id)

        code = self._code_factory()
        await db.upsert_otp(account_id, code, now + self._ttl)
        logger.info("New code issued for account '%s'", account_id)
        return code

    async def verify(
        self,
        account_id: str | None,
        external_customer_id: str | None,
        submitted_code: str | None,
    ) -> VerifyOutcome:
        """
        Check a submitted code and consume it on success.

        A wrong code leaves the record in place so the customer can retry
        within the same window. On a match the record is deleted before the
        customer is tagged; if tagging raises, the code stays consumed and a
        new one must be requested.
        """
        account_id = _required(account_id, "accountId is required.")
        external_customer_id = _required(
            external_customer_id, "externalCustomerId is required."
        )
        submitted_code = _required(submitted_code, "code is required.")
        now = self._clock()

        record = await db.read_otp(account_id)
        if record is None:
            logger.info("[EMAIL - %s] Code not found", external_customer_id)
            return VerifyOutcome.NO_CODE_FOUND

        if record.is_expired(now):
            await db.delete_otp(account_id, record.code)
            logger.info("[EMAIL - %s] Code expired", external_customer_id)
            return VerifyOutcome.CODE_EXPIRED

        if not secrets.compare_digest(record.code.encode(), submitted_code.encode()):
            logger.info("[EMAIL - %s] Invalid code", external_customer_id)
            return VerifyOutcome.INVALID_CODE

        if not await db.delete_otp(account_id, record.code):
            # Consumed by a concurrent verification.
            logger.info("[EMAIL - %s] Code already consumed", external_customer_id)
            return VerifyOutcome.NO_CODE_FOUND

        await self._tagger.add_verified_tag(external_customer_id)
        logger.info("[EMAIL - %s] Email verified", external_customer_id)
        return VerifyOutcome.VERIFIED
