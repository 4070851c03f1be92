"""
Account registry and device ledger.

The registry owns each account's device limit and provisions unseen
accounts on first sight. The ledger records which devices are bound to
which account. Both are thin over the database; the decision logic that
combines them lives in the gate.
"""

from __future__ import annotations

import logging

from device_guard import db
from device_guard.errors import BadRequest
from device_guard.models import Account
from device_guard.services.settings import StorefrontSettings

logger = logging.getLogger(__name__)


class AccountRegistry:
    """Per-account device limits, auto-created with the storefront default."""

    def __init__(self, settings: StorefrontSettings) -> None:
        self._settings = settings

    async def get_or_create_limit(self, account_id: str) -> int:
        """
        Return the account's device limit, provisioning the account with
        the current default if it has never been seen.

        An existing limit is never overwritten.
        """
        default_limit = await self._settings.default_limit()
        account, created = await db.get_or_create_account(account_id, default_limit)
        if created:
            logger.info(
                "New account '%s' created with default limit of %d devices",
                account_id,
                account.device_limit,
            )
        return account.device_limit

    async def set_limit(self, account_id: str, device_limit: int) -> Account:
        """Explicitly configure an account's limit (creating it if needed)."""
        if device_limit < 1:
            raise BadRequest("device_limit must be a positive integer.")
        account = await db.set_device_limit(account_id, device_limit)
        logger.info("Account '%s' device limit set to %d", account_id, device_limit)
        return account

    async def get(self, account_id: str) -> Account | None:
        return await db.get_account(account_id)


class DeviceLedger:
    """Which device identifiers are bound to which account."""

    async def list_devices(self, account_id: str) -> set[str]:
        return await db.list_devices(account_id)

    async def bind(self, account_id: str, device_id: str) -> None:
        """Bind a device. Binding an already-bound device is a no-op."""
        if await db.bind_device(account_id, device_id):
            logger.info(
                "New device '%s' registered for account '%s'", device_id, account_id
            )
