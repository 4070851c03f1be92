"""
Device-limit gate: decides whether a login from a device is allowed.

For each attempt:

1.  Look up the account's limit (provisioning unseen accounts).
2.  Load the devices already bound to the account.
3.  Below the limit: allow, binding the device if it is new.
4.  At or above the limit: allow known devices, deny new ones.

Lowering a limit never evicts devices that are already bound.

Steps 2–3 are not atomic. Two concurrent attempts with two different new
devices can both see a free slot and both bind, overshooting the limit by
at most (racers − 1). Bindings only happen at login, so this is accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from device_guard.errors import BadRequest
from device_guard.services.accounts import AccountRegistry, DeviceLedger
from device_guard.services.settings import StorefrontSettings

logger = logging.getLogger(__name__)

DEFAULT_DENIAL_MESSAGE = "You have reached the limit of {limit} devices."


@dataclass(frozen=True)
class Allowed:
    """The device may log in."""
    newly_bound: bool = False


@dataclass(frozen=True)
class Denied:
    """The account's device slots are full and this device is new."""
    message: str
    limit: int


GateDecision = Union[Allowed, Denied]


def denial_message(limit: int, block_message: str = "") -> str:
    """Render the denial text, substituting `{limit}` in custom messages."""
    template = block_message.strip() or DEFAULT_DENIAL_MESSAGE
    return template.replace("{limit}", str(limit))


class DeviceGate:
    """Combines the account registry and device ledger into allow/deny."""

    def __init__(
        self,
        registry: AccountRegistry,
        ledger: DeviceLedger,
        settings: StorefrontSettings,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._settings = settings

    async def check_device(
        self, account_id: str | None, device_id: str | None
    ) -> GateDecision:
        account_id = (account_id or "").strip()
        device_id = (device_id or "").strip()
        if not account_id or not device_id:
            raise BadRequest("accountId and deviceId are required.")

        logger.info("Device check: account '%s', device '%s'", account_id, device_id)

        limit = await self._registry.get_or_create_limit(account_id)
        devices = await self._ledger.list_devices(account_id)
        known = device_id in devices

        if len(devices) < limit:
            if not known:
                await self._ledger.bind(account_id, device_id)
            logger.info(
                "ALLOWED: account '%s' has %d device(s) (limit: %d)",
                account_id,
                len(devices),
                limit,
            )
            return Allowed(newly_bound=not known)

        if known:
            logger.info(
                "ALLOWED: known device '%s' for account '%s'", device_id, account_id
            )
            return Allowed()

        logger.info(
            "DENIED: account '%s' reached the limit of %d devices; new device '%s' blocked",
            account_id,
            limit,
            device_id,
        )
        block_message = await self._settings.block_message()
        return Denied(message=denial_message(limit, block_message), limit=limit)
