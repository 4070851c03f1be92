"""
Storefront settings: the device limit given to new accounts and the
message shown when a device is turned away.
"""

from __future__ import annotations

import logging

from device_guard import db
from device_guard.config import DEFAULT_DEVICE_LIMIT
from device_guard.errors import BadRequest
from device_guard.models import SettingsPayload

logger = logging.getLogger(__name__)

MAX_DEVICES_KEY = "max_devices"
BLOCK_MESSAGE_KEY = "block_message"


class StorefrontSettings:
    """Settings persisted in the `settings` table, with config defaults."""

    def __init__(self, default_limit: int = DEFAULT_DEVICE_LIMIT) -> None:
        self._default_limit = default_limit

    async def load(self) -> SettingsPayload:
        raw = await db.get_settings()
        return SettingsPayload(
            max_devices=int(raw.get(MAX_DEVICES_KEY, self._default_limit)),
            block_message=raw.get(BLOCK_MESSAGE_KEY, ""),
        )

    async def save(self, payload: SettingsPayload) -> SettingsPayload:
        if not payload.block_message.strip():
            raise BadRequest("block_message must not be empty.")
        await db.put_settings(
            {
                MAX_DEVICES_KEY: str(payload.max_devices),
                BLOCK_MESSAGE_KEY: payload.block_message,
            }
        )
        logger.info("Settings saved: max_devices=%d", payload.max_devices)
        return payload

    async def default_limit(self) -> int:
        return (await self.load()).max_devices

    async def block_message(self) -> str:
        return (await self.load()).block_message
