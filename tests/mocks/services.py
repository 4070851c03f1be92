"""
In-memory stand-ins for the outbound collaborators.

None of these make network calls; they record what they were asked to do
so tests can assert on it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from device_guard.errors import EmailDeliveryError, TagMutationError

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MockShopifyClient:
    """Drop-in replacement for ShopifyClient."""

    def __init__(self) -> None:
        self.tagged: list[str] = []
        self.verified_customers: set[str] = set()
        self.fail = False

    async def add_verified_tag(self, customer_id: str) -> None:
        if self.fail:
            raise TagMutationError("tagsAdd failed")
        self.tagged.append(customer_id)
        self.verified_customers.add(customer_id)

    async def has_verified_tag(self, customer_id: str) -> bool:
        if self.fail:
            raise TagMutationError("customer query failed")
        return customer_id in self.verified_customers

    async def close(self) -> None:
        pass


class MockMailer:
    """Drop-in replacement for CodeMailer."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_code(self, to_address: str, code: str) -> None:
        if self.fail:
            raise EmailDeliveryError("SMTP unavailable")
        self.sent.append((to_address, code))

    @property
    def last_code(self) -> str | None:
        return self.sent[-1][1] if self.sent else None
