"""Error taxonomy.

Business outcomes (a denied device, a wrong or expired code) are return
values, not exceptions. The classes here are faults and client errors that
the HTTP layer maps onto status codes.
"""


__all__ = [
    "DeviceGuardError",
    "BadRequest",
    "StorageError",
    "TagMutationError",
    "EmailDeliveryError",
]


class DeviceGuardError(Exception):
    """Base class for all errors raised by this service."""

    pass


class BadRequest(DeviceGuardError):
    """Missing or malformed input. Raised before any storage is touched."""

    pass


class StorageError(DeviceGuardError):
    """The database failed or is unavailable.

    Transient from the caller's point of view. No retry is attempted here;
    the message names the failed operation but never the identifiers
    involved.
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class TagMutationError(DeviceGuardError):
    """The Shopify Admin API rejected or failed a customer tag request."""

    pass


class EmailDeliveryError(DeviceGuardError):
    """The mail transport could not deliver a code."""

    pass
