"""Pydantic models for the Device Guard API and storage rows."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ── Storage rows ──────────────────────────────────────────────────────────


class Account(BaseModel):
    """A storefront customer account with its device limit."""
    account_id: str = Field(..., description="Externally assigned account identifier")
    device_limit: int = Field(..., ge=1, description="Maximum number of bound devices")
    created_at: datetime = Field(..., description="When the account was first seen")
    updated_at: datetime = Field(..., description="Last limit change")


class OtpRecord(BaseModel):
    """The single live one-time code of an account."""
    account_id: str
    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


# ── Requests ──────────────────────────────────────────────────────────────


class _StorefrontRequest(BaseModel):
    # The storefront script sends camelCase; snake_case is accepted too.
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class DeviceCheckRequest(_StorefrontRequest):
    """A login attempt from a device."""
    account_id: Optional[str] = Field(None, alias="accountId", description="Customer account ID")
    device_id: Optional[str] = Field(None, alias="deviceId", description="Opaque device identifier")


class EmailSendRequest(_StorefrontRequest):
    """Request to (re)send a verification code."""
    account_id: Optional[str] = Field(None, alias="accountId", description="Customer account ID")
    address: Optional[EmailStr] = Field(None, description="Destination email address")


class EmailVerifyRequest(_StorefrontRequest):
    """Submission of a verification code."""
    account_id: Optional[str] = Field(None, alias="accountId", description="Customer account ID")
    external_customer_id: Optional[str] = Field(
        None, alias="externalCustomerId", description="Shopify customer ID to tag"
    )
    code: Optional[str] = Field(None, description="The six-digit code from the email")


class DeviceLimitUpdate(BaseModel):
    """Explicit per-account limit configuration."""
    device_limit: int = Field(..., ge=1, description="New device limit")


class SettingsPayload(BaseModel):
    """Storefront-wide device limit settings."""
    max_devices: int = Field(..., ge=1, description="Device limit given to new accounts")
    block_message: str = Field("", description="Message shown when a device is denied")


# ── Responses ─────────────────────────────────────────────────────────────


class StatusResponse(BaseModel):
    """Outcome of a storefront call."""
    status: str = Field(..., description="allowed, denied, disallowed or error")
    reason: Optional[str] = Field(None, description="Machine-readable failure reason")
    message: Optional[str] = Field(None, description="User-facing message")


class AccountView(BaseModel):
    """An account and its bound devices."""
    account_id: str
    device_limit: int
    devices: List[str] = Field(default_factory=list)


class VerifiedStatus(BaseModel):
    """Whether a Shopify customer carries the verified tag."""
    external_customer_id: str
    verified: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: datetime
