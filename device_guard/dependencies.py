"""
FastAPI dependencies exposing the services built in the app lifespan.

Tests can swap any of them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from device_guard.services.accounts import AccountRegistry, DeviceLedger
from device_guard.services.email import CodeMailer
from device_guard.services.gate import DeviceGate
from device_guard.services.otp import OtpManager
from device_guard.services.settings import StorefrontSettings
from device_guard.services.shopify import ShopifyClient


def get_gate(request: Request) -> DeviceGate:
    return request.app.state.gate


def get_registry(request: Request) -> AccountRegistry:
    return request.app.state.registry


def get_ledger(request: Request) -> DeviceLedger:
    return request.app.state.ledger


def get_settings(request: Request) -> StorefrontSettings:
    return request.app.state.settings


def get_otp_manager(request: Request) -> OtpManager:
    return request.app.state.otp


def get_mailer(request: Request) -> CodeMailer:
    return request.app.state.mailer


def get_shopify(request: Request) -> ShopifyClient:
    return request.app.state.shopify


Gate = Annotated[DeviceGate, Depends(get_gate)]
Registry = Annotated[AccountRegistry, Depends(get_registry)]
Ledger = Annotated[DeviceLedger, Depends(get_ledger)]
Settings = Annotated[StorefrontSettings, Depends(get_settings)]
Otp = Annotated[OtpManager, Depends(get_otp_manager)]
Mailer = Annotated[CodeMailer, Depends(get_mailer)]
Shopify = Annotated[ShopifyClient, Depends(get_shopify)]
