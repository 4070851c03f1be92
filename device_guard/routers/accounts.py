"""
Account limit configuration and storefront settings.
"""

from fastapi import APIRouter, HTTPException, status

from device_guard.dependencies import Ledger, Registry, Settings
from device_guard.models import AccountView, DeviceLimitUpdate, SettingsPayload

router = APIRouter(tags=["settings"])


@router.get(
    "/api/settings",
    response_model=SettingsPayload,
    operation_id="getSettings",
    summary="Get the default device limit and block message",
)
async def get_settings(settings: Settings) -> SettingsPayload:
    return await settings.load()


@router.post(
    "/api/settings",
    response_model=SettingsPayload,
    operation_id="saveSettings",
    summary="Save the default device limit and block message",
)
async def save_settings(body: SettingsPayload, settings: Settings) -> SettingsPayload:
    """
    `max_devices` applies to accounts provisioned from now on; existing
    accounts keep their limit.
    """
    return await settings.save(body)


@router.get(
    "/api/v1/accounts/{account_id}",
    response_model=AccountView,
    operation_id="getAccount",
    summary="Get an account's limit and bound devices",
)
async def get_account(account_id: str, registry: Registry, ledger: Ledger) -> AccountView:
    account = await registry.get(account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found",
        )
    devices = await ledger.list_devices(account_id)
    return AccountView(
        account_id=account.account_id,
        device_limit=account.device_limit,
        devices=sorted(devices),
    )


@router.put(
    "/api/v1/accounts/{account_id}/device-limit",
    response_model=AccountView,
    operation_id="setDeviceLimit",
    summary="Override one account's device limit",
)
async def set_device_limit(
    account_id: str, body: DeviceLimitUpdate, registry: Registry, ledger: Ledger
) -> AccountView:
    account = await registry.set_limit(account_id, body.device_limit)
    devices = await ledger.list_devices(account_id)
    return AccountView(
        account_id=account.account_id,
        device_limit=account.device_limit,
        devices=sorted(devices),
    )
