"""
Device-limit check called by the storefront on every login.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from device_guard.dependencies import Gate
from device_guard.models import DeviceCheckRequest, StatusResponse
from device_guard.services.gate import Denied

router = APIRouter(prefix="/api/v1", tags=["devices"])


@router.post(
    "/check-device",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    operation_id="checkDevice",
    summary="Allow or deny a login from a device",
    responses={status.HTTP_403_FORBIDDEN: {"model": StatusResponse}},
)
async def check_device(body: DeviceCheckRequest, gate: Gate):
    """
    Allow the device if the account has a free slot or already knows the
    device; otherwise respond 403 with the block message.
    """
    decision = await gate.check_device(body.account_id, body.device_id)
    if isinstance(decision, Denied):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=StatusResponse(status="denied", message=decision.message).model_dump(
                exclude_none=True
            ),
        )
    return StatusResponse(status="allowed")
