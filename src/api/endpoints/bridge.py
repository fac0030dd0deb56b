import logging
from fastapi import APIRouter, Depends, HTTPException

from core.bridge.base import Bridge
from core.bridge.callback import CallbackBridge
from core.dependencies import get_bridge
from photoshare.upload.schema import IdentifierDelivery, TokenDelivery

logger = logging.getLogger(__name__)
router = APIRouter()


def callback_bridge(bridge: Bridge = Depends(get_bridge)) -> CallbackBridge:
    if not isinstance(bridge, CallbackBridge):
        raise HTTPException(status_code=409, detail="Worker is not running a callback bridge")
    return bridge


@router.get("/commands")
async def collect_commands(bridge: CallbackBridge = Depends(callback_bridge)):
    """Commands waiting for the host. Each command is handed out once."""
    if bridge.outbox is None:
        return []
    return bridge.outbox.drain()


@router.post("/identifiers/{event_id}", status_code=202)
async def deliver_identifiers(event_id: str, body: IdentifierDelivery, bridge: CallbackBridge = Depends(callback_bridge)):
    bridge.deliver_identifiers(event_id, body.result)
    return {"status": "accepted"}


@router.post("/token", status_code=202)
async def deliver_token(body: TokenDelivery, bridge: CallbackBridge = Depends(callback_bridge)):
    if body.error:
        bridge.deliver_token_error(body.error)
    else:
        bridge.deliver_token(body.token)
    return {"status": "accepted"}
