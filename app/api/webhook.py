"""
app/api/webhook.py

Purpose: WAHA WhatsApp webhook endpoint

- Receives session events from the WAHA gateway
- Ignores everything except inbound text messages
- Passes messages to the message router
- Sends the router's reply back through the tenant's session
"""

from fastapi import APIRouter, Depends

from app.core.logging import get_logger, LogContext
from app.flow.dispatcher import MessageRouter
from app.schemas.webhook import WahaWebhookEvent
from app.services.waha_service import WahaService
from app.api.deps import get_message_router, get_waha_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/webhook")
async def webhook_handler(
    event: WahaWebhookEvent,
    message_router: MessageRouter = Depends(get_message_router),
    waha: WahaService = Depends(get_waha_service),
):
    """
    Webhook endpoint for WAHA session events

    Every processable message gets a reply, including the generic
    replies for unknown or inactive tenants. A gateway failure while
    sending surfaces as a DispatchError (502).
    """
    if not event.is_processable:
        logger.debug(f"Ignoring webhook event: {event.event}")
        return {"status": "ignored"}

    customer_phone = event.customer_phone

    with LogContext(session_id=event.session, customer_phone=customer_phone):
        logger.info(f"📱 WAHA message received: {event.text[:50]}")

        result = await message_router.route_message(event.session, customer_phone, event.text)

        if not result.success:
            logger.warning(f"Routing failed: {result.error}")

        await waha.send_text(event.session, customer_phone, result.message)

    return {"status": "success" if result.success else "error", "routed": result.success}


@router.get("/webhook")
async def webhook_verification():
    """
    Liveness endpoint for the gateway's webhook configuration check
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
