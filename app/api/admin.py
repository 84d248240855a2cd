"""
app/api/admin.py

Purpose: Admin control surface

- Order status updates (notifies the customer)
- Free-text notifications from a tenant's session
- Tenant listing, stats and handler reloads
- Webhooks from tenants' own systems
- Router stats and cache clearing
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_message_router, get_waha_service, require_admin_key
from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.flow.dispatcher import MessageRouter, OutboundNotification
from app.schemas.admin import NotificationRequest, OrderStatusUpdate
from app.schemas.response import ActionResponse
from app.services.waha_service import WahaService

logger = get_logger(__name__)
router = APIRouter(dependencies=[Depends(require_admin_key)])


async def _dispatch(waha: WahaService, notification: OutboundNotification):
    if not notification.session_id:
        raise ConfigurationError(
            "Tenant has no WhatsApp session",
            details={"tenant_id": notification.tenant_id},
        )
    await waha.send_text(notification.session_id, notification.to, notification.message)


@router.post("/orders/{order_id}/status", response_model=ActionResponse)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    message_router: MessageRouter = Depends(get_message_router),
    waha: WahaService = Depends(get_waha_service),
):
    notification = await message_router.update_order_status(update.tenant_id, order_id, update.status)

    if update.notify:
        await _dispatch(waha, notification)

    return ActionResponse(
        message=f"Order status updated to {update.status.value}",
        data={"notification": notification.to_dict(), "sent": update.notify},
    )


@router.post("/notifications/send", response_model=ActionResponse)
async def send_notification(
    request: NotificationRequest,
    message_router: MessageRouter = Depends(get_message_router),
    waha: WahaService = Depends(get_waha_service),
):
    notification = await message_router.prepare_notification(
        request.tenant_id, request.customer_phone, request.message
    )
    await _dispatch(waha, notification)
    return ActionResponse(message="Notification sent", data=notification.to_dict())


@router.get("/tenants")
async def list_active_tenants(message_router: MessageRouter = Depends(get_message_router)):
    tenants = await message_router.get_active_tenants()
    return {
        "count": len(tenants),
        "tenants": [tenant.model_dump(mode="json") for tenant in tenants],
    }


@router.get("/tenants/{tenant_id}/stats")
async def tenant_stats(tenant_id: str, message_router: MessageRouter = Depends(get_message_router)):
    return await message_router.get_tenant_stats(tenant_id)


@router.post("/tenants/{tenant_id}/reload", response_model=ActionResponse)
async def reload_tenant(tenant_id: str, message_router: MessageRouter = Depends(get_message_router)):
    was_cached = await message_router.reload_tenant(tenant_id)
    return ActionResponse(message="Tenant reloaded", data={"tenant_id": tenant_id, "was_cached": was_cached})


@router.post("/webhooks/{tenant_id}")
async def tenant_webhook(
    tenant_id: str,
    payload: Dict[str, Any] = Body(...),
    message_router: MessageRouter = Depends(get_message_router),
):
    return await message_router.handle_external_webhook(tenant_id, payload)


@router.get("/system/stats")
async def system_stats(message_router: MessageRouter = Depends(get_message_router)):
    return message_router.stats()


@router.post("/system/clear-cache", response_model=ActionResponse)
async def clear_cache(message_router: MessageRouter = Depends(get_message_router)):
    message_router.clear_caches()
    logger.info("Caches cleared via admin API")
    return ActionResponse(message="All caches cleared")
