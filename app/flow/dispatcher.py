"""
app/flow/dispatcher.py

Purpose: Central message router

- Resolves the tenant that owns the WhatsApp session
- Refuses tenants that are not serving (suspended / cancelled)
- Hands the message to the tenant's handler under a per-customer lock
- Logs the interaction without ever delaying or failing the reply
- Admin-side operations: order status updates, notifications,
  tenant webhooks, reloads and stats
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from app.core.exceptions import ResourceNotFoundError, TenantInactiveError, TenantNotFoundError
from app.core.logging import get_logger, LogContext
from app.db.store import TenantStore
from app.flow.locks import KeyedLock
from app.flow.registry import HandlerRegistry
from app.models.order import OrderStatus
from app.models.tenant import Tenant
from app.services.tenant_resolver import TenantResolver
from utils.constants import (
    GENERIC_ERROR_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    TENANT_NOT_CONFIGURED_MESSAGE,
)
from utils.time_utils import utc_now

logger = get_logger(__name__)


@dataclass
class RouteResult:
    success: bool
    message: str
    error: Optional[str] = None
    tenant: Optional[Dict[str, Any]] = None


@dataclass
class OutboundNotification:
    tenant_id: str
    session_id: Optional[str]
    to: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "session_id": self.session_id,
            "to": self.to,
            "message": self.message,
        }


class MessageRouter:
    """Routes inbound WhatsApp messages to tenant handlers."""

    def __init__(
        self,
        store: TenantStore,
        resolver: Optional[TenantResolver] = None,
        registry: Optional[HandlerRegistry] = None,
    ):
        self.store = store
        self.resolver = resolver or TenantResolver(store)
        self.registry = registry or HandlerRegistry(store, self.resolver)
        self._locks = KeyedLock()
        self._background: Set[asyncio.Task] = set()

    async def route_message(self, session_id: str, customer_phone: str, message: str) -> RouteResult:
        """
        Routes one inbound message and returns the reply to send.

        Never raises: every failure becomes success=False with a reply
        that is safe to show the customer.
        """
        with LogContext(session_id=session_id, customer_phone=customer_phone):
            try:
                tenant = await self.resolver.resolve_by_session(session_id)

                if tenant is None:
                    logger.error(f"No tenant found for session: {session_id}")
                    return RouteResult(
                        success=False,
                        error="Tenant not found",
                        message=TENANT_NOT_CONFIGURED_MESSAGE,
                    )

                if not tenant.is_serving:
                    logger.info(f"Tenant {tenant.business_name} is {tenant.status.value}")
                    return RouteResult(
                        success=False,
                        error="Tenant inactive",
                        message=SERVICE_UNAVAILABLE_MESSAGE,
                    )

                async with self._locks.hold((tenant.id, customer_phone)):
                    async with self.registry.acquire(tenant) as handler:
                        reply = await handler.handle_message(message, customer_phone)

                self._log_interaction(tenant.id, customer_phone, message, reply)

                return RouteResult(success=True, message=reply, tenant=tenant.summary())

            except Exception as e:
                logger.error(f"❌ Error routing message: {e}", exc_info=True)
                return RouteResult(
                    success=False,
                    error=str(e),
                    message=GENERIC_ERROR_MESSAGE,
                )

    # ------------------------------------------------------------------
    # Interaction log (side channel)
    # ------------------------------------------------------------------

    def _log_interaction(self, tenant_id: str, customer_phone: str, incoming: str, outgoing: str):
        record = {
            "tenant_id": tenant_id,
            "customer_phone": customer_phone,
            "incoming_message": incoming,
            "outgoing_message": outgoing,
            "timestamp": utc_now(),
        }
        task = asyncio.create_task(self._write_interaction(record))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _write_interaction(self, record: Dict[str, Any]):
        try:
            await self.store.log_interaction(record)
        except Exception as e:
            logger.warning(f"Error logging interaction: {e}", extra={"tenant_id": record["tenant_id"]})

    async def drain(self):
        """Waits for pending interaction-log writes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def _require_tenant(self, tenant_id: str, serving: bool = False) -> Tenant:
        tenant = await self.store.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(details={"tenant_id": tenant_id})
        if serving and not tenant.is_serving:
            raise TenantInactiveError(details={"tenant_id": tenant_id, "status": tenant.status.value})
        return tenant

    async def update_order_status(self, tenant_id: str, order_id: str, status: OrderStatus) -> OutboundNotification:
        """
        Moves an order to a new status and composes the customer notification.

        Raises:
            TenantNotFoundError: unknown tenant
            ResourceNotFoundError: order missing or owned by another tenant
        """
        tenant = await self._require_tenant(tenant_id)

        existing = await self.store.get_order(order_id)
        if existing is None or existing.tenant_id != tenant_id:
            raise ResourceNotFoundError("Order not found", details={"order_id": order_id})

        order = await self.store.update_order_status(order_id, status)
        if order is None:
            raise ResourceNotFoundError("Order not found", details={"order_id": order_id})

        async with self.registry.acquire(tenant) as handler:
            notification = handler.compose_notification(order, status)

        logger.info(
            f"Order {order.order_number} -> {status.value}",
            extra={"tenant_id": tenant_id}
        )

        return OutboundNotification(
            tenant_id=tenant_id,
            session_id=tenant.whatsapp_session_id,
            to=notification.recipient,
            message=notification.text,
        )

    async def prepare_notification(self, tenant_id: str, customer_phone: str, message: str) -> OutboundNotification:
        """Addresses a free-text message from the tenant's session."""
        tenant = await self._require_tenant(tenant_id, serving=True)
        return OutboundNotification(
            tenant_id=tenant_id,
            session_id=tenant.whatsapp_session_id,
            to=customer_phone,
            message=message,
        )

    async def handle_external_webhook(self, tenant_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Events from the tenant's own systems, e.g. a POS."""
        tenant = await self._require_tenant(tenant_id, serving=True)
        async with self.registry.acquire(tenant) as handler:
            return await handler.handle_webhook(payload)

    async def get_active_tenants(self) -> List[Tenant]:
        return await self.store.get_active_tenants()

    async def get_tenant_stats(self, tenant_id: str) -> Dict[str, Any]:
        await self._require_tenant(tenant_id)
        return await self.store.get_tenant_stats(tenant_id)

    async def reload_tenant(self, tenant_id: str) -> bool:
        return await self.registry.reload(tenant_id)

    def clear_caches(self):
        self.registry.clear_all()

    def stats(self) -> Dict[str, Any]:
        stats = self.registry.stats()
        stats["active_conversations"] = len(self._locks)
        stats["pending_interaction_logs"] = len(self._background)
        return stats

    async def shutdown(self):
        await self.drain()
        await self.registry.shutdown()
        logger.info("Message router shut down")
