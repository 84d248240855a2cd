"""
app/flow/registry.py

Purpose: Handler loading and lifecycle

- Maps business_type -> handler class
- One initialized handler per tenant, cached until reload
- Refreshes the handler's tenant snapshot on every cache hit
- Reload / clear / shutdown run handler cleanup
"""

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional, Type

from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.db.store import TenantStore
from app.flow.handlers.base import BaseHandler
from app.flow.handlers.pharmacy import PharmacyHandler
from app.flow.handlers.restaurant import RestaurantHandler
from app.flow.handlers.retail import RetailHandler
from app.models.tenant import Tenant
from app.services.tenant_resolver import TenantResolver

logger = get_logger(__name__)


HANDLER_TYPES: Dict[str, Type[BaseHandler]] = {
    "restaurant": RestaurantHandler,
    "pharmacy": PharmacyHandler,
    "retail": RetailHandler,
}


def register_handler_type(business_type: str, handler_class: Type[BaseHandler]):
    """Adds a business type to the registry (e.g. from a deployment hook)."""
    HANDLER_TYPES[business_type] = handler_class


@dataclass
class HandlerCacheEntry:
    handler: BaseHandler
    loaded_at: float


class HandlerRegistry:
    """
    Caches one initialized handler per tenant.

    Initialization happens once per cache miss. A reload that lands while
    a handler is still initializing wins: the late handler answers the
    turn it was built for but is not cached; acquire() cleans it up
    once that turn ends.
    """

    def __init__(
        self,
        store: TenantStore,
        resolver: TenantResolver,
        handler_types: Optional[Dict[str, Type[BaseHandler]]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.resolver = resolver
        self.handler_types = handler_types if handler_types is not None else HANDLER_TYPES
        self._clock = clock
        self._handlers: Dict[str, HandlerCacheEntry] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0

    def _generation(self, tenant_id: str):
        return (self._epoch, self._generations.get(tenant_id, 0))

    async def resolve_handler(self, tenant: Tenant) -> BaseHandler:
        """
        Returns the tenant's handler, creating and initializing it on miss.

        Raises:
            ConfigurationError: business_type has no registered handler
        """
        entry = self._handlers.get(tenant.id)
        if entry is not None:
            entry.handler.tenant = tenant
            return entry.handler

        handler_class = self.handler_types.get(tenant.business_type)
        if handler_class is None:
            raise ConfigurationError(
                f"Unknown business type: {tenant.business_type}",
                details={"tenant_id": tenant.id, "business_type": tenant.business_type},
            )

        generation = self._generation(tenant.id)

        handler = handler_class(tenant, self.store)
        await handler.initialize()

        if self._generation(tenant.id) != generation:
            logger.info("Tenant reloaded during initialization; handler not cached", extra={"tenant_id": tenant.id})
            return handler

        existing = self._handlers.get(tenant.id)
        if existing is not None:
            # Another turn finished initializing first
            await self._cleanup(tenant.id, handler)
            existing.handler.tenant = tenant
            return existing.handler

        self._handlers[tenant.id] = HandlerCacheEntry(handler=handler, loaded_at=self._clock())
        logger.info(
            f"✅ Loaded {tenant.business_type} handler for {tenant.business_name}",
            extra={"tenant_id": tenant.id, "business_type": tenant.business_type}
        )
        return handler

    @asynccontextmanager
    async def acquire(self, tenant: Tenant) -> AsyncIterator[BaseHandler]:
        """
        resolve_handler for the length of one turn. A handler that was
        built but not cached is cleaned up when the turn ends.
        """
        handler = await self.resolve_handler(tenant)
        entry = self._handlers.get(tenant.id)
        cached = entry is not None and entry.handler is handler
        try:
            yield handler
        finally:
            if not cached:
                await self._cleanup(tenant.id, handler)

    async def _cleanup(self, tenant_id: str, handler: BaseHandler):
        try:
            await handler.cleanup()
        except Exception as e:
            logger.error(f"Error cleaning up handler: {e}", extra={"tenant_id": tenant_id}, exc_info=True)

    async def reload(self, tenant_id: str) -> bool:
        """
        Drops the cached handler and tenant lookups so the next message
        starts from fresh data.

        Returns:
            True if a handler was cached
        """
        self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1
        entry = self._handlers.pop(tenant_id, None)

        if entry is not None:
            await self._cleanup(tenant_id, entry.handler)

        self.resolver.invalidate_tenant(tenant_id)
        logger.info("🔄 Tenant reloaded", extra={"tenant_id": tenant_id})
        return entry is not None

    def clear_all(self):
        self._epoch += 1
        self._handlers.clear()
        self.resolver.clear()
        logger.info("All handler and tenant caches cleared")

    async def shutdown(self):
        for tenant_id, entry in list(self._handlers.items()):
            await self._cleanup(tenant_id, entry.handler)
        self.clear_all()

    def get_cached(self, tenant_id: str) -> Optional[HandlerCacheEntry]:
        return self._handlers.get(tenant_id)

    def stats(self) -> Dict[str, object]:
        return {
            "cached_handlers": len(self._handlers),
            "cached_tenants": self.resolver.size,
            "cache_ttl_seconds": self.resolver.ttl_seconds,
            "handler_types": sorted(self.handler_types.keys()),
        }
