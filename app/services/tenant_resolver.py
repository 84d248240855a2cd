"""
app/services/tenant_resolver.py

Purpose: Map a WhatsApp session id or phone number to a Tenant

- Process-local cache keyed separately by session and by phone
- Entries expire after TENANT_CACHE_TTL_SECONDS and are refetched
- Not-found lookups are never cached; every miss re-queries the store
- Eviction by tenant id for reloads
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.db.store import TenantStore
from app.models.tenant import Tenant

logger = get_logger(__name__)


@dataclass
class TenantCacheEntry:
    tenant: Tenant
    fetched_at: float


class TenantResolver:
    """TTL-cached tenant lookups in front of the store."""

    def __init__(
        self,
        store: TenantStore,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.TENANT_CACHE_TTL_SECONDS
        self._clock = clock
        self._cache: Dict[str, TenantCacheEntry] = {}

    def _cached(self, key: str) -> Optional[Tenant]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl_seconds:
            # pop with default: a concurrent clear may already have removed it
            self._cache.pop(key, None)
            return None
        return entry.tenant

    async def _resolve(self, key: str, fetch) -> Optional[Tenant]:
        tenant = self._cached(key)
        if tenant is not None:
            logger.debug(f"Tenant cache hit: {key}")
            return tenant

        tenant = await fetch()
        if tenant is not None:
            self._cache[key] = TenantCacheEntry(tenant=tenant, fetched_at=self._clock())
        else:
            logger.debug(f"Tenant lookup miss: {key}")
        return tenant

    async def resolve_by_session(self, session_id: str) -> Optional[Tenant]:
        return await self._resolve(
            f"session:{session_id}",
            lambda: self.store.get_tenant_by_session(session_id),
        )

    async def resolve_by_phone(self, phone_number: str) -> Optional[Tenant]:
        """Alternative routing when the gateway does not send a session id."""
        return await self._resolve(
            f"phone:{phone_number}",
            lambda: self.store.get_tenant_by_phone(phone_number),
        )

    def invalidate_tenant(self, tenant_id: str) -> int:
        """Evicts every entry (session or phone) that points at tenant_id."""
        stale = [key for key, entry in list(self._cache.items()) if entry.tenant.id == tenant_id]
        for key in stale:
            self._cache.pop(key, None)
        if stale:
            logger.info(f"Evicted {len(stale)} cached lookups", extra={"tenant_id": tenant_id})
        return len(stale)

    def clear(self) -> None:
        self._cache.clear()

    @property
    def size(self) -> int:
        return len(self._cache)
