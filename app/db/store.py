"""
app/db/store.py

Purpose: Persistence collaborator contract

- Everything the routing core reads or writes goes through this interface
- MongoStore (app/services/mongo_store.py) is the production implementation
- Implementations raise PersistenceError on failure or timeout
"""

from typing import Any, Dict, List, Optional, Protocol

from app.models.catalog import CatalogItem
from app.models.conversation import ConversationState
from app.models.order import Order, OrderDraft, OrderStatus
from app.models.tenant import Tenant


class TenantStore(Protocol):

    # Tenants
    async def get_tenant_by_session(self, session_id: str) -> Optional[Tenant]: ...

    async def get_tenant_by_phone(self, phone_number: str) -> Optional[Tenant]: ...

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]: ...

    async def get_active_tenants(self) -> List[Tenant]: ...

    async def get_tenant_stats(self, tenant_id: str) -> Dict[str, Any]: ...

    # Catalog
    async def get_catalog_items(self, tenant_id: str) -> List[CatalogItem]: ...

    async def get_catalog_item(self, tenant_id: str, item_code: str) -> Optional[CatalogItem]: ...

    # Orders
    async def create_order(self, draft: OrderDraft) -> Order: ...

    async def get_order(self, order_id: str) -> Optional[Order]: ...

    async def get_customer_orders(self, tenant_id: str, customer_phone: str, limit: int) -> List[Order]: ...

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]: ...

    # Conversation state
    async def get_conversation_state(self, tenant_id: str, customer_phone: str) -> Optional[ConversationState]: ...

    async def update_conversation_state(self, tenant_id: str, customer_phone: str, state: ConversationState) -> None: ...

    async def clear_conversation_state(self, tenant_id: str, customer_phone: str) -> None: ...

    # Usage
    async def increment_usage(self, tenant_id: str, metric: str) -> None: ...

    async def increment_message_count(self, tenant_id: str) -> None: ...

    async def get_tenant_usage(self, tenant_id: str) -> Dict[str, int]: ...

    # Logs
    async def log_activity(self, tenant_id: str, action: str, data: Dict[str, Any]) -> None: ...

    async def log_interaction(self, record: Dict[str, Any]) -> None: ...
