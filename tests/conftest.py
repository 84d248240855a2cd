from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

import pytest

from app.core.exceptions import PersistenceError
from app.models.catalog import CatalogItem
from app.models.conversation import ConversationState
from app.models.order import Order, OrderDraft, OrderStatus
from app.models.tenant import Tenant, TenantStatus, SERVING_STATUSES


class FakeStore:
    """In-memory TenantStore that records every call."""

    def __init__(self):
        self.tenants: Dict[str, Tenant] = {}
        self.catalog: Dict[str, List[CatalogItem]] = defaultdict(list)
        self.orders: Dict[str, Order] = {}
        self.states: Dict[tuple, ConversationState] = {}
        self.usage: Dict[tuple, int] = defaultdict(int)
        self.activity: List[Dict[str, Any]] = []
        self.interactions: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.fail_on: Set[str] = set()
        self._order_seq: Dict[str, int] = defaultdict(int)
        self._clock = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def _record(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise PersistenceError(f"Store call failed: {name}")

    # Seeding helpers
    def add_tenant(self, tenant: Tenant) -> Tenant:
        # Callers keep their own snapshot, as a handler would
        self.tenants[tenant.id] = tenant.model_copy(deep=True)
        return tenant

    def add_item(self, item: CatalogItem) -> CatalogItem:
        self.catalog[item.tenant_id].append(item)
        return item

    # Tenants
    def _copy(self, tenant: Optional[Tenant]) -> Optional[Tenant]:
        return tenant.model_copy(deep=True) if tenant else None

    async def get_tenant_by_session(self, session_id: str) -> Optional[Tenant]:
        self._record("get_tenant_by_session")
        for tenant in self.tenants.values():
            if tenant.whatsapp_session_id == session_id:
                return self._copy(tenant)
        return None

    async def get_tenant_by_phone(self, phone_number: str) -> Optional[Tenant]:
        self._record("get_tenant_by_phone")
        for tenant in self.tenants.values():
            if tenant.phone_number == phone_number:
                return self._copy(tenant)
        return None

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        self._record("get_tenant")
        return self._copy(self.tenants.get(tenant_id))

    async def get_active_tenants(self) -> List[Tenant]:
        self._record("get_active_tenants")
        return [self._copy(t) for t in self.tenants.values() if t.status in SERVING_STATUSES]

    async def get_tenant_stats(self, tenant_id: str) -> Dict[str, Any]:
        self._record("get_tenant_stats")
        orders = [o for o in self.orders.values() if o.tenant_id == tenant_id]
        return {"tenant_id": tenant_id, "total_orders": len(orders)}

    # Catalog
    async def get_catalog_items(self, tenant_id: str) -> List[CatalogItem]:
        self._record("get_catalog_items")
        return list(self.catalog[tenant_id])

    async def get_catalog_item(self, tenant_id: str, item_code: str) -> Optional[CatalogItem]:
        self._record("get_catalog_item")
        for item in self.catalog[tenant_id]:
            if item.item_code == item_code.upper():
                return item
        return None

    # Orders
    async def create_order(self, draft: OrderDraft) -> Order:
        self._record("create_order")
        self._order_seq[draft.tenant_id] += 1
        self._clock += timedelta(minutes=1)
        order = Order(
            id=f"order-{len(self.orders) + 1}",
            order_number=f"{self._order_seq[draft.tenant_id]:04d}",
            created_at=self._clock,
            **draft.model_dump(),
        )
        self.orders[order.id] = order
        return order

    async def get_order(self, order_id: str) -> Optional[Order]:
        self._record("get_order")
        return self.orders.get(order_id)

    async def get_customer_orders(self, tenant_id: str, customer_phone: str, limit: int) -> List[Order]:
        self._record("get_customer_orders")
        orders = [
            o for o in self.orders.values()
            if o.tenant_id == tenant_id and o.customer_phone == customer_phone
        ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[:limit]

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        self._record("update_order_status")
        order = self.orders.get(order_id)
        if order is None:
            return None
        updated = order.model_copy(update={"status": status})
        self.orders[order_id] = updated
        return updated

    # Conversation state
    async def get_conversation_state(self, tenant_id: str, customer_phone: str) -> Optional[ConversationState]:
        self._record("get_conversation_state")
        state = self.states.get((tenant_id, customer_phone))
        return state.model_copy(deep=True) if state else None

    async def update_conversation_state(self, tenant_id: str, customer_phone: str, state: ConversationState) -> None:
        self._record("update_conversation_state")
        self.states[(tenant_id, customer_phone)] = state.model_copy(deep=True)

    async def clear_conversation_state(self, tenant_id: str, customer_phone: str) -> None:
        self._record("clear_conversation_state")
        self.states.pop((tenant_id, customer_phone), None)

    # Usage
    async def increment_usage(self, tenant_id: str, metric: str) -> None:
        self._record("increment_usage")
        self.usage[(tenant_id, metric)] += 1

    async def increment_message_count(self, tenant_id: str) -> None:
        self._record("increment_message_count")
        self.tenants[tenant_id].monthly_message_count += 1

    async def get_tenant_usage(self, tenant_id: str) -> Dict[str, int]:
        self._record("get_tenant_usage")
        tenant = self.tenants[tenant_id]
        return {"messages": tenant.monthly_message_count, "message_limit": tenant.monthly_message_limit}

    # Logs
    async def log_activity(self, tenant_id: str, action: str, data: Dict[str, Any]) -> None:
        self._record("log_activity")
        self.activity.append({"tenant_id": tenant_id, "action": action, "data": data})

    async def log_interaction(self, record: Dict[str, Any]) -> None:
        self._record("log_interaction")
        self.interactions.append(record)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def restaurant_tenant(store):
    tenant = store.add_tenant(
        Tenant(
            id="t-pizza",
            business_name="Pizza Palace",
            business_type="restaurant",
            status=TenantStatus.ACTIVE,
            whatsapp_session_id="pizza-session",
            phone_number="27210000001",
            address="1 Long Street, Cape Town",
            branding={"emoji": "🍕"},
        )
    )
    store.add_item(CatalogItem(
        id="i-01", tenant_id=tenant.id, item_code="01", name="Margherita",
        description="Tomato, mozzarella, basil", price=89.0, category="Pizza",
    ))
    store.add_item(CatalogItem(
        id="i-02", tenant_id=tenant.id, item_code="02", name="Pepperoni",
        price=109.5, category="Pizza",
    ))
    store.add_item(CatalogItem(
        id="i-07", tenant_id=tenant.id, item_code="07", name="Garlic Bread",
        price=35.0, category="Sides",
    ))
    store.add_item(CatalogItem(
        id="i-99", tenant_id=tenant.id, item_code="99", name="Seasonal Special",
        price=150.0, category="Pizza", available=False,
    ))
    return tenant


@pytest.fixture
def pharmacy_tenant(store):
    tenant = store.add_tenant(
        Tenant(
            id="t-pharm",
            business_name="Corner Pharmacy",
            business_type="pharmacy",
            status=TenantStatus.TRIAL,
            whatsapp_session_id="pharm-session",
            address="5 Main Road",
        )
    )
    store.add_item(CatalogItem(
        id="p-10", tenant_id=tenant.id, item_code="P10", name="Paracetamol 500mg",
        price=25.0, category="Pain Relief",
    ))
    store.add_item(CatalogItem(
        id="p-20", tenant_id=tenant.id, item_code="P20", name="Amoxicillin 250mg",
        price=80.0, category="Prescription",
    ))
    return tenant


@pytest.fixture
def retail_tenant(store):
    tenant = store.add_tenant(
        Tenant(
            id="t-shop",
            business_name="Gadget Shop",
            business_type="retail",
            status=TenantStatus.ACTIVE,
            whatsapp_session_id="shop-session",
            config={"max_quantity_per_item": 5},
        )
    )
    store.add_item(CatalogItem(
        id="s-a1", tenant_id=tenant.id, item_code="A1", name="USB Cable",
        price=49.99, category="Accessories",
    ))
    store.add_item(CatalogItem(
        id="s-b2", tenant_id=tenant.id, item_code="B2", name="Phone Case",
        price=120.0, category="Accessories",
    ))
    return tenant
