"""
app/services/order_service.py

Purpose: Order assembly

- Extracts item codes from free text (deterministic, code-token only)
- Snapshots catalog items into order lines
- Computes totals
- Persists orders and tracks order usage
"""

import re
from typing import Iterable, List, Optional

from app.core.logging import get_logger
from app.db.store import TenantStore
from app.models.catalog import CatalogItem
from app.models.order import CustomerInfo, Order, OrderDraft, OrderItem, OrderStatus

logger = get_logger(__name__)

# A code is a maximal alphanumeric run, optionally preceded by '#'
ITEM_CODE_PATTERN = re.compile(r"#?([A-Za-z0-9]+)")


def extract_item_codes(text: str) -> List[str]:
    """
    Returns the distinct item codes in text, uppercased, in first-seen order.

    "#01 #02 #01" -> ["01", "02"]
    """
    codes: List[str] = []
    seen = set()
    for match in ITEM_CODE_PATTERN.finditer(text or ""):
        code = match.group(1).upper()
        if code in seen:
            continue
        seen.add(code)
        codes.append(code)
    return codes


def snapshot_item(item: CatalogItem, quantity: int = 1) -> OrderItem:
    """Copies the current catalog price into an immutable order line."""
    return OrderItem(item_id=item.id, name=item.name, price=item.price, quantity=quantity)


def calculate_total(items: Iterable[OrderItem]) -> float:
    return sum(item.price * item.quantity for item in items)


async def lookup_available_items(
    store: TenantStore,
    tenant_id: str,
    codes: Iterable[str],
) -> List[CatalogItem]:
    """
    Looks up each code in the tenant's catalog.
    Unknown codes and unavailable items are dropped; order is preserved.
    """
    found: List[CatalogItem] = []
    for code in codes:
        item: Optional[CatalogItem] = await store.get_catalog_item(tenant_id, code)
        if item is not None and item.available:
            found.append(item)
    return found


async def create_order(
    store: TenantStore,
    tenant_id: str,
    items: List[OrderItem],
    customer: CustomerInfo,
) -> Order:
    """
    Persists a pending order with a freshly computed total and counts
    it against the tenant's 'order' usage.
    """
    draft = OrderDraft(
        tenant_id=tenant_id,
        customer_phone=customer.phone,
        customer_name=customer.name,
        items=items,
        total=calculate_total(items),
        delivery_type=customer.delivery_type,
        delivery_address=customer.address,
        status=OrderStatus.PENDING,
    )
    order = await store.create_order(draft)
    await store.increment_usage(tenant_id, "order")
    return order
