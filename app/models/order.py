"""
app/models/order.py

Purpose: Order document model

- Line items are price snapshots taken when the order is created
- Total is computed once at creation
- Order number is assigned by the store and treated as opaque
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


PICKUP_ADDRESS = "Customer collection"


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: Optional[str] = None
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class CustomerInfo(BaseModel):
    phone: str
    name: Optional[str] = None
    address: str
    delivery_type: DeliveryType = DeliveryType.DELIVERY


class Order(BaseModel):
    id: str
    tenant_id: str
    customer_phone: str
    customer_name: Optional[str] = None
    order_number: str
    items: List[OrderItem]
    total: float
    delivery_type: DeliveryType = DeliveryType.DELIVERY
    delivery_address: str
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OrderDraft(BaseModel):
    """Order fields known before the store assigns id, number and timestamp."""

    tenant_id: str
    customer_phone: str
    customer_name: Optional[str] = None
    items: List[OrderItem]
    total: float
    delivery_type: DeliveryType
    delivery_address: str
    status: OrderStatus = OrderStatus.PENDING
