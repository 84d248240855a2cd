"""
app/services/notification_service.py

Purpose: Order-status notification text

- Default templates per order status
- Handlers override any subset (tenant emoji, pickup vs delivery wording)
- Unmapped statuses fall back to a generic status line
- Pure: returns recipient + text, sending is left to the caller
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from app.models.order import Order, OrderStatus

Template = Union[str, Callable[[Dict[str, Any]], str]]

DEFAULT_STATUS_TEMPLATES: Dict[OrderStatus, Template] = {
    OrderStatus.CONFIRMED: "✅ Your order has been confirmed!",
    OrderStatus.PREPARING: "👨‍🍳 Your order is being prepared...",
    OrderStatus.READY: "🎉 Your order is ready for pickup/delivery!",
    OrderStatus.DELIVERED: "✅ Order delivered! Thank you!",
    OrderStatus.CANCELLED: "❌ Your order has been cancelled.",
}

DEFAULT_FALLBACK_TEMPLATE = "Order status: {status}"


@dataclass(frozen=True)
class Notification:
    recipient: str
    text: str


def render_template(template: Template, context: Dict[str, Any]) -> str:
    if callable(template):
        return template(context)
    return template.format(**context)


def compose_notification(
    order: Order,
    status: Union[OrderStatus, str],
    templates: Mapping[OrderStatus, Template] = DEFAULT_STATUS_TEMPLATES,
    context: Optional[Mapping[str, Any]] = None,
    fallback: Template = DEFAULT_FALLBACK_TEMPLATE,
) -> Notification:
    """
    Builds the customer-facing text for an order moving to status.

    Args:
        order: Order as already read from the store
        status: New status (a plain string is accepted for unknown values)
        templates: Status -> template mapping for the tenant's business type
        context: Extra placeholders (business_name, emoji, address, ...)
        fallback: Template used when status has no mapping

    Returns:
        Notification addressed to the order's customer
    """
    status_value = status.value if isinstance(status, OrderStatus) else str(status)
    values: Dict[str, Any] = {
        "order_number": order.order_number,
        "delivery_type": order.delivery_type.value,
        "delivery_address": order.delivery_address,
        "total": order.total,
        "status": status_value,
        **(context or {}),
    }

    try:
        key = OrderStatus(status_value)
    except ValueError:
        key = None

    template = templates.get(key) if key is not None else None
    if template is None:
        template = fallback

    return Notification(recipient=order.customer_phone, text=render_template(template, values))
