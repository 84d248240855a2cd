"""
app/flow/handlers/retail.py

Handles: Retail shop ordering

- Item codes with an optional quantity: "#A1*3 #B2"
- Repeated codes add up into one order line
- Quantity per line capped by tenant config
"""

import re
from typing import Dict, List, Tuple

from app.core.logging import get_logger
from app.flow.handlers.base import BaseHandler
from app.models.order import OrderItem, OrderStatus
from app.services import order_service

logger = get_logger(__name__)

DEFAULT_MAX_QUANTITY = 10

# "#A1*3" -> code A1, quantity 3
QUANTITY_CODE_PATTERN = re.compile(r"#?([A-Za-z0-9]+)(?:\*(\d+))?")

RETAIL_STATUS_TEMPLATES = {
    OrderStatus.CONFIRMED: "{emoji} *Order Confirmed!*\n\nYour order #{order_number} has been confirmed!",
    OrderStatus.PREPARING: "📦 *Packing Your Order*\n\nOrder #{order_number} is being packed...",
    OrderStatus.READY: lambda context: (
        f"🎉 *Order Ready!*\n\nOrder #{context['order_number']} "
        + (
            "is ready for collection at:\n" + context["address"]
            if context["delivery_type"] == "pickup"
            else "has been shipped to:\n" + context["delivery_address"]
        )
    ),
    OrderStatus.DELIVERED: "✅ *Order Delivered*\n\nThank you for shopping with {business_name}! {emoji}",
    OrderStatus.CANCELLED: "❌ *Order Cancelled*\n\nYour order #{order_number} has been cancelled.",
}


def extract_quantities(text: str) -> List[Tuple[str, int]]:
    """
    Returns (code, quantity) pairs in first-seen order with repeated
    codes summed.

    "#A1*2 #B2 #a1" -> [("A1", 3), ("B2", 1)]
    """
    totals: Dict[str, int] = {}
    for match in QUANTITY_CODE_PATTERN.finditer(text or ""):
        code = match.group(1).upper()
        quantity = int(match.group(2)) if match.group(2) else 1
        if quantity < 1:
            continue
        totals[code] = totals.get(code, 0) + quantity
    return list(totals.items())


class RetailHandler(BaseHandler):
    business_type = "retail"
    default_emoji = "🛍️"
    status_templates = RETAIL_STATUS_TEMPLATES
    fallback_template = "Order #{order_number} status: {status}"

    @property
    def max_quantity(self) -> int:
        return int(self.config.get("max_quantity_per_item", DEFAULT_MAX_QUANTITY))

    async def format_catalog(self) -> str:
        items = await self.get_catalog_items()
        emoji = self.emoji

        message = f"{emoji} *{self.tenant.business_name.upper()} - CATALOG* {emoji}\n\n"
        message += self.get_business_info()
        message += "\n"

        for category, category_items in self.group_by_category(items).items():
            message += f"*{category.upper()}*\n"
            for item in category_items:
                message += self.format_catalog_line(item)
            message += "\n"

        message += self.order_instructions()
        message += f"Add a quantity with *: #A1*2 (max {self.max_quantity} each)"

        return message

    async def parse_order_items(self, message: str) -> List[OrderItem]:
        requested = extract_quantities(message)
        quantities = dict(requested)
        catalog_items = await order_service.lookup_available_items(
            self.store, self.tenant.id, [code for code, _ in requested]
        )

        items = []
        for item in catalog_items:
            quantity = min(quantities[item.item_code.upper()], self.max_quantity)
            items.append(order_service.snapshot_item(item, quantity=quantity))
        return items

    def validate_config(self) -> List[str]:
        value = self.config.get("max_quantity_per_item")
        if value is None:
            return []
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return ["max_quantity_per_item must be a positive integer"]
        return []

    def get_capabilities(self) -> List[str]:
        return super().get_capabilities() + [
            "category_grouping",
            "order_history",
            "item_quantities",
        ]
