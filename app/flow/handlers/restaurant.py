"""
app/flow/handlers/restaurant.py

Handles: Restaurant / food ordering

- Menu grouped by category with item descriptions
- Restaurant-specific order status notifications
- Pickup vs delivery wording once the order is ready
"""

from typing import Any, Dict, List

from app.core.logging import get_logger
from app.flow.handlers.base import BaseHandler
from app.models.order import OrderStatus

logger = get_logger(__name__)


def _ready_message(context: Dict[str, Any]) -> str:
    message = (
        f"🎉 *Order Ready!*\n\n"
        f"Your order #{context['order_number']} is ready for {context['delivery_type']}!\n\n"
    )
    if context["delivery_type"] == "pickup":
        message += "Please collect at:\n" + context["address"]
    else:
        message += "Our driver is on the way!"
    return message


RESTAURANT_STATUS_TEMPLATES = {
    OrderStatus.CONFIRMED: (
        "{emoji} *Order Confirmed!*\n\n"
        "Your order #{order_number} has been confirmed!\n"
        "Estimated ready time: 30-45 minutes"
    ),
    OrderStatus.PREPARING: (
        "👨‍🍳 *Order in Progress*\n\n"
        "Your order #{order_number} is being prepared..."
    ),
    OrderStatus.READY: _ready_message,
    OrderStatus.DELIVERED: (
        "✅ *Order Delivered*\n\n"
        "Thank you for choosing {business_name}!\n\n"
        "We hope you enjoyed your meal {emoji}"
    ),
    OrderStatus.CANCELLED: (
        "❌ *Order Cancelled*\n\n"
        "Your order #{order_number} has been cancelled.\n\n"
        "If you have questions, please contact us."
    ),
}


class RestaurantHandler(BaseHandler):
    business_type = "restaurant"
    default_emoji = "🍽️"
    status_templates = RESTAURANT_STATUS_TEMPLATES
    fallback_template = "Order #{order_number} status: {status}"

    async def format_catalog(self) -> str:
        items = await self.get_catalog_items()
        emoji = self.emoji

        message = f"{emoji} *{self.tenant.business_name.upper()} - MENU* {emoji}\n\n"
        message += self.get_business_info()
        message += "\n"

        for category, category_items in self.group_by_category(items).items():
            message += f"*{category.upper()}*\n"
            for item in category_items:
                message += self.format_catalog_line(item)
            message += "\n"

        message += self.order_instructions()
        message += "_We look forward to serving you!_ 😊"

        return message

    def validate_config(self) -> List[str]:
        problems = []
        radius = self.config.get("delivery_radius")
        if radius is not None:
            if isinstance(radius, bool) or not isinstance(radius, (int, float)) or radius <= 0:
                problems.append("delivery_radius must be a positive number of kilometres")
        return problems

    async def initialize(self):
        await super().initialize()

        if self.config.get("special_hours"):
            logger.info("Special hours configured", extra={"tenant_id": self.tenant.id})

        if self.config.get("delivery_radius"):
            logger.info(
                f"Delivery radius: {self.config['delivery_radius']}km",
                extra={"tenant_id": self.tenant.id}
            )

    def get_capabilities(self) -> List[str]:
        return super().get_capabilities() + [
            "category_grouping",
            "order_history",
            "item_descriptions",
            "special_requests",
        ]
