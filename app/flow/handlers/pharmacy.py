"""
app/flow/handlers/pharmacy.py

Handles: Pharmacy ordering

- Over-the-counter items can be ordered by item code
- Prescription categories are listed but must be collected in-store
"""

from typing import Any, Dict, List, Set

from app.core.logging import get_logger
from app.flow.handlers.base import BaseHandler
from app.models.catalog import CatalogItem
from app.models.order import OrderItem, OrderStatus
from app.services import order_service
from utils.constants import PRESCRIPTION_IN_STORE_MESSAGE

logger = get_logger(__name__)

DEFAULT_PRESCRIPTION_CATEGORIES = ["Prescription"]


def _ready_message(context: Dict[str, Any]) -> str:
    message = f"💊 *Order Ready!*\n\nYour order #{context['order_number']} is ready"
    if context["delivery_type"] == "pickup":
        message += " for collection at:\n" + context["address"]
    else:
        message += " and out for delivery."
    message += "\n\nPlease read the label before use."
    return message


PHARMACY_STATUS_TEMPLATES = {
    OrderStatus.CONFIRMED: (
        "{emoji} *Order Confirmed!*\n\n"
        "Your order #{order_number} has been confirmed by {business_name}."
    ),
    OrderStatus.PREPARING: (
        "🧾 *Order in Progress*\n\n"
        "Our pharmacist is packing order #{order_number}..."
    ),
    OrderStatus.READY: _ready_message,
    OrderStatus.DELIVERED: (
        "✅ *Order Delivered*\n\n"
        "Thank you for choosing {business_name}. Get well soon! {emoji}"
    ),
    OrderStatus.CANCELLED: (
        "❌ *Order Cancelled*\n\n"
        "Your order #{order_number} has been cancelled.\n\n"
        "Please call us if you need help with your medication."
    ),
}


class PharmacyHandler(BaseHandler):
    business_type = "pharmacy"
    default_emoji = "💊"
    status_templates = PHARMACY_STATUS_TEMPLATES
    fallback_template = "Order #{order_number} status: {status}"

    @property
    def prescription_categories(self) -> Set[str]:
        categories = self.config.get("prescription_categories", DEFAULT_PRESCRIPTION_CATEGORIES)
        return {str(category).lower() for category in categories}

    def requires_prescription(self, item: CatalogItem) -> bool:
        return item.category.lower() in self.prescription_categories

    async def format_catalog(self) -> str:
        items = await self.get_catalog_items()
        emoji = self.emoji

        message = f"{emoji} *{self.tenant.business_name.upper()} - PHARMACY* {emoji}\n\n"
        message += self.get_business_info()
        message += "\n"

        for category, category_items in self.group_by_category(items).items():
            message += f"*{category.upper()}*\n"
            for item in category_items:
                if self.requires_prescription(item):
                    message += f"#{item.item_code} - {item.name} (Rx - visit store)\n"
                else:
                    message += self.format_catalog_line(item)
            message += "\n"

        message += self.order_instructions()
        message += "_Prescription medicine must be collected in-store._"

        return message

    async def parse_order_items(self, message: str) -> List[OrderItem]:
        codes = order_service.extract_item_codes(message)
        catalog_items = await order_service.lookup_available_items(self.store, self.tenant.id, codes)

        items = []
        for item in catalog_items:
            if self.requires_prescription(item):
                logger.info(
                    f"Skipping prescription item {item.item_code}",
                    extra={"tenant_id": self.tenant.id}
                )
                continue
            items.append(order_service.snapshot_item(item))
        return items

    async def parse_guidance(self, message: str) -> str:
        codes = order_service.extract_item_codes(message)
        catalog_items = await order_service.lookup_available_items(self.store, self.tenant.id, codes)
        prescription_items = [item for item in catalog_items if self.requires_prescription(item)]

        if not prescription_items:
            return await super().parse_guidance(message)

        names = ", ".join(f"#{item.item_code} {item.name}" for item in prescription_items)
        return PRESCRIPTION_IN_STORE_MESSAGE.format(items=names)

    def validate_config(self) -> List[str]:
        categories = self.config.get("prescription_categories")
        if categories is not None and not isinstance(categories, list):
            return ["prescription_categories must be a list of category names"]
        return []

    def get_capabilities(self) -> List[str]:
        return super().get_capabilities() + [
            "category_grouping",
            "order_history",
            "prescription_screening",
        ]
