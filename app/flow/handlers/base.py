"""
app/flow/handlers/base.py

Handles: the ordering conversation shared by every business type

- Monthly message limit check and counting
- Step dispatch: menu -> item codes -> address -> order
- Order summary / confirmation / history / help text
- Conversation state access scoped to (tenant, customer)
- Default order-status notifications

Business types subclass BaseHandler and override catalog formatting,
item parsing and notification templates.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from app.core.exceptions import ConfigurationError, ValidationError
from app.core.logging import get_logger, LogContext
from app.core.config import settings
from app.db.store import TenantStore
from app.flow.states import (
    ConversationStep,
    MENU_COMMANDS,
    ORDER_HISTORY_COMMANDS,
    HELP_COMMANDS,
    PICKUP_KEYWORDS,
    get_step_metadata,
    is_valid_transition,
)
from app.models.catalog import CatalogItem
from app.models.conversation import ConversationState
from app.models.order import (
    CustomerInfo,
    DeliveryType,
    Order,
    OrderItem,
    OrderStatus,
    PICKUP_ADDRESS,
)
from app.models.tenant import Tenant
from app.services import order_service
from app.services.notification_service import (
    DEFAULT_FALLBACK_TEMPLATE,
    DEFAULT_STATUS_TEMPLATES,
    Notification,
    Template,
    compose_notification,
)
from utils.constants import (
    ADDRESS_REQUEST,
    ESTIMATED_READY_TIME,
    FALLBACK_PROMPT,
    HELP_COMMANDS_BLOCK,
    HELP_FOOTER,
    HELP_HOW_TO_ORDER,
    LIMIT_REACHED_MESSAGE,
    NO_ORDERS_MESSAGE,
    ORDER_EXAMPLE,
    PARSE_GUIDANCE_MESSAGE,
    PAYMENT_NOTE,
    RECENT_ORDERS_FOOTER,
    RECENT_ORDERS_HEADER,
)
from utils.time_utils import format_date
from utils.whatsapp_utils import format_money, format_status

logger = get_logger(__name__)


class BaseHandler(ABC):
    """
    Conversational handler for one tenant.

    One instance is cached per tenant by the HandlerRegistry; the registry
    swaps in a fresh Tenant snapshot on every cache hit.
    """

    business_type: str = ""
    version: str = "1.0.0"
    default_emoji: str = "✅"
    status_templates: Mapping[OrderStatus, Template] = DEFAULT_STATUS_TEMPLATES
    fallback_template: Template = DEFAULT_FALLBACK_TEMPLATE

    def __init__(self, tenant: Tenant, store: TenantStore, recent_orders_limit: Optional[int] = None):
        self.tenant = tenant
        self.store = store
        self.recent_orders_limit = recent_orders_limit or settings.RECENT_ORDERS_LIMIT
        self.initialized = False

    @property
    def config(self) -> Dict[str, Any]:
        return self.tenant.config or {}

    @property
    def emoji(self) -> str:
        return self.tenant.emoji(self.default_emoji)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle_message(self, message: str, customer_phone: str) -> str:
        """
        Advances the customer's conversation by one turn.

        Args:
            message: Raw message text
            customer_phone: Customer's phone number

        Returns:
            Reply text to send back
        """
        with LogContext(tenant_id=self.tenant.id, customer_phone=customer_phone):
            if not self.can_process_message():
                logger.warning("Monthly message limit reached")
                return LIMIT_REACHED_MESSAGE

            await self.increment_message_count()

            state = await self.get_conversation_state(customer_phone)
            return await self.advance(state, message, customer_phone)

    async def advance(self, state: ConversationState, message: str, customer_phone: str) -> str:
        """
        Step dispatch for one turn. The menu command is checked first so it
        always restarts the conversation.
        """
        text = message.strip()
        command = text.lower()
        step = state.current_step

        logger.info(f"Dispatching turn at step {step.value}", extra={"step": step.value})

        if command in MENU_COMMANDS:
            reply = await self.format_catalog()
            await self.update_conversation_state(
                customer_phone,
                ConversationState(current_step=ConversationStep.VIEWING_MENU),
                from_step=step,
            )
            return reply

        if command in ORDER_HISTORY_COMMANDS:
            return await self.format_recent_orders(customer_phone)

        if command in HELP_COMMANDS:
            return self.format_help()

        if get_step_metadata(step).accepts_item_codes:
            return await self._collect_items(step, text, customer_phone)

        if step == ConversationStep.AWAITING_ADDRESS:
            return await self._collect_address(state, text, customer_phone)

        return self.fallback_prompt()

    async def _collect_items(self, step: ConversationStep, text: str, customer_phone: str) -> str:
        items = await self.parse_order_items(text)

        if not items:
            return await self.parse_guidance(text)

        total = order_service.calculate_total(items)
        await self.update_conversation_state(
            customer_phone,
            ConversationState(
                current_step=ConversationStep.AWAITING_ADDRESS,
                state_data={
                    "items": [item.model_dump() for item in items],
                    "total": total,
                },
            ),
            from_step=step,
        )
        return self.format_order_summary(items, total)

    async def _collect_address(self, state: ConversationState, text: str, customer_phone: str) -> str:
        pending = state.state_data.get("items") or []
        if not pending:
            logger.warning("Awaiting address without pending items; resetting")
            await self.clear_conversation_state(customer_phone)
            return self.fallback_prompt()

        items = [OrderItem.model_validate(item) for item in pending]

        if text.lower() in PICKUP_KEYWORDS:
            delivery_type, address = DeliveryType.PICKUP, PICKUP_ADDRESS
        else:
            delivery_type, address = DeliveryType.DELIVERY, text

        order = await self.process_order(
            items,
            CustomerInfo(phone=customer_phone, address=address, delivery_type=delivery_type),
        )

        await self.clear_conversation_state(customer_phone)

        await self.log_activity(
            "order.created",
            {"order_id": order.id, "customer_phone": customer_phone, "total": order.total},
        )

        return self.format_order_confirmation(order)

    # ------------------------------------------------------------------
    # Capabilities every business type provides
    # ------------------------------------------------------------------

    @abstractmethod
    async def format_catalog(self) -> str:
        """Formatted catalog listing sent for the menu command."""

    async def parse_order_items(self, message: str) -> List[OrderItem]:
        """
        Turns free text into order lines by item-code matching.
        Duplicate codes count once; unknown or unavailable codes are skipped.
        """
        codes = order_service.extract_item_codes(message)
        catalog_items = await order_service.lookup_available_items(self.store, self.tenant.id, codes)
        return [order_service.snapshot_item(item) for item in catalog_items]

    async def process_order(self, items: List[OrderItem], customer: CustomerInfo) -> Order:
        return await order_service.create_order(self.store, self.tenant.id, items, customer)

    def notification_context(self) -> Dict[str, Any]:
        return {
            "business_name": self.tenant.business_name,
            "emoji": self.emoji,
            "address": self.tenant.address or "",
        }

    def compose_notification(self, order: Order, status: Union[OrderStatus, str]) -> Notification:
        return compose_notification(
            order,
            status,
            templates=self.status_templates,
            context=self.notification_context(),
            fallback=self.fallback_template,
        )

    async def handle_webhook(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Events pushed by the tenant's own systems (POS, stock)."""
        await self.log_activity("webhook.received", {"keys": sorted(payload.keys())})
        return {"success": True, "message": "Webhook processed"}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def validate_config(self) -> List[str]:
        """Returns a list of configuration problems (empty when valid)."""
        return []

    async def initialize(self):
        problems = self.validate_config()
        if problems:
            raise ConfigurationError(
                f"Invalid {self.business_type} configuration for tenant {self.tenant.id}",
                details=problems,
            )
        self.initialized = True
        logger.info(
            f"Handler {self.business_type} initialized for tenant {self.tenant.business_name}",
            extra={"tenant_id": self.tenant.id, "business_type": self.business_type}
        )

    async def cleanup(self):
        self.initialized = False

    def get_capabilities(self) -> List[str]:
        return [
            "menu_display",
            "order_processing",
            "order_tracking",
            "notifications",
        ]

    def get_metadata(self) -> Dict[str, Any]:
        return {
            "type": self.business_type,
            "version": self.version,
            "capabilities": self.get_capabilities(),
        }

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def can_process_message(self) -> bool:
        return not self.tenant.limit_reached

    async def increment_message_count(self):
        await self.store.increment_message_count(self.tenant.id)
        # Keep the cached snapshot in step until the next refetch
        self.tenant.monthly_message_count += 1

    # ------------------------------------------------------------------
    # Conversation state
    # ------------------------------------------------------------------

    async def get_conversation_state(self, customer_phone: str) -> ConversationState:
        state = await self.store.get_conversation_state(self.tenant.id, customer_phone)
        return state or ConversationState()

    async def update_conversation_state(
        self,
        customer_phone: str,
        state: ConversationState,
        from_step: Optional[ConversationStep] = None,
    ):
        """
        Persists the customer's state.

        Raises:
            ValidationError: from_step given and the move is not allowed
        """
        if from_step is not None and not is_valid_transition(from_step, state.current_step):
            logger.warning(
                f"Invalid step transition attempted: {from_step.value} -> {state.current_step.value}",
                extra={"customer_phone": customer_phone}
            )
            raise ValidationError(
                f"Invalid step transition: {from_step.value} -> {state.current_step.value}",
                details={"from": from_step.value, "to": state.current_step.value},
            )
        await self.store.update_conversation_state(self.tenant.id, customer_phone, state)

    async def clear_conversation_state(self, customer_phone: str):
        await self.store.clear_conversation_state(self.tenant.id, customer_phone)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_catalog_items(self) -> List[CatalogItem]:
        return await self.store.get_catalog_items(self.tenant.id)

    def group_by_category(self, items: List[CatalogItem]) -> Dict[str, List[CatalogItem]]:
        """Available items grouped by category, first-seen category order."""
        categories: Dict[str, List[CatalogItem]] = {}
        for item in items:
            if item.available:
                categories.setdefault(item.category, []).append(item)
        return categories

    @staticmethod
    def format_catalog_line(item: CatalogItem) -> str:
        line = f"#{item.item_code} - {item.name} - {format_money(item.price)}\n"
        if item.description:
            line += f"   _{item.description}_\n"
        return line

    # ------------------------------------------------------------------
    # Shared text
    # ------------------------------------------------------------------

    def get_business_info(self) -> str:
        info = f"📍 {self.tenant.business_name}\n"
        if self.tenant.address:
            info += f"{self.tenant.address}\n"
        if self.tenant.phone_number:
            info += f"📞 {self.tenant.phone_number}\n"
        return info

    def format_order_summary(self, items: List[OrderItem], total: float) -> str:
        summary = "📋 *ORDER SUMMARY*\n\n"

        for item in items:
            summary += f"• {item.name}"
            if item.quantity > 1:
                summary += f" (x{item.quantity})"
            summary += f" - {format_money(item.line_total)}\n"

        summary += f"\n*TOTAL: {format_money(total)}*\n\n"
        summary += ADDRESS_REQUEST

        return summary

    def format_order_confirmation(self, order: Order) -> str:
        emoji = self.tenant.emoji("✅")

        message = f"{emoji} *ORDER CONFIRMED!*\n\n"
        message += f"Order #{order.order_number}\n\n"
        message += "📋 Items:\n"

        for item in order.items:
            message += f"• {item.name}"
            if item.quantity > 1:
                message += f" (x{item.quantity})"
            message += "\n"

        message += f"\n💰 Total: {format_money(order.total)}\n"
        message += f"📍 {order.delivery_address}\n\n"
        message += f"{ESTIMATED_READY_TIME}\n"
        message += f"{PAYMENT_NOTE}\n\n"
        message += f"Thank you for choosing {self.tenant.business_name}! {emoji}"

        return message

    async def format_recent_orders(self, customer_phone: str) -> str:
        orders = await self.store.get_customer_orders(
            self.tenant.id, customer_phone, self.recent_orders_limit
        )

        if not orders:
            return NO_ORDERS_MESSAGE

        message = f"{RECENT_ORDERS_HEADER}\n\n"

        for order in orders[: self.recent_orders_limit]:
            message += f"*Order #{order.order_number}* - {format_date(order.created_at)}\n"
            message += f"Status: {format_status(order.status.value)}\n"
            message += f"Total: {format_money(order.total)}\n"
            message += "\n"

        message += RECENT_ORDERS_FOOTER
        return message

    def format_help(self) -> str:
        emoji = self.emoji
        return (
            f"{emoji} *{self.tenant.business_name} - HELP* {emoji}\n\n"
            f"{HELP_COMMANDS_BLOCK}\n\n"
            f"{HELP_HOW_TO_ORDER}\n\n"
            f"{self.get_business_info()}\n"
            f"{HELP_FOOTER}"
        )

    async def parse_guidance(self, message: str) -> str:
        """Reply for a message at an ordering step that yielded no items."""
        return PARSE_GUIDANCE_MESSAGE

    def fallback_prompt(self) -> str:
        return FALLBACK_PROMPT.format(emoji=self.emoji)

    def order_instructions(self) -> str:
        return f"💬 *To order, reply with item numbers*\n{ORDER_EXAMPLE}\n\n"

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def log_activity(self, action: str, data: Optional[Dict[str, Any]] = None):
        """Best effort: a failed analytics write never fails the turn."""
        try:
            await self.store.log_activity(self.tenant.id, action, data or {})
        except Exception as e:
            logger.warning(f"Error logging activity {action}: {e}")
