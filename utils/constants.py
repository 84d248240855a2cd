"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages shared across business types
- Command hints and example syntax
- Currency and status labels

(Prevents hardcoding across the codebase)
"""

# ============================================================
# ROUTER REPLIES (tenant could not be served)
# ============================================================

TENANT_NOT_CONFIGURED_MESSAGE = "This WhatsApp number is not configured. Please contact support."

SERVICE_UNAVAILABLE_MESSAGE = "This service is currently unavailable. Please try again later."

GENERIC_ERROR_MESSAGE = "Sorry, something went wrong. Please try again later."

# ============================================================
# CONVERSATION
# ============================================================

LIMIT_REACHED_MESSAGE = "⚠️ Monthly message limit reached. Please contact support to upgrade your plan."

PARSE_GUIDANCE_MESSAGE = """❌ I could not understand that order. Please use item numbers like: #01 #07

Type "menu" to see the menu again."""

PRESCRIPTION_IN_STORE_MESSAGE = """💊 Prescription medicine must be collected in-store: {items}

Please visit us with your prescription, or type "menu" to order other items."""

FALLBACK_PROMPT = 'Type "menu" to start ordering! {emoji}'

ADDRESS_REQUEST = '📍 Please reply with your delivery address or "pickup" if collecting in-store.'

ORDER_EXAMPLE = "Example: #01 #07 #12"

NO_ORDERS_MESSAGE = """📋 You have no previous orders.

Type "menu" to place your first order!"""

RECENT_ORDERS_HEADER = "📋 *YOUR RECENT ORDERS*"

RECENT_ORDERS_FOOTER = 'Type "menu" to place a new order!'

ESTIMATED_READY_TIME = "⏱️ Your order will be ready in 30-45 minutes."

PAYMENT_NOTE = "💳 Payment on delivery/collection."

# ============================================================
# HELP
# ============================================================

HELP_COMMANDS_BLOCK = """*Available Commands:*
• "menu" - View our menu
• "orders" - View your order history
• "help" - Show this help message"""

HELP_HOW_TO_ORDER = """*How to Order:*
1. Type "menu" to see available items
2. Reply with item numbers (e.g., #01 #07)
3. Provide your delivery address
4. Confirm your order!"""

HELP_FOOTER = 'Type "menu" to get started! 😊'

# ============================================================
# LABELS
# ============================================================

CURRENCY_SYMBOL = "R"

ORDER_STATUS_LABELS = {
    "pending": "⏳ Pending",
    "confirmed": "✅ Confirmed",
    "preparing": "👨‍🍳 Preparing",
    "ready": "🎉 Ready",
    "delivered": "✅ Delivered",
    "cancelled": "❌ Cancelled",
}
