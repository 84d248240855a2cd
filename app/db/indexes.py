"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and performance indexes
- Ensures fast lookups and data integrity
- TTL index for automatic cleanup of abandoned conversations
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_collection,
    TENANTS,
    CATALOG_ITEMS,
    ORDERS,
    CONVERSATION_STATES,
    INTERACTION_LOGS,
    ACTIVITY_LOGS,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

# Abandoned carts expire after 7 days of inactivity
CONVERSATION_TTL_SECONDS = 7 * 24 * 3600


async def create_indexes():
    """
    Creates all necessary database indexes for optimal performance.
    This function is idempotent - safe to run multiple times.
    """
    try:
        logger.info("Creating database indexes...")

        # ==============================================
        # TENANTS
        # ==============================================
        tenants = get_collection(TENANTS)
        await tenants.create_index(
            "whatsapp_session_id", unique=True, sparse=True, name="session_unique"
        )
        await tenants.create_index("phone_number", sparse=True, name="phone_idx")
        await tenants.create_index("status", name="status_idx")
        logger.debug("Created tenant indexes")

        # ==============================================
        # CATALOG ITEMS
        # ==============================================
        catalog = get_collection(CATALOG_ITEMS)
        await catalog.create_index(
            [("tenant_id", ASCENDING), ("item_code", ASCENDING)],
            unique=True,
            name="tenant_code_unique"
        )
        logger.debug("Created catalog indexes")

        # ==============================================
        # ORDERS
        # ==============================================
        orders = get_collection(ORDERS)
        await orders.create_index(
            [("tenant_id", ASCENDING), ("customer_phone", ASCENDING), ("created_at", DESCENDING)],
            name="customer_orders_idx"
        )
        await orders.create_index(
            [("tenant_id", ASCENDING), ("order_number", ASCENDING)],
            unique=True,
            name="tenant_order_number_unique"
        )
        logger.debug("Created order indexes")

        # ==============================================
        # CONVERSATION STATES
        # ==============================================
        states = get_collection(CONVERSATION_STATES)
        await states.create_index(
            [("tenant_id", ASCENDING), ("customer_phone", ASCENDING)],
            unique=True,
            name="conversation_key_unique"
        )
        await states.create_index(
            "updated_at",
            expireAfterSeconds=CONVERSATION_TTL_SECONDS,
            name="conversation_ttl_idx"
        )
        logger.debug("Created conversation state indexes")

        # ==============================================
        # LOGS
        # ==============================================
        await get_collection(INTERACTION_LOGS).create_index(
            [("tenant_id", ASCENDING), ("timestamp", DESCENDING)],
            name="interaction_tenant_time_idx"
        )
        await get_collection(ACTIVITY_LOGS).create_index(
            [("tenant_id", ASCENDING), ("timestamp", DESCENDING)],
            name="activity_tenant_time_idx"
        )

        logger.info("✅ All database indexes created")

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
        raise
