"""
app/services/mongo_store.py

Purpose: MongoDB implementation of the TenantStore contract

- Maps documents to Tenant / CatalogItem / Order / ConversationState models
- Assigns order numbers from a per-tenant counter
- Bounds every call with STORE_TIMEOUT_SECONDS
- Converts driver errors and timeouts into PersistenceError
"""

import asyncio
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.logging import get_logger
from app.db import mongo
from app.models.catalog import CatalogItem
from app.models.conversation import ConversationState
from app.models.order import Order, OrderDraft, OrderStatus
from app.models.tenant import SERVING_STATUSES, Tenant

logger = get_logger(__name__)

T = TypeVar("T")


def _from_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if document is None:
        return None
    data = dict(document)
    data["id"] = str(data.pop("_id"))
    return data


class MongoStore:
    """TenantStore backed by Motor collections."""

    def __init__(self, database: AsyncIOMotorDatabase, timeout: Optional[float] = None):
        self.db = database
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Store call timed out: {operation}")
            raise PersistenceError(f"Store call timed out: {operation}") from e
        except PyMongoError as e:
            logger.error(f"Store call failed: {operation}: {e}")
            raise PersistenceError(f"Store call failed: {operation}") from e

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    async def _find_tenant(self, query: Dict[str, Any], operation: str) -> Optional[Tenant]:
        document = await self._bounded(operation, self.db[mongo.TENANTS].find_one(query))
        data = _from_document(document)
        return Tenant.model_validate(data) if data else None

    async def get_tenant_by_session(self, session_id: str) -> Optional[Tenant]:
        return await self._find_tenant({"whatsapp_session_id": session_id}, "get_tenant_by_session")

    async def get_tenant_by_phone(self, phone_number: str) -> Optional[Tenant]:
        return await self._find_tenant({"phone_number": phone_number}, "get_tenant_by_phone")

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return await self._find_tenant({"_id": tenant_id}, "get_tenant")

    async def get_active_tenants(self) -> List[Tenant]:
        cursor = self.db[mongo.TENANTS].find(
            {"status": {"$in": [status.value for status in SERVING_STATUSES]}}
        ).sort("business_name", 1)
        documents = await self._bounded("get_active_tenants", cursor.to_list(length=None))
        return [Tenant.model_validate(_from_document(doc)) for doc in documents]

    async def get_tenant_stats(self, tenant_id: str) -> Dict[str, Any]:
        pipeline = [
            {"$match": {"tenant_id": tenant_id}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}, "revenue": {"$sum": "$total"}}},
        ]
        groups = await self._bounded(
            "get_tenant_stats",
            self.db[mongo.ORDERS].aggregate(pipeline).to_list(length=None),
        )
        catalog_size = await self._bounded(
            "count_catalog_items",
            self.db[mongo.CATALOG_ITEMS].count_documents({"tenant_id": tenant_id}),
        )
        usage = await self.get_tenant_usage(tenant_id)

        orders_by_status = {group["_id"]: group["count"] for group in groups}
        revenue = sum(
            group["revenue"] for group in groups if group["_id"] != OrderStatus.CANCELLED.value
        )
        return {
            "tenant_id": tenant_id,
            "total_orders": sum(orders_by_status.values()),
            "orders_by_status": orders_by_status,
            "revenue": round(revenue, 2),
            "catalog_items": catalog_size,
            "usage": usage,
        }

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_catalog_items(self, tenant_id: str) -> List[CatalogItem]:
        cursor = self.db[mongo.CATALOG_ITEMS].find({"tenant_id": tenant_id}).sort(
            [("category", 1), ("item_code", 1)]
        )
        documents = await self._bounded("get_catalog_items", cursor.to_list(length=None))
        return [CatalogItem.model_validate(_from_document(doc)) for doc in documents]

    async def get_catalog_item(self, tenant_id: str, item_code: str) -> Optional[CatalogItem]:
        # Codes are stored uppercase; the regex keeps legacy mixed-case rows matching
        query = {
            "tenant_id": tenant_id,
            "item_code": {"$regex": f"^{re.escape(item_code)}$", "$options": "i"},
        }
        document = await self._bounded("get_catalog_item", self.db[mongo.CATALOG_ITEMS].find_one(query))
        data = _from_document(document)
        return CatalogItem.model_validate(data) if data else None

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def _next_order_number(self, tenant_id: str) -> str:
        counter = await self._bounded(
            "next_order_number",
            self.db[mongo.COUNTERS].find_one_and_update(
                {"_id": f"order:{tenant_id}"},
                {"$inc": {"seq": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            ),
        )
        return f"{counter['seq']:04d}"

    async def create_order(self, draft: OrderDraft) -> Order:
        order = Order(
            id=uuid.uuid4().hex,
            order_number=await self._next_order_number(draft.tenant_id),
            created_at=datetime.now(timezone.utc),
            **draft.model_dump(),
        )
        document = order.model_dump(mode="json", exclude={"id", "created_at"})
        document["_id"] = order.id
        document["created_at"] = order.created_at
        await self._bounded("create_order", self.db[mongo.ORDERS].insert_one(document))
        logger.info(
            f"Order #{order.order_number} created",
            extra={"tenant_id": order.tenant_id, "customer_phone": order.customer_phone}
        )
        return order

    async def get_order(self, order_id: str) -> Optional[Order]:
        document = await self._bounded("get_order", self.db[mongo.ORDERS].find_one({"_id": order_id}))
        data = _from_document(document)
        return Order.model_validate(data) if data else None

    async def get_customer_orders(self, tenant_id: str, customer_phone: str, limit: int) -> List[Order]:
        cursor = (
            self.db[mongo.ORDERS]
            .find({"tenant_id": tenant_id, "customer_phone": customer_phone})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        documents = await self._bounded("get_customer_orders", cursor.to_list(length=limit))
        return [Order.model_validate(_from_document(doc)) for doc in documents]

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        document = await self._bounded(
            "update_order_status",
            self.db[mongo.ORDERS].find_one_and_update(
                {"_id": order_id},
                {"$set": {"status": status.value, "updated_at": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            ),
        )
        data = _from_document(document)
        return Order.model_validate(data) if data else None

    # ------------------------------------------------------------------
    # Conversation state
    # ------------------------------------------------------------------

    async def get_conversation_state(self, tenant_id: str, customer_phone: str) -> Optional[ConversationState]:
        document = await self._bounded(
            "get_conversation_state",
            self.db[mongo.CONVERSATION_STATES].find_one(
                {"tenant_id": tenant_id, "customer_phone": customer_phone}
            ),
        )
        if document is None:
            return None
        return ConversationState(
            current_step=document.get("current_step"),
            state_data=document.get("state_data") or {},
        )

    async def update_conversation_state(self, tenant_id: str, customer_phone: str, state: ConversationState) -> None:
        await self._bounded(
            "update_conversation_state",
            self.db[mongo.CONVERSATION_STATES].update_one(
                {"tenant_id": tenant_id, "customer_phone": customer_phone},
                {
                    "$set": {
                        **state.model_dump(mode="json"),
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
                upsert=True,
            ),
        )

    async def clear_conversation_state(self, tenant_id: str, customer_phone: str) -> None:
        await self._bounded(
            "clear_conversation_state",
            self.db[mongo.CONVERSATION_STATES].delete_one(
                {"tenant_id": tenant_id, "customer_phone": customer_phone}
            ),
        )

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    async def increment_usage(self, tenant_id: str, metric: str) -> None:
        await self._bounded(
            "increment_usage",
            self.db[mongo.TENANTS].update_one({"_id": tenant_id}, {"$inc": {f"usage.{metric}": 1}}),
        )

    async def increment_message_count(self, tenant_id: str) -> None:
        await self._bounded(
            "increment_message_count",
            self.db[mongo.TENANTS].update_one({"_id": tenant_id}, {"$inc": {"monthly_message_count": 1}}),
        )

    async def get_tenant_usage(self, tenant_id: str) -> Dict[str, int]:
        document = await self._bounded(
            "get_tenant_usage",
            self.db[mongo.TENANTS].find_one(
                {"_id": tenant_id},
                {"monthly_message_count": 1, "monthly_message_limit": 1, "usage": 1},
            ),
        )
        if document is None:
            return {}
        return {
            "messages": document.get("monthly_message_count", 0),
            "message_limit": document.get("monthly_message_limit", 0),
            **(document.get("usage") or {}),
        }

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    async def log_activity(self, tenant_id: str, action: str, data: Dict[str, Any]) -> None:
        await self._bounded(
            "log_activity",
            self.db[mongo.ACTIVITY_LOGS].insert_one(
                {
                    "tenant_id": tenant_id,
                    "action": action,
                    "data": data,
                    "timestamp": datetime.now(timezone.utc),
                }
            ),
        )

    async def log_interaction(self, record: Dict[str, Any]) -> None:
        await self._bounded("log_interaction", self.db[mongo.INTERACTION_LOGS].insert_one(dict(record)))
