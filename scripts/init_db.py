"""
Database initialization script

Run once to create collections and indexes:
    python scripts/init_db.py

Add --seed to insert a demo restaurant tenant with a small menu:
    python scripts/init_db.py --seed
"""

import argparse
import asyncio
import sys
from pathlib import Path
import os
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

if not os.getenv("MONGODB_URL") or not os.getenv("MONGODB_DB_NAME"):
    raise ValueError("❌ MONGODB_URL and MONGODB_DB_NAME must be set in .env file")

from app.db import mongo
from app.db.indexes import create_indexes
from app.models.catalog import CatalogItem
from app.models.tenant import Tenant, TenantStatus


DEMO_TENANT = Tenant(
    id="demo-restaurant",
    business_name="Demo Pizza Palace",
    business_type="restaurant",
    status=TenantStatus.TRIAL,
    whatsapp_session_id="default",
    phone_number="27820000000",
    address="1 Long Street, Cape Town",
    branding={"emoji": "🍕"},
    config={"delivery_radius": 5},
)

DEMO_MENU = [
    ("01", "Margherita", "Tomato, mozzarella, basil", 89.0, "Pizza"),
    ("02", "Pepperoni", "Double pepperoni", 109.0, "Pizza"),
    ("07", "Garlic Bread", None, 35.0, "Sides"),
    ("12", "Coke 330ml", None, 18.0, "Drinks"),
]


async def seed_demo_tenant():
    """Upserts the demo tenant and its menu (safe to re-run)"""
    logger.info("\n🌱 Seeding demo tenant...")

    tenants = mongo.get_collection(mongo.TENANTS)
    document = DEMO_TENANT.model_dump(mode="json")
    tenant_id = document.pop("id")
    await tenants.update_one({"_id": tenant_id}, {"$setOnInsert": document}, upsert=True)

    catalog = mongo.get_collection(mongo.CATALOG_ITEMS)
    for code, name, description, price, category in DEMO_MENU:
        item = CatalogItem(
            id=f"{tenant_id}-{code}",
            tenant_id=tenant_id,
            item_code=code,
            name=name,
            description=description,
            price=price,
            category=category,
        )
        item_document = item.model_dump(mode="json")
        item_id = item_document.pop("id")
        await catalog.update_one({"_id": item_id}, {"$setOnInsert": item_document}, upsert=True)

    logger.info(f"  ✅ Tenant '{DEMO_TENANT.business_name}' on session '{DEMO_TENANT.whatsapp_session_id}'")
    logger.info(f"  ✅ {len(DEMO_MENU)} menu items")


async def main(seed: bool):
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  TenantHub Database Setup")
    logger.info("=" * 60 + "\n")

    await mongo.connect_to_mongo()

    try:
        await create_indexes()

        logger.info("\n🔍 Verifying indexes...")
        database = mongo.get_database()
        for collection_name in [mongo.TENANTS, mongo.CATALOG_ITEMS, mongo.ORDERS, mongo.CONVERSATION_STATES]:
            indexes = await database[collection_name].index_information()
            logger.info(f"\n  {collection_name}:")
            for idx_name in indexes.keys():
                if idx_name != "_id_":
                    logger.info(f"    ✅ {idx_name}")

        if seed:
            await seed_demo_tenant()

        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        await mongo.close_mongo_connection()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create indexes and optionally seed demo data")
    parser.add_argument("--seed", action="store_true", help="Insert a demo restaurant tenant")
    args = parser.parse_args()
    asyncio.run(main(args.seed))
