import asyncio

import pytest

from app.core.exceptions import ConfigurationError
from app.flow.handlers.pharmacy import PharmacyHandler
from app.flow.handlers.restaurant import RestaurantHandler
from app.flow.handlers.retail import RetailHandler, extract_quantities
from app.models.tenant import Tenant
from utils.constants import PARSE_GUIDANCE_MESSAGE, PRESCRIPTION_IN_STORE_MESSAGE

CUSTOMER = "27830000000"


def test_pharmacy_catalog_marks_prescription_items(store, pharmacy_tenant):
    handler = PharmacyHandler(pharmacy_tenant, store)

    reply = asyncio.run(handler.handle_message("menu", CUSTOMER))

    assert "💊 *CORNER PHARMACY - PHARMACY* 💊" in reply
    assert "#P10 - Paracetamol 500mg - R25.00" in reply
    assert "#P20 - Amoxicillin 250mg (Rx - visit store)" in reply


def test_pharmacy_skips_prescription_items_when_ordering(store, pharmacy_tenant):
    handler = PharmacyHandler(pharmacy_tenant, store)

    items = asyncio.run(handler.parse_order_items("#P10 #P20"))
    assert [item.name for item in items] == ["Paracetamol 500mg"]


def test_pharmacy_prescription_only_order_gets_in_store_reply(store, pharmacy_tenant):
    handler = PharmacyHandler(pharmacy_tenant, store)

    reply = asyncio.run(handler.handle_message("#P20", CUSTOMER))

    assert reply == PRESCRIPTION_IN_STORE_MESSAGE.format(items="#P20 Amoxicillin 250mg")
    assert (pharmacy_tenant.id, CUSTOMER) not in store.states


def test_pharmacy_unknown_codes_get_parse_guidance(store, pharmacy_tenant):
    handler = PharmacyHandler(pharmacy_tenant, store)

    assert asyncio.run(handler.handle_message("#ZZ9", CUSTOMER)) == PARSE_GUIDANCE_MESSAGE


def test_pharmacy_prescription_categories_are_configurable(store, pharmacy_tenant):
    pharmacy_tenant.config = {"prescription_categories": ["pain relief"]}
    handler = PharmacyHandler(pharmacy_tenant, store)

    items = asyncio.run(handler.parse_order_items("#P10 #P20"))
    assert [item.name for item in items] == ["Amoxicillin 250mg"]


def test_extract_quantities_sums_repeats():
    assert extract_quantities("#A1*2 #B2 #a1") == [("A1", 3), ("B2", 1)]
    assert extract_quantities("#A1*0") == []


def test_retail_quantities_and_cap(store, retail_tenant):
    handler = RetailHandler(retail_tenant, store)

    items = asyncio.run(handler.parse_order_items("#A1*3 #B2*9"))

    assert [(item.name, item.quantity) for item in items] == [("USB Cable", 3), ("Phone Case", 5)]


def test_retail_summary_shows_quantity(store, retail_tenant):
    handler = RetailHandler(retail_tenant, store)

    reply = asyncio.run(handler.handle_message("#A1*2", CUSTOMER))

    assert "• USB Cable (x2) - R99.98" in reply
    assert "*TOTAL: R99.98*" in reply
    state = store.states[(retail_tenant.id, CUSTOMER)]
    assert state.state_data["total"] == 49.99 * 2


@pytest.mark.parametrize("handler_class,config", [
    (RestaurantHandler, {"delivery_radius": -3}),
    (RestaurantHandler, {"delivery_radius": "far"}),
    (PharmacyHandler, {"prescription_categories": "Prescription"}),
    (RetailHandler, {"max_quantity_per_item": 0}),
])
def test_invalid_config_fails_initialization(store, handler_class, config):
    tenant = Tenant(id="t-bad", business_name="Bad", business_type=handler_class.business_type, config=config)
    handler = handler_class(tenant, store)

    with pytest.raises(ConfigurationError):
        asyncio.run(handler.initialize())
    assert not handler.initialized


def test_metadata_and_capabilities(store, restaurant_tenant, retail_tenant):
    restaurant = RestaurantHandler(restaurant_tenant, store)
    retail = RetailHandler(retail_tenant, store)

    metadata = restaurant.get_metadata()
    assert metadata["type"] == "restaurant"
    assert metadata["version"] == "1.0.0"
    assert metadata["capabilities"][:4] == [
        "menu_display", "order_processing", "order_tracking", "notifications",
    ]
    assert "special_requests" in metadata["capabilities"]
    assert "item_quantities" in retail.get_capabilities()


def test_default_emoji_when_branding_missing(store, pharmacy_tenant):
    handler = PharmacyHandler(pharmacy_tenant, store)
    assert handler.emoji == "💊"
    assert handler.fallback_prompt() == 'Type "menu" to start ordering! 💊'
