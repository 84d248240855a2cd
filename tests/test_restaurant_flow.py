import asyncio
import re

import pytest

from app.core.exceptions import ValidationError
from app.flow.handlers.restaurant import RestaurantHandler
from app.flow.states import ConversationStep, is_valid_transition
from app.models.conversation import ConversationState
from app.models.order import DeliveryType, OrderStatus, PICKUP_ADDRESS
from utils.constants import LIMIT_REACHED_MESSAGE, NO_ORDERS_MESSAGE, PARSE_GUIDANCE_MESSAGE

CUSTOMER = "27820000000"


@pytest.fixture
def handler(store, restaurant_tenant):
    return RestaurantHandler(restaurant_tenant, store)


def say(handler, text, customer=CUSTOMER):
    return asyncio.run(handler.handle_message(text, customer))


def step_of(store, tenant, customer=CUSTOMER):
    state = store.states.get((tenant.id, customer))
    return state.current_step if state else ConversationStep.IDLE


def test_menu_lists_catalog_and_moves_to_viewing_menu(handler, store, restaurant_tenant):
    reply = say(handler, "menu")

    assert "PIZZA PALACE - MENU" in reply
    assert re.search(r"#\w+ - .+ - R\d+\.\d{2}", reply)
    assert "#01 - Margherita - R89.00" in reply
    assert "_Tomato, mozzarella, basil_" in reply
    assert "*PIZZA*" in reply and "*SIDES*" in reply
    assert "Seasonal Special" not in reply
    assert step_of(store, restaurant_tenant) == ConversationStep.VIEWING_MENU


@pytest.mark.parametrize("greeting", ["hi", "Hello", "  START  ", "MENU"])
def test_greetings_show_menu(handler, greeting):
    assert "PIZZA PALACE - MENU" in say(handler, greeting)


def test_duplicate_codes_counted_once(handler, store, restaurant_tenant):
    say(handler, "menu")
    reply = say(handler, "#01 #02 #01")

    state = store.states[(restaurant_tenant.id, CUSTOMER)]
    assert state.current_step == ConversationStep.AWAITING_ADDRESS
    assert [item["name"] for item in state.state_data["items"]] == ["Margherita", "Pepperoni"]
    assert state.state_data["total"] == 89.0 + 109.5

    assert "📋 *ORDER SUMMARY*" in reply
    assert "• Margherita - R89.00" in reply
    assert "*TOTAL: R198.50*" in reply


def test_unparseable_text_keeps_step_and_guides(handler, store, restaurant_tenant):
    say(handler, "menu")
    reply = say(handler, "something nice please")

    assert reply == PARSE_GUIDANCE_MESSAGE
    assert step_of(store, restaurant_tenant) == ConversationStep.VIEWING_MENU


def test_unavailable_item_is_not_ordered(handler, store, restaurant_tenant):
    say(handler, "menu")
    reply = say(handler, "#99")

    assert reply == PARSE_GUIDANCE_MESSAGE


def test_pickup_creates_order_and_clears_state(handler, store, restaurant_tenant):
    say(handler, "menu")
    say(handler, "#01 #07")
    reply = say(handler, "pickup")

    assert (restaurant_tenant.id, CUSTOMER) not in store.states

    order = list(store.orders.values())[0]
    assert order.delivery_type == DeliveryType.PICKUP
    assert order.delivery_address == PICKUP_ADDRESS
    assert order.status == OrderStatus.PENDING
    assert order.total == 89.0 + 35.0

    assert "🍕 *ORDER CONFIRMED!*" in reply
    assert f"Order #{order.order_number}" in reply
    assert "💰 Total: R124.00" in reply
    assert "Thank you for choosing Pizza Palace!" in reply

    assert store.activity[-1]["action"] == "order.created"
    assert store.activity[-1]["data"]["order_id"] == order.id


def test_delivery_address_keeps_original_case(handler, store):
    say(handler, "menu")
    say(handler, "#02")
    say(handler, "  12 Kloof Street, Gardens  ")

    order = list(store.orders.values())[0]
    assert order.delivery_type == DeliveryType.DELIVERY
    assert order.delivery_address == "12 Kloof Street, Gardens"


def test_ordering_from_idle_without_menu(handler, store, restaurant_tenant):
    reply = say(handler, "#07")

    assert "ORDER SUMMARY" in reply
    assert step_of(store, restaurant_tenant) == ConversationStep.AWAITING_ADDRESS


def test_menu_restarts_while_awaiting_address(handler, store, restaurant_tenant):
    say(handler, "#01")
    say(handler, "menu")

    state = store.states[(restaurant_tenant.id, CUSTOMER)]
    assert state.current_step == ConversationStep.VIEWING_MENU
    assert state.state_data == {}
    assert not store.orders


def test_limit_reached_mutates_nothing(store, restaurant_tenant):
    restaurant_tenant.monthly_message_limit = 10
    restaurant_tenant.monthly_message_count = 10
    handler = RestaurantHandler(restaurant_tenant, store)

    reply = say(handler, "menu")

    assert reply == LIMIT_REACHED_MESSAGE
    assert "increment_message_count" not in store.calls
    assert "update_conversation_state" not in store.calls
    assert restaurant_tenant.monthly_message_count == 10


def test_message_count_incremented_in_store_and_snapshot(handler, store, restaurant_tenant):
    say(handler, "menu")
    say(handler, "help")

    assert store.tenants[restaurant_tenant.id].monthly_message_count == 2
    assert handler.tenant.monthly_message_count == 2


def test_last_allowed_message_is_processed(store, restaurant_tenant):
    restaurant_tenant.monthly_message_limit = 1
    handler = RestaurantHandler(restaurant_tenant, store)

    assert "MENU" in say(handler, "menu")
    assert say(handler, "menu") == LIMIT_REACHED_MESSAGE


def test_orders_command_lists_recent_orders(handler, store):
    assert say(handler, "orders") == NO_ORDERS_MESSAGE

    for code in ("#01", "#02"):
        say(handler, code)
        say(handler, "pickup")

    reply = say(handler, "my orders")

    assert reply.startswith("📋 *YOUR RECENT ORDERS*")
    assert reply.index("Order #0002") < reply.index("Order #0001")
    assert "Status: ⏳ Pending" in reply
    assert "Total: R109.50" in reply


def test_recent_orders_limited(store, restaurant_tenant):
    handler = RestaurantHandler(restaurant_tenant, store, recent_orders_limit=2)
    for _ in range(3):
        say(handler, "#01")
        say(handler, "pickup")

    reply = say(handler, "orders")

    assert reply.count("*Order #") == 2


def test_help_available_while_awaiting_address(handler, store, restaurant_tenant):
    say(handler, "#01")
    reply = say(handler, "help")

    assert "🍕 *Pizza Palace - HELP* 🍕" in reply
    assert "📍 Pizza Palace\n1 Long Street, Cape Town\n📞 27210000001" in reply
    assert step_of(store, restaurant_tenant) == ConversationStep.AWAITING_ADDRESS
    assert not store.orders


def test_awaiting_address_without_items_resets(handler, store, restaurant_tenant):
    store.states[(restaurant_tenant.id, CUSTOMER)] = ConversationState(
        current_step=ConversationStep.AWAITING_ADDRESS
    )

    reply = say(handler, "12 Kloof Street")

    assert reply == 'Type "menu" to start ordering! 🍕'
    assert (restaurant_tenant.id, CUSTOMER) not in store.states
    assert not store.orders


def test_unknown_persisted_step_is_treated_as_idle(handler, store, restaurant_tenant):
    state = ConversationState.model_validate({"current_step": "checkout_v2", "state_data": {}})
    store.states[(restaurant_tenant.id, CUSTOMER)] = state

    reply = say(handler, "#01")

    assert state.current_step == ConversationStep.IDLE
    assert "ORDER SUMMARY" in reply


def test_same_input_gives_same_transition(store, restaurant_tenant):
    handler = RestaurantHandler(restaurant_tenant, store)
    start = ConversationState(current_step=ConversationStep.VIEWING_MENU)

    outcomes = []
    for _ in range(2):
        reply = asyncio.run(handler.advance(start.model_copy(deep=True), "#01 #07", CUSTOMER))
        outcomes.append((store.states[(restaurant_tenant.id, CUSTOMER)], reply))

    assert outcomes[0] == outcomes[1]


def test_customers_have_separate_conversations(handler, store, restaurant_tenant):
    say(handler, "#01", customer="111")
    say(handler, "menu", customer="222")

    assert step_of(store, restaurant_tenant, "111") == ConversationStep.AWAITING_ADDRESS
    assert step_of(store, restaurant_tenant, "222") == ConversationStep.VIEWING_MENU


def test_state_store_failure_propagates(handler, store):
    from app.core.exceptions import PersistenceError

    store.fail_on.add("get_conversation_state")
    with pytest.raises(PersistenceError):
        say(handler, "menu")


def test_activity_log_failure_does_not_fail_order(handler, store):
    say(handler, "#01")
    store.fail_on.add("log_activity")

    reply = say(handler, "pickup")

    assert "ORDER CONFIRMED" in reply
    assert len(store.orders) == 1


def test_step_transitions():
    assert is_valid_transition(ConversationStep.IDLE, ConversationStep.VIEWING_MENU)
    assert is_valid_transition(ConversationStep.VIEWING_MENU, ConversationStep.AWAITING_ADDRESS)
    assert is_valid_transition(ConversationStep.AWAITING_ADDRESS, ConversationStep.IDLE)
    assert not is_valid_transition(ConversationStep.AWAITING_ADDRESS, ConversationStep.AWAITING_ADDRESS)


def test_state_update_rejects_invalid_transition(handler, store, restaurant_tenant):
    pending = ConversationState(current_step=ConversationStep.AWAITING_ADDRESS)

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(handler.update_conversation_state(
            CUSTOMER, pending, from_step=ConversationStep.AWAITING_ADDRESS,
        ))

    assert exc_info.value.details == {"from": "awaiting_address", "to": "awaiting_address"}
    assert (restaurant_tenant.id, CUSTOMER) not in store.states


def test_every_turn_follows_transition_table(handler, store, restaurant_tenant):
    for text, step in [
        ("#01", ConversationStep.AWAITING_ADDRESS),
        ("menu", ConversationStep.VIEWING_MENU),
        ("menu", ConversationStep.VIEWING_MENU),
        ("#02", ConversationStep.AWAITING_ADDRESS),
        ("pickup", ConversationStep.IDLE),
    ]:
        say(handler, text)
        assert step_of(store, restaurant_tenant) == step
