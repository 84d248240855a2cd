import asyncio

from app.services.tenant_resolver import TenantResolver


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_session_lookup_is_cached_within_ttl(store, restaurant_tenant):
    clock = FakeClock()
    resolver = TenantResolver(store, ttl_seconds=300, clock=clock)

    first = asyncio.run(resolver.resolve_by_session("pizza-session"))
    clock.now += 299
    second = asyncio.run(resolver.resolve_by_session("pizza-session"))

    assert first is second
    assert store.calls.count("get_tenant_by_session") == 1


def test_expired_entry_is_refetched(store, restaurant_tenant):
    clock = FakeClock()
    resolver = TenantResolver(store, ttl_seconds=300, clock=clock)

    first = asyncio.run(resolver.resolve_by_session("pizza-session"))
    clock.now += 300
    second = asyncio.run(resolver.resolve_by_session("pizza-session"))

    assert first is not second
    assert second.id == restaurant_tenant.id
    assert store.calls.count("get_tenant_by_session") == 2


def test_unknown_session_is_not_cached(store):
    resolver = TenantResolver(store, ttl_seconds=300)

    assert asyncio.run(resolver.resolve_by_session("nobody")) is None
    assert asyncio.run(resolver.resolve_by_session("nobody")) is None

    assert store.calls.count("get_tenant_by_session") == 2
    assert resolver.size == 0


def test_phone_and_session_use_separate_entries(store, restaurant_tenant):
    resolver = TenantResolver(store, ttl_seconds=300)

    asyncio.run(resolver.resolve_by_session("pizza-session"))
    tenant = asyncio.run(resolver.resolve_by_phone("27210000001"))

    assert tenant.id == restaurant_tenant.id
    assert resolver.size == 2


def test_invalidate_tenant_evicts_every_lookup_kind(store, restaurant_tenant, pharmacy_tenant):
    resolver = TenantResolver(store, ttl_seconds=300)

    asyncio.run(resolver.resolve_by_session("pizza-session"))
    asyncio.run(resolver.resolve_by_phone("27210000001"))
    asyncio.run(resolver.resolve_by_session("pharm-session"))

    assert resolver.invalidate_tenant(restaurant_tenant.id) == 2
    assert resolver.size == 1

    asyncio.run(resolver.resolve_by_session("pizza-session"))
    assert store.calls.count("get_tenant_by_session") == 3


def test_clear_empties_cache(store, restaurant_tenant):
    resolver = TenantResolver(store, ttl_seconds=300)
    asyncio.run(resolver.resolve_by_session("pizza-session"))

    resolver.clear()

    assert resolver.size == 0
