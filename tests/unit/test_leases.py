from unittest.mock import MagicMock

import pytest

from webpify.services.leases import InMemoryLeaseStore, LeaseManager, RedisLeaseStore


@pytest.fixture
def leases(settings, clock):
    return LeaseManager(InMemoryLeaseStore(clock=clock), settings, clock=clock)


def test_key_folds_in_normalized_size(leases):
    assert leases.key(42, "thumbnail") == "webpify_converting_42_thumbnail"
    assert leases.key(42, [300, 200]) == "webpify_converting_42_300_200"


def test_acquire_marks_in_progress_until_ttl(leases, clock):
    leases.acquire(7, "medium")
    assert leases.in_progress(7, "medium")

    clock.advance(299)
    assert leases.in_progress(7, "medium")

    clock.advance(1)
    assert not leases.in_progress(7, "medium")


def test_release_clears_lease(leases):
    leases.acquire(7, "medium")
    leases.release(7, "medium")

    assert not leases.in_progress(7, "medium")
    leases.release(7, "medium")


def test_leases_are_per_key(leases):
    leases.acquire(1, "thumbnail")

    assert not leases.in_progress(1, "medium")
    assert not leases.in_progress(2, "thumbnail")


def test_stale_value_is_ignored_even_if_store_keeps_it(settings, clock):
    store = MagicMock()
    store.get.return_value = repr(clock() - settings.conversion_timeout - 5)
    leases = LeaseManager(store, settings, clock=clock)

    assert not leases.in_progress(3, "large")


def test_try_acquire_is_exclusive_while_live(leases, clock):
    assert leases.try_acquire(9, "srcset")
    assert not leases.try_acquire(9, "srcset")

    clock.advance(300)
    assert leases.try_acquire(9, "srcset")


def test_try_acquire_overwrites_stale_value(settings, clock):
    store = MagicMock()
    store.set_if_absent.return_value = False
    store.get.return_value = repr(clock() - 10_000)
    leases = LeaseManager(store, settings, clock=clock)

    assert leases.try_acquire(9, "srcset")
    store.set.assert_called_once_with("webpify_converting_9_srcset", repr(clock()), 300)


def test_redis_store_uses_expiry():
    client = MagicMock()
    client.get.return_value = b"123.5"
    client.set.return_value = None
    store = RedisLeaseStore(client)

    store.set("k", "1.0", 300)
    client.set.assert_called_with("k", "1.0", ex=300)

    assert not store.set_if_absent("k", "2.0", 300)
    client.set.assert_called_with("k", "2.0", ex=300, nx=True)

    assert store.get("k") == "123.5"
    store.delete("k")
    client.delete.assert_called_once_with("k")
