"""Tests for the TTL response cache."""

import time
from unittest.mock import Mock

import pytest

from airglobe.cache import ResponseCache


@pytest.fixture
def cache(clock):
    return ResponseCache(max_size=3, clock=clock)


class TestGetOrSet:

    def test_second_call_within_ttl_is_cached(self, cache, clock):
        producer = Mock(return_value=['a'])

        first = cache.get_or_set('k', producer, ttl=15)
        clock.advance(5)
        second = cache.get_or_set('k', producer, ttl=15)

        assert first == second == ['a']
        producer.assert_called_once_with()

    def test_entry_alive_at_exactly_ttl(self, cache, clock):
        producer = Mock(return_value=1)

        cache.get_or_set('k', producer, ttl=15)
        clock.advance(15)
        cache.get_or_set('k', producer, ttl=15)

        assert producer.call_count == 1

    def test_refetch_after_ttl(self, cache, clock):
        producer = Mock(side_effect=['old', 'new'])

        cache.get_or_set('k', producer, ttl=15)
        clock.advance(16)
        result = cache.get_or_set('k', producer, ttl=15)

        assert result == 'new'
        assert producer.call_count == 2

    def test_keys_are_independent(self, cache):
        cache.get_or_set('a', lambda: 1, ttl=15)
        cache.get_or_set('b', lambda: 2, ttl=15)

        assert cache.get('a') == 1
        assert cache.get('b') == 2

    def test_falsy_values_are_cached(self, cache):
        producer = Mock(return_value=[])

        cache.get_or_set('k', producer, ttl=15)
        cache.get_or_set('k', producer, ttl=15)

        producer.assert_called_once_with()

    def test_producer_failure_propagates_and_is_not_cached(self, cache):
        producer = Mock(side_effect=[RuntimeError('upstream down'), 'ok'])

        with pytest.raises(RuntimeError, match='upstream down'):
            cache.get_or_set('k', producer, ttl=15)

        assert 'k' not in cache
        assert cache.get_or_set('k', producer, ttl=15) == 'ok'

    def test_disabled_cache_always_calls_producer(self, clock):
        cache = ResponseCache(enabled=False, clock=clock)
        producer = Mock(return_value='fresh')

        cache.get_or_set('k', producer, ttl=15)
        cache.get_or_set('k', producer, ttl=15)

        assert producer.call_count == 2
        assert cache.size() == 0


class TestEviction:

    def test_oldest_inserted_evicted_at_capacity(self, cache):
        for key in ('a', 'b', 'c'):
            cache.set(key, key, ttl=60)

        cache.set('d', 'd', ttl=60)

        assert 'a' not in cache
        assert all(k in cache for k in ('b', 'c', 'd'))
        assert cache.size() == 3
        assert cache.stats['evictions'] == 1

    def test_reads_do_not_change_eviction_order(self, cache):
        for key in ('a', 'b', 'c'):
            cache.set(key, key, ttl=60)

        cache.get('a')
        cache.set('d', 'd', ttl=60)

        assert 'a' not in cache
        assert 'b' in cache

    def test_overwriting_existing_key_does_not_evict(self, cache):
        for key in ('a', 'b', 'c'):
            cache.set(key, key, ttl=60)

        cache.set('b', 'B', ttl=60)

        assert cache.size() == 3
        assert cache.get('b') == 'B'
        assert cache.stats['evictions'] == 0

    def test_expired_read_frees_a_slot(self, cache, clock):
        cache.set('a', 'a', ttl=1)
        cache.set('b', 'b', ttl=60)
        cache.set('c', 'c', ttl=60)
        clock.advance(2)

        assert cache.get('a') is None
        cache.set('d', 'd', ttl=60)

        assert all(k in cache for k in ('b', 'c', 'd'))

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            ResponseCache(max_size=0)


class TestSweep:

    def test_size_includes_unswept_expired_entries(self, cache, clock):
        cache.set('a', 1, ttl=5)
        clock.advance(10)

        assert cache.size() == 1
        assert len(cache) == 1

    def test_sweep_removes_only_expired(self, cache, clock):
        cache.set('short', 1, ttl=5)
        cache.set('long', 2, ttl=60)
        clock.advance(10)

        removed = cache.sweep()

        assert removed == 1
        assert 'short' not in cache
        assert cache.get('long') == 2

    def test_clear(self, cache):
        cache.set('a', 1, ttl=60)
        cache.set('b', 2, ttl=60)

        cache.clear()

        assert cache.size() == 0

    def test_background_sweeper(self, clock):
        cache = ResponseCache(sweep_interval=0.01, clock=clock)
        cache.set('a', 1, ttl=5)
        clock.advance(10)

        cache.start_sweeper()
        try:
            deadline = time.monotonic() + 2
            while cache.size() and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            cache.stop_sweeper()

        assert cache.size() == 0

    def test_sweeper_not_started_when_disabled(self):
        cache = ResponseCache(enabled=False)

        cache.start_sweeper()

        assert cache._sweeper is None


class TestStats:

    def test_hits_and_misses(self, cache):
        cache.get_or_set('k', lambda: 1, ttl=15)
        cache.get_or_set('k', lambda: 1, ttl=15)

        stats = cache.stats

        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['hit_rate'] == 0.5
        assert stats['entries'] == 1
        assert stats['max_size'] == 3
