import unittest

from wordle_dp.cache import BoundedMemoCache, CacheStats, MemoEntry


class TestBoundedMemoCache(unittest.TestCase):

    def test_get_put_counters(self) -> None:
        cache = BoundedMemoCache(capacity=10)
        self.assertIsNone(cache.get("a"))
        cache.put("a", MemoEntry(1.5, 3))
        self.assertEqual(cache.get("a"), MemoEntry(1.5, 3))
        self.assertIn("a", cache)
        stats = cache.stats()
        self.assertEqual((stats.hits, stats.misses, stats.size), (1, 1, 1))
        self.assertEqual(stats.hit_rate, 0.5)

    def test_fifo_eviction(self) -> None:
        cache = BoundedMemoCache(capacity=10, evict_fraction=0.3)
        for i in range(10):
            cache.put(i, MemoEntry(float(i), i))
        # Lookups do not protect old entries
        cache.get(0)
        cache.put(10, MemoEntry(10.0, 10))

        self.assertEqual(len(cache), 8)
        for i in (0, 1, 2):
            self.assertNotIn(i, cache)
        for i in range(3, 11):
            self.assertIn(i, cache)
        self.assertEqual(cache.evictions, 3)
        self.assertEqual(cache.eviction_events, 1)

    def test_evicts_at_least_one(self) -> None:
        cache = BoundedMemoCache(capacity=3, evict_fraction=0.01)
        for i in range(5):
            cache.put(i, MemoEntry(1.0, i))
        self.assertEqual(len(cache), 3)
        self.assertEqual(cache.eviction_events, 2)
        self.assertNotIn(1, cache)

    def test_overwrite_does_not_evict(self) -> None:
        cache = BoundedMemoCache(capacity=2)
        cache.put("a", MemoEntry(1.0, 0))
        cache.put("b", MemoEntry(1.0, 1))
        cache.put("a", MemoEntry(2.0, 5))
        self.assertEqual(len(cache), 2)
        self.assertEqual(cache.get("a"), MemoEntry(2.0, 5))
        self.assertEqual(cache.eviction_events, 0)

    def test_clear(self) -> None:
        cache = BoundedMemoCache(capacity=2)
        cache.put("a", MemoEntry(1.0, 0))
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_invalid(self) -> None:
        with self.assertRaises(ValueError):
            BoundedMemoCache(capacity=0)
        with self.assertRaises(ValueError):
            BoundedMemoCache(evict_fraction=0.0)
        with self.assertRaises(ValueError):
            BoundedMemoCache(evict_fraction=1.5)

    def test_combined_stats(self) -> None:
        a = BoundedMemoCache(capacity=4)
        b = BoundedMemoCache(capacity=6)
        a.put("x", MemoEntry(1.0, 0))
        a.get("x")
        b.get("y")
        total = CacheStats.combine([a.stats(), b.stats()])
        self.assertEqual((total.size, total.capacity, total.hits, total.misses), (1, 10, 1, 1))
        self.assertEqual(total.hit_rate, 0.5)
