import asyncio
import unittest

from resi_app.core.breaker import CircuitBreaker, CircuitOpenError
from resi_app.core.cache import Cache
from resi_app.core.cache_aside import CacheAside
from resi_app.core.query_engine import ListParams
from resi_app.models.enums import UserRole

from .support import ApiTestCase, FakeRedis


def make_cache():
    cache = Cache(url="redis://unused", breaker=CircuitBreaker(name="unit-test"))
    cache.redis = FakeRedis()
    return cache


class TestCircuitBreaker(unittest.TestCase):
    def test_opens_after_threshold_and_rejects_calls(self):
        breaker = CircuitBreaker(name="t", failure_threshold=2, base_recovery_time=30)

        async def boom():
            raise ConnectionError("down")

        async def ok():
            return "ok"

        async def scenario():
            for _ in range(2):
                with self.assertRaises(ConnectionError):
                    await breaker.call(boom)
            self.assertEqual(breaker.state, "OPEN")
            with self.assertRaises(CircuitOpenError):
                await breaker.call(ok)

            breaker.last_failure_time -= 60
            self.assertEqual(await breaker.call(ok), "ok")
            self.assertEqual(breaker.state, "CLOSED")
            self.assertEqual(breaker.failure_count, 0)

        asyncio.run(scenario())

    def test_recovery_time_grows_and_is_capped(self):
        breaker = CircuitBreaker(failure_threshold=3, base_recovery_time=10, max_recovery_time=60)
        breaker.failure_count = 3
        self.assertEqual(breaker.current_recovery_time, 10)
        breaker.failure_count = 4
        self.assertEqual(breaker.current_recovery_time, 20)
        breaker.failure_count = 10
        self.assertEqual(breaker.current_recovery_time, 60)


class TestCacheAside(unittest.TestCase):
    def test_fetch_loads_once(self):
        cache = make_cache()
        aside = CacheAside(cache, "unit")
        calls = []

        async def loader():
            calls.append(1)
            return {"success": True, "data": [1]}

        async def scenario():
            first = await aside.fetch("unit:1", loader)
            second = await aside.fetch("unit:1", loader)
            return first, second

        first, second = asyncio.run(scenario())
        self.assertEqual(first, second)
        self.assertEqual(len(calls), 1)

    def test_list_keys_are_stable_and_scoped(self):
        aside = CacheAside(make_cache(), "property")
        a = aside.list_key("t1", ListParams.from_query({"page": "1", "city": "X"}))
        b = aside.list_key("t1", ListParams.from_query({"city": "X"}))
        c = aside.list_key("t2", ListParams.from_query({"city": "X"}))
        self.assertEqual(a, b)
        self.assertNotEqual(a, c)
        self.assertTrue(a.startswith("property:list:t1:"))

    def test_invalidate_drops_lists_stats_and_detail(self):
        cache = make_cache()
        cache.redis.store.update(
            {
                "unit:list:t1:{}": "{}",
                "unit:stats:t1": "{}",
                "unit:abc": "{}",
                "unit:other": "{}",
                "property:list:t1:{}": "{}",
            }
        )
        asyncio.run(CacheAside(cache, "unit").invalidate("abc"))
        self.assertEqual(set(cache.redis.store), {"unit:other", "property:list:t1:{}"})

    def test_failures_degrade_to_misses(self):
        cache = make_cache()
        cache.redis.fail = True

        async def scenario():
            self.assertIsNone(await cache.get("k"))
            await cache.set("k", "v")
            self.assertFalse(await cache.delete("k"))
            self.assertEqual(await cache.delete_pattern("k*"), 0)

        asyncio.run(scenario())
        self.assertEqual(cache.breaker.state, "OPEN")

    def test_corrupt_json_is_a_miss(self):
        cache = make_cache()
        cache.redis.store["k"] = "{not json"
        self.assertIsNone(asyncio.run(cache.get_json("k")))

    def test_no_connection_is_a_miss(self):
        cache = Cache(url="redis://unused")
        self.assertIsNone(asyncio.run(cache.get("k")))


class TestCacheOutage(ApiTestCase):
    def test_api_keeps_serving_without_redis(self):
        tenant = self.make_tenant()
        admin = self.make_user(tenant, UserRole.ADMIN)
        self.make_property(tenant)
        self.redis.fail = True

        for _ in range(4):
            res = self.client.get("/api/properties/", headers=self.auth(admin))
            self.assertEqual(res.status_code, 200, res.text)
            self.assertEqual(res.json()["count"], 1)
        self.assertEqual(self.cache.breaker.state, "OPEN")


if __name__ == "__main__":
    unittest.main()
