from cache import policy
from cache.local import LocalCache


def test_get_returns_none_for_missing_and_expired(clock):
    cache = LocalCache(clock=clock)
    assert cache.get("nope") is None

    cache.set("k", {"a": 1}, 10)
    assert cache.get("k") == {"a": 1}

    clock.advance(10)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_eviction_is_insertion_order_not_lru(clock):
    cache = LocalCache(max_size=2, clock=clock)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    # Reading "a" does not protect it.
    assert cache.get("a") == 1
    cache.set("c", 3, 60)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_cleanup_and_delete_prefix(clock):
    cache = LocalCache(clock=clock)
    cache.set("cache:propertyCounts:{}", 1, 5)
    cache.set("cache:statusCounts:{}", 2, 50)
    cache.set("digest:2025-01-01", 3, 50)

    clock.advance(6)
    assert cache.cleanup() == 1
    assert cache.delete_prefix("cache:*") == 1
    assert cache.get("digest:2025-01-01") == 3


def test_hash_string_matches_browser_hash():
    assert policy.hash_string("") == "0"
    # "a" -> 97 -> "2p" in base 36.
    assert policy.hash_string("a") == "2p"
    assert policy.hash_string("hello") == policy.to_base36(abs(99162322))


def test_key_builders():
    assert policy.area_benchmarks("Dubai Marina") == "benchmarks:dubai marina"
    assert policy.rate_limit("1.2.3.4", "send-contact-email") == "ratelimit:send-contact-email:1.2.3.4"
    assert policy.search_results("marina").startswith("search:")
    assert policy.ai_response_hash({"b": 1, "a": 2}) == policy.ai_response_hash({"a": 2, "b": 1})


def test_data_type_policies():
    assert policy.policy_for("statusCounts").server_ttl == 120
    assert policy.policy_for("statusCounts").client_ttl == 60
    assert policy.policy_for("marketStats").stale_time == 15 * 60
    assert policy.policy_for("somethingElse").server_ttl == 300
    assert policy.cached_data_key("x", {"b": 1, "a": 2}) == 'cache:x:{"a":2,"b":1}'
