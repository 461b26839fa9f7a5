import json

from cache.offline import OfflineStore


def test_values_survive_reopen(tmp_path):
    path = tmp_path / "store.json"
    OfflineStore(path).set("views", ["p1", "p2"])

    assert OfflineStore(path).get("views") == ["p1", "p2"]


def test_ttl_expiry(tmp_path, clock):
    store = OfflineStore(tmp_path / "store.json", clock=clock)
    store.set("k", 1, ttl_seconds=10)
    assert store.keys() == ["k"]

    clock.advance(10)
    assert store.get("k", "gone") == "gone"
    assert store.keys() == []


def test_corrupt_file_is_reset(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    store = OfflineStore(path)
    assert store.get("anything") is None
    store.set("k", "v")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": {"value": "v"}}


def test_keys_prefix_delete_and_clear(tmp_path):
    store = OfflineStore(tmp_path / "store.json")
    store.set("anonymous_property_views:a", [])
    store.set("free_tier_property_views_1", [])

    assert store.keys("anonymous_") == ["anonymous_property_views:a"]
    assert store.delete("free_tier_property_views_1") is True
    assert store.delete("free_tier_property_views_1") is False
    store.clear()
    assert store.keys() == []
