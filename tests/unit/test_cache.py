"""Tests for the queue name cache."""

import json

from queue_explorer.cache import JsonFileQueueNameCache, MemoryQueueNameCache, cache_key


class TestMemoryCache:
    def test_unknown_connection_is_empty(self):
        assert MemoryQueueNameCache().get("local") == []

    def test_update_replaces_names(self):
        cache = MemoryQueueNameCache()
        cache.update("local", ["orders", "emails"])
        cache.update("local", ["orders"])

        assert cache.get("local") == ["orders"]


class TestJsonFileCache:
    def test_names_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "cache" / "queues.json"
        JsonFileQueueNameCache(path).update("local", ["orders", "emails"])

        assert JsonFileQueueNameCache(path).get("local") == ["orders", "emails"]

    def test_entries_are_keyed_per_connection(self, tmp_path):
        path = tmp_path / "queues.json"
        cache = JsonFileQueueNameCache(path)
        cache.update("local", ["orders"])
        cache.update("staging", ["emails"])

        data = json.loads(path.read_text())

        assert data == {cache_key("local"): ["orders"], cache_key("staging"): ["emails"]}
        assert cache_key("local") == "bullmq:queues:local"

    def test_unreadable_file_is_treated_as_empty(self, tmp_path):
        path = tmp_path / "queues.json"
        path.write_text("{not json")
        cache = JsonFileQueueNameCache(path)

        assert cache.get("local") == []

        cache.update("local", ["orders"])
        assert cache.get("local") == ["orders"]
