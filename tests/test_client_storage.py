import os
import tempfile
import unittest

from stocksync.client.local_cache import LocalCache
from stocksync.client.pending import OperationType, PendingOperationStore
from stocksync.client.storage import JsonFileKeyValueStore, MemoryKeyValueStore


class JsonFileKeyValueStoreTest(unittest.TestCase):
    def test_values_survive_reopen(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, "state", "client.json")
            store = JsonFileKeyValueStore(path)
            store.set("prefs", {"bootstrapped": True})
            store.set("gone", 1)
            store.delete("gone")

            reopened = JsonFileKeyValueStore(path)
            self.assertEqual(reopened.get("prefs"), {"bootstrapped": True})
            self.assertIsNone(reopened.get("gone"))
            self.assertEqual(os.listdir(os.path.dirname(path)), ["client.json"])

    def test_corrupt_file_starts_empty(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, "client.json")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("{not json")
            self.assertEqual(JsonFileKeyValueStore(path).get("prefs", {}), {})

    def test_returned_values_are_copies(self):
        store = MemoryKeyValueStore()
        store.set("items", {"a": 1})
        value = store.get("items")
        value["b"] = 2
        self.assertEqual(store.get("items"), {"a": 1})


class PendingOperationStoreTest(unittest.TestCase):
    def test_operations_keep_fifo_order_across_reopen(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, "client.json")
            pending = PendingOperationStore(JsonFileKeyValueStore(path))
            first = pending.append(OperationType.ITEM_UPDATE, {"id": 1})
            second = pending.append("scan", {"event_id": "e1"})

            reopened = PendingOperationStore(JsonFileKeyValueStore(path))
            ops = reopened.load()
            self.assertEqual([op.id for op in ops], [first.id, second.id])
            self.assertEqual(ops[1].type, "scan")
            self.assertEqual(ops[0].retry_count, 0)
            self.assertGreater(ops[0].created_at, 0)

    def test_unknown_type_is_rejected(self):
        pending = PendingOperationStore(MemoryKeyValueStore())
        with self.assertRaises(ValueError):
            pending.append("teleport", {})


class LocalCacheTest(unittest.TestCase):
    def test_temp_ids_are_negative_and_unique(self):
        cache = LocalCache(MemoryKeyValueStore())
        self.assertEqual([cache.next_temp_id() for _ in range(3)], [-1, -2, -3])

    def test_replace_id_moves_row(self):
        cache = LocalCache(MemoryKeyValueStore())
        cache.upsert_item({"id": -1, "name": "Draft"})
        cache.replace_id(-1, {"id": 10, "name": "Draft", "last_modified": 50})
        self.assertIsNone(cache.get_item(-1))
        self.assertEqual(cache.get_item(10)["last_modified"], 50)
        self.assertEqual(cache.max_last_modified(), 50)

    def test_sync_status_is_recorded(self):
        cache = LocalCache(MemoryKeyValueStore())
        self.assertIsNone(cache.last_sync_status)
        cache.record_sync("ok", 123)
        self.assertEqual(cache.last_sync_status, "ok")
        self.assertEqual(cache.last_sync_ms, 123)


if __name__ == "__main__":
    unittest.main()
