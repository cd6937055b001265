import os
import sqlite3
import tempfile
import unittest

from sqlalchemy import inspect

from stocksync.core.errors import BarcodeInUse, ConflictError, StaleWriteConflict
from stocksync.database.store import InventoryStore
from stocksync.models.item import Item
from stocksync.models.item_barcode import ItemBarcode
from stocksync.services import item_service, lookup_service
from stocksync.services.item_service import ItemNotFound
from store_fixtures import add_item, memory_store


class ItemStoreTest(unittest.TestCase):
    def setUp(self):
        self.store = memory_store()
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.close()

    def test_create_assigns_id_and_timestamp(self):
        item = item_service.create_item(self.db, {"name": "Hammer", "barcode": " 123 "})
        self.assertIsNotNone(item.id)
        self.assertEqual(item.quantity, 1)
        self.assertEqual(item.barcode, "123")
        self.assertGreater(item.last_modified, 0)
        self.assertEqual(item.state.value, "active")

    def test_create_nulls_unknown_references(self):
        item = item_service.create_item(self.db, {"name": "Saw", "category_id": 999})
        self.assertIsNone(item.category_id)

    def test_list_searches_name_serial_and_alternate_barcodes(self):
        drill = add_item(self.db, name="Drill", serial_number="SN-42")
        saw = add_item(self.db, name="Saw")
        self.db.add(ItemBarcode(barcode="ALT-777", item_id=saw.id, created_at=1))
        self.db.commit()

        self.assertEqual([row.id for row in item_service.list_items(self.db, q="dri")], [drill.id])
        self.assertEqual([row.id for row in item_service.list_items(self.db, q="SN-4")], [drill.id])
        self.assertEqual([row.id for row in item_service.list_items(self.db, q="777")], [saw.id])

    def test_soft_deleted_items_are_hidden_unless_requested(self):
        item = add_item(self.db, name="Old")
        deleted = item_service.soft_delete_item(self.db, item.id)
        self.assertTrue(deleted.deleted)
        self.assertGreater(deleted.last_modified, 1000)
        self.assertEqual(item_service.list_items(self.db), [])
        rows = item_service.list_items(self.db, include_deleted=True)
        self.assertEqual([row.id for row in rows], [item.id])
        self.assertIsNotNone(self.db.get(Item, item.id))

    def test_list_since_returns_only_newer_rows(self):
        add_item(self.db, name="Before", last_modified=1000)
        newer = add_item(self.db, name="After", last_modified=3000)
        rows = item_service.list_items(self.db, since=2000)
        self.assertEqual([row.id for row in rows], [newer.id])

    def test_stale_update_is_rejected_with_server_copy(self):
        item = add_item(self.db, name="Lamp", quantity=4, last_modified=5000)
        with self.assertRaises(StaleWriteConflict) as ctx:
            item_service.update_item(self.db, item.id, {"name": "Desk Lamp"}, client_last_modified=4000)
        self.assertEqual(ctx.exception.server_item["name"], "Lamp")
        self.assertEqual(ctx.exception.server_item["last_modified"], 5000)
        self.assertEqual(ctx.exception.client_timestamp, 4000)
        self.assertEqual(self.db.get(Item, item.id).name, "Lamp")

    def test_update_with_current_version_bumps_last_modified(self):
        item = add_item(self.db, name="Lamp", last_modified=5000)
        updated = item_service.update_item(self.db, item.id, {"quantity": 7}, client_last_modified=5000)
        self.assertEqual(updated.quantity, 7)
        self.assertGreater(updated.last_modified, 5000)

    def test_update_never_moves_last_modified_backwards(self):
        future = 10 ** 15
        item = add_item(self.db, last_modified=future)
        updated = item_service.update_item(self.db, item.id, {"name": "Later"})
        self.assertEqual(updated.last_modified, future + 1)

    def test_update_missing_item(self):
        with self.assertRaises(ItemNotFound):
            item_service.update_item(self.db, 404, {"name": "x"})

    def test_alternate_barcodes_shadow_primary_matches(self):
        primary = add_item(self.db, name="Primary", barcode="X1")
        alternate = add_item(self.db, name="Alternate", barcode="OTHER")
        item_service.attach_barcode(self.db, alternate.id, "X1")

        candidates = item_service.find_barcode_candidates(self.db, "X1")
        self.assertEqual([row.id for row in candidates], [alternate.id])
        self.assertNotEqual(primary.id, alternate.id)

    def test_primary_barcode_may_match_several_items(self):
        first = add_item(self.db, name="A", barcode="DUP")
        second = add_item(self.db, name="B", barcode="DUP")
        add_item(self.db, name="Gone", barcode="DUP", deleted=True)
        ids = {row.id for row in item_service.find_barcode_candidates(self.db, "DUP")}
        self.assertEqual(ids, {first.id, second.id})

    def test_attach_barcode_rules(self):
        owner = add_item(self.db, name="Owner", barcode="OWN")
        other = add_item(self.db, name="Other")

        self.assertTrue(item_service.attach_barcode(self.db, owner.id, "OWN")["ok"])
        self.assertIsNone(self.db.get(ItemBarcode, "OWN"))

        item_service.attach_barcode(self.db, owner.id, "EXTRA")
        item_service.attach_barcode(self.db, owner.id, "EXTRA")
        with self.assertRaises(BarcodeInUse) as ctx:
            item_service.attach_barcode(self.db, other.id, "EXTRA")
        self.assertEqual(ctx.exception.owner_item_id, owner.id)

        barcodes = item_service.list_item_barcodes(self.db, owner.id)
        self.assertEqual([row.barcode for row in barcodes], ["EXTRA"])

    def test_attach_to_deleted_item_fails(self):
        item = add_item(self.db, deleted=True)
        with self.assertRaises(ItemNotFound):
            item_service.attach_barcode(self.db, item.id, "NEW")

    def test_detach_barcode(self):
        item = add_item(self.db)
        item_service.attach_barcode(self.db, item.id, "DET")
        item_service.detach_barcode(self.db, item.id, "DET")
        self.assertEqual(item_service.list_item_barcodes(self.db, item.id), [])

    def test_deleting_category_detaches_items(self):
        category = lookup_service.create_category(self.db, "Tools")
        item = add_item(self.db, category_id=category.id, last_modified=1000)
        touched = lookup_service.delete_category(self.db, category.id)
        self.assertEqual(touched, 1)
        self.db.expire_all()
        refreshed = self.db.get(Item, item.id)
        self.assertIsNone(refreshed.category_id)
        self.assertGreater(refreshed.last_modified, 1000)


    def test_location_names_are_unique_per_parent(self):
        garage = lookup_service.create_location(self.db, "Garage")
        lookup_service.create_location(self.db, "Shelf", garage.id)
        with self.assertRaises(ConflictError):
            lookup_service.create_location(self.db, "Garage")
        with self.assertRaises(ConflictError):
            lookup_service.create_location(self.db, "Shelf", garage.id)
        self.assertEqual(len(lookup_service.list_locations(self.db)), 2)

class SchemaUpgradeTest(unittest.TestCase):
    def test_open_adds_columns_missing_from_older_files(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, "inventory.sqlite")
            conn = sqlite3.connect(path)
            conn.execute(
                "CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
                "quantity INTEGER NOT NULL DEFAULT 1, barcode TEXT, category_id INTEGER, "
                "location_id INTEGER, deleted BOOLEAN NOT NULL DEFAULT 0, "
                "last_modified BIGINT NOT NULL)"
            )
            conn.execute("INSERT INTO items (name, last_modified) VALUES ('Legacy', 1)")
            conn.commit()
            conn.close()

            store = InventoryStore.for_data_dir("legacy", tmp_dir).open()
            try:
                columns = {col["name"] for col in inspect(store.engine).get_columns("items")}
                self.assertIn("barcode_corrupted", columns)
                self.assertIn("serial_number", columns)
                with store.session_scope() as db:
                    legacy = item_service.list_items(db)[0]
                    self.assertEqual(legacy.name, "Legacy")
                    self.assertFalse(legacy.barcode_corrupted)
            finally:
                store.close()


if __name__ == "__main__":
    unittest.main()
