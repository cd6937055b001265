import json
import unittest

from stocksync.models.category import Category
from stocksync.models.item import Item
from stocksync.models.item_barcode import ItemBarcode
from stocksync.schemas.snapshot import SnapshotIn
from stocksync.services import lookup_service
from stocksync.services.snapshot_service import export_snapshot, import_snapshot, list_sync_log
from store_fixtures import add_item, memory_store


def snapshot(**parts):
    data = {"schema": 1, "exported_at_ms": 1, "categories": [], "locations": [], "items": [], "item_barcodes": []}
    data.update(parts)
    return SnapshotIn.model_validate(data)


class SnapshotMergeTest(unittest.TestCase):
    def setUp(self):
        self.store = memory_store()
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.close()

    def test_export_contains_every_collection(self):
        category = lookup_service.create_category(self.db, "Tools")
        item = add_item(self.db, name="Drill", category_id=category.id)
        self.db.add(ItemBarcode(barcode="ALT", item_id=item.id, created_at=5))
        self.db.commit()

        data = export_snapshot(self.db)
        self.assertEqual(data["schema"], 1)
        self.assertIn("exported_at_ms", data)
        self.assertEqual([row["name"] for row in data["categories"]], ["Tools"])
        self.assertEqual(data["items"][0]["state"], "active")
        self.assertEqual(data["item_barcodes"], [{"barcode": "ALT", "item_id": item.id, "created_at": 5}])
        json.dumps(data)
        self.assertEqual(list_sync_log(self.db)[0].source, "export")

    def test_export_then_import_into_empty_store(self):
        add_item(self.db, name="Drill", quantity=3, last_modified=1234)
        data = export_snapshot(self.db)

        other = memory_store("other")
        try:
            with other.session_scope() as db:
                result = import_snapshot(db, SnapshotIn.model_validate(data))
                self.assertEqual(result.items_inserted, 1)
                copied = db.get(Item, data["items"][0]["id"])
                self.assertEqual(copied.quantity, 3)
                self.assertEqual(copied.last_modified, 1234)
                log = list_sync_log(db)[0]
                self.assertEqual(log.source, "import")
                self.assertEqual(json.loads(log.details)["items_inserted"], 1)
        finally:
            other.close()

    def test_newer_incoming_item_wins(self):
        item = add_item(self.db, name="Local", last_modified=2000)
        result = import_snapshot(
            self.db,
            snapshot(items=[{"id": item.id, "name": "Remote", "quantity": 4, "last_modified": 2001}]),
        )
        self.assertEqual(result.items_updated, 1)
        self.db.expire_all()
        merged = self.db.get(Item, item.id)
        self.assertEqual(merged.name, "Remote")
        self.assertEqual(merged.quantity, 4)

    def test_ties_and_older_incoming_keep_local(self):
        item = add_item(self.db, name="Local", last_modified=2000)
        result = import_snapshot(
            self.db,
            snapshot(
                items=[
                    {"id": item.id, "name": "Tie", "last_modified": 2000},
                    {"id": item.id, "name": "Older", "last_modified": 1999},
                ]
            ),
        )
        self.assertEqual(result.items_skipped, 2)
        self.db.expire_all()
        self.assertEqual(self.db.get(Item, item.id).name, "Local")

    def test_dangling_references_are_nulled(self):
        category = lookup_service.create_category(self.db, "Kept")
        import_snapshot(
            self.db,
            snapshot(
                items=[
                    {"id": 50, "name": "Good", "category_id": category.id, "last_modified": 1},
                    {"id": 51, "name": "Bad", "category_id": 999, "location_id": 888, "last_modified": 1},
                ]
            ),
        )
        self.assertEqual(self.db.get(Item, 50).category_id, category.id)
        bad = self.db.get(Item, 51)
        self.assertIsNone(bad.category_id)
        self.assertIsNone(bad.location_id)

    def test_lookups_are_inserted_only_when_absent_by_name(self):
        lookup_service.create_category(self.db, "Tools")
        result = import_snapshot(
            self.db,
            snapshot(
                categories=[{"id": 7, "name": "Tools"}, {"id": 8, "name": "Garden"}],
                locations=[{"id": 3, "name": "Shed"}],
            ),
        )
        self.assertEqual(result.categories_added, 1)
        self.assertEqual(result.locations_added, 1)
        names = sorted(row.name for row in self.db.query(Category).all())
        self.assertEqual(names, ["Garden", "Tools"])

    def test_alternate_barcodes_are_additive(self):
        owner = add_item(self.db, name="Owner")
        other = add_item(self.db, name="Other")
        self.db.add(ItemBarcode(barcode="TAKEN", item_id=owner.id, created_at=1))
        self.db.commit()

        result = import_snapshot(
            self.db,
            snapshot(
                item_barcodes=[
                    {"barcode": "TAKEN", "item_id": other.id},
                    {"barcode": "FRESH", "item_id": other.id},
                    {"barcode": "ORPHAN", "item_id": 4040},
                ]
            ),
        )
        self.assertEqual(result.barcodes_added, 1)
        self.assertEqual(self.db.get(ItemBarcode, "TAKEN").item_id, owner.id)
        self.assertEqual(self.db.get(ItemBarcode, "FRESH").item_id, other.id)
        self.assertIsNone(self.db.get(ItemBarcode, "ORPHAN"))

    def test_absent_items_are_not_deleted(self):
        item = add_item(self.db, name="Stays")
        import_snapshot(self.db, snapshot(items=[]))
        self.assertFalse(self.db.get(Item, item.id).deleted)


if __name__ == "__main__":
    unittest.main()
