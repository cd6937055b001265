import json
import os
import tempfile
import unittest

from fastapi.testclient import TestClient

from stocksync.config import Settings
from stocksync.main import create_app


def make_settings(tmp_dir, **overrides):
    values = {
        "DATA_DIR": tmp_dir,
        "INVENTORY_REGISTRY_PATH": os.path.join(tmp_dir, "registry.json"),
        "OWNER_TOKEN": None,
        "EDITOR_API_KEYS": None,
        "VIEWER_API_KEYS": None,
        "JWT_SECRET": None,
        "AUTH_REQUIRED": False,
        "ENVIRONMENT": "test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class ApiTestCase(unittest.TestCase):
    settings_overrides = {}

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp_dir = self._tmp.name
        registry = {
            "activeId": "home",
            "inventories": [
                {"id": "home", "name": "Home", "dataDir": "home"},
                {"id": "shop", "name": "Shop", "dataDir": "shop"},
            ],
        }
        with open(os.path.join(tmp_dir, "registry.json"), "w", encoding="utf-8") as handle:
            json.dump(registry, handle)
        self.app = create_app(make_settings(tmp_dir, **self.settings_overrides))
        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()
        self.app.state.stores.close_all()
        self._tmp.cleanup()

    def create_item(self, inventory="home", **fields):
        body = {"name": "Widget"}
        body.update(fields)
        response = self.client.post("/items", json=body, headers={"X-Inventory-Id": inventory})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["item"]


class InventoryIsolationTest(ApiTestCase):
    def test_health_needs_no_inventory(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_inventories_are_listed(self):
        body = self.client.get("/inventories").json()
        self.assertEqual(body["active_id"], "home")
        self.assertEqual([row["id"] for row in body["inventories"]], ["home", "shop"])

    def test_writes_stay_in_their_inventory(self):
        created = self.create_item("shop", name="Shop Only", barcode="S-1")

        shop = self.client.get("/items", headers={"X-Inventory-Id": "shop"})
        home = self.client.get("/items", headers={"X-Inventory-Id": "home"})
        self.assertEqual([row["id"] for row in shop.json()["items"]], [created["id"]])
        self.assertEqual(home.json()["items"], [])
        self.assertEqual(shop.headers["X-Inventory-Id"], "shop")

        scan = self.client.post(
            "/scans",
            json={"events": [{"event_id": "iso-1", "barcode": "S-1", "delta": 1}]},
            headers={"X-Inventory-Id": "home"},
        )
        self.assertEqual(scan.json()["results"][0]["status"], "not_found")

    def test_missing_header_uses_active_inventory(self):
        self.create_item("home", name="Home Item")
        response = self.client.get("/items")
        self.assertEqual(response.headers["X-Inventory-Id"], "home")
        self.assertEqual(len(response.json()["items"]), 1)

    def test_unknown_inventory_fails_whole_request(self):
        response = self.client.get("/items", headers={"X-Inventory-Id": "nowhere"})
        self.assertEqual(response.status_code, 404)
        body = response.json()
        self.assertEqual(body["error"], "inventory_not_found")
        self.assertEqual(body["details"], {"inventory_id": "nowhere"})


class ItemApiTest(ApiTestCase):
    def test_create_validation_error(self):
        response = self.client.post("/items", json={"name": ""})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_failed")

    def test_stale_update_returns_conflict_with_server_copy(self):
        item = self.create_item(name="Lamp")
        fresh = self.client.put(
            "/items/{}".format(item["id"]),
            json={"quantity": 5, "last_modified": item["last_modified"]},
        )
        self.assertEqual(fresh.status_code, 200)
        self.assertEqual(fresh.json()["item"]["quantity"], 5)

        stale = self.client.put(
            "/items/{}".format(item["id"]),
            json={"name": "Old Edit", "last_modified": item["last_modified"]},
        )
        self.assertEqual(stale.status_code, 409)
        body = stale.json()
        self.assertEqual(body["error"], "conflict")
        self.assertEqual(body["server_item"]["quantity"], 5)
        self.assertEqual(body["client_timestamp"], item["last_modified"])

    def test_soft_delete_and_incremental_pull(self):
        item = self.create_item(name="Temp")
        deleted = self.client.delete("/items/{}".format(item["id"]))
        self.assertEqual(deleted.json()["item"]["state"], "deleted")

        listed = self.client.get("/items").json()
        self.assertEqual(listed["items"], [])

        pulled = self.client.get(
            "/items", params={"since": item["last_modified"], "include_deleted": "true"}
        ).json()
        self.assertEqual(pulled["deleted"], [item["id"]])
        self.assertEqual(pulled["items"][0]["deleted"], True)
        self.assertIn("server_time", pulled)

    def test_barcode_attach_conflict(self):
        first = self.create_item(name="First")
        second = self.create_item(name="Second")
        ok = self.client.post("/items/{}/barcodes".format(first["id"]), json={"barcode": "ALT-1"})
        self.assertEqual(ok.status_code, 200)
        clash = self.client.post("/items/{}/barcodes".format(second["id"]), json={"barcode": "ALT-1"})
        self.assertEqual(clash.status_code, 409)
        self.assertEqual(clash.json()["error"], "barcode_in_use")
        self.assertEqual(clash.json()["item_id"], first["id"])

        since = self.client.get("/item-barcodes", params={"since": 0}).json()
        self.assertEqual([row["barcode"] for row in since["barcodes"]], ["ALT-1"])

    def test_scan_results_shapes(self):
        self.create_item(name="A", barcode="DUP", quantity=1)
        self.create_item(name="B", barcode="DUP", quantity=1)
        single = self.create_item(name="C", barcode="ONE", quantity=1)
        events = [
            {"event_id": "s1", "barcode": "ONE", "delta": 2},
            {"event_id": "s2", "barcode": "DUP", "delta": 1},
            {"event_id": "s3", "barcode": "ZZZ", "delta": 1},
            {"event_id": "s4", "barcode": "ONE", "delta": 0},
        ]
        body = self.client.post("/scans", json={"events": events}).json()
        self.assertIn("server_time", body)
        results = body["results"]
        self.assertEqual([r["status"] for r in results], ["applied", "ambiguous", "not_found", "error"])
        self.assertEqual(results[0]["item"]["id"], single["id"])
        self.assertEqual(results[0]["item"]["quantity"], 3)
        self.assertEqual(len(results[1]["items"]), 2)
        self.assertNotIn("item", results[2])

        again = self.client.post("/scans", json={"events": events[:1]}).json()["results"][0]
        self.assertEqual(again["status"], "duplicate")
        self.assertEqual(again["item"]["quantity"], 3)

    def test_malformed_scan_does_not_block_batch(self):
        item = self.create_item(name="Good", barcode="GOOD", quantity=1)
        events = [
            {"event_id": "ok-1", "barcode": "GOOD", "delta": 3},
            {"event_id": "bad-1", "barcode": "GOOD", "delta": 2.5},
            {"event_id": 42, "barcode": "GOOD", "delta": 1},
            {"event_id": "bad-2", "barcode": "GOOD", "delta": 1, "item_id": "abc"},
            "not-an-event",
        ]
        response = self.client.post("/scans", json={"events": events})
        self.assertEqual(response.status_code, 200)
        results = response.json()["results"]
        self.assertEqual(
            [r["status"] for r in results],
            ["applied", "error", "applied", "error", "error"],
        )
        self.assertEqual(results[1]["reason"], "delta_invalid")
        self.assertEqual(results[2]["event_id"], "42")
        self.assertEqual(results[3]["reason"], "item_id_invalid")
        self.assertEqual(results[4]["reason"], "event_id_required")

        fetched = self.client.get("/items/{}".format(item["id"])).json()
        self.assertEqual(fetched["item"]["quantity"], 5)

    def test_scan_batch_limit(self):
        events = [{"event_id": "e{}".format(i), "barcode": "X", "delta": 1} for i in range(501)]
        response = self.client.post("/scans", json={"events": events})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_failed")

    def test_resolve_barcode(self):
        item = self.create_item(name="Only", barcode="RES")
        body = self.client.post("/scan/resolve", json={"barcode": "RES"}).json()
        self.assertEqual(body["action"], "found")
        self.assertEqual(body["item"]["id"], item["id"])

    def test_export_import_and_sync_log(self):
        self.create_item("home", name="Shared")
        exported = self.client.get("/export", headers={"X-Inventory-Id": "home"}).json()
        imported = self.client.post("/import", json=exported, headers={"X-Inventory-Id": "shop"})
        self.assertEqual(imported.status_code, 200)
        self.assertEqual(imported.json()["items_inserted"], 1)

        shop_items = self.client.get("/items", headers={"X-Inventory-Id": "shop"}).json()["items"]
        self.assertEqual([row["name"] for row in shop_items], ["Shared"])
        log = self.client.get("/sync-log", headers={"X-Inventory-Id": "shop"}).json()
        self.assertEqual(log[0]["source"], "import")

    def test_category_delete_detaches_items(self):
        category = self.client.post("/categories", json={"name": "Tools"}).json()
        item = self.create_item(name="Hammer", category_id=category["id"])
        dup = self.client.post("/categories", json={"name": "Tools"})
        self.assertEqual(dup.status_code, 409)

        removed = self.client.delete("/categories/{}".format(category["id"]))
        self.assertEqual(removed.json()["items_updated"], 1)
        fetched = self.client.get("/items/{}".format(item["id"])).json()["item"]
        self.assertIsNone(fetched["category_id"])
        self.assertGreater(fetched["last_modified"], item["last_modified"])


class RoleGateTest(ApiTestCase):
    settings_overrides = {"EDITOR_API_KEYS": "edit-key", "VIEWER_API_KEYS": "view-key"}

    def test_missing_credentials(self):
        response = self.client.get("/items")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "unauthorized")

    def test_viewer_can_read_but_not_write(self):
        headers = {"X-API-Key": "view-key"}
        self.assertEqual(self.client.get("/items", headers=headers).status_code, 200)
        response = self.client.post("/items", json={"name": "Nope"}, headers=headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "forbidden")

    def test_editor_can_write(self):
        response = self.client.post(
            "/items",
            json={"name": "Yes"},
            headers={"Authorization": "Bearer edit-key"},
        )
        self.assertEqual(response.status_code, 201)


class UnhandledErrorTest(unittest.TestCase):
    def _boom_client(self, environment):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        app = create_app(make_settings(tmp.name, ENVIRONMENT=environment, INVENTORY_REGISTRY_PATH=None))

        def boom():
            raise RuntimeError("secret detail")

        app.add_api_route("/boom", boom)
        return TestClient(app, raise_server_exceptions=False)

    def test_internal_details_hidden_in_production(self):
        response = self._boom_client("production").get("/boom")
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "internal_error")
        self.assertNotIn("details", body)

    def test_internal_details_shown_outside_production(self):
        response = self._boom_client("local").get("/boom")
        self.assertEqual(response.json()["details"]["message"], "secret detail")


if __name__ == "__main__":
    unittest.main()
