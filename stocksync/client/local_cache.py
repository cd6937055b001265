"""Mobile read cache: items, categories, locations and sync prefs."""

from typing import Any, Iterable, Optional

from stocksync.client.storage import KeyValueStore

ITEMS_KEY = "cache_items"
CATEGORIES_KEY = "cache_categories"
LOCATIONS_KEY = "cache_locations"
PREFS_KEY = "prefs"


class LocalCache:
    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    # ---- prefs ----

    def get_pref(self, name: str, default: Any = None) -> Any:
        return (self.kv.get(PREFS_KEY, {}) or {}).get(name, default)

    def set_pref(self, name: str, value: Any) -> None:
        prefs = self.kv.get(PREFS_KEY, {}) or {}
        prefs[name] = value
        self.kv.set(PREFS_KEY, prefs)

    @property
    def bootstrapped(self) -> bool:
        return bool(self.get_pref("bootstrapped", False))

    @bootstrapped.setter
    def bootstrapped(self, value: bool) -> None:
        self.set_pref("bootstrapped", bool(value))

    @property
    def items_since_ms(self) -> int:
        return int(self.get_pref("items_since_ms", 0) or 0)

    @items_since_ms.setter
    def items_since_ms(self, value: int) -> None:
        self.set_pref("items_since_ms", int(value))

    @property
    def last_sync_ms(self) -> Optional[int]:
        return self.get_pref("last_sync_ms")

    @property
    def last_sync_status(self) -> Optional[str]:
        return self.get_pref("last_sync_status")

    def record_sync(self, status: str, at_ms: int) -> None:
        prefs = self.kv.get(PREFS_KEY, {}) or {}
        prefs["last_sync_status"] = status
        prefs["last_sync_ms"] = int(at_ms)
        self.kv.set(PREFS_KEY, prefs)

    def next_temp_id(self) -> int:
        value = int(self.get_pref("next_temp_id", -1))
        self.set_pref("next_temp_id", value - 1)
        return value

    # ---- items ----

    def _items(self) -> dict:
        return self.kv.get(ITEMS_KEY, {}) or {}

    def items(self, *, include_deleted: bool = False) -> list[dict]:
        rows = list(self._items().values())
        if not include_deleted:
            rows = [row for row in rows if not row.get("deleted")]
        return sorted(rows, key=lambda row: (str(row.get("name") or "").lower(), row.get("id")))

    def get_item(self, item_id: int) -> Optional[dict]:
        return self._items().get(str(int(item_id)))

    def upsert_items(self, rows: Iterable[dict]) -> int:
        items = self._items()
        count = 0
        for row in rows:
            items[str(int(row["id"]))] = dict(row)
            count += 1
        self.kv.set(ITEMS_KEY, items)
        return count

    def upsert_item(self, row: dict) -> None:
        self.upsert_items([row])

    def replace_items(self, rows: Iterable[dict]) -> None:
        self.kv.set(ITEMS_KEY, {str(int(row["id"])): dict(row) for row in rows})

    def remove_item(self, item_id: int) -> None:
        items = self._items()
        if items.pop(str(int(item_id)), None) is not None:
            self.kv.set(ITEMS_KEY, items)

    def replace_id(self, temp_id: int, canonical: dict) -> None:
        items = self._items()
        items.pop(str(int(temp_id)), None)
        items[str(int(canonical["id"]))] = dict(canonical)
        self.kv.set(ITEMS_KEY, items)

    def max_last_modified(self) -> int:
        values = [int(row.get("last_modified") or 0) for row in self._items().values()]
        return max(values) if values else 0

    # ---- lookups ----

    def categories(self) -> list[dict]:
        return self.kv.get(CATEGORIES_KEY, []) or []

    def replace_categories(self, rows: Iterable[dict]) -> None:
        self.kv.set(CATEGORIES_KEY, [dict(row) for row in rows])

    def locations(self) -> list[dict]:
        return self.kv.get(LOCATIONS_KEY, []) or []

    def replace_locations(self, rows: Iterable[dict]) -> None:
        self.kv.set(LOCATIONS_KEY, [dict(row) for row in rows])


__all__ = ["LocalCache"]
