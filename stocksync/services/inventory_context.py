"""Inventory registry and per-request store resolution."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from stocksync.config import Settings
from stocksync.core.errors import InventoryNotFound
from stocksync.database.store import DEFAULT_STORE_FILENAME, InventoryStore
from stocksync.schemas.inventory import RegistryFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryEntry:
    id: str
    name: str
    data_dir: str


@dataclass(frozen=True)
class InventoryRegistry:
    active_id: str
    inventories: tuple[InventoryEntry, ...]

    def find(self, inventory_id: str) -> Optional[InventoryEntry]:
        for entry in self.inventories:
            if entry.id == inventory_id:
                return entry
        return None


class InventoryCatalog:
    """Reads the registry file; falls back to a single default inventory."""

    def __init__(
        self,
        *,
        data_dir: str,
        registry_path: Optional[str] = None,
        default_id: str = "default",
    ) -> None:
        self.data_dir = data_dir
        self.registry_path = registry_path
        self.default_id = default_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryCatalog":
        return cls(
            data_dir=settings.DATA_DIR,
            registry_path=settings.INVENTORY_REGISTRY_PATH,
            default_id=settings.DEFAULT_INVENTORY_ID,
        )

    def _fallback(self) -> InventoryRegistry:
        entry = InventoryEntry(id=self.default_id, name="Default", data_dir=self.data_dir)
        return InventoryRegistry(active_id=self.default_id, inventories=(entry,))

    def load(self) -> InventoryRegistry:
        if not self.registry_path:
            return self._fallback()
        path = Path(self.registry_path)
        if not path.exists():
            return self._fallback()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            parsed = RegistryFile.model_validate(raw)
        except (OSError, ValueError, ValidationError):
            logger.warning("Ignoring unreadable inventory registry %s", path, exc_info=True)
            return self._fallback()
        if not parsed.inventories:
            return self._fallback()

        base = path.parent
        entries = []
        for item in parsed.inventories:
            data_dir = Path(item.data_dir)
            if not data_dir.is_absolute():
                data_dir = base / data_dir
            entries.append(
                InventoryEntry(id=item.id, name=item.name or item.id, data_dir=str(data_dir))
            )
        ids = [entry.id for entry in entries]
        if parsed.active_id in ids:
            active_id = parsed.active_id
        else:
            active_id = ids[0]
        return InventoryRegistry(active_id=active_id, inventories=tuple(entries))


class StoreRegistry:
    """Open store handles keyed by inventory id, owned by the app."""

    def __init__(self, *, store_filename: str = DEFAULT_STORE_FILENAME) -> None:
        self.store_filename = store_filename
        self._stores: dict[str, InventoryStore] = {}
        self._lock = threading.Lock()

    def get(self, entry: InventoryEntry) -> InventoryStore:
        with self._lock:
            store = self._stores.get(entry.id)
            if store is None:
                store = InventoryStore.for_data_dir(
                    entry.id, entry.data_dir, filename=self.store_filename
                )
                self._stores[entry.id] = store
        return store.open()

    def open_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._stores)

    def close_all(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
            self._stores.clear()
        for store in stores:
            store.close()


@dataclass(frozen=True)
class InventoryContext:
    inventory_id: str
    store: InventoryStore


class InventoryContextResolver:
    def __init__(self, catalog: InventoryCatalog, stores: StoreRegistry) -> None:
        self.catalog = catalog
        self.stores = stores

    def select_id(self, selector: Optional[str], registry: InventoryRegistry) -> str:
        chosen = (selector or "").strip()
        if chosen:
            return chosen
        return registry.active_id or self.catalog.default_id

    def resolve(self, selector: Optional[str] = None) -> InventoryContext:
        registry = self.catalog.load()
        inventory_id = self.select_id(selector, registry)
        entry = registry.find(inventory_id)
        if entry is None:
            raise InventoryNotFound(inventory_id)
        return InventoryContext(inventory_id=inventory_id, store=self.stores.get(entry))


__all__ = [
    "InventoryCatalog",
    "InventoryContext",
    "InventoryContextResolver",
    "InventoryEntry",
    "InventoryRegistry",
    "StoreRegistry",
]
