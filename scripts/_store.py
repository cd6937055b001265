import sys
from pathlib import Path

# Ensure repo root is on sys.path when running scripts directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stocksync.config import get_settings
from stocksync.services.inventory_context import (
    InventoryCatalog,
    InventoryContextResolver,
    StoreRegistry,
)


def open_inventory(inventory_id=None):
    """Resolve an inventory the same way the server does; returns (context, stores)."""
    settings = get_settings()
    stores = StoreRegistry(store_filename=settings.STORE_FILENAME)
    resolver = InventoryContextResolver(InventoryCatalog.from_settings(settings), stores)
    return resolver.resolve(inventory_id), stores
