from stocksync.services.inventory_context import InventoryContextResolver, StoreRegistry
from stocksync.services.item_service import find_barcode_candidates, update_item
from stocksync.services.scan_service import apply_scan_batch, apply_scan_event
from stocksync.services.snapshot_service import export_snapshot, import_snapshot

__all__ = [
    "InventoryContextResolver",
    "StoreRegistry",
    "apply_scan_batch",
    "apply_scan_event",
    "export_snapshot",
    "find_barcode_candidates",
    "import_snapshot",
    "update_item",
]
