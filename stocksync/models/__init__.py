import importlib

from stocksync.models.category import Category
from stocksync.models.item import ITEM_FIELDS, Item, ItemState
from stocksync.models.item_barcode import ItemBarcode
from stocksync.models.location import Location
from stocksync.models.scan_event import ScanEvent
from stocksync.models.sync_log import SyncLog


def import_all_models() -> None:
    for module_name in (
        "stocksync.models.category",
        "stocksync.models.item",
        "stocksync.models.item_barcode",
        "stocksync.models.location",
        "stocksync.models.scan_event",
        "stocksync.models.sync_log",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Category",
    "ITEM_FIELDS",
    "Item",
    "ItemBarcode",
    "ItemState",
    "Location",
    "ScanEvent",
    "SyncLog",
    "import_all_models",
]
