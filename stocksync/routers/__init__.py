from stocksync.routers.health import router as health_router
from stocksync.routers.inventories import router as inventories_router
from stocksync.routers.items import router as items_router
from stocksync.routers.lookups import router as lookups_router
from stocksync.routers.scans import router as scans_router
from stocksync.routers.snapshot import router as snapshot_router

__all__ = [
    "health_router",
    "inventories_router",
    "items_router",
    "lookups_router",
    "scans_router",
    "snapshot_router",
]
