import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI

from stocksync.config import Settings, get_settings
from stocksync.core.errors import install_error_handlers
from stocksync.core.logging import setup_logging
from stocksync.dependencies import get_inventory_context, require_auth
from stocksync.routers import (
    health_router,
    inventories_router,
    items_router,
    lookups_router,
    scans_router,
    snapshot_router,
)
from stocksync.services.inventory_context import (
    InventoryCatalog,
    InventoryContextResolver,
    StoreRegistry,
)

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the sync server; each app owns its own open store handles."""
    settings = settings or get_settings()
    catalog = InventoryCatalog.from_settings(settings)
    stores = StoreRegistry(store_filename=settings.STORE_FILENAME)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Starting %s (%s)", settings.APP_NAME, settings.ENVIRONMENT)
        try:
            yield
        finally:
            stores.close_all()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.stores = stores
    app.state.inventory_resolver = InventoryContextResolver(catalog, stores)

    install_error_handlers(app, production=settings.is_production)

    data_plane = [Depends(require_auth), Depends(get_inventory_context)]
    app.include_router(health_router)
    app.include_router(inventories_router)
    app.include_router(items_router, dependencies=data_plane)
    app.include_router(lookups_router, dependencies=data_plane)
    app.include_router(scans_router, dependencies=data_plane)
    app.include_router(snapshot_router, dependencies=data_plane)
    return app


setup_logging()
app = create_app()


__all__ = ["app", "create_app"]
