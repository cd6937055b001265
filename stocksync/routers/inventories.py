from fastapi import APIRouter, Depends, Request

from stocksync.dependencies import require_auth
from stocksync.schemas.inventory import InventoryListResponse, InventoryRead

router = APIRouter(prefix="/inventories", tags=["Inventories"])


@router.get("", response_model=InventoryListResponse)
def list_inventories(request: Request, _auth=Depends(require_auth)):
    registry = request.app.state.inventory_resolver.catalog.load()
    return InventoryListResponse(
        active_id=registry.active_id,
        inventories=[InventoryRead(id=entry.id, name=entry.name) for entry in registry.inventories],
    )


__all__ = ["router"]
