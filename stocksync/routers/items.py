from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stocksync.core.dates import now_ms
from stocksync.dependencies import get_db, require_edit
from stocksync.schemas.item import (
    BarcodeAttach,
    ItemBarcodeListResponse,
    ItemCreate,
    ItemEnvelope,
    ItemListResponse,
    ItemRead,
    ItemUpdate,
)
from stocksync.services.item_service import (
    attach_barcode,
    create_item,
    detach_barcode,
    list_barcodes_since,
    list_item_barcodes,
    list_items,
    require_item,
    soft_delete_item,
    update_item,
)

router = APIRouter(tags=["Items"])


@router.get("/items", response_model=ItemListResponse)
def get_items(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    location_id: Optional[int] = None,
    since: Optional[int] = Query(None, ge=0),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    server_time = now_ms()
    rows = list_items(
        db,
        q=q,
        category_id=category_id,
        location_id=location_id,
        since=since,
        include_deleted=include_deleted,
    )
    items = [ItemRead.model_validate(row) for row in rows]
    deleted = [row.id for row in rows if row.deleted]
    return ItemListResponse(items=items, deleted=deleted, server_time=server_time)


@router.get("/items/{item_id}", response_model=ItemEnvelope)
def get_item(item_id: int, db: Session = Depends(get_db)):
    return ItemEnvelope(item=ItemRead.model_validate(require_item(db, item_id)))


@router.post("/items", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
def post_item(payload: ItemCreate, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    item = create_item(db, payload.model_dump())
    return ItemEnvelope(item=ItemRead.model_validate(item))


@router.put("/items/{item_id}", response_model=ItemEnvelope)
def put_item(
    item_id: int,
    payload: ItemUpdate,
    db: Session = Depends(get_db),
    _auth=Depends(require_edit),
):
    item = update_item(
        db,
        item_id,
        payload.changes(),
        client_last_modified=payload.last_modified,
    )
    return ItemEnvelope(item=ItemRead.model_validate(item))


@router.delete("/items/{item_id}", response_model=ItemEnvelope)
def delete_item(item_id: int, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    return ItemEnvelope(item=ItemRead.model_validate(soft_delete_item(db, item_id)))


@router.get("/items/{item_id}/barcodes", response_model=ItemBarcodeListResponse)
def get_item_barcodes(item_id: int, db: Session = Depends(get_db)):
    return ItemBarcodeListResponse(barcodes=list_item_barcodes(db, item_id), server_time=now_ms())


@router.post("/items/{item_id}/barcodes")
def post_item_barcode(
    item_id: int,
    payload: BarcodeAttach,
    db: Session = Depends(get_db),
    _auth=Depends(require_edit),
):
    return attach_barcode(db, item_id, payload.barcode)


@router.delete("/items/{item_id}/barcodes/{barcode}")
def delete_item_barcode(
    item_id: int,
    barcode: str,
    db: Session = Depends(get_db),
    _auth=Depends(require_edit),
):
    detach_barcode(db, item_id, barcode)
    return {"ok": True}


@router.get("/item-barcodes", response_model=ItemBarcodeListResponse)
def get_barcodes_since(since: Optional[int] = Query(None, ge=0), db: Session = Depends(get_db)):
    server_time = now_ms()
    return ItemBarcodeListResponse(barcodes=list_barcodes_since(db, since), server_time=server_time)


__all__ = ["router"]
