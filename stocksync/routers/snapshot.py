from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stocksync.core.constants import DEFAULT_SYNC_LOG_LIMIT
from stocksync.dependencies import get_db, require_edit
from stocksync.schemas.snapshot import ImportResult, SnapshotIn, SyncLogRead
from stocksync.services.snapshot_service import export_snapshot, import_snapshot, list_sync_log

router = APIRouter(tags=["Snapshot"])


@router.get("/export")
def get_export(db: Session = Depends(get_db)):
    return export_snapshot(db)


@router.post("/import", response_model=ImportResult)
def post_import(payload: SnapshotIn, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    return import_snapshot(db, payload)


@router.get("/sync-log", response_model=List[SyncLogRead])
def get_sync_log(
    limit: int = Query(DEFAULT_SYNC_LOG_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_sync_log(db, limit)


__all__ = ["router"]
