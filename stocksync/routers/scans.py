from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stocksync.config import Settings
from stocksync.core.dates import now_ms
from stocksync.core.errors import ValidationFailed
from stocksync.dependencies import get_app_settings, get_db, require_edit
from stocksync.schemas.item import ItemRead
from stocksync.schemas.scan import BarcodeResolveRequest, ScanBatchRequest
from stocksync.services.scan_service import ScanOutcome, apply_scan_batch, resolve_barcode

router = APIRouter(tags=["Scans"])


def _outcome_payload(outcome: ScanOutcome) -> dict:
    payload = {"event_id": outcome.event_id, "status": outcome.status}
    if outcome.item is not None:
        payload["item"] = ItemRead.model_validate(outcome.item).model_dump(mode="json")
    if outcome.items:
        payload["items"] = [
            ItemRead.model_validate(item).model_dump(mode="json") for item in outcome.items
        ]
    if outcome.reason is not None:
        payload["reason"] = outcome.reason
    return payload


@router.post("/scans")
def post_scans(
    payload: ScanBatchRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _auth=Depends(require_edit),
):
    if len(payload.events) > settings.SCAN_MAX_BATCH:
        raise ValidationFailed(
            "Too many scan events in one batch.",
            details={"max": settings.SCAN_MAX_BATCH, "received": len(payload.events)},
        )
    outcomes = apply_scan_batch(db, payload.events, max_delta=settings.SCAN_MAX_DELTA)
    return {
        "server_time": now_ms(),
        "results": [_outcome_payload(outcome) for outcome in outcomes],
    }


@router.post("/scan/resolve")
def post_scan_resolve(payload: BarcodeResolveRequest, db: Session = Depends(get_db)):
    action, candidates = resolve_barcode(db, payload.barcode)
    response = {"action": action}
    if action == "found":
        response["item"] = ItemRead.model_validate(candidates[0]).model_dump(mode="json")
    elif action == "multiple":
        response["items"] = [
            ItemRead.model_validate(item).model_dump(mode="json") for item in candidates
        ]
    return response


__all__ = ["router"]
