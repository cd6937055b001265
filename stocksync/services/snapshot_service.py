"""Whole-inventory export and last-writer-wins merge."""

import json
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stocksync.core.constants import DEFAULT_SYNC_LOG_LIMIT, SNAPSHOT_SCHEMA_VERSION
from stocksync.core.dates import now_ms
from stocksync.models.category import Category
from stocksync.models.item import ITEM_FIELDS, Item
from stocksync.models.item_barcode import ItemBarcode
from stocksync.models.location import Location
from stocksync.models.sync_log import SyncLog
from stocksync.schemas.item import ItemBarcodeRead
from stocksync.schemas.lookup import CategoryRead, LocationRead
from stocksync.schemas.snapshot import ImportResult, SnapshotIn
from stocksync.services.item_service import serialize_item

logger = logging.getLogger(__name__)


def append_sync_log(db: Session, source: str, details: Optional[dict] = None) -> SyncLog:
    entry = SyncLog(
        sync_time=now_ms(),
        source=source,
        details=json.dumps(details, sort_keys=True) if details is not None else None,
    )
    db.add(entry)
    return entry


def list_sync_log(db: Session, limit: int = DEFAULT_SYNC_LOG_LIMIT) -> list[SyncLog]:
    rows = (
        db.execute(select(SyncLog).order_by(SyncLog.sync_time.desc(), SyncLog.id.desc()).limit(limit))
        .scalars()
        .all()
    )
    return list(rows)


def export_snapshot(db: Session) -> dict:
    categories = db.execute(select(Category).order_by(Category.id)).scalars().all()
    locations = db.execute(select(Location).order_by(Location.id)).scalars().all()
    items = db.execute(select(Item).order_by(Item.id)).scalars().all()
    barcodes = db.execute(select(ItemBarcode).order_by(ItemBarcode.barcode)).scalars().all()

    snapshot = {
        "schema": SNAPSHOT_SCHEMA_VERSION,
        "exported_at_ms": now_ms(),
        "categories": [CategoryRead.model_validate(row).model_dump() for row in categories],
        "locations": [LocationRead.model_validate(row).model_dump() for row in locations],
        "items": [serialize_item(row) for row in items],
        "item_barcodes": [ItemBarcodeRead.model_validate(row).model_dump() for row in barcodes],
    }
    append_sync_log(
        db,
        "export",
        {"items": len(items), "categories": len(categories), "locations": len(locations)},
    )
    db.commit()
    return snapshot


def _merge_categories(db: Session, snapshot: SnapshotIn, result: ImportResult) -> None:
    existing = set(db.execute(select(Category.name)).scalars().all())
    for category in snapshot.categories:
        name = category.name.strip()
        if not name or name in existing:
            continue
        db.add(Category(name=name))
        existing.add(name)
        result.categories_added += 1


def _merge_locations(db: Session, snapshot: SnapshotIn, result: ImportResult) -> None:
    existing = set(db.execute(select(Location.name)).scalars().all())
    for location in snapshot.locations:
        name = location.name.strip()
        if not name or name in existing:
            continue
        db.add(Location(name=name))
        existing.add(name)
        result.locations_added += 1


def _merge_items(db: Session, snapshot: SnapshotIn, result: ImportResult) -> None:
    category_ids = set(db.execute(select(Category.id)).scalars().all())
    location_ids = set(db.execute(select(Location.id)).scalars().all())
    for incoming in snapshot.items:
        values = incoming.model_dump(include=set(ITEM_FIELDS))
        if values.get("category_id") not in category_ids:
            values["category_id"] = None
        if values.get("location_id") not in location_ids:
            values["location_id"] = None
        if values.get("last_modified") is None:
            values["last_modified"] = now_ms()

        current = db.get(Item, incoming.id)
        if current is None:
            db.add(Item(id=incoming.id, **values))
            result.items_inserted += 1
        elif values["last_modified"] > current.last_modified:
            for key, value in values.items():
                setattr(current, key, value)
            result.items_updated += 1
        else:
            result.items_skipped += 1
    db.flush()


def _merge_barcodes(db: Session, snapshot: SnapshotIn, result: ImportResult) -> None:
    for incoming in snapshot.item_barcodes:
        code = incoming.barcode.strip()
        if not code or db.get(ItemBarcode, code) is not None:
            continue
        if db.get(Item, incoming.item_id) is None:
            continue
        db.add(
            ItemBarcode(
                barcode=code,
                item_id=incoming.item_id,
                created_at=incoming.created_at or now_ms(),
            )
        )
        db.flush()
        result.barcodes_added += 1


def import_snapshot(db: Session, snapshot: SnapshotIn) -> ImportResult:
    """Merge a snapshot into this store in one transaction.

    Categories and locations are added only when no row has the same name.
    An incoming item replaces the local one only with a strictly newer
    ``last_modified``; ties keep the local row. Alternate barcodes are
    additive and never reassign an existing mapping.
    """
    result = ImportResult()
    try:
        _merge_categories(db, snapshot, result)
        _merge_locations(db, snapshot, result)
        db.flush()
        _merge_items(db, snapshot, result)
        _merge_barcodes(db, snapshot, result)
        append_sync_log(db, "import", result.model_dump())
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Imported snapshot: %s", result.model_dump())
    return result


__all__ = [
    "append_sync_log",
    "export_snapshot",
    "import_snapshot",
    "list_sync_log",
]
