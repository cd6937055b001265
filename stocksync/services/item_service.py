import logging
from typing import Optional, cast

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session

from stocksync.core.dates import next_modified, now_ms
from stocksync.core.errors import BarcodeInUse, NotFoundError, StaleWriteConflict, ValidationFailed
from stocksync.models.category import Category
from stocksync.models.item import Item
from stocksync.models.item_barcode import ItemBarcode
from stocksync.models.location import Location
from stocksync.schemas.item import ItemRead

logger = logging.getLogger(__name__)

_CREATE_FIELDS = (
    "name",
    "description",
    "quantity",
    "barcode",
    "barcode_corrupted",
    "category_id",
    "location_id",
    "purchase_date",
    "warranty_info",
    "value",
    "serial_number",
    "photo_path",
)
_UPDATE_FIELDS = _CREATE_FIELDS + ("deleted",)


class ItemNotFound(NotFoundError):
    code = "item_not_found"
    message = "Item not found."


def serialize_item(item: Item) -> dict:
    return ItemRead.model_validate(item).model_dump(mode="json")


def _clean_barcode(value) -> Optional[str]:
    if value is None:
        return None
    code = str(value).strip()
    return code or None


def sanitize_refs(db: Session, data: dict) -> dict:
    """Null category/location ids that do not exist in this store."""
    category_id = data.get("category_id")
    if category_id is not None and db.get(Category, category_id) is None:
        logger.warning("Dropping unknown category_id %s", category_id)
        data["category_id"] = None
    location_id = data.get("location_id")
    if location_id is not None and db.get(Location, location_id) is None:
        logger.warning("Dropping unknown location_id %s", location_id)
        data["location_id"] = None
    return data


def list_items(
    db: Session,
    *,
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    location_id: Optional[int] = None,
    since: Optional[int] = None,
    include_deleted: bool = False,
) -> list[Item]:
    stmt = select(Item)
    if not include_deleted:
        stmt = stmt.where(Item.deleted.is_(False))
    if since is not None:
        stmt = stmt.where(Item.last_modified > since)
    if category_id is not None:
        stmt = stmt.where(Item.category_id == category_id)
    if location_id is not None:
        stmt = stmt.where(Item.location_id == location_id)
    term = (q or "").strip()
    if term:
        pattern = f"%{term}%"
        alternate = exists().where(
            ItemBarcode.item_id == Item.id,
            ItemBarcode.barcode.like(pattern),
        )
        stmt = stmt.where(
            or_(
                Item.name.like(pattern),
                Item.barcode.like(pattern),
                Item.serial_number.like(pattern),
                alternate,
            )
        )
    stmt = stmt.order_by(Item.last_modified.desc(), Item.id.desc())
    return cast(list[Item], list(db.execute(stmt).scalars().all()))


def get_item(db: Session, item_id: int) -> Optional[Item]:
    return db.get(Item, item_id)


def require_item(db: Session, item_id: int, *, allow_deleted: bool = True) -> Item:
    item = db.get(Item, item_id)
    if item is None or (item.deleted and not allow_deleted):
        raise ItemNotFound(details={"id": item_id})
    return item


def create_item(db: Session, data: dict) -> Item:
    values = {key: data[key] for key in _CREATE_FIELDS if key in data}
    values["barcode"] = _clean_barcode(values.get("barcode"))
    sanitize_refs(db, values)
    item = Item(**values)
    item.deleted = False
    item.last_modified = now_ms()
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Created item %s (%s)", item.id, item.name)
    return item


def update_item(
    db: Session,
    item_id: int,
    changes: dict,
    *,
    client_last_modified: Optional[int] = None,
) -> Item:
    """Apply a partial update unless the client's version is stale.

    A client asserting an older ``last_modified`` than the stored one gets
    a conflict carrying the server's copy; the stored item is untouched.
    """
    item = require_item(db, item_id)
    if client_last_modified is not None and client_last_modified < item.last_modified:
        server_item = serialize_item(item)
        db.rollback()
        raise StaleWriteConflict(server_item, client_last_modified)

    values = {key: changes[key] for key in _UPDATE_FIELDS if key in changes}
    if "barcode" in values:
        values["barcode"] = _clean_barcode(values["barcode"])
    sanitize_refs(db, values)
    for key, value in values.items():
        setattr(item, key, value)
    item.last_modified = next_modified(item.last_modified)
    db.commit()
    db.refresh(item)
    return item


def soft_delete_item(db: Session, item_id: int) -> Item:
    item = require_item(db, item_id)
    item.deleted = True
    item.last_modified = next_modified(item.last_modified)
    db.commit()
    db.refresh(item)
    logger.info("Soft-deleted item %s", item_id)
    return item


def adjust_quantity(item: Item, delta: int) -> Item:
    """Add ``delta`` to the stock count, flooring at zero. Caller commits."""
    item.quantity = max(0, int(item.quantity or 0) + int(delta))
    item.last_modified = next_modified(item.last_modified)
    return item


def find_barcode_candidates(db: Session, barcode: str) -> list[Item]:
    """Active items a scanned code refers to.

    Alternate-barcode mappings shadow primary barcodes completely: once any
    mapping points at an active item, primary matches are not consulted.
    """
    code = _clean_barcode(barcode)
    if code is None:
        return []
    alternate = (
        db.execute(
            select(Item)
            .join(ItemBarcode, ItemBarcode.item_id == Item.id)
            .where(ItemBarcode.barcode == code, Item.deleted.is_(False))
            .order_by(Item.id)
        )
        .scalars()
        .all()
    )
    if alternate:
        return list(alternate)
    primary = (
        db.execute(
            select(Item)
            .where(Item.barcode == code, Item.deleted.is_(False))
            .order_by(Item.last_modified.desc(), Item.id)
        )
        .scalars()
        .all()
    )
    return list(primary)


def attach_barcode(db: Session, item_id: int, barcode: str) -> dict:
    code = _clean_barcode(barcode)
    if code is None:
        raise ValidationFailed("barcode is required.")
    item = require_item(db, item_id, allow_deleted=False)
    if item.barcode == code:
        db.rollback()
        return {"ok": True, "item_id": item_id, "barcode": code}

    mapping = db.get(ItemBarcode, code)
    if mapping is not None and mapping.item_id != item_id:
        owner = mapping.item_id
        db.rollback()
        raise BarcodeInUse(code, owner)
    if mapping is None:
        db.add(ItemBarcode(barcode=code, item_id=item_id, created_at=now_ms()))
        db.commit()
        logger.info("Attached barcode %s to item %s", code, item_id)
    else:
        db.rollback()
    return {"ok": True, "item_id": item_id, "barcode": code}


def detach_barcode(db: Session, item_id: int, barcode: str) -> None:
    code = _clean_barcode(barcode)
    require_item(db, item_id, allow_deleted=False)
    mapping = db.get(ItemBarcode, code) if code else None
    if mapping is None or mapping.item_id != item_id:
        db.rollback()
        raise NotFoundError("Barcode is not attached to this item.", code="barcode_not_found")
    db.delete(mapping)
    db.commit()


def list_item_barcodes(db: Session, item_id: int) -> list[ItemBarcode]:
    require_item(db, item_id)
    rows = (
        db.execute(
            select(ItemBarcode)
            .where(ItemBarcode.item_id == item_id)
            .order_by(ItemBarcode.created_at, ItemBarcode.barcode)
        )
        .scalars()
        .all()
    )
    return list(rows)


def list_barcodes_since(db: Session, since: Optional[int] = None) -> list[ItemBarcode]:
    stmt = select(ItemBarcode)
    if since is not None:
        stmt = stmt.where(ItemBarcode.created_at > since)
    stmt = stmt.order_by(ItemBarcode.created_at, ItemBarcode.barcode)
    return list(db.execute(stmt).scalars().all())


__all__ = [
    "ItemNotFound",
    "adjust_quantity",
    "attach_barcode",
    "create_item",
    "detach_barcode",
    "find_barcode_candidates",
    "get_item",
    "list_barcodes_since",
    "list_item_barcodes",
    "list_items",
    "require_item",
    "sanitize_refs",
    "serialize_item",
    "soft_delete_item",
    "update_item",
]
