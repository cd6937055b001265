from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stocksync.core.dates import now_ms
from stocksync.core.errors import ConflictError, NotFoundError, ValidationFailed
from stocksync.models.category import Category
from stocksync.models.item import Item
from stocksync.models.location import Location


def _clean_name(name: str) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationFailed("name is required.")
    return value


def _touch_items(db: Session, column, ref_id: int) -> int:
    # Detached items must reach clients on their next incremental pull.
    now = now_ms()
    bumped = case((Item.last_modified >= now, Item.last_modified + 1), else_=now)
    result = db.execute(
        update(Item)
        .where(column == ref_id)
        .values({column.key: None, "last_modified": bumped})
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


def list_categories(db: Session) -> list[Category]:
    return list(db.execute(select(Category).order_by(Category.name)).scalars().all())


def create_category(db: Session, name: str) -> Category:
    category = Category(name=_clean_name(name))
    db.add(category)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Category already exists.", code="category_exists") from exc
    db.refresh(category)
    return category


def rename_category(db: Session, category_id: int, name: str) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found.")
    category.name = _clean_name(name)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Category already exists.", code="category_exists") from exc
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> int:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found.")
    touched = _touch_items(db, Item.category_id, category_id)
    db.delete(category)
    db.commit()
    return touched


def list_locations(db: Session) -> list[Location]:
    return list(db.execute(select(Location).order_by(Location.name)).scalars().all())


def _location_taken(db: Session, name: str, parent_id: Optional[int], exclude_id: Optional[int] = None) -> bool:
    # UNIQUE(name, parent_id) does not cover NULL parents.
    stmt = select(Location.id).where(Location.name == name)
    if parent_id is None:
        stmt = stmt.where(Location.parent_id.is_(None))
    else:
        stmt = stmt.where(Location.parent_id == parent_id)
    if exclude_id is not None:
        stmt = stmt.where(Location.id != exclude_id)
    return db.execute(stmt).first() is not None


def _check_parent(db: Session, parent_id: Optional[int], location_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if location_id is not None and parent_id == location_id:
        raise ValidationFailed("A location cannot be its own parent.")
    if db.get(Location, parent_id) is None:
        raise ValidationFailed("Unknown parent_id.", details={"parent_id": parent_id})


def create_location(db: Session, name: str, parent_id: Optional[int] = None) -> Location:
    _check_parent(db, parent_id)
    name = _clean_name(name)
    if _location_taken(db, name, parent_id):
        raise ConflictError("Location already exists.", code="location_exists")
    location = Location(name=name, parent_id=parent_id)
    db.add(location)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Location already exists.", code="location_exists") from exc
    db.refresh(location)
    return location


def update_location(
    db: Session,
    location_id: int,
    name: str,
    parent_id: Optional[int] = None,
) -> Location:
    location = db.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found.")
    _check_parent(db, parent_id, location_id)
    name = _clean_name(name)
    if _location_taken(db, name, parent_id, exclude_id=location_id):
        raise ConflictError("Location already exists.", code="location_exists")
    location.name = name
    location.parent_id = parent_id
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Location already exists.", code="location_exists") from exc
    db.refresh(location)
    return location


def delete_location(db: Session, location_id: int) -> int:
    location = db.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found.")
    touched = _touch_items(db, Item.location_id, location_id)
    db.execute(
        update(Location).where(Location.parent_id == location_id).values(parent_id=None)
    )
    db.delete(location)
    db.commit()
    return touched


__all__ = [
    "create_category",
    "create_location",
    "delete_category",
    "delete_location",
    "list_categories",
    "list_locations",
    "rename_category",
    "update_location",
]
