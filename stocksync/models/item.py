import enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)

from stocksync.database.base import Base


class ItemState(str, enum.Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class Item(Base):
    """One stable-id inventory item; soft deletion flips it to DELETED."""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String)

    quantity = Column(Integer, nullable=False, default=1)
    barcode = Column(String)
    barcode_corrupted = Column(Boolean, nullable=False, default=False)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"))
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"))

    purchase_date = Column(String)
    warranty_info = Column(String)
    value = Column(Float)
    serial_number = Column(String)
    photo_path = Column(String)

    deleted = Column(Boolean, nullable=False, default=False)
    last_modified = Column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        Index("idx_items_name", "name"),
        Index("idx_items_barcode", "barcode"),
        Index("idx_items_last_modified", "last_modified"),
        Index("idx_items_deleted", "deleted"),
    )

    @property
    def state(self) -> ItemState:
        return ItemState.DELETED if self.deleted else ItemState.ACTIVE

# Every column an LWW overwrite or snapshot insert copies verbatim.
ITEM_FIELDS = (
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
    "deleted",
    "last_modified",
)


__all__ = ["ITEM_FIELDS", "Item", "ItemState"]
