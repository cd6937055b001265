from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String

from stocksync.core.dates import now_ms
from stocksync.database.base import Base


class ItemBarcode(Base):
    """Alternate barcode; a barcode maps to at most one item."""

    __tablename__ = "item_barcodes"

    barcode = Column(String, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_item_barcodes_item_id", "item_id"),
        Index("idx_item_barcodes_created_at", "created_at"),
    )


__all__ = ["ItemBarcode"]
