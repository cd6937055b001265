import json

from sqlalchemy import BigInteger, Column, Index, Integer, String, Text

from stocksync.database.base import Base

STATUS_APPLIED = "applied"
STATUS_NOT_FOUND = "not_found"
STATUS_AMBIGUOUS = "ambiguous"
STATUS_DUPLICATE = "duplicate"
STATUS_ERROR = "error"


class ScanEvent(Base):
    """Write-once record of a client scan, keyed by its idempotency key."""

    __tablename__ = "scan_events"

    event_id = Column(String, primary_key=True)
    barcode = Column(String, nullable=False)
    item_id = Column(Integer)
    delta = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    candidate_ids = Column(Text)
    reason = Column(Text)
    scanned_at = Column(BigInteger)
    applied_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_scan_events_applied_at", "applied_at"),
    )

    @property
    def candidates(self) -> list[int]:
        if not self.candidate_ids:
            return []
        return [int(value) for value in json.loads(self.candidate_ids)]

    @candidates.setter
    def candidates(self, ids) -> None:
        self.candidate_ids = json.dumps([int(value) for value in ids]) if ids else None


__all__ = [
    "STATUS_AMBIGUOUS",
    "STATUS_APPLIED",
    "STATUS_DUPLICATE",
    "STATUS_ERROR",
    "STATUS_NOT_FOUND",
    "ScanEvent",
]
