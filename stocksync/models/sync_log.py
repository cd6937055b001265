from sqlalchemy import BigInteger, Column, Index, Integer, String, Text

from stocksync.database.base import Base


class SyncLog(Base):
    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True)
    sync_time = Column(BigInteger, nullable=False)
    source = Column(String(40), nullable=False)
    details = Column(Text)

    __table_args__ = (
        Index("idx_sync_log_time", "sync_time"),
    )


__all__ = ["SyncLog"]
