from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from stocksync.database.base import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"))

    __table_args__ = (
        UniqueConstraint("name", "parent_id", name="uq_locations_name_parent"),
    )


__all__ = ["Location"]
