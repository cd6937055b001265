from sqlalchemy import Column, Integer, String

from stocksync.database.base import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)


__all__ = ["Category"]
