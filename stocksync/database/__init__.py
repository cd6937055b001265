from stocksync.database.base import Base
from stocksync.database.engine import create_store_engine, ensure_sqlite_schema
from stocksync.database.session import make_session_factory

__all__ = ["Base", "create_store_engine", "ensure_sqlite_schema", "make_session_factory"]
