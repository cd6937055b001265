from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stocksync.database.base import Base
from stocksync.database.engine import create_store_engine, ensure_sqlite_schema
from stocksync.database.session import make_session_factory
from stocksync.models import import_all_models

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILENAME = "inventory.sqlite"


class InventoryStore:
    """Handle on one inventory's isolated dataset (one SQLite file)."""

    def __init__(self, inventory_id: str, database_url: str) -> None:
        self.inventory_id = str(inventory_id)
        self.database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @classmethod
    def for_data_dir(
        cls,
        inventory_id: str,
        data_dir,
        *,
        filename: str = DEFAULT_STORE_FILENAME,
    ) -> "InventoryStore":
        path = Path(data_dir)
        path.mkdir(parents=True, exist_ok=True)
        return cls(inventory_id, "sqlite:///{}".format((path / filename).as_posix()))

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Store {} is not open".format(self.inventory_id))
        return self._engine

    def open(self) -> "InventoryStore":
        with self._lock:
            if self._engine is not None:
                return self
            engine = create_store_engine(self.database_url)
            import_all_models()
            Base.metadata.create_all(bind=engine)
            ensure_sqlite_schema(engine)
            self._engine = engine
            self._session_factory = make_session_factory(engine)
        logger.info(
            "Opened inventory store %s at %s",
            self.inventory_id,
            self.database_url,
            extra={"inventory_id": self.inventory_id},
        )
        return self

    def session(self) -> Session:
        if self._session_factory is None:
            self.open()
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        db = self.session()
        try:
            yield db
        finally:
            db.close()

    def close(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
        logger.info("Closed inventory store %s", self.inventory_id, extra={"inventory_id": self.inventory_id})


__all__ = ["DEFAULT_STORE_FILENAME", "InventoryStore"]
