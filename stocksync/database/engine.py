import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

_SQLITE_BUSY_TIMEOUT_SECONDS = 30
_SQLITE_BUSY_TIMEOUT_MS = _SQLITE_BUSY_TIMEOUT_SECONDS * 1000


def _is_memory_url(url) -> bool:
    database = url.database
    if database in (None, "", ":memory:"):
        return True
    return url.query.get("mode") == "memory"


def create_store_engine(database_url: str) -> Engine:
    """Engine for one inventory store.

    Every transaction opens with BEGIN IMMEDIATE so read-then-write
    operations on the same store serialize on the SQLite write lock.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    is_memory = _is_memory_url(url)
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    if is_memory:
        engine_kwargs.update(poolclass=StaticPool)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT_SECONDS},
        **engine_kwargs,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        # Hand transaction control to the "begin" listener below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
            if not is_memory:
                try:
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
                except sqlite3.DatabaseError:
                    logger.warning("Could not enable WAL for %s", database_url)
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# Columns added after the first store release; existing files gain them on open.
_SQLITE_COLUMN_DEFAULTS = {
    "items": {
        "barcode_corrupted": "BOOLEAN NOT NULL DEFAULT 0",
        "description": "TEXT",
        "purchase_date": "TEXT",
        "warranty_info": "TEXT",
        "value": "REAL",
        "serial_number": "TEXT",
        "photo_path": "TEXT",
    },
    "scan_events": {
        "candidate_ids": "TEXT",
        "reason": "TEXT",
    },
}


def _escape_sqlite_identifier(value: str) -> str:
    return value.replace('"', '""')


def _get_sqlite_columns(conn, table_name: str):
    escaped_table = _escape_sqlite_identifier(table_name)
    # noinspection SqlNoDataSourceInspection
    result = conn.exec_driver_sql(
        f'PRAGMA table_info("{escaped_table}")'
    ).mappings()
    return {row["name"] for row in result}


def ensure_sqlite_schema(engine: Engine) -> list[tuple[str, str]]:
    if engine.url.get_backend_name() != "sqlite":
        return []
    added_columns = []
    with engine.begin() as conn:
        for table_name, columns in _SQLITE_COLUMN_DEFAULTS.items():
            existing = _get_sqlite_columns(conn, table_name)
            if not existing:
                continue
            for column_name, ddl in columns.items():
                if column_name in existing:
                    continue
                escaped_table = _escape_sqlite_identifier(table_name)
                escaped_column = _escape_sqlite_identifier(column_name)
                # noinspection SqlNoDataSourceInspection
                conn.exec_driver_sql(
                    f'ALTER TABLE "{escaped_table}" ADD COLUMN "{escaped_column}" {ddl}'
                )
                added_columns.append((table_name, column_name))
    for table_name, column_name in added_columns:
        logger.info("Added missing column %s.%s", table_name, column_name)
    return added_columns


__all__ = ["create_store_engine", "ensure_sqlite_schema"]
