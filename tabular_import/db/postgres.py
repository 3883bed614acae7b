from __future__ import annotations

import logging
import os
from typing import Any

import psycopg2
from psycopg2 import errorcodes, sql
from psycopg2.extras import RealDictCursor

from ..models.config_models import DatabaseConfig
from .store import DuplicateRecordError, PersistenceError

"""PostgreSQL RecordStore (psycopg2).

Store ids are table names. Every insert is committed on its own: an import
run is deliberately not all-or-nothing, so rows committed before a failure
or a cancellation stay committed.

Duplicate protection relies on a UNIQUE constraint over the natural key
columns of each table; inserts use ON CONFLICT DO NOTHING and report a
suppressed insert as DuplicateRecordError.
"""

__all__ = [
    "PostgresRecordStore",
    "resolve_dsn",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build a libpq DSN.

    Priority: DATABASE_URL / PGDSN, then the config dsn, then the individual
    PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE variables falling back
    to the config values.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _where(key_filter: dict[str, Any]) -> sql.Composable:
    if not key_filter:
        return sql.SQL("TRUE")
    return sql.SQL(" AND ").join(
        sql.SQL("{} = %s").format(sql.Identifier(column)) for column in key_filter
    )


class PostgresRecordStore:
    """RecordStore over a psycopg2 connection."""

    def __init__(self, connection: Any) -> None:
        self.conn = connection

    @classmethod
    def connect(cls, dsn: str) -> PostgresRecordStore:
        try:
            conn = psycopg2.connect(dsn)
        except psycopg2.Error as e:
            raise PersistenceError(f"cannot connect: {e}") from e
        return cls(conn)

    def _finish(self, ok: bool) -> None:
        if self.conn.autocommit:
            return
        if ok:
            self.conn.commit()
        else:
            self.conn.rollback()

    def find_one(self, store_id: str, key_filter: dict[str, Any]) -> dict[str, Any] | None:
        query = sql.SQL("SELECT * FROM {} WHERE {} LIMIT 1").format(
            sql.Identifier(store_id), _where(key_filter)
        )
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, list(key_filter.values()))
                row = cur.fetchone()
        except psycopg2.Error as e:
            self._finish(ok=False)
            raise PersistenceError(f"lookup in {store_id} failed: {e}") from e
        self._finish(ok=True)
        return dict(row) if row is not None else None

    def insert(self, store_id: str, record: dict[str, Any]) -> Any:
        columns = list(record)
        query = sql.SQL(
            "INSERT INTO {} ({}) VALUES ({}) ON CONFLICT DO NOTHING RETURNING id"
        ).format(
            sql.Identifier(store_id),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, [record[c] for c in columns])
                row = cur.fetchone()
        except psycopg2.IntegrityError as e:
            self._finish(ok=False)
            if e.pgcode == errorcodes.UNIQUE_VIOLATION:
                raise DuplicateRecordError(str(e).strip()) from e
            raise PersistenceError(str(e).strip()) from e
        except psycopg2.Error as e:
            self._finish(ok=False)
            raise PersistenceError(str(e).strip()) from e
        self._finish(ok=True)
        if row is None:
            raise DuplicateRecordError(f"conflicting row already exists in {store_id}")
        return row[0]

    def delete(self, store_id: str, key_filter: dict[str, Any]) -> int:
        query = sql.SQL("DELETE FROM {} WHERE {}").format(sql.Identifier(store_id), _where(key_filter))
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, list(key_filter.values()))
                removed = cur.rowcount
        except psycopg2.Error as e:
            self._finish(ok=False)
            raise PersistenceError(f"delete from {store_id} failed: {e}") from e
        self._finish(ok=True)
        return removed

    def close(self) -> None:
        try:
            self.conn.close()
        except psycopg2.Error as e:  # pragma: no cover
            logger.debug("closing connection failed: %s", e)
