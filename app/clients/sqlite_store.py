"""SQLite-backed record store for OAuth state, tokens and transactions."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

from app.core.errors import StorageError

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS user_tokens (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        provider TEXT NOT NULL,
        access_token TEXT NOT NULL,
        refresh_token TEXT,
        token_type TEXT DEFAULT 'Bearer',
        expires_at TEXT,
        scope TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_user_tokens_lookup
        ON user_tokens (provider, user_id, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        provider TEXT NOT NULL,
        transaction_id TEXT NOT NULL,
        amount TEXT NOT NULL,
        currency TEXT NOT NULL,
        status TEXT NOT NULL,
        description TEXT,
        merchant_name TEXT,
        transaction_date TEXT NOT NULL,
        raw_data TEXT,
        updated_at TEXT NOT NULL,
        UNIQUE (provider, transaction_id)
    )
    """,
)


class SQLiteStore:
    """Minimal query client over a fixed set of relational tables.

    Supports the operations the SumUp workflow needs: insert, upsert keyed by
    a set of conflict columns, delete by equality filters and ordered,
    limited selects. Every ``sqlite3`` failure surfaces as ``StorageError``.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._columns: Dict[str, frozenset[str]] = {}
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
            for table in ("user_tokens", "transactions"):
                rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
                self._columns[table] = frozenset(row["name"] for row in rows)

    def _check_columns(self, table: str, columns: Iterable[str]) -> None:
        known = self._columns.get(table)
        if known is None:
            raise StorageError(f"Unknown table '{table}'.")
        unknown = [column for column in columns if column not in known]
        if unknown:
            raise StorageError(
                f"Unknown column(s) for '{table}': {', '.join(sorted(unknown))}."
            )

    @staticmethod
    def _where(filters: Dict[str, Any]) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        clauses = [f"{column} = ?" for column in filters]
        return " WHERE " + " AND ".join(clauses), list(filters.values())

    def insert(self, table: str, row: Dict[str, Any]) -> None:
        """Insert a new row without any conflict handling."""
        self._check_columns(table, row)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    tuple(row.values()),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Insert into '{table}' failed: {exc}") from exc

    def upsert(
        self, table: str, row: Dict[str, Any], *, on_conflict: Sequence[str]
    ) -> None:
        """Update rows matching the conflict columns, inserting when none match."""
        self._check_columns(table, row)
        missing = [column for column in on_conflict if column not in row]
        if missing:
            raise StorageError(
                f"Upsert row is missing conflict column(s): {', '.join(missing)}."
            )

        key = {column: row[column] for column in on_conflict}
        assignments = ", ".join(f"{column} = ?" for column in row)
        where, key_params = self._where(key)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"UPDATE {table} SET {assignments}{where}",
                    (*row.values(), *key_params),
                )
                if cursor.rowcount == 0:
                    columns = ", ".join(row)
                    placeholders = ", ".join("?" for _ in row)
                    conn.execute(
                        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                        tuple(row.values()),
                    )
        except sqlite3.Error as exc:
            raise StorageError(f"Upsert into '{table}' failed: {exc}") from exc

    def delete(self, table: str, **filters: Any) -> int:
        """Delete rows matching every equality filter; returns the row count."""
        if not filters:
            raise StorageError("Refusing to delete without filters.")
        self._check_columns(table, filters)
        where, params = self._where(filters)
        try:
            with self._connect() as conn:
                cursor = conn.execute(f"DELETE FROM {table}{where}", params)
        except sqlite3.Error as exc:
            raise StorageError(f"Delete from '{table}' failed: {exc}") from exc
        return cursor.rowcount

    def select(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Dict[str, Any]]:
        filters = filters or {}
        self._check_columns(table, [*filters, *([order_by] if order_by else [])])
        where, params = self._where(filters)
        query = f"SELECT * FROM {table}{where}"
        if order_by:
            # id breaks ties between rows written within the same timestamp.
            direction = "DESC" if descending else "ASC"
            query += f" ORDER BY {order_by} {direction}, id {direction}"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Select from '{table}' failed: {exc}") from exc
        return [dict(row) for row in rows]

    def select_one(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Optional[Dict[str, Any]]:
        rows = self.select(
            table,
            filters=filters,
            order_by=order_by,
            descending=descending,
            limit=1,
        )
        return rows[0] if rows else None


__all__ = ["SQLiteStore"]
