"""SQLite-backed document store.

Documents live in one table keyed by (collection, id) with their fields as
JSON. Blocking sqlite3 calls run in worker threads.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from botparts.errors import StoreUnavailableError

from .base import Document, DocumentStore


logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(fields: Dict[str, Any]) -> str:
    return json.dumps(fields, default=_encode)


class SqliteDocumentStore(DocumentStore):
    """Durable store for a single process; watches see this process's writes."""

    def __init__(self, db_path: Path | str):
        super().__init__()
        self._use_uri = isinstance(db_path, str) and db_path.startswith("file:")
        self.db_path: Path | str = db_path if self._use_uri else Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path)
            else:
                conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(f"Cannot open {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    fields_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (collection, id)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection)"
            )

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            logger.warning("SQLite operation %s failed: %s", func.__name__, exc)
            raise StoreUnavailableError(f"SQLite error: {exc}") from exc

    # -- blocking helpers -------------------------------------------------------

    def _insert_sync(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO documents (collection, id, fields_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (collection_path, document_id, _dumps(fields), now, now),
            )

    def _merge_sync(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> bool:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT fields_json FROM documents WHERE collection = ? AND id = ?",
                (collection_path, document_id),
            ).fetchone()
            if row is None:
                return False
            merged = json.loads(row["fields_json"])
            merged.update(json.loads(_dumps(fields)))
            conn.execute(
                """
                UPDATE documents SET fields_json = ?, updated_at = ?
                WHERE collection = ? AND id = ?
                """,
                (
                    json.dumps(merged),
                    datetime.now(timezone.utc).isoformat(),
                    collection_path,
                    document_id,
                ),
            )
        return True

    def _select_sync(self, collection_path: str) -> List[Document]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT id, fields_json FROM documents WHERE collection = ? ORDER BY seq",
                (collection_path,),
            ).fetchall()
        return [_row_to_document(row) for row in rows]

    def _fetch_sync(self, collection_path: str, document_id: str) -> Optional[Document]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT id, fields_json FROM documents WHERE collection = ? AND id = ?",
                (collection_path, document_id),
            ).fetchone()
        return _row_to_document(row) if row else None

    # -- DocumentStore primitives -----------------------------------------------

    async def _insert(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        await self._run(self._insert_sync, collection_path, document_id, fields)

    async def _merge(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> bool:
        return await self._run(self._merge_sync, collection_path, document_id, fields)

    async def _select(self, collection_path: str) -> List[Document]:
        return await self._run(self._select_sync, collection_path)

    async def _fetch(self, collection_path: str, document_id: str) -> Optional[Document]:
        return await self._run(self._fetch_sync, collection_path, document_id)


def _row_to_document(row: sqlite3.Row) -> Document:
    try:
        fields = json.loads(row["fields_json"])
    except json.JSONDecodeError:
        logger.warning("Document %s holds unreadable JSON", row["id"])
        fields = {}
    if not isinstance(fields, dict):
        fields = {}
    return Document(id=row["id"], fields=fields)
