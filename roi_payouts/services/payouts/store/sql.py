"""
SQLAlchemy-backed record store.
"""

from datetime import datetime, timezone
from typing import List, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from roi_payouts.core.database import Database
from roi_payouts.core.exceptions import DatabaseError, RecordNotFoundError, StoreError
from roi_payouts.models.document import StoredDocument
from .base import Document, FieldUpdates, RecordStore, apply_field_updates


logger = structlog.get_logger(__name__)


class SqlRecordStore(RecordStore):
    """
    Record store over the ``documents`` table.

    Each update is a read-modify-write of one row inside its own
    transaction; there is no optimistic concurrency check.
    """

    def __init__(self, database: Database):
        self.database = database
        self.logger = logger.bind(service="sql_record_store")

    async def open(self) -> None:
        await self.database.connect()

    async def close(self) -> None:
        await self.database.dispose()

    async def fetch_all(self, collection: str) -> List[Tuple[str, Document]]:
        try:
            async with self.database.session() as db:
                result = await db.execute(
                    select(StoredDocument.doc_id, StoredDocument.data)
                    .where(StoredDocument.collection == collection)
                    .order_by(StoredDocument.doc_id)
                )
                # Non-object bodies are returned as stored and rejected by validation
                rows = [(row[0], row[1]) for row in result.fetchall()]
        except SQLAlchemyError as e:
            self.logger.error("Failed to fetch collection", collection=collection, error=str(e))
            raise DatabaseError(
                f"Failed to fetch collection {collection}",
                {"collection": collection, "error": str(e)}
            ) from e

        self.logger.debug("Fetched collection", collection=collection, count=len(rows))
        return rows

    async def get(self, collection: str, record_id: str) -> Document:
        async with self.database.session() as db:
            row = await db.get(StoredDocument, (collection, record_id))
            if row is None:
                raise RecordNotFoundError(collection, record_id)
            return row.data

    async def update(self, collection: str, record_id: str, updates: FieldUpdates) -> None:
        try:
            async with self.database.session() as db:
                row = await db.get(StoredDocument, (collection, record_id))
                if row is None:
                    raise RecordNotFoundError(collection, record_id)
                if not isinstance(row.data, dict):
                    raise StoreError(
                        f"Cannot update {collection}/{record_id}: document is not an object",
                        {"collection": collection, "record_id": record_id}
                    )
                # Assign a new object so the JSON column is flagged dirty
                row.data = apply_field_updates(row.data, updates)
                row.updated_at = datetime.now(timezone.utc)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to update {collection}/{record_id}",
                {"collection": collection, "record_id": record_id, "error": str(e)}
            ) from e

    async def put(self, collection: str, record_id: str, data: Document) -> None:
        try:
            async with self.database.session() as db:
                row = await db.get(StoredDocument, (collection, record_id))
                if row is None:
                    db.add(StoredDocument(collection=collection, doc_id=record_id, data=data))
                else:
                    row.data = data
                    row.updated_at = datetime.now(timezone.utc)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to write {collection}/{record_id}",
                {"collection": collection, "record_id": record_id, "error": str(e)}
            ) from e
