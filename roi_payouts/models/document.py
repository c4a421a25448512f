"""
Document table backing the record store.

Every collection (investments, user profiles, plans) lives in the same
table as JSON documents keyed by (collection, doc_id).
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, Index

from roi_payouts.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(Base):
    """
    One JSON document in a named collection.
    """
    __tablename__ = "documents"

    collection = Column(String(100), primary_key=True, comment="Collection name")
    doc_id = Column(String(128), primary_key=True, comment="Document id, unique per collection")
    data = Column(JSON, nullable=False, default=dict, comment="Document body")

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )

    def __repr__(self):
        return f"<StoredDocument(collection={self.collection}, id={self.doc_id})>"
