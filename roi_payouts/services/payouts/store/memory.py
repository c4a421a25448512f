"""
In-memory record store for tests and dry runs.
"""

import copy
from typing import Dict, List, Optional, Tuple

from roi_payouts.core.exceptions import RecordNotFoundError
from .base import Document, FieldUpdates, RecordStore, apply_field_updates


class InMemoryRecordStore(RecordStore):
    """Dict-backed store; documents are deep-copied in and out."""

    def __init__(self, collections: Optional[Dict[str, Dict[str, Document]]] = None):
        self.collections: Dict[str, Dict[str, Document]] = {}
        self.update_log: List[Tuple[str, str, FieldUpdates]] = []
        for name, documents in (collections or {}).items():
            self.collections[name] = copy.deepcopy(documents)

    async def fetch_all(self, collection: str) -> List[Tuple[str, Document]]:
        documents = self.collections.get(collection, {})
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in documents.items()]

    async def get(self, collection: str, record_id: str) -> Document:
        try:
            return copy.deepcopy(self.collections[collection][record_id])
        except KeyError:
            raise RecordNotFoundError(collection, record_id) from None

    async def update(self, collection: str, record_id: str, updates: FieldUpdates) -> None:
        documents = self.collections.get(collection, {})
        if record_id not in documents:
            raise RecordNotFoundError(collection, record_id)
        documents[record_id] = apply_field_updates(documents[record_id], updates)
        self.update_log.append((collection, record_id, dict(updates)))

    async def put(self, collection: str, record_id: str, data: Document) -> None:
        self.collections.setdefault(collection, {})[record_id] = copy.deepcopy(data)
