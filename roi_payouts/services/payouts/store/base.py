"""
Record store contract and partial-update semantics.

A partial update maps dotted field paths to either a plain value (set),
an ``Increment`` (add a delta to a numeric field) or an ``ArrayAppend``
(append one element to a list field, no duplicate check).

A ``Decimal`` delta marks a money increment: the sum is computed in
``Decimal`` and rounded half-up to cents before it is stored.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Tuple, Union

from roi_payouts.core.exceptions import RecordNotFoundError, StoreError
from ..records.coercion import round_money, to_decimal


@dataclass(frozen=True)
class Increment:
    """Add ``delta`` to a numeric field; a missing or non-numeric field counts as 0."""
    delta: Union[int, float, Decimal]


@dataclass(frozen=True)
class ArrayAppend:
    """Append ``value`` to a list field; a missing field becomes a new list."""
    value: Any


FieldUpdates = Dict[str, Any]
Document = Dict[str, Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _resolve_parent(data: Document, path: str) -> Tuple[Document, str]:
    parts = path.split(".")
    if any(not part for part in parts):
        raise StoreError(f"Invalid field path: {path!r}", {"path": path})

    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if child is None:
            child = {}
            node[part] = child
        elif not isinstance(child, dict):
            raise StoreError(
                f"Cannot update {path!r}: {part!r} is not an object",
                {"path": path}
            )
        node = child
    return node, parts[-1]


def apply_field_updates(data: Document, updates: FieldUpdates) -> Document:
    """
    Apply a partial update to a document and return the new document.

    The input document is not modified.

    Raises:
        StoreError: If a path crosses a non-object value or an
            ArrayAppend targets a non-list field
    """
    result = copy.deepcopy(data)

    for path, operation in updates.items():
        parent, key = _resolve_parent(result, path)

        if isinstance(operation, Increment):
            current = parent.get(key)
            base = current if _is_number(current) else 0
            if isinstance(operation.delta, Decimal):
                total = (to_decimal(base) or Decimal("0")) + operation.delta
                parent[key] = float(round_money(total))
            else:
                parent[key] = base + operation.delta
        elif isinstance(operation, ArrayAppend):
            current = parent.get(key)
            if current is None:
                current = []
            elif not isinstance(current, list):
                raise StoreError(
                    f"Cannot append to {path!r}: field is not a list",
                    {"path": path}
                )
            parent[key] = current + [copy.deepcopy(operation.value)]
        else:
            parent[key] = copy.deepcopy(operation)

    return result


class RecordStore(ABC):
    """
    Document store collaborator used by the payout processor.

    Implementations are constructed once per run and closed afterwards.
    """

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Acquire underlying resources."""

    async def close(self) -> None:
        """Release underlying resources."""

    @abstractmethod
    async def fetch_all(self, collection: str) -> List[Tuple[str, Document]]:
        """Return every ``(id, data)`` pair in ``collection`` at call time."""

    @abstractmethod
    async def update(self, collection: str, record_id: str, updates: FieldUpdates) -> None:
        """
        Apply a partial field-level update to one document.

        Raises:
            RecordNotFoundError: If the document does not exist
        """

    @abstractmethod
    async def put(self, collection: str, record_id: str, data: Document) -> None:
        """Create or replace one document."""

    async def get(self, collection: str, record_id: str) -> Document:
        """Fetch one document by id."""
        for doc_id, data in await self.fetch_all(collection):
            if doc_id == record_id:
                return data
        raise RecordNotFoundError(collection, record_id)
