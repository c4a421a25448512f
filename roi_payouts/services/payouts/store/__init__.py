"""
Record store components.
"""

from .base import (
    ArrayAppend,
    FieldUpdates,
    Increment,
    RecordStore,
    apply_field_updates,
)
from .memory import InMemoryRecordStore
from .sql import SqlRecordStore

__all__ = [
    "ArrayAppend",
    "FieldUpdates",
    "Increment",
    "RecordStore",
    "apply_field_updates",
    "InMemoryRecordStore",
    "SqlRecordStore",
]
