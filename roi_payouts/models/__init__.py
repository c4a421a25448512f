"""
Database models.
"""

from .document import StoredDocument

__all__ = ["StoredDocument"]
