"""
Custom exception classes for the payout job.
Provides structured error handling across all modules.
"""

from typing import Any, Optional, Dict


class PayoutJobException(Exception):
    """Base exception class for the ROI payout job."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(PayoutJobException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DatabaseError(PayoutJobException):
    """Raised when there's a database error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class StoreError(PayoutJobException):
    """Raised when the record store rejects an operation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORE_ERROR", details)


class ProcessorError(PayoutJobException):
    """Raised when the payout processor cannot run."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROCESSOR_ERROR", details)


class SchedulerError(PayoutJobException):
    """Raised when there's a scheduler error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SCHEDULER_ERROR", details)


class NotFoundError(PayoutJobException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


class RecordNotFoundError(NotFoundError):
    """Raised when a document is missing from its collection."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(
            f"Record not found: {collection}/{record_id}",
            {"collection": collection, "record_id": record_id}
        )

