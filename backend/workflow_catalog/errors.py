"""
Error taxonomy for the import pipeline and catalog maintenance.

Session and queue level errors (validation, not-found, invalid state) reach
the caller through the API exception handler. Per-item errors (parse,
analysis) are caught by the step processor and recorded on the queue item.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Root exception; carries a machine-readable code and an HTTP status."""

    error_code: str = "CATALOG_ERROR"
    http_status: int = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.message, "code": self.error_code}
        payload.update(self.extra)
        return payload


class ValidationError(CatalogError):
    """Missing or malformed intake fields. Raised before any mutation."""

    error_code = "VALIDATION_ERROR"
    http_status = 400


class AllFilesCataloguedError(ValidationError):
    """Every intake file was a duplicate, nothing to enqueue."""

    error_code = "ALL_FILES_CATALOGUED"

    def __init__(self, skipped_count: int):
        super().__init__("All files are already catalogued", skippedCount=skipped_count)
        self.skipped_count = skipped_count


class NotFoundError(CatalogError):
    error_code = "NOT_FOUND"
    http_status = 404


class InvalidStateError(CatalogError):
    """Operation against a session that is not active."""

    error_code = "INVALID_STATE"
    http_status = 400

    def __init__(self, message: str = "Session not active", session_id: Optional[str] = None):
        if session_id is not None:
            super().__init__(message, sessionId=session_id)
        else:
            super().__init__(message)
        self.session_id = session_id


class ParseError(CatalogError):
    error_code = "PARSE_ERROR"
    http_status = 422


class AnalysisError(CatalogError):
    error_code = "ANALYSIS_ERROR"
    http_status = 502


class StorageError(CatalogError):
    error_code = "STORAGE_ERROR"
    http_status = 500
