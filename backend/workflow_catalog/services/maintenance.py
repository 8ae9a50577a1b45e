"""
Maintenance Operations

Explicit, caller-triggered cleanup of the catalog and the import tables.
Nothing here runs automatically.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError, ValidationError
from ..models.import_session import ImportSession
from ..models.queue_item import ImportQueueItem
from ..schemas.maintenance import (
    CleanupInfoResponse,
    CleanupResponse,
    DatabaseStats,
    FixDuplicatesResponse,
    TagCount,
)
from .catalog_store import CatalogStore
from .intake import TAG_PATTERN
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Batch cleanup utilities bound to one SQLAlchemy session"""

    def __init__(self, db: Session, catalog: Optional[CatalogStore] = None):
        self.db = db
        self.catalog = catalog or CatalogStore(db)

    def info(self) -> CleanupInfoResponse:
        """Entry count per import tag plus the catalog total"""
        return CleanupInfoResponse(
            tags=[TagCount(**row) for row in self.catalog.tag_counts()],
            total_workflows=self.catalog.count(),
        )

    def run(self, action: str, tag: Optional[str] = None) -> CleanupResponse:
        if action == "delete-by-tag":
            return self.delete_by_tag(tag)
        if action == "delete-duplicates":
            return self.delete_duplicates()
        if action == "clear-all":
            return self.clear_all()
        raise ValidationError(f"Unknown cleanup action: {action}")

    def delete_by_tag(self, tag: Optional[str]) -> CleanupResponse:
        if not tag:
            raise ValidationError("Tag is required for delete-by-tag")
        if not TAG_PATTERN.match(tag):
            raise ValidationError("Import tag may only contain letters, digits, hyphens and underscores")

        deleted = self._guarded(lambda: self.catalog.delete_by_tag(tag), "delete by tag")
        logger.info(f"[Maintenance] Deleted {deleted} workflow(s) tagged '{tag}'")
        return CleanupResponse(
            success=True,
            message=f"Deleted {deleted} workflows with tag '{tag}'",
            deleted_count=deleted,
        )

    def delete_duplicates(self) -> CleanupResponse:
        deleted = self._guarded(self.catalog.delete_non_representative_by_name, "delete duplicates")
        logger.info(f"[Maintenance] Deleted {deleted} duplicate workflow(s)")
        return CleanupResponse(
            success=True,
            message=f"Deleted {deleted} duplicate workflows",
            deleted_count=deleted,
        )

    def fix_duplicate_names(self) -> FixDuplicatesResponse:
        fixed = self._guarded(self.catalog.rename_duplicate_names, "fix duplicate names")
        logger.info(f"[Maintenance] Renamed {fixed} workflow(s) with duplicate names")
        return FixDuplicatesResponse(
            success=True,
            message=f"Fixed {fixed} duplicate workflow names",
            fixed_count=fixed,
        )

    def clear_all(self) -> CleanupResponse:
        deleted = self._guarded(self.catalog.clear_all, "clear all")
        logger.warning(f"[Maintenance] Cleared the catalog ({deleted} workflow(s)) and all import sessions")
        return CleanupResponse(
            success=True,
            message=f"Cleared all data ({deleted} workflows)",
            deleted_count=deleted,
        )

    def stats(self) -> DatabaseStats:
        """Row counts of the three tables plus the distinct tags and categories"""
        return DatabaseStats(
            total_workflows=self.catalog.count(),
            total_sessions=self.db.scalar(select(func.count()).select_from(ImportSession)),
            total_queue_items=self.db.scalar(select(func.count()).select_from(ImportQueueItem)),
            unique_tags=len(self.catalog.tag_counts()),
            categories=self.catalog.categories(),
        )

    def purge_finished_sessions(self, older_than: Optional[datetime] = None) -> int:
        sessions = SessionManager(self.db)
        return self._guarded(lambda: sessions.delete_finished(older_than), "purge finished sessions")

    def _guarded(self, operation, label: str) -> int:
        try:
            return operation()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Maintenance] {label} failed: {e}")
            raise StorageError(f"Failed to {label}: {e}") from e
