# workflow_catalog/services/progress_tracker.py
from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..models.import_session import ImportSessionStatus
from ..schemas.import_session import ProgressResponse
from .queue_store import QueueStore
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class ProgressReporter:
    """
    Read-only progress projection of an import session.
    Combines session counters with queue state; never writes.
    """

    def __init__(self, db: Session):
        self.queue = QueueStore(db)
        self.sessions = SessionManager(db, self.queue)

    def get_progress(self, session_id: Optional[str] = None) -> Optional[ProgressResponse]:
        """
        Progress for the given session, or for the most recently started
        active session when no id is given. None when there is nothing to report.
        """
        if session_id:
            session = self.sessions.find(session_id)
        else:
            session = self.sessions.get_active()
        if session is None:
            return None

        current = self.queue.current_processing(session.id)
        done = session.processed_files + session.failed_files
        percent = round(done / session.total_files * 100, 1) if session.total_files > 0 else 0.0

        error_message = None
        if session.failed_files > 0:
            error_message = f"{session.failed_files} file{'s' if session.failed_files != 1 else ''} failed"

        logger.debug(f"[Progress] {session.id[:8]}... | {done}/{session.total_files} | {percent}%")

        return ProgressResponse(
            session_id=session.id,
            status=session.status,
            total_files=session.total_files,
            processed_files=session.processed_files,
            failed_files=session.failed_files,
            skipped_files=session.skipped_files,
            pending_files=self.queue.pending_count(session.id),
            percent=percent,
            current_file=current.file_name if current else "",
            is_complete=session.status == ImportSessionStatus.COMPLETED,
            has_error=session.failed_files > 0,
            error_message=error_message,
        )
