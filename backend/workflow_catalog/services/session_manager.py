"""
Session Manager

Persisted batch-run records. A session starts active and leaves that state
exactly once: to completed when its queue drains, or to cancelled on request.
Terminal sessions are never modified again.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidStateError, NotFoundError, StorageError, ValidationError
from ..models.import_session import ImportSession, ImportSessionStatus
from ..models.queue_item import ImportQueueItem
from .queue_store import QueueStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Import session persistence bound to one SQLAlchemy session"""

    def __init__(self, db: Session, queue: Optional[QueueStore] = None):
        self.db = db
        self.queue = queue or QueueStore(db)

    def create(self, total_files: int, credential: str, import_tag: str, commit: bool = True) -> ImportSession:
        """New active session with every counter at zero"""
        if total_files < 0:
            raise ValidationError("total_files must not be negative")

        now = datetime.utcnow()
        session = ImportSession(
            total_files=total_files,
            processed_files=0,
            failed_files=0,
            skipped_files=0,
            status=ImportSessionStatus.ACTIVE,
            api_key=credential,
            import_tag=import_tag,
            started_at=now,
            last_update=now,
        )
        self.db.add(session)
        if commit:
            self.db.commit()
            self.db.refresh(session)
        else:
            self.db.flush()
        return session

    def find(self, session_id: str) -> Optional[ImportSession]:
        return self.db.get(ImportSession, session_id)

    def get(self, session_id: str) -> ImportSession:
        session = self.find(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def get_active(self) -> Optional[ImportSession]:
        """Most recently started session that is still active"""
        return self.db.scalars(
            select(ImportSession)
            .where(ImportSession.status == ImportSessionStatus.ACTIVE)
            .order_by(ImportSession.started_at.desc())
            .limit(1)
        ).first()

    def require_active(self, session_id: str) -> ImportSession:
        session = self.find(session_id)
        if session is None or not session.is_active:
            raise InvalidStateError("Session not active", session_id=session_id)
        return session

    def update(
        self,
        session_id: str,
        processed_files: Optional[int] = None,
        failed_files: Optional[int] = None,
        skipped_files: Optional[int] = None,
        status: Optional[ImportSessionStatus] = None,
        commit: bool = True,
    ) -> ImportSession:
        """
        Caller-driven partial update of an active session.

        Counters are replaced, not added to. Only the completed status can be
        set here; cancellation goes through cancel().
        """
        session = self.get(session_id)
        if not session.is_active:
            raise InvalidStateError(
                f"Session {session_id} is {session.status.value}", session_id=session_id
            )

        processed = session.processed_files if processed_files is None else processed_files
        failed = session.failed_files if failed_files is None else failed_files
        if processed < 0 or failed < 0 or (skipped_files is not None and skipped_files < 0):
            raise ValidationError("Session counters must not be negative")
        if processed + failed > session.total_files:
            raise ValidationError(
                f"processed ({processed}) + failed ({failed}) exceeds total ({session.total_files})"
            )

        session.processed_files = processed
        session.failed_files = failed
        if skipped_files is not None:
            session.skipped_files = skipped_files

        if status is not None:
            status = ImportSessionStatus(status)
            if status == ImportSessionStatus.CANCELLED:
                raise ValidationError("Use cancel() to cancel a session")
            if status == ImportSessionStatus.COMPLETED:
                session.status = ImportSessionStatus.COMPLETED
                session.completed_at = datetime.utcnow()

        session.last_update = datetime.utcnow()
        self._commit(session, commit)
        return session

    def increment(self, session_id: str, processed: int = 0, failed: int = 0) -> ImportSession:
        """
        Add to the processed / failed counters of an active session.

        The increment is done in SQL and guarded so that the counters never
        exceed total_files and a terminal session is left untouched.
        """
        try:
            result = self.db.execute(
                update(ImportSession)
                .where(
                    ImportSession.id == session_id,
                    ImportSession.status == ImportSessionStatus.ACTIVE,
                    ImportSession.processed_files + ImportSession.failed_files + processed + failed
                    <= ImportSession.total_files,
                )
                .values(
                    processed_files=ImportSession.processed_files + processed,
                    failed_files=ImportSession.failed_files + failed,
                    last_update=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to update session {session_id}: {e}") from e

        self.db.expire_all()
        session = self.get(session_id)
        if result.rowcount != 1:
            if not session.is_active:
                raise InvalidStateError("Session not active", session_id=session_id)
            raise ValidationError(f"Session {session_id} counters would exceed total_files")
        return session

    def complete(self, session_id: str) -> ImportSession:
        session = self.update(session_id, status=ImportSessionStatus.COMPLETED)
        logger.info(
            f"[Session] {session_id[:8]}... completed: {session.processed_files} processed, "
            f"{session.failed_files} failed, {session.skipped_files} skipped"
        )
        return session

    def cancel(self, session_id: str) -> int:
        """
        Cancel an active session and every still-pending item.

        An item already processing is left alone; its step finishes (or fails)
        on its own. Returns the number of items cancelled.
        """
        session = self.get(session_id)
        if not session.is_active:
            raise InvalidStateError("Session not active", session_id=session_id)

        now = datetime.utcnow()
        session.status = ImportSessionStatus.CANCELLED
        session.completed_at = now
        session.last_update = now
        self.db.flush()
        cancelled = self.queue.cancel_pending(session_id, commit=False)
        self._commit(session, True)

        logger.info(f"[Session] {session_id[:8]}... cancelled, {cancelled} pending item(s) dropped")
        return cancelled

    def list_sessions(self, status: Optional[ImportSessionStatus] = None, limit: int = 50) -> List[ImportSession]:
        stmt = select(ImportSession).order_by(ImportSession.started_at.desc()).limit(limit)
        if status is not None:
            stmt = stmt.where(ImportSession.status == status)
        return list(self.db.scalars(stmt))

    def delete_finished(self, older_than: Optional[datetime] = None) -> int:
        """Delete completed and cancelled sessions together with their queue rows"""
        stmt = select(ImportSession.id).where(ImportSession.status != ImportSessionStatus.ACTIVE)
        if older_than is not None:
            stmt = stmt.where(ImportSession.started_at < older_than)
        session_ids = list(self.db.scalars(stmt))
        if not session_ids:
            return 0

        self.db.execute(
            delete(ImportQueueItem)
            .where(ImportQueueItem.session_id.in_(session_ids))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(ImportSession)
            .where(ImportSession.id.in_(session_ids))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        logger.info(f"[Session] Purged {result.rowcount} finished session(s)")
        return result.rowcount

    def _commit(self, session: ImportSession, commit: bool) -> None:
        try:
            if commit:
                self.db.commit()
                self.db.refresh(session)
            else:
                self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save session {session.id}: {e}") from e
