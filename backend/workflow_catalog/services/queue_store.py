"""
Queue Store

Ordered per-session work items. FIFO is defined by the position assigned at
enqueue time; there is no priority and no reordering.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, StorageError, ValidationError
from ..models.queue_item import ImportQueueItem, QueueItemStatus, TERMINAL_ITEM_STATUSES

logger = logging.getLogger(__name__)


class QueueStore:
    """Import queue persistence bound to one SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def enqueue(
        self,
        session_id: str,
        file_name: str,
        file_path: str,
        file_content: str,
        file_size: int,
        commit: bool = True,
    ) -> ImportQueueItem:
        """Append a pending item to the end of the session's queue"""
        last_position = self.db.scalar(
            select(func.max(ImportQueueItem.position)).where(ImportQueueItem.session_id == session_id)
        )
        item = ImportQueueItem(
            session_id=session_id,
            position=0 if last_position is None else last_position + 1,
            file_name=file_name,
            file_path=file_path or "",
            file_content=file_content or "",
            file_size=file_size or 0,
            status=QueueItemStatus.PENDING,
            created_at=datetime.utcnow(),
        )
        self.db.add(item)
        if commit:
            self.db.commit()
            self.db.refresh(item)
        else:
            self.db.flush()
        return item

    def get(self, item_id: str) -> ImportQueueItem:
        item = self.db.get(ImportQueueItem, item_id)
        if item is None:
            raise NotFoundError(f"Queue item {item_id} not found")
        return item

    def next_pending(self, session_id: str) -> Optional[ImportQueueItem]:
        """Oldest pending item of the session, or None"""
        return self.db.scalars(
            select(ImportQueueItem)
            .where(
                ImportQueueItem.session_id == session_id,
                ImportQueueItem.status == QueueItemStatus.PENDING,
            )
            .order_by(ImportQueueItem.position, ImportQueueItem.created_at)
            .limit(1)
        ).first()

    def claim(self, item_id: str) -> bool:
        """
        Move an item from pending to processing.

        The update is guarded by the current status, so of two callers racing
        for the same item only one gets True.
        """
        try:
            result = self.db.execute(
                update(ImportQueueItem)
                .where(
                    ImportQueueItem.id == item_id,
                    ImportQueueItem.status == QueueItemStatus.PENDING,
                )
                .values(status=QueueItemStatus.PROCESSING)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to claim queue item {item_id}: {e}") from e

        self.db.expire_all()
        return result.rowcount == 1

    def mark(
        self,
        item_id: str,
        status: QueueItemStatus,
        workflow_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> ImportQueueItem:
        """
        Set an item's status.

        processed_at is stamped on every terminal status. workflow_id is kept
        only for completed items and error_message only for failed ones.
        """
        status = QueueItemStatus(status)
        if status == QueueItemStatus.COMPLETED and not workflow_id:
            raise ValidationError("A completed queue item needs a workflow id")

        try:
            item = self.get(item_id)
            item.status = status
            item.workflow_id = workflow_id if status == QueueItemStatus.COMPLETED else None
            item.error_message = (error_message or "Unknown error") if status == QueueItemStatus.FAILED else None
            item.processed_at = datetime.utcnow() if status in TERMINAL_ITEM_STATUSES else None
            self.db.commit()
            self.db.refresh(item)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to update queue item {item_id}: {e}") from e

        return item

    def pending_count(self, session_id: str) -> int:
        return self.db.scalar(
            select(func.count())
            .select_from(ImportQueueItem)
            .where(
                ImportQueueItem.session_id == session_id,
                ImportQueueItem.status == QueueItemStatus.PENDING,
            )
        )

    def current_processing(self, session_id: str) -> Optional[ImportQueueItem]:
        """Most recently enqueued item that is still processing"""
        return self.db.scalars(
            select(ImportQueueItem)
            .where(
                ImportQueueItem.session_id == session_id,
                ImportQueueItem.status == QueueItemStatus.PROCESSING,
            )
            .order_by(ImportQueueItem.position.desc(), ImportQueueItem.created_at.desc())
            .limit(1)
        ).first()

    def items(self, session_id: str) -> List[ImportQueueItem]:
        return list(self.db.scalars(
            select(ImportQueueItem)
            .where(ImportQueueItem.session_id == session_id)
            .order_by(ImportQueueItem.position)
        ))

    def status_counts(self, session_id: str) -> Dict[QueueItemStatus, int]:
        rows = self.db.execute(
            select(ImportQueueItem.status, func.count())
            .where(ImportQueueItem.session_id == session_id)
            .group_by(ImportQueueItem.status)
        ).all()
        counts = {status: 0 for status in QueueItemStatus}
        counts.update({status: count for status, count in rows})
        return counts

    def cancel_pending(self, session_id: str, commit: bool = True) -> int:
        """Bulk move every pending item of the session to cancelled"""
        result = self.db.execute(
            update(ImportQueueItem)
            .where(
                ImportQueueItem.session_id == session_id,
                ImportQueueItem.status == QueueItemStatus.PENDING,
            )
            .values(status=QueueItemStatus.CANCELLED, processed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if commit:
            self.db.commit()
        self.db.expire_all()
        return result.rowcount

    def reset_stale_processing(self, session_id: str) -> int:
        """Return items left in processing (e.g. by a crashed step) to pending"""
        result = self.db.execute(
            update(ImportQueueItem)
            .where(
                ImportQueueItem.session_id == session_id,
                ImportQueueItem.status == QueueItemStatus.PROCESSING,
            )
            .values(status=QueueItemStatus.PENDING, processed_at=None, error_message=None)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        if result.rowcount:
            logger.warning(f"[Queue] Re-queued {result.rowcount} stale item(s) for session {session_id[:8]}...")
        return result.rowcount
