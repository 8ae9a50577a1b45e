"""
Step Processor

One externally triggered unit of work: claim the next pending item of a
session, parse and analyze it, store the result and record the outcome.

Per-item failures (unparseable content, analyzer errors) are recorded on the
item and counted on the session; they never abort the batch. Storage errors
propagate and leave the claimed item in processing.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import AnalysisError, InvalidStateError, ParseError, StorageError
from ..models.queue_item import ImportQueueItem, QueueItemStatus
from ..schemas.import_session import StepProgress, StepResponse
from ..schemas.workflow import WorkflowAnalysis
from .analyzer import WorkflowAnalyzer
from .catalog_store import CatalogStore
from .queue_store import QueueStore
from .session_manager import SessionManager
from .workflow_parser import WorkflowParser, workflow_parser

logger = logging.getLogger(__name__)


class StepProcessor:
    """Processes one queue item per call, bound to one SQLAlchemy session"""

    def __init__(
        self,
        db: Session,
        analyzer: WorkflowAnalyzer,
        parser: WorkflowParser = workflow_parser,
        catalog: Optional[CatalogStore] = None,
        sessions: Optional[SessionManager] = None,
        queue: Optional[QueueStore] = None,
    ):
        self.db = db
        self.analyzer = analyzer
        self.parser = parser
        self.catalog = catalog or CatalogStore(db)
        self.queue = queue or QueueStore(db)
        self.sessions = sessions or SessionManager(db, self.queue)

    def process_next(self, session_id: str) -> StepResponse:
        """
        Run one step for the session.

        Returns:
            {completed} when the queue is drained (the session is completed),
            {success, workflow, fileName, progress} for a processed item,
            {error, message, fileName} for a failed item

        Raises:
            InvalidStateError: the session is unknown or not active
            StorageError: the outcome could not be persisted
        """
        session = self.sessions.require_active(session_id)
        credential = session.api_key
        import_tag = session.import_tag

        item = self._claim_next(session_id)
        if item is None:
            self.sessions.complete(session_id)
            return StepResponse(completed=True)

        logger.info(f"[Step] {session_id[:8]}... processing {item.file_name}")

        try:
            analysis = self._analyze(item, credential, import_tag)
        except (ParseError, AnalysisError) as e:
            return self._record_failure(session_id, item, str(e))
        except StorageError:
            logger.error(f"[Step] Storage failure while processing {item.file_name}; item left in processing")
            raise
        except Exception as e:
            # analyzer implementations are external code; any failure is a per-item failure
            logger.exception(f"[Step] Unexpected error analyzing {item.file_name}")
            return self._record_failure(session_id, item, str(e) or e.__class__.__name__)

        return self._record_success(session_id, item, analysis)

    def _claim_next(self, session_id: str) -> Optional[ImportQueueItem]:
        while True:
            item = self.queue.next_pending(session_id)
            if item is None:
                return None
            if self.queue.claim(item.id):
                return self.queue.get(item.id)
            logger.warning(f"[Step] Item {item.id} was claimed by another caller, trying the next one")

    def _analyze(self, item: ImportQueueItem, credential: str, import_tag: str) -> WorkflowAnalysis:
        workflow = self.parser.parse_workflow_file(item.file_content, item.file_path)
        if workflow is None:
            raise ParseError("Invalid workflow format")

        analysis = self.analyzer.analyze(workflow, item.file_path, credential)
        analysis = analysis.model_copy(update={"import_tags": import_tag})
        self.catalog.upsert(analysis, import_tag)
        return analysis

    def _record_success(self, session_id: str, item: ImportQueueItem, analysis: WorkflowAnalysis) -> StepResponse:
        self.queue.mark(item.id, QueueItemStatus.COMPLETED, workflow_id=analysis.id)
        session = self.sessions.increment(session_id, processed=1)

        logger.info(
            f"[Step] {session_id[:8]}... {item.file_name} -> {analysis.id} "
            f"({session.processed_files}/{session.total_files})"
        )
        return StepResponse(
            success=True,
            workflow=analysis,
            file_name=item.file_name,
            progress=StepProgress(processed=session.processed_files, total=session.total_files),
        )

    def _record_failure(self, session_id: str, item: ImportQueueItem, message: str) -> StepResponse:
        logger.warning(f"[Step] {session_id[:8]}... failed to process {item.file_name}: {message}")
        self.queue.mark(item.id, QueueItemStatus.FAILED, error_message=message)
        session = self.sessions.increment(session_id, failed=1)
        return StepResponse(
            error=True,
            message=message,
            file_name=item.file_name,
            progress=StepProgress(processed=session.processed_files, total=session.total_files),
        )


def reset_interrupted(db: Session, session_id: str) -> int:
    """
    Put items stuck in processing back to pending so the next step retries them.
    Only allowed while the session is active.
    """
    sessions = SessionManager(db)
    session = sessions.find(session_id)
    if session is None or not session.is_active:
        raise InvalidStateError("Session not active", session_id=session_id)
    return sessions.queue.reset_stale_processing(session_id)
