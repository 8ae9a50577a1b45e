# workflow_catalog/api/imports.py
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
import logging

from ..config import settings
from ..database import get_db
from ..models.import_session import ImportSessionStatus
from ..models.queue_item import QueueItemStatus
from ..schemas.import_session import (
    CancelResponse,
    IntakeRequest,
    IntakeResponse,
    ProgressResponse,
    ResumeResponse,
    SessionResponse,
    StepResponse,
)
from ..schemas.maintenance import PurgeResponse
from ..services.analyzer import WorkflowAnalyzer, build_analyzer
from ..services.intake import ImportIntake
from ..services.maintenance import MaintenanceService
from ..services.progress_tracker import ProgressReporter
from ..services.queue_store import QueueStore
from ..services.session_manager import SessionManager
from ..services.step_processor import StepProcessor, reset_interrupted
from ..utils.file_handlers import read_upload_file, validate_file_type

logger = logging.getLogger(__name__)

router = APIRouter()


def get_analyzer() -> WorkflowAnalyzer:
    """Analyzer used by the step endpoint, selected by ANALYZER_MODE"""
    return build_analyzer()


def _session_response(db: Session, session) -> SessionResponse:
    counts = QueueStore(db).status_counts(session.id)
    response = SessionResponse.model_validate(session)
    return response.model_copy(update={
        "pending_count": counts[QueueItemStatus.PENDING],
        "status_counts": {status.value: count for status, count in counts.items()},
    })


@router.post("",
             response_model=IntakeResponse,
             status_code=201,
             summary="Start Import",
             description="""
             Start a bulk import from a list of workflow files.

             Files whose content is already catalogued, or that duplicate an
             earlier file of the same batch, are skipped. The remaining files
             are queued in upload order and processed one per `/process` call.

             **Returns**: the new session id, the number of queued files and the skipped count.
             **Errors**: 400 when the request is malformed or every file was already catalogued.
             """)
def start_import(
    request: IntakeRequest,
    db: Session = Depends(get_db)
):
    """Start an import session from JSON file contents"""
    return ImportIntake(db).start_import(request.files, request.api_key, request.import_tag)


@router.post("/upload",
             response_model=IntakeResponse,
             status_code=201,
             summary="Start Import From Uploads",
             responses={413: {"description": "File size exceeds limit"}})
async def start_import_upload(
    files: List[UploadFile] = File(..., description="Workflow export files (.json)"),
    api_key: str = Form(..., alias="apiKey"),
    import_tag: Optional[str] = Form(None, alias="importTag"),
    db: Session = Depends(get_db)
):
    """Start an import session from multipart uploads"""
    intake_files = []
    for upload in files:
        if not validate_file_type(upload.filename):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type for '{upload.filename}'. Allowed: {settings.ALLOWED_EXTENSIONS}"
            )
        if upload.size and upload.size > settings.MAX_UPLOAD_SIZE:
            max_mb = settings.MAX_UPLOAD_SIZE / (1024 * 1024)
            raise HTTPException(
                status_code=413,
                detail=f"File too large: '{upload.filename}'. Max size: {max_mb:.1f} MB"
            )
        intake_files.append(await read_upload_file(upload))

    return ImportIntake(db).start_import(intake_files, api_key, import_tag)


@router.get("/status",
            response_model=Optional[ProgressResponse],
            summary="Import Progress")
def get_status(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    db: Session = Depends(get_db)
):
    """
    Progress of the given session, or of the most recent active session.
    Returns null when there is nothing to report.
    """
    return ProgressReporter(db).get_progress(session_id)


@router.get("/active", response_model=Optional[SessionResponse])
def get_active_session(db: Session = Depends(get_db)):
    """Most recently started active session, for resuming a UI without a known id"""
    session = SessionManager(db).get_active()
    if session is None:
        return None
    return _session_response(db, session)


@router.get("/sessions", response_model=List[SessionResponse])
def list_sessions(
    status: Optional[ImportSessionStatus] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """Most recently started sessions first, optionally only those with `status`"""
    return [_session_response(db, session) for session in SessionManager(db).list_sessions(status, limit)]


@router.delete("/sessions/finished", response_model=PurgeResponse)
def purge_finished_sessions(
    older_than: Optional[datetime] = Query(None, alias="olderThan"),
    db: Session = Depends(get_db)
):
    """Delete completed and cancelled sessions together with their queue rows"""
    deleted = MaintenanceService(db).purge_finished_sessions(older_than)
    return PurgeResponse(success=True, deleted_sessions=deleted)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    db: Session = Depends(get_db)
):
    """Session detail with the number of still pending files"""
    session = SessionManager(db).get(session_id)
    return _session_response(db, session)


@router.post("/{session_id}/process",
             response_model=StepResponse,
             response_model_exclude_none=True,
             summary="Process Next File",
             description="""
             Process the next pending file of an active session.

             Call repeatedly until the response is `{"completed": true}`.
             A file that fails to parse or analyze is recorded as failed and
             the next call moves on to the following file.
             """)
def process_next(
    session_id: str,
    db: Session = Depends(get_db),
    analyzer: WorkflowAnalyzer = Depends(get_analyzer)
):
    """Run one processing step"""
    return StepProcessor(db, analyzer).process_next(session_id)


@router.post("/{session_id}/cancel", response_model=CancelResponse)
def cancel_import(
    session_id: str,
    db: Session = Depends(get_db)
):
    """Cancel an active session; pending files are dropped, an in-flight file finishes on its own"""
    cancelled = SessionManager(db).cancel(session_id)
    return CancelResponse(success=True, message="Import cancelled", cancelled_items=cancelled)


@router.post("/{session_id}/resume", response_model=ResumeResponse)
def resume_import(
    session_id: str,
    db: Session = Depends(get_db)
):
    """Re-queue files left in processing by an interrupted step"""
    requeued = reset_interrupted(db, session_id)
    logger.info(f"[Import] Resumed session {session_id[:8]}..., {requeued} file(s) re-queued")
    return ResumeResponse(success=True, requeued=requeued)
