# workflow_catalog/schemas/import_session.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, List, Optional
from ..models.import_session import ImportSessionStatus
from .workflow import WorkflowAnalysis

# Request schemas
class IntakeFile(BaseModel):
    """One uploaded workflow file as sent by the client"""
    name: Optional[str] = None
    path: Optional[str] = ""
    content: Optional[str] = None
    size: Optional[int] = None

class IntakeRequest(BaseModel):
    """
    Schema for starting an import.
    Field presence is checked by the intake service so that a missing
    credential is reported as a validation error rather than a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    files: Optional[List[IntakeFile]] = None
    api_key: Optional[str] = Field(None, alias="apiKey")
    import_tag: Optional[str] = Field(None, alias="importTag")

# Response schemas
class IntakeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    total_files: int = Field(..., alias="totalFiles")
    skipped_count: int = Field(..., alias="skippedCount")

class SessionResponse(BaseModel):
    """Schema for import session response"""
    id: str
    status: ImportSessionStatus
    total_files: int
    processed_files: int
    failed_files: int
    skipped_files: int
    import_tag: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    last_update: Optional[datetime] = None
    pending_count: Optional[int] = Field(None, alias="pendingCount")
    status_counts: Optional[Dict[str, int]] = Field(None, alias="statusCounts")
    
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class StepProgress(BaseModel):
    processed: int
    total: int

class StepResponse(BaseModel):
    """
    Outcome of one processing step. Exactly one shape is populated:
    {completed}, {success, workflow, fileName, progress} or {error, message, fileName}.
    """
    model_config = ConfigDict(populate_by_name=True)

    completed: Optional[bool] = None
    success: Optional[bool] = None
    error: Optional[bool] = None
    message: Optional[str] = None
    workflow: Optional[WorkflowAnalysis] = None
    file_name: Optional[str] = Field(None, alias="fileName")
    progress: Optional[StepProgress] = None

class ProgressResponse(BaseModel):
    """Read-only projection of a session for progress bars"""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    status: ImportSessionStatus
    total_files: int = Field(..., alias="totalFiles")
    processed_files: int = Field(..., alias="processedFiles")
    failed_files: int = Field(..., alias="failedFiles")
    skipped_files: int = Field(..., alias="skippedFiles")
    pending_files: int = Field(..., alias="pendingFiles")
    percent: float
    current_file: str = Field("", alias="currentFile")
    is_complete: bool = Field(..., alias="isComplete")
    has_error: bool = Field(..., alias="hasError")
    error_message: Optional[str] = Field(None, alias="errorMessage")

class CancelResponse(BaseModel):
    success: bool
    message: str
    cancelled_items: int = Field(0, alias="cancelledItems")

    model_config = ConfigDict(populate_by_name=True)

class ResumeResponse(BaseModel):
    success: bool
    requeued: int
