# workflow_catalog/schemas/__init__.py
from .workflow import ParsedWorkflow, WorkflowNode, NodeSummary, WorkflowAnalysis, WorkflowListResponse
from .import_session import (
    IntakeFile,
    IntakeRequest,
    IntakeResponse,
    SessionResponse,
    StepProgress,
    StepResponse,
    ProgressResponse,
    CancelResponse,
    ResumeResponse,
)
from .maintenance import (
    CleanupRequest,
    CleanupResponse,
    TagCount,
    CleanupInfoResponse,
    FixDuplicatesResponse,
    PurgeResponse,
)

__all__ = [
    "ParsedWorkflow",
    "WorkflowNode",
    "NodeSummary",
    "WorkflowAnalysis",
    "WorkflowListResponse",
    "IntakeFile",
    "IntakeRequest",
    "IntakeResponse",
    "SessionResponse",
    "StepProgress",
    "StepResponse",
    "ProgressResponse",
    "CancelResponse",
    "ResumeResponse",
    "CleanupRequest",
    "CleanupResponse",
    "TagCount",
    "CleanupInfoResponse",
    "FixDuplicatesResponse",
    "PurgeResponse",
]
