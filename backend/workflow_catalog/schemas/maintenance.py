# workflow_catalog/schemas/maintenance.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

CleanupAction = Literal["delete-by-tag", "delete-duplicates", "clear-all"]

# Request schemas
class CleanupRequest(BaseModel):
    action: CleanupAction
    tag: Optional[str] = None

# Response schemas
class CleanupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    deleted_count: Optional[int] = Field(None, alias="deletedCount")

class TagCount(BaseModel):
    tag: str
    count: int

class CleanupInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tags: List[TagCount]
    total_workflows: int = Field(..., alias="totalWorkflows")

class FixDuplicatesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    fixed_count: int = Field(..., alias="fixedCount")

class PurgeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    deleted_sessions: int = Field(..., alias="deletedSessions")

class DatabaseStats(BaseModel):
    """Row counts and distinct values across the catalog and import tables"""
    model_config = ConfigDict(populate_by_name=True)

    total_workflows: int = Field(..., alias="totalWorkflows")
    total_sessions: int = Field(..., alias="totalSessions")
    total_queue_items: int = Field(..., alias="totalQueueItems")
    unique_tags: int = Field(..., alias="uniqueTags")
    categories: List[str]

class DeleteWorkflowResponse(BaseModel):
    success: bool
    id: str
