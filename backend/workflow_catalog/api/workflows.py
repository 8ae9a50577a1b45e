# workflow_catalog/api/workflows.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Literal, Optional

from ..database import get_db
from ..errors import NotFoundError
from ..schemas.maintenance import DeleteWorkflowResponse
from ..schemas.workflow import WorkflowAnalysis, WorkflowListResponse
from ..services.catalog_store import CatalogStore

router = APIRouter()


@router.get("",
            response_model=WorkflowListResponse,
            summary="List Workflows",
            description="""
            List catalogued workflows, most recently updated first.

            With `search`, only workflows whose name, description, category,
            tags, integrations or use case contain the text (case-insensitive)
            are returned, exact name matches first. `total` counts every match
            before `limit`/`offset` are applied.
            """)
def list_workflows(
    search: Optional[str] = Query(None, min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    catalog = CatalogStore(db)
    if search:
        matches = catalog.search(search)
        end = offset + limit if limit else None
        return WorkflowListResponse(workflows=matches[offset:end], total=len(matches))

    return WorkflowListResponse(
        workflows=catalog.list_workflows(limit=limit, offset=offset),
        total=catalog.count(),
    )


@router.get("/{workflow_id}",
            response_model=WorkflowAnalysis,
            responses={200: {"description": "The analysis, or the raw n8n export with format=n8n"}})
def get_workflow(
    workflow_id: str,
    output_format: Literal["analysis", "n8n"] = Query("analysis", alias="format"),
    db: Session = Depends(get_db)
):
    """One catalog entry; `format=n8n` returns the workflow JSON as it was imported"""
    workflow = CatalogStore(db).get(workflow_id)
    if workflow is None:
        raise NotFoundError(f"Workflow {workflow_id} not found")

    if output_format == "n8n":
        if not workflow.workflow_data:
            raise NotFoundError(f"No workflow data available for {workflow_id}")
        return JSONResponse(content=workflow.workflow_data)
    return workflow


@router.delete("/{workflow_id}", response_model=DeleteWorkflowResponse)
def delete_workflow(
    workflow_id: str,
    db: Session = Depends(get_db)
):
    """Delete one catalog entry"""
    if not CatalogStore(db).delete(workflow_id):
        raise NotFoundError(f"Workflow {workflow_id} not found")
    return DeleteWorkflowResponse(success=True, id=workflow_id)
