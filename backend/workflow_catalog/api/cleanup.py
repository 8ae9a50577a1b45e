# workflow_catalog/api/cleanup.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.maintenance import (
    CleanupInfoResponse,
    CleanupRequest,
    CleanupResponse,
    DatabaseStats,
    FixDuplicatesResponse,
)
from ..services.maintenance import MaintenanceService

router = APIRouter()


@router.get("/cleanup", response_model=CleanupInfoResponse)
def cleanup_info(db: Session = Depends(get_db)):
    """Workflow count per import tag, to pick what to clean up"""
    return MaintenanceService(db).info()


@router.post("/cleanup",
             response_model=CleanupResponse,
             response_model_exclude_none=True,
             summary="Clean Up Catalog",
             description="""
             Run one cleanup action:

             * **delete-by-tag**: delete every workflow imported with `tag`
             * **delete-duplicates**: keep one workflow per name, delete the rest
             * **clear-all**: delete every workflow, session and queued file
             """)
def cleanup(
    request: CleanupRequest,
    db: Session = Depends(get_db)
):
    return MaintenanceService(db).run(request.action, request.tag)


@router.post("/fix-duplicates", response_model=FixDuplicatesResponse)
def fix_duplicate_names(db: Session = Depends(get_db)):
    """Suffix " (n)" onto workflows that share a name with an earlier one"""
    return MaintenanceService(db).fix_duplicate_names()


@router.get("/database/stats", response_model=DatabaseStats)
def database_stats(db: Session = Depends(get_db)):
    """Row counts of the catalog and import tables, distinct tags and categories"""
    return MaintenanceService(db).stats()
