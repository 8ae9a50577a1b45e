"""
Catalog Store

Durable store of analyzed workflows. Conversion between CatalogWorkflow rows
and WorkflowAnalysis values happens here and nowhere else.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import String, case, cast, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError
from ..models.import_session import ImportSession
from ..models.queue_item import ImportQueueItem
from ..models.workflow import CatalogWorkflow
from ..schemas.workflow import NodeSummary, WorkflowAnalysis

logger = logging.getLogger(__name__)

# WorkflowAnalysis field -> CatalogWorkflow column, for plain copies
_COLUMN_MAP = {
    "name": "name",
    "description": "description",
    "category": "category",
    "tags": "tags",
    "complexity": "complexity",
    "node_count": "node_count",
    "dependencies": "dependencies",
    "triggers": "triggers",
    "actions": "actions",
    "integrations": "integrations",
    "estimated_runtime": "estimated_runtime",
    "use_case": "use_case",
    "ai_generated": "ai_generated",
    "last_analyzed": "last_analyzed",
    "file_path": "file_path",
    "input_requirements": "input_requirements",
    "expected_outputs": "expected_outputs",
    "data_flow": "data_flow",
    "business_logic": "business_logic",
    "error_handling": "error_handling",
    "data_transformations": "data_transformations",
    "webhook_urls": "webhook_urls",
    "schedules": "schedules",
    "conditional_logic": "conditional_logic",
    "loops_and_iterations": "loops_and_iterations",
    "workflow_data": "workflow_data",
}


class CatalogStore:
    """Catalog persistence bound to one SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def to_analysis(row: CatalogWorkflow) -> WorkflowAnalysis:
        values = {field: getattr(row, column) for field, column in _COLUMN_MAP.items()}
        values["nodes"] = [NodeSummary.model_validate(node) for node in (row.nodes or [])]
        values["last_analyzed"] = row.last_analyzed or row.updated_at or datetime.utcnow()
        for field in ("description", "use_case"):
            values[field] = values[field] or ""
        values["category"] = values["category"] or "Automation"
        values["complexity"] = values["complexity"] or "Simple"
        values["estimated_runtime"] = values["estimated_runtime"] or "< 5 seconds"
        return WorkflowAnalysis(id=row.id, import_tags=row.import_tag, **values)

    @staticmethod
    def _row_values(analysis: WorkflowAnalysis) -> Dict:
        values = {column: getattr(analysis, field) for field, column in _COLUMN_MAP.items()}
        values["nodes"] = [node.model_dump() for node in analysis.nodes]
        return values

    # ------------------------------------------------------------------
    # Pipeline contract
    # ------------------------------------------------------------------

    def upsert(self, analysis: WorkflowAnalysis, tag: Optional[str] = None) -> CatalogWorkflow:
        """
        Insert or replace the catalog entry with analysis.id.
        created_at survives replacement; updated_at is refreshed.
        """
        try:
            row = self.db.get(CatalogWorkflow, analysis.id)
            values = self._row_values(analysis)
            import_tag = tag or analysis.import_tags
            now = datetime.utcnow()

            if row is None:
                row = CatalogWorkflow(id=analysis.id, import_tag=import_tag, created_at=now, updated_at=now, **values)
                self.db.add(row)
                logger.info(f"[Catalog] Inserted workflow {analysis.id} '{analysis.name}'")
            else:
                for column, value in values.items():
                    setattr(row, column, value)
                row.import_tag = import_tag
                row.updated_at = now
                logger.info(f"[Catalog] Replaced workflow {analysis.id} '{analysis.name}'")

            self.db.commit()
            self.db.refresh(row)
            return row
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save workflow {analysis.id}: {e}") from e

    def exists_by_id(self, workflow_id: str) -> bool:
        return self.db.get(CatalogWorkflow, workflow_id) is not None

    def exists_by_name(self, name: str) -> bool:
        stmt = select(func.count()).select_from(CatalogWorkflow).where(CatalogWorkflow.name == name)
        return self.db.scalar(stmt) > 0

    def is_cached(self, name: str, file_path: Optional[str] = None, workflow_id: Optional[str] = None) -> bool:
        """
        Whether an intake file is already catalogued.

        A dedup key match wins. Otherwise fall back to the file name; when a
        path is given, the stored entry must also come from that path.
        """
        if workflow_id and self.exists_by_id(workflow_id):
            return True

        row = self.db.scalars(
            select(CatalogWorkflow).where(CatalogWorkflow.name == name).limit(1)
        ).first()
        if row is None:
            return False
        if file_path and row.file_path != file_path:
            return False
        return True

    def delete_by_tag(self, tag: str) -> int:
        """Delete every entry with import tag `tag` and the queue rows pointing at them"""
        tagged_ids = select(CatalogWorkflow.id).where(CatalogWorkflow.import_tag == tag)
        self.db.execute(
            delete(ImportQueueItem)
            .where(ImportQueueItem.workflow_id.in_(tagged_ids))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(CatalogWorkflow)
            .where(CatalogWorkflow.import_tag == tag)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return result.rowcount

    def delete_non_representative_by_name(self) -> int:
        """
        Keep one entry per name (the one with the smallest id) and delete the rest,
        together with the queue rows that reference them.
        """
        representatives = select(func.min(CatalogWorkflow.id)).group_by(CatalogWorkflow.name)
        duplicate_ids = list(self.db.scalars(
            select(CatalogWorkflow.id).where(CatalogWorkflow.id.not_in(representatives))
        ))
        if not duplicate_ids:
            return 0

        self.db.execute(
            delete(ImportQueueItem)
            .where(ImportQueueItem.workflow_id.in_(duplicate_ids))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(CatalogWorkflow)
            .where(CatalogWorkflow.id.in_(duplicate_ids))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return result.rowcount

    # ------------------------------------------------------------------
    # Catalog upkeep and reads
    # ------------------------------------------------------------------

    def rename_duplicate_names(self) -> int:
        """
        For every name shared by several entries, keep the earliest updated
        entry as is and suffix the others " (1)", " (2)"... in update order.
        """
        duplicate_names = list(self.db.scalars(
            select(CatalogWorkflow.name)
            .group_by(CatalogWorkflow.name)
            .having(func.count() > 1)
        ))

        renamed = 0
        for name in duplicate_names:
            rows = list(self.db.scalars(
                select(CatalogWorkflow)
                .where(CatalogWorkflow.name == name)
                .order_by(CatalogWorkflow.updated_at, CatalogWorkflow.created_at, CatalogWorkflow.id)
            ))
            for index, row in enumerate(rows[1:], start=1):
                new_name = f"{name} ({index})"
                # keep updated_at as is so the ordering stays reproducible
                self.db.execute(
                    update(CatalogWorkflow)
                    .where(CatalogWorkflow.id == row.id)
                    .values(name=new_name, updated_at=row.updated_at)
                    .execution_options(synchronize_session=False)
                )
                logger.info(f"[Catalog] Renamed duplicate workflow '{name}' -> '{new_name}' (ID: {row.id})")
                renamed += 1

        self.db.commit()
        self.db.expire_all()
        return renamed

    def get(self, workflow_id: str) -> Optional[WorkflowAnalysis]:
        row = self.db.get(CatalogWorkflow, workflow_id)
        return self.to_analysis(row) if row else None

    def list_workflows(self, limit: Optional[int] = None, offset: int = 0) -> List[WorkflowAnalysis]:
        stmt = select(CatalogWorkflow).order_by(CatalogWorkflow.updated_at.desc(), CatalogWorkflow.id)
        if limit:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return [self.to_analysis(row) for row in self.db.scalars(stmt)]

    def search(self, query: str, limit: int = 1000) -> List[WorkflowAnalysis]:
        """
        Case-insensitive substring search over name, description, category,
        tags, integrations and use case.

        Ranked: exact name match, then name match, then category match, then
        the rest; newest first within a rank.
        """
        pattern = f"%{query.lower()}%"
        name = func.lower(CatalogWorkflow.name)
        category = func.lower(CatalogWorkflow.category)
        rank = case(
            (name.like(query.lower()), 1),
            (name.like(pattern), 2),
            (category.like(pattern), 3),
            else_=4,
        )
        stmt = (
            select(CatalogWorkflow)
            .where(or_(
                name.like(pattern),
                func.lower(CatalogWorkflow.description).like(pattern),
                category.like(pattern),
                func.lower(cast(CatalogWorkflow.tags, String)).like(pattern),
                func.lower(cast(CatalogWorkflow.integrations, String)).like(pattern),
                func.lower(CatalogWorkflow.use_case).like(pattern),
            ))
            .order_by(rank, CatalogWorkflow.updated_at.desc(), CatalogWorkflow.id)
            .limit(limit)
        )
        return [self.to_analysis(row) for row in self.db.scalars(stmt)]

    def delete(self, workflow_id: str) -> bool:
        """Delete one entry and the queue rows pointing at it; False when there was none"""
        try:
            self.db.execute(
                delete(ImportQueueItem)
                .where(ImportQueueItem.workflow_id == workflow_id)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(
                delete(CatalogWorkflow)
                .where(CatalogWorkflow.id == workflow_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to delete workflow {workflow_id}: {e}") from e

        self.db.expire_all()
        if result.rowcount:
            logger.info(f"[Catalog] Deleted workflow {workflow_id}")
        return result.rowcount > 0

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(CatalogWorkflow))

    def categories(self) -> List[str]:
        return list(self.db.scalars(
            select(CatalogWorkflow.category)
            .where(CatalogWorkflow.category.is_not(None))
            .distinct()
            .order_by(CatalogWorkflow.category)
        ))

    def tag_counts(self) -> List[Dict]:
        rows = self.db.execute(
            select(CatalogWorkflow.import_tag, func.count().label("count"))
            .where(CatalogWorkflow.import_tag.is_not(None))
            .group_by(CatalogWorkflow.import_tag)
            .order_by(func.count().desc(), CatalogWorkflow.import_tag)
        ).all()
        return [{"tag": tag, "count": count} for tag, count in rows]

    def clear_all(self) -> int:
        """Delete the queue, the sessions and then every catalog entry"""
        self.db.execute(delete(ImportQueueItem).execution_options(synchronize_session=False))
        self.db.execute(delete(ImportSession).execution_options(synchronize_session=False))
        result = self.db.execute(delete(CatalogWorkflow).execution_options(synchronize_session=False))
        self.db.commit()
        self.db.expire_all()
        return result.rowcount
