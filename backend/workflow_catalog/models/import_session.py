# workflow_catalog/models/import_session.py
from sqlalchemy import Column, String, Integer, DateTime, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from ..database import Base

class ImportSessionStatus(str, enum.Enum):
    """Lifecycle of a batch import run"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ImportSession(Base):
    """
    Represents one batch import run
    One session = the accepted files of one intake + aggregate counters
    """
    __tablename__ = "import_sessions"
    
    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    
    # Counters
    total_files = Column(Integer, nullable=False, default=0)
    processed_files = Column(Integer, nullable=False, default=0)
    failed_files = Column(Integer, nullable=False, default=0)
    skipped_files = Column(Integer, nullable=False, default=0)  # set once at intake
    
    # Status tracking
    status = Column(SQLEnum(ImportSessionStatus), default=ImportSessionStatus.ACTIVE, nullable=False)
    
    # Opaque analyzer credential, passed through to the analyzer untouched
    api_key = Column(String(500), nullable=True)
    
    # Tag stamped on every catalog entry produced by this session
    import_tag = Column(String(100), nullable=False, default="internetsourced")
    
    # Timestamps
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    last_update = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    queue_items = relationship(
        "ImportQueueItem",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImportQueueItem.position",
    )
    
    __table_args__ = (
        Index("idx_import_sessions_status_started", "status", "started_at"),
    )
    
    @property
    def is_active(self) -> bool:
        return self.status == ImportSessionStatus.ACTIVE
    
    def __repr__(self):
        return (f"<ImportSession {self.id} status={self.status} "
                f"{self.processed_files}+{self.failed_files}/{self.total_files}>")
