# workflow_catalog/models/queue_item.py
from sqlalchemy import Column, String, Integer, Text, DateTime, Enum as SQLEnum, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from ..database import Base

class QueueItemStatus(str, enum.Enum):
    """Processing status of one queued file"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

TERMINAL_ITEM_STATUSES = frozenset({
    QueueItemStatus.COMPLETED,
    QueueItemStatus.FAILED,
    QueueItemStatus.CANCELLED,
})

class ImportQueueItem(Base):
    """
    Represents one file waiting in (or finished with) the import queue
    Raw content is kept verbatim on the row for the item's lifetime
    """
    __tablename__ = "import_queue"
    
    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    
    # Foreign key to session (queue rows die with their session)
    session_id = Column(
        String(36),
        ForeignKey("import_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    
    # FIFO position within the session, assigned at enqueue time
    position = Column(Integer, nullable=False, default=0)
    
    # File metadata
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(1000), nullable=False, default="")
    file_content = Column(Text, nullable=False, default="")
    file_size = Column(Integer, nullable=False, default=0)
    
    # Processing
    status = Column(SQLEnum(QueueItemStatus), default=QueueItemStatus.PENDING, nullable=False)
    error_message = Column(Text, nullable=True)  # only on failed
    
    # Lookup-only reference into the catalog; deliberately not a foreign key
    # so removing catalog rows never cascades into queue history
    workflow_id = Column(String(64), nullable=True, index=True)
    
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    
    # Relationships
    session = relationship("ImportSession", back_populates="queue_items")
    
    __table_args__ = (
        Index("idx_import_queue_session_status", "session_id", "status", "position"),
    )
    
    def __repr__(self):
        return f"<ImportQueueItem {self.file_name} status={self.status}>"
