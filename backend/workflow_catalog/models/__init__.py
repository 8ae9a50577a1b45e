# workflow_catalog/models/__init__.py
from .import_session import ImportSession, ImportSessionStatus
from .queue_item import ImportQueueItem, QueueItemStatus, TERMINAL_ITEM_STATUSES
from .workflow import CatalogWorkflow

__all__ = [
    "ImportSession",
    "ImportSessionStatus",
    "ImportQueueItem",
    "QueueItemStatus",
    "TERMINAL_ITEM_STATUSES",
    "CatalogWorkflow",
]
