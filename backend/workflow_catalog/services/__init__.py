# workflow_catalog/services/__init__.py
from .workflow_parser import WorkflowParser, workflow_parser
from .analyzer import WorkflowAnalyzer, BasicAnalyzer, OpenAIAnalyzer, build_analyzer
from .catalog_store import CatalogStore
from .queue_store import QueueStore
from .session_manager import SessionManager
from .intake import ImportIntake
from .step_processor import StepProcessor
from .progress_tracker import ProgressReporter
from .maintenance import MaintenanceService

__all__ = [
    "WorkflowParser",
    "workflow_parser",
    "WorkflowAnalyzer",
    "BasicAnalyzer",
    "OpenAIAnalyzer",
    "build_analyzer",
    "CatalogStore",
    "QueueStore",
    "SessionManager",
    "ImportIntake",
    "StepProcessor",
    "ProgressReporter",
    "MaintenanceService",
]
