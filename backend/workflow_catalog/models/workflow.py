# workflow_catalog/models/workflow.py
from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, JSON
from datetime import datetime
from ..database import Base

class CatalogWorkflow(Base):
    """
    Represents one analyzed workflow in the catalog
    The id is the workflow's dedup key, which makes re-imports upserts
    """
    __tablename__ = "workflows"
    
    # Primary key (dedup key, base-36)
    id = Column(String(64), primary_key=True)
    
    name = Column(String(500), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    import_tag = Column(String(100), nullable=True, index=True)
    complexity = Column(String(20), nullable=True)
    node_count = Column(Integer, nullable=False, default=0)
    
    # Extracted structure (JSON fields)
    nodes = Column(JSON, nullable=False, default=list)
    # Example structure:
    # [{"type": "n8n-nodes-base.slack", "count": 1, "name": "Slack"}]
    dependencies = Column(JSON, nullable=False, default=list)
    triggers = Column(JSON, nullable=False, default=list)
    actions = Column(JSON, nullable=False, default=list)
    integrations = Column(JSON, nullable=False, default=list)
    
    estimated_runtime = Column(String(50), nullable=True)
    use_case = Column(Text, nullable=True)
    ai_generated = Column(Boolean, nullable=False, default=False)
    last_analyzed = Column(DateTime, nullable=True)
    file_path = Column(String(1000), nullable=True)
    
    # Enhanced details
    input_requirements = Column(JSON, nullable=False, default=list)
    expected_outputs = Column(JSON, nullable=False, default=list)
    data_flow = Column(Text, nullable=True)
    business_logic = Column(Text, nullable=True)
    error_handling = Column(Text, nullable=True)
    data_transformations = Column(JSON, nullable=False, default=list)
    webhook_urls = Column(JSON, nullable=False, default=list)
    schedules = Column(JSON, nullable=False, default=list)
    conditional_logic = Column(JSON, nullable=False, default=list)
    loops_and_iterations = Column(JSON, nullable=False, default=list)
    
    # The original workflow JSON
    workflow_data = Column(JSON, nullable=True)
    
    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)
    
    def __repr__(self):
        return f"<CatalogWorkflow {self.id} name={self.name!r}>"
