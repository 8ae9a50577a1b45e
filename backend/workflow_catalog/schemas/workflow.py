from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

Complexity = Literal["Simple", "Medium", "Complex"]


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


class WorkflowNode(BaseModel):
    """
    One node of an n8n workflow export.
    Fields are kept exactly as they appear in the file, whatever their JSON
    type; the typed accessors below are what the extractors read.
    """
    model_config = ConfigDict(extra="allow")

    id: Any = None
    name: Any = None
    type: Any = None
    position: Any = None
    parameters: Any = None
    credentials: Any = None

    @property
    def type_name(self) -> Optional[str]:
        return self.type if isinstance(self.type, str) else None

    @property
    def label(self) -> Optional[str]:
        return _as_text(self.name)

    @property
    def params(self) -> Dict[str, Any]:
        return self.parameters if isinstance(self.parameters, dict) else {}

    @property
    def credential_names(self) -> List[str]:
        return list(self.credentials) if isinstance(self.credentials, dict) else []


class ParsedWorkflow(BaseModel):
    """Structured form of an uploaded workflow file"""
    model_config = ConfigDict(extra="allow")

    id: Any = None
    name: Any = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: Any = None

    @property
    def title(self) -> Optional[str]:
        """The workflow name when the file gives it as a string"""
        return self.name if isinstance(self.name, str) else None

    @property
    def connection_count(self) -> int:
        if isinstance(self.connections, (dict, list)):
            return len(self.connections)
        return 0

    def raw(self) -> Dict[str, Any]:
        """The workflow as it appeared in the file (unset fields omitted)"""
        return self.model_dump(exclude_unset=True)


class NodeSummary(BaseModel):
    type: str
    count: int
    name: str


class WorkflowAnalysis(BaseModel):
    """
    Structured analysis record produced by an analyzer and stored in the catalog.
    Serialized with camelCase keys.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    description: str = ""
    category: str = "Automation"
    tags: List[str] = Field(default_factory=list)
    import_tags: Optional[str] = None
    complexity: Complexity = "Simple"
    node_count: int = 0
    nodes: List[NodeSummary] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    integrations: List[str] = Field(default_factory=list)
    estimated_runtime: str = "< 5 seconds"
    use_case: str = ""
    ai_generated: bool = False
    last_analyzed: datetime = Field(default_factory=datetime.utcnow)
    file_path: Optional[str] = None

    # Enhanced details
    input_requirements: List[str] = Field(default_factory=list)
    expected_outputs: List[str] = Field(default_factory=list)
    data_flow: Optional[str] = None
    business_logic: Optional[str] = None
    error_handling: Optional[str] = None
    data_transformations: List[str] = Field(default_factory=list)
    webhook_urls: List[str] = Field(default_factory=list)
    schedules: List[str] = Field(default_factory=list)
    conditional_logic: List[str] = Field(default_factory=list)
    loops_and_iterations: List[str] = Field(default_factory=list)

    # Raw workflow data
    workflow_data: Optional[Dict[str, Any]] = None


class WorkflowListResponse(BaseModel):
    """Schema for a page of catalog entries"""
    workflows: List[WorkflowAnalysis]
    total: int
