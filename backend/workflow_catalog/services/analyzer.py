"""
Workflow Analyzer Service

Converts a parsed workflow into a WorkflowAnalysis record.

- BasicAnalyzer: heuristic analysis from the workflow structure only
- OpenAIAnalyzer: asks an OpenAI chat model for the descriptive fields and
  merges them with the heuristic extraction

Both assign the workflow's dedup key as the analysis id, so re-importing the
same content replaces the existing catalog entry.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from openai import OpenAI, OpenAIError

from ..config import settings
from ..errors import AnalysisError
from ..schemas.workflow import ParsedWorkflow, WorkflowAnalysis
from .dedup import dedup_key_for_workflow
from .workflow_parser import WorkflowParser, workflow_parser

logger = logging.getLogger(__name__)

GENERIC_NAMES = {"My Workflow", "Untitled Workflow", "New Workflow"}

CATEGORY_BY_INTEGRATION = {
    'slack': 'Communication',
    'discord': 'Communication',
    'telegram': 'Communication',
    'gmail': 'Communication',
    'google sheets': 'Data Processing',
    'airtable': 'Data Processing',
    'notion': 'Content Management',
    'github': 'Development',
    'gitlab': 'Development',
    'stripe': 'E-commerce',
    'shopify': 'E-commerce',
    'hubspot': 'Marketing',
    'salesforce': 'Business Process',
}

AI_FIELDS = (
    "name", "description", "category", "tags", "useCase", "inputRequirements",
    "expectedOutputs", "dataFlow", "businessLogic", "errorHandling",
)


class WorkflowAnalyzer(ABC):
    """Interface every analyzer implements"""

    @abstractmethod
    def analyze(
        self,
        workflow: ParsedWorkflow,
        file_path: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> WorkflowAnalysis:
        """
        Analyze one workflow.

        Raises:
            AnalysisError: the workflow cannot be analyzed
        """


class BasicAnalyzer(WorkflowAnalyzer):
    """Deterministic analysis; never calls out to a model"""

    def __init__(self, parser: WorkflowParser = workflow_parser):
        self.parser = parser

    def analyze(self, workflow, file_path=None, credential=None):
        self._check_structure(workflow)
        metadata = self.extract_metadata(workflow)
        triggers = metadata["triggers"]
        integrations = metadata["integrations"]

        description = f"n8n workflow with {len(workflow.nodes)} nodes"
        category = 'Automation'
        use_case = 'General automation workflow'

        if integrations:
            description += f" integrating {integrations[0]}"
            category = CATEGORY_BY_INTEGRATION.get(integrations[0].lower(), 'Integration')

        if any('webhook' in t.lower() for t in triggers):
            description += ' triggered by webhook'
            use_case = 'Responds to external events via webhook'
        elif any('cron' in t.lower() for t in triggers):
            description += ' running on schedule'
            use_case = 'Automated scheduled task execution'

        return WorkflowAnalysis(
            id=dedup_key_for_workflow(workflow),
            name=self.simple_name(workflow, metadata),
            description=description,
            category=category,
            tags=self.technical_tags(workflow, metadata),
            use_case=use_case,
            ai_generated=False,
            last_analyzed=datetime.utcnow(),
            file_path=file_path,
            input_requirements=[f"{triggers[0]} trigger"] if triggers else ['Manual execution'],
            expected_outputs=[f"Output to {integrations[0]}"] if integrations else ['Processed data'],
            data_flow='Sequential node execution based on workflow connections',
            business_logic='Standard workflow automation logic',
            error_handling='Default n8n error handling',
            workflow_data=workflow.raw(),
            **self._structural_fields(workflow, metadata),
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _check_structure(workflow: ParsedWorkflow) -> None:
        if workflow is None or not isinstance(workflow.nodes, list):
            raise AnalysisError("Invalid workflow structure")

    def extract_metadata(self, workflow: ParsedWorkflow) -> Dict[str, Any]:
        return {
            "nodes": self.parser.extract_nodes(workflow),
            "dependencies": self.parser.extract_dependencies(workflow),
            "triggers": self.parser.extract_triggers(workflow),
            "actions": self.parser.extract_actions(workflow),
            "integrations": self.parser.extract_integrations(workflow),
            "complexity": self.parser.calculate_complexity(workflow),
            "estimated_runtime": self.parser.estimate_runtime(workflow),
        }

    def _structural_fields(self, workflow: ParsedWorkflow, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "complexity": metadata["complexity"],
            "node_count": len(workflow.nodes),
            "nodes": metadata["nodes"],
            "dependencies": metadata["dependencies"],
            "triggers": metadata["triggers"],
            "actions": metadata["actions"],
            "integrations": metadata["integrations"],
            "estimated_runtime": metadata["estimated_runtime"],
            "data_transformations": self.parser.extract_data_transformations(workflow),
            "webhook_urls": self.parser.extract_webhook_urls(workflow),
            "schedules": self.parser.extract_schedules(workflow),
            "conditional_logic": self.parser.extract_conditional_logic(workflow),
            "loops_and_iterations": self.parser.extract_loops_and_iterations(workflow),
        }

    def simple_name(self, workflow: ParsedWorkflow, metadata: Dict[str, Any]) -> str:
        """The workflow's own name when meaningful, otherwise one built from its structure"""
        existing = (workflow.title or "").strip()
        if existing and existing not in GENERIC_NAMES and len(existing) > 2:
            return existing

        short_id = dedup_key_for_workflow(workflow)[:4]
        if metadata["integrations"]:
            return f"{metadata['integrations'][0]} Workflow {short_id}"
        if metadata["triggers"]:
            return f"{metadata['triggers'][0]} Automation {short_id}"
        return f"Custom Workflow {short_id}"

    def technical_tags(self, workflow: ParsedWorkflow, metadata: Dict[str, Any]) -> List[str]:
        tags = [metadata["complexity"].lower()]

        node_count = len(workflow.nodes)
        if node_count <= 5:
            tags.append('simple-workflow')
        elif node_count <= 15:
            tags.append('medium-workflow')
        else:
            tags.append('complex-workflow')

        triggers = [t.lower() for t in metadata["triggers"]]
        if any('webhook' in t for t in triggers):
            tags.append('webhook')
        if any('cron' in t for t in triggers):
            tags.append('scheduled')
        if any('manual' in t for t in triggers):
            tags.append('manual-trigger')

        for integration in metadata["integrations"][:3]:
            tags.append(re.sub(r'\s+', '-', integration.lower()))

        return [tag for tag in tags if tag]


class OpenAIAnalyzer(BasicAnalyzer):
    """Analysis with descriptive fields written by an OpenAI chat model"""

    SYSTEM_PROMPT = (
        "You are an expert n8n workflow analyst. "
        "Provide accurate, concise analysis in valid JSON format only."
    )

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        fallback_to_basic: Optional[bool] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
        parser: WorkflowParser = workflow_parser,
    ):
        super().__init__(parser)
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.fallback_to_basic = (
            settings.ANALYZER_FALLBACK_TO_BASIC if fallback_to_basic is None else fallback_to_basic
        )
        self.client_factory = client_factory or self._default_client

    @staticmethod
    def _default_client(api_key: str) -> OpenAI:
        return OpenAI(api_key=api_key, base_url=settings.OPENAI_BASE_URL, timeout=settings.OPENAI_TIMEOUT)

    def analyze(self, workflow, file_path=None, credential=None):
        self._check_structure(workflow)
        if not credential:
            raise AnalysisError("Analyzer credential is missing")

        basic = super().analyze(workflow, file_path, credential)
        metadata = self.extract_metadata(workflow)

        try:
            ai = self._request_analysis(self.workflow_summary(workflow, metadata), credential)
        except (OpenAIError, AnalysisError) as e:
            if not self.fallback_to_basic:
                raise AnalysisError(f"AI analysis failed: {e}") from e
            logger.warning(f"[Analyzer] AI analysis failed for {file_path or workflow.name}, using basic analysis: {e}")
            return basic

        return basic.model_copy(update={
            "name": _text(ai.get("name")) or basic.name,
            "description": _text(ai.get("description")) or 'n8n workflow automation',
            "category": _text(ai.get("category")) or 'Automation',
            "tags": _strings(ai.get("tags")) + basic.tags,
            "use_case": _text(ai.get("useCase")) or 'General automation workflow',
            "ai_generated": True,
            "input_requirements": _strings(ai.get("inputRequirements")),
            "expected_outputs": _strings(ai.get("expectedOutputs")),
            "data_flow": _text(ai.get("dataFlow")) or 'Sequential node execution',
            "business_logic": _text(ai.get("businessLogic")) or 'Standard workflow logic',
            "error_handling": _text(ai.get("errorHandling")) or 'Basic error handling',
        })

    def workflow_summary(self, workflow: ParsedWorkflow, metadata: Dict[str, Any]) -> str:
        actions = metadata["actions"]
        lines = [
            f"Workflow Name: {workflow.name or 'Untitled'}",
            f"Node Count: {len(workflow.nodes)}",
            f"Triggers: {', '.join(metadata['triggers']) or 'None'}",
            f"Actions: {', '.join(actions[:5])}{'...' if len(actions) > 5 else ''}",
            f"Integrations: {', '.join(metadata['integrations']) or 'None'}",
            "Key Nodes: " + ", ".join(f"{n.type}({n.count})" for n in metadata["nodes"][:8]),
            "",
            "Node Details:",
        ]
        for node in workflow.nodes[:10]:
            notes = getattr(node, "notes", None)
            suffix = f" ({notes[:100]})" if isinstance(notes, str) and notes else ""
            lines.append(f"- {node.type}: {node.name}{suffix}")
        if len(workflow.nodes) > 10:
            lines.append(f"... and {len(workflow.nodes) - 10} more nodes")
        return "\n".join(lines)

    def _request_analysis(self, summary: str, credential: str) -> Dict[str, Any]:
        prompt = (
            "Analyze this n8n workflow and respond with a JSON object with the keys "
            "name (2-4 words, specific), description (2-3 sentences), category (one of: Automation, "
            "Data Processing, Integration, Monitoring, Communication, Marketing, Development, "
            "Business Process, E-commerce, Content Management), tags (max 8, lowercase, hyphenated), "
            "useCase, inputRequirements (array), expectedOutputs (array), dataFlow, businessLogic, "
            "errorHandling.\n\n"
            f"Workflow Summary:\n{summary}\n\n"
            "Focus on practical business value and keep responses concise."
        )

        client = self.client_factory(credential)
        logger.debug(f"[Analyzer] Requesting analysis from {self.model}")
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=700,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AnalysisError("No content in AI response")
        return parse_ai_response(content)


def parse_ai_response(content: str) -> Dict[str, Any]:
    """
    Decode the model's reply. Falls back to the first {...} block, then to
    per-key regex extraction when the reply is not clean JSON.
    """
    for candidate in (content, _first_json_block(content)):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    extracted: Dict[str, Any] = {}
    for key in AI_FIELDS:
        array = re.search(rf'"{key}"\s*:\s*\[([^\]]*)\]', content, re.IGNORECASE)
        if array:
            extracted[key] = [item.replace('"', '').strip() for item in array.group(1).split(',') if item.strip()]
            continue
        value = re.search(rf'"{key}"\s*:\s*"([^"]*)"', content, re.IGNORECASE)
        if value:
            extracted[key] = value.group(1)
    if not extracted:
        raise AnalysisError("AI response is not valid JSON")
    return extracted


def _first_json_block(content: str) -> Optional[str]:
    match = re.search(r'\{[\s\S]*\}', content)
    return match.group(0) if match else None


def _text(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def build_analyzer(mode: Optional[str] = None) -> WorkflowAnalyzer:
    """Analyzer selected by ANALYZER_MODE ("openai" or "basic")"""
    mode = (mode or settings.ANALYZER_MODE).lower()
    if mode == "basic":
        return BasicAnalyzer()
    if mode == "openai":
        return OpenAIAnalyzer()
    raise ValueError(f"Unknown analyzer mode: {mode}")
