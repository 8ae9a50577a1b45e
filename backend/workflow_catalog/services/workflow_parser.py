"""
Workflow Parser Service

Turns uploaded n8n export files into ParsedWorkflow objects and extracts the
structural metadata (node types, triggers, integrations, complexity...) that
the analyzers build on.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlparse

from pydantic import ValidationError as SchemaValidationError

from ..schemas.workflow import Complexity, NodeSummary, ParsedWorkflow

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Unsupported constant {name}")


class WorkflowParser:
    """Parse n8n workflow exports and extract structural metadata"""

    TRIGGER_TYPES = (
        'webhook', 'cron', 'trigger', 'start', 'manual',
        'httprequest', 'emailtrigger', 'filetrigger',
    )

    UTILITY_TYPES = (
        'set', 'if', 'switch', 'merge', 'wait', 'function',
        'code', 'split', 'aggregate', 'limit', 'sort',
    )

    INTEGRATION_MAP = {
        'slack': 'Slack',
        'gmail': 'Gmail',
        'sheets': 'Google Sheets',
        'drive': 'Google Drive',
        'dropbox': 'Dropbox',
        'github': 'GitHub',
        'gitlab': 'GitLab',
        'jira': 'Jira',
        'trello': 'Trello',
        'notion': 'Notion',
        'airtable': 'Airtable',
        'hubspot': 'HubSpot',
        'salesforce': 'Salesforce',
        'stripe': 'Stripe',
        'shopify': 'Shopify',
        'wordpress': 'WordPress',
        'mysql': 'MySQL',
        'postgres': 'PostgreSQL',
        'mongodb': 'MongoDB',
        'redis': 'Redis',
        'telegram': 'Telegram',
        'discord': 'Discord',
        'twitter': 'Twitter',
        'facebook': 'Facebook',
        'linkedin': 'LinkedIn',
        'zoom': 'Zoom',
        'teams': 'Microsoft Teams',
    }

    def parse_workflow_file(self, content: str, file_path: Optional[str] = None) -> Optional[ParsedWorkflow]:
        """
        Parse the raw text of an uploaded workflow file.

        Supported layouts:
        - a single workflow object with a "nodes" array
        - a multi-workflow export {"workflows": [...]} (first workflow wins)
        - a wrapped export {"data": {"nodes": [...]}}

        Args:
            content: Raw file text
            file_path: Original path, used for log messages only

        Returns:
            ParsedWorkflow, or None when the content is not a workflow
        """
        if not isinstance(content, str) or not content.strip():
            return None

        try:
            parsed = json.loads(content, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            logger.debug(f"[Parser] Not JSON: {file_path or '<upload>'} ({e})")
            return None

        candidate = self._select_workflow(parsed)
        if candidate is None:
            logger.debug(f"[Parser] No workflow structure found in {file_path or '<upload>'}")
            return None

        try:
            return ParsedWorkflow.model_validate(candidate)
        except SchemaValidationError as e:
            logger.debug(f"[Parser] Malformed workflow in {file_path or '<upload>'}: {e.error_count()} errors")
            return None

    @staticmethod
    def _select_workflow(parsed: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(parsed, dict):
            return None

        workflows = parsed.get('workflows')
        if isinstance(workflows, list):
            if workflows and isinstance(workflows[0], dict):
                return workflows[0]
            return None

        if isinstance(parsed.get('nodes'), list):
            return parsed

        data = parsed.get('data')
        if isinstance(data, dict) and isinstance(data.get('nodes'), list):
            return data

        return None

    # ------------------------------------------------------------------
    # Extraction helpers
    # ------------------------------------------------------------------

    def extract_nodes(self, workflow: ParsedWorkflow) -> List[NodeSummary]:
        """Group nodes by type with a count and the distinct node names"""
        grouped: Dict[str, Dict[str, Any]] = {}
        for node in workflow.nodes:
            node_type = node.type_name or 'unknown'
            entry = grouped.setdefault(node_type, {'count': 0, 'names': []})
            entry['count'] += 1
            if node.label and node.label not in entry['names']:
                entry['names'].append(node.label)

        return [
            NodeSummary(type=node_type, count=data['count'], name=', '.join(data['names']))
            for node_type, data in grouped.items()
        ]

    def extract_dependencies(self, workflow: ParsedWorkflow) -> List[str]:
        dependencies: List[str] = []
        seen: Set[str] = set()

        def add(value: str) -> None:
            if value not in seen:
                seen.add(value)
                dependencies.append(value)

        for node in workflow.nodes:
            if node.type_name:
                add(node.type_name)
            for credential in node.credential_names:
                add(f"credential:{credential}")
            if node.params:
                self._extract_parameter_dependencies(node.params, add)

        return dependencies

    def _extract_parameter_dependencies(self, params: Any, add) -> None:
        if not isinstance(params, dict):
            return

        for key, value in params.items():
            lowered = str(key).lower()
            if isinstance(value, str):
                if 'url' in lowered:
                    hostname = urlparse(value).hostname
                    if hostname:
                        add(f"service:{hostname}")
                if 'database' in lowered or 'connection' in lowered:
                    add(f"database:{value}")
            elif isinstance(value, dict):
                self._extract_parameter_dependencies(value, add)
            elif isinstance(value, list):
                for item in value:
                    self._extract_parameter_dependencies(item, add)

    def is_trigger_node(self, node_type: Optional[str]) -> bool:
        if not node_type:
            return False
        lowered = node_type.lower()
        return any(trigger in lowered for trigger in self.TRIGGER_TYPES)

    def is_utility_node(self, node_type: Optional[str]) -> bool:
        if not node_type:
            return False
        lowered = node_type.lower()
        return any(utility in lowered for utility in self.UTILITY_TYPES)

    def extract_triggers(self, workflow: ParsedWorkflow) -> List[str]:
        return [node.type_name for node in workflow.nodes if self.is_trigger_node(node.type_name)]

    def extract_actions(self, workflow: ParsedWorkflow) -> List[str]:
        return [
            node.type_name for node in workflow.nodes
            if node.type_name and not self.is_trigger_node(node.type_name) and not self.is_utility_node(node.type_name)
        ]

    def integration_for(self, node_type: Optional[str]) -> Optional[str]:
        if not node_type:
            return None
        lowered = node_type.lower()
        for key, integration in self.INTEGRATION_MAP.items():
            if key in lowered:
                return integration
        return None

    def extract_integrations(self, workflow: ParsedWorkflow) -> List[str]:
        integrations: List[str] = []
        for node in workflow.nodes:
            integration = self.integration_for(node.type_name)
            if integration and integration not in integrations:
                integrations.append(integration)
        return integrations

    def calculate_complexity(self, workflow: ParsedWorkflow) -> Complexity:
        node_count = len(workflow.nodes)
        connection_count = workflow.connection_count
        has_logic = any(
            node.type_name and any(kind in node.type_name.lower() for kind in ('if', 'switch', 'function', 'code'))
            for node in workflow.nodes
        )

        if node_count <= 5 and not has_logic:
            return 'Simple'
        if node_count <= 15 and connection_count <= 20:
            return 'Medium'
        return 'Complex'

    def estimate_runtime(self, workflow: ParsedWorkflow) -> str:
        types = [node.type_name.lower() for node in workflow.nodes if node.type_name]
        node_count = len(workflow.nodes)
        has_wait = any('wait' in t for t in types)
        has_api = any(kind in t for t in types for kind in ('http', 'webhook', 'api'))

        if has_wait:
            return '> 1 minute'
        if has_api and node_count > 10:
            return '30-60 seconds'
        if node_count > 20:
            return '10-30 seconds'
        if node_count > 5:
            return '5-10 seconds'
        return '< 5 seconds'

    def extract_webhook_urls(self, workflow: ParsedWorkflow) -> List[str]:
        urls = []
        for node in workflow.nodes:
            if node.type_name and 'webhook' in node.type_name.lower() and node.params:
                if node.params.get('path'):
                    urls.append(f"/webhook/{node.params['path']}")
                if node.params.get('webhookId'):
                    urls.append(f"/webhook/{node.params['webhookId']}")
        return urls

    def extract_schedules(self, workflow: ParsedWorkflow) -> List[str]:
        schedules = []
        for node in workflow.nodes:
            if not node.type_name or not node.params:
                continue
            lowered = node.type_name.lower()
            if 'cron' in lowered or 'schedule' in lowered:
                for key in ('rule', 'expression'):
                    value = node.params.get(key)
                    if value:
                        schedules.append(value if isinstance(value, str) else json.dumps(value, sort_keys=True))
        return schedules

    def extract_conditional_logic(self, workflow: ParsedWorkflow) -> List[str]:
        conditions = []
        for node in workflow.nodes:
            if not node.type_name or not node.params:
                continue
            lowered = node.type_name.lower()
            label = node.label or 'unnamed node'
            if 'if' in lowered and node.params.get('conditions'):
                conditions.append(f"IF condition in {label}")
            if 'switch' in lowered and node.params.get('rules'):
                conditions.append(f"SWITCH logic in {label}")
        return conditions

    def extract_loops_and_iterations(self, workflow: ParsedWorkflow) -> List[str]:
        loops = []
        for node in workflow.nodes:
            if not node.type_name or not node.params:
                continue
            lowered = node.type_name.lower()
            label = node.label or 'unnamed node'
            if 'split' in lowered:
                loops.append(f"Split data processing in {label}")
            if 'function' in lowered:
                code = node.params.get('code') or node.params.get('jsCode') or ''
                if isinstance(code, str) and any(word in code for word in ('for', 'while', 'forEach')):
                    loops.append(f"Loop logic in {label}")
        return loops

    def extract_data_transformations(self, workflow: ParsedWorkflow) -> List[str]:
        transformations = []
        for node in workflow.nodes:
            if not node.type_name or not node.params:
                continue
            lowered = node.type_name.lower()
            label = node.label or 'unnamed node'
            if 'set' in lowered:
                transformations.append(f"Data transformation in {label}")
            if 'function' in lowered:
                transformations.append(f"Custom function in {label}")
            if 'code' in lowered:
                transformations.append(f"Code execution in {label}")
            if 'merge' in lowered:
                transformations.append(f"Data merging in {label}")
        return transformations


# Singleton instance
workflow_parser = WorkflowParser()
