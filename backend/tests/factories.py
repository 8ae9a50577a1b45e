"""Builders for workflow files and analyzers used across the tests."""

import json

from workflow_catalog.errors import AnalysisError
from workflow_catalog.services.analyzer import BasicAnalyzer


def workflow_content(name="Sample Flow", node_types=("n8n-nodes-base.manualTrigger", "n8n-nodes-base.slack"),
                     connections=None):
    """Raw text of a minimal n8n workflow export"""
    nodes = [
        {
            "id": str(index),
            "name": node_type.split(".")[-1],
            "type": node_type,
            "position": [100 * index, 200],
            "parameters": {},
        }
        for index, node_type in enumerate(node_types)
    ]
    return json.dumps({"name": name, "nodes": nodes, "connections": connections or {}})


def intake_file(file_name, content=None, path=None, **workflow):
    """One intake file entry as sent by the client"""
    content = workflow_content(**workflow) if content is None else content
    return {
        "name": file_name,
        "path": path if path is not None else f"imports/{file_name}",
        "content": content,
        "size": len(content.encode("utf-8")),
    }


class FailingAnalyzer(BasicAnalyzer):
    """Basic analysis, except for workflows whose name is in `fail_names`"""

    def __init__(self, fail_names=(), error=None):
        super().__init__()
        self.fail_names = set(fail_names)
        self.error = error
        self.calls = []

    def analyze(self, workflow, file_path=None, credential=None):
        self.calls.append((workflow.name, file_path, credential))
        if workflow.title in self.fail_names:
            raise self.error or AnalysisError(f"Analyzer rejected {workflow.name}")
        return super().analyze(workflow, file_path, credential)
