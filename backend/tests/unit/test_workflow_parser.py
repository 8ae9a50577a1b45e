import json

import pytest

from workflow_catalog.services.workflow_parser import WorkflowParser

from tests.factories import workflow_content


@pytest.fixture
def parser() -> WorkflowParser:
    return WorkflowParser()


def _workflow(parser, nodes, connections=None, name="Flow"):
    return parser.parse_workflow_file(json.dumps({"name": name, "nodes": nodes, "connections": connections or {}}))


def test_parse_single_workflow(parser) -> None:
    workflow = parser.parse_workflow_file(workflow_content(name="Orders"), "flows/orders.json")

    assert workflow is not None
    assert workflow.name == "Orders"
    assert [node.type for node in workflow.nodes] == ["n8n-nodes-base.manualTrigger", "n8n-nodes-base.slack"]


def test_parse_wrapped_and_multi_workflow_exports(parser) -> None:
    inner = json.loads(workflow_content(name="Wrapped"))

    wrapped = parser.parse_workflow_file(json.dumps({"data": inner}))
    bundle = parser.parse_workflow_file(json.dumps({"workflows": [inner, {"name": "Second", "nodes": []}]}))

    assert wrapped.name == "Wrapped"
    assert bundle.name == "Wrapped"


def test_parse_keeps_unknown_fields(parser) -> None:
    content = json.dumps({
        "name": "Extra",
        "active": True,
        "nodes": [{"type": "n8n-nodes-base.set", "typeVersion": 2, "notes": "hello"}],
    })
    workflow = parser.parse_workflow_file(content)

    assert workflow.model_extra["active"] is True
    assert workflow.nodes[0].model_extra["typeVersion"] == 2


@pytest.mark.parametrize("content", [
    "",
    "   ",
    "{not json",
    "[]",
    '{"name": "no nodes"}',
    '{"nodes": "not a list"}',
    '{"workflows": []}',
    '{"name": NaN, "nodes": []}',
])
def test_parse_rejects_non_workflow_content(parser, content) -> None:
    assert parser.parse_workflow_file(content) is None


def test_extract_nodes_groups_by_type(parser) -> None:
    workflow = _workflow(parser, [
        {"name": "Notify A", "type": "n8n-nodes-base.slack"},
        {"name": "Notify B", "type": "n8n-nodes-base.slack"},
        {"name": "Start", "type": "n8n-nodes-base.manualTrigger"},
    ])

    summaries = {summary.type: summary for summary in parser.extract_nodes(workflow)}

    assert summaries["n8n-nodes-base.slack"].count == 2
    assert summaries["n8n-nodes-base.slack"].name == "Notify A, Notify B"
    assert summaries["n8n-nodes-base.manualTrigger"].count == 1


def test_triggers_actions_and_integrations(parser) -> None:
    workflow = _workflow(parser, [
        {"type": "n8n-nodes-base.webhook", "parameters": {"path": "orders"}},
        {"type": "n8n-nodes-base.if", "parameters": {"conditions": {"boolean": []}}, "name": "Check"},
        {"type": "n8n-nodes-base.googleSheets"},
        {"type": "n8n-nodes-base.slack"},
    ])

    assert parser.extract_triggers(workflow) == ["n8n-nodes-base.webhook"]
    assert parser.extract_actions(workflow) == ["n8n-nodes-base.googleSheets", "n8n-nodes-base.slack"]
    assert parser.extract_integrations(workflow) == ["Google Sheets", "Slack"]
    assert parser.extract_webhook_urls(workflow) == ["/webhook/orders"]
    assert parser.extract_conditional_logic(workflow) == ["IF condition in Check"]


def test_dependencies_include_credentials_and_hosts(parser) -> None:
    workflow = _workflow(parser, [{
        "type": "n8n-nodes-base.httpRequest",
        "credentials": {"httpBasicAuth": {"id": "1"}},
        "parameters": {"url": "https://api.example.com/v1/orders", "options": {"databaseName": "sales"}},
    }])

    assert parser.extract_dependencies(workflow) == [
        "n8n-nodes-base.httpRequest",
        "credential:httpBasicAuth",
        "service:api.example.com",
        "database:sales",
    ]


def test_complexity_levels(parser) -> None:
    simple = _workflow(parser, [{"type": "n8n-nodes-base.slack"}] * 3)
    with_logic = _workflow(parser, [{"type": "n8n-nodes-base.code"}] * 3)
    large = _workflow(parser, [{"type": "n8n-nodes-base.slack"}] * 16)

    assert parser.calculate_complexity(simple) == "Simple"
    assert parser.calculate_complexity(with_logic) == "Medium"
    assert parser.calculate_complexity(large) == "Complex"


def test_runtime_estimate(parser) -> None:
    assert parser.estimate_runtime(_workflow(parser, [{"type": "n8n-nodes-base.slack"}])) == "< 5 seconds"
    assert parser.estimate_runtime(_workflow(parser, [{"type": "n8n-nodes-base.wait"}])) == "> 1 minute"
    assert parser.estimate_runtime(_workflow(parser, [{"type": "n8n-nodes-base.slack"}] * 8)) == "5-10 seconds"


def test_schedules_loops_and_transformations(parser) -> None:
    workflow = _workflow(parser, [
        {"type": "n8n-nodes-base.cron", "parameters": {"rule": "0 9 * * 1"}},
        {"type": "n8n-nodes-base.function", "name": "Loop", "parameters": {"code": "for (const x of items) {}"}},
        {"type": "n8n-nodes-base.splitInBatches", "name": "Batches", "parameters": {"batchSize": 10}},
    ])

    assert parser.extract_schedules(workflow) == ["0 9 * * 1"]
    assert parser.extract_loops_and_iterations(workflow) == [
        "Loop logic in Loop",
        "Split data processing in Batches",
    ]
    assert parser.extract_data_transformations(workflow) == ["Custom function in Loop"]


@pytest.mark.parametrize("shape", [
    {"name": 42, "nodes": [{"name": "Set", "type": "n8n-nodes-base.set"}]},
    {"name": "Flow", "nodes": [{"name": 5, "type": "n8n-nodes-base.set"}]},
    {"name": "Flow", "nodes": [{"name": "Set", "type": "n8n-nodes-base.set", "parameters": []}]},
    {"name": "Flow", "nodes": [], "connections": []},
    {"name": None, "nodes": [{"type": 7, "credentials": "none"}]},
])
def test_parse_accepts_loosely_typed_fields(parser, shape) -> None:
    workflow = parser.parse_workflow_file(json.dumps(shape))

    assert workflow is not None
    assert workflow.raw()["name"] == shape["name"]


def test_extractors_tolerate_loosely_typed_fields(parser) -> None:
    workflow = parser.parse_workflow_file(json.dumps({
        "name": 42,
        "nodes": [
            {"name": 5, "type": "n8n-nodes-base.webhook", "parameters": ["path"]},
            {"name": "Check", "type": 3, "parameters": {"conditions": {}}, "credentials": ["x"]},
            {"name": True, "type": "n8n-nodes-base.slack"},
        ],
        "connections": [{"from": 5}],
    }))

    assert workflow.title is None
    assert workflow.connection_count == 1
    assert [(s.type, s.name) for s in parser.extract_nodes(workflow)] == [
        ("n8n-nodes-base.webhook", "5"),
        ("unknown", "Check"),
        ("n8n-nodes-base.slack", "true"),
    ]
    assert parser.extract_dependencies(workflow) == ["n8n-nodes-base.webhook", "n8n-nodes-base.slack"]
    assert parser.extract_triggers(workflow) == ["n8n-nodes-base.webhook"]
    assert parser.extract_webhook_urls(workflow) == []
    assert parser.extract_conditional_logic(workflow) == []
    assert parser.calculate_complexity(workflow) == "Simple"
