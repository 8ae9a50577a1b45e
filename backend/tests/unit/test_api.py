from tests.factories import intake_file, workflow_content


def _start(client, *files, tag=None):
    body = {"files": list(files), "apiKey": "sk-test"}
    if tag:
        body["importTag"] = tag
    response = client.post("/api/import", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_and_root(client) -> None:
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["health"] == "/health"


def test_full_import_flow(client) -> None:
    duplicate = workflow_content(name="Alpha")
    started = _start(
        client,
        intake_file("one.json", content=duplicate),
        intake_file("two.json", content=duplicate),
        intake_file("three.json", name="Beta"),
        tag="api-test",
    )
    assert (started["totalFiles"], started["skippedCount"]) == (2, 1)
    session_id = started["sessionId"]

    status = client.get("/api/import/status", params={"sessionId": session_id}).json()
    assert status["pendingFiles"] == 2
    assert status["isComplete"] is False

    first = client.post(f"/api/import/{session_id}/process").json()
    assert first["success"] is True
    assert first["fileName"] == "one.json"
    assert first["progress"] == {"processed": 1, "total": 2}
    assert first["workflow"]["importTags"] == "api-test"
    assert "error" not in first

    client.post(f"/api/import/{session_id}/process")
    assert client.post(f"/api/import/{session_id}/process").json() == {"completed": True}

    status = client.get("/api/import/status", params={"sessionId": session_id}).json()
    assert status["isComplete"] is True
    assert status["percent"] == 100

    workflows = client.get("/api/workflows").json()
    assert workflows["total"] == 2
    workflow_id = first["workflow"]["id"]
    detail = client.get(f"/api/workflows/{workflow_id}").json()
    assert detail["name"] == "Alpha"
    assert detail["nodeCount"] == 2


def test_failed_file_reports_error_shape(client) -> None:
    started = _start(client, intake_file("broken.json", content="{nope"))

    result = client.post(f"/api/import/{started['sessionId']}/process").json()

    assert result == {"error": True, "message": "Invalid workflow format", "fileName": "broken.json",
                      "progress": {"processed": 0, "total": 1}}


def test_intake_validation_errors(client) -> None:
    response = client.post("/api/import", json={"files": [], "apiKey": "sk-test"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing files or API key", "code": "VALIDATION_ERROR"}

    response = client.post("/api/import", json={"files": [intake_file("a.json")], "importTag": "bad tag!",
                                               "apiKey": "sk-test"})
    assert response.status_code == 400


def test_all_files_catalogued(client) -> None:
    started = _start(client, intake_file("a.json", name="Alpha"))
    while "completed" not in client.post(f"/api/import/{started['sessionId']}/process").json():
        pass

    response = client.post("/api/import", json={"files": [intake_file("a.json", name="Alpha")], "apiKey": "k"})

    assert response.status_code == 400
    assert response.json()["code"] == "ALL_FILES_CATALOGUED"
    assert response.json()["skippedCount"] == 1


def test_status_without_active_session_is_null(client) -> None:
    response = client.get("/api/import/status")

    assert response.status_code == 200
    assert response.json() is None


def test_active_session_and_detail(client) -> None:
    assert client.get("/api/import/active").json() is None
    started = _start(client, intake_file("a.json"), intake_file("b.json", name="Other"))

    active = client.get("/api/import/active").json()
    detail = client.get(f"/api/import/{started['sessionId']}").json()

    assert active["id"] == started["sessionId"]
    assert detail["pendingCount"] == 2
    assert detail["status"] == "active"
    assert "api_key" not in detail and "apiKey" not in detail


def test_unknown_session(client) -> None:
    assert client.get("/api/import/missing").status_code == 404

    response = client.post("/api/import/missing/process")
    assert response.status_code == 400
    assert response.json() == {"error": "Session not active", "code": "INVALID_STATE", "sessionId": "missing"}


def test_cancel_and_resume(client) -> None:
    started = _start(client, intake_file("a.json"), intake_file("b.json", name="Other"))
    session_id = started["sessionId"]

    resumed = client.post(f"/api/import/{session_id}/resume").json()
    assert resumed == {"success": True, "requeued": 0}

    cancelled = client.post(f"/api/import/{session_id}/cancel").json()
    assert cancelled["success"] is True
    assert cancelled["cancelledItems"] == 2

    again = client.post(f"/api/import/{session_id}/cancel")
    assert again.status_code == 400
    assert client.post(f"/api/import/{session_id}/process").status_code == 400
    assert client.post(f"/api/import/{session_id}/resume").status_code == 400


def test_purge_finished_sessions(client) -> None:
    started = _start(client, intake_file("a.json"))
    client.post(f"/api/import/{started['sessionId']}/cancel")

    response = client.delete("/api/import/sessions/finished").json()

    assert response == {"success": True, "deletedSessions": 1}
    assert client.get(f"/api/import/{started['sessionId']}").status_code == 404


def test_upload_endpoint(client) -> None:
    content = workflow_content(name="Uploaded")
    response = client.post(
        "/api/import/upload",
        files=[("files", ("uploaded.json", content.encode("utf-8"), "application/json"))],
        data={"apiKey": "sk-test", "importTag": "uploads"},
    )

    assert response.status_code == 201, response.text
    assert response.json()["totalFiles"] == 1


def test_upload_rejects_other_extensions(client) -> None:
    response = client.post(
        "/api/import/upload",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
        data={"apiKey": "sk-test"},
    )

    assert response.status_code == 400


def test_cleanup_endpoints(client) -> None:
    started = _start(client, intake_file("a.json", name="Alpha"), intake_file("b.json", name="Beta"), tag="old")
    while "completed" not in client.post(f"/api/import/{started['sessionId']}/process").json():
        pass

    info = client.get("/api/cleanup").json()
    assert info == {"tags": [{"tag": "old", "count": 2}], "totalWorkflows": 2}

    fixed = client.post("/api/fix-duplicates").json()
    assert fixed["fixedCount"] == 0

    deleted = client.post("/api/cleanup", json={"action": "delete-by-tag", "tag": "old"}).json()
    assert deleted["deletedCount"] == 2

    missing_tag = client.post("/api/cleanup", json={"action": "delete-by-tag"})
    assert missing_tag.status_code == 400

    unknown = client.post("/api/cleanup", json={"action": "explode"})
    assert unknown.status_code == 422

    cleared = client.post("/api/cleanup", json={"action": "clear-all"}).json()
    assert cleared["success"] is True


def _import_all(client, *files, tag=None):
    started = _start(client, *files, tag=tag)
    while "completed" not in client.post(f"/api/import/{started['sessionId']}/process").json():
        pass
    return started


def test_workflow_search_and_pagination(client) -> None:
    plain = ("n8n-nodes-base.manualTrigger", "n8n-nodes-base.set")
    _import_all(
        client,
        intake_file("a.json", name="Slack alerts", node_types=plain),
        intake_file("b.json", name="Slack", node_types=plain),
        intake_file("c.json", name="Invoices", node_types=plain),
    )

    found = client.get("/api/workflows", params={"search": "slack"}).json()
    assert found["total"] == 2
    assert [w["name"] for w in found["workflows"]] == ["Slack", "Slack alerts"]

    page = client.get("/api/workflows", params={"search": "slack", "limit": 1, "offset": 1}).json()
    assert page["total"] == 2
    assert [w["name"] for w in page["workflows"]] == ["Slack alerts"]


def test_workflow_raw_export(client) -> None:
    content = workflow_content(name="Exported")
    _import_all(client, intake_file("e.json", content=content))
    workflow_id = client.get("/api/workflows").json()["workflows"][0]["id"]

    raw = client.get(f"/api/workflows/{workflow_id}", params={"format": "n8n"}).json()

    assert raw["name"] == "Exported"
    assert [node["type"] for node in raw["nodes"]] == ["n8n-nodes-base.manualTrigger", "n8n-nodes-base.slack"]
    assert client.get("/api/workflows/missing", params={"format": "n8n"}).status_code == 404
    assert client.get(f"/api/workflows/{workflow_id}", params={"format": "xml"}).status_code == 422


def test_delete_workflow(client) -> None:
    _import_all(client, intake_file("a.json", name="Alpha"))
    workflow_id = client.get("/api/workflows").json()["workflows"][0]["id"]

    response = client.delete(f"/api/workflows/{workflow_id}")

    assert response.json() == {"success": True, "id": workflow_id}
    assert client.get(f"/api/workflows/{workflow_id}").status_code == 404
    assert client.delete(f"/api/workflows/{workflow_id}").status_code == 404


def test_database_stats(client) -> None:
    _import_all(client, intake_file("a.json", name="Alpha"), intake_file("b.json", name="Beta"), tag="stats")

    stats = client.get("/api/database/stats").json()

    assert stats["totalWorkflows"] == 2
    assert stats["totalSessions"] == 1
    assert stats["totalQueueItems"] == 2
    assert stats["uniqueTags"] == 1
    assert stats["categories"]


def test_session_listing_and_status_breakdown(client) -> None:
    first = _start(client, intake_file("a.json", name="Alpha"), intake_file("b.json", name="Beta"))
    client.post(f"/api/import/{first['sessionId']}/process")
    client.post(f"/api/import/{first['sessionId']}/cancel")
    second = _start(client, intake_file("c.json", name="Gamma"))

    listed = client.get("/api/import/sessions").json()
    active = client.get("/api/import/sessions", params={"status": "active"}).json()
    detail = client.get(f"/api/import/{first['sessionId']}").json()

    assert [s["id"] for s in listed] == [second["sessionId"], first["sessionId"]]
    assert [s["id"] for s in active] == [second["sessionId"]]
    assert detail["statusCounts"] == {
        "pending": 0, "processing": 0, "completed": 1, "failed": 0, "cancelled": 1,
    }
    assert detail["pendingCount"] == 0
