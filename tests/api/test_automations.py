"""Automation API tests. The service runs over in-memory repositories (no DB)."""

from httpx import AsyncClient

from tests.fakes import STORE_ID, Engine, enrollment, workflow

WELCOME = {
    "name": "Welcome series",
    "triggerType": "customer_created",
    "steps": [
        {"type": "send_email", "config": {"templateId": "welcome_1"}},
        {"type": "delay", "config": {"value": 3, "unit": "days"}},
        {"type": "send_email", "config": {"templateId": "welcome_2"}},
    ],
}


async def test_missing_store_header_returns_400(client: AsyncClient, engine: Engine) -> None:
    response = await client.get("/api/v1/automations")
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_catalog_endpoints(client: AsyncClient) -> None:
    triggers = await client.get("/api/v1/automations/triggers")
    steps = await client.get("/api/v1/automations/steps")
    assert triggers.status_code == 200
    assert len(triggers.json()) == 15
    assert "category" not in triggers.json()[0]
    assert {"id": "exit", "name": "Exit", "value": "exit", "category": "flow_control"} in steps.json()


async def test_create_and_get_workflow(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    created = await client.post("/api/v1/automations", json=WELCOME, headers=store_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "draft"
    assert body["triggerType"] == "customer_created"
    assert body["storeId"] == STORE_ID

    fetched = await client.get(f"/api/v1/automations/{body['id']}", headers=store_headers)
    assert fetched.status_code == 200
    assert fetched.json()["steps"][0] == {"type": "send_email", "config": {"templateId": "welcome_1"}}


async def test_create_with_invalid_step_returns_400(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    payload = {**WELCOME, "steps": [{"type": "send_email", "config": {}}]}
    response = await client.post("/api/v1/automations", json=payload, headers=store_headers)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "steps[0].config.templateId"


async def test_create_with_unknown_trigger_returns_422(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    payload = {**WELCOME, "triggerType": "moon_phase"}
    response = await client.post("/api/v1/automations", json=payload, headers=store_headers)
    assert response.status_code == 422


async def test_unknown_workflow_returns_404(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    response = await client.get("/api/v1/automations/missing", headers=store_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "RESOURCE_NOT_FOUND"


async def test_activate_pause_and_edit_conflict(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    wf_id = (
        await client.post("/api/v1/automations", json=WELCOME, headers=store_headers)
    ).json()["id"]

    activated = await client.post(f"/api/v1/automations/{wf_id}/activate", headers=store_headers)
    assert activated.status_code == 200
    assert activated.json()["status"] == "active"
    assert activated.json()["activatedAt"] is not None

    conflict = await client.put(
        f"/api/v1/automations/{wf_id}",
        json={"steps": [{"type": "exit"}]},
        headers=store_headers,
    )
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "WORKFLOW_STATE_CONFLICT"

    paused = await client.post(f"/api/v1/automations/{wf_id}/pause", headers=store_headers)
    assert paused.json()["status"] == "paused"

    edited = await client.put(
        f"/api/v1/automations/{wf_id}",
        json={"steps": [{"type": "exit"}]},
        headers=store_headers,
    )
    assert edited.status_code == 200
    assert edited.json()["steps"] == [{"type": "exit", "config": {}}]


async def test_put_with_explicit_null_clears_optional_fields(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    payload = {
        **WELCOME,
        "description": "Three-touch onboarding",
        "triggerConfig": {
            "conditions": [{"field": "source", "operator": "equals", "value": "pos"}]
        },
    }
    wf_id = (
        await client.post("/api/v1/automations", json=payload, headers=store_headers)
    ).json()["id"]

    renamed = await client.put(
        f"/api/v1/automations/{wf_id}", json={"name": "Onboarding"}, headers=store_headers
    )
    assert renamed.json()["description"] == "Three-touch onboarding"
    assert renamed.json()["triggerConfig"] == payload["triggerConfig"]

    cleared = await client.put(
        f"/api/v1/automations/{wf_id}",
        json={"description": None, "triggerConfig": None},
        headers=store_headers,
    )
    assert cleared.status_code == 200
    assert cleared.json()["description"] is None
    assert cleared.json()["triggerConfig"] == {}
    assert cleared.json()["name"] == "Onboarding"


async def test_activate_empty_workflow_returns_409(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    payload = {**WELCOME, "steps": []}
    wf_id = (
        await client.post("/api/v1/automations", json=payload, headers=store_headers)
    ).json()["id"]
    response = await client.post(f"/api/v1/automations/{wf_id}/activate", headers=store_headers)
    assert response.status_code == 409


async def test_trigger_then_process(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    wf = engine.workflows.add(
        workflow([{"type": "add_tag", "config": {"tags": ["new"]}}, {"type": "exit"}])
    )

    triggered = await client.post(
        "/api/v1/automations/trigger",
        json={"triggerType": "customer_created", "triggerData": {"customerId": "c1"}},
        headers=store_headers,
    )
    assert triggered.status_code == 200
    assert triggered.json() == {"enrolled": 1}

    processed = await client.post("/api/v1/automations/jobs/process", headers=store_headers)
    assert processed.json() == {"processed": 1, "errors": 0, "skipped": 0}

    logs = await client.get(f"/api/v1/automations/{wf.id}/logs", headers=store_headers)
    [log] = logs.json()
    assert log["stepType"] == "add_tag"
    assert log["status"] == "success"
    assert log["metadata"] == {"tagsAdded": ["new"]}

    stats = await client.get(f"/api/v1/automations/{wf.id}/stats", headers=store_headers)
    assert stats.json()["totalEnrolled"] == 1
    assert stats.json()["stepsSucceeded"] == 1


async def test_manual_enroll_and_duplicate(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    wf = engine.workflows.add(workflow([{"type": "exit"}], trigger_type="manual"))
    url = f"/api/v1/automations/{wf.id}/enroll"

    first = await client.post(url, json={"customerId": "c1"}, headers=store_headers)
    assert first.status_code == 201
    assert first.json()["currentStep"] == 0
    assert first.json()["triggerData"] == {"customerId": "c1"}

    second = await client.post(url, json={"customerId": "c1"}, headers=store_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "ALREADY_ENROLLED"


async def test_delete_workflow_exits_enrollments(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    wf = engine.workflows.add(workflow([{"type": "exit"}]))
    enr = engine.enrollments.add(enrollment(wf.id))

    response = await client.delete(f"/api/v1/automations/{wf.id}", headers=store_headers)

    assert response.status_code == 204
    assert engine.enrollments.enrollments[enr.id].exit_reason == "Workflow deleted"
    listed = await client.get("/api/v1/automations", headers=store_headers)
    assert listed.json() == []


async def test_list_filters_by_status(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    engine.workflows.add(workflow([{"type": "exit"}], status="active", name="A"))
    engine.workflows.add(workflow([{"type": "exit"}], status="draft", name="B"))

    response = await client.get(
        "/api/v1/automations", params={"status": "draft"}, headers=store_headers
    )

    assert [w["name"] for w in response.json()] == ["B"]


async def test_abandoned_cart_job(
    client: AsyncClient, engine: Engine, store_headers: dict[str, str]
) -> None:
    response = await client.post(
        "/api/v1/automations/jobs/abandoned-carts", headers=store_headers
    )
    assert response.status_code == 200
    assert response.json() == {"triggered": 0, "errors": 0}
