"""Integration tests for the plans API."""

import pytest

SESSION_ID = "ses_0192f0c3a1b2AbCdEfGhIjKlMn"


async def _create_draft(async_client, goal: str = "Ship feature X") -> dict:
    response = await async_client.post(
        "/api/v1/plans", json={"session_id": SESSION_ID, "goal": goal}
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_draft_lifecycle(async_client):
    """Build a draft step by step, submit and approve it."""
    plan_id = (await _create_draft(async_client))["plan_id"]

    response = await async_client.post(
        f"/api/v1/plans/{plan_id}/steps",
        json={"step": {"description": "Write code", "agent": "coder"}},
    )
    assert response.status_code == 200
    assert len(response.json()["steps"]) == 1

    for field in ("assumptions", "verification", "risks", "files"):
        response = await async_client.put(
            f"/api/v1/plans/{plan_id}/{field}", json={"items": [f"{field} item"]}
        )
        assert response.status_code == 200

    response = await async_client.post(
        f"/api/v1/plans/{plan_id}/submit", json={"summary": "One step"}
    )
    assert response.status_code == 200
    assert response.json()["stage"] == "proposal"
    assert response.json()["files_touched"] == ["files item"]

    response = await async_client.post(f"/api/v1/plans/{plan_id}/approve")
    assert response.status_code == 200
    assert response.json()["stage"] == "approved"


@pytest.mark.asyncio
async def test_submit_incomplete_draft_returns_400(async_client):
    plan_id = (await _create_draft(async_client))["plan_id"]

    response = await async_client.post(f"/api/v1/plans/{plan_id}/submit")

    assert response.status_code == 400
    assert "must not be empty" in response.json()["detail"]
    assert (await async_client.get(f"/api/v1/plans/{plan_id}")).json()["stage"] == "draft"


@pytest.mark.asyncio
async def test_create_proposal_and_reject(async_client, plan_body):
    response = await async_client.post("/api/v1/plans/proposals", json=plan_body)
    assert response.status_code == 201
    plan = response.json()
    assert plan["stage"] == "proposal"
    assert plan["planner_session_id"] == SESSION_ID

    response = await async_client.post(
        f"/api/v1/plans/{plan['plan_id']}/reject", json={"reason": "Too broad"}
    )
    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "Too broad"

    response = await async_client.post(f"/api/v1/plans/{plan['plan_id']}/approve")
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot approve plan in stage: rejected"


@pytest.mark.asyncio
async def test_create_proposal_requires_steps(async_client, plan_body):
    plan_body["steps"] = []

    response = await async_client.post("/api/v1/plans/proposals", json=plan_body)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_revise_proposal(async_client, plan_body):
    plan_id = (await async_client.post("/api/v1/plans/proposals", json=plan_body)).json()["plan_id"]
    revised = {key: value for key, value in plan_body.items() if key != "session_id"}
    revised["goal"] = "Ship feature Y"

    response = await async_client.put(f"/api/v1/plans/{plan_id}", json=revised)

    assert response.status_code == 200
    assert response.json()["goal"] == "Ship feature Y"
    assert response.json()["stage"] == "proposal"


@pytest.mark.asyncio
async def test_edit_steps(async_client):
    plan_id = (await _create_draft(async_client))["plan_id"]
    await async_client.post(
        f"/api/v1/plans/{plan_id}/steps",
        json={"step": {"description": "Second", "agent": "coder"}},
    )
    await async_client.post(
        f"/api/v1/plans/{plan_id}/steps",
        json={"step": {"description": "First", "agent": "coder"}, "position": 0},
    )

    response = await async_client.patch(
        f"/api/v1/plans/{plan_id}/steps/1", json={"agent": "tester"}
    )
    assert response.status_code == 200
    assert [(s["description"], s["agent"]) for s in response.json()["steps"]] == [
        ("First", "coder"),
        ("Second", "tester"),
    ]

    response = await async_client.delete(f"/api/v1/plans/{plan_id}/steps/0")
    assert response.status_code == 200
    assert [s["description"] for s in response.json()["steps"]] == ["Second"]

    response = await async_client.delete(f"/api/v1/plans/{plan_id}/steps/5")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_editing_proposal_returns_409(async_client, plan_body):
    plan_id = (await async_client.post("/api/v1/plans/proposals", json=plan_body)).json()["plan_id"]

    response = await async_client.put(f"/api/v1/plans/{plan_id}/risks", json={"items": ["x"]})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_get_and_delete(async_client, plan_body):
    first = await _create_draft(async_client, "First")
    second = (await async_client.post("/api/v1/plans/proposals", json=plan_body)).json()

    response = await async_client.get("/api/v1/plans")
    assert response.status_code == 200
    plans = response.json()["plans"]
    assert [p["plan_id"] for p in plans] == [second["plan_id"], first["plan_id"]]
    assert plans[0]["step_count"] == 2
    assert plans[0]["has_executions"] is False

    response = await async_client.delete(f"/api/v1/plans/{first['plan_id']}")
    assert response.status_code == 204

    response = await async_client.get(f"/api/v1/plans/{first['plan_id']}")
    assert response.status_code == 404
    assert response.json()["detail"] == f"Plan not found: {first['plan_id']}"


@pytest.mark.asyncio
async def test_delete_missing_plan_returns_404(async_client):
    response = await async_client.delete("/api/v1/plans/plan_missing")

    assert response.status_code == 404
