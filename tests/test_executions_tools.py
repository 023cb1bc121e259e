from __future__ import annotations

from typing import Any, Dict

import pytest

from conftest import StubApi
from mcp_server.registry import ToolRegistry


EXEC_ID = "3f2b8c1e-5d4a-4b7e-9c0f-1a2b3c4d5e6f"
SKILL_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"


def make_execution(**overrides: Any) -> Dict[str, Any]:
    execution: Dict[str, Any] = {
        "id": EXEC_ID,
        "skillId": SKILL_ID,
        "status": "completed",
        "trigger": "manual",
        "input": {"q": "hi"},
        "output": {"answer": "hello"},
        "trace": [{"step": 1, "log": "started"}],
        "error": None,
        "startedAt": "2024-05-01T10:00:00Z",
        "completedAt": "2024-05-01T10:00:02Z",
        "durationMs": 2000,
        "tokenCount": 120,
        "costUsd": "0.0012",
        "reportedToCore": True,
    }
    execution.update(overrides)
    return execution


class TestListExecutions:
    @pytest.mark.asyncio
    async def test_projects_summary_fields_and_flattens_meta(
        self, registry: ToolRegistry, stub_api: StubApi
    ) -> None:
        stub_api.add(
            "GET",
            "/executions",
            json={
                "success": True,
                "data": [make_execution()],
                "meta": {"total": 11, "page": 2, "limit": 10, "totalPages": 2, "hasMore": False},
            },
        )

        result = await registry.call(
            "alfred_list_executions",
            {"skillId": SKILL_ID, "status": "completed", "startDate": "2024-05-01T00:00:00Z", "limit": 10},
        )

        assert result["count"] == 1
        assert (result["total"], result["page"], result["limit"]) == (11, 2, 10)
        assert (result["totalPages"], result["hasMore"]) == (2, False)
        summary = result["executions"][0]
        assert set(summary) == {
            "id",
            "skillId",
            "status",
            "trigger",
            "startedAt",
            "completedAt",
            "durationMs",
            "error",
        }
        assert dict(stub_api.last.url.params) == {
            "skillId": SKILL_ID,
            "status": "completed",
            "startDate": "2024-05-01T00:00:00Z",
            "limit": "10",
            "offset": "0",
        }

    @pytest.mark.asyncio
    async def test_without_meta(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        stub_api.add("GET", "/executions", json={"success": True, "data": []})

        result = await registry.call("alfred_list_executions", {})

        assert result == {
            "success": True,
            "count": 0,
            "total": 0,
            "page": 1,
            "limit": 50,
            "totalPages": 0,
            "hasMore": False,
            "executions": [],
        }

    @pytest.mark.asyncio
    async def test_odd_row_does_not_fail_the_page(
        self, registry: ToolRegistry, stub_api: StubApi
    ) -> None:
        rows = [make_execution(), make_execution(id="second", durationMs=12.5), "garbage"]
        stub_api.add(
            "GET", "/executions", json={"success": True, "data": rows, "meta": {"total": 2}}
        )

        result = await registry.call("alfred_list_executions", {"limit": 20})

        assert result["success"] is True
        assert result["count"] == 2
        assert result["executions"][1]["id"] == "second"
        assert result["executions"][1]["durationMs"] == 12.5
        assert (result["total"], result["page"], result["limit"]) == (2, 1, 20)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments",
        [
            {"skillId": "not-a-uuid"},
            {"limit": 101},
            {"limit": 0},
            {"status": "pending"},
            {"startDate": "2024-05-01"},
            {"endDate": "yesterday"},
        ],
    )
    async def test_rejects_invalid_filters(
        self, registry: ToolRegistry, stub_api: StubApi, arguments: Dict[str, Any]
    ) -> None:
        result = await registry.call("alfred_list_executions", arguments)

        assert result["success"] is False
        assert stub_api.requests == []


class TestSingleExecution:
    @pytest.mark.asyncio
    async def test_get_execution_omits_trace(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        stub_api.add("GET", f"/executions/{EXEC_ID}", json={"success": True, "data": make_execution()})

        result = await registry.call("alfred_get_execution", {"executionId": EXEC_ID})

        execution = result["execution"]
        assert "trace" not in execution
        assert execution["output"] == {"answer": "hello"}
        assert execution["costUsd"] == "0.0012"
        assert execution["reportedToCore"] is True

    @pytest.mark.asyncio
    async def test_get_execution_rejects_bad_id(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        result = await registry.call("alfred_get_execution", {"executionId": "123"})

        assert result["success"] is False
        assert result["details"][0]["field"] == "executionId"
        assert stub_api.requests == []

    @pytest.mark.asyncio
    async def test_trace(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        trace = [{"step": 1, "log": "started"}, {"step": 2, "log": "done"}]
        stub_api.add("GET", f"/executions/{EXEC_ID}/trace", json={"success": True, "data": trace})

        result = await registry.call("alfred_get_execution_trace", {"executionId": EXEC_ID})

        assert result == {"success": True, "executionId": EXEC_ID, "trace": trace}

    @pytest.mark.asyncio
    async def test_unknown_status_passed_through(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        stub_api.add(
            "GET",
            f"/executions/{EXEC_ID}",
            json={"success": True, "data": make_execution(status="paused")},
        )

        result = await registry.call("alfred_get_execution", {"executionId": EXEC_ID})

        assert result["success"] is True
        assert result["execution"]["status"] == "paused"

    @pytest.mark.asyncio
    async def test_get_without_object_body(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        stub_api.add("GET", f"/executions/{EXEC_ID}", json={"success": True, "data": None})

        result = await registry.call("alfred_get_execution", {"executionId": EXEC_ID})

        assert result == {"success": False, "error": "Execution not found"}

    @pytest.mark.asyncio
    async def test_delete(self, registry: ToolRegistry, stub_api: StubApi) -> None:
        stub_api.add("DELETE", f"/executions/{EXEC_ID}", json={"success": True, "data": make_execution()})

        result = await registry.call("alfred_delete_execution", {"executionId": EXEC_ID})

        assert result["message"] == f"Execution {EXEC_ID} deleted successfully"
        assert result["execution"] == {
            "id": EXEC_ID,
            "skillId": SKILL_ID,
            "status": "completed",
            "startedAt": "2024-05-01T10:00:00Z",
            "completedAt": "2024-05-01T10:00:02Z",
        }

    @pytest.mark.asyncio
    async def test_delete_with_odd_body_still_confirms(
        self, registry: ToolRegistry, stub_api: StubApi
    ) -> None:
        stub_api.add(
            "DELETE",
            f"/executions/{EXEC_ID}",
            json={"success": True, "data": make_execution(status="archived", durationMs="slow")},
        )

        result = await registry.call("alfred_delete_execution", {"executionId": EXEC_ID})

        assert result["success"] is True
        assert result["execution"]["id"] == EXEC_ID
        assert result["execution"]["status"] == "archived"


@pytest.mark.asyncio
async def test_stats_fill_defaults(registry: ToolRegistry, stub_api: StubApi) -> None:
    stub_api.add(
        "GET",
        "/executions/stats",
        json={
            "success": True,
            "data": {
                "overview": {"total": 4, "successful": 3, "failed": 1, "successRate": 75.0},
                "bySkill": [{"skillId": SKILL_ID, "skillName": "Digest", "count": 4, "successCount": 3}],
                "byDay": [{"date": "2024-05-01", "count": 4, "successful": 3, "failed": 1}],
            },
        },
    )

    result = await registry.call("alfred_get_execution_stats", {"skillId": SKILL_ID})

    stats = result["stats"]
    assert stats["overview"]["successRate"] == 75.0
    assert stats["overview"]["running"] == 0
    assert stats["overview"]["totalCostUsd"] == "0"
    assert stats["bySkill"][0]["skillName"] == "Digest"
    assert stats["byDay"][0]["date"] == "2024-05-01"
    assert dict(stub_api.last.url.params) == {"skillId": SKILL_ID}
