"""Tests for the grading service FastAPI app."""

import pytest
from httpx import ASGITransport, AsyncClient

from services.grading.app import app


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_openapi_ok() -> None:
    """OpenAPI schema endpoint should respond with HTTP 200."""
    async with _client() as ac:
        r = await ac.get("/openapi.json")
    if r.status_code != 200:
        pytest.fail(f"Expected 200, got {r.status_code}")


@pytest.mark.asyncio
async def test_evaluate_echoes_request_id() -> None:
    body = {"question": {"id": "q1", "type": "multiple-choice", "points": 10, "correct_answer": "B"}, "answer": "B"}
    async with _client() as ac:
        r = await ac.post("/grading/evaluate", json=body, headers={"X-Request-ID": "rid-1"})
    assert r.status_code == 200
    assert r.json()["points_earned"] == 10
    assert r.headers["X-Request-ID"] == "rid-1"


@pytest.mark.asyncio
async def test_grade_and_compose() -> None:
    questions = [
        {"id": "q1", "type": "true-false", "points": 4, "correct_answer": True},
        {"id": "q2", "type": "matching", "points": 8,
         "correct_matches": [{"left_id": str(i), "right_id": str(i)} for i in range(4)]},
    ]
    answers = [True, [{"left_id": "0", "right_id": "0"}, {"left_id": "1", "right_id": "1"}]]
    async with _client() as ac:
        g = await ac.post("/grading/grade", json={"questions": questions, "answers": answers})
        c = await ac.post(
            "/grading/compose",
            json={
                "raw_auto_score": 80,
                "submitted_at": "2024-03-11T10:00:00",
                "due_date": "2024-03-10T10:00:00",
                "late_policy": {"per_day_penalty_percent": 10, "max_late_days": 3},
                "total_points": 100,
            },
        )
    assert g.json()["percentage"] == 67  # 8 / 12
    assert c.json()["percentage"] == 72


@pytest.mark.asyncio
async def test_configuration_error_maps_to_422() -> None:
    async with _client() as ac:
        r = await ac.post(
            "/grading/compose",
            json={"raw_auto_score": 1, "submitted_at": "2024-01-01T00:00:00",
                  "due_date": "2024-01-01T00:00:00", "total_points": 0},
        )
        bad_q = await ac.post("/grading/evaluate", json={"question": {"id": "x", "type": "nope"}, "answer": 1})
    assert r.status_code == 422
    assert r.json()["error"] == "ConfigurationError"
    assert bad_q.status_code == 422


@pytest.mark.asyncio
async def test_placement_assign() -> None:
    async with _client() as ac:
        r = await ac.post("/placement/assign", json={"percentage_score": 55})
    assert r.json()["assigned_level"] == "intermediate"


@pytest.mark.asyncio
async def test_streak_routes() -> None:
    async with _client() as ac:
        first = await ac.post("/streaks/api-user/activity", json={"day": "2024-06-01"})
        second = await ac.post("/streaks/api-user/activity", json={"day": "2024-06-02"})
        state = await ac.get("/streaks/api-user")
    assert first.json()["state"]["current_streak"] == 1
    assert second.json()["state"]["current_streak"] == 2
    assert state.json()["longest_streak"] == 2


@pytest.mark.asyncio
async def test_compose_accepts_mixed_timezone_timestamps() -> None:
    body = {
        "raw_auto_score": 80,
        "submitted_at": "2024-03-11T10:00:00+00:00",
        "due_date": "2024-03-10T10:00:00",
        "late_policy": {"per_day_penalty_percent": 10, "max_late_days": 3},
        "total_points": 100,
    }
    async with _client() as ac:
        r = await ac.post("/grading/compose", json=body)
    assert r.status_code == 200
    assert r.json()["days_late"] == 1
    assert r.json()["percentage"] == 72
