"""
Endpoint tests for /api/routines.

Runs the real application lifespan against the in-memory SQLite database
configured in conftest, with the service clock pinned to a fixed instant.
"""

import logging
from datetime import datetime, timezone

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from twodo.api.deps import get_routine_service
from twodo.api.schemas import ScheduleIn
from twodo.core.database import get_db_session_dependency
from twodo.domain.interfaces import FixedClock
from twodo.main import app
from twodo.services.routine_service import RoutineService

NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
ALICE = {"X-User-ID": "11111111-1111-1111-1111-111111111111", "X-Couple-ID": "couple-a"}
BOB = {"X-User-ID": "22222222-2222-2222-2222-222222222222", "X-Couple-ID": "couple-a"}
EVE = {"X-User-ID": "33333333-3333-3333-3333-333333333333", "X-Couple-ID": "couple-z"}


@pytest.fixture
def client():
    """Test client with a fresh database and a frozen service clock."""

    async def fixed_clock_service(session=Depends(get_db_session_dependency)):
        return RoutineService(session, clock=FixedClock(NOW))

    app.dependency_overrides[get_routine_service] = fixed_clock_service
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def _create(client, headers=ALICE, **overrides):
    body = {"name": "Water the plants", "schedule": {"frequency": "daily"}}
    body.update(overrides)
    response = client.post("/api/routines", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["routine"]


def _occurrences(client, routine_id, headers=ALICE, **params):
    response = client.get(
        f"/api/routines/{routine_id}/occurrences", headers=headers, params=params
    )
    assert response.status_code == 200, response.text
    return response.json()["occurrences"]


class TestIdentity:
    def test_missing_user_header(self, client):
        response = client.get("/api/routines", headers={"X-Couple-ID": "couple-a"})
        assert response.status_code == 401

    def test_missing_couple_header(self, client):
        response = client.get(
            "/api/routines", headers={"X-User-ID": ALICE["X-User-ID"]}
        )
        assert response.status_code == 401
        assert "couple" in response.json()["detail"]


class TestRoutineCrud:
    def test_create_returns_camel_case_envelope(self, client):
        response = client.post(
            "/api/routines",
            json={
                "name": "Gym",
                "description": "Leg day",
                "schedule": {"frequency": "weekly", "daysOfWeek": [1, 4], "time": "18:30"},
                "assignedToUserId": BOB["X-User-ID"],
            },
            headers=ALICE,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Routine created successfully"
        routine = data["routine"]
        assert routine["coupleId"] == "couple-a"
        assert routine["createdById"] == ALICE["X-User-ID"]
        assert routine["assignedToUserId"] == BOB["X-User-ID"]
        assert routine["isActive"] is True
        assert routine["schedule"] == {
            "frequency": "weekly",
            "daysOfWeek": [1, 4],
            "time": "18:30",
        }

    def test_create_materializes_window(self, client):
        routine = _create(client)
        occurrences = _occurrences(client, routine["id"])
        assert len(occurrences) == 31
        assert occurrences[0]["scheduledDate"] == "2024-04-09"
        assert occurrences[-1]["scheduledDate"] == "2024-03-10"

    def test_list_only_own_couple(self, client):
        mine = _create(client)
        _create(client, headers=EVE, name="Not yours")

        listed = client.get("/api/routines", headers=BOB).json()["routines"]
        assert [r["id"] for r in listed] == [mine["id"]]

    def test_get_update_delete(self, client):
        routine = _create(client)
        url = f"/api/routines/{routine['id']}"

        assert client.get(url, headers=BOB).json()["routine"]["name"] == "Water the plants"

        response = client.put(url, json={"name": "Water ALL the plants"}, headers=BOB)
        assert response.status_code == 200
        assert response.json()["message"] == "Routine updated successfully"
        assert response.json()["routine"]["name"] == "Water ALL the plants"

        response = client.delete(url, headers=ALICE)
        assert response.status_code == 200
        assert response.json() == {"message": "Routine deleted successfully"}
        assert client.get(url, headers=ALICE).status_code == 404

    def test_other_couple_gets_404(self, client):
        routine = _create(client)
        url = f"/api/routines/{routine['id']}"

        response = client.get(url, headers=EVE)
        assert response.status_code == 404
        assert response.json()["error"] == "RoutineNotFound"
        assert client.put(url, json={"name": "x"}, headers=EVE).status_code == 404
        assert client.delete(url, headers=EVE).status_code == 404
        assert client.get(f"{url}/stats", headers=EVE).status_code == 404

    def test_schedule_update_regenerates(self, client):
        routine = _create(client)
        url = f"/api/routines/{routine['id']}"

        response = client.put(
            url,
            json={"schedule": {"frequency": "monthly", "dayOfMonth": 15}},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json()["routine"]["schedule"] == {
            "frequency": "monthly",
            "dayOfMonth": 15,
        }
        dates = [o["scheduledDate"] for o in _occurrences(client, routine["id"])]
        assert dates == ["2024-03-15"]


class TestValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {"name": "", "schedule": {"frequency": "daily"}},
            {"name": "x" * 101, "schedule": {"frequency": "daily"}},
            {"name": "ok", "schedule": {"frequency": "yearly"}},
            {"name": "ok", "schedule": {"frequency": "weekly"}},
            {"name": "ok", "schedule": {"frequency": "weekly", "daysOfWeek": [7]}},
            {"name": "ok", "schedule": {"frequency": "monthly"}},
            {"name": "ok", "schedule": {"frequency": "monthly", "dayOfMonth": 32}},
            {"name": "ok", "schedule": {"frequency": "daily", "time": "25:00"}},
            {"name": "ok", "schedule": {"frequency": "daily"}, "assignedToUserId": "bob"},
        ],
    )
    def test_rejected(self, client, body):
        response = client.post("/api/routines", json=body, headers=ALICE)
        assert response.status_code == 422

    def test_rejected_request_logs_no_error(self, client, caplog):
        with caplog.at_level(logging.ERROR):
            response = client.post(
                "/api/routines",
                json={"name": "", "schedule": {"frequency": "weekly"}},
                headers=ALICE,
            )
        assert response.status_code == 422
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []

    def test_not_found_logs_no_error(self, client, caplog):
        with caplog.at_level(logging.ERROR):
            response = client.get("/api/routines/missing", headers=ALICE)
        assert response.status_code == 404
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []

    def test_schedule_accepts_field_names_and_aliases(self):
        by_alias = ScheduleIn.model_validate({"frequency": "weekly", "daysOfWeek": [2]})
        by_name = ScheduleIn(frequency="weekly", days_of_week=[2])
        assert by_alias == by_name
        assert by_name.model_dump(by_alias=True, exclude_none=True) == {
            "frequency": "weekly",
            "daysOfWeek": [2],
        }


class TestOccurrenceEndpoints:
    def test_bounded_listing(self, client):
        routine = _create(client)
        occurrences = _occurrences(
            client, routine["id"], start="2024-03-12", end="2024-03-14"
        )
        assert [o["scheduledDate"] for o in occurrences] == [
            "2024-03-14",
            "2024-03-13",
            "2024-03-12",
        ]

    def test_bounds_as_iso_timestamps(self, client):
        # Browser clients send Date.toISOString() values
        routine = _create(client)
        occurrences = _occurrences(
            client,
            routine["id"],
            start="2024-02-09T09:30:12.345Z",
            end="2024-03-12T09:30:12.345Z",
        )
        assert [o["scheduledDate"] for o in occurrences] == [
            "2024-03-12",
            "2024-03-11",
            "2024-03-10",
        ]

    def test_timestamp_bounds_use_reference_zone(self, client):
        routine = _create(client)
        # 23:30 at UTC-2 is 01:30 UTC the next day
        occurrences = _occurrences(
            client,
            routine["id"],
            start="2024-03-12T23:30:00-02:00",
            end="2024-03-13T23:30:00-02:00",
        )
        assert [o["scheduledDate"] for o in occurrences] == [
            "2024-03-14",
            "2024-03-13",
        ]

    def test_malformed_bound_rejected(self, client):
        routine = _create(client)
        response = client.get(
            f"/api/routines/{routine['id']}/occurrences",
            headers=ALICE,
            params={"start": "last tuesday"},
        )
        assert response.status_code == 422

    def test_complete_skip_uncomplete(self, client):
        routine = _create(client)
        occ = _occurrences(client, routine["id"])[-1]
        base = f"/api/routines/{routine['id']}/occurrences/{occ['id']}"

        response = client.post(f"{base}/complete", headers=BOB)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Routine occurrence completed"
        assert data["occurrence"]["completedById"] == BOB["X-User-ID"]
        assert data["occurrence"]["completedAt"] is not None
        assert data["occurrence"]["skipped"] is False

        data = client.post(f"{base}/skip", headers=ALICE).json()
        assert data["message"] == "Routine occurrence skipped"
        assert data["occurrence"]["skipped"] is True
        assert data["occurrence"]["completedAt"] is None

        data = client.post(f"{base}/uncomplete", headers=ALICE).json()
        assert data["message"] == "Routine occurrence marked as incomplete"
        assert data["occurrence"]["skipped"] is True

    def test_occurrence_of_another_routine(self, client):
        first = _create(client)
        second = _create(client, name="Feed the cat")
        occ = _occurrences(client, first["id"])[0]

        response = client.post(
            f"/api/routines/{second['id']}/occurrences/{occ['id']}/complete",
            headers=ALICE,
        )
        assert response.status_code == 404
        assert response.json()["error"] == "OccurrenceNotFound"

    def test_occurrence_of_another_couple(self, client):
        routine = _create(client)
        occ = _occurrences(client, routine["id"])[0]
        response = client.post(
            f"/api/routines/{routine['id']}/occurrences/{occ['id']}/skip",
            headers=EVE,
        )
        assert response.status_code == 404


class TestStatsEndpoint:
    def test_stats(self, client):
        routine = _create(client)
        today = _occurrences(client, routine["id"])[-1]
        client.post(
            f"/api/routines/{routine['id']}/occurrences/{today['id']}/complete",
            headers=ALICE,
        )

        response = client.get(f"/api/routines/{routine['id']}/stats", headers=ALICE)
        assert response.status_code == 200
        assert response.json() == {
            "stats": {
                "total": 31,
                "completed": 1,
                "skipped": 0,
                "completionRate": 3,
                "currentStreak": 1,
            }
        }


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    def test_request_id_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert response.json()["status"] == "running"
