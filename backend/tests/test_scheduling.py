"""Tests for route assignments (scheduling)."""

import datetime as dt

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models import ActivityLog, RouteAssignment
from coletaops.schemas.assignment import AssignmentCreate
from coletaops.services import runs, scheduling


def _body(catalog, **overrides) -> AssignmentCreate:
    fields = {
        "route_id": catalog.route.id,
        "team_id": catalog.team.id,
        "vehicle_id": catalog.vehicle.id,
        "date": dt.date(2026, 3, 2),
        "shift": "manha",
    }
    fields.update(overrides)
    return AssignmentCreate(**fields)


@pytest.mark.workflow
class TestCreateAssignment:

    async def test_create(self, db_session, admin, catalog):
        assignment = await scheduling.create_assignment(db_session, admin, _body(catalog))

        assert assignment.route.id == catalog.route.id
        assert [stop.order_index for stop in assignment.route.stops] == [0, 1]
        assert assignment.runs == []

        log = (await db_session.execute(select(ActivityLog))).scalar_one()
        assert log.action == "created"
        assert log.entity_id == assignment.id

    @pytest.mark.parametrize(
        "field, label",
        [("route_id", "Route"), ("team_id", "Team"), ("vehicle_id", "Vehicle")],
    )
    async def test_each_reference_is_checked(self, db_session, admin, catalog, field, label):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await scheduling.create_assignment(
                db_session, admin, _body(catalog, **{field: "missing"})
            )
        assert exc_info.value.message == f"{label} not found"

    async def test_other_org_reference_is_not_found(self, db_session, admin, catalog, other_catalog):
        with pytest.raises(ResourceNotFoundError):
            await scheduling.create_assignment(
                db_session, admin, _body(catalog, vehicle_id=other_catalog.vehicle.id)
            )

    async def test_overlapping_assignments_are_allowed(self, db_session, admin, catalog):
        first = await scheduling.create_assignment(db_session, admin, _body(catalog))
        second = await scheduling.create_assignment(db_session, admin, _body(catalog))
        assert first.id != second.id


@pytest.mark.workflow
class TestDeleteAssignment:

    async def test_delete_unexecuted(self, db_session, admin, assignment):
        await scheduling.delete_assignment(db_session, admin, assignment.id)
        await db_session.flush()

        remaining = await db_session.scalar(
            select(RouteAssignment.id).where(RouteAssignment.id == assignment.id)
        )
        assert remaining is None

    async def test_delete_with_run_fails(self, db_session, admin, assignment):
        await runs.start_run(db_session, admin, assignment.id)

        with pytest.raises(BusinessLogicError) as exc_info:
            await scheduling.delete_assignment(db_session, admin, assignment.id)
        assert exc_info.value.error_code == "ASSIGNMENT_HAS_RUNS"

    async def test_delete_other_org(self, db_session, other_admin, assignment):
        with pytest.raises(ResourceNotFoundError):
            await scheduling.delete_assignment(db_session, other_admin, assignment.id)


@pytest.mark.api
@pytest.mark.workflow
class TestAssignmentEndpoints:

    async def test_create_and_list(self, client: AsyncClient, manager, catalog, auth_headers):
        headers = auth_headers(manager)
        response = await client.post(
            "/api/assignments",
            json={
                "routeId": catalog.route.id,
                "teamId": catalog.team.id,
                "vehicleId": catalog.vehicle.id,
                "date": "2026-03-02",
                "shift": "tarde",
            },
            headers=headers,
        )

        assert response.status_code == 201
        created = response.json()["data"]
        assert created["shift"] == "tarde"
        assert created["team"]["name"] == "Team Alpha"
        assert len(created["route"]["stops"]) == 2

        response = await client.get(
            "/api/assignments", params={"from": "2026-03-01", "to": "2026-03-02"}, headers=headers
        )
        assert [a["id"] for a in response.json()["data"]] == [created["id"]]

        response = await client.get(
            "/api/assignments", params={"from": "2026-03-03"}, headers=headers
        )
        assert response.json()["data"] == []

    async def test_invalid_shift(self, client: AsyncClient, manager, catalog, auth_headers):
        response = await client.post(
            "/api/assignments",
            json={
                "routeId": catalog.route.id,
                "teamId": catalog.team.id,
                "vehicleId": catalog.vehicle.id,
                "date": "2026-03-02",
                "shift": "madrugada",
            },
            headers=auth_headers(manager),
        )
        assert response.status_code == 400

    async def test_delete_with_run(self, client: AsyncClient, manager, collector, assignment, auth_headers):
        response = await client.post(
            "/api/runs/start", json={"assignmentId": assignment.id}, headers=auth_headers(collector)
        )
        assert response.status_code == 201

        response = await client.delete(
            f"/api/assignments/{assignment.id}", headers=auth_headers(manager)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ASSIGNMENT_HAS_RUNS"

    async def test_delete(self, client: AsyncClient, manager, assignment, auth_headers):
        response = await client.delete(
            f"/api/assignments/{assignment.id}", headers=auth_headers(manager)
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"deleted": True}}

        response = await client.get(
            f"/api/assignments/{assignment.id}", headers=auth_headers(manager)
        )
        assert response.status_code == 404
