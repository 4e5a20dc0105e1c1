"""Cross-organization isolation.

Every entity lookup is scoped to the caller's organization; another
organization's rows answer 404, never 403, so their existence is not
revealed.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from coletaops.models import EventStatus
from coletaops.schemas.sorting import SortedItemCreate
from coletaops.schemas.stock import LotCreate
from coletaops.services import runs, sorting, stock

pytestmark = [pytest.mark.api, pytest.mark.auth]


@pytest_asyncio.fixture
async def org_records(db_session, collector, sorter, storekeeper, assignment, catalog) -> dict:
    """A finished run, a closed batch and a manual lot owned by the first organization."""
    run = await runs.start_run(db_session, collector, assignment.id)
    for stop in catalog.stops:
        await runs.arrive(db_session, collector, run.id, stop.id)
        await runs.close_stop(db_session, collector, run.id, stop.id, EventStatus.COLETADO)
    await runs.finish_run(db_session, collector, run.id)

    batch = await sorting.create_batch(db_session, sorter, run.id)
    await sorting.add_item(
        db_session, sorter, batch.id, SortedItemCreate(material_type_id=catalog.pet.id, weight_kg=5)
    )
    await sorting.close_batch(db_session, sorter, batch.id)

    lot = await stock.create_lot(
        db_session, storekeeper, LotCreate(material_type_id=catalog.paper.id, total_kg=20)
    )
    await db_session.commit()
    return {"run": run.id, "batch": batch.id, "lot": lot.id, "assignment": assignment.id}


class TestForeignRecordsAreNotFound:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/runs/{run}",
            "/api/assignments/{assignment}",
            "/api/sorting-batches/{batch}",
            "/api/stock/lots/{lot}",
            "/api/stock/lots/{lot}/qr",
        ],
    )
    async def test_get(self, client: AsyncClient, other_admin, org_records, auth_headers, path):
        response = await client.get(path.format(**org_records), headers=auth_headers(other_admin))

        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    async def test_owner_sees_them(self, client: AsyncClient, admin, org_records, auth_headers):
        headers = auth_headers(admin)
        for path in ("/api/runs/{run}", "/api/sorting-batches/{batch}", "/api/stock/lots/{lot}"):
            response = await client.get(path.format(**org_records), headers=headers)
            assert response.status_code == 200

    async def test_workflow_operations(self, client: AsyncClient, other_admin, org_records, catalog, auth_headers):
        headers = auth_headers(other_admin)

        response = await client.post(
            "/api/runs/start", json={"assignmentId": org_records["assignment"]}, headers=headers
        )
        assert response.status_code == 404

        response = await client.post(
            f"/api/runs/{org_records['run']}/stops/{catalog.stops[0].id}/arrive", headers=headers
        )
        assert response.status_code == 404

        response = await client.post(
            "/api/stock/movements",
            json={"lotId": org_records["lot"], "type": "OUT", "quantityKg": 1},
            headers=headers,
        )
        assert response.status_code == 404

        response = await client.delete(f"/api/assignments/{org_records['assignment']}", headers=headers)
        assert response.status_code == 404


class TestListsAreScoped:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/runs",
            "/api/assignments",
            "/api/sorting-batches",
            "/api/stock/lots",
            "/api/stock/movements",
            "/api/material-types",
            "/api/routes",
            "/api/teams",
            "/api/vehicles",
            "/api/destinations",
        ],
    )
    async def test_other_org_lists_are_empty(
        self, client: AsyncClient, other_admin, org_records, auth_headers, path
    ):
        response = await client.get(path, headers=auth_headers(other_admin))

        assert response.status_code == 200
        assert response.json()["data"] == []

    async def test_report_is_scoped(self, client: AsyncClient, other_admin, org_records, auth_headers):
        response = await client.get("/api/reports/summary", headers=auth_headers(other_admin))

        data = response.json()["data"]
        assert data["collection"]["totalRuns"] == 0
        assert data["stock"]["totalAvailableKg"] == 0
        assert data["recentMovements"] == []

    async def test_stock_summary_is_scoped(self, client: AsyncClient, other_admin, org_records, auth_headers):
        response = await client.get("/api/stock/summary", headers=auth_headers(other_admin))

        data = response.json()["data"]
        assert data["byMaterial"] == []
        assert data["totals"]["lotsCount"] == 0
