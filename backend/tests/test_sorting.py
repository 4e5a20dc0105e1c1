"""Tests for sorting batches and their conversion into stock lots."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from coletaops.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from coletaops.models import (
    EventStatus,
    MovementType,
    QualityGrade,
    SortingBatch,
    StockLot,
    StockMovement,
)
from coletaops.schemas.sorting import SortedItemCreate
from coletaops.services import runs, sorting


@pytest.fixture
def finished_run(db_session, collector, assignment, catalog):
    """Factory: run the assignment to completion and return the run."""

    async def _finish():
        run = await runs.start_run(db_session, collector, assignment.id)
        for stop in catalog.stops:
            await runs.arrive(db_session, collector, run.id, stop.id)
            await runs.close_stop(db_session, collector, run.id, stop.id, EventStatus.COLETADO)
        return await runs.finish_run(db_session, collector, run.id)

    return _finish


def _item(material, weight, grade=QualityGrade.B, **extra) -> SortedItemCreate:
    return SortedItemCreate(material_type_id=material.id, weight_kg=weight, quality_grade=grade, **extra)


@pytest.mark.workflow
class TestCreateBatch:

    async def test_requires_finished_run(self, db_session, collector, sorter, assignment):
        run = await runs.start_run(db_session, collector, assignment.id)

        with pytest.raises(BusinessLogicError, match="must be finished"):
            await sorting.create_batch(db_session, sorter, run.id)

    async def test_one_open_batch_per_run(self, db_session, sorter, finished_run):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id, notes="Morning shift")

        assert batch.is_closed is False
        assert batch.sorted_by == sorter.id
        with pytest.raises(BusinessLogicError) as exc_info:
            await sorting.create_batch(db_session, sorter, run.id)
        assert exc_info.value.error_code == "BATCH_ALREADY_OPEN"

    async def test_new_batch_after_close(self, db_session, sorter, finished_run, catalog):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)
        await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 4))
        await sorting.close_batch(db_session, sorter, batch.id)

        second = await sorting.create_batch(db_session, sorter, run.id)
        assert second.id != batch.id


@pytest.mark.workflow
class TestBatchItems:

    async def test_add_and_remove(self, db_session, sorter, finished_run, catalog):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)

        item = await sorting.add_item(
            db_session, sorter, batch.id,
            _item(catalog.pet, 7.5, QualityGrade.A, contamination_pct=5, contamination_note="labels"),
        )
        assert item.material_type.name == "PET"
        assert item.contamination_pct == 5

        await sorting.remove_item(db_session, sorter, batch.id, item.id)
        batch = await sorting.get_batch(db_session, sorter.org_id, batch.id)
        assert batch.items == []

    async def test_remove_item_from_another_batch(self, db_session, sorter, finished_run, catalog):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)
        item = await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 1))
        await sorting.close_batch(db_session, sorter, batch.id)
        other = await sorting.create_batch(db_session, sorter, run.id)

        with pytest.raises(ResourceNotFoundError):
            await sorting.remove_item(db_session, sorter, other.id, item.id)

    async def test_material_from_other_org(self, db_session, sorter, finished_run, other_catalog):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)

        with pytest.raises(ResourceNotFoundError):
            await sorting.add_item(db_session, sorter, batch.id, _item(other_catalog.pet, 1))

    def test_contamination_bounds(self):
        with pytest.raises(ValueError):
            SortedItemCreate(material_type_id="m-1", weight_kg=1, contamination_pct=120)
        with pytest.raises(ValueError):
            SortedItemCreate(material_type_id="m-1", weight_kg=0)


@pytest.mark.workflow
class TestCloseBatch:

    async def test_empty_batch_cannot_close(self, db_session, sorter, finished_run):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)

        with pytest.raises(BusinessLogicError) as exc_info:
            await sorting.close_batch(db_session, sorter, batch.id)
        assert exc_info.value.error_code == "BATCH_EMPTY"

    async def test_close_creates_one_lot_and_movement_per_item(
        self, db_session, sorter, supervisor, finished_run, catalog
    ):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)
        await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 12.5, QualityGrade.A))
        await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 3))
        await sorting.add_item(db_session, sorter, batch.id, _item(catalog.paper, 40, QualityGrade.C))

        batch = await sorting.close_batch(db_session, supervisor, batch.id)

        assert batch.is_closed is True
        assert len(batch.stock_lots) == 3
        lots = sorted(batch.stock_lots, key=lambda lot: lot.total_kg)
        assert [(lot.total_kg, lot.available_kg) for lot in lots] == [(3, 3), (12.5, 12.5), (40, 40)]
        assert [lot.quality_grade for lot in lots] == [QualityGrade.B, QualityGrade.A, QualityGrade.C]
        assert all(lot.origin_note == f"Sorting batch #{batch.id[-6:]}" for lot in lots)

        movements = (await db_session.execute(select(StockMovement))).scalars().all()
        assert len(movements) == 3
        assert {m.lot_id for m in movements} == {lot.id for lot in lots}
        assert all(m.type == MovementType.IN for m in movements)
        assert all(m.moved_by == supervisor.id for m in movements)
        assert all(m.notes == sorting.AUTOMATIC_ENTRY_NOTE for m in movements)

    async def test_closed_batch_is_immutable(self, db_session, sorter, finished_run, catalog):
        run = await finished_run()
        batch = await sorting.create_batch(db_session, sorter, run.id)
        item = await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 2))
        await sorting.close_batch(db_session, sorter, batch.id)

        with pytest.raises(BusinessLogicError, match="already closed"):
            await sorting.add_item(db_session, sorter, batch.id, _item(catalog.pet, 1))
        with pytest.raises(BusinessLogicError, match="already closed"):
            await sorting.remove_item(db_session, sorter, batch.id, item.id)
        with pytest.raises(BusinessLogicError, match="already closed"):
            await sorting.close_batch(db_session, sorter, batch.id)

        lots = await db_session.scalar(select(func.count(StockLot.id)))
        assert lots == 1


@pytest.mark.api
@pytest.mark.workflow
class TestSortingEndpoints:

    async def _finish_run(self, client, headers, assignment, catalog) -> str:
        response = await client.post("/api/runs/start", json={"assignmentId": assignment.id}, headers=headers)
        run_id = response.json()["data"]["id"]
        for stop in catalog.stops:
            await client.post(f"/api/runs/{run_id}/stops/{stop.id}/arrive", headers=headers)
            await client.post(
                f"/api/runs/{run_id}/stops/{stop.id}/close", json={"status": "COLETADO"}, headers=headers
            )
        await client.post(f"/api/runs/{run_id}/finish", headers=headers)
        return run_id

    async def test_batch_lifecycle(
        self, client: AsyncClient, collector, sorter, supervisor, assignment, catalog, auth_headers
    ):
        run_id = await self._finish_run(client, auth_headers(collector), assignment, catalog)
        headers = auth_headers(sorter)

        response = await client.post("/api/sorting-batches", json={"runId": run_id}, headers=headers)
        assert response.status_code == 201
        batch_id = response.json()["data"]["id"]

        response = await client.post(
            f"/api/sorting-batches/{batch_id}/items",
            json={"materialTypeId": catalog.pet.id, "weightKg": 8},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["qualityGrade"] == "B"

        # sorting operators cannot close; supervisors can
        response = await client.post(f"/api/sorting-batches/{batch_id}/close", headers=headers)
        assert response.status_code == 403

        response = await client.post(
            f"/api/sorting-batches/{batch_id}/close", headers=auth_headers(supervisor)
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isClosed"] is True
        assert [lot["availableKg"] for lot in data["stockLots"]] == [8]

        response = await client.post(
            f"/api/sorting-batches/{batch_id}/items",
            json={"materialTypeId": catalog.pet.id, "weightKg": 1},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BATCH_CLOSED"

        response = await client.get("/api/sorting-batches", params={"status": "closed"}, headers=headers)
        assert [b["id"] for b in response.json()["data"]] == [batch_id]
        response = await client.get("/api/sorting-batches", params={"status": "open"}, headers=headers)
        assert response.json()["data"] == []

    async def test_batch_for_unfinished_run(
        self, client: AsyncClient, collector, sorter, assignment, auth_headers
    ):
        response = await client.post(
            "/api/runs/start", json={"assignmentId": assignment.id}, headers=auth_headers(collector)
        )
        run_id = response.json()["data"]["id"]

        response = await client.post(
            "/api/sorting-batches", json={"runId": run_id}, headers=auth_headers(sorter)
        )
        assert response.status_code == 400

    async def test_failed_close_leaves_batch_open(
        self, client: AsyncClient, db_session, collector, sorter, supervisor, assignment, catalog,
        auth_headers, monkeypatch,
    ):
        run_id = await self._finish_run(client, auth_headers(collector), assignment, catalog)
        headers = auth_headers(sorter)
        response = await client.post("/api/sorting-batches", json={"runId": run_id}, headers=headers)
        batch_id = response.json()["data"]["id"]
        for material, weight in [(catalog.pet, 8), (catalog.paper, 12)]:
            await client.post(
                f"/api/sorting-batches/{batch_id}/items",
                json={"materialTypeId": material.id, "weightKg": weight},
                headers=headers,
            )

        async def failing_log(*args, **kwargs):
            raise BusinessLogicError("Audit trail unavailable")

        # lots, movements and the closed flag are already flushed when this fails
        monkeypatch.setattr(sorting, "log_activity", failing_log)
        response = await client.post(
            f"/api/sorting-batches/{batch_id}/close", headers=auth_headers(supervisor)
        )
        assert response.status_code == 400
        monkeypatch.undo()

        assert await db_session.scalar(select(func.count(StockLot.id))) == 0
        assert await db_session.scalar(select(func.count(StockMovement.id))) == 0
        assert await db_session.scalar(
            select(SortingBatch.is_closed).where(SortingBatch.id == batch_id)
        ) is False

        response = await client.get("/api/sorting-batches", params={"status": "open"}, headers=headers)
        assert [b["id"] for b in response.json()["data"]] == [batch_id]
