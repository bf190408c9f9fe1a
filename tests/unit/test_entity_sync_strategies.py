"""
Tests de las estrategias Direct y Fanout con un fetcher falso en memoria.
"""
from __future__ import annotations

import pytest
from sqlalchemy import func, select

from clinical_sync.application.services import field_mappers
from clinical_sync.application.services.entity_registry import build_strategy
from clinical_sync.application.services.entity_sync_strategies import DirectEntitySync, FanoutEntitySync
from clinical_sync.domain.entities.entity_type import EntityType
from clinical_sync.infrastructure.database.models import AppointmentModel, MedicationModel, PatientModel
from clinical_sync.infrastructure.repositories.entity_record_repository import EntityRecordRepository


async def _seed_patients(repo: EntityRecordRepository, *ids: int) -> None:
    for pid in ids:
        await repo.upsert(PatientModel, field_mappers.map_patients({"id": pid}))


def test_registry_picks_strategy_by_kind(fake_drchrono) -> None:
    fetcher = fake_drchrono()
    assert isinstance(build_strategy(EntityType.PATIENTS, fetcher, None), DirectEntitySync)
    assert isinstance(build_strategy(EntityType.LAB_RESULTS, fetcher, None), DirectEntitySync)
    assert isinstance(build_strategy(EntityType.MEDICATIONS, fetcher, None), FanoutEntitySync)


@pytest.mark.asyncio
async def test_direct_builds_params_with_since_overriding_default(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono()
    strategy = build_strategy(EntityType.APPOINTMENTS, fetcher, EntityRecordRepository(db_session))

    await strategy.sync(scope="77")
    await strategy.sync(scope="77", since="2026-01-01T00:00:00Z")

    assert fetcher.calls[0] == ("appointments", {"since": "2015-01-01", "doctor": "77"})
    assert fetcher.calls[1] == ("appointments", {"since": "2026-01-01T00:00:00Z", "doctor": "77"})


@pytest.mark.asyncio
async def test_direct_fetch_failure_is_one_error(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono(failures={"lab_results"})
    strategy = build_strategy(EntityType.LAB_RESULTS, fetcher, EntityRecordRepository(db_session))

    result = await strategy.sync()

    assert result.counts() == {"fetched": 0, "created": 0, "updated": 0, "errored": 1}
    assert len(result.errors) == 1
    assert result.errors[0].entity == "lab_results"
    assert result.errors[0].message.startswith("FetchFailure")


@pytest.mark.asyncio
async def test_one_malformed_record_among_500_does_not_stop_the_rest(db_session, fake_drchrono) -> None:
    records = [{"id": i, "first_name": f"P{i}"} for i in range(1, 501)]
    records[250] = {"first_name": "sin id"}
    fetcher = fake_drchrono({"patients": records})
    strategy = build_strategy(EntityType.PATIENTS, fetcher, EntityRecordRepository(db_session))

    result = await strategy.sync()

    assert result.counts() == {"fetched": 500, "created": 499, "updated": 0, "errored": 1}
    count = await db_session.scalar(select(func.count()).select_from(PatientModel))
    assert count == 499


@pytest.mark.asyncio
async def test_direct_child_without_local_patient_is_skipped(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    await _seed_patients(repo, 1)
    fetcher = fake_drchrono({
        "appointments": [
            {"id": 100, "patient": 1},
            {"id": 101, "patient": 999},
        ]
    })

    result = await build_strategy(EntityType.APPOINTMENTS, fetcher, repo).sync()

    assert result.counts() == {"fetched": 2, "created": 1, "updated": 0, "errored": 1}
    assert result.errors[0].record_id == "101"
    assert "PrerequisiteMissing" in result.errors[0].message
    assert await repo.list_external_ids(AppointmentModel) == ["100"]


@pytest.mark.asyncio
async def test_fanout_without_patients_makes_no_calls(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"medications": [{"id": 1, "patient": 1}]})

    result = await build_strategy(EntityType.MEDICATIONS, fetcher, EntityRecordRepository(db_session)).sync()

    assert result.counts() == {"fetched": 0, "created": 0, "updated": 0, "errored": 0}
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_fanout_queries_each_patient_and_stamps_parent(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    await _seed_patients(repo, 1, 2)
    fetcher = fake_drchrono({
        "medications": [
            {"id": 10, "patient": 1, "name": "Metformina"},
            {"id": 11, "patient": 1, "name": "Losartan"},
            {"id": 20, "patient": 2, "name": "Atorvastatina"},
        ]
    })

    result = await build_strategy(EntityType.MEDICATIONS, fetcher, repo).sync()

    assert result.counts() == {"fetched": 3, "created": 3, "updated": 0, "errored": 0}
    assert [params["patient"] for _, params in fetcher.calls] == ["1", "2"]

    rows = (await db_session.execute(
        select(MedicationModel.external_id, MedicationModel.parent_external_id).order_by(MedicationModel.id)
    )).all()
    assert [tuple(r) for r in rows] == [("10", "1"), ("11", "1"), ("20", "2")]


@pytest.mark.asyncio
async def test_fanout_fetch_failure_for_one_patient_continues(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    await _seed_patients(repo, 1, 2, 3)
    fetcher = fake_drchrono(
        {"problems": [{"id": 30, "patient": 1}, {"id": 31, "patient": 3}]},
        failures={("problems", "2")},
    )

    result = await build_strategy(EntityType.PROBLEMS, fetcher, repo).sync()

    assert result.counts() == {"fetched": 2, "created": 2, "updated": 0, "errored": 1}
    assert len(fetcher.calls) == 3
    assert result.errors[0].record_id == "2"


@pytest.mark.asyncio
async def test_second_sync_reports_updates(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    fetcher = fake_drchrono({"doctors": [{"id": 1, "last_name": "House"}, {"id": 2, "last_name": "Grey"}]})
    strategy = build_strategy(EntityType.DOCTORS, fetcher, repo)

    first = await strategy.sync()
    second = await strategy.sync()

    assert (first.created, first.updated) == (2, 0)
    assert (second.created, second.updated) == (0, 2)


@pytest.mark.asyncio
async def test_unwritable_record_is_a_write_failure_and_siblings_are_kept(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    # Un set no es serializable a JSON: el store rechaza raw_data
    fetcher = fake_drchrono({"patients": [{"id": 1}, {"id": 2, "bad": {1, 2}}, {"id": 3}]})

    result = await build_strategy(EntityType.PATIENTS, fetcher, repo).sync()

    assert result.counts() == {"fetched": 3, "created": 2, "updated": 0, "errored": 1}
    assert result.errors[0].record_id == "2"
    assert result.errors[0].message.startswith("WriteFailure")
    assert await repo.list_external_ids(PatientModel) == ["1", "3"]


@pytest.mark.asyncio
async def test_fanout_merges_each_patient_partial_result(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    await _seed_patients(repo, 1, 2)
    fetcher = fake_drchrono({
        "allergies": [
            {"id": 1, "patient": 1},
            {"id": 2, "patient": 1, "bad": {1}},
            {"patient": 2},
            {"id": 4, "patient": 2},
        ]
    })

    result = await build_strategy(EntityType.ALLERGIES, fetcher, repo).sync()

    assert result.counts() == {"fetched": 4, "created": 2, "updated": 0, "errored": 2}
    assert [e.message.split(":")[0] for e in result.errors] == ["WriteFailure", "MapFailure"]


@pytest.mark.asyncio
async def test_billing_entities_ask_for_big_pages(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"line_items": [{"id": 1, "patient": 5, "price": "10.00"}]})

    result = await build_strategy(EntityType.LINE_ITEMS, fetcher, EntityRecordRepository(db_session)).sync(scope="77")

    assert fetcher.calls == [("line_items", {"page_size": 250, "doctor": "77"})]
    # Facturacion no exige paciente local
    assert result.created == 1


@pytest.mark.asyncio
async def test_lab_orders_need_a_local_patient(db_session, fake_drchrono) -> None:
    repo = EntityRecordRepository(db_session)
    await _seed_patients(repo, 1)
    fetcher = fake_drchrono({"lab_orders": [{"id": 10, "patient": 1}, {"id": 11, "patient": 2}]})

    result = await build_strategy(EntityType.LAB_ORDERS, fetcher, repo).sync()

    assert fetcher.calls[0] == ("lab_orders", {"since": "2015-01-01"})
    assert (result.created, result.errored) == (1, 1)
    assert "PrerequisiteMissing" in result.errors[0].message
