"""
Tests del orquestador DrChronoSyncUseCases.

Cubre los escenarios de referencia:
- A: 3 pacientes, 1 sin id -> completed, created=2 errored=1
- B: visitas sin pacientes locales -> failed, errored=5
- C: labs falla en fetch, patients trae 10 -> completed, 1 error de labs
"""
from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from clinical_sync.application.dto.sync_dto import SyncRequestDTO
from clinical_sync.application.use_cases.sync_use_cases import DrChronoSyncUseCases, lease_key_for
from clinical_sync.domain.entities.entity_type import SYNC_ORDER, EntityType
from clinical_sync.infrastructure.repositories.sync_run_repository import SyncRunRepository
from clinical_sync.shared.exceptions.domain import EntityNotFoundException, UnknownEntityException
from clinical_sync.shared.exceptions.sync import SyncAlreadyRunningException
from clinical_sync.shared.utils.datetime_utils import utc_now


@pytest.mark.asyncio
async def test_scenario_a_missing_id_counts_as_error(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"patients": [{"id": 1}, {"id": 2}, {"first_name": "sin id"}]})

    report = await DrChronoSyncUseCases(db_session, fetcher).run(SyncRequestDTO(entities=["patients"]))

    assert report.status == "completed"
    assert report.results["patients"].model_dump(exclude={"elapsed_ms"}) == {"fetched": 3, "created": 2, "updated": 0, "errored": 1}
    assert len(report.errors) == 1


@pytest.mark.asyncio
async def test_scenario_b_visits_without_patients_fail(db_session, fake_drchrono) -> None:
    visits = [{"id": 100 + i, "patient": 900 + i} for i in range(5)]
    fetcher = fake_drchrono({"appointments": visits})

    report = await DrChronoSyncUseCases(db_session, fetcher).run(SyncRequestDTO(entities=["visits"]))

    assert report.status == "failed"
    assert report.results["appointments"].model_dump(exclude={"elapsed_ms"}) == {"fetched": 5, "created": 0, "updated": 0, "errored": 5}
    assert {e.record_id for e in report.errors} == {"100", "101", "102", "103", "104"}


@pytest.mark.asyncio
async def test_scenario_c_one_entity_fetch_failure(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono(
        {"patients": [{"id": i} for i in range(1, 11)]},
        failures={"lab_results"},
    )

    report = await DrChronoSyncUseCases(db_session, fetcher).run(
        SyncRequestDTO(entities=["labs", "patients"])
    )

    assert report.status == "completed"
    assert list(report.results) == ["patients", "lab_results"]
    assert report.results["patients"].created == 10
    assert report.results["patients"].errored == 0
    assert len(report.errors) == 1
    assert report.errors[0].entity == "lab_results"


@pytest.mark.asyncio
async def test_throwing_strategy_still_finalizes_every_entity(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"doctors": [{"id": 1}], "offices": [{"id": 2}]})
    fetcher.fetch_all = AsyncMock(side_effect=[[{"id": 1}], RuntimeError("kaboom"), [{"id": 3}]])

    report = await DrChronoSyncUseCases(db_session, fetcher).run(
        SyncRequestDTO(entities=["doctors", "offices", "patients"])
    )

    assert list(report.results) == ["doctors", "offices", "patients"]
    assert report.results["offices"].model_dump(exclude={"elapsed_ms"}) == {"fetched": 0, "created": 0, "updated": 0, "errored": 1}
    assert report.results["patients"].created == 1
    assert report.errors[0].entity == "offices"
    assert "kaboom" in report.errors[0].message
    assert report.status == "completed"


@pytest.mark.asyncio
async def test_full_run_is_idempotent(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({
        "patients": [{"id": 1}, {"id": 2}],
        "medications": [{"id": 10, "patient": 1}],
        "appointments": [{"id": 50, "patient": 2}],
    })
    use_cases = DrChronoSyncUseCases(db_session, fetcher)

    first = await use_cases.run(SyncRequestDTO())
    second = await use_cases.run(SyncRequestDTO())

    assert list(first.results) == [e.value for e in SYNC_ORDER]
    assert first.results["patients"].created == 2
    assert second.results["patients"].created == 0
    assert second.results["patients"].updated == 2
    assert second.results["medications"].updated == 1
    assert second.results["appointments"].updated == 1


@pytest.mark.asyncio
async def test_unknown_entity_is_rejected_before_creating_a_run(db_session, fake_drchrono) -> None:
    use_cases = DrChronoSyncUseCases(db_session, fake_drchrono())

    with pytest.raises(UnknownEntityException) as exc_info:
        await use_cases.run(SyncRequestDTO(entities=["patients", "invoices"]))

    assert exc_info.value.status_code == 400
    assert "patients" in exc_info.value.details["available"]
    assert await use_cases.list_runs() == []


@pytest.mark.asyncio
async def test_busy_lease_raises_and_creates_no_run(db_session, fake_drchrono) -> None:
    repo = SyncRunRepository(db_session)
    assert await repo.try_acquire_lease(lease_key_for([EntityType.PATIENTS]), "otra-corrida", 900)
    use_cases = DrChronoSyncUseCases(db_session, fake_drchrono())

    with pytest.raises(SyncAlreadyRunningException):
        await use_cases.run(SyncRequestDTO(entities=["patients"]))

    assert await use_cases.list_runs() == []


@pytest.mark.asyncio
async def test_expired_lease_is_taken_over_and_released(db_session, fake_drchrono) -> None:
    repo = SyncRunRepository(db_session)
    key = lease_key_for([EntityType.PATIENTS])
    assert await repo.try_acquire_lease(key, "muerta", ttl_seconds=-1)

    report = await DrChronoSyncUseCases(db_session, fake_drchrono()).run(SyncRequestDTO(entities=["patients"]))

    assert report.status == "completed"
    # Liberado al finalizar: otra corrida puede tomarlo
    assert await repo.try_acquire_lease(key, "siguiente", 900)


@pytest.mark.asyncio
async def test_stale_runs_are_reaped_on_next_invocation(db_session, fake_drchrono) -> None:
    repo = SyncRunRepository(db_session)
    stale = await repo.create(entities=["patients"], status="in_progress", started_at=utc_now() - timedelta(hours=1))

    await DrChronoSyncUseCases(db_session, fake_drchrono()).run(SyncRequestDTO(entities=["doctors"]))

    assert (await repo.get_by_id(stale.id)).status == "failed"


@pytest.mark.asyncio
async def test_reaping_failure_does_not_block_the_run(db_session, fake_drchrono) -> None:
    use_cases = DrChronoSyncUseCases(db_session, fake_drchrono({"doctors": [{"id": 1}]}))

    with patch(
        "clinical_sync.application.use_cases.sync_use_cases.reap_stale_runs",
        AsyncMock(side_effect=RuntimeError("db lenta")),
    ):
        report = await use_cases.run(SyncRequestDTO(entities=["doctors"]))

    assert report.status == "completed"


@pytest.mark.asyncio
async def test_incremental_hours_sets_since_and_mode(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono()
    use_cases = DrChronoSyncUseCases(db_session, fetcher)

    report = await use_cases.run(SyncRequestDTO(entities=["doctors"], incremental_hours=2))

    run = await use_cases.get_run(report.sync_run_id)
    assert run.mode == "incremental"
    assert run.since.endswith("Z")
    assert fetcher.calls[0][1]["since"] == run.since


@pytest.mark.asyncio
async def test_run_history_lookups(db_session, fake_drchrono) -> None:
    use_cases = DrChronoSyncUseCases(db_session, fake_drchrono({"doctors": [{"id": 1}]}))
    first = await use_cases.run(SyncRequestDTO(entities=["doctors"]))
    second = await use_cases.run(SyncRequestDTO(entities=["doctors"]))

    runs = await use_cases.list_runs(limit=1)
    assert [r.id for r in runs] == [second.sync_run_id]

    detail = await use_cases.get_run(first.sync_run_id)
    assert detail.status == "completed"
    assert detail.duration_ms == first.duration_ms

    with pytest.raises(EntityNotFoundException):
        await use_cases.get_run(9999)


@pytest.mark.asyncio
async def test_write_failure_is_counted_and_run_still_finalizes(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"patients": [{"id": 1}, {"id": 2, "bad": {1, 2}}, {"id": 3}]})
    use_cases = DrChronoSyncUseCases(db_session, fetcher)

    report = await use_cases.run(SyncRequestDTO(entities=["patients"]))

    assert report.status == "completed"
    assert report.results["patients"].model_dump(exclude={"elapsed_ms"}) == {"fetched": 3, "created": 2, "updated": 0, "errored": 1}
    assert report.errors[0].message.startswith("WriteFailure")
    assert report.errors[0].record_id == "2"
    assert (await use_cases.get_run(report.sync_run_id)).status == "completed"


@pytest.mark.asyncio
async def test_strategy_error_after_reading_patients_still_finalizes(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"patients": [{"id": 1}, {"id": 2}]})
    fake_fetch = fetcher.fetch_all

    async def fetch_all(endpoint, params=None):
        if endpoint == "medications":
            raise RuntimeError("socket cerrado")
        return await fake_fetch(endpoint, params)

    fetcher.fetch_all = AsyncMock(side_effect=fetch_all)
    use_cases = DrChronoSyncUseCases(db_session, fetcher)

    report = await use_cases.run(SyncRequestDTO(entities=["patients", "medications"]))

    assert report.status == "completed"
    assert report.results["patients"].created == 2
    assert report.results["medications"].errored == 1
    assert report.errors[0].entity == "medications"
    assert report.errors[0].message == "RuntimeError: socket cerrado"

    run = await use_cases.get_run(report.sync_run_id)
    assert run.status == "completed"
    assert run.completed_at is not None


@pytest.mark.asyncio
async def test_exhausted_time_budget_skips_remaining_entities(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"doctors": [{"id": 1}], "offices": [{"id": 2}], "patients": [{"id": 3}]})
    use_cases = DrChronoSyncUseCases(db_session, fetcher, time_budget_s=10)

    # deadline = 0 + 10; doctors arranca en 1s, offices y patients despues de 10s
    with patch(
        "clinical_sync.application.use_cases.sync_use_cases.monotonic",
        side_effect=[0.0, 1.0, 11.0, 12.0],
    ):
        report = await use_cases.run(SyncRequestDTO(entities=["doctors", "offices", "patients"]))

    assert [endpoint for endpoint, _ in fetcher.calls] == ["doctors"]
    assert list(report.results) == ["doctors", "offices", "patients"]
    assert report.results["doctors"].created == 1
    for skipped in ("offices", "patients"):
        assert report.results[skipped].model_dump() == {
            "fetched": 0, "created": 0, "updated": 0, "errored": 0, "elapsed_ms": 0,
        }
    assert report.status == "completed"


@pytest.mark.asyncio
async def test_zero_budget_means_no_limit(db_session, fake_drchrono) -> None:
    fetcher = fake_drchrono({"doctors": [{"id": 1}], "offices": [{"id": 2}]})
    use_cases = DrChronoSyncUseCases(db_session, fetcher, time_budget_s=0)

    report = await use_cases.run(SyncRequestDTO(entities=["doctors", "offices"]))

    assert [endpoint for endpoint, _ in fetcher.calls] == ["doctors", "offices"]
    assert report.results["offices"].created == 1


@pytest.mark.asyncio
async def test_each_entity_reports_its_elapsed_time(db_session, fake_drchrono) -> None:
    use_cases = DrChronoSyncUseCases(db_session, fake_drchrono({"doctors": [{"id": 1}]}))

    report = await use_cases.run(SyncRequestDTO(entities=["doctors"]))

    run = await use_cases.get_run(report.sync_run_id)
    assert report.results["doctors"].elapsed_ms >= 0
    assert run.results["doctors"].elapsed_ms == report.results["doctors"].elapsed_ms
