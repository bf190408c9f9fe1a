"""
Tests del Upsert Writer sobre SQLite en memoria.
"""
from __future__ import annotations

import pytest
from sqlalchemy import func, select

from clinical_sync.application.services import field_mappers
from clinical_sync.infrastructure.database.models import PatientModel
from clinical_sync.infrastructure.repositories.entity_record_repository import (
    EntityRecordRepository,
    UpsertOutcome,
)


@pytest.mark.asyncio
async def test_first_write_inserts_and_second_updates(db_session) -> None:
    repo = EntityRecordRepository(db_session)
    row = field_mappers.map_patients({"id": 1, "first_name": "Ana"})

    first = await repo.upsert(PatientModel, row)
    second = await repo.upsert(PatientModel, field_mappers.map_patients({"id": 1, "first_name": "Ana Maria"}))

    assert first.ok and first.outcome == UpsertOutcome.INSERTED
    assert second.ok and second.outcome == UpsertOutcome.UPDATED

    result = await db_session.execute(select(PatientModel.first_name))
    assert result.scalars().all() == ["Ana Maria"]


@pytest.mark.asyncio
async def test_same_payload_twice_is_idempotent(db_session) -> None:
    repo = EntityRecordRepository(db_session)
    raw = {"id": 7, "first_name": "Luis", "primary_insurance": {"plan": "gold"}}

    await repo.upsert(PatientModel, field_mappers.map_patients(raw))
    await repo.upsert(PatientModel, field_mappers.map_patients(raw))

    count = await db_session.scalar(select(func.count()).select_from(PatientModel))
    assert count == 1

    stored = (await db_session.execute(select(PatientModel))).scalars().one()
    await db_session.refresh(stored)
    assert stored.primary_insurance == {"plan": "gold"}
    assert stored.raw_data == raw


@pytest.mark.asyncio
async def test_missing_conflict_key_is_a_failed_write(db_session) -> None:
    repo = EntityRecordRepository(db_session)

    result = await repo.upsert(PatientModel, {"first_name": "sin external_id"})

    assert not result.ok
    assert "external_id" in result.error


@pytest.mark.asyncio
async def test_rejected_write_does_not_poison_the_session(db_session) -> None:
    repo = EntityRecordRepository(db_session)
    bad_row = field_mappers.map_patients({"id": 2})
    bad_row["last_synced_at"] = None  # NOT NULL

    bad = await repo.upsert(PatientModel, bad_row)
    good = await repo.upsert(PatientModel, field_mappers.map_patients({"id": 3}))

    assert not bad.ok and bad.error
    assert good.ok and good.outcome == UpsertOutcome.INSERTED
    assert await repo.list_external_ids(PatientModel) == ["3"]


@pytest.mark.asyncio
async def test_exists_helper(db_session) -> None:
    repo = EntityRecordRepository(db_session)
    await repo.upsert(PatientModel, field_mappers.map_patients({"id": 10}))

    assert await repo.exists(PatientModel, "10")
    assert not await repo.exists(PatientModel, "11")
    assert not await repo.exists(PatientModel, None)


@pytest.mark.asyncio
async def test_unserializable_payload_is_rejected_and_next_write_succeeds(db_session) -> None:
    repo = EntityRecordRepository(db_session)
    bad_row = field_mappers.map_patients({"id": 4, "tags": {"a", "b"}})

    bad = await repo.upsert(PatientModel, bad_row)
    good = await repo.upsert(PatientModel, field_mappers.map_patients({"id": 5}))

    assert not bad.ok
    assert bad.outcome is None
    assert "serializable" in bad.error
    assert good.ok and good.outcome == UpsertOutcome.INSERTED
    assert await repo.list_external_ids(PatientModel) == ["5"]
