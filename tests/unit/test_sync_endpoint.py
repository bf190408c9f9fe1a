"""
Tests del contrato HTTP de /api/v1/sync.

- POST /sync/drchrono responde 200 con el reporte aun si la corrida falla.
- 409 si el lease esta tomado, 400 si la entidad no existe.
- 422 si `since` no es ISO 8601.
- GET /sync/runs y /sync/runs/{id}.
"""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from clinical_sync.api.v1.dependencies.use_case_deps import get_drchrono_sync_use_cases
from clinical_sync.application.dto.sync_dto import SyncRunReportDTO, SyncRunSummaryDTO
from clinical_sync.shared.exceptions.domain import EntityNotFoundException, UnknownEntityException
from clinical_sync.shared.exceptions.sync import SyncAlreadyRunningException


def _report(status: str = "completed") -> SyncRunReportDTO:
    return SyncRunReportDTO(
        sync_run_id=42,
        status=status,
        results={"patients": {"fetched": 3, "created": 2, "updated": 0, "errored": 1}},
        duration_ms=1234,
        errors=[{"entity": "patients", "message": "MapFailure: registro sin id"}],
    )


def _summary(run_id: int) -> SyncRunSummaryDTO:
    return SyncRunSummaryDTO(
        id=run_id,
        entities=["patients"],
        mode="full",
        status="completed",
        started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        duration_ms=10,
    )


@pytest.fixture
def mock_use_cases() -> AsyncMock:
    uc = AsyncMock()
    uc.run = AsyncMock(return_value=_report())
    uc.list_runs = AsyncMock(return_value=[_summary(2), _summary(1)])
    uc.get_run = AsyncMock(return_value=_summary(1))
    return uc


@pytest.fixture
def app_with_mock(mock_use_cases: AsyncMock):
    """App FastAPI con el orquestador mockeado via dependency_overrides."""
    from main import create_application
    app = create_application()
    app.dependency_overrides[get_drchrono_sync_use_cases] = lambda: mock_use_cases
    yield app
    app.dependency_overrides.clear()


async def _post(app, payload):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/api/v1/sync/drchrono", json=payload)


async def _get(app, path):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_trigger_returns_report(app_with_mock, mock_use_cases: AsyncMock) -> None:
    response = await _post(app_with_mock, {"entities": ["patients"], "since": "2026-01-01T00:00:00+00:00"})

    assert response.status_code == 200
    data = response.json()
    assert data["sync_run_id"] == 42
    assert data["results"]["patients"]["errored"] == 1
    assert data["errors"][0]["entity"] == "patients"

    request = mock_use_cases.run.call_args.args[0]
    assert request.entities == ["patients"]
    assert request.since == "2026-01-01T00:00:00Z"


@pytest.mark.asyncio
async def test_failed_run_is_still_200(app_with_mock, mock_use_cases: AsyncMock) -> None:
    mock_use_cases.run.return_value = _report(status="failed")

    response = await _post(app_with_mock, {})

    assert response.status_code == 200
    assert response.json()["status"] == "failed"


@pytest.mark.asyncio
async def test_busy_lease_is_409(app_with_mock, mock_use_cases: AsyncMock) -> None:
    mock_use_cases.run.side_effect = SyncAlreadyRunningException("drchrono:patients")

    response = await _post(app_with_mock, {"entities": ["patients"]})

    assert response.status_code == 409
    assert response.json()["error"] == "SYNC_ALREADY_RUNNING"


@pytest.mark.asyncio
async def test_unknown_entity_is_400(app_with_mock, mock_use_cases: AsyncMock) -> None:
    mock_use_cases.run.side_effect = UnknownEntityException("invoices", ["patients"])

    response = await _post(app_with_mock, {"entities": ["invoices"]})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "UNKNOWN_ENTITY"
    assert body["details"]["available"] == ["patients"]


@pytest.mark.asyncio
async def test_invalid_since_is_422(app_with_mock, mock_use_cases: AsyncMock) -> None:
    response = await _post(app_with_mock, {"since": "ayer"})

    assert response.status_code == 422
    mock_use_cases.run.assert_not_called()


@pytest.mark.asyncio
async def test_list_runs_passes_limit(app_with_mock, mock_use_cases: AsyncMock) -> None:
    response = await _get(app_with_mock, "/api/v1/sync/runs?limit=2")

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [2, 1]
    mock_use_cases.list_runs.assert_awaited_once_with(limit=2)


@pytest.mark.asyncio
async def test_list_runs_rejects_out_of_range_limit(app_with_mock) -> None:
    response = await _get(app_with_mock, "/api/v1/sync/runs?limit=500")

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_run_detail_and_404(app_with_mock, mock_use_cases: AsyncMock) -> None:
    ok = await _get(app_with_mock, "/api/v1/sync/runs/1")
    assert ok.status_code == 200
    assert ok.json()["status"] == "completed"

    mock_use_cases.get_run.side_effect = EntityNotFoundException("SyncRun", 99)
    missing = await _get(app_with_mock, "/api/v1/sync/runs/99")
    assert missing.status_code == 404
    assert missing.json()["error"] == "ENTITY_NOT_FOUND"
