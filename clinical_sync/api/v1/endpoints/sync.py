"""
Endpoints para sincronizacion DrChrono -> base local.
Permite disparar una corrida y consultar el historial de corridas.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from clinical_sync.api.v1.dependencies.use_case_deps import get_drchrono_sync_use_cases
from clinical_sync.application.dto.sync_dto import (
    SyncRequestDTO,
    SyncRunReportDTO,
    SyncRunSummaryDTO,
)
from clinical_sync.application.use_cases.sync_use_cases import DrChronoSyncUseCases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/drchrono",
    response_model=SyncRunReportDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar DrChrono con la base local"
)
async def sync_drchrono(
    request: SyncRequestDTO,
    use_cases: DrChronoSyncUseCases = Depends(get_drchrono_sync_use_cases),
) -> SyncRunReportDTO:
    """
    Ejecuta una corrida de sincronizacion.

    - Sin `entities` se sincronizan todas, en orden de dependencias.
    - Responde 200 aun si la corrida termina en `failed`: el detalle va en
      `results` y `errors`.
    - 409 si ya hay una corrida en curso para el mismo set de entidades.
    """
    logger.info(f"Sync DrChrono solicitado desde API: entities={request.entities} since={request.since}")
    return await use_cases.run(request)


@router.get(
    "/runs",
    response_model=List[SyncRunSummaryDTO],
    summary="Listar corridas recientes"
)
async def list_sync_runs(
    limit: int = Query(10, ge=1, le=50, description="Cantidad maxima de corridas"),
    use_cases: DrChronoSyncUseCases = Depends(get_drchrono_sync_use_cases),
) -> List[SyncRunSummaryDTO]:
    """Corridas mas recientes primero."""
    return await use_cases.list_runs(limit=limit)


@router.get(
    "/runs/{run_id}",
    response_model=SyncRunSummaryDTO,
    summary="Detalle de una corrida"
)
async def get_sync_run(
    run_id: int,
    use_cases: DrChronoSyncUseCases = Depends(get_drchrono_sync_use_cases),
) -> SyncRunSummaryDTO:
    return await use_cases.get_run(run_id)
