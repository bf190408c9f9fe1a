"""
Casos de uso para sincronizacion DrChrono -> base local.

Flujo de una corrida:
1. Resolver entidades pedidas (orden fijo, sin duplicados)
2. Cerrar corridas abandonadas
3. Tomar el lease del set de entidades
4. Crear el SyncRun (started -> in_progress)
5. Ejecutar cada estrategia en secuencia; un fallo inesperado de una
   entidad queda registrado y no corta las siguientes. Si se agota el
   presupuesto de tiempo, las entidades restantes quedan en cero.
6. Finalizar el SyncRun y liberar el lease
"""
from __future__ import annotations

import uuid
from datetime import timedelta
from time import monotonic, perf_counter
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from clinical_sync.application.dto.sync_dto import (
    SyncRequestDTO,
    SyncRunReportDTO,
    SyncRunSummaryDTO,
)
from clinical_sync.application.services.entity_registry import build_strategy
from clinical_sync.application.services.entity_sync_strategies import RecordFetcher
from clinical_sync.application.services.sync_run_recorder import SyncRunRecorder, reap_stale_runs
from clinical_sync.core.config import settings
from clinical_sync.domain.entities.entity_type import SYNC_ORDER, EntityType, resolve_entities
from clinical_sync.domain.entities.sync_run import EntitySyncResult, SyncMode
from clinical_sync.infrastructure.repositories.entity_record_repository import EntityRecordRepository
from clinical_sync.infrastructure.repositories.sync_run_repository import SyncRunRepository
from clinical_sync.shared.exceptions.domain import EntityNotFoundException, UnknownEntityException
from clinical_sync.shared.exceptions.sync import SyncAlreadyRunningException
from clinical_sync.shared.utils.audit_logger import AuditLogger
from clinical_sync.shared.utils.datetime_utils import DateTimeUtils, utc_now


def lease_key_for(entities: List[EntityType]) -> str:
    """Clave estable del lease: set de entidades ordenado alfabeticamente."""
    return "drchrono:" + ",".join(sorted(e.value for e in entities))


class DrChronoSyncUseCases:
    """
    Orquestador de corridas de sincronizacion.

    Una instancia por request/CLI: comparte la sesion de DB y el cliente
    upstream entre todas las estrategias de la corrida.
    """

    def __init__(
        self,
        db: AsyncSession,
        fetcher: RecordFetcher,
        *,
        stale_run_minutes: Optional[int] = None,
        lease_ttl_seconds: Optional[int] = None,
        time_budget_s: Optional[int] = None,
    ):
        self.db = db
        self.fetcher = fetcher
        self.records = EntityRecordRepository(db)
        self.runs = SyncRunRepository(db)
        self.stale_run_minutes = stale_run_minutes or settings.SYNC_STALE_RUN_MINUTES
        self.lease_ttl_seconds = lease_ttl_seconds or settings.SYNC_LEASE_TTL_SECONDS
        self.time_budget_s = time_budget_s if time_budget_s is not None else settings.SYNC_TIME_BUDGET_S

    async def run(self, request: SyncRequestDTO) -> SyncRunReportDTO:
        """
        Ejecuta una corrida completa y devuelve el reporte.

        Raises:
            UnknownEntityException: si se pide una entidad inexistente
            SyncAlreadyRunningException: si el lease esta tomado
        """
        entities = self._resolve(request.entities)
        since = request.since
        if since is None and request.incremental_hours:
            since = DateTimeUtils.to_upstream_since(utc_now() - timedelta(hours=request.incremental_hours))
        mode = SyncMode.INCREMENTAL if since else SyncMode.FULL

        await self._reap_stale_runs()

        lock_key = lease_key_for(entities)
        holder = uuid.uuid4().hex
        if not await self.runs.try_acquire_lease(lock_key, holder, self.lease_ttl_seconds):
            logger.warning(f"Sync rechazado: lease {lock_key} tomado por otra corrida")
            raise SyncAlreadyRunningException(lock_key)

        try:
            recorder = SyncRunRecorder(self.runs)
            entity_names = [e.value for e in entities]
            await recorder.start(entity_names, mode=mode, scope=request.scope, since=since)
            await recorder.mark_in_progress()
            AuditLogger.open_run(recorder.run_id, entity_names, mode.value)

            deadline = monotonic() + self.time_budget_s if self.time_budget_s > 0 else None
            results: Dict[str, EntitySyncResult] = {}
            for entity in entities:
                if deadline is not None and monotonic() >= deadline:
                    results[entity.value] = self._skip_entity(recorder.run_id, entity)
                    continue
                results[entity.value] = await self._sync_entity(
                    recorder.run_id, entity, request.scope, since
                )

            run = await recorder.finalize(results)
        finally:
            await self.runs.release_lease(lock_key, holder)

        AuditLogger.close_run(run.id, run.status, run.duration_ms)

        log = logger.success if run.status == "completed" else logger.warning
        log(
            f"SyncRun {run.id} {run.status}: fetched={run.total_fetched} "
            f"created={run.total_created} updated={run.total_updated} "
            f"errored={run.total_errored} ({run.duration_ms} ms)"
        )

        return SyncRunReportDTO(
            sync_run_id=run.id,
            status=run.status,
            results=run.results or {},
            duration_ms=run.duration_ms,
            errors=run.errors or [],
        )

    async def list_runs(self, limit: int = 10) -> List[SyncRunSummaryDTO]:
        runs = await self.runs.list_recent(limit=limit)
        return [SyncRunSummaryDTO.model_validate(r) for r in runs]

    async def get_run(self, run_id: int) -> SyncRunSummaryDTO:
        run = await self.runs.get_by_id(run_id)
        if run is None:
            raise EntityNotFoundException("SyncRun", run_id)
        return SyncRunSummaryDTO.model_validate(run)

    def _resolve(self, names: Optional[List[str]]) -> List[EntityType]:
        for name in names or []:
            try:
                EntityType.parse(name)
            except ValueError:
                raise UnknownEntityException(name, [t.value for t in SYNC_ORDER]) from None
        return resolve_entities(names)

    async def _reap_stale_runs(self) -> None:
        try:
            reaped = await reap_stale_runs(self.runs, self.stale_run_minutes)
        except Exception as e:
            # No bloquea la corrida nueva
            await self.db.rollback()
            logger.error(f"No se pudieron cerrar corridas abandonadas: {e}")
            return
        if reaped:
            logger.warning(f"{reaped} corrida(s) abandonada(s) marcadas como failed")

    async def _sync_entity(
        self,
        run_id: int,
        entity: EntityType,
        scope: Optional[str],
        since: Optional[str],
    ) -> EntitySyncResult:
        logger.info(f"[run {run_id}] Sincronizando {entity.value}...")
        started = perf_counter()

        try:
            strategy = build_strategy(entity, self.fetcher, self.records)
            result = await strategy.sync(scope=scope, since=since)
        except Exception as e:
            logger.exception(f"[run {run_id}] Error inesperado en {entity.value}: {e}")
            # Descarta lo pendiente de esta entidad; el recorder recarga su fila
            await self.db.rollback()
            result = EntitySyncResult()
            result.add_error(entity.value, f"{type(e).__name__}: {e}")

        result.elapsed_ms = int((perf_counter() - started) * 1000)

        AuditLogger.log_entity_result(run_id, entity.value, result.to_dict())
        for entry in result.errors:
            AuditLogger.log_error(run_id, entry.to_dict())

        logger.info(
            f"[run {run_id}] {entity.value}: fetched={result.fetched} created={result.created} "
            f"updated={result.updated} errored={result.errored} ({result.elapsed_ms} ms)"
        )
        return result

    def _skip_entity(self, run_id: int, entity: EntityType) -> EntitySyncResult:
        logger.warning(
            f"[run {run_id}] Presupuesto de {self.time_budget_s}s agotado, se saltea {entity.value}"
        )
        result = EntitySyncResult()
        AuditLogger.log_entity_result(run_id, entity.value, result.to_dict())
        return result
