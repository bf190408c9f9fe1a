"""
Sync Run Recorder.

Persiste el ciclo de vida de una corrida:
    start() -> started (commit antes de tocar cualquier entidad)
    mark_in_progress() -> in_progress
    finalize() -> completed | failed (una sola vez)
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from loguru import logger

from clinical_sync.domain.entities.sync_run import (
    ALLOWED_TRANSITIONS,
    EntitySyncResult,
    SyncErrorEntry,
    SyncMode,
    SyncRunStatus,
)
from clinical_sync.infrastructure.database.models import SyncRunModel
from clinical_sync.infrastructure.repositories.sync_run_repository import SyncRunRepository
from clinical_sync.shared.exceptions.sync import InvalidSyncRunTransition
from clinical_sync.shared.utils.datetime_utils import DateTimeUtils, utc_now


def decide_final_status(results: Dict[str, EntitySyncResult]) -> SyncRunStatus:
    """
    completed si alguna entidad escribio al menos un registro;
    failed si no hubo escrituras pero si errores;
    completed si no hubo nada que hacer.
    """
    if any(r.written > 0 for r in results.values()):
        return SyncRunStatus.COMPLETED
    if any(r.errored > 0 for r in results.values()):
        return SyncRunStatus.FAILED
    return SyncRunStatus.COMPLETED


def _check_transition(run: SyncRunModel, target: SyncRunStatus) -> None:
    current = SyncRunStatus(run.status)
    if current.is_terminal or target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidSyncRunTransition(run.id, current.value, target.value)


class SyncRunRecorder:
    """
    Una instancia por corrida.

    La sesion es compartida con las estrategias: un rollback de una entidad
    expira self.run, por eso cada transicion recarga la fila antes de leerla.
    """

    def __init__(self, repository: SyncRunRepository):
        self.repository = repository
        self.run: Optional[SyncRunModel] = None
        self._run_id: Optional[int] = None
        self._started_at: Optional[datetime] = None

    @property
    def run_id(self) -> Optional[int]:
        return self._run_id

    async def start(
        self,
        entities: List[str],
        mode: SyncMode = SyncMode.FULL,
        scope: Optional[str] = None,
        since: Optional[str] = None,
    ) -> SyncRunModel:
        self.run = await self.repository.create(
            entities=list(entities),
            mode=mode.value,
            scope=scope,
            since=since,
            status=SyncRunStatus.STARTED.value,
            started_at=utc_now(),
        )
        self._run_id = self.run.id
        self._started_at = self.run.started_at
        logger.info(f"SyncRun {self._run_id} creado ({mode.value}): {entities}")
        return self.run

    async def mark_in_progress(self) -> SyncRunModel:
        self.run = await self.repository.refresh(self.run)
        _check_transition(self.run, SyncRunStatus.IN_PROGRESS)
        self.run = await self.repository.update(self.run, status=SyncRunStatus.IN_PROGRESS.value)
        return self.run

    async def finalize(self, results: Dict[str, EntitySyncResult]) -> SyncRunModel:
        """
        Cierra la corrida con conteos, errores, status final y duracion.

        duration_ms se calcula siempre desde los timestamps persistidos.
        """
        status = decide_final_status(results)
        self.run = await self.repository.refresh(self.run)
        _check_transition(self.run, status)

        completed_at = utc_now()
        errors: List[SyncErrorEntry] = [e for r in results.values() for e in r.errors]

        self.run = await self.repository.update(
            self.run,
            status=status.value,
            results={entity: r.to_dict() for entity, r in results.items()},
            errors=[e.to_dict() for e in errors],
            total_fetched=sum(r.fetched for r in results.values()),
            total_created=sum(r.created for r in results.values()),
            total_updated=sum(r.updated for r in results.values()),
            total_errored=sum(r.errored for r in results.values()),
            completed_at=completed_at,
            duration_ms=DateTimeUtils.elapsed_ms(self._started_at, completed_at),
        )
        return self.run


async def reap_stale_runs(repository: SyncRunRepository, max_age_minutes: int) -> int:
    """
    Marca como failed las corridas que quedaron en started/in_progress
    por mas de max_age_minutes (p.ej. el proceso murio a mitad).

    Returns:
        int: cantidad de corridas cerradas
    """
    now = utc_now()
    stale = await repository.list_unfinished_before(now - timedelta(minutes=max_age_minutes))

    for run in stale:
        entry = SyncErrorEntry(
            entity="sync_run",
            message=f"Corrida abandonada: sin finalizar tras {max_age_minutes} minutos",
        )
        await repository.update(
            run,
            status=SyncRunStatus.FAILED.value,
            errors=list(run.errors or []) + [entry.to_dict()],
            completed_at=now,
            duration_ms=DateTimeUtils.elapsed_ms(run.started_at, now),
        )
        logger.warning(f"SyncRun {run.id} marcado como failed (stale desde {run.started_at})")

    return len(stale)
