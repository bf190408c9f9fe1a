"""
Estrategias de sincronizacion por entidad.

- DirectEntitySync: un solo listado paginado para toda la entidad.
- FanoutEntitySync: un listado por cada paciente ya sincronizado.

Ninguna estrategia deja escapar errores de fetch, mapeo o escritura: todo
termina como contador + entrada en EntitySyncResult.errors.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Protocol

from loguru import logger

from clinical_sync.domain.entities.sync_run import EntitySyncResult
from clinical_sync.infrastructure.database.models import PatientModel
from clinical_sync.infrastructure.external.drchrono import DrChronoApiError
from clinical_sync.infrastructure.repositories.entity_record_repository import (
    EntityRecordRepository,
    UpsertOutcome,
)
from clinical_sync.shared.exceptions.sync import (
    FetchFailure,
    MapFailure,
    PrerequisiteMissing,
    WriteFailure,
)
from clinical_sync.shared.utils.datetime_utils import utc_now


class RecordFetcher(Protocol):
    """Lo unico que las estrategias necesitan del cliente upstream."""

    async def fetch_all(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        ...


class EntitySyncStrategy:
    """Base comun: mapeo, chequeo de paciente y UPSERT de un lote de registros."""

    def __init__(self, definition, fetcher: RecordFetcher, repository: EntityRecordRepository):
        self.definition = definition
        self.fetcher = fetcher
        self.repository = repository

    @property
    def entity(self) -> str:
        return self.definition.entity.value

    async def sync(self, scope: Optional[str] = None, since: Optional[str] = None) -> EntitySyncResult:
        raise NotImplementedError

    def _build_params(
        self,
        scope: Optional[str],
        since: Optional[str],
        patient_id: Optional[str] = None,
    ) -> dict[str, Any]:
        # defaults -> patient -> doctor -> since (since pisa al default)
        params: dict[str, Any] = dict(self.definition.default_params)
        if patient_id is not None:
            params["patient"] = patient_id
        if scope:
            params["doctor"] = scope
        if since:
            params["since"] = since
        return params

    async def _fetch(self, params: dict[str, Any], parent_id: Optional[str] = None) -> list[dict[str, Any]]:
        try:
            return await self.fetcher.fetch_all(self.definition.endpoint, params)
        except DrChronoApiError as e:
            raise FetchFailure(self.entity, str(e), parent_id=parent_id) from e

    async def _write_records(
        self,
        records: list[Any],
        result: EntitySyncResult,
        *,
        parent_external_id: Optional[str] = None,
        known_parents: Optional[set[str]] = None,
    ) -> None:
        synced_at = utc_now()

        for raw in records:
            raw_id = raw.get("id") if isinstance(raw, Mapping) else None

            try:
                row = self.definition.mapper(
                    raw, parent_external_id=parent_external_id, synced_at=synced_at
                )
            except MapFailure as e:
                logger.warning(f"[{self.entity}] {e.message}")
                result.add_error(self.entity, e.message, raw_id)
                continue

            if row is None:
                logger.warning(f"[{self.entity}] registro sin id descartado")
                result.add_error(self.entity, "MapFailure: registro sin id", raw_id)
                continue

            if known_parents is not None and row["parent_external_id"] not in known_parents:
                missing = PrerequisiteMissing(self.entity, row["external_id"], row["parent_external_id"])
                logger.warning(f"[{self.entity}] {row['external_id']}: {missing.message}")
                result.add_error(self.entity, missing.message, row["external_id"])
                continue

            write = await self.repository.upsert(self.definition.model, row)
            if not write.ok:
                failure = WriteFailure(self.entity, write.error or "upsert rechazado", row["external_id"])
                result.add_error(self.entity, failure.message, row["external_id"])
            elif write.outcome == UpsertOutcome.INSERTED:
                result.created += 1
            else:
                result.updated += 1


class DirectEntitySync(EntitySyncStrategy):
    """
    Un listado paginado, mapeo registro a registro y UPSERT por external_id.

    Si la entidad requiere paciente, los registros cuyo paciente no existe
    localmente se saltean y cuentan como error.
    """

    async def sync(self, scope: Optional[str] = None, since: Optional[str] = None) -> EntitySyncResult:
        result = EntitySyncResult()

        try:
            records = await self._fetch(self._build_params(scope, since))
        except FetchFailure as e:
            logger.error(f"[{self.entity}] {e.message}")
            result.add_error(self.entity, e.message)
            return result

        result.fetched = len(records)
        logger.info(f"[{self.entity}] {result.fetched} registros obtenidos")

        known_parents = None
        if self.definition.requires_patient:
            known_parents = set(await self.repository.list_external_ids(PatientModel))

        await self._write_records(records, result, known_parents=known_parents)
        return result


class FanoutEntitySync(EntitySyncStrategy):
    """
    Un listado por paciente sincronizado, en secuencia.

    Sin pacientes locales no se hace ninguna llamada upstream. Un fallo de
    fetch en un paciente se cuenta (record_id = paciente) y se sigue con el
    siguiente.
    """

    async def sync(self, scope: Optional[str] = None, since: Optional[str] = None) -> EntitySyncResult:
        result = EntitySyncResult()

        patient_ids = await self.repository.list_external_ids(PatientModel)
        if not patient_ids:
            logger.info(f"[{self.entity}] sin pacientes locales, nada que sincronizar")
            return result

        logger.info(f"[{self.entity}] fanout sobre {len(patient_ids)} pacientes")

        for patient_id in patient_ids:
            partial = EntitySyncResult()
            try:
                records = await self._fetch(
                    self._build_params(scope, since, patient_id=patient_id),
                    parent_id=patient_id,
                )
            except FetchFailure as e:
                logger.error(f"[{self.entity}] paciente {patient_id}: {e.message}")
                partial.add_error(self.entity, e.message, patient_id)
            else:
                partial.fetched = len(records)
                await self._write_records(records, partial, parent_external_id=patient_id)
                if partial.fetched:
                    logger.debug(
                        f"[{self.entity}] paciente {patient_id}: fetched={partial.fetched} "
                        f"written={partial.written} errored={partial.errored}"
                    )
            result.merge(partial)

        return result
