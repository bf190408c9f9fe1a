"""
DTOs para la sincronizacion DrChrono -> base local.

El request es deliberadamente laxo con los nombres de entidad: la validacion
contra la enumeracion cerrada la hace el caso de uso (UnknownEntityException).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinical_sync.shared.utils.datetime_utils import DateTimeUtils


class SyncRequestDTO(BaseModel):
    """
    Request para disparar una corrida.

    - `entities` vacio o ausente = todas las entidades.
    - `since` (ISO 8601) activa el modo incremental; `incremental_hours` es
      un atajo que lo calcula como now - N horas.
    """
    entities: Optional[List[str]] = Field(None, description="Entidades a sincronizar (default: todas)")
    scope: Optional[str] = Field(None, description="ID DrChrono del medico para acotar los listados")
    since: Optional[str] = Field(None, description="Solo registros modificados desde esta fecha (ISO 8601)")
    incremental_hours: Optional[int] = Field(None, ge=1, le=24 * 365, description="Atajo: since = ahora - N horas")

    @field_validator("since")
    @classmethod
    def since_must_be_iso(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        parsed = DateTimeUtils.from_iso_string(v)
        if parsed is None:
            raise ValueError("since debe ser una fecha ISO 8601")
        return DateTimeUtils.to_upstream_since(parsed)


class EntityResultDTO(BaseModel):
    fetched: int = 0
    created: int = 0
    updated: int = 0
    errored: int = 0
    elapsed_ms: int = 0


class SyncErrorDTO(BaseModel):
    entity: str
    message: str
    record_id: Optional[str] = None


class SyncRunReportDTO(BaseModel):
    """Respuesta del trigger: siempre 200, el resultado va en `status`."""

    sync_run_id: int
    status: str
    results: Dict[str, EntityResultDTO]
    duration_ms: int
    errors: List[SyncErrorDTO] = Field(default_factory=list)


class SyncRunSummaryDTO(BaseModel):
    """Fila de sync_runs tal cual, para los endpoints de consulta."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    entities: List[str]
    mode: str
    scope: Optional[str] = None
    since: Optional[str] = None
    status: str
    results: Optional[Dict[str, EntityResultDTO]] = None
    errors: Optional[List[SyncErrorDTO]] = None
    total_fetched: int = 0
    total_created: int = 0
    total_updated: int = 0
    total_errored: int = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
