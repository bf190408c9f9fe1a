"""
Taxonomia de errores del motor de sincronizacion.

FetchFailure, MapFailure, PrerequisiteMissing y WriteFailure se capturan en
el scope mas chico posible (registro, paciente o entidad) y terminan como
contador + entrada en la lista de errores de la corrida. Solo
SyncAlreadyRunningException y los fallos al crear la corrida salen hacia
el caller.
"""
from typing import Any, Optional

from clinical_sync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base del motor de sync."""

    def __init__(self, message: str, error_code: str = "SYNC_ERROR", details=None, status_code: int = 500):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class FetchFailure(SyncException):
    """El listado paginado upstream fallo para una entidad o un paciente."""

    def __init__(self, entity: str, message: str, parent_id: Optional[Any] = None):
        super().__init__(
            message=f"FetchFailure: {message}",
            error_code="FETCH_FAILURE",
            details={"entity": entity, "parent_id": parent_id},
            status_code=502,
        )


class MapFailure(SyncException):
    """Un registro crudo no se pudo normalizar (estructura invalida)."""

    def __init__(self, entity: str, message: str, record_id: Optional[Any] = None):
        super().__init__(
            message=f"MapFailure: {message}",
            error_code="MAP_FAILURE",
            details={"entity": entity, "record_id": record_id},
        )


class PrerequisiteMissing(SyncException):
    """El paciente padre de un registro aun no existe localmente."""

    def __init__(self, entity: str, record_id: Any, parent_id: Optional[Any]):
        super().__init__(
            message=f"PrerequisiteMissing: paciente {parent_id} no sincronizado",
            error_code="PREREQUISITE_MISSING",
            details={"entity": entity, "record_id": record_id, "parent_id": parent_id},
        )


class WriteFailure(SyncException):
    """El store local rechazo el upsert."""

    def __init__(self, entity: str, message: str, record_id: Optional[Any] = None):
        super().__init__(
            message=f"WriteFailure: {message}",
            error_code="WRITE_FAILURE",
            details={"entity": entity, "record_id": record_id},
        )


class SyncAlreadyRunningException(SyncException):
    """Ya existe una corrida activa para el mismo set de entidades."""

    def __init__(self, lock_key: str):
        super().__init__(
            message="Ya hay una sincronizacion en curso para estas entidades",
            error_code="SYNC_ALREADY_RUNNING",
            details={"lock_key": lock_key},
            status_code=409,
        )


class InvalidSyncRunTransition(SyncException):
    """Transicion no permitida en el state machine de SyncRun."""

    def __init__(self, run_id: Any, current: str, target: str):
        super().__init__(
            message=f"SyncRun {run_id}: transicion invalida {current} -> {target}",
            error_code="INVALID_SYNC_RUN_TRANSITION",
            details={"run_id": run_id, "current": current, "target": target},
        )
