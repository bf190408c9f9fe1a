"""
Entidades de dominio de una corrida de sincronizacion.

Se mantienen libres de I/O: el recorder y el orquestador las construyen,
los repositorios solo las serializan.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class SyncRunStatus(str, Enum):
    """
    Estados de una corrida.

    started -> in_progress -> {completed, failed}. Los dos ultimos son terminales.
    """
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncRunStatus.COMPLETED, SyncRunStatus.FAILED)


# Transiciones validas del state machine
ALLOWED_TRANSITIONS = {
    SyncRunStatus.STARTED: {SyncRunStatus.IN_PROGRESS, SyncRunStatus.FAILED},
    SyncRunStatus.IN_PROGRESS: {SyncRunStatus.COMPLETED, SyncRunStatus.FAILED},
    SyncRunStatus.COMPLETED: set(),
    SyncRunStatus.FAILED: set(),
}


class SyncMode(str, Enum):
    """Modo de la corrida: full (sin `since`) o incremental."""
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass(frozen=True)
class SyncErrorEntry:
    """Error puntual de una corrida (por registro, por paciente o por entidad)."""

    entity: str
    message: str
    record_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"entity": self.entity, "message": self.message}
        if self.record_id is not None:
            data["record_id"] = self.record_id
        return data


@dataclass
class EntitySyncResult:
    """
    Conteos agregados de una entidad dentro de una corrida.

    `errors` acompaña a los conteos para que el orquestador arme la lista
    de errores de la corrida; no se persiste dentro de `results`.
    `elapsed_ms` lo completa el orquestador al terminar la entidad.
    """

    fetched: int = 0
    created: int = 0
    updated: int = 0
    errored: int = 0
    errors: List[SyncErrorEntry] = field(default_factory=list)
    elapsed_ms: int = 0

    @property
    def written(self) -> int:
        """Escrituras exitosas (inserts + updates)."""
        return self.created + self.updated

    def add_error(self, entity: str, message: str, record_id: Optional[Any] = None) -> None:
        self.errored += 1
        self.errors.append(
            SyncErrorEntry(
                entity=entity,
                message=message,
                record_id=str(record_id) if record_id is not None else None,
            )
        )

    def merge(self, other: "EntitySyncResult") -> None:
        """Suma otro resultado parcial (p.ej. el de un paciente en fanout)."""
        self.fetched += other.fetched
        self.created += other.created
        self.updated += other.updated
        self.errored += other.errored
        self.errors.extend(other.errors)

    def counts(self) -> Dict[str, int]:
        """Los cuatro contadores, sin errores ni tiempos."""
        data = asdict(self)
        data.pop("errors")
        data.pop("elapsed_ms")
        return data

    def to_dict(self) -> Dict[str, int]:
        """Forma persistida en SyncRun.results."""
        return {**self.counts(), "elapsed_ms": self.elapsed_ms}
