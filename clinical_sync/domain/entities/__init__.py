"""
Entidades del dominio.
"""
from clinical_sync.domain.entities.entity_type import EntityType, SYNC_ORDER, resolve_entities
from clinical_sync.domain.entities.sync_run import (
    EntitySyncResult,
    SyncErrorEntry,
    SyncMode,
    SyncRunStatus,
)

__all__ = [
    "EntityType",
    "SYNC_ORDER",
    "resolve_entities",
    "EntitySyncResult",
    "SyncErrorEntry",
    "SyncMode",
    "SyncRunStatus",
]
