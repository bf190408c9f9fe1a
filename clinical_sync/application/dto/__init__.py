"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    SyncRequestDTO,
    EntityResultDTO,
    SyncErrorDTO,
    SyncRunReportDTO,
    SyncRunSummaryDTO,
)

__all__ = [
    "SyncRequestDTO",
    "EntityResultDTO",
    "SyncErrorDTO",
    "SyncRunReportDTO",
    "SyncRunSummaryDTO",
]
