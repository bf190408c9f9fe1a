"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinical_sync.application.use_cases.sync_use_cases import DrChronoSyncUseCases
from clinical_sync.core.config import settings
from clinical_sync.infrastructure.database.session import get_db
from clinical_sync.infrastructure.external.drchrono import DrChronoClient, build_drchrono_client


def get_drchrono_client() -> DrChronoClient:
    """
    Dependencia para obtener el cliente de DrChrono.

    Se crea uno por request: el token se lee de la configuracion actual.
    """
    return build_drchrono_client(settings)


async def get_drchrono_sync_use_cases(
    db: AsyncSession = Depends(get_db),
    client: DrChronoClient = Depends(get_drchrono_client),
) -> DrChronoSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    Args:
        db: Sesion de base de datos
        client: Cliente upstream

    Returns:
        DrChronoSyncUseCases: Orquestador de corridas
    """
    return DrChronoSyncUseCases(db, client)
