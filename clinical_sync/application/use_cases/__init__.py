"""
Casos de uso de la aplicacion.
"""
from .sync_use_cases import DrChronoSyncUseCases

__all__ = ["DrChronoSyncUseCases"]
