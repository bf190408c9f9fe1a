"""
Integracion con la API REST de DrChrono.
"""

from .client import DrChronoApiError, DrChronoClient, build_drchrono_client

__all__ = ["DrChronoApiError", "DrChronoClient", "build_drchrono_client"]
