"""
Excepciones relacionadas con la lógica de dominio.
"""
from typing import Any

from clinical_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepción cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class ValidationException(DomainException):
    """Excepción para errores de validación."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class UnknownEntityException(ValidationException):
    """Excepcion cuando se pide sincronizar una entidad que no existe."""

    def __init__(self, entity_name: str, available: list[str]):
        super().__init__(
            message=f"Entidad desconocida: '{entity_name}'",
            field="entities",
        )
        self.error_code = "UNKNOWN_ENTITY"
        self.details["available"] = available
