"""
Tipos de entidad sincronizables desde DrChrono.

Enumeracion cerrada: cualquier nombre recibido desde fuera (endpoint, CLI)
se resuelve aqui o se rechaza. No existen entidades "libres" por string.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional


class EntityType(str, Enum):
    """Tipos de registro que se sincronizan como unidad."""
    # Practica
    DOCTORS = "doctors"
    OFFICES = "offices"
    USERS = "users"
    TASK_CATEGORIES = "task_categories"
    APPOINTMENT_PROFILES = "appointment_profiles"
    REMINDER_PROFILES = "reminder_profiles"
    CUSTOM_DEMOGRAPHICS = "custom_demographics"
    TASKS = "tasks"
    MESSAGES = "messages"
    # Clinicas
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    LAB_ORDERS = "lab_orders"
    LAB_RESULTS = "lab_results"
    LAB_TESTS = "lab_tests"
    CLINICAL_NOTES = "clinical_notes"
    VACCINES = "vaccines"
    DOCUMENTS = "documents"
    AMENDMENTS = "amendments"
    PATIENT_COMMUNICATIONS = "patient_communications"
    MEDICATIONS = "medications"
    ALLERGIES = "allergies"
    PROBLEMS = "problems"
    # Facturacion
    LINE_ITEMS = "line_items"
    TRANSACTIONS = "transactions"
    PATIENT_PAYMENTS = "patient_payments"

    @classmethod
    def parse(cls, name: str) -> "EntityType":
        """
        Resuelve un nombre (o alias) a EntityType.

        Raises:
            ValueError: si el nombre no corresponde a ninguna entidad.
        """
        key = (name or "").strip().lower()
        if key in ENTITY_ALIASES:
            return ENTITY_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Entidad desconocida: '{name}'") from None


# Nombres alternativos usados por clientes antiguos
ENTITY_ALIASES = {
    "visits": EntityType.APPOINTMENTS,
    "labs": EntityType.LAB_RESULTS,
    "patient_vaccine_records": EntityType.VACCINES,
    "communications": EntityType.PATIENT_COMMUNICATIONS,
    "payments": EntityType.PATIENT_PAYMENTS,
}


# Orden fijo de procesamiento: referencias de practica, luego pacientes,
# luego entidades que dependen de pacientes (directas y fanout) y al final
# facturacion, que suele ser lo mas voluminoso.
SYNC_ORDER: List[EntityType] = [
    EntityType.DOCTORS,
    EntityType.OFFICES,
    EntityType.USERS,
    EntityType.TASK_CATEGORIES,
    EntityType.APPOINTMENT_PROFILES,
    EntityType.REMINDER_PROFILES,
    EntityType.CUSTOM_DEMOGRAPHICS,
    EntityType.TASKS,
    EntityType.MESSAGES,
    EntityType.PATIENTS,
    EntityType.APPOINTMENTS,
    EntityType.LAB_ORDERS,
    EntityType.LAB_RESULTS,
    EntityType.LAB_TESTS,
    EntityType.CLINICAL_NOTES,
    EntityType.VACCINES,
    EntityType.DOCUMENTS,
    EntityType.AMENDMENTS,
    EntityType.PATIENT_COMMUNICATIONS,
    EntityType.MEDICATIONS,
    EntityType.ALLERGIES,
    EntityType.PROBLEMS,
    EntityType.LINE_ITEMS,
    EntityType.TRANSACTIONS,
    EntityType.PATIENT_PAYMENTS,
]


def resolve_entities(names: Optional[Iterable[str]]) -> List[EntityType]:
    """
    Convierte los nombres pedidos en una lista ordenada y sin duplicados.

    El orden del caller se ignora: siempre se respeta SYNC_ORDER.
    Una lista vacia o None significa "todas las entidades".
    """
    if not names:
        return list(SYNC_ORDER)
    requested = {EntityType.parse(n) for n in names}
    return [entity for entity in SYNC_ORDER if entity in requested]
