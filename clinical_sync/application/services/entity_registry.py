"""
Registro de entidades sincronizables.

Cada EntityType tiene exactamente una definicion: endpoint upstream, modelo
local, mapper y tipo de estrategia. El orquestador nunca decide por string.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from clinical_sync.application.services import field_mappers
from clinical_sync.application.services.entity_sync_strategies import (
    DirectEntitySync,
    EntitySyncStrategy,
    FanoutEntitySync,
    RecordFetcher,
)
from clinical_sync.domain.entities.entity_type import EntityType
from clinical_sync.infrastructure.database.models import (
    AllergyModel,
    AmendmentModel,
    AppointmentModel,
    AppointmentProfileModel,
    ClinicalNoteModel,
    CustomDemographicModel,
    DoctorModel,
    DocumentModel,
    LabOrderModel,
    LabResultModel,
    LabTestModel,
    LineItemModel,
    MedicationModel,
    MessageModel,
    OfficeModel,
    PatientCommunicationModel,
    PatientModel,
    PatientPaymentModel,
    ProblemModel,
    ReminderProfileModel,
    TaskCategoryModel,
    TaskModel,
    TransactionModel,
    UserModel,
    VaccineModel,
)
from clinical_sync.infrastructure.repositories.entity_record_repository import EntityRecordRepository


class SyncKind(str, Enum):
    DIRECT = "direct"
    FANOUT = "fanout"


# DrChrono solo devuelve registros clinicos historicos si se pasa 'since'
HISTORY_SINCE = "2015-01-01"

# Los listados de facturacion aceptan paginas mas grandes
BILLING_PARAMS = {"page_size": 250}


@dataclass(frozen=True)
class EntityDefinition:
    entity: EntityType
    endpoint: str
    model: Any
    mapper: Callable[..., Any]
    kind: SyncKind = SyncKind.DIRECT
    requires_patient: bool = False
    default_params: Mapping[str, Any] = field(default_factory=dict)


ENTITY_DEFINITIONS: dict[EntityType, EntityDefinition] = {
    EntityType.DOCTORS: EntityDefinition(
        entity=EntityType.DOCTORS,
        endpoint="doctors",
        model=DoctorModel,
        mapper=field_mappers.map_doctors,
    ),
    EntityType.OFFICES: EntityDefinition(
        entity=EntityType.OFFICES,
        endpoint="offices",
        model=OfficeModel,
        mapper=field_mappers.map_offices,
    ),
    EntityType.USERS: EntityDefinition(
        entity=EntityType.USERS,
        endpoint="users",
        model=UserModel,
        mapper=field_mappers.map_users,
    ),
    EntityType.TASK_CATEGORIES: EntityDefinition(
        entity=EntityType.TASK_CATEGORIES,
        endpoint="task_categories",
        model=TaskCategoryModel,
        mapper=field_mappers.map_task_categories,
    ),
    EntityType.APPOINTMENT_PROFILES: EntityDefinition(
        entity=EntityType.APPOINTMENT_PROFILES,
        endpoint="appointment_profiles",
        model=AppointmentProfileModel,
        mapper=field_mappers.map_appointment_profiles,
    ),
    EntityType.REMINDER_PROFILES: EntityDefinition(
        entity=EntityType.REMINDER_PROFILES,
        endpoint="reminder_profiles",
        model=ReminderProfileModel,
        mapper=field_mappers.map_reminder_profiles,
    ),
    EntityType.CUSTOM_DEMOGRAPHICS: EntityDefinition(
        entity=EntityType.CUSTOM_DEMOGRAPHICS,
        endpoint="custom_demographics",
        model=CustomDemographicModel,
        mapper=field_mappers.map_custom_demographics,
    ),
    EntityType.TASKS: EntityDefinition(
        entity=EntityType.TASKS,
        endpoint="tasks",
        model=TaskModel,
        mapper=field_mappers.map_tasks,
    ),
    # Un mensaje puede no tener paciente: no hay prerequisito
    EntityType.MESSAGES: EntityDefinition(
        entity=EntityType.MESSAGES,
        endpoint="messages",
        model=MessageModel,
        mapper=field_mappers.map_messages,
    ),
    EntityType.PATIENTS: EntityDefinition(
        entity=EntityType.PATIENTS,
        endpoint="patients",
        model=PatientModel,
        mapper=field_mappers.map_patients,
    ),
    EntityType.APPOINTMENTS: EntityDefinition(
        entity=EntityType.APPOINTMENTS,
        endpoint="appointments",
        model=AppointmentModel,
        mapper=field_mappers.map_appointments,
        requires_patient=True,
        default_params={"since": HISTORY_SINCE},
    ),
    EntityType.LAB_ORDERS: EntityDefinition(
        entity=EntityType.LAB_ORDERS,
        endpoint="lab_orders",
        model=LabOrderModel,
        mapper=field_mappers.map_lab_orders,
        requires_patient=True,
        default_params={"since": HISTORY_SINCE},
    ),
    EntityType.LAB_RESULTS: EntityDefinition(
        entity=EntityType.LAB_RESULTS,
        endpoint="lab_results",
        model=LabResultModel,
        mapper=field_mappers.map_lab_results,
        requires_patient=True,
        default_params={"since": HISTORY_SINCE},
    ),
    EntityType.LAB_TESTS: EntityDefinition(
        entity=EntityType.LAB_TESTS,
        endpoint="lab_tests",
        model=LabTestModel,
        mapper=field_mappers.map_lab_tests,
        requires_patient=True,
        default_params={"since": HISTORY_SINCE},
    ),
    EntityType.CLINICAL_NOTES: EntityDefinition(
        entity=EntityType.CLINICAL_NOTES,
        endpoint="clinical_notes",
        model=ClinicalNoteModel,
        mapper=field_mappers.map_clinical_notes,
        requires_patient=True,
        default_params={"since": HISTORY_SINCE},
    ),
    EntityType.VACCINES: EntityDefinition(
        entity=EntityType.VACCINES,
        endpoint="patient_vaccine_records",
        model=VaccineModel,
        mapper=field_mappers.map_vaccines,
        requires_patient=True,
    ),
    EntityType.DOCUMENTS: EntityDefinition(
        entity=EntityType.DOCUMENTS,
        endpoint="documents",
        model=DocumentModel,
        mapper=field_mappers.map_documents,
        requires_patient=True,
    ),
    EntityType.AMENDMENTS: EntityDefinition(
        entity=EntityType.AMENDMENTS,
        endpoint="amendments",
        model=AmendmentModel,
        mapper=field_mappers.map_amendments,
        requires_patient=True,
    ),
    EntityType.PATIENT_COMMUNICATIONS: EntityDefinition(
        entity=EntityType.PATIENT_COMMUNICATIONS,
        endpoint="patient_communications",
        model=PatientCommunicationModel,
        mapper=field_mappers.map_patient_communications,
        requires_patient=True,
    ),
    EntityType.MEDICATIONS: EntityDefinition(
        entity=EntityType.MEDICATIONS,
        endpoint="medications",
        model=MedicationModel,
        mapper=field_mappers.map_medications,
        kind=SyncKind.FANOUT,
        requires_patient=True,
    ),
    EntityType.ALLERGIES: EntityDefinition(
        entity=EntityType.ALLERGIES,
        endpoint="allergies",
        model=AllergyModel,
        mapper=field_mappers.map_allergies,
        kind=SyncKind.FANOUT,
        requires_patient=True,
    ),
    EntityType.PROBLEMS: EntityDefinition(
        entity=EntityType.PROBLEMS,
        endpoint="problems",
        model=ProblemModel,
        mapper=field_mappers.map_problems,
        kind=SyncKind.FANOUT,
        requires_patient=True,
    ),
    # Facturacion: el paciente se guarda como referencia pero no se exige
    EntityType.LINE_ITEMS: EntityDefinition(
        entity=EntityType.LINE_ITEMS,
        endpoint="line_items",
        model=LineItemModel,
        mapper=field_mappers.map_line_items,
        default_params=BILLING_PARAMS,
    ),
    EntityType.TRANSACTIONS: EntityDefinition(
        entity=EntityType.TRANSACTIONS,
        endpoint="transactions",
        model=TransactionModel,
        mapper=field_mappers.map_transactions,
        default_params=BILLING_PARAMS,
    ),
    EntityType.PATIENT_PAYMENTS: EntityDefinition(
        entity=EntityType.PATIENT_PAYMENTS,
        endpoint="patient_payments",
        model=PatientPaymentModel,
        mapper=field_mappers.map_patient_payments,
        default_params=BILLING_PARAMS,
    ),
}


def get_definition(entity: EntityType) -> EntityDefinition:
    return ENTITY_DEFINITIONS[entity]


def build_strategy(
    entity: EntityType,
    fetcher: RecordFetcher,
    repository: EntityRecordRepository,
) -> EntitySyncStrategy:
    """Instancia la estrategia que corresponde al tipo de entidad."""
    definition = get_definition(entity)
    if definition.kind == SyncKind.FANOUT:
        return FanoutEntitySync(definition, fetcher, repository)
    return DirectEntitySync(definition, fetcher, repository)
