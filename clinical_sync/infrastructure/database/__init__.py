"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from clinical_sync.infrastructure.database.models import (
    DoctorModel,
    OfficeModel,
    PatientModel,
    AppointmentModel,
    LabResultModel,
    ClinicalNoteModel,
    VaccineModel,
    MedicationModel,
    AllergyModel,
    ProblemModel,
    LabOrderModel,
    LabTestModel,
    DocumentModel,
    AmendmentModel,
    PatientCommunicationModel,
    UserModel,
    TaskModel,
    TaskCategoryModel,
    AppointmentProfileModel,
    MessageModel,
    ReminderProfileModel,
    CustomDemographicModel,
    LineItemModel,
    TransactionModel,
    PatientPaymentModel,
    SyncRunModel,
    SyncLeaseModel,
)
