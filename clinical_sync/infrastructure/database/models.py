"""
Modelos de base de datos (ORM).

Una tabla por tipo de entidad de DrChrono, todas con la misma base tecnica
(SyncedRecordMixin), mas las tablas de auditoria de corridas y leases.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Boolean
from sqlalchemy.sql import func

from clinical_sync.infrastructure.database.session import Base


class SyncedRecordMixin:
    """
    Columnas tecnicas comunes a todo registro sincronizado.

    - external_id: id natural de DrChrono, unico por tabla (clave del UPSERT)
    - parent_external_id: id DrChrono del paciente, para entidades por paciente
    - raw_data: registro upstream sin tocar
    - last_synced_at: momento de la ultima escritura desde el sync
    """

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(64), nullable=False, unique=True, index=True)
    parent_external_id = Column(String(64), nullable=True, index=True)
    raw_data = Column(JSON, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<{type(self).__name__}(id={self.id}, external_id={self.external_id})>"


class DoctorModel(SyncedRecordMixin, Base):
    """Medicos de la practica."""

    __tablename__ = "drchrono_doctors"

    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    suffix = Column(String(50), nullable=True)
    specialty = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    cell_phone = Column(String(50), nullable=True)
    office_phone = Column(String(50), nullable=True)
    job_title = Column(String(255), nullable=True)
    practice_group = Column(String(64), nullable=True)
    npi_number = Column(String(32), nullable=True)
    is_account_suspended = Column(Boolean, default=False)
    timezone = Column(String(64), nullable=True)
    country = Column(String(8), nullable=True)


class OfficeModel(SyncedRecordMixin, Base):
    """Oficinas / sedes de la practica."""

    __tablename__ = "drchrono_offices"

    name = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    phone_number = Column(String(50), nullable=True)
    fax_number = Column(String(50), nullable=True)
    country = Column(String(8), nullable=True)
    exam_rooms = Column(JSON, nullable=True)
    online_scheduling = Column(Boolean, default=False)
    start_time = Column(String(20), nullable=True)
    end_time = Column(String(20), nullable=True)


class PatientModel(SyncedRecordMixin, Base):
    """
    Pacientes (roster).

    Es la entidad padre de todo lo clinico: ninguna entidad con prerequisito
    de paciente se escribe si el paciente no esta aqui.
    """

    __tablename__ = "drchrono_patients"

    first_name = Column(String(255), nullable=True)
    middle_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    date_of_birth = Column(String(20), nullable=True)
    gender = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    cell_phone = Column(String(50), nullable=True)
    home_phone = Column(String(50), nullable=True)
    office_phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    chart_id = Column(String(64), nullable=True, index=True)
    doctor = Column(String(64), nullable=True)
    default_pharmacy = Column(String(64), nullable=True)
    preferred_pharmacies = Column(JSON, nullable=True)
    primary_insurance = Column(JSON, nullable=True)
    secondary_insurance = Column(JSON, nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(50), nullable=True)
    emergency_contact_relation = Column(String(100), nullable=True)
    preferred_language = Column(String(50), nullable=True)
    race = Column(String(100), nullable=True)
    ethnicity = Column(String(100), nullable=True)
    patient_status = Column(String(50), nullable=True)
    patient_photo = Column(Text, nullable=True)
    custom_demographics = Column(JSON, nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class AppointmentModel(SyncedRecordMixin, Base):
    """Citas / visitas. parent_external_id = paciente."""

    __tablename__ = "drchrono_appointments"

    doctor = Column(String(64), nullable=True)
    office = Column(String(64), nullable=True)
    scheduled_time = Column(String(40), nullable=True, index=True)
    duration = Column(Integer, nullable=True)
    exam_room = Column(String(64), nullable=True)
    status = Column(String(50), nullable=True)
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    profile = Column(String(64), nullable=True)
    is_walk_in = Column(Boolean, default=False)
    appt_is_break = Column(Boolean, default=False)
    recurring_appointment = Column(Boolean, default=False)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class LabResultModel(SyncedRecordMixin, Base):
    """Resultados de laboratorio. parent_external_id = paciente."""

    __tablename__ = "drchrono_lab_results"

    lab_order_external_id = Column(String(64), nullable=True, index=True)
    test_code = Column(String(64), nullable=True)
    test_name = Column(String(255), nullable=True)
    value = Column(String(255), nullable=True)
    unit = Column(String(50), nullable=True)
    status = Column(String(50), nullable=True)
    abnormal_flag = Column(String(20), nullable=True)
    normal_range = Column(String(100), nullable=True)
    collection_date = Column(String(40), nullable=True)
    result_date = Column(String(40), nullable=True)


class ClinicalNoteModel(SyncedRecordMixin, Base):
    """Notas clinicas. Las secciones se guardan como JSON sin validar."""

    __tablename__ = "drchrono_clinical_notes"

    appointment_external_id = Column(String(64), nullable=True, index=True)
    clinical_note_sections = Column(JSON, nullable=True)
    clinical_note_pdf = Column(Text, nullable=True)
    locked = Column(Boolean, default=False)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class VaccineModel(SyncedRecordMixin, Base):
    """Registros de vacunacion del paciente."""

    __tablename__ = "drchrono_vaccines"

    vaccine_name = Column(String(255), nullable=True)
    cvx_code = Column(String(20), nullable=True)
    administered_date = Column(String(40), nullable=True)
    administered_by = Column(String(255), nullable=True)
    route = Column(String(50), nullable=True)
    site = Column(String(50), nullable=True)
    dose_quantity = Column(String(50), nullable=True)
    dose_unit = Column(String(50), nullable=True)
    lot_number = Column(String(100), nullable=True)
    manufacturer = Column(String(255), nullable=True)
    expiration_date = Column(String(40), nullable=True)


class MedicationModel(SyncedRecordMixin, Base):
    """Medicamentos (sincronizados por paciente)."""

    __tablename__ = "drchrono_medications"

    name = Column(String(255), nullable=True)
    rxnorm = Column(String(64), nullable=True)
    ndc = Column(String(64), nullable=True)
    dosage_quantity = Column(String(50), nullable=True)
    dosage_unit = Column(String(50), nullable=True)
    route = Column(String(50), nullable=True)
    frequency = Column(String(100), nullable=True)
    sig = Column(Text, nullable=True)
    quantity = Column(String(50), nullable=True)
    number_refills = Column(Integer, nullable=True)
    prn = Column(Boolean, default=False)
    order_status = Column(String(50), nullable=True)
    status = Column(String(50), nullable=True)
    date_prescribed = Column(String(40), nullable=True)
    date_started_taking = Column(String(40), nullable=True)
    date_stopped_taking = Column(String(40), nullable=True)
    pharmacy_note = Column(Text, nullable=True)
    doctor = Column(String(64), nullable=True)
    appointment_external_id = Column(String(64), nullable=True)


class AllergyModel(SyncedRecordMixin, Base):
    """Alergias (sincronizadas por paciente)."""

    __tablename__ = "drchrono_allergies"

    reaction = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    snomed_reaction = Column(String(64), nullable=True)
    onset_date = Column(String(40), nullable=True)
    severity = Column(String(50), nullable=True)


class ProblemModel(SyncedRecordMixin, Base):
    """Problemas / diagnosticos (sincronizados por paciente)."""

    __tablename__ = "drchrono_problems"

    name = Column(String(255), nullable=True)
    icd_code = Column(String(20), nullable=True)
    status = Column(String(50), nullable=True)
    date_diagnosis = Column(String(40), nullable=True)
    date_changed = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)
    snomed_ct_code = Column(String(64), nullable=True)
    doctor = Column(String(64), nullable=True)


class LabOrderModel(SyncedRecordMixin, Base):
    """Ordenes de laboratorio. parent_external_id = paciente."""

    __tablename__ = "drchrono_lab_orders"

    doctor = Column(String(64), nullable=True)
    requisition_id = Column(String(64), nullable=True)
    status = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(String(20), nullable=True)
    lab_type = Column(String(64), nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class LabTestModel(SyncedRecordMixin, Base):
    """Tests individuales dentro de una orden de laboratorio."""

    __tablename__ = "drchrono_lab_tests"

    lab_order_external_id = Column(String(64), nullable=True, index=True)
    code = Column(String(64), nullable=True)
    name = Column(String(255), nullable=True)
    status = Column(String(50), nullable=True)
    abn_document = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)


class DocumentModel(SyncedRecordMixin, Base):
    """Documentos del paciente. Solo se guarda la URL, no el archivo."""

    __tablename__ = "drchrono_documents"

    description = Column(Text, nullable=True)
    document_type = Column(String(100), nullable=True)
    document_url = Column(Text, nullable=True)
    date = Column(String(40), nullable=True)
    metatags = Column(JSON, nullable=True)
    doctor = Column(String(64), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class AmendmentModel(SyncedRecordMixin, Base):
    __tablename__ = "drchrono_amendments"

    appointment_external_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(50), nullable=True)
    requested_by = Column(String(255), nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class PatientCommunicationModel(SyncedRecordMixin, Base):
    """Comunicaciones con el paciente (llamadas, mails, portal)."""

    __tablename__ = "drchrono_communications"

    doctor = Column(String(64), nullable=True)
    type = Column(String(50), nullable=True)
    message = Column(Text, nullable=True)
    subject = Column(String(255), nullable=True)
    direction = Column(String(20), nullable=True)
    status = Column(String(50), nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)


class UserModel(SyncedRecordMixin, Base):
    """Usuarios de la cuenta DrChrono (medicos y staff)."""

    __tablename__ = "drchrono_users"

    username = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    is_doctor = Column(Boolean, default=False)
    is_staff = Column(Boolean, default=False)
    practice_group = Column(String(64), nullable=True)
    doctor = Column(String(64), nullable=True)


class TaskModel(SyncedRecordMixin, Base):
    __tablename__ = "drchrono_tasks"

    title = Column(String(255), nullable=True)
    status = Column(String(50), nullable=True)
    category = Column(String(64), nullable=True)
    assignee_user = Column(String(64), nullable=True)
    due_date = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)
    associated_items = Column(JSON, nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class TaskCategoryModel(SyncedRecordMixin, Base):
    __tablename__ = "drchrono_task_categories"

    name = Column(String(255), nullable=True)
    since = Column(String(40), nullable=True)


class AppointmentProfileModel(SyncedRecordMixin, Base):
    """Perfiles de cita (tipo de visita, duracion, color)."""

    __tablename__ = "drchrono_appointment_profiles"

    name = Column(String(255), nullable=True)
    color = Column(String(20), nullable=True)
    duration = Column(Integer, nullable=True)
    online_scheduling = Column(Boolean, default=False)
    reason = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=True)


class MessageModel(SyncedRecordMixin, Base):
    """Mensajes internos de la practica (pueden no tener paciente)."""

    __tablename__ = "drchrono_messages"

    doctor = Column(String(64), nullable=True)
    owner = Column(String(64), nullable=True)
    type = Column(String(50), nullable=True)
    title = Column(String(255), nullable=True)
    body = Column(Text, nullable=True)
    read = Column(Boolean, default=False)
    starred = Column(Boolean, default=False)
    archived = Column(Boolean, default=False)
    responsible_user = Column(String(64), nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class ReminderProfileModel(SyncedRecordMixin, Base):
    __tablename__ = "drchrono_reminder_profiles"

    name = Column(String(255), nullable=True)
    reminders = Column(JSON, nullable=True)


class CustomDemographicModel(SyncedRecordMixin, Base):
    """Definiciones de campos demograficos custom de la practica."""

    __tablename__ = "drchrono_custom_demographics"

    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    field_type = Column(String(50), nullable=True)
    allowed_values = Column(JSON, nullable=True)


class LineItemModel(SyncedRecordMixin, Base):
    """
    Lineas de facturacion (procedimientos cobrados).

    Los importes se guardan como string, tal cual los manda DrChrono.
    """

    __tablename__ = "drchrono_line_items"

    appointment_external_id = Column(String(64), nullable=True, index=True)
    doctor = Column(String(64), nullable=True)
    code = Column(String(64), nullable=True)
    procedure_type = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    quantity = Column(String(32), nullable=True)
    units = Column(String(32), nullable=True)
    price = Column(String(32), nullable=True)
    allowed = Column(String(32), nullable=True)
    balance_ins = Column(String(32), nullable=True)
    balance_pt = Column(String(32), nullable=True)
    balance_total = Column(String(32), nullable=True)
    paid_total = Column(String(32), nullable=True)
    adjustment = Column(String(32), nullable=True)
    ins1_paid = Column(String(32), nullable=True)
    ins2_paid = Column(String(32), nullable=True)
    ins3_paid = Column(String(32), nullable=True)
    pt_paid = Column(String(32), nullable=True)
    billing_status = Column(String(100), nullable=True)
    icd10_codes = Column(JSON, nullable=True)
    posted_date = Column(String(40), nullable=True)
    service_date = Column(String(40), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class TransactionModel(SyncedRecordMixin, Base):
    """Pagos de aseguradoras / ajustes sobre line items."""

    __tablename__ = "drchrono_transactions"

    line_item_external_id = Column(String(64), nullable=True, index=True)
    appointment_external_id = Column(String(64), nullable=True)
    doctor = Column(String(64), nullable=True)
    posted_date = Column(String(40), nullable=True)
    adjustment = Column(String(32), nullable=True)
    adjustment_reason = Column(String(100), nullable=True)
    ins_paid = Column(String(32), nullable=True)
    ins_name = Column(String(255), nullable=True)
    check_date = Column(String(40), nullable=True)
    check_number = Column(String(64), nullable=True)
    claim_status = Column(String(100), nullable=True)
    trace_number = Column(String(100), nullable=True)
    drchrono_updated_at = Column(String(40), nullable=True)


class PatientPaymentModel(SyncedRecordMixin, Base):
    __tablename__ = "drchrono_patient_payments"

    appointment_external_id = Column(String(64), nullable=True)
    doctor = Column(String(64), nullable=True)
    amount = Column(String(32), nullable=True)
    payment_method = Column(String(50), nullable=True)
    payment_transaction_type = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    posted_date = Column(String(40), nullable=True)
    trace_number = Column(String(100), nullable=True)
    drchrono_created_at = Column(String(40), nullable=True)


class SyncRunModel(Base):
    """
    Auditoria de una corrida de sincronizacion.

    Se crea al inicio (status=started), pasa a in_progress antes de procesar
    entidades y se finaliza una sola vez (completed | failed). Nunca se borra.
    """

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    entities = Column(JSON, nullable=False, default=list)
    mode = Column(String(20), nullable=False, default="full")
    scope = Column(String(64), nullable=True)
    since = Column(String(40), nullable=True)
    status = Column(String(20), nullable=False, default="started", index=True)

    # {entity: {fetched, created, updated, errored}}
    results = Column(JSON, nullable=True)
    # [{entity, message, record_id?}]
    errors = Column(JSON, nullable=True)

    total_fetched = Column(Integer, default=0)
    total_created = Column(Integer, default=0)
    total_updated = Column(Integer, default=0)
    total_errored = Column(Integer, default=0)

    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<SyncRun(id={self.id}, status={self.status}, entities={self.entities})>"


class SyncLeaseModel(Base):
    """
    Lease de corta duracion para evitar dos corridas simultaneas
    sobre el mismo set de entidades.
    """

    __tablename__ = "sync_leases"

    lock_key = Column(String(255), primary_key=True)
    holder = Column(String(64), nullable=False)
    acquired_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SyncLease(lock_key={self.lock_key}, holder={self.holder})>"
