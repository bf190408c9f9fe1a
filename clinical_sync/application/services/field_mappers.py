"""
Field mappers: registro crudo de DrChrono -> fila normalizada.

Una funcion pura por tipo de entidad, sin I/O. Reglas comunes:
- sin 'id' upstream -> None (el caller lo cuenta como error y sigue)
- input que no es un objeto -> MapFailure
- todo campo opcional esta presente en la fila, por defecto None
- campos JSON (seguros, secciones, demograficos) pasan sin validar
- raw_data guarda el registro completo
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from clinical_sync.shared.exceptions.sync import MapFailure
from clinical_sync.shared.utils.datetime_utils import utc_now


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _ref(value: Any) -> Optional[str]:
    """Referencia a otro objeto DrChrono (id numerico) como string."""
    if value is None or value == "" or isinstance(value, (dict, list)):
        return None
    return str(value)


def _int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flag(value: Any) -> bool:
    return bool(value)


def _json(value: Any) -> Any:
    # [] y {} son datos validos upstream; solo "" se trata como ausente
    if value is None or value == "":
        return None
    return value


def _base(
    entity: str,
    raw: Any,
    parent_external_id: Optional[str],
    synced_at: Optional[datetime],
) -> Optional[dict[str, Any]]:
    if not isinstance(raw, Mapping):
        raise MapFailure(entity, f"registro invalido ({type(raw).__name__})")

    external_id = _ref(raw.get("id"))
    if external_id is None:
        return None

    return {
        "external_id": external_id,
        "parent_external_id": parent_external_id,
        "raw_data": dict(raw),
        "last_synced_at": synced_at or utc_now(),
    }


def _patient_parent(raw: Mapping, parent_external_id: Optional[str]) -> Optional[str]:
    # En fanout el padre viene inyectado; en listados directos sale del registro
    if parent_external_id is not None:
        return str(parent_external_id)
    return _ref(raw.get("patient"))


def map_doctors(raw, parent_external_id=None, synced_at=None):
    row = _base("doctors", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "first_name": _text(raw.get("first_name")),
        "last_name": _text(raw.get("last_name")),
        "suffix": _text(raw.get("suffix")),
        "specialty": _text(raw.get("specialty")),
        "email": _text(raw.get("email")),
        "cell_phone": _text(raw.get("cell_phone")),
        "office_phone": _text(raw.get("office_phone")),
        "job_title": _text(raw.get("job_title")),
        "practice_group": _ref(raw.get("practice_group")),
        "npi_number": _text(raw.get("npi_number")),
        "is_account_suspended": _flag(raw.get("is_account_suspended")),
        "timezone": _text(raw.get("timezone")),
        "country": _text(raw.get("country")),
    })
    return row


def map_offices(raw, parent_external_id=None, synced_at=None):
    row = _base("offices", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "name": _text(raw.get("name")),
        "address": _text(raw.get("address")),
        "city": _text(raw.get("city")),
        "state": _text(raw.get("state")),
        "zip_code": _text(raw.get("zip_code")),
        "phone_number": _text(raw.get("phone_number")),
        "fax_number": _text(raw.get("fax_number")),
        "country": _text(raw.get("country")),
        "exam_rooms": _json(raw.get("exam_rooms")),
        "online_scheduling": _flag(raw.get("online_scheduling")),
        "start_time": _text(raw.get("start_time")),
        "end_time": _text(raw.get("end_time")),
    })
    return row


def map_patients(raw, parent_external_id=None, synced_at=None):
    row = _base("patients", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "first_name": _text(raw.get("first_name")),
        "middle_name": _text(raw.get("middle_name")),
        "last_name": _text(raw.get("last_name")),
        "date_of_birth": _text(raw.get("date_of_birth")),
        "gender": _text(raw.get("gender")),
        "email": _text(raw.get("email")),
        "cell_phone": _text(raw.get("cell_phone")),
        "home_phone": _text(raw.get("home_phone")),
        "office_phone": _text(raw.get("office_phone")),
        "address": _text(raw.get("address")),
        "city": _text(raw.get("city")),
        "state": _text(raw.get("state")),
        "zip_code": _text(raw.get("zip_code")),
        "chart_id": _text(raw.get("chart_id")),
        "doctor": _ref(raw.get("doctor")),
        "default_pharmacy": _ref(raw.get("default_pharmacy")),
        "preferred_pharmacies": _json(raw.get("preferred_pharmacies")),
        "primary_insurance": _json(raw.get("primary_insurance")),
        "secondary_insurance": _json(raw.get("secondary_insurance")),
        "emergency_contact_name": _text(raw.get("emergency_contact_name")),
        "emergency_contact_phone": _text(raw.get("emergency_contact_phone")),
        "emergency_contact_relation": _text(raw.get("emergency_contact_relation")),
        "preferred_language": _text(raw.get("preferred_language")),
        "race": _text(raw.get("race")),
        "ethnicity": _text(raw.get("ethnicity")),
        "patient_status": _text(raw.get("patient_status")),
        "patient_photo": _text(raw.get("patient_photo")),
        "custom_demographics": _json(raw.get("custom_demographics")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_appointments(raw, parent_external_id=None, synced_at=None):
    row = _base("appointments", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "doctor": _ref(raw.get("doctor")),
        "office": _ref(raw.get("office")),
        "scheduled_time": _text(raw.get("scheduled_time")),
        "duration": _int(raw.get("duration")),
        "exam_room": _ref(raw.get("exam_room")),
        "status": _text(raw.get("status")),
        "reason": _text(raw.get("reason")),
        "notes": _text(raw.get("notes")),
        "profile": _ref(raw.get("profile")),
        "is_walk_in": _flag(raw.get("is_walk_in")),
        "appt_is_break": _flag(raw.get("appt_is_break")),
        "recurring_appointment": _flag(raw.get("recurring_appointment")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_lab_results(raw, parent_external_id=None, synced_at=None):
    row = _base("lab_results", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "lab_order_external_id": _ref(raw.get("order")),
        "test_code": _text(raw.get("observation_code")),
        "test_name": _text(raw.get("observation_description")),
        "value": _text(raw.get("value")),
        "unit": _text(raw.get("value_units")),
        "status": _text(raw.get("status")),
        "abnormal_flag": _text(raw.get("lab_abnormal_flag") or raw.get("abnormal_flag")),
        "normal_range": _text(raw.get("normal_range")),
        "collection_date": _text(raw.get("collection_date")),
        "result_date": _text(raw.get("result_date") or raw.get("test_performed_date")),
    })
    return row


def map_clinical_notes(raw, parent_external_id=None, synced_at=None):
    row = _base("clinical_notes", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "appointment_external_id": _ref(raw.get("appointment")),
        "clinical_note_sections": _json(raw.get("clinical_note_sections")),
        "clinical_note_pdf": _text(raw.get("clinical_note_pdf")),
        "locked": _flag(raw.get("locked")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_vaccines(raw, parent_external_id=None, synced_at=None):
    row = _base("vaccines", raw, None, synced_at)
    if row is None:
        return None
    vaccine = raw.get("vaccine")
    vaccine_name = raw.get("name") or (vaccine.get("name") if isinstance(vaccine, Mapping) else None)

    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "vaccine_name": _text(vaccine_name),
        "cvx_code": _text(raw.get("cvx_code")),
        "administered_date": _text(raw.get("administered_date")),
        "administered_by": _text(raw.get("administered_by")),
        "route": _text(raw.get("route")),
        "site": _text(raw.get("site")),
        "dose_quantity": _text(raw.get("dose_quantity")),
        "dose_unit": _text(raw.get("dose_unit")),
        "lot_number": _text(raw.get("lot_number")),
        "manufacturer": _text(raw.get("manufacturer")),
        "expiration_date": _text(raw.get("expiration_date")),
    })
    return row


def map_medications(raw, parent_external_id=None, synced_at=None):
    row = _base("medications", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "name": _text(raw.get("name") or raw.get("medication")),
        "rxnorm": _text(raw.get("rxnorm")),
        "ndc": _text(raw.get("ndc")),
        "dosage_quantity": _text(raw.get("dosage_quantity")),
        "dosage_unit": _text(raw.get("dosage_unit")),
        "route": _text(raw.get("route")),
        "frequency": _text(raw.get("frequency")),
        "sig": _text(raw.get("sig")),
        "quantity": _text(raw.get("quantity")),
        "number_refills": _int(raw.get("number_refills")),
        "prn": _flag(raw.get("prn")),
        "order_status": _text(raw.get("order_status")),
        "status": _text(raw.get("status")),
        "date_prescribed": _text(raw.get("date_prescribed")),
        "date_started_taking": _text(raw.get("date_started_taking")),
        "date_stopped_taking": _text(raw.get("date_stopped_taking")),
        "pharmacy_note": _text(raw.get("pharmacy_note")),
        "doctor": _ref(raw.get("doctor")),
        "appointment_external_id": _ref(raw.get("appointment")),
    })
    return row


def map_allergies(raw, parent_external_id=None, synced_at=None):
    row = _base("allergies", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "reaction": _text(raw.get("reaction")),
        "description": _text(raw.get("description")),
        "status": _text(raw.get("status")),
        "notes": _text(raw.get("notes")),
        "snomed_reaction": _text(raw.get("snomed_reaction")),
        "onset_date": _text(raw.get("onset_date")),
        "severity": _text(raw.get("severity")),
    })
    return row


def map_problems(raw, parent_external_id=None, synced_at=None):
    row = _base("problems", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "name": _text(raw.get("name")),
        "icd_code": _text(raw.get("icd_code")),
        "status": _text(raw.get("status")),
        "date_diagnosis": _text(raw.get("date_diagnosis")),
        "date_changed": _text(raw.get("date_changed")),
        "notes": _text(raw.get("notes")),
        "snomed_ct_code": _text(raw.get("snomed_ct_code")),
        "doctor": _ref(raw.get("doctor")),
    })
    return row


def map_lab_orders(raw, parent_external_id=None, synced_at=None):
    row = _base("lab_orders", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "doctor": _ref(raw.get("doctor")),
        "requisition_id": _text(raw.get("requisition_id")),
        "status": _text(raw.get("status")),
        "notes": _text(raw.get("notes")),
        "priority": _text(raw.get("priority")) or "normal",
        "lab_type": _text(raw.get("sublab")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_lab_tests(raw, parent_external_id=None, synced_at=None):
    row = _base("lab_tests", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "lab_order_external_id": _ref(raw.get("order")),
        "code": _text(raw.get("code")),
        "name": _text(raw.get("name")),
        "status": _text(raw.get("status")),
        "abn_document": _text(raw.get("abn_document")),
        "notes": _text(raw.get("notes")),
        "drchrono_created_at": _text(raw.get("created_at")),
    })
    return row


def map_documents(raw, parent_external_id=None, synced_at=None):
    row = _base("documents", raw, None, synced_at)
    if row is None:
        return None
    # 'document' es la URL firmada; si viene otra cosa no se guarda
    document = raw.get("document")

    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "description": _text(raw.get("description")),
        "document_type": _text(raw.get("document_type")),
        "document_url": document if isinstance(document, str) and document else None,
        "date": _text(raw.get("date") or raw.get("created_at")),
        "metatags": _json(raw.get("metatags")),
        "doctor": _ref(raw.get("doctor")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_amendments(raw, parent_external_id=None, synced_at=None):
    row = _base("amendments", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "appointment_external_id": _ref(raw.get("appointment")),
        "notes": _text(raw.get("notes")),
        "status": _text(raw.get("status")),
        "requested_by": _text(raw.get("requested_by")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_patient_communications(raw, parent_external_id=None, synced_at=None):
    row = _base("patient_communications", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "doctor": _ref(raw.get("doctor")),
        "type": _text(raw.get("type")),
        "message": _text(raw.get("message")),
        "subject": _text(raw.get("subject")),
        "direction": _text(raw.get("direction")),
        "status": _text(raw.get("status")),
        "drchrono_created_at": _text(raw.get("created_at")),
    })
    return row


def map_users(raw, parent_external_id=None, synced_at=None):
    row = _base("users", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "username": _text(raw.get("username")),
        "first_name": _text(raw.get("first_name")),
        "last_name": _text(raw.get("last_name")),
        "email": _text(raw.get("email")),
        "is_doctor": _flag(raw.get("is_doctor")),
        "is_staff": _flag(raw.get("is_staff")),
        "practice_group": _ref(raw.get("practice_group")),
        "doctor": _ref(raw.get("doctor")),
    })
    return row


def map_tasks(raw, parent_external_id=None, synced_at=None):
    row = _base("tasks", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "title": _text(raw.get("title")),
        "status": _text(raw.get("status")),
        "category": _ref(raw.get("category")),
        "assignee_user": _ref(raw.get("assignee_user")),
        "due_date": _text(raw.get("due_date")),
        "notes": _text(raw.get("notes")),
        "associated_items": _json(raw.get("associated_items")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_task_categories(raw, parent_external_id=None, synced_at=None):
    row = _base("task_categories", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "name": _text(raw.get("name")),
        "since": _text(raw.get("since")),
    })
    return row


def map_appointment_profiles(raw, parent_external_id=None, synced_at=None):
    row = _base("appointment_profiles", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "name": _text(raw.get("name")),
        "color": _text(raw.get("color")),
        "duration": _int(raw.get("duration")),
        "online_scheduling": _flag(raw.get("online_scheduling")),
        "reason": _text(raw.get("reason")),
        "sort_order": _int(raw.get("sort_order")),
    })
    return row


def map_messages(raw, parent_external_id=None, synced_at=None):
    row = _base("messages", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "doctor": _ref(raw.get("doctor")),
        "owner": _ref(raw.get("owner")),
        "type": _text(raw.get("type")),
        "title": _text(raw.get("title") or raw.get("subject")),
        "body": _text(raw.get("body") or raw.get("message")),
        "read": _flag(raw.get("read")),
        "starred": _flag(raw.get("starred")),
        "archived": _flag(raw.get("archived")),
        "responsible_user": _ref(raw.get("responsible_user")),
        "drchrono_created_at": _text(raw.get("created_at")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_reminder_profiles(raw, parent_external_id=None, synced_at=None):
    row = _base("reminder_profiles", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "name": _text(raw.get("name")),
        "reminders": _json(raw.get("reminders")),
    })
    return row


def map_custom_demographics(raw, parent_external_id=None, synced_at=None):
    row = _base("custom_demographics", raw, None, synced_at)
    if row is None:
        return None
    row.update({
        "name": _text(raw.get("name")),
        "description": _text(raw.get("description")),
        "field_type": _text(raw.get("field_type")),
        "allowed_values": _json(raw.get("allowed_values")),
    })
    return row


def map_line_items(raw, parent_external_id=None, synced_at=None):
    row = _base("line_items", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "appointment_external_id": _ref(raw.get("appointment")),
        "doctor": _ref(raw.get("doctor")),
        "code": _text(raw.get("code")),
        "procedure_type": _text(raw.get("procedure_type")),
        "description": _text(raw.get("description")),
        "quantity": _text(raw.get("quantity")),
        "units": _text(raw.get("units")),
        "price": _text(raw.get("price")),
        "allowed": _text(raw.get("allowed")),
        "balance_ins": _text(raw.get("balance_ins")),
        "balance_pt": _text(raw.get("balance_pt")),
        "balance_total": _text(raw.get("balance_total")),
        "paid_total": _text(raw.get("paid_total")),
        "adjustment": _text(raw.get("adjustment")),
        "ins1_paid": _text(raw.get("ins1_paid")),
        "ins2_paid": _text(raw.get("ins2_paid")),
        "ins3_paid": _text(raw.get("ins3_paid")),
        "pt_paid": _text(raw.get("pt_paid")),
        "billing_status": _text(raw.get("billing_status")),
        "icd10_codes": _json(raw.get("icd10_codes")),
        "posted_date": _text(raw.get("posted_date")),
        "service_date": _text(raw.get("service_date")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_transactions(raw, parent_external_id=None, synced_at=None):
    row = _base("transactions", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "line_item_external_id": _ref(raw.get("line_item")),
        "appointment_external_id": _ref(raw.get("appointment")),
        "doctor": _ref(raw.get("doctor")),
        "posted_date": _text(raw.get("posted_date")),
        "adjustment": _text(raw.get("adjustment")),
        "adjustment_reason": _text(raw.get("adjustment_reason")),
        "ins_paid": _text(raw.get("ins_paid")),
        "ins_name": _text(raw.get("ins_name")),
        "check_date": _text(raw.get("check_date")),
        "check_number": _text(raw.get("check_number")),
        "claim_status": _text(raw.get("claim_status")),
        "trace_number": _text(raw.get("trace_number")),
        "drchrono_updated_at": _text(raw.get("updated_at")),
    })
    return row


def map_patient_payments(raw, parent_external_id=None, synced_at=None):
    row = _base("patient_payments", raw, None, synced_at)
    if row is None:
        return None
    row["parent_external_id"] = _patient_parent(raw, parent_external_id)
    row.update({
        "appointment_external_id": _ref(raw.get("appointment")),
        "doctor": _ref(raw.get("doctor")),
        "amount": _text(raw.get("amount")),
        "payment_method": _text(raw.get("payment_method")),
        "payment_transaction_type": _text(raw.get("payment_transaction_type")),
        "notes": _text(raw.get("notes")),
        "posted_date": _text(raw.get("posted_date")),
        "trace_number": _text(raw.get("trace_number")),
        "drchrono_created_at": _text(raw.get("created_at")),
    })
    return row
