"""
Tests de los field mappers (funciones puras, sin DB).
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from clinical_sync.application.services import field_mappers
from clinical_sync.application.services.entity_registry import ENTITY_DEFINITIONS
from clinical_sync.shared.exceptions.sync import MapFailure


SYNCED_AT = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def test_patient_mapping_normalizes_and_keeps_raw() -> None:
    raw = {
        "id": 1001,
        "first_name": "Ana",
        "last_name": "Perez",
        "date_of_birth": "1980-05-01",
        "doctor": 77,
        "email": "",
        "primary_insurance": {"insurance_company": "ACME"},
        "custom_demographics": [],
        "updated_at": "2026-01-10T08:00:00",
    }

    row = field_mappers.map_patients(raw, synced_at=SYNCED_AT)

    assert row["external_id"] == "1001"
    assert row["parent_external_id"] is None
    assert row["first_name"] == "Ana"
    assert row["doctor"] == "77"
    assert row["email"] is None
    assert row["primary_insurance"] == {"insurance_company": "ACME"}
    assert row["custom_demographics"] == []
    assert row["drchrono_updated_at"] == "2026-01-10T08:00:00"
    assert row["raw_data"] == raw
    assert row["last_synced_at"] == SYNCED_AT


def test_missing_id_returns_none() -> None:
    assert field_mappers.map_patients({"first_name": "Sin id"}) is None
    assert field_mappers.map_medications({"id": "", "name": "X"}, parent_external_id="1") is None


def test_non_mapping_input_raises_map_failure() -> None:
    with pytest.raises(MapFailure):
        field_mappers.map_doctors(["no", "es", "un", "objeto"])


@pytest.mark.parametrize("definition", list(ENTITY_DEFINITIONS.values()), ids=lambda d: d.entity.value)
def test_every_column_is_present_even_if_upstream_omits_it(definition) -> None:
    row = definition.mapper({"id": 5}, synced_at=SYNCED_AT)

    model_columns = {c.name for c in definition.model.__table__.columns}
    generated = {"id", "created_at", "updated_at"}
    assert set(row) == model_columns - generated


def test_fanout_parent_wins_over_record_patient() -> None:
    row = field_mappers.map_allergies({"id": 9, "patient": 111}, parent_external_id="222")
    assert row["parent_external_id"] == "222"


def test_direct_child_takes_parent_from_record() -> None:
    row = field_mappers.map_appointments({"id": 3, "patient": 111, "duration": "30"})
    assert row["parent_external_id"] == "111"
    assert row["duration"] == 30


def test_garbage_integers_become_none() -> None:
    row = field_mappers.map_medications({"id": 3, "number_refills": "dos"}, parent_external_id="1")
    assert row["number_refills"] is None
    assert row["prn"] is False


def test_lab_result_field_fallbacks() -> None:
    row = field_mappers.map_lab_results(
        {
            "id": 40,
            "patient": 1,
            "order": 12,
            "observation_code": "2345-7",
            "value": 5.4,
            "abnormal_flag": "H",
            "test_performed_date": "2026-01-02",
        }
    )
    assert row["lab_order_external_id"] == "12"
    assert row["test_code"] == "2345-7"
    assert row["value"] == "5.4"
    assert row["abnormal_flag"] == "H"
    assert row["result_date"] == "2026-01-02"


def test_vaccine_name_from_nested_vaccine() -> None:
    row = field_mappers.map_vaccines({"id": 8, "patient": 1, "vaccine": {"name": "Influenza"}})
    assert row["vaccine_name"] == "Influenza"


def test_empty_structures_pass_through_unchanged() -> None:
    row = field_mappers.map_patients(
        {"id": 2, "primary_insurance": {}, "custom_demographics": []}, synced_at=SYNCED_AT
    )
    assert row["primary_insurance"] == {}
    assert row["custom_demographics"] == []

    row = field_mappers.map_line_items({"id": 3, "icd10_codes": []})
    assert row["icd10_codes"] == []

    row = field_mappers.map_patients({"id": 4, "primary_insurance": ""})
    assert row["primary_insurance"] is None


def test_line_item_amounts_are_kept_as_text() -> None:
    row = field_mappers.map_line_items(
        {"id": 70, "patient": 5, "appointment": 50, "price": 125.5, "balance_total": "0.00", "code": "99213"}
    )
    assert row["parent_external_id"] == "5"
    assert row["appointment_external_id"] == "50"
    assert row["price"] == "125.5"
    assert row["balance_total"] == "0.00"
    assert row["code"] == "99213"


def test_message_title_and_body_fallbacks() -> None:
    row = field_mappers.map_messages({"id": 1, "subject": "Resultados", "message": "Ya estan", "read": 1})
    assert row["title"] == "Resultados"
    assert row["body"] == "Ya estan"
    assert row["read"] is True
    assert row["starred"] is False


def test_document_url_only_when_it_is_a_string() -> None:
    signed = field_mappers.map_documents({"id": 1, "patient": 9, "document": "https://x/doc.pdf"})
    weird = field_mappers.map_documents({"id": 2, "patient": 9, "document": {"url": "?"}})
    assert signed["document_url"] == "https://x/doc.pdf"
    assert weird["document_url"] is None


def test_lab_order_defaults_priority_and_reads_sublab() -> None:
    row = field_mappers.map_lab_orders({"id": 6, "patient": 1, "sublab": 3})
    assert row["priority"] == "normal"
    assert row["lab_type"] == "3"
