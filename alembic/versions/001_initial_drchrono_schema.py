"""initial_drchrono_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _synced_columns() -> list:
    """Columnas tecnicas comunes (SyncedRecordMixin)."""
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(length=64), nullable=False),
        sa.Column('parent_external_id', sa.String(length=64), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


ENTITY_TABLES = {
    'drchrono_doctors': [
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('suffix', sa.String(length=50), nullable=True),
        sa.Column('specialty', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('cell_phone', sa.String(length=50), nullable=True),
        sa.Column('office_phone', sa.String(length=50), nullable=True),
        sa.Column('job_title', sa.String(length=255), nullable=True),
        sa.Column('practice_group', sa.String(length=64), nullable=True),
        sa.Column('npi_number', sa.String(length=32), nullable=True),
        sa.Column('is_account_suspended', sa.Boolean(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('country', sa.String(length=8), nullable=True),
    ],
    'drchrono_offices': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=20), nullable=True),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('fax_number', sa.String(length=50), nullable=True),
        sa.Column('country', sa.String(length=8), nullable=True),
        sa.Column('exam_rooms', sa.JSON(), nullable=True),
        sa.Column('online_scheduling', sa.Boolean(), nullable=True),
        sa.Column('start_time', sa.String(length=20), nullable=True),
        sa.Column('end_time', sa.String(length=20), nullable=True),
    ],
    'drchrono_patients': [
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('middle_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('date_of_birth', sa.String(length=20), nullable=True),
        sa.Column('gender', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('cell_phone', sa.String(length=50), nullable=True),
        sa.Column('home_phone', sa.String(length=50), nullable=True),
        sa.Column('office_phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=20), nullable=True),
        sa.Column('chart_id', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('default_pharmacy', sa.String(length=64), nullable=True),
        sa.Column('preferred_pharmacies', sa.JSON(), nullable=True),
        sa.Column('primary_insurance', sa.JSON(), nullable=True),
        sa.Column('secondary_insurance', sa.JSON(), nullable=True),
        sa.Column('emergency_contact_name', sa.String(length=255), nullable=True),
        sa.Column('emergency_contact_phone', sa.String(length=50), nullable=True),
        sa.Column('emergency_contact_relation', sa.String(length=100), nullable=True),
        sa.Column('preferred_language', sa.String(length=50), nullable=True),
        sa.Column('race', sa.String(length=100), nullable=True),
        sa.Column('ethnicity', sa.String(length=100), nullable=True),
        sa.Column('patient_status', sa.String(length=50), nullable=True),
        sa.Column('patient_photo', sa.Text(), nullable=True),
        sa.Column('custom_demographics', sa.JSON(), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_appointments': [
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('office', sa.String(length=64), nullable=True),
        sa.Column('scheduled_time', sa.String(length=40), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('exam_room', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('profile', sa.String(length=64), nullable=True),
        sa.Column('is_walk_in', sa.Boolean(), nullable=True),
        sa.Column('appt_is_break', sa.Boolean(), nullable=True),
        sa.Column('recurring_appointment', sa.Boolean(), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_lab_results': [
        sa.Column('lab_order_external_id', sa.String(length=64), nullable=True),
        sa.Column('test_code', sa.String(length=64), nullable=True),
        sa.Column('test_name', sa.String(length=255), nullable=True),
        sa.Column('value', sa.String(length=255), nullable=True),
        sa.Column('unit', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('abnormal_flag', sa.String(length=20), nullable=True),
        sa.Column('normal_range', sa.String(length=100), nullable=True),
        sa.Column('collection_date', sa.String(length=40), nullable=True),
        sa.Column('result_date', sa.String(length=40), nullable=True),
    ],
    'drchrono_clinical_notes': [
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
        sa.Column('clinical_note_sections', sa.JSON(), nullable=True),
        sa.Column('clinical_note_pdf', sa.Text(), nullable=True),
        sa.Column('locked', sa.Boolean(), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_vaccines': [
        sa.Column('vaccine_name', sa.String(length=255), nullable=True),
        sa.Column('cvx_code', sa.String(length=20), nullable=True),
        sa.Column('administered_date', sa.String(length=40), nullable=True),
        sa.Column('administered_by', sa.String(length=255), nullable=True),
        sa.Column('route', sa.String(length=50), nullable=True),
        sa.Column('site', sa.String(length=50), nullable=True),
        sa.Column('dose_quantity', sa.String(length=50), nullable=True),
        sa.Column('dose_unit', sa.String(length=50), nullable=True),
        sa.Column('lot_number', sa.String(length=100), nullable=True),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('expiration_date', sa.String(length=40), nullable=True),
    ],
    'drchrono_medications': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('rxnorm', sa.String(length=64), nullable=True),
        sa.Column('ndc', sa.String(length=64), nullable=True),
        sa.Column('dosage_quantity', sa.String(length=50), nullable=True),
        sa.Column('dosage_unit', sa.String(length=50), nullable=True),
        sa.Column('route', sa.String(length=50), nullable=True),
        sa.Column('frequency', sa.String(length=100), nullable=True),
        sa.Column('sig', sa.Text(), nullable=True),
        sa.Column('quantity', sa.String(length=50), nullable=True),
        sa.Column('number_refills', sa.Integer(), nullable=True),
        sa.Column('prn', sa.Boolean(), nullable=True),
        sa.Column('order_status', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('date_prescribed', sa.String(length=40), nullable=True),
        sa.Column('date_started_taking', sa.String(length=40), nullable=True),
        sa.Column('date_stopped_taking', sa.String(length=40), nullable=True),
        sa.Column('pharmacy_note', sa.Text(), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
    ],
    'drchrono_allergies': [
        sa.Column('reaction', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('snomed_reaction', sa.String(length=64), nullable=True),
        sa.Column('onset_date', sa.String(length=40), nullable=True),
        sa.Column('severity', sa.String(length=50), nullable=True),
    ],
    'drchrono_problems': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('icd_code', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('date_diagnosis', sa.String(length=40), nullable=True),
        sa.Column('date_changed', sa.String(length=40), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('snomed_ct_code', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
    ],
}

# Indices extra, ademas de id / external_id / parent_external_id
EXTRA_INDEXES = {
    'drchrono_patients': ['chart_id'],
    'drchrono_appointments': ['scheduled_time'],
    'drchrono_lab_results': ['lab_order_external_id'],
    'drchrono_clinical_notes': ['appointment_external_id'],
}


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name, columns in ENTITY_TABLES.items():
        if inspector.has_table(table_name):
            continue
        op.create_table(
            table_name,
            *_synced_columns(),
            *[sa.Column(c.name, c.type, nullable=c.nullable) for c in columns],
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f(f'ix_{table_name}_id'), table_name, ['id'], unique=False)
        op.create_index(op.f(f'ix_{table_name}_external_id'), table_name, ['external_id'], unique=True)
        op.create_index(op.f(f'ix_{table_name}_parent_external_id'), table_name, ['parent_external_id'], unique=False)
        for col in EXTRA_INDEXES.get(table_name, []):
            op.create_index(op.f(f'ix_{table_name}_{col}'), table_name, [col], unique=False)

    if not inspector.has_table('sync_runs'):
        op.create_table('sync_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entities', sa.JSON(), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=False),
        sa.Column('scope', sa.String(length=64), nullable=True),
        sa.Column('since', sa.String(length=40), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('results', sa.JSON(), nullable=True),
        sa.Column('errors', sa.JSON(), nullable=True),
        sa.Column('total_fetched', sa.Integer(), nullable=True),
        sa.Column('total_created', sa.Integer(), nullable=True),
        sa.Column('total_updated', sa.Integer(), nullable=True),
        sa.Column('total_errored', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sync_runs_id'), 'sync_runs', ['id'], unique=False)
        op.create_index(op.f('ix_sync_runs_status'), 'sync_runs', ['status'], unique=False)
        op.create_index(op.f('ix_sync_runs_started_at'), 'sync_runs', ['started_at'], unique=False)

    if not inspector.has_table('sync_leases'):
        op.create_table('sync_leases',
        sa.Column('lock_key', sa.String(length=255), nullable=False),
        sa.Column('holder', sa.String(length=64), nullable=False),
        sa.Column('acquired_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('lock_key')
        )


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in ['sync_leases', 'sync_runs', *reversed(list(ENTITY_TABLES))]:
        if inspector.has_table(table_name):
            op.drop_table(table_name)
