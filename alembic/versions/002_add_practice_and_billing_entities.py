"""add_practice_and_billing_entities

Revision ID: 002
Revises: 001
Create Date: 2026-10-20 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, Sequence[str], None] = '001'
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


def _amount(name: str) -> sa.Column:
    return sa.Column(name, sa.String(length=32), nullable=True)


NEW_TABLES = {
    'drchrono_lab_orders': [
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('requisition_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(length=20), nullable=True),
        sa.Column('lab_type', sa.String(length=64), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_lab_tests': [
        sa.Column('lab_order_external_id', sa.String(length=64), nullable=True),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('abn_document', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_documents': [
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('document_type', sa.String(length=100), nullable=True),
        sa.Column('document_url', sa.Text(), nullable=True),
        sa.Column('date', sa.String(length=40), nullable=True),
        sa.Column('metatags', sa.JSON(), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_amendments': [
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('requested_by', sa.String(length=255), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_communications': [
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('direction', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_users': [
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_doctor', sa.Boolean(), nullable=True),
        sa.Column('is_staff', sa.Boolean(), nullable=True),
        sa.Column('practice_group', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
    ],
    'drchrono_tasks': [
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('assignee_user', sa.String(length=64), nullable=True),
        sa.Column('due_date', sa.String(length=40), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('associated_items', sa.JSON(), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_task_categories': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('since', sa.String(length=40), nullable=True),
    ],
    'drchrono_appointment_profiles': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('online_scheduling', sa.Boolean(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=True),
    ],
    'drchrono_messages': [
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('owner', sa.String(length=64), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=True),
        sa.Column('starred', sa.Boolean(), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=True),
        sa.Column('responsible_user', sa.String(length=64), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_reminder_profiles': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('reminders', sa.JSON(), nullable=True),
    ],
    'drchrono_custom_demographics': [
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('field_type', sa.String(length=50), nullable=True),
        sa.Column('allowed_values', sa.JSON(), nullable=True),
    ],
    'drchrono_line_items': [
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('procedure_type', sa.String(length=20), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _amount('quantity'),
        _amount('units'),
        _amount('price'),
        _amount('allowed'),
        _amount('balance_ins'),
        _amount('balance_pt'),
        _amount('balance_total'),
        _amount('paid_total'),
        _amount('adjustment'),
        _amount('ins1_paid'),
        _amount('ins2_paid'),
        _amount('ins3_paid'),
        _amount('pt_paid'),
        sa.Column('billing_status', sa.String(length=100), nullable=True),
        sa.Column('icd10_codes', sa.JSON(), nullable=True),
        sa.Column('posted_date', sa.String(length=40), nullable=True),
        sa.Column('service_date', sa.String(length=40), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_transactions': [
        sa.Column('line_item_external_id', sa.String(length=64), nullable=True),
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        sa.Column('posted_date', sa.String(length=40), nullable=True),
        _amount('adjustment'),
        sa.Column('adjustment_reason', sa.String(length=100), nullable=True),
        _amount('ins_paid'),
        sa.Column('ins_name', sa.String(length=255), nullable=True),
        sa.Column('check_date', sa.String(length=40), nullable=True),
        sa.Column('check_number', sa.String(length=64), nullable=True),
        sa.Column('claim_status', sa.String(length=100), nullable=True),
        sa.Column('trace_number', sa.String(length=100), nullable=True),
        sa.Column('drchrono_updated_at', sa.String(length=40), nullable=True),
    ],
    'drchrono_patient_payments': [
        sa.Column('appointment_external_id', sa.String(length=64), nullable=True),
        sa.Column('doctor', sa.String(length=64), nullable=True),
        _amount('amount'),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('payment_transaction_type', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('posted_date', sa.String(length=40), nullable=True),
        sa.Column('trace_number', sa.String(length=100), nullable=True),
        sa.Column('drchrono_created_at', sa.String(length=40), nullable=True),
    ],
}

EXTRA_INDEXES = {
    'drchrono_lab_tests': ['lab_order_external_id'],
    'drchrono_line_items': ['appointment_external_id'],
    'drchrono_transactions': ['line_item_external_id'],
}


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name, columns in NEW_TABLES.items():
        if inspector.has_table(table_name):
            continue
        op.create_table(
            table_name,
            *_synced_columns(),
            *columns,
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f(f'ix_{table_name}_id'), table_name, ['id'], unique=False)
        op.create_index(op.f(f'ix_{table_name}_external_id'), table_name, ['external_id'], unique=True)
        op.create_index(op.f(f'ix_{table_name}_parent_external_id'), table_name, ['parent_external_id'], unique=False)
        for col in EXTRA_INDEXES.get(table_name, []):
            op.create_index(op.f(f'ix_{table_name}_{col}'), table_name, [col], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in reversed(list(NEW_TABLES)):
        if inspector.has_table(table_name):
            op.drop_table(table_name)
