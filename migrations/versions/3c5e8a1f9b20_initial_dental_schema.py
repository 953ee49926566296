"""Initial dental clinic schema

Revision ID: 3c5e8a1f9b20
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c5e8a1f9b20'
down_revision = None
branch_labels = None
depends_on = None

STATUS_VALUES = ('DRAFT', 'CONFIRMED', 'IN_EXAM', 'EXAM_COMPLETED', 'COMPLETED', 'CANCELLED')
TYPE_VALUES = ('reserved', 'walk_in')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('serial', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('questionnaire_json', sa.Text(), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table('patients', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_patients_serial'), ['serial'], unique=True)
        batch_op.create_index(batch_op.f('ix_patients_phone'), ['phone'], unique=False)

    op.create_table(
        'practitioners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('specialization', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False, unique=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    with op.batch_alter_table('services', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_services_category'), ['category'], unique=False)

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('serial', sa.String(length=20), nullable=False),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('practitioner_id', sa.Integer(), sa.ForeignKey('practitioners.id'), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('all_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.Enum(*STATUS_VALUES, name='appointment_status', native_enum=False, length=20),
                  nullable=False, server_default='DRAFT'),
        sa.Column('appointment_type', sa.Enum(*TYPE_VALUES, name='appointment_type', native_enum=False, length=20),
                  nullable=False, server_default='reserved'),
        sa.Column('chief_complaints', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('total_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_window'),
    )
    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointments_serial'), ['serial'], unique=True)
        batch_op.create_index(batch_op.f('ix_appointments_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_completed_at'), ['completed_at'], unique=False)
        batch_op.create_index('ix_appointments_practitioner_window',
                              ['practitioner_id', 'start_time', 'end_time'], unique=False)
        batch_op.create_index('ix_appointments_patient_window',
                              ['patient_id', 'start_time', 'end_time'], unique=False)

    op.create_table(
        'dental_procedures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('appointment_id', sa.Integer(),
                  sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tooth_number', sa.SmallInteger(), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id', ondelete='SET NULL'), nullable=True),
        sa.Column('cost', sa.Numeric(10, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint('cost >= 0', name='ck_dental_procedures_cost'),
    )
    with op.batch_alter_table('dental_procedures', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dental_procedures_appointment_id'), ['appointment_id'], unique=False)

    op.create_table(
        'attachments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('appointment_id', sa.Integer(),
                  sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('storage_key', sa.String(length=500), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table('attachments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_attachments_appointment_id'), ['appointment_id'], unique=False)

    op.create_table(
        'prescriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('serial', sa.String(length=20), nullable=False),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('appointment_id', sa.Integer(),
                  sa.ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table('prescriptions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_prescriptions_serial'), ['serial'], unique=True)
        batch_op.create_index(batch_op.f('ix_prescriptions_patient_id'), ['patient_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_prescriptions_appointment_id'), ['appointment_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_prescriptions_created_by'), ['created_by'], unique=False)

    op.create_table(
        'prescription_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('prescription_id', sa.Integer(),
                  sa.ForeignKey('prescriptions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('medicine', sa.String(length=255), nullable=False),
        sa.Column('regimen', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
    )
    with op.batch_alter_table('prescription_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_prescription_lines_prescription_id'), ['prescription_id'], unique=False)

    op.create_table(
        'sequence_counters',
        sa.Column('kind', sa.String(length=32), primary_key=True),
        sa.Column('value', sa.BigInteger(), nullable=False, server_default='0'),
    )
    # Counters start at zero; the first serial of each kind is 000001
    op.bulk_insert(
        sa.table('sequence_counters', sa.column('kind', sa.String), sa.column('value', sa.BigInteger)),
        [{'kind': 'patient', 'value': 0}, {'kind': 'appointment', 'value': 0}, {'kind': 'prescription', 'value': 0}],
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_logs_entity_type'), ['entity_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_entity_id'), ['entity_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_user_id'), ['user_id'], unique=False)


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('sequence_counters')
    op.drop_table('prescription_lines')
    op.drop_table('prescriptions')
    op.drop_table('attachments')
    op.drop_table('dental_procedures')
    op.drop_table('appointments')
    op.drop_table('services')
    op.drop_table('practitioners')
    op.drop_table('patients')
