"""Create submission, label request, delivery template and audit tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Text(), nullable=False),
        sa.Column('draft_key', sa.Text(), nullable=True),
        sa.Column('status', sa.String(32), server_default='in_progress', nullable=False),
        sa.Column('code', sa.String(16), nullable=True),
        # Patient
        sa.Column('patient_name', sa.Text(), nullable=True),
        sa.Column('patient_address', sa.Text(), nullable=True),
        sa.Column('patient_email', sa.Text(), nullable=True),
        sa.Column('patient_dob', sa.Text(), nullable=True),
        # Doctor
        sa.Column('doctor_name', sa.Text(), nullable=True),
        sa.Column('doctor_address', sa.Text(), nullable=True),
        sa.Column('doctor_phone', sa.Text(), nullable=True),
        sa.Column('doctor_fax', sa.Text(), nullable=True),
        sa.Column('doctor_email', sa.Text(), nullable=True),
        # Insurance
        sa.Column('insurance_company', sa.Text(), nullable=True),
        sa.Column('insurance_policy_number', sa.Text(), nullable=True),
        # Logistics
        sa.Column('lab_brand', sa.Text(), nullable=True),
        sa.Column('lab_id', sa.Text(), nullable=True),
        sa.Column('blood_collection_time', sa.Text(), nullable=True),
        sa.Column('stat_test', sa.Boolean(), nullable=True),
        sa.Column('need_label', sa.Boolean(), nullable=True),
        sa.Column('label_ship_from', sa.Text(), nullable=True),
        # Attachment groups
        sa.Column('script_urls', postgresql.JSONB(astext_type=sa.Text()), server_default='[]', nullable=False),
        sa.Column('insurance_card_urls', postgresql.JSONB(astext_type=sa.Text()), server_default='[]', nullable=False),
        sa.Column('patient_id_urls', postgresql.JSONB(astext_type=sa.Text()), server_default='[]', nullable=False),
        # Lifecycle
        sa.Column('requested_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('submitted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('label_requested', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('label_url', sa.Text(), nullable=True),
        sa.Column('lab_results_url', sa.Text(), nullable=True),
        sa.Column('shipped_out_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('shipped_out_image_url', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Text(), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_submissions_code'),
        sa.UniqueConstraint('draft_key', name='uq_submissions_draft_key'),
        sa.CheckConstraint(
            "status IN ('in_progress', 'pending', 'waiting_to_be_received', "
            "'waiting_on_lab_results', 'completed', 'cancelled')",
            name='ck_submissions_status'
        ),
        sa.CheckConstraint(
            "status = 'in_progress' OR code IS NOT NULL",
            name='ck_submissions_code_after_finalize'
        ),
    )
    op.create_index('ix_submissions_owner_status', 'submissions', ['owner_id', 'status'])
    op.create_index('ix_submissions_owner_requested', 'submissions', ['owner_id', sa.text('requested_at DESC')])

    op.create_table(
        'label_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('address', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('status', sa.String(16), server_default='pending', nullable=False),
        sa.Column('artifact_url', sa.Text(), nullable=True),
        sa.Column('requested_by', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('fulfilled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='CASCADE'),
        sa.CheckConstraint("status IN ('pending', 'fulfilled', 'failed')", name='ck_label_requests_status'),
    )
    op.create_index('ix_label_requests_submission_id', 'label_requests', ['submission_id'])

    op.create_table(
        'delivery_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('address_line1', sa.Text(), nullable=False),
        sa.Column('address_line2', sa.Text(), server_default='', nullable=False),
        sa.Column('city', sa.Text(), server_default='', nullable=False),
        sa.Column('state', sa.Text(), server_default='', nullable=False),
        sa.Column('postal_code', sa.Text(), server_default='', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_delivery_templates_owner_id', 'delivery_templates', ['owner_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('actor_id', sa.Text(), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', sa.Text(), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])


def downgrade():
    op.drop_index('ix_audit_log_created_at', table_name='audit_log')
    op.drop_index('ix_audit_log_entity', table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index('ix_delivery_templates_owner_id', table_name='delivery_templates')
    op.drop_table('delivery_templates')

    op.drop_index('ix_label_requests_submission_id', table_name='label_requests')
    op.drop_table('label_requests')

    op.drop_index('ix_submissions_owner_requested', table_name='submissions')
    op.drop_index('ix_submissions_owner_status', table_name='submissions')
    op.drop_table('submissions')
