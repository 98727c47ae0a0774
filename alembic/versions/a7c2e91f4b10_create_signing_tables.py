"""Create signing workflow tables.

Revision ID: a7c2e91f4b10
Revises:
Create Date: 2026-10-19

Adds signers, documents, sequence_entries and the append-only
signature_records ledger with its partial unique index.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a7c2e91f4b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create signing tables."""
    op.create_table(
        'signers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('contact_ref', sa.String(), nullable=True,
                  comment='Email address or other contact pointer'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_table(
        'documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content_ref', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending',
                  comment='pending | in_progress | completed | rejected'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_table(
        'sequence_entries',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('documents.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('signer_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('signers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False,
                  comment='1-based signing order'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('document_id', 'position', name='uq_sequence_entries_document_position'),
        sa.UniqueConstraint('document_id', 'signer_id', name='uq_sequence_entries_document_signer'),
        sa.CheckConstraint('position >= 1', name='ck_sequence_entries_position_positive'),
    )

    op.create_table(
        'signature_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('documents.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('signer_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('signers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('outcome', sa.String(), nullable=False),
        sa.Column('recorded_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint("outcome IN ('pending', 'completed', 'rejected')",
                           name='ck_signature_records_outcome'),
    )
    op.create_index('ix_signature_records_document', 'signature_records', ['document_id'])
    op.create_index(
        'uq_signature_records_terminal',
        'signature_records',
        ['document_id', 'signer_id'],
        unique=True,
        postgresql_where=sa.text("outcome IN ('completed', 'rejected')"),
    )


def downgrade() -> None:
    """Drop signing tables."""
    op.drop_index('uq_signature_records_terminal', table_name='signature_records')
    op.drop_index('ix_signature_records_document', table_name='signature_records')
    op.drop_table('signature_records')
    op.drop_table('sequence_entries')
    op.drop_table('documents')
    op.drop_table('signers')
