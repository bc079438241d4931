"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the QuoteCraft schema from scratch:
- clients, projects, users: reference data (string ids, weak references)
- quotations, invoices: documents with embedded JSON line items
- retired_ids: ids of hard-deleted records, never reissued
- settings_blobs: keyed JSON settings (branding, terms, page setup)

Money columns are exact decimal strings and dates are ISO-8601 text; see
models/types.py.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # Reference data
    # ============================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('client_id', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projects_client_id', 'projects', ['client_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password', sa.String(length=255), nullable=True),
        sa.Column('requires_password_change', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # ============================================================================
    # Documents
    # ============================================================================
    op.create_table(
        'quotations',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('client_id', sa.String(length=64), nullable=True),
        sa.Column('project_name', sa.String(length=255), nullable=True),
        sa.Column('date', sa.String(length=40), nullable=True),
        sa.Column('total', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=True),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quotations_client_id', 'quotations', ['client_id'])
    op.create_index('ix_quotations_project_name', 'quotations', ['project_name'])
    op.create_index('ix_quotations_date', 'quotations', ['date'])
    op.create_index('ix_quotations_status', 'quotations', ['status'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('quotation_id', sa.String(length=64), nullable=True),
        sa.Column('client_id', sa.String(length=64), nullable=True),
        sa.Column('project_name', sa.String(length=255), nullable=True),
        sa.Column('date', sa.String(length=40), nullable=True),
        sa.Column('due_date', sa.String(length=40), nullable=True),
        sa.Column('total', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=True),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invoices_quotation_id', 'invoices', ['quotation_id'])
    op.create_index('ix_invoices_client_id', 'invoices', ['client_id'])
    op.create_index('ix_invoices_project_name', 'invoices', ['project_name'])
    op.create_index('ix_invoices_date', 'invoices', ['date'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])

    op.create_table(
        'retired_ids',
        sa.Column('collection', sa.String(length=32), nullable=False),
        sa.Column('record_id', sa.String(length=64), nullable=False),
        sa.Column('retired_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('collection', 'record_id'),
    )

    # ============================================================================
    # Settings
    # ============================================================================
    op.create_table(
        'settings_blobs',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade():
    op.drop_table('settings_blobs')
    op.drop_table('retired_ids')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_date', table_name='invoices')
    op.drop_index('ix_invoices_project_name', table_name='invoices')
    op.drop_index('ix_invoices_client_id', table_name='invoices')
    op.drop_index('ix_invoices_quotation_id', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('ix_quotations_status', table_name='quotations')
    op.drop_index('ix_quotations_date', table_name='quotations')
    op.drop_index('ix_quotations_project_name', table_name='quotations')
    op.drop_index('ix_quotations_client_id', table_name='quotations')
    op.drop_table('quotations')
    op.drop_table('users')
    op.drop_index('ix_projects_client_id', table_name='projects')
    op.drop_table('projects')
    op.drop_table('clients')
