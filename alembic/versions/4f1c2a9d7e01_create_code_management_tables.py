"""create_code_management_tables

Revision ID: 4f1c2a9d7e01
Revises:
Create Date: 2026-10-17 09:12:41.508233

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'product_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index(op.f('ix_product_types_id'), 'product_types', ['id'], unique=False)

    op.create_table(
        'model_classifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('description', sa.JSON(), nullable=False),
        sa.Column('product_type_id', sa.Integer(), nullable=False),
        sa.Column('has_code_classification', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['product_type_id'], ['product_types.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('type')
    )
    op.create_index(op.f('ix_model_classifications_id'), 'model_classifications', ['id'], unique=False)
    op.create_index(op.f('ix_model_classifications_product_type_id'),
                    'model_classifications', ['product_type_id'], unique=False)

    op.create_table(
        'code_classifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('model_classification_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['model_classification_id'], ['model_classifications.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('model_classification_id', 'code', name='uq_code_classifications_parent_code')
    )
    op.create_index(op.f('ix_code_classifications_id'), 'code_classifications', ['id'], unique=False)
    op.create_index(op.f('ix_code_classifications_model_classification_id'),
                    'code_classifications', ['model_classification_id'], unique=False)

    op.create_table(
        'code_usage_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('model', sa.String(length=50), nullable=False),
        sa.Column('model_type', sa.String(length=20), nullable=False),
        sa.Column('classification_number', sa.Integer(), nullable=True,
                  comment='Leading number of the code classification; NULL for 2-tier codes'),
        sa.Column('actual_number', sa.String(length=10), nullable=False),
        sa.Column('extension', sa.String(length=10), nullable=True),
        sa.Column('model_classification_id', sa.Integer(), nullable=False),
        sa.Column('code_classification_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('occupancy_type', sa.String(length=20), nullable=True),
        sa.Column('customer', sa.String(length=100), nullable=True),
        sa.Column('factory', sa.String(length=100), nullable=True),
        sa.Column('builder', sa.String(length=100), nullable=True),
        sa.Column('requester', sa.String(length=100), nullable=True),
        sa.Column('creation_date', sa.Date(), nullable=True),
        sa.Column('is_allocated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_reason', sa.String(length=200), nullable=True),
        sa.Column('number_digits', sa.Integer(), nullable=False, server_default='2',
                  comment='Configured digit width when the row was created'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['model_classification_id'], ['model_classifications.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['code_classification_id'], ['code_classifications.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_code_usage_entries_id'), 'code_usage_entries', ['id'], unique=False)
    op.create_index(op.f('ix_code_usage_entries_model'), 'code_usage_entries', ['model'], unique=False)
    op.create_index(op.f('ix_code_usage_entries_model_classification_id'),
                    'code_usage_entries', ['model_classification_id'], unique=False)
    op.create_index(op.f('ix_code_usage_entries_code_classification_id'),
                    'code_usage_entries', ['code_classification_id'], unique=False)
    op.create_index('ix_code_usage_entries_model_type_number',
                    'code_usage_entries', ['model_type', 'classification_number'], unique=False)
    # At most one live row per composed code
    op.create_index('uq_code_usage_entries_model_live', 'code_usage_entries', ['model'],
                    unique=True, postgresql_where=sa.text('NOT is_deleted'))

    op.create_table(
        'code_pre_allocation_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('model_classification_id', sa.Integer(), nullable=False),
        sa.Column('code_classification_id', sa.Integer(), nullable=True),
        sa.Column('model_type', sa.String(length=100), nullable=False),
        sa.Column('classification_number', sa.String(length=100), nullable=False),
        sa.Column('allocation_count', sa.Integer(), nullable=False),
        sa.Column('skipped_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('number_digits', sa.Integer(), nullable=False),
        sa.Column('start_code', sa.String(length=100), nullable=False),
        sa.Column('end_code', sa.String(length=100), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_code_pre_allocation_logs_id'), 'code_pre_allocation_logs', ['id'], unique=False)
    op.create_index(op.f('ix_code_pre_allocation_logs_code_classification_id'),
                    'code_pre_allocation_logs', ['code_classification_id'], unique=False)

    op.create_table(
        'system_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('config_key', sa.String(length=100), nullable=False),
        sa.Column('config_value', sa.Text(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('config_key')
    )
    op.create_index(op.f('ix_system_configs_id'), 'system_configs', ['id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('log_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('result', sa.String(length=20), nullable=False, server_default='Success'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('log_id')
    )
    op.create_index(op.f('ix_audit_logs_log_id'), 'audit_logs', ['log_id'], unique=False)

    # Seed the numbering defaults
    system_configs = sa.table(
        'system_configs',
        sa.column('config_key', sa.String),
        sa.column('config_value', sa.Text),
        sa.column('description', sa.String),
        sa.column('is_active', sa.Boolean),
    )
    op.bulk_insert(system_configs, [
        {'config_key': 'NumberDigits', 'config_value': '2',
         'description': 'Number of digits in the numeric part of generated codes', 'is_active': True},
        {'config_key': 'ExtensionMaxLength', 'config_value': '3',
         'description': 'Maximum length of a code extension', 'is_active': True},
        {'config_key': 'ExtensionExcludedChars', 'config_value': 'I,O',
         'description': 'Comma-separated characters not allowed in extensions', 'is_active': True},
    ])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('system_configs')
    op.drop_table('code_pre_allocation_logs')
    op.drop_index('uq_code_usage_entries_model_live', table_name='code_usage_entries')
    op.drop_table('code_usage_entries')
    op.drop_table('code_classifications')
    op.drop_table('model_classifications')
    op.drop_table('product_types')
