"""create_reflection_tables

Revision ID: 3c1f0a9d2b47
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create operation, profile, consolidation and snippet tables."""
    op.create_table(
        'async_operations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('operation_type', sa.String(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('QUEUED', 'PROCESSING', 'COMPLETED', 'FAILED', name='asyncoperationstatus'),
            nullable=False,
        ),
        sa.Column('week_key', sa.String(), nullable=True),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('input_data', sa.JSON(), nullable=True),
        sa.Column('result_data', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('estimated_duration', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_async_operations_user_id', 'async_operations', ['user_id'])
    op.create_index('ix_async_operations_operation_type', 'async_operations', ['operation_type'])
    op.create_index('ix_async_operations_status', 'async_operations', ['status'])
    # At most one queued/processing operation per user, type and week
    op.execute("""
        CREATE UNIQUE INDEX uq_async_operations_active_week
        ON async_operations (user_id, operation_type, week_key)
        WHERE status IN ('QUEUED', 'PROCESSING')
    """)

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('job_title', sa.String(), nullable=True),
        sa.Column('seniority_level', sa.String(), nullable=True),
        sa.Column('career_progression_plan', sa.String(), nullable=True),
        sa.Column('reflection_preferences', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'])

    op.create_table(
        'integration_consolidations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('integration_type', sa.String(), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('week_end', sa.Date(), nullable=False),
        sa.Column('consolidated_summary', sa.String(), nullable=False),
        sa.Column('key_insights', sa.JSON(), nullable=True),
        sa.Column('metrics', sa.JSON(), nullable=True),
        sa.Column('themes', sa.JSON(), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('consolidation_prompt', sa.String(), nullable=True),
        sa.Column('llm_model', sa.String(), nullable=True),
        sa.Column(
            'processing_status',
            sa.Enum('COMPLETED', name='processingstatus'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('consolidated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'integration_type', 'week_number', 'year',
            name='uq_integration_consolidations_week',
        ),
    )
    op.create_index('ix_integration_consolidations_user_id', 'integration_consolidations', ['user_id'])
    op.create_index(
        'ix_integration_consolidations_integration_type',
        'integration_consolidations',
        ['integration_type'],
    )

    op.create_table(
        'weekly_snippets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('content', sa.String(), nullable=False),
        sa.Column('ai_suggestions', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'year', 'week_number', name='uq_weekly_snippets_week'),
    )
    op.create_index('ix_weekly_snippets_user_id', 'weekly_snippets', ['user_id'])


def downgrade() -> None:
    """Drop the reflection tables."""
    op.drop_index('ix_weekly_snippets_user_id', table_name='weekly_snippets')
    op.drop_table('weekly_snippets')
    op.drop_index('ix_integration_consolidations_integration_type', table_name='integration_consolidations')
    op.drop_index('ix_integration_consolidations_user_id', table_name='integration_consolidations')
    op.drop_table('integration_consolidations')
    op.drop_index('ix_user_profiles_email', table_name='user_profiles')
    op.drop_table('user_profiles')
    op.drop_index('uq_async_operations_active_week', table_name='async_operations')
    op.drop_index('ix_async_operations_status', table_name='async_operations')
    op.drop_index('ix_async_operations_operation_type', table_name='async_operations')
    op.drop_index('ix_async_operations_user_id', table_name='async_operations')
    op.drop_table('async_operations')
    sa.Enum(name='processingstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='asyncoperationstatus').drop(op.get_bind(), checkfirst=True)
