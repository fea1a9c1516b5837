"""initial_schema

Revision ID: 4b1e7c2d9a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1e7c2d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


flexibility_level = sa.Enum(
    'VERY_FLEXIBLE', 'SOMEWHAT_FLEXIBLE', 'BALANCED', 'SOMEWHAT_STRUCTURED',
    'STRICTLY_STRUCTURED', name='flexibilitylevel',
)
subject_frequency = sa.Enum(
    'DAILY', 'TWO_TO_THREE_PER_WEEK', 'WEEKLY', 'OCCASIONAL', name='subjectfrequency'
)
parent_involvement = sa.Enum('NONE', 'MINIMAL', 'MODERATE', 'FULL', name='parentinvolvement')
recurrence = sa.Enum('DAILY', 'WEEKLY', 'MONTHLY', 'ONE_TIME', name='recurrence')
schedule_status = sa.Enum('GENERATED', 'ACTIVE', 'SUPERSEDED', name='schedulestatus')
item_type = sa.Enum('SUBJECT', 'COMMITMENT', 'BREAK', name='itemtype')
item_status = sa.Enum('PENDING', 'COMPLETED', 'SKIPPED', 'SUPERSEDED', name='itemstatus')
activity_event = sa.Enum('COMPLETED', 'SKIPPED', 'RESCHEDULED', name='activityevent')


def upgrade() -> None:
    op.create_table(
        'families',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_families_id', 'families', ['id'])

    op.create_table(
        'family_preferences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id', ondelete='CASCADE'), nullable=False),
        sa.Column('flexibility_level', flexibility_level, nullable=False),
        sa.Column('planning_approach', sa.String(length=64), nullable=True),
        sa.Column('philosophy_scores', sa.JSON(), nullable=False),
        sa.Column('activity_preferences', sa.JSON(), nullable=False),
        sa.Column('raw_responses', sa.JSON(), nullable=False),
        sa.Column('is_current', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_family_preferences_id', 'family_preferences', ['id'])
    op.create_index('ix_family_preferences_family_id', 'family_preferences', ['family_id'])

    op.create_table(
        'children',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('best_learning_times', sa.JSON(), nullable=False),
        sa.Column('homeschool_start', sa.Time(), nullable=False),
        sa.Column('homeschool_end', sa.Time(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_children_id', 'children', ['id'])
    op.create_index('ix_children_family_id', 'children', ['family_id'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('child_id', sa.Integer(), sa.ForeignKey('children.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_core', sa.Boolean(), nullable=False),
        sa.Column('session_minutes', sa.Integer(), nullable=True),
        sa.Column('frequency', subject_frequency, nullable=False),
        sa.Column('parent_involvement', parent_involvement, nullable=False),
        sa.Column('fixed_start_time', sa.Time(), nullable=True),
        sa.Column('fixed_days', sa.JSON(), nullable=True),
        sa.Column('interest_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_subjects_id', 'subjects', ['id'])
    op.create_index('ix_subjects_child_id', 'subjects', ['child_id'])

    op.create_table(
        'commitments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id', ondelete='CASCADE'), nullable=False),
        sa.Column('child_id', sa.Integer(), sa.ForeignKey('children.id', ondelete='CASCADE'), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('recurrence', recurrence, nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('starts_on', sa.Date(), nullable=True),
        sa.Column('ends_on', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_commitments_id', 'commitments', ['id'])
    op.create_index('ix_commitments_family_id', 'commitments', ['family_id'])
    op.create_index('ix_commitments_child_id', 'commitments', ['child_id'])

    op.create_table(
        'evaluator_models',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, unique=True),
        sa.Column('parameters', sa.JSON(), nullable=False),
        sa.Column('generator_parameters', sa.JSON(), nullable=False),
        sa.Column('feature_importance', sa.JSON(), nullable=False),
        sa.Column('metrics', sa.JSON(), nullable=False),
        sa.Column('training_samples', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('activated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_evaluator_models_id', 'evaluator_models', ['id'])
    op.create_index(
        'uq_evaluator_models_one_active',
        'evaluator_models',
        ['is_active'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('child_id', sa.Integer(), sa.ForeignKey('children.id', ondelete='CASCADE'), nullable=False),
        sa.Column('week_start_date', sa.Date(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('status', schedule_status, nullable=False),
        sa.Column('generation_method', sa.String(length=64), nullable=False),
        sa.Column('schedule_data', sa.JSON(), nullable=False),
        sa.Column('unscheduled_subjects', sa.JSON(), nullable=False),
        sa.Column(
            'evaluator_model_id',
            sa.Integer(),
            sa.ForeignKey('evaluator_models.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('generated_at', sa.DateTime(), nullable=False),
        sa.Column('superseded_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            'child_id', 'week_start_date', 'version', name='uq_schedules_child_week_version'
        ),
    )
    op.create_index('ix_schedules_id', 'schedules', ['id'])
    op.create_index('ix_schedules_child_id', 'schedules', ['child_id'])
    op.create_index('ix_schedules_week_start_date', 'schedules', ['week_start_date'])
    op.create_index(
        'uq_schedules_one_active_per_week',
        'schedules',
        ['child_id', 'week_start_date'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'schedule_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_type', item_type, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('status', item_status, nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('commitment_id', sa.Integer(), sa.ForeignKey('commitments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_fixed', sa.Boolean(), nullable=False),
        sa.Column(
            'replaces_item_id',
            sa.Integer(),
            sa.ForeignKey('schedule_items.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_schedule_items_id', 'schedule_items', ['id'])
    op.create_index('ix_schedule_items_schedule_id', 'schedule_items', ['schedule_id'])

    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'schedule_item_id',
            sa.Integer(),
            sa.ForeignKey('schedule_items.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('event', activity_event, nullable=False),
        sa.Column('scheduled_day', sa.Date(), nullable=False),
        sa.Column('scheduled_start', sa.Time(), nullable=False),
        sa.Column('scheduled_end', sa.Time(), nullable=False),
        sa.Column('new_day', sa.Date(), nullable=True),
        sa.Column('new_start', sa.Time(), nullable=True),
        sa.Column('new_end', sa.Time(), nullable=True),
        sa.Column(
            'new_item_id',
            sa.Integer(),
            sa.ForeignKey('schedule_items.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('actual_minutes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_activity_logs_id', 'activity_logs', ['id'])
    op.create_index('ix_activity_logs_schedule_id', 'activity_logs', ['schedule_id'])
    op.create_index('ix_activity_logs_schedule_item_id', 'activity_logs', ['schedule_item_id'])

    op.create_table(
        'feedback',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('star_rating', sa.Integer(), nullable=False),
        sa.Column('likert_ratings', sa.JSON(), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('time_shifted', sa.Boolean(), nullable=False),
        sa.Column('reordered', sa.Boolean(), nullable=False),
        sa.Column('removed', sa.Boolean(), nullable=False),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column(
            'scored_by_model_id',
            sa.Integer(),
            sa.ForeignKey('evaluator_models.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('scored_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_feedback_id', 'feedback', ['id'])
    op.create_index('ix_feedback_schedule_id', 'feedback', ['schedule_id'])


def downgrade() -> None:
    op.drop_table('feedback')
    op.drop_table('activity_logs')
    op.drop_table('schedule_items')
    op.drop_index('uq_schedules_one_active_per_week', table_name='schedules')
    op.drop_table('schedules')
    op.drop_index('uq_evaluator_models_one_active', table_name='evaluator_models')
    op.drop_table('evaluator_models')
    op.drop_table('commitments')
    op.drop_table('subjects')
    op.drop_table('children')
    op.drop_table('family_preferences')
    op.drop_table('families')

    bind = op.get_bind()
    for enum in (
        activity_event, item_status, item_type, schedule_status,
        recurrence, parent_involvement, subject_frequency, flexibility_level,
    ):
        enum.drop(bind, checkfirst=True)
