"""Create tracker tables

Revision ID: 3b7e1c9d2a40
Revises:
Create Date: 2026-10-17 09:12:41.118203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7e1c9d2a40'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        'workout_plans',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('days', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', 'user_id'),
    )
    op.create_index('ix_workout_plans_user_id', 'workout_plans', ['user_id'])

    op.create_table(
        'diet_plans',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_calories', sa.Integer(), nullable=True),
        sa.Column('target_protein', sa.Integer(), nullable=True),
        sa.Column('target_carbs', sa.Integer(), nullable=True),
        sa.Column('target_fats', sa.Integer(), nullable=True),
        sa.Column('meals', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', 'user_id'),
    )
    op.create_index('ix_diet_plans_user_id', 'diet_plans', ['user_id'])

    op.create_table(
        'workout_history',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('workout', sa.JSON(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'user_id', name='uq_workout_history_date_user'),
    )
    op.create_index('ix_workout_history_user_id', 'workout_history', ['user_id'])
    op.create_index('ix_workout_history_date', 'workout_history', ['date'])

    op.create_table(
        'diet_history',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('meals', sa.JSON(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'user_id', name='uq_diet_history_date_user'),
    )
    op.create_index('ix_diet_history_user_id', 'diet_history', ['user_id'])
    op.create_index('ix_diet_history_date', 'diet_history', ['date'])

    op.create_table(
        'macro_history',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('calories', sa.Integer(), nullable=True),
        sa.Column('protein', sa.Integer(), nullable=True),
        sa.Column('carbs', sa.Integer(), nullable=True),
        sa.Column('fats', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'user_id', name='uq_macro_history_date_user'),
    )
    op.create_index('ix_macro_history_user_id', 'macro_history', ['user_id'])
    op.create_index('ix_macro_history_date', 'macro_history', ['date'])

    op.create_table(
        'user_settings',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('current_workout_plan_id', sa.String(length=64), nullable=True),
        sa.Column('current_diet_plan_id', sa.String(length=64), nullable=True),
        sa.Column('storage_preference', sa.String(length=20), nullable=True),
        sa.Column('database_status', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_settings_user_id', 'user_settings', ['user_id'], unique=True)


def downgrade():
    op.drop_index('ix_user_settings_user_id', table_name='user_settings')
    op.drop_table('user_settings')
    for table in ('macro_history', 'diet_history', 'workout_history'):
        op.drop_index(f'ix_{table}_date', table_name=table)
        op.drop_index(f'ix_{table}_user_id', table_name=table)
        op.drop_table(table)
    op.drop_index('ix_diet_plans_user_id', table_name='diet_plans')
    op.drop_table('diet_plans')
    op.drop_index('ix_workout_plans_user_id', table_name='workout_plans')
    op.drop_table('workout_plans')
