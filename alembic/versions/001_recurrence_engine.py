"""Create tasks, task shares, recurrence rules and task instances.

Revision ID: 001_recurrence_engine
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_recurrence_engine'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# SQLAlchemy stores enum member names
taskstatus = sa.Enum('PLANNED', 'IN_PROGRESS', 'DONE', 'SKIPPED', 'CANCELED', name='taskstatus')
sharepermission = sa.Enum('VIEW', 'EDIT', name='sharepermission')
recurrencekind = sa.Enum(
    'DAILY', 'WEEKLY', 'MONTHLY', 'YEARLY', 'WORKDAYS', 'WEEKENDS', 'CUSTOM',
    name='recurrencekind',
)
customunit = sa.Enum('HOURS', 'DAYS', 'WEEKS', 'MONTHS', name='customunit')
endtype = sa.Enum('NEVER', 'DATE', 'COUNT', name='endtype')


def table_exists(table_name: str) -> bool:
    """Check if a table exists."""
    return sa.inspect(op.get_bind()).has_table(table_name)


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create the recurrence engine tables."""
    if not table_exists('tasks'):
        op.create_table(
            'tasks',
            sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
            *timestamps(),
            sa.Column('user_id', sa.BigInteger(), nullable=False),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', taskstatus, nullable=False, server_default='PLANNED'),
            sa.Column('start_datetime', sa.DateTime(), nullable=True),
            sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('recurrence_rule_id', sa.BigInteger(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])
        op.create_index('ix_tasks_status', 'tasks', ['status'])
        op.create_index('ix_tasks_start_datetime', 'tasks', ['start_datetime'])

    if not table_exists('task_shares'):
        op.create_table(
            'task_shares',
            sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
            *timestamps(),
            sa.Column('task_id', sa.BigInteger(), nullable=False),
            sa.Column('shared_with_id', sa.BigInteger(), nullable=False),
            sa.Column('permission', sharepermission, nullable=False, server_default='VIEW'),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('task_id', 'shared_with_id', name='uq_task_shares_task_user'),
        )
        op.create_index('ix_task_shares_task_id', 'task_shares', ['task_id'])
        op.create_index('ix_task_shares_shared_with_id', 'task_shares', ['shared_with_id'])

    if not table_exists('recurrence_rules'):
        op.create_table(
            'recurrence_rules',
            sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
            *timestamps(),
            sa.Column('task_id', sa.BigInteger(), nullable=False),
            sa.Column('kind', recurrencekind, nullable=False),
            sa.Column('interval', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('days_of_week', sa.String(20), nullable=True),
            sa.Column('day_of_month', sa.Integer(), nullable=True),
            sa.Column('week_of_month', sa.Integer(), nullable=True),
            sa.Column('day_of_week_for_month', sa.Integer(), nullable=True),
            sa.Column('custom_unit', customunit, nullable=True),
            sa.Column('end_type', endtype, nullable=False, server_default='NEVER'),
            sa.Column('end_date', sa.DateTime(), nullable=True),
            sa.Column('end_count', sa.Integer(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        )
        op.create_index('ix_recurrence_rules_task_id', 'recurrence_rules', ['task_id'], unique=True)

        # tasks <-> recurrence_rules reference each other, so this FK comes last
        op.create_foreign_key(
            'fk_tasks_recurrence_rule_id',
            'tasks',
            'recurrence_rules',
            ['recurrence_rule_id'],
            ['id'],
            ondelete='SET NULL',
        )

    if not table_exists('task_instances'):
        op.create_table(
            'task_instances',
            sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
            *timestamps(),
            sa.Column('parent_task_id', sa.BigInteger(), nullable=False),
            sa.Column('scheduled_date', sa.DateTime(), nullable=False),
            sa.Column('scheduled_day', sa.Date(), nullable=False),
            sa.Column('status', taskstatus, nullable=False, server_default='PLANNED'),
            sa.Column('is_modified', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('modified_title', sa.String(255), nullable=True),
            sa.Column('modified_description', sa.Text(), nullable=True),
            sa.Column('modified_time', sa.Time(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['parent_task_id'], ['tasks.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('parent_task_id', 'scheduled_day', name='uq_task_instances_parent_day'),
        )
        op.create_index('ix_task_instances_parent_task_id', 'task_instances', ['parent_task_id'])
        op.create_index('ix_task_instances_scheduled_date', 'task_instances', ['scheduled_date'])


def downgrade() -> None:
    """Drop the recurrence engine tables."""
    if table_exists('task_instances'):
        op.drop_index('ix_task_instances_scheduled_date', table_name='task_instances')
        op.drop_index('ix_task_instances_parent_task_id', table_name='task_instances')
        op.drop_table('task_instances')

    if table_exists('recurrence_rules'):
        op.drop_constraint('fk_tasks_recurrence_rule_id', 'tasks', type_='foreignkey')
        op.drop_index('ix_recurrence_rules_task_id', table_name='recurrence_rules')
        op.drop_table('recurrence_rules')

    if table_exists('task_shares'):
        op.drop_index('ix_task_shares_shared_with_id', table_name='task_shares')
        op.drop_index('ix_task_shares_task_id', table_name='task_shares')
        op.drop_table('task_shares')

    if table_exists('tasks'):
        op.drop_index('ix_tasks_start_datetime', table_name='tasks')
        op.drop_index('ix_tasks_status', table_name='tasks')
        op.drop_index('ix_tasks_user_id', table_name='tasks')
        op.drop_table('tasks')

    bind = op.get_bind()
    for enum_type in (endtype, customunit, recurrencekind, sharepermission, taskstatus):
        enum_type.drop(bind, checkfirst=True)
