"""initial_marketplace_schema

Revision ID: 4c1d7e2a9b10
Revises:
Create Date: 2026-10-18 10:12:44.201937

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1d7e2a9b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Create users, freelancer, task, ledger, config and notification tables"""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False, unique=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='CLIENT'),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notification_preferences_json', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('credits >= 0', name='ck_users_credits_non_negative'),
    )
    op.create_index('ix_users_id', 'users', ['id'])

    op.create_table(
        'freelancer_profiles',
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('availability', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('experience_level', sa.String(length=20), nullable=False, server_default='JUNIOR'),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('completed_tasks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('acceptance_rate', sa.Float(), nullable=True),
        sa.Column('on_time_rate', sa.Float(), nullable=True),
        sa.Column('avg_response_time_minutes', sa.Integer(), nullable=True),
        sa.Column('max_concurrent_tasks', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('working_hours_start', sa.String(length=5), nullable=False, server_default='09:00'),
        sa.Column('working_hours_end', sa.String(length=5), nullable=False, server_default='18:00'),
        sa.Column('accepts_urgent_tasks', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('vacation_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('skills_json', sa.Text(), nullable=True),
        sa.Column('specializations_json', sa.Text(), nullable=True),
        sa.Column('preferred_categories_json', sa.Text(), nullable=True),
        sa.Column('whatsapp_number', sa.String(length=32), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'client_artist_affinity',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('client_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('artist_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_favorite', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_client_artist_affinity_id', 'client_artist_affinity', ['id'])
    op.create_index('ix_client_artist_affinity_client_id', 'client_artist_affinity', ['client_id'])
    op.create_index('ix_client_artist_affinity_artist_id', 'client_artist_affinity', ['artist_id'])

    op.create_table(
        'task_categories',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_credits', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_categories_id', 'task_categories', ['id'])
    op.create_index('ix_task_categories_slug', 'task_categories', ['slug'], unique=True)

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('client_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('freelancer_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('category_id', sa.String(length=36), sa.ForeignKey('task_categories.id'), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='PENDING'),
        sa.Column('complexity', sa.String(length=16), nullable=True),
        sa.Column('urgency', sa.String(length=16), nullable=True),
        sa.Column('requirements_json', sa.Text(), nullable=True),
        sa.Column('required_skills_json', sa.Text(), nullable=True),
        sa.Column('style_references_json', sa.Text(), nullable=True),
        sa.Column('moodboard_items_json', sa.Text(), nullable=True),
        sa.Column('chat_history_json', sa.Text(), nullable=True),
        sa.Column('brief_id', sa.String(length=36), nullable=True),
        sa.Column('estimated_hours', sa.Float(), nullable=True),
        sa.Column('credits_used', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_revisions', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('revisions_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deadline', sa.DateTime(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_client_id', 'tasks', ['client_id'])
    op.create_index('ix_tasks_freelancer_id', 'tasks', ['freelancer_id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])

    op.create_table(
        'task_files',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('uploaded_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('file_type', sa.String(length=100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('is_deliverable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_files_id', 'task_files', ['id'])
    op.create_index('ix_task_files_task_id', 'task_files', ['task_id'])

    op.create_table(
        'task_offers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('artist_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('match_score', sa.Float(), nullable=False),
        sa.Column('score_breakdown_json', sa.Text(), nullable=True),
        sa.Column('escalation_level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('offered_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('response', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_task_offers_id', 'task_offers', ['id'])
    op.create_index('ix_task_offers_task_id', 'task_offers', ['task_id'])
    op.create_index('ix_task_offers_artist_id', 'task_offers', ['artist_id'])

    op.create_table(
        'task_activity_log',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_id', sa.String(length=36), nullable=True),
        sa.Column('actor_type', sa.String(length=20), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('previous_status', sa.String(length=24), nullable=True),
        sa.Column('new_status', sa.String(length=24), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_activity_log_id', 'task_activity_log', ['id'])
    op.create_index('ix_task_activity_log_task_id', 'task_activity_log', ['task_id'])

    op.create_table(
        'credit_transactions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('related_task_id', sa.String(length=36), sa.ForeignKey('tasks.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_credit_transactions_id', 'credit_transactions', ['id'])
    op.create_index('ix_credit_transactions_user_id', 'credit_transactions', ['user_id'])

    op.create_table(
        'assignment_algorithm_config',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('config_json', sa.Text(), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_assignment_algorithm_config_id', 'assignment_algorithm_config', ['id'])

    op.create_table(
        'notification_outbox',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('recipient_id', sa.String(length=36), nullable=True),
        sa.Column('task_id', sa.String(length=36), nullable=True),
        sa.Column('payload_json', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notification_outbox_id', 'notification_outbox', ['id'])
    op.create_index('ix_notification_outbox_recipient_id', 'notification_outbox', ['recipient_id'])
    op.create_index('ix_notification_outbox_task_id', 'notification_outbox', ['task_id'])
    op.create_index('ix_notification_outbox_status', 'notification_outbox', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('channel', sa.String(length=16), nullable=False, server_default='IN_APP'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('related_task_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='SENT'),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    """Drop all marketplace tables"""
    for table in (
        'notifications',
        'notification_outbox',
        'assignment_algorithm_config',
        'credit_transactions',
        'task_activity_log',
        'task_offers',
        'task_files',
        'tasks',
        'task_categories',
        'client_artist_affinity',
        'freelancer_profiles',
        'users',
    ):
        op.drop_table(table)
