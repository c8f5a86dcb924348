"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


STATUSES = (
    "'draft', 'submitted', 'open', 'acknowledged', 'in_progress', 'pending', "
    "'resolved', 'closed', 'rejected', 'duplicate', 'reopened', 'escalated'"
)
PRIORITIES = "'low', 'medium', 'high', 'critical'"


def upgrade() -> None:
    """Create all tables and indexes for the Civic Issue Reporter application."""

    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_priority', sa.String(length=20), server_default='medium', nullable=False),
        sa.Column('sla_response_hours', sa.Integer(), nullable=True),
        sa.Column('sla_resolution_hours', sa.Integer(), nullable=True),
        sa.Column('is_emergency', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(f"default_priority IN ({PRIORITIES})", name='check_category_default_priority'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_categories_code', 'categories', ['code'], unique=True)
    op.create_index('ix_categories_is_active', 'categories', ['is_active'], unique=False)

    # Create departments table
    op.create_table(
        'departments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=30), nullable=True),
        sa.Column('priority_level', sa.Integer(), server_default='5', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_emergency_department', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('operational_status', sa.String(length=20), server_default='operational', nullable=False),
        sa.Column('last_status_update', sa.DateTime(), nullable=True),
        sa.Column('max_active_issues', sa.Integer(), server_default='50', nullable=False),
        sa.Column('current_active_issues', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_daily_issues', sa.Integer(), server_default='20', nullable=False),
        sa.Column('current_daily_issues', sa.Integer(), server_default='0', nullable=False),
        sa.Column('average_resolution_time', sa.Float(), server_default='0', nullable=False),
        sa.Column('resolution_rate', sa.Float(), server_default='0', nullable=False),
        sa.Column('citizen_satisfaction_score', sa.Float(), server_default='0', nullable=False),
        sa.Column('response_time_compliance', sa.Float(), server_default='0', nullable=False),
        sa.Column('escalation_rate', sa.Float(), server_default='0', nullable=False),
        sa.Column('reopen_rate', sa.Float(), server_default='0', nullable=False),
        sa.Column('total_issues_handled', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_issues_resolved', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_issues_pending', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_issues_escalated', sa.Integer(), server_default='0', nullable=False),
        sa.Column('statistics_updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "operational_status IN ('operational', 'maintenance', 'emergency_only', 'closed')",
            name='check_valid_operational_status'
        ),
        sa.CheckConstraint('priority_level >= 1 AND priority_level <= 10', name='check_priority_level_range'),
        sa.CheckConstraint('resolution_rate >= 0 AND resolution_rate <= 100', name='check_resolution_rate_range'),
        sa.CheckConstraint(
            'citizen_satisfaction_score >= 0 AND citizen_satisfaction_score <= 5',
            name='check_satisfaction_range'
        ),
        sa.CheckConstraint(
            'response_time_compliance >= 0 AND response_time_compliance <= 100',
            name='check_compliance_range'
        ),
        sa.CheckConstraint('current_active_issues >= 0', name='check_active_issues_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_departments_code', 'departments', ['code'], unique=True)
    op.create_index('ix_departments_priority_level', 'departments', ['priority_level'], unique=False)
    op.create_index('ix_departments_is_active', 'departments', ['is_active'], unique=False)
    op.create_index('ix_departments_operational_status', 'departments', ['operational_status'], unique=False)

    # Create department_categories table
    op.create_table(
        'department_categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('department_id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('is_primary', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('priority', sa.Integer(), server_default='1', nullable=False),
        sa.Column('average_resolution_time', sa.Float(), server_default='0', nullable=False),
        sa.CheckConstraint('priority >= 1 AND priority <= 10', name='check_handled_priority_range'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('department_id', 'category_id', name='uq_department_category')
    )
    op.create_index('ix_department_categories_department_id', 'department_categories', ['department_id'], unique=False)
    op.create_index('ix_department_categories_category_id', 'department_categories', ['category_id'], unique=False)

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('role', sa.String(length=20), server_default='citizen', nullable=False),
        sa.Column('department_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "role IN ('citizen', 'department_staff', 'department_head', 'admin', 'super_admin')",
            name='check_valid_role'
        ),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)
    op.create_index('ix_users_department_id', 'users', ['department_id'], unique=False)

    # Create issues table
    op.create_table(
        'issues',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('subcategory', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='submitted', nullable=False),
        sa.Column('priority', sa.String(length=20), server_default='medium', nullable=False),
        sa.Column('reported_by_id', sa.Uuid(), nullable=True),
        sa.Column('assigned_department_id', sa.Uuid(), nullable=True),
        sa.Column('assigned_to_id', sa.Uuid(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('pincode', sa.String(length=10), nullable=True),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), server_default='[]', nullable=False),
        sa.Column('escalation_level', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_emergency', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('urgency_score', sa.Integer(), server_default='0', nullable=False),
        sa.Column('expected_resolution_date', sa.DateTime(), nullable=True),
        sa.Column('actual_resolution_date', sa.DateTime(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('feedback_rating', sa.Integer(), nullable=True),
        sa.Column('feedback_comment', sa.Text(), nullable=True),
        sa.Column('last_status_update', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(f"status IN ({STATUSES})", name='check_issue_status'),
        sa.CheckConstraint(f"priority IN ({PRIORITIES})", name='check_issue_priority'),
        sa.CheckConstraint('escalation_level >= 0 AND escalation_level <= 5', name='check_escalation_level_range'),
        sa.CheckConstraint('urgency_score >= 0 AND urgency_score <= 100', name='check_urgency_score_range'),
        sa.CheckConstraint(
            'feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)',
            name='check_feedback_rating_range'
        ),
        sa.CheckConstraint('latitude >= -90 AND latitude <= 90', name='check_latitude_range'),
        sa.CheckConstraint('longitude >= -180 AND longitude <= 180', name='check_longitude_range'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['reported_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assigned_department_id'], ['departments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_issues_category_id', 'issues', ['category_id'], unique=False)
    op.create_index('ix_issues_status', 'issues', ['status'], unique=False)
    op.create_index('ix_issues_priority', 'issues', ['priority'], unique=False)
    op.create_index('ix_issues_reported_by_id', 'issues', ['reported_by_id'], unique=False)
    op.create_index('ix_issues_assigned_department_id', 'issues', ['assigned_department_id'], unique=False)
    op.create_index('ix_issues_city', 'issues', ['city'], unique=False)
    op.create_index('ix_issues_urgency_score', 'issues', ['urgency_score'], unique=False)
    op.create_index('ix_issues_created_at', 'issues', ['created_at'], unique=False)
    op.create_index('idx_issues_location', 'issues', ['latitude', 'longitude'], unique=False)

    # Create status_updates table
    op.create_table(
        'status_updates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('issue_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('previous_status', sa.String(length=20), nullable=True),
        sa.Column('sub_status', sa.String(length=50), nullable=True),
        sa.Column('updated_by_id', sa.Uuid(), nullable=True),
        sa.Column('updated_by_name', sa.String(length=100), nullable=True),
        sa.Column('updated_by_role', sa.String(length=50), nullable=True),
        sa.Column('change_reason', sa.String(length=30), server_default='normal_progression', nullable=False),
        sa.Column('change_source', sa.String(length=20), server_default='manual', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('assigned_to_id', sa.Uuid(), nullable=True),
        sa.Column('assigned_department_id', sa.Uuid(), nullable=True),
        sa.Column('previous_assigned_to_id', sa.Uuid(), nullable=True),
        sa.Column('previous_assigned_department_id', sa.Uuid(), nullable=True),
        sa.Column('time_in_previous_status', sa.Integer(), nullable=True),
        sa.Column('priority', sa.String(length=20), nullable=True),
        sa.Column('previous_priority', sa.String(length=20), nullable=True),
        sa.Column('priority_changed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('escalation_level', sa.Integer(), server_default='0', nullable=False),
        sa.Column('escalation_reason', sa.Text(), nullable=True),
        sa.Column('resolution_type', sa.String(length=20), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('public_update', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('citizen_notified', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('sync_status', sa.String(length=20), server_default='not_required', nullable=False),
        sa.Column('external_reference', sa.String(length=100), nullable=True),
        sa.Column('sync_error', sa.Text(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(f"status IN ({STATUSES})", name='check_update_status'),
        sa.CheckConstraint(
            f"previous_status IS NULL OR previous_status IN ({STATUSES})",
            name='check_update_previous_status'
        ),
        sa.CheckConstraint(
            "change_reason IN ('normal_progression', 'escalation', 'assignment', 'citizen_request', "
            "'admin_override', 'auto_assignment', 'duplicate_found', 'insufficient_info', "
            "'external_dependency', 'resource_unavailable', 'completed', 'cancelled', "
            "'rejected', 'system_auto')",
            name='check_change_reason'
        ),
        sa.CheckConstraint(
            "change_source IN ('manual', 'system', 'api', 'mobile_app', 'web_portal', 'integration')",
            name='check_change_source'
        ),
        sa.CheckConstraint(
            "sync_status IN ('pending', 'synced', 'failed', 'not_required')",
            name='check_sync_status'
        ),
        sa.CheckConstraint(
            f"priority IS NULL OR priority IN ({PRIORITIES})",
            name='check_update_priority'
        ),
        sa.CheckConstraint(
            "resolution_type IS NULL OR resolution_type IN "
            "('fixed', 'duplicate', 'not_reproducible', 'rejected', 'cancelled', 'deferred')",
            name='check_resolution_type'
        ),
        sa.CheckConstraint('escalation_level >= 0', name='check_update_escalation_non_negative'),
        sa.CheckConstraint(
            'time_in_previous_status IS NULL OR time_in_previous_status >= 0',
            name='check_time_in_previous_status'
        ),
        sa.ForeignKeyConstraint(['issue_id'], ['issues.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_status_updates_issue_id', 'status_updates', ['issue_id'], unique=False)
    op.create_index('ix_status_updates_status', 'status_updates', ['status'], unique=False)
    op.create_index('ix_status_updates_change_reason', 'status_updates', ['change_reason'], unique=False)
    op.create_index(
        'ix_status_updates_assigned_department_id', 'status_updates', ['assigned_department_id'], unique=False
    )
    op.create_index('ix_status_updates_sync_status', 'status_updates', ['sync_status'], unique=False)
    op.create_index('ix_status_updates_created_at', 'status_updates', ['created_at'], unique=False)
    op.create_index('idx_status_updates_issue_created', 'status_updates', ['issue_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('status_updates')
    op.drop_table('issues')
    op.drop_table('users')
    op.drop_table('department_categories')
    op.drop_table('departments')
    op.drop_table('categories')
