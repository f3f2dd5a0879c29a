"""Baseline migration - casework schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates users and roles, masters, applicants, the workflow stage catalog,
cases with their ledger, checklist, cover letter, attachment and
notification tables. Column types are portable across PostgreSQL, MySQL
and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def _grant_flags() -> list[sa.Column]:
    return [
        sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.false())
        for name in (
            'can_view', 'can_approve', 'can_reject', 'can_review',
            'can_edit', 'can_delete', 'can_create',
        )
    ]


def upgrade() -> None:
    """Create the casework schema."""

    # ==========================================================================
    # Users and roles
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(100), nullable=False),
        sa.Column('its_number', sa.String(20), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('executive_level', sa.Integer(), nullable=True),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_system_role', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource', sa.String(100), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.UniqueConstraint('role_id', 'resource', 'action', name='uq_role_permission'),
    )
    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('jamiat_ids', sa.JSON(), nullable=True),
        sa.Column('jamaat_ids', sa.JSON(), nullable=True),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_role'),
    )
    op.create_index('idx_user_roles_user_active', 'user_roles', ['user_id', 'is_active'])

    # ==========================================================================
    # Masters
    # ==========================================================================
    op.create_table(
        'case_types',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'executive_levels',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('level_number', sa.Integer(), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'jamiat',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('jamiat_id', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'jamaat',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('jamiat_id', sa.Integer(), sa.ForeignKey('jamiat.id', ondelete='CASCADE'), nullable=False),
        sa.Column('jamaat_id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('jamiat_id', 'jamaat_id', name='uq_jamaat_code_per_jamiat'),
    )

    # ==========================================================================
    # Applicants
    # ==========================================================================
    op.create_table(
        'applicants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('its_number', sa.String(8), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(10), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('occupation', sa.String(255), nullable=True),
        sa.Column('qualification', sa.String(255), nullable=True),
        sa.Column('idara', sa.String(255), nullable=True),
        sa.Column('jamiat_id', sa.Integer(), sa.ForeignKey('jamiat.id', ondelete='SET NULL'), nullable=True),
        sa.Column('jamaat_id', sa.Integer(), sa.ForeignKey('jamaat.id', ondelete='SET NULL'), nullable=True),
        sa.Column('photo', sa.Text(), nullable=True),
        sa.Column('its_lookup_failed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('its_synced_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_applicants_name', 'applicants', ['last_name', 'first_name'])

    # ==========================================================================
    # Workflow stage catalog
    # ==========================================================================
    op.create_table(
        'workflow_stages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('stage_key', sa.String(100), nullable=False),
        sa.Column('stage_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('case_type_id', sa.Integer(), sa.ForeignKey('case_types.id', ondelete='CASCADE'), nullable=True),
        sa.Column('next_stage_id', sa.Integer(), sa.ForeignKey('workflow_stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('associated_statuses', sa.JSON(), nullable=True),
        sa.Column('requires_comments_on_reject', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sla_value', sa.Integer(), nullable=True),
        sa.Column('sla_unit', sa.String(20), nullable=True),
        sa.Column('sla_warning_value', sa.Integer(), nullable=True),
        sa.Column('sla_warning_unit', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('idx_workflow_stages_order', 'workflow_stages', ['case_type_id', 'is_active', 'sort_order'])
    op.create_table(
        'workflow_stage_roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workflow_stage_id', sa.Integer(), sa.ForeignKey('workflow_stages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        *_grant_flags(),
        sa.UniqueConstraint('workflow_stage_id', 'role_id', name='uq_stage_role'),
    )
    op.create_table(
        'workflow_stage_users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workflow_stage_id', sa.Integer(), sa.ForeignKey('workflow_stages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_grant_flags(),
        sa.UniqueConstraint('workflow_stage_id', 'user_id', name='uq_stage_user'),
    )

    # ==========================================================================
    # Cases
    # ==========================================================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_number', sa.String(50), nullable=True, unique=True),
        sa.Column('applicant_id', sa.Integer(), sa.ForeignKey('applicants.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('case_type_id', sa.Integer(), sa.ForeignKey('case_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.String(100), nullable=False, server_default='draft'),
        sa.Column('current_workflow_stage_id', sa.Integer(), sa.ForeignKey('workflow_stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('current_stage_entered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_executive_level', sa.Integer(), nullable=True),
        sa.Column('jamiat_id', sa.Integer(), sa.ForeignKey('jamiat.id', ondelete='SET NULL'), nullable=True),
        sa.Column('jamaat_id', sa.Integer(), sa.ForeignKey('jamaat.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_counselor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_cases_status', 'cases', ['status'])
    op.create_index('idx_cases_stage', 'cases', ['current_workflow_stage_id'])
    op.create_index('idx_cases_assigned', 'cases', ['assigned_user_id'])

    op.create_table(
        'case_workflow_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage_id', sa.Integer(), sa.ForeignKey('workflow_stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('stage_name', sa.String(255), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entered_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('entered_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('entered_by_name', sa.String(255), nullable=True),
    )
    op.create_index('idx_workflow_events_case', 'case_workflow_events', ['case_id', 'id'])

    op.create_table(
        'status_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_status', sa.String(100), nullable=True),
        sa.Column('to_status', sa.String(100), nullable=False),
        sa.Column('changed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index('idx_status_history_case', 'status_history', ['case_id', 'created_at'])

    op.create_table(
        'case_comments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('comment_type', sa.String(30), nullable=False, server_default='general'),
        *_timestamps(with_updated=False),
    )
    op.create_index('idx_case_comments_case', 'case_comments', ['case_id', 'created_at'])

    op.create_table(
        'case_closures',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('closed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Welfare checklist
    # ==========================================================================
    op.create_table(
        'welfare_checklist_categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'welfare_checklist_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('welfare_checklist_categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('form_section', sa.String(255), nullable=False),
        sa.Column('checklist_detail', sa.Text(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_compulsory', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'welfare_checklist_responses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('checklist_item_id', sa.Integer(), sa.ForeignKey('welfare_checklist_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('properly_filled', sa.String(1), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('overall_remarks', sa.Text(), nullable=True),
        sa.Column('filled_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint('case_id', 'checklist_item_id', name='uq_checklist_response'),
    )

    # ==========================================================================
    # Cover letters and attachments
    # ==========================================================================
    op.create_table(
        'cover_letter_forms',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('applicant_details', sa.JSON(), nullable=True),
        sa.Column('counsellor_details', sa.JSON(), nullable=True),
        sa.Column('financial_overview', sa.JSON(), nullable=True),
        sa.Column('proposed_upliftment_plan', sa.Text(), nullable=True),
        sa.Column('financial_assistance', sa.JSON(), nullable=True),
        sa.Column('non_financial_assistance', sa.Text(), nullable=True),
        sa.Column('projected_income', sa.JSON(), nullable=True),
        sa.Column('case_management_comments', sa.Text(), nullable=True),
        sa.Column('is_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'case_attachments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('file_path', sa.String(500), nullable=False),
        sa.Column('file_type', sa.String(150), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('checksum_sha256', sa.String(64), nullable=True),
        sa.Column('uploaded_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index('idx_case_attachments_case', 'case_attachments', ['case_id', 'stage'])

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index('idx_notif_user_unread', 'notifications', ['user_id', 'is_read', 'created_at'])


def downgrade() -> None:
    """Drop all casework tables."""
    for table in (
        'notifications',
        'case_attachments',
        'cover_letter_forms',
        'welfare_checklist_responses',
        'welfare_checklist_items',
        'welfare_checklist_categories',
        'case_closures',
        'case_comments',
        'status_history',
        'case_workflow_events',
        'cases',
        'workflow_stage_users',
        'workflow_stage_roles',
        'workflow_stages',
        'applicants',
        'jamaat',
        'jamiat',
        'executive_levels',
        'case_types',
        'user_roles',
        'role_permissions',
        'roles',
        'users',
    ):
        op.drop_table(table)
