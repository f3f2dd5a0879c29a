"""Counseling forms

Revision ID: 0002_counseling_forms
Revises: 0001_baseline
Create Date: 2026-10-18

One counseling form per case, filled section by section before the case
moves to welfare review.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_counseling_forms'
down_revision: Union[str, Sequence[str], None] = '0001_baseline'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'counseling_forms',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('case_id', sa.Integer(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('personal_details', sa.JSON(), nullable=True),
        sa.Column('family_details', sa.JSON(), nullable=True),
        sa.Column('assessment', sa.JSON(), nullable=True),
        sa.Column('financial_assistance', sa.JSON(), nullable=True),
        sa.Column('economic_growth', sa.JSON(), nullable=True),
        sa.Column('declaration', sa.JSON(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('is_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('counseling_forms')
