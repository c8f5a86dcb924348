"""Issue duplicates and soft delete

Revision ID: 002
Revises: 001
Create Date: 2026-10-20 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add duplicate tracking and soft delete columns to issues."""
    op.add_column('issues', sa.Column('is_duplicate', sa.Boolean(), server_default=sa.false(), nullable=False))
    op.add_column('issues', sa.Column('original_issue_id', sa.Uuid(), nullable=True))
    op.add_column('issues', sa.Column('duplicate_count', sa.Integer(), server_default='0', nullable=False))
    op.add_column('issues', sa.Column('deleted_at', sa.DateTime(), nullable=True))

    op.create_foreign_key(
        'fk_issues_original_issue_id',
        'issues', 'issues',
        ['original_issue_id'], ['id'],
        ondelete='SET NULL'
    )
    op.create_check_constraint(
        'check_duplicate_count_non_negative',
        'issues',
        'duplicate_count >= 0'
    )
    op.create_index('ix_issues_original_issue_id', 'issues', ['original_issue_id'])
    op.create_index('ix_issues_deleted_at', 'issues', ['deleted_at'])


def downgrade() -> None:
    """Remove duplicate tracking and soft delete columns."""
    op.drop_index('ix_issues_deleted_at', table_name='issues')
    op.drop_index('ix_issues_original_issue_id', table_name='issues')
    op.drop_constraint('check_duplicate_count_non_negative', 'issues', type_='check')
    op.drop_constraint('fk_issues_original_issue_id', 'issues', type_='foreignkey')
    op.drop_column('issues', 'deleted_at')
    op.drop_column('issues', 'duplicate_count')
    op.drop_column('issues', 'original_issue_id')
    op.drop_column('issues', 'is_duplicate')
