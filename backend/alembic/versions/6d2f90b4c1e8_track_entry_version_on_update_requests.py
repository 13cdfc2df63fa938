"""track entry version on update requests

Revision ID: 6d2f90b4c1e8
Revises: a1c3e5f70b21
Create Date: 2026-10-19 16:40:05.218734

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '6d2f90b4c1e8'
down_revision: Union[str, None] = 'a1c3e5f70b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Version of the ledger entry the request was made against
    op.add_column('update_requests', sa.Column('entry_version', sa.Integer(), nullable=True))
    # Why a request was closed without an admin decision
    op.add_column('update_requests', sa.Column('review_note', sa.String(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('update_requests', 'review_note')
    op.drop_column('update_requests', 'entry_version')
