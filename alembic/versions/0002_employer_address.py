"""add employer address to batches

Revision ID: 0002_employer_address
Revises: 0001_initial
Create Date: 2026-10-19 12:00:00.000000

"""

import sqlalchemy as sa
from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "0002_employer_address"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

ADDRESS_COLUMNS = (
    ("employer_street", 255),
    ("employer_city", 128),
    ("employer_state", 64),
    ("employer_postal_code", 16),
)


def upgrade() -> None:
    with op.batch_alter_table("batches") as batch_op:
        for name, length in ADDRESS_COLUMNS:
            batch_op.add_column(sa.Column(name, sa.String(length=length), nullable=True))


def downgrade() -> None:
    # sqlite drops columns by rebuilding the table
    with op.batch_alter_table("batches") as batch_op:
        for name, _ in reversed(ADDRESS_COLUMNS):
            batch_op.drop_column(name)
