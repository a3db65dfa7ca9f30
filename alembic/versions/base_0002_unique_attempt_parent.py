"""one re-grade per attempt

Revision ID: base_0002
Revises: base_0001
Create Date: 2026-10-19 15:40:07.552913

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "base_0002"
down_revision: Union[str, Sequence[str], None] = "base_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("attempts") as batch_op:
        batch_op.create_unique_constraint("uq_attempts_parent_id", ["parent_id"])


def downgrade() -> None:
    with op.batch_alter_table("attempts") as batch_op:
        batch_op.drop_constraint("uq_attempts_parent_id", type_="unique")
