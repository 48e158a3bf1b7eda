"""Create lighthouse_audits table

Revision ID: 0001
Revises:
Create Date: 2020-05-01

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "lighthouse_audits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column(
            "time_created",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("time_completed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("report_json", postgresql.JSONB(), nullable=True),
    )
    op.create_index("lighthouse_audits_url_idx", "lighthouse_audits", ["url"])
    op.create_index(
        "lighthouse_audits_time_created_idx",
        "lighthouse_audits",
        [sa.text("time_created DESC")],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("lighthouse_audits_time_created_idx", table_name="lighthouse_audits")
    op.drop_index("lighthouse_audits_url_idx", table_name="lighthouse_audits")
    op.drop_table("lighthouse_audits")
