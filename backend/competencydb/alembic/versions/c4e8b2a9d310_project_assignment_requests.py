"""
Project assignment requests.

The permission module column is a non-native enum stored as VARCHAR without
a CHECK constraint, so the new PROJECT_ASSIGNMENT_REQUEST member fits the
existing column and needs no change here.

Revision ID: c4e8b2a9d310
Revises: a1c0e5d7f201
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c4e8b2a9d310"
down_revision: Union[str, Sequence[str], None] = "a1c0e5d7f201"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "project_assignment_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("par_id", sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column("requested_date", sa.Date(), nullable=False),
        sa.Column(
            "learner_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "competency_level_id",
            sa.String(length=36),
            sa.ForeignKey("competency_levels.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "assigned_to",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("response_due", sa.Date(), nullable=True),
        sa.Column("response_date", sa.Date(), nullable=True),
        sa.Column("project_name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("definite_answer", sa.Boolean(), nullable=True),
        sa.Column("no_follow_up_date", sa.Date(), nullable=True),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("project_assignment_requests")
