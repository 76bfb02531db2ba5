"""
Initial schema: accounts, competencies, numbering, training requests,
training batches, validation records and audit tables.

Revision ID: a1c0e5d7f201
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c0e5d7f201"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _user_fk(name: str, *, nullable: bool, ondelete: str) -> sa.Column:
    return sa.Column(
        name,
        sa.String(length=36),
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=nullable,
        index=True,
    )


def _level_fk() -> sa.Column:
    return sa.Column(
        "competency_level_id",
        sa.String(length=36),
        sa.ForeignKey("competency_levels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    # -- accounts ------------------------------------------------------------
    op.create_table(
        "roles",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "role_permissions",
        _id(),
        sa.Column("role_id", sa.String(length=36), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "module",
            sa.Enum(
                "ROLES",
                "USERS",
                "ACTIVITY_LOG",
                "COMPETENCIES",
                "TRAINING_BATCH",
                "TRAINING_REQUEST",
                "VALIDATION_PROJECT_APPROVAL",
                "VALIDATION_SCHEDULE_REQUEST",
                name="permission_module_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("can_list", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_add", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_edit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("role_id", "module", name="uq_role_permissions_role_module"),
    )
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role_id", sa.String(length=36), sa.ForeignKey("roles.id", ondelete="SET NULL"), nullable=True, index=True),
        *_timestamps(),
    )
    op.create_index("ix_users_role_active", "users", ["role_id", "is_active"])

    # -- competencies --------------------------------------------------------
    op.create_table(
        "competencies",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("relevant_links", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_table(
        "competency_levels",
        _id(),
        sa.Column(
            "competency_id",
            sa.String(length=36),
            sa.ForeignKey("competencies.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("training_plan_document", sa.Text(), nullable=True),
        sa.Column("eligibility_criteria", sa.Text(), nullable=True),
        sa.Column("verification", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("competency_id", "name", name="uq_competency_levels_competency_name"),
    )
    op.create_table(
        "competency_trainers",
        sa.Column(
            "competency_id",
            sa.String(length=36),
            sa.ForeignKey("competencies.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "trainer_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        ),
    )

    # -- numbering -----------------------------------------------------------
    op.create_table(
        "custom_numbering",
        sa.Column("module", sa.String(length=64), primary_key=True),
        sa.Column("running_number", sa.Integer(), nullable=False, server_default="0"),
    )

    # -- training batches / requests -----------------------------------------
    op.create_table(
        "training_batches",
        _id(),
        _level_fk(),
        _user_fk("trainer_user_id", nullable=False, ondelete="CASCADE"),
        sa.Column("batch_name", sa.String(length=128), nullable=False),
        sa.Column("session_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_hrs", sa.Numeric(5, 1), nullable=True),
        sa.Column("estimated_start", sa.Date(), nullable=True),
        sa.Column("batch_start_date", sa.Date(), nullable=True),
        sa.Column("batch_finish_date", sa.Date(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_participant", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("spot_left", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index(
        "ix_training_batches_level_trainer",
        "training_batches",
        ["competency_level_id", "trainer_user_id"],
    )

    op.create_table(
        "training_requests",
        _id(),
        sa.Column("tr_id", sa.String(length=32), nullable=False),
        sa.Column("requested_date", sa.Date(), nullable=False),
        _user_fk("learner_user_id", nullable=False, ondelete="CASCADE"),
        _level_fk(),
        sa.Column(
            "training_batch_id",
            sa.String(length=36),
            sa.ForeignKey("training_batches.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("on_hold_by", sa.Integer(), nullable=True),
        sa.Column("on_hold_reason", sa.Text(), nullable=True),
        sa.Column("drop_off_reason", sa.Text(), nullable=True),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
        sa.Column("expected_unblocked_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _user_fk("assigned_to", nullable=True, ondelete="SET NULL"),
        sa.Column("response_due", sa.Date(), nullable=True),
        sa.Column("response_date", sa.Date(), nullable=True),
        sa.Column("definite_answer", sa.Boolean(), nullable=True),
        sa.Column("no_follow_up_date", sa.Date(), nullable=True),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("in_queue_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tr_id", name="uq_training_requests_tr_id"),
        sa.UniqueConstraint("learner_user_id", "competency_level_id", name="uq_training_requests_learner_level"),
    )
    op.create_index(
        "ix_training_requests_level_status",
        "training_requests",
        ["competency_level_id", "status"],
    )

    op.create_table(
        "training_batch_sessions",
        _id(),
        sa.Column(
            "training_batch_id",
            sa.String(length=36),
            sa.ForeignKey("training_batches.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("training_batch_id", "session_number", name="uq_training_batch_sessions_batch_number"),
    )
    op.create_table(
        "training_batch_learners",
        sa.Column(
            "training_batch_id",
            sa.String(length=36),
            sa.ForeignKey("training_batches.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "learner_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        ),
        sa.Column(
            "training_request_id",
            sa.String(length=36),
            sa.ForeignKey("training_requests.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    for table, flag in (
        ("training_batch_attendance", sa.Column("attended", sa.Boolean(), nullable=False, server_default=sa.false())),
        ("training_batch_homework", sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false())),
    ):
        extra = [sa.Column("homework_url", sa.Text(), nullable=True)] if table == "training_batch_homework" else []
        op.create_table(
            table,
            sa.Column(
                "training_batch_id",
                sa.String(length=36),
                sa.ForeignKey("training_batches.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(
                "learner_user_id",
                sa.String(length=36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                primary_key=True,
                index=True,
            ),
            sa.Column(
                "session_id",
                sa.String(length=36),
                sa.ForeignKey("training_batch_sessions.id", ondelete="CASCADE"),
                primary_key=True,
                index=True,
            ),
            flag,
            *extra,
        )

    # -- validation ----------------------------------------------------------
    op.create_table(
        "validation_project_approvals",
        _id(),
        sa.Column("vpa_id", sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column("tr_id", sa.String(length=32), nullable=True, index=True),
        _user_fk("learner_user_id", nullable=False, ondelete="CASCADE"),
        _level_fk(),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        _user_fk("assigned_to", nullable=True, ondelete="SET NULL"),
        sa.Column("requested_date", sa.Date(), nullable=False),
        sa.Column("response_due", sa.Date(), nullable=True),
        sa.Column("response_date", sa.Date(), nullable=True),
        sa.Column("project_details", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "validation_schedule_requests",
        _id(),
        sa.Column("vsr_id", sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column("tr_id", sa.String(length=32), nullable=True, index=True),
        _user_fk("learner_user_id", nullable=False, ondelete="CASCADE"),
        _level_fk(),
        sa.Column("requested_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        _user_fk("validator_ops", nullable=True, ondelete="SET NULL"),
        _user_fk("validator_trainer", nullable=True, ondelete="SET NULL"),
        _user_fk("assigned_to", nullable=True, ondelete="SET NULL"),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("response_due", sa.Date(), nullable=True),
        sa.Column("response_date", sa.Date(), nullable=True),
        sa.Column("definite_answer", sa.Boolean(), nullable=True),
        sa.Column("no_follow_up_date", sa.Date(), nullable=True),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    # -- audit ---------------------------------------------------------------
    op.create_table(
        "audit_log_entries",
        _id(),
        sa.Column("entity_type", sa.String(length=32), nullable=False, index=True),
        sa.Column("entity_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("status", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        _user_fk("actor_user_id", nullable=True, ondelete="SET NULL"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index("ix_audit_log_entries_entity", "audit_log_entries", ["entity_type", "entity_id"])
    op.create_table(
        "activity_log",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        sa.Column("module", sa.String(length=64), nullable=False, index=True),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index("ix_activity_log_module_time", "activity_log", ["module", "occurred_at"])


def downgrade() -> None:
    op.drop_index("ix_activity_log_module_time", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_index("ix_audit_log_entries_entity", table_name="audit_log_entries")
    op.drop_table("audit_log_entries")
    op.drop_table("validation_schedule_requests")
    op.drop_table("validation_project_approvals")
    op.drop_table("training_batch_homework")
    op.drop_table("training_batch_attendance")
    op.drop_table("training_batch_learners")
    op.drop_table("training_batch_sessions")
    op.drop_index("ix_training_requests_level_status", table_name="training_requests")
    op.drop_table("training_requests")
    op.drop_index("ix_training_batches_level_trainer", table_name="training_batches")
    op.drop_table("training_batches")
    op.drop_table("custom_numbering")
    op.drop_table("competency_trainers")
    op.drop_table("competency_levels")
    op.drop_table("competencies")
    op.drop_index("ix_users_role_active", table_name="users")
    op.drop_table("users")
    op.drop_table("role_permissions")
    op.drop_table("roles")
