"""initial schema: agencies, students, payment plans, installments, notifications, jobs_log, activity_log

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.execute("CREATE TYPE payment_plan_status AS ENUM ('active', 'completed', 'cancelled')")
    op.execute("CREATE TYPE installment_status AS ENUM ('draft', 'pending', 'overdue', 'paid', 'cancelled')")
    op.execute("CREATE TYPE notification_type AS ENUM ('overdue_payment')")
    op.execute("CREATE TYPE job_status AS ENUM ('running', 'success', 'failed')")

    op.create_table(
        "agencies",
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Australia/Brisbane"),
        sa.Column("overdue_cutoff_time", sa.Time(), nullable=False, server_default="17:00:00"),
        sa.Column("due_soon_threshold_days", sa.Integer(), nullable=False, server_default="4"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_agencies_id"), "agencies", ["id"], unique=False)

    op.create_table(
        "students",
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("agency_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_students_id"), "students", ["id"], unique=False)
    op.create_index(op.f("ix_students_agency_id"), "students", ["agency_id"], unique=False)

    op.create_table(
        "payment_plans",
        sa.Column("student_id", sa.UUID(), nullable=True),
        sa.Column("total_course_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("materials_cost", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("admin_fees", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("other_fees", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("commission_rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("gst_inclusive", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", postgresql.ENUM("active", "completed", "cancelled",
                  name="payment_plan_status", create_type=False), nullable=False),
        sa.Column("commissionable_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("expected_commission", sa.Numeric(12, 2), nullable=True),
        sa.Column("earned_commission", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("outstanding_commission", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("agency_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "commission_rate_percent >= 0 AND commission_rate_percent <= 100",
            name="ck_payment_plans_commission_rate_range",
        ),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_payment_plans_id"), "payment_plans", ["id"], unique=False)
    op.create_index(op.f("ix_payment_plans_agency_id"), "payment_plans", ["agency_id"], unique=False)
    op.create_index(op.f("ix_payment_plans_student_id"), "payment_plans", ["student_id"], unique=False)
    op.create_index(op.f("ix_payment_plans_status"), "payment_plans", ["status"], unique=False)

    op.create_table(
        "installments",
        sa.Column("payment_plan_id", sa.UUID(), nullable=False),
        sa.Column("installment_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("student_due_date", sa.Date(), nullable=False),
        sa.Column("college_due_date", sa.Date(), nullable=True),
        sa.Column("status", postgresql.ENUM("draft", "pending", "overdue", "paid", "cancelled",
                  name="installment_status", create_type=False), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("generates_commission", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["payment_plan_id"], ["payment_plans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_installments_id"), "installments", ["id"], unique=False)
    op.create_index(op.f("ix_installments_payment_plan_id"), "installments", ["payment_plan_id"], unique=False)
    op.create_index(op.f("ix_installments_student_due_date"), "installments", ["student_due_date"], unique=False)
    op.create_index(op.f("ix_installments_status"), "installments", ["status"], unique=False)
    # status job candidate scan
    op.create_index(
        "ix_installments_pending_due",
        "installments",
        ["student_due_date"],
        unique=False,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "notifications",
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("type", postgresql.ENUM("overdue_payment", name="notification_type", create_type=False), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(500), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("agency_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_id"), "notifications", ["id"], unique=False)
    op.create_index(op.f("ix_notifications_agency_id"), "notifications", ["agency_id"], unique=False)
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(op.f("ix_notifications_type"), "notifications", ["type"], unique=False)
    # overdue dedup lookup
    op.create_index(
        "ix_notifications_installment_id",
        "notifications",
        [sa.text("(metadata->>'installment_id')")],
        unique=False,
    )

    op.create_table(
        "jobs_log",
        sa.Column("job_name", sa.String(100), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("status", postgresql.ENUM("running", "success", "failed",
                  name="job_status", create_type=False), nullable=False),
        sa.Column("records_updated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_jobs_log_id"), "jobs_log", ["id"], unique=False)
    op.create_index(op.f("ix_jobs_log_job_name"), "jobs_log", ["job_name"], unique=False)
    op.create_index(op.f("ix_jobs_log_started_at"), "jobs_log", ["started_at"], unique=False)
    op.create_index(op.f("ix_jobs_log_status"), "jobs_log", ["status"], unique=False)

    op.create_table(
        "activity_log",
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.UUID(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("agency_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_log_id"), "activity_log", ["id"], unique=False)
    op.create_index(op.f("ix_activity_log_agency_id"), "activity_log", ["agency_id"], unique=False)
    op.create_index(op.f("ix_activity_log_entity_id"), "activity_log", ["entity_id"], unique=False)


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("jobs_log")
    op.drop_table("notifications")
    op.drop_table("installments")
    op.drop_table("payment_plans")
    op.drop_table("students")
    op.drop_table("agencies")
    op.execute("DROP TYPE IF EXISTS job_status")
    op.execute("DROP TYPE IF EXISTS notification_type")
    op.execute("DROP TYPE IF EXISTS installment_status")
    op.execute("DROP TYPE IF EXISTS payment_plan_status")
