"""Initial timesheet schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-14 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

employee_role = postgresql.ENUM(
    "EMPLOYEE",
    "MANAGER",
    "ADMIN",
    name="employee_role",
    create_type=False,
)
submission_status = postgresql.ENUM(
    "SUBMITTED",
    "MANAGER_APPROVED",
    "MANAGER_REJECTED",
    "ADMIN_PAID",
    "ADMIN_REJECTED",
    "NEEDS_CLARIFICATION",
    name="submission_status",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "EMPLOYEE",
    "MANAGER",
    "ADMIN",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    employee_role.create(bind, checkfirst=True)
    submission_status.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("name", name="uq_projects_name"),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", employee_role, nullable=False, server_default=sa.text("'EMPLOYEE'")),
        sa.Column("contract_type", sa.String(length=64), nullable=True),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("region", sa.String(length=128), nullable=True),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["manager_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("email", name="uq_employees_email"),
    )
    op.create_index("ix_employees_project_id", "employees", ["project_id"], unique=False)
    op.create_index("ix_employees_manager_id", "employees", ["manager_id"], unique=False)

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("submission_date", sa.Date(), nullable=False),
        sa.Column("submission_month", sa.Date(), nullable=False),
        sa.Column("hours_submitted", sa.Numeric(6, 2), nullable=False),
        sa.Column("overtime_hours", sa.Numeric(6, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("overtime_description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            submission_status,
            nullable=False,
            server_default=sa.text("'SUBMITTED'"),
        ),
        sa.Column("manager_comment", sa.Text(), nullable=True),
        sa.Column("admin_comment", sa.Text(), nullable=True),
        sa.Column("acted_by_id", sa.Integer(), nullable=True),
        sa.Column("acted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_id", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["manager_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["acted_by_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "submission_month", name="uq_submissions_employee_month"),
        sa.CheckConstraint("hours_submitted > 0", name="ck_submissions_hours_positive"),
        sa.CheckConstraint(
            "overtime_hours IS NULL OR overtime_hours >= 0",
            name="ck_submissions_overtime_non_negative",
        ),
    )
    op.create_index("ix_submissions_employee_id", "submissions", ["employee_id"], unique=False)
    op.create_index("ix_submissions_manager_id", "submissions", ["manager_id"], unique=False)
    op.create_index("ix_submissions_status", "submissions", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_index("ix_submissions_manager_id", table_name="submissions")
    op.drop_index("ix_submissions_employee_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_employees_manager_id", table_name="employees")
    op.drop_index("ix_employees_project_id", table_name="employees")
    op.drop_table("employees")
    op.drop_table("projects")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    submission_status.drop(bind, checkfirst=True)
    employee_role.drop(bind, checkfirst=True)
