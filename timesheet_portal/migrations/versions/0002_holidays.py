"""Add holidays table

Revision ID: 0002_holidays
Revises: 0001_initial
Create Date: 2026-09-21 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002_holidays"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

holiday_type = postgresql.ENUM(
    "HOLIDAY",
    "SPECIAL_TIME_OFF",
    name="holiday_type",
    create_type=False,
)


def _jsonb_list(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        nullable=False,
        server_default=sa.text("'[]'::jsonb"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    holiday_type.create(bind, checkfirst=True)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", holiday_type, nullable=False, server_default=sa.text("'HOLIDAY'")),
        _jsonb_list("dates"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("applies_to_all_projects", sa.Boolean(), nullable=True, server_default=sa.text("true")),
        _jsonb_list("projects"),
        sa.Column("applies_to_all_employee_types", sa.Boolean(), nullable=True, server_default=sa.text("true")),
        _jsonb_list("employee_types"),
        sa.Column("applies_to_all_locations", sa.Boolean(), nullable=True, server_default=sa.text("true")),
        _jsonb_list("countries"),
        _jsonb_list("regions"),
        sa.Column("created_by", sa.String(length=255), nullable=True),
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
    )
    op.create_index("ix_holidays_created_at", "holidays", ["created_at"], unique=False)
    op.create_index("ix_holidays_is_active", "holidays", ["is_active"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_holidays_is_active", table_name="holidays")
    op.drop_index("ix_holidays_created_at", table_name="holidays")
    op.drop_table("holidays")

    bind = op.get_bind()
    holiday_type.drop(bind, checkfirst=True)
