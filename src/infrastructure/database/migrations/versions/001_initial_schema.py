# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates institutions, departments and config_audit_logs based on the
SQLAlchemy models in src/infrastructure/database/models/.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create tables."""
    # ==========================================================================
    # 1. institutions table
    # ==========================================================================
    op.create_table(
        "institutions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("settings", sa.JSON, nullable=False, server_default="{}"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active', 'suspended', 'archived')",
            name="valid_institution_status",
        ),
    )

    # ==========================================================================
    # 2. departments table
    # ==========================================================================
    op.create_table(
        "departments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "institution_id",
            sa.String(36),
            sa.ForeignKey("institutions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("admin_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("settings", sa.JSON, nullable=False, server_default="{}"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'archived')",
            name="valid_department_status",
        ),
    )
    op.create_index("ix_departments_institution_id", "departments", ["institution_id"])

    # ==========================================================================
    # 3. config_audit_logs table
    # ==========================================================================
    op.create_table(
        "config_audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("institution_id", sa.String(36), nullable=True),
        sa.Column("department_id", sa.String(36), nullable=True),
        sa.Column("updated_by", sa.String(36), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("changes", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_config_audit_logs_institution_id", "config_audit_logs", ["institution_id"])
    op.create_index("ix_config_audit_logs_department_id", "config_audit_logs", ["department_id"])


def downgrade() -> None:
    """Drop tables."""
    op.drop_index("ix_config_audit_logs_department_id", table_name="config_audit_logs")
    op.drop_index("ix_config_audit_logs_institution_id", table_name="config_audit_logs")
    op.drop_table("config_audit_logs")
    op.drop_index("ix_departments_institution_id", table_name="departments")
    op.drop_table("departments")
    op.drop_table("institutions")
