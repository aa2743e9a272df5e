# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution, department and configuration audit models.

Settings are stored as JSON documents:
- institutions.settings holds the full InstitutionSettings document.
- departments.settings holds only the department's overrides.
"""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, new_uuid


class Institution(TimestampMixin, Base):
    """Top-level tenant owning departments and global policy defaults."""

    __tablename__ = "institutions"
    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('active', 'suspended', 'archived')",
            name="valid_institution_status",
        ),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="active")
    settings: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)

    departments: Mapped[list["Department"]] = relationship(
        back_populates="institution",
        lazy="raise",
    )


class Department(TimestampMixin, Base):
    """Sub-tenant of an institution with sparse settings overrides."""

    __tablename__ = "departments"
    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'archived')",
            name="valid_department_status",
        ),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    institution_id: Mapped[str] = mapped_column(
        sa.String(36),
        sa.ForeignKey("institutions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)
    admin_id: Mapped[str | None] = mapped_column(sa.String(36), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="active")
    settings: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)

    institution: Mapped[Institution] = relationship(
        back_populates="departments",
        lazy="raise",
    )


class ConfigAuditLog(Base):
    """Append-only record of configuration changes."""

    __tablename__ = "config_audit_logs"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    institution_id: Mapped[str | None] = mapped_column(sa.String(36), nullable=True, index=True)
    department_id: Mapped[str | None] = mapped_column(sa.String(36), nullable=True, index=True)
    updated_by: Mapped[str] = mapped_column(sa.String(36), nullable=False)
    action: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    changes: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    reason: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
