# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for the administration database."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.institution import (
    ConfigAuditLog,
    Department,
    Institution,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Institution",
    "Department",
    "ConfigAuditLog",
]
