# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence adapter for institution and department settings.

The configuration service talks to storage only through the SettingsStore
protocol. SQLSettingsStore implements it on top of an async SQLAlchemy
session. Each save is a single-row UPDATE; concurrent writers to the same
department are last-write-wins.

Database errors are not caught here. They propagate to the caller unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.institution import (
    ConfigAuditLog,
    Department,
    Institution,
)
from src.models.department_config import DepartmentSettings, InstitutionSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepartmentRecord:
    """Identity of a department and its owning institution."""

    id: str
    institution_id: str
    name: str


@dataclass
class ConfigChange:
    """Audit entry describing one configuration write.

    Attributes:
        action: One of "update", "reset", "institution_update".
        updated_by: Acting user id.
        changes: The patch or the resulting settings document.
        department_id: Target department, if any.
        institution_id: Target institution, if any.
        reason: Optional free-text reason.
    """

    action: str
    updated_by: str
    changes: dict[str, Any] = field(default_factory=dict)
    department_id: str | None = None
    institution_id: str | None = None
    reason: str | None = None


class SettingsStore(Protocol):
    """Storage operations required by the configuration service."""

    async def get_department(self, department_id: str) -> DepartmentRecord | None: ...

    async def get_institution_settings(self, institution_id: str) -> InstitutionSettings | None: ...

    async def get_department_settings(self, department_id: str) -> DepartmentSettings: ...

    async def save_department_settings(
        self, department_id: str, settings: DepartmentSettings
    ) -> None: ...

    async def save_institution_settings(
        self, institution_id: str, settings: InstitutionSettings
    ) -> None: ...

    async def record_config_change(self, change: ConfigChange) -> None: ...


class SQLSettingsStore:
    """SettingsStore backed by the institutions/departments tables.

    Attributes:
        _db: Async database session.

    Example:
        >>> store = SQLSettingsStore(db)
        >>> settings = await store.get_department_settings(department_id)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the store.

        Args:
            db: Async database session.
        """
        self._db = db

    async def get_department(self, department_id: str) -> DepartmentRecord | None:
        stmt = select(Department).where(Department.id == department_id)
        result = await self._db.execute(stmt)
        department = result.scalar_one_or_none()
        if department is None:
            return None
        return DepartmentRecord(
            id=str(department.id),
            institution_id=str(department.institution_id),
            name=department.name,
        )

    async def get_institution_settings(self, institution_id: str) -> InstitutionSettings | None:
        stmt = select(Institution.settings).where(Institution.id == institution_id)
        result = await self._db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return InstitutionSettings.model_validate(row[0] or {})

    async def get_department_settings(self, department_id: str) -> DepartmentSettings:
        stmt = select(Department.settings).where(Department.id == department_id)
        result = await self._db.execute(stmt)
        raw = result.scalar_one_or_none()
        return DepartmentSettings.model_validate(raw or {})

    async def save_department_settings(
        self,
        department_id: str,
        settings: DepartmentSettings,
    ) -> None:
        stmt = (
            update(Department)
            .where(Department.id == department_id)
            .values(settings=settings.to_sparse_dict())
        )
        await self._db.execute(stmt)
        await self._db.commit()
        logger.info("Department settings saved: %s", department_id)

    async def save_institution_settings(
        self,
        institution_id: str,
        settings: InstitutionSettings,
    ) -> None:
        stmt = (
            update(Institution)
            .where(Institution.id == institution_id)
            .values(settings=settings.model_dump(mode="json", exclude_none=True))
        )
        await self._db.execute(stmt)
        await self._db.commit()
        logger.info("Institution settings saved: %s", institution_id)

    async def record_config_change(self, change: ConfigChange) -> None:
        entry = ConfigAuditLog(
            institution_id=change.institution_id,
            department_id=change.department_id,
            updated_by=change.updated_by,
            action=change.action,
            changes=change.changes,
            reason=change.reason,
        )
        self._db.add(entry)
        await self._db.commit()
