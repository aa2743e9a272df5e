# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Dependencies are used to:
- Get database sessions
- Get authenticated users
- Get service instances

Example:
    @router.get("/{department_id}/config")
    async def get_department_config(
        department_id: str,
        current_user: CurrentUser = Depends(require_auth),
        service: DepartmentConfigService = Depends(get_config_service),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.department_config.service import DepartmentConfigService
from src.domains.department_config.store import SettingsStore, SQLSettingsStore
from src.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)
from src.models.department_config import ValidationErrorCode, ValidationErrorDetail

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when the current user may not act on a resource.

    Rendered as HTTP 403 with the same error shape as domain rejections.
    """

    def __init__(self, message: str, field: str = "authorization") -> None:
        super().__init__(message)
        self.detail = ValidationErrorDetail(
            field=field,
            message=message,
            code=ValidationErrorCode.INSUFFICIENT_PERMISSIONS,
        )


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession committed when the request succeeds.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_settings_store(db: AsyncSession = Depends(get_db)) -> SettingsStore:
    """Get the settings store bound to the request session.

    Args:
        db: Database session.

    Returns:
        SQLSettingsStore for the session.
    """
    return SQLSettingsStore(db)


def get_config_service(
    store: SettingsStore = Depends(get_settings_store),
) -> DepartmentConfigService:
    """Get DepartmentConfigService instance.

    Args:
        store: Settings store.

    Returns:
        DepartmentConfigService.
    """
    return DepartmentConfigService(store)
