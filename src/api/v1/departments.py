# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department configuration API endpoints.

- GET /{department_id}/config - Effective configuration with provenance
- PUT /{department_id}/config - Update department overrides
- POST /{department_id}/config/validate - Validate settings without saving
- POST /{department_id}/config/reset - Revert overrides to institution defaults
- GET /{department_id}/config/hierarchy - Raw institution and department settings

Access:
- system_admin: All departments
- institution_admin: Departments of their institution
- department_admin: Their own departments

Rejected updates return 200 with success=false and every error or conflict,
so clients can show all problems at once.

Example:
    PUT /api/v1/departments/{id}/config
    {
        "settings": {"default_class_settings": {"default_capacity": 40}},
        "reason": "Larger lecture halls"
    }
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import PermissionDeniedError, get_config_service, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.department_config.service import (
    DepartmentConfigService,
    DepartmentNotFoundError,
    InstitutionNotFoundError,
)
from src.domains.department_config.store import DepartmentRecord
from src.models.department_config import (
    ConfigHierarchy,
    ConfigUpdateResult,
    ConfigValidationResult,
    DepartmentConfigResetRequest,
    DepartmentConfigUpdate,
    DepartmentConfigUpdateRequest,
    DepartmentConfigValidateRequest,
    InheritanceResult,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _authorize_department(
    service: DepartmentConfigService,
    current_user: CurrentUser,
    department_id: str,
) -> DepartmentRecord:
    """Load a department and check the user may manage it.

    Raises:
        HTTPException: If the department does not exist.
        PermissionDeniedError: If the user has no access.
    """
    try:
        department = await service.get_department(department_id)
    except DepartmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Department not found",
        )

    if not current_user.can_manage_department(department.institution_id, department.id):
        logger.info(
            "Department config access denied: department=%s, user=%s",
            department_id,
            current_user.id,
        )
        raise PermissionDeniedError(
            "You do not have permission to manage this department's configuration"
        )
    return department


def _institution_missing(e: InstitutionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/{department_id}/config",
    response_model=InheritanceResult,
    summary="Get department configuration",
    description="Effective configuration with inherited and overridden field paths.",
)
async def get_department_config(
    department_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> InheritanceResult:
    """Get the effective configuration of a department."""
    await _authorize_department(service, current_user, department_id)
    try:
        return await service.get_department_config(department_id)
    except InstitutionNotFoundError as e:
        raise _institution_missing(e)


@router.put(
    "/{department_id}/config",
    response_model=ConfigUpdateResult,
    summary="Update department configuration",
    description="Merge a settings patch into the department overrides.",
)
async def update_department_config(
    department_id: str,
    data: DepartmentConfigUpdateRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> ConfigUpdateResult:
    """Update department overrides.

    Args:
        department_id: Department identifier.
        data: Settings patch, reason and explicit conflict resolutions.
        current_user: Authenticated user.
        service: Configuration service.

    Returns:
        Update result; success=false carries errors or conflicts.

    Raises:
        HTTPException: If the department does not exist.
    """
    await _authorize_department(service, current_user, department_id)

    logger.info(
        "Updating department config: department=%s, by=%s",
        department_id,
        current_user.id,
    )

    try:
        return await service.update_department_config(
            DepartmentConfigUpdate(
                department_id=department_id,
                settings=data.settings,
                updated_by=current_user.id,
                reason=data.reason,
                resolutions=data.resolutions,
            )
        )
    except InstitutionNotFoundError as e:
        raise _institution_missing(e)


@router.post(
    "/{department_id}/config/validate",
    response_model=ConfigValidationResult,
    summary="Validate department configuration",
    description="Report every validation error and conflict without saving.",
)
async def validate_department_config(
    department_id: str,
    data: DepartmentConfigValidateRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> ConfigValidationResult:
    """Validate proposed settings for a department."""
    await _authorize_department(service, current_user, department_id)
    try:
        return await service.validate_department_config(department_id, data.settings)
    except InstitutionNotFoundError as e:
        raise _institution_missing(e)


@router.post(
    "/{department_id}/config/reset",
    response_model=ConfigUpdateResult,
    summary="Reset department configuration",
    description="Remove overrides so values inherit from the institution again.",
)
async def reset_department_config(
    department_id: str,
    data: DepartmentConfigResetRequest | None = None,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> ConfigUpdateResult:
    """Reset some or all department overrides.

    An empty body, or one without field_paths, clears every override.
    """
    await _authorize_department(service, current_user, department_id)

    field_paths = data.field_paths if data else None
    logger.info(
        "Resetting department config: department=%s, fields=%s, by=%s",
        department_id,
        field_paths or "all",
        current_user.id,
    )
    return await service.reset_to_institution_defaults(
        department_id,
        current_user.id,
        field_paths,
    )


@router.get(
    "/{department_id}/config/hierarchy",
    response_model=ConfigHierarchy,
    summary="Get configuration hierarchy",
    description="Institution settings, raw department overrides and field provenance.",
)
async def get_config_hierarchy(
    department_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> ConfigHierarchy:
    """Get the configuration hierarchy of a department."""
    await _authorize_department(service, current_user, department_id)
    try:
        return await service.get_config_hierarchy(department_id)
    except InstitutionNotFoundError as e:
        raise _institution_missing(e)
