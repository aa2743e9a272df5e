# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution settings API endpoints.

- GET /{institution_id}/settings - Institution settings and restriction policy
- PUT /{institution_id}/settings - Replace institution settings
- GET /{institution_id}/department-defaults - Configuration of a new department

Reading requires membership of the institution. Changing settings requires
an institution admin of that institution or a system admin.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import PermissionDeniedError, get_config_service, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.department_config.service import (
    DepartmentConfigService,
    InstitutionNotFoundError,
)
from src.models.department_config import (
    ConfigUpdateResult,
    EffectiveConfig,
    InstitutionSettings,
    InstitutionSettingsUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_settings_or_404(
    service: DepartmentConfigService,
    institution_id: str,
) -> InstitutionSettings:
    try:
        return await service.get_institution_settings(institution_id)
    except InstitutionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Institution not found",
        )


@router.get(
    "/{institution_id}/settings",
    response_model=InstitutionSettings,
    summary="Get institution settings",
)
async def get_institution_settings(
    institution_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> InstitutionSettings:
    """Get institution settings including restricted fields."""
    if not current_user.can_access_institution(institution_id):
        raise PermissionDeniedError("You do not have access to this institution")
    return await _get_settings_or_404(service, institution_id)


@router.put(
    "/{institution_id}/settings",
    response_model=ConfigUpdateResult,
    summary="Update institution settings",
    description="Replace institution settings. Requires institution admin access.",
)
async def update_institution_settings(
    institution_id: str,
    data: InstitutionSettingsUpdateRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> ConfigUpdateResult:
    """Replace institution settings.

    Args:
        institution_id: Institution identifier.
        data: New settings and reason.
        current_user: Authenticated institution or system admin.
        service: Configuration service.

    Returns:
        Update result; success=false carries validation errors.

    Raises:
        HTTPException: If the institution does not exist.
        PermissionDeniedError: If the user is not an admin of the institution.
    """
    if not current_user.can_manage_institution(institution_id):
        raise PermissionDeniedError("Institution admin access required")

    await _get_settings_or_404(service, institution_id)

    logger.info(
        "Updating institution settings: institution=%s, by=%s",
        institution_id,
        current_user.id,
    )
    return await service.update_institution_settings(
        institution_id,
        data.settings,
        updated_by=current_user.id,
        reason=data.reason,
    )


@router.get(
    "/{institution_id}/department-defaults",
    response_model=EffectiveConfig,
    summary="Get default department settings",
    description="Effective configuration a department without overrides receives.",
)
async def get_department_defaults(
    institution_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: DepartmentConfigService = Depends(get_config_service),
) -> EffectiveConfig:
    """Get the configuration new departments start with."""
    if not current_user.can_access_institution(institution_id):
        raise PermissionDeniedError("You do not have access to this institution")
    try:
        return await service.get_default_department_settings(institution_id)
    except InstitutionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Institution not found",
        )
