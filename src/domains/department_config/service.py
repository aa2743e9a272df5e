# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department configuration service.

This module provides the DepartmentConfigService that handles:
- Effective configuration lookup with inheritance from the institution
- Validation of proposed department settings
- Conflict-checked updates of department overrides
- Resetting overrides back to institution defaults
- Institution settings maintenance

Expected domain failures (invalid values, restriction conflicts, unknown
departments on write paths) are returned as structured lists. Storage
failures propagate to the caller.

Example:
    >>> service = DepartmentConfigService(SQLSettingsStore(db))
    >>> config = await service.get_department_config(department_id)
    >>> result = await service.update_department_config(update)
"""

import logging
from enum import Enum
from typing import Any, Mapping

from src.domains.department_config.conflicts import blocking_conflicts, detect_conflicts
from src.domains.department_config.resolver import resolve
from src.domains.department_config.schema import (
    UnknownFieldPathError,
    FieldPath,
    deep_merge,
    extra_keys,
    get_field_path,
)
from src.domains.department_config.store import (
    ConfigChange,
    DepartmentRecord,
    SettingsStore,
)
from src.domains.department_config.validator import (
    parse_department_settings,
    validate_effective_settings,
    validate_institution_settings,
    validate_settings,
)
from src.models.department_config import (
    ConfigHierarchy,
    ConfigUpdateResult,
    ConfigValidationResult,
    ConflictResolution,
    DepartmentConfigUpdate,
    DepartmentSettings,
    EffectiveConfig,
    InheritanceResult,
    InstitutionSettings,
    ValidationErrorCode,
    ValidationErrorDetail,
)

logger = logging.getLogger(__name__)


class DepartmentConfigServiceError(Exception):
    """Base exception for department configuration errors."""

    pass


class DepartmentNotFoundError(DepartmentConfigServiceError):
    """Raised when a department is not found."""

    pass


class InstitutionNotFoundError(DepartmentConfigServiceError):
    """Raised when an institution is not found."""

    pass


class UpdateStage(str, Enum):
    """Stages of a department settings update."""

    VALIDATING = "validating"
    CONFLICT_CHECKING = "conflict_checking"
    PERSISTING = "persisting"
    DONE = "done"
    REJECTED = "rejected"


def _not_found(field: str, message: str) -> ValidationErrorDetail:
    return ValidationErrorDetail(
        field=field,
        message=message,
        code=ValidationErrorCode.NOT_FOUND,
    )


def _extend_unreported(
    errors: list[ValidationErrorDetail],
    extra: list[ValidationErrorDetail],
) -> None:
    reported = {error.field for error in errors}
    errors.extend(error for error in extra if error.field not in reported)


class DepartmentConfigService:
    """Service for department configuration with institution inheritance.

    Attributes:
        _store: Settings persistence adapter.

    Example:
        >>> service = DepartmentConfigService(store)
        >>> hierarchy = await service.get_config_hierarchy(department_id)
        >>> await service.reset_to_institution_defaults(department_id, user_id)
    """

    def __init__(self, store: SettingsStore) -> None:
        """Initialize the configuration service.

        Args:
            store: Settings persistence adapter.
        """
        self._store = store

    # =========================================================================
    # Read operations
    # =========================================================================

    async def get_department(self, department_id: str) -> DepartmentRecord:
        """Get a department's identity.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self._store.get_department(department_id)
        if department is None:
            raise DepartmentNotFoundError(f"Department {department_id} not found")
        return department

    async def get_institution_settings(self, institution_id: str) -> InstitutionSettings:
        """Get an institution's settings.

        Raises:
            InstitutionNotFoundError: If the institution does not exist.
        """
        settings = await self._store.get_institution_settings(institution_id)
        if settings is None:
            raise InstitutionNotFoundError(f"Institution {institution_id} not found")
        return settings

    async def get_department_config(self, department_id: str) -> InheritanceResult:
        """Get the effective configuration of a department.

        Args:
            department_id: Department identifier.

        Returns:
            Merged configuration with inherited/overridden paths and conflicts.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self.get_department(department_id)
        institution = await self.get_institution_settings(department.institution_id)
        overrides = await self._store.get_department_settings(department_id)
        return resolve(institution, overrides)

    async def get_config_hierarchy(self, department_id: str) -> ConfigHierarchy:
        """Get raw institution and department settings with provenance.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self.get_department(department_id)
        institution = await self.get_institution_settings(department.institution_id)
        overrides = await self._store.get_department_settings(department_id)
        result = resolve(institution, overrides)

        return ConfigHierarchy(
            institution=institution.model_dump(mode="json"),
            department=overrides.to_sparse_dict(),
            inherited=result.inherited_fields,
            overridden=result.overridden_fields,
        )

    async def get_default_department_settings(self, institution_id: str) -> EffectiveConfig:
        """Get the configuration a new department starts with.

        Raises:
            InstitutionNotFoundError: If the institution does not exist.
        """
        institution = await self.get_institution_settings(institution_id)
        return resolve(institution, DepartmentSettings()).final_config

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_department_config(
        self,
        department_id: str,
        settings: DepartmentSettings | Mapping[str, Any],
    ) -> ConfigValidationResult:
        """Validate proposed department settings without saving them.

        Args:
            department_id: Department identifier.
            settings: Proposed overrides, typed or as a raw mapping.

        Returns:
            Result with every validation error and every detected conflict.
            is_valid is False when errors or restriction conflicts exist.
        """
        if isinstance(settings, DepartmentSettings):
            parsed, errors = settings, validate_settings(settings).errors
        else:
            parsed, errors = parse_department_settings(settings)

        department = await self._store.get_department(department_id)
        if department is None:
            errors.append(_not_found("department_id", "Department not found"))
            return ConfigValidationResult(is_valid=False, errors=errors)

        if parsed is None:
            return ConfigValidationResult(is_valid=False, errors=errors)

        institution = await self.get_institution_settings(department.institution_id)
        effective = resolve(institution, parsed).final_config
        _extend_unreported(errors, validate_effective_settings(effective, parsed))
        conflicts = detect_conflicts(institution, parsed)

        return ConfigValidationResult(
            is_valid=not errors and not blocking_conflicts(conflicts),
            errors=errors,
            conflicts=conflicts,
        )

    # =========================================================================
    # Write operations
    # =========================================================================

    async def update_department_config(self, update: DepartmentConfigUpdate) -> ConfigUpdateResult:
        """Validate, conflict-check and persist a department settings patch.

        Nothing is written unless the merged settings are valid and the
        patch loosens no restricted field. A restriction is resolved only by
        the caller confirming use_institution for its path, in which case
        the institution value is stored.

        Args:
            update: Patch with acting user, reason and caller resolutions.

        Returns:
            ConfigUpdateResult; on rejection carries errors or conflicts.
        """
        department = await self._store.get_department(update.department_id)
        if department is None:
            return ConfigUpdateResult(
                success=False,
                errors=[_not_found("department_id", "Department not found")],
            )

        institution = await self.get_institution_settings(department.institution_id)
        existing = await self._store.get_department_settings(update.department_id)

        stage = UpdateStage.VALIDATING
        patch_data, errors = self._apply_resolutions(
            update.settings.to_sparse_dict(),
            update.resolutions,
            institution,
        )
        merged = DepartmentSettings.model_validate(
            deep_merge(existing.to_sparse_dict(), patch_data)
        )
        errors.extend(validate_settings(merged).errors)
        effective = resolve(institution, merged).final_config
        _extend_unreported(errors, validate_effective_settings(effective, merged))
        if errors:
            logger.info(
                "Department config update rejected at %s: %s (%d errors)",
                stage.value,
                update.department_id,
                len(errors),
            )
            return ConfigUpdateResult(success=False, errors=errors)

        stage = UpdateStage.CONFLICT_CHECKING
        patch = DepartmentSettings.model_validate(patch_data)
        conflicts = blocking_conflicts(detect_conflicts(institution, patch))
        if conflicts:
            logger.info(
                "Department config update rejected at %s: %s (%d conflicts)",
                stage.value,
                update.department_id,
                len(conflicts),
            )
            return ConfigUpdateResult(success=False, conflicts=conflicts)

        stage = UpdateStage.PERSISTING
        await self._store.save_department_settings(update.department_id, merged)
        await self._store.record_config_change(
            ConfigChange(
                action="update",
                updated_by=update.updated_by,
                changes=patch_data,
                department_id=update.department_id,
                institution_id=department.institution_id,
                reason=update.reason,
            )
        )

        stage = UpdateStage.DONE
        logger.info(
            "Department config updated: %s by %s (%s)",
            update.department_id,
            update.updated_by,
            stage.value,
        )
        return ConfigUpdateResult(success=True)

    async def reset_to_institution_defaults(
        self,
        department_id: str,
        user_id: str,
        field_paths: list[str] | None = None,
    ) -> ConfigUpdateResult:
        """Remove department overrides so values inherit again.

        Args:
            department_id: Department identifier.
            user_id: Acting user id.
            field_paths: Leaf or section paths to revert. None or an empty
                list clears every override.

        Returns:
            ConfigUpdateResult; NOT_FOUND if the department does not exist,
            INVALID_VALUE for paths that are neither schema fields nor
            stored pass-through keys.
        """
        department = await self._store.get_department(department_id)
        if department is None:
            return ConfigUpdateResult(
                success=False,
                errors=[_not_found("department", "Department not found")],
            )

        if field_paths:
            data = (await self._store.get_department_settings(department_id)).to_sparse_dict()
            errors: list[ValidationErrorDetail] = []
            for index, dotted in enumerate(field_paths):
                path = self._reset_path(dotted, data)
                if path is not None:
                    path.delete(data)
                else:
                    errors.append(ValidationErrorDetail(
                        field=f"field_paths[{index}]",
                        message=f"Unknown settings field '{dotted}'",
                        code=ValidationErrorCode.INVALID_VALUE,
                    ))
            if errors:
                return ConfigUpdateResult(success=False, errors=errors)
            new_settings = DepartmentSettings.model_validate(data)
            reason = f"Reset to institution defaults for fields: {', '.join(field_paths)}"
        else:
            new_settings = DepartmentSettings()
            reason = "Reset to institution defaults"

        await self._store.save_department_settings(department_id, new_settings)
        await self._store.record_config_change(
            ConfigChange(
                action="reset",
                updated_by=user_id,
                changes={"field_paths": field_paths or None},
                department_id=department_id,
                institution_id=department.institution_id,
                reason=reason,
            )
        )

        logger.info("Department config reset: %s by %s", department_id, user_id)
        return ConfigUpdateResult(success=True)

    async def update_institution_settings(
        self,
        institution_id: str,
        settings: InstitutionSettings,
        updated_by: str,
        reason: str | None = None,
    ) -> ConfigUpdateResult:
        """Validate and replace an institution's settings.

        Returns:
            ConfigUpdateResult; NOT_FOUND if the institution does not exist.
        """
        current = await self._store.get_institution_settings(institution_id)
        if current is None:
            return ConfigUpdateResult(
                success=False,
                errors=[_not_found("institution_id", "Institution not found")],
            )

        validation = validate_institution_settings(settings)
        if not validation.is_valid:
            return ConfigUpdateResult(success=False, errors=validation.errors)

        await self._store.save_institution_settings(institution_id, settings)
        await self._store.record_config_change(
            ConfigChange(
                action="institution_update",
                updated_by=updated_by,
                changes=settings.model_dump(mode="json", exclude_none=True),
                institution_id=institution_id,
                reason=reason,
            )
        )

        logger.info("Institution settings updated: %s by %s", institution_id, updated_by)
        return ConfigUpdateResult(success=True)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _reset_path(self, dotted: str, data: dict[str, Any]) -> FieldPath | None:
        """Resolve a reset path to a schema field or a stored pass-through key."""
        try:
            return get_field_path(dotted, allow_sections=True)
        except UnknownFieldPathError:
            pass

        path = FieldPath(tuple(dotted.split(".")))
        present, _ = path.get(extra_keys(data))
        return path if present else None

    def _apply_resolutions(
        self,
        patch_data: dict[str, Any],
        resolutions: Mapping[str, ConflictResolution],
        institution: InstitutionSettings,
    ) -> tuple[dict[str, Any], list[ValidationErrorDetail]]:
        """Apply the caller's explicit conflict decisions to a patch.

        Only use_institution changes the patch: the institution value
        replaces the department's. use_department and merge leave the
        value as sent, so a restriction stays blocking.
        """
        errors: list[ValidationErrorDetail] = []
        institution_data = institution.model_dump(mode="json")

        for dotted, resolution in resolutions.items():
            try:
                path = get_field_path(dotted)
            except UnknownFieldPathError:
                errors.append(ValidationErrorDetail(
                    field=f"resolutions.{dotted}",
                    message=f"Unknown settings field '{dotted}'",
                    code=ValidationErrorCode.INVALID_VALUE,
                ))
                continue

            match resolution:
                case ConflictResolution.USE_INSTITUTION:
                    present, _ = path.get(patch_data)
                    if present:
                        _, institution_value = path.get(institution_data)
                        path.set(patch_data, institution_value)
                case ConflictResolution.USE_DEPARTMENT | ConflictResolution.MERGE:
                    pass

        return patch_data, errors
