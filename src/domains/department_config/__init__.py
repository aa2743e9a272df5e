# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department configuration domain package.

This package provides department configuration functionality including:
- Inheritance of institution settings by departments
- Policy conflict detection for restricted fields
- Domain validation of settings
- Conflict-checked updates and resets
"""

from src.domains.department_config.conflicts import (
    MERGE_FIELDS,
    RESTRICTABLE_FIELDS,
    blocking_conflicts,
    detect_conflicts,
)
from src.domains.department_config.resolver import resolve
from src.domains.department_config.schema import (
    SETTINGS_FIELDS,
    FieldPath,
    UnknownFieldPathError,
    get_field_path,
)
from src.domains.department_config.service import (
    DepartmentConfigService,
    DepartmentConfigServiceError,
    DepartmentNotFoundError,
    InstitutionNotFoundError,
)
from src.domains.department_config.store import (
    ConfigChange,
    DepartmentRecord,
    SettingsStore,
    SQLSettingsStore,
)
from src.domains.department_config.validator import (
    validate_effective_settings,
    validate_institution_settings,
    validate_raw_settings,
    validate_settings,
)

__all__ = [
    "MERGE_FIELDS",
    "RESTRICTABLE_FIELDS",
    "SETTINGS_FIELDS",
    "ConfigChange",
    "DepartmentConfigService",
    "DepartmentConfigServiceError",
    "DepartmentNotFoundError",
    "DepartmentRecord",
    "FieldPath",
    "InstitutionNotFoundError",
    "SQLSettingsStore",
    "SettingsStore",
    "UnknownFieldPathError",
    "blocking_conflicts",
    "detect_conflicts",
    "get_field_path",
    "resolve",
    "validate_effective_settings",
    "validate_institution_settings",
    "validate_raw_settings",
    "validate_settings",
]
