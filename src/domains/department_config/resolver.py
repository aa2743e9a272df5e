# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration inheritance from institution to department.

For every leaf in the field registry the effective value is:
- the department value, when the department sets it and no restriction
  forbids it (the path is reported as overridden);
- the merge of both values, for merge-required fields such as custom
  fields (reported as overridden);
- the institution value otherwise (reported as inherited).

Keys the schema does not know are carried into the result unchanged, with
department values taking precedence over institution ones.
"""

import copy
import logging
from typing import Any

from src.domains.department_config.conflicts import (
    MERGE_FIELDS,
    detect_conflicts,
    merge_entries,
)
from src.domains.department_config.schema import (
    SETTINGS_FIELDS,
    deep_merge,
    extra_keys,
)
from src.models.department_config import (
    ConflictResolution,
    DepartmentSettings,
    EffectiveConfig,
    InheritanceResult,
    InstitutionSettings,
)

logger = logging.getLogger(__name__)


def resolve(
    institution: InstitutionSettings,
    department: DepartmentSettings,
) -> InheritanceResult:
    """Compute the effective configuration of a department.

    Args:
        institution: Institution settings (defaults and restriction policy).
        department: Sparse department overrides.

    Returns:
        InheritanceResult with the merged configuration, the inherited and
        overridden field paths (registry order) and the detected conflicts.
    """
    institution_data = institution.model_dump(mode="json", exclude={"restricted_fields"})
    department_data = department.to_sparse_dict()

    conflicts = detect_conflicts(institution, department)
    conflicts_by_field = {conflict.field: conflict for conflict in conflicts}

    final: dict[str, Any] = copy.deepcopy(institution_data)
    inherited: list[str] = []
    overridden: list[str] = []

    for path in SETTINGS_FIELDS:
        present, department_value = path.get(department_data)
        if not present:
            inherited.append(path.dotted)
            continue

        conflict = conflicts_by_field.get(path.dotted)
        resolution = conflict.resolution if conflict else None
        if resolution is None and path.dotted in MERGE_FIELDS:
            resolution = ConflictResolution.MERGE

        match resolution:
            case ConflictResolution.USE_INSTITUTION:
                inherited.append(path.dotted)
            case ConflictResolution.MERGE:
                _, institution_value = path.get(institution_data)
                path.set(
                    final,
                    merge_entries(
                        institution_value or [],
                        department_value,
                        MERGE_FIELDS[path.dotted],
                    ),
                )
                overridden.append(path.dotted)
            case _:
                path.set(final, copy.deepcopy(department_value))
                overridden.append(path.dotted)

    passthrough = extra_keys(department_data)
    if passthrough:
        final = deep_merge(final, passthrough)

    logger.debug(
        "Resolved configuration: %d inherited, %d overridden, %d conflicts",
        len(inherited),
        len(overridden),
        len(conflicts),
    )

    return InheritanceResult(
        final_config=EffectiveConfig.model_validate(final),
        inherited_fields=inherited,
        overridden_fields=overridden,
        conflicts=conflicts,
    )

