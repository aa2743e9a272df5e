# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Policy conflict detection between department and institution settings.

Two kinds of conflict exist:
- restriction: the institution lists a field in restricted_fields and the
  department tries to loosen it. The institution value always wins.
- requirement: the field must carry both institution and department
  entries (custom fields). The values are merged.

Every restrictable field declares which direction loosens it. Booleans named
allow_* loosen when they become True, require_* loosen when they become
False. Numeric limits loosen in the direction noted in RESTRICTABLE_FIELDS.
Tightening a restricted field, or repeating the institution value, never
conflicts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.domains.department_config.schema import SETTINGS_FIELDS, FieldPath
from src.models.department_config import (
    ConflictResolution,
    ConflictType,
    DepartmentSettings,
    FieldConflict,
    InstitutionSettings,
)


class LoosensWhen(str, Enum):
    """Direction in which a department value becomes more permissive."""

    HIGHER = "higher"
    LOWER = "lower"


@dataclass(frozen=True)
class RestrictionRule:
    """How to compare a restricted field.

    Attributes:
        loosens_when: Direction that counts as loosening.
        message: Message reported with the conflict.
    """

    loosens_when: LoosensWhen
    message: str

    def is_looser(self, department_value: Any, institution_value: Any) -> bool:
        """Check whether the department value loosens the institution value."""
        try:
            match self.loosens_when:
                case LoosensWhen.HIGHER:
                    return department_value > institution_value
                case LoosensWhen.LOWER:
                    return department_value < institution_value
        except TypeError:
            return False
        return False


RESTRICTABLE_FIELDS: dict[str, RestrictionRule] = {
    "default_class_settings.allow_self_enrollment": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits self-enrollment"
    ),
    "default_class_settings.allow_late_submissions": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits late submissions for classes"
    ),
    "default_class_settings.allow_waitlist": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits class waitlists"
    ),
    "default_class_settings.require_approval": RestrictionRule(
        LoosensWhen.LOWER, "Institution policy requires enrollment approval"
    ),
    "default_class_settings.default_capacity": RestrictionRule(
        LoosensWhen.HIGHER, "Class capacity cannot exceed the institution limit"
    ),
    "default_class_settings.max_late_days": RestrictionRule(
        LoosensWhen.HIGHER, "Late days cannot exceed the institution limit"
    ),
    "default_class_settings.late_penalty_percent": RestrictionRule(
        LoosensWhen.LOWER, "Late penalty cannot be lower than the institution minimum"
    ),
    "assignment_defaults.allow_late_submissions": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits late submissions"
    ),
    "assignment_defaults.allow_resubmissions": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits resubmissions"
    ),
    "assignment_defaults.max_resubmissions": RestrictionRule(
        LoosensWhen.HIGHER, "Resubmissions cannot exceed the institution limit"
    ),
    "assignment_defaults.max_late_days": RestrictionRule(
        LoosensWhen.HIGHER, "Late days cannot exceed the institution limit"
    ),
    "assignment_defaults.late_penalty_percent": RestrictionRule(
        LoosensWhen.LOWER, "Late penalty cannot be lower than the institution minimum"
    ),
    "assignment_defaults.require_rubric": RestrictionRule(
        LoosensWhen.LOWER, "Institution policy requires rubrics for assignments"
    ),
    "collaboration_rules.allow_external_collaboration": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits external collaboration"
    ),
    "collaboration_rules.allow_cross_class_collaboration": RestrictionRule(
        LoosensWhen.HIGHER, "Institution policy prohibits cross-class collaboration"
    ),
    "collaboration_rules.max_group_size": RestrictionRule(
        LoosensWhen.HIGHER, "Group size cannot exceed the institution limit"
    ),
    "collaboration_rules.require_group_approval": RestrictionRule(
        LoosensWhen.LOWER, "Institution policy requires group approval"
    ),
}

# Field path -> identifying key of the list entries
MERGE_FIELDS: dict[str, str] = {
    "custom_fields": "id",
}


def merge_entries(
    institution_entries: list[dict[str, Any]],
    department_entries: list[dict[str, Any]],
    key: str,
) -> list[dict[str, Any]]:
    """Merge two keyed lists, institution entries first.

    On a key collision the department copy replaces the institution entry
    in place. Remaining department entries are appended in order, with
    later duplicates of the same key dropped.
    """
    department_by_key: dict[Any, dict[str, Any]] = {}
    for entry in department_entries:
        department_by_key.setdefault(entry.get(key), entry)

    merged: list[dict[str, Any]] = []
    seen: set[Any] = set()
    for entry in institution_entries:
        entry_key = entry.get(key)
        if entry_key in seen:
            continue
        merged.append(department_by_key.get(entry_key, entry))
        seen.add(entry_key)

    for entry in department_entries:
        entry_key = entry.get(key)
        if entry_key in seen:
            continue
        merged.append(entry)
        seen.add(entry_key)

    return merged


def _check_field(
    path: FieldPath,
    department_value: Any,
    institution: dict[str, Any],
    restricted: set[str],
) -> FieldConflict | None:
    present, institution_value = path.get(institution)

    rule = RESTRICTABLE_FIELDS.get(path.dotted)
    if rule is not None and path.dotted in restricted and present:
        if rule.is_looser(department_value, institution_value):
            return FieldConflict(
                field=path.dotted,
                department_value=department_value,
                institution_value=institution_value,
                conflict_type=ConflictType.RESTRICTION,
                message=rule.message,
                resolution=ConflictResolution.USE_INSTITUTION,
            )

    if path.dotted in MERGE_FIELDS and present and institution_value and department_value:
        return FieldConflict(
            field=path.dotted,
            department_value=department_value,
            institution_value=institution_value,
            conflict_type=ConflictType.REQUIREMENT,
            message="Both institution and department entries are required",
            resolution=ConflictResolution.MERGE,
        )

    return None


def detect_conflicts(
    institution: InstitutionSettings,
    department: DepartmentSettings,
) -> list[FieldConflict]:
    """Find every department override that disagrees with institution policy.

    Args:
        institution: Institution settings including restricted_fields.
        department: Sparse department overrides (or a patch).

    Returns:
        Conflicts in field registry order.
    """
    institution_data = institution.model_dump(mode="json")
    department_data = department.to_sparse_dict()
    restricted = set(institution.restricted_fields)

    conflicts: list[FieldConflict] = []
    for path in SETTINGS_FIELDS:
        present, department_value = path.get(department_data)
        if not present:
            continue
        conflict = _check_field(path, department_value, institution_data, restricted)
        if conflict is not None:
            conflicts.append(conflict)
    return conflicts


def blocking_conflicts(conflicts: list[FieldConflict]) -> list[FieldConflict]:
    """Return the conflicts that must stop a write."""
    return [c for c in conflicts if c.conflict_type is ConflictType.RESTRICTION]
