# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain validation for institution and department settings.

The validator is a pure function over settings objects. It never stops at
the first problem: every rule runs and every violation is reported so that
callers can show all of them at once.

Rules only look at values that are present, which makes the same checks
usable for sparse department overrides and for full institution settings.

Example:
    >>> result = validate_settings(DepartmentSettings(
    ...     default_class_settings={"default_capacity": -5},
    ... ))
    >>> result.is_valid
    False
    >>> result.errors[0].code
    <ValidationErrorCode.INVALID_RANGE: 'INVALID_RANGE'>
"""

import copy
from datetime import date
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from src.domains.department_config.conflicts import RESTRICTABLE_FIELDS
from src.models.department_config import (
    DepartmentSettings,
    EffectiveConfig,
    InstitutionSettings,
    ValidationErrorCode,
    ValidationErrorDetail,
    ValidationResult,
)


def _error(field: str, message: str, code: ValidationErrorCode) -> ValidationErrorDetail:
    return ValidationErrorDetail(field=field, message=message, code=code)


def _check_range(
    errors: list[ValidationErrorDetail],
    section: Mapping[str, Any],
    prefix: str,
    key: str,
    low: float,
    high: float,
    message: str,
) -> None:
    value = section.get(key)
    if value is not None and not low <= value <= high:
        errors.append(_error(f"{prefix}.{key}", message, ValidationErrorCode.INVALID_RANGE))


def _check_minimum(
    errors: list[ValidationErrorDetail],
    section: Mapping[str, Any],
    prefix: str,
    key: str,
    minimum: float,
    message: str,
) -> None:
    value = section.get(key)
    if value is not None and value < minimum:
        errors.append(_error(f"{prefix}.{key}", message, ValidationErrorCode.INVALID_VALUE))


def _validate_class_settings(section: Mapping[str, Any]) -> list[ValidationErrorDetail]:
    prefix = "default_class_settings"
    errors: list[ValidationErrorDetail] = []
    _check_range(errors, section, prefix, "default_capacity", 1, 1000,
                 "Class capacity must be between 1 and 1000")
    _check_range(errors, section, prefix, "passing_grade", 0, 100,
                 "Passing grade must be between 0 and 100")
    _check_range(errors, section, prefix, "late_penalty_percent", 0, 100,
                 "Late penalty must be between 0 and 100 percent")
    _check_minimum(errors, section, prefix, "max_late_days", 0,
                   "Maximum late days cannot be negative")
    _check_minimum(errors, section, prefix, "default_duration", 1,
                   "Class duration must be at least one minute")
    return errors


def _validate_assignment_defaults(section: Mapping[str, Any]) -> list[ValidationErrorDetail]:
    prefix = "assignment_defaults"
    errors: list[ValidationErrorDetail] = []
    _check_range(errors, section, prefix, "late_penalty_percent", 0, 100,
                 "Late penalty must be between 0 and 100 percent")
    _check_minimum(errors, section, prefix, "max_late_days", 0,
                   "Maximum late days cannot be negative")
    _check_minimum(errors, section, prefix, "max_resubmissions", 0,
                   "Maximum resubmissions cannot be negative")
    _check_minimum(errors, section, prefix, "default_due_days", 0,
                   "Default due days cannot be negative")
    _check_minimum(errors, section, prefix, "default_point_value", 0,
                   "Default point value cannot be negative")
    return errors


def _validate_collaboration_rules(section: Mapping[str, Any]) -> list[ValidationErrorDetail]:
    prefix = "collaboration_rules"
    errors: list[ValidationErrorDetail] = []
    default_size = section.get("default_group_size")
    max_size = section.get("max_group_size")

    if default_size is not None and max_size is not None and default_size > max_size:
        errors.append(_error(
            f"{prefix}.default_group_size",
            "Default group size cannot be larger than maximum group size",
            ValidationErrorCode.INVALID_RANGE,
        ))

    _check_range(errors, section, prefix, "max_group_size", 2, 20,
                 "Maximum group size must be between 2 and 20")
    _check_minimum(errors, section, prefix, "default_group_size", 1,
                   "Default group size must be at least 1")
    return errors


def _ranges_overlap(first: Mapping[str, Any], second: Mapping[str, Any]) -> bool:
    return first["min"] <= second["max"] and second["min"] <= first["max"]


def _validate_grading_policies(policies: list[Mapping[str, Any]]) -> list[ValidationErrorDetail]:
    errors: list[ValidationErrorDetail] = []

    for index, policy in enumerate(policies):
        prefix = f"grading_policies[{index}]"
        name = policy.get("name") or ""
        if not name.strip():
            errors.append(_error(
                f"{prefix}.name",
                "Grading policy name is required",
                ValidationErrorCode.REQUIRED,
            ))

        ranges = policy.get("ranges") or []
        if not ranges:
            errors.append(_error(
                f"{prefix}.ranges",
                "Grading policy must have at least one grade range",
                ValidationErrorCode.REQUIRED,
            ))
            continue

        for range_index, grade_range in enumerate(ranges):
            if grade_range["min"] > grade_range["max"]:
                errors.append(_error(
                    f"{prefix}.ranges[{range_index}]",
                    f"Grade range '{grade_range['grade']}' has min greater than max",
                    ValidationErrorCode.INVALID_RANGE,
                ))

        overlapping = any(
            _ranges_overlap(ranges[i], ranges[j])
            for i in range(len(ranges))
            for j in range(i + 1, len(ranges))
        )
        if overlapping:
            errors.append(_error(
                f"{prefix}.ranges",
                "Grade ranges cannot overlap",
                ValidationErrorCode.INVALID_RANGE,
            ))

    if sum(1 for policy in policies if policy.get("is_default")) > 1:
        errors.append(_error(
            "grading_policies",
            "Only one grading policy can be the default",
            ValidationErrorCode.INVALID_VALUE,
        ))

    return errors


def _validate_custom_fields(fields: list[Mapping[str, Any]]) -> list[ValidationErrorDetail]:
    errors: list[ValidationErrorDetail] = []
    seen: set[str] = set()

    for index, field in enumerate(fields):
        prefix = f"custom_fields[{index}]"
        field_id = (field.get("id") or "").strip()
        if not field_id:
            errors.append(_error(f"{prefix}.id", "Custom field id is required",
                                 ValidationErrorCode.REQUIRED))
        elif field_id in seen:
            errors.append(_error(f"{prefix}.id", f"Duplicate custom field id '{field_id}'",
                                 ValidationErrorCode.INVALID_VALUE))
        seen.add(field_id)

        if not (field.get("name") or "").strip():
            errors.append(_error(f"{prefix}.name", "Custom field name is required",
                                 ValidationErrorCode.REQUIRED))

        if field.get("type") == "select" and not field.get("options"):
            errors.append(_error(f"{prefix}.options", "Select fields require at least one option",
                                 ValidationErrorCode.REQUIRED))

    return errors


def _as_date(value: Any) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def _validate_academic_year(year: Mapping[str, Any]) -> list[ValidationErrorDetail]:
    errors: list[ValidationErrorDetail] = []
    start = _as_date(year["start_date"])
    end = _as_date(year["end_date"])

    if end <= start:
        errors.append(_error("academic_year.end_date", "Academic year must end after it starts",
                             ValidationErrorCode.INVALID_RANGE))

    for index, term in enumerate(year.get("terms") or []):
        term_start = _as_date(term["start_date"])
        term_end = _as_date(term["end_date"])
        if term_end <= term_start:
            errors.append(_error(f"academic_year.terms[{index}].end_date",
                                 "Term must end after it starts",
                                 ValidationErrorCode.INVALID_RANGE))
        elif term_start < start or term_end > end:
            errors.append(_error(f"academic_year.terms[{index}]",
                                 "Term must fall within the academic year",
                                 ValidationErrorCode.INVALID_RANGE))

    return errors


def _collect_errors(data: Mapping[str, Any]) -> list[ValidationErrorDetail]:
    errors: list[ValidationErrorDetail] = []

    if data.get("default_class_settings"):
        errors.extend(_validate_class_settings(data["default_class_settings"]))
    if data.get("assignment_defaults"):
        errors.extend(_validate_assignment_defaults(data["assignment_defaults"]))
    if data.get("collaboration_rules"):
        errors.extend(_validate_collaboration_rules(data["collaboration_rules"]))
    if data.get("grading_policies") is not None:
        errors.extend(_validate_grading_policies(data["grading_policies"]))
    if data.get("custom_fields"):
        errors.extend(_validate_custom_fields(data["custom_fields"]))
    if data.get("academic_year"):
        errors.extend(_validate_academic_year(data["academic_year"]))

    return errors


def validate_settings(settings: BaseModel) -> ValidationResult:
    """Validate a settings object against the domain rules.

    Args:
        settings: DepartmentSettings, InstitutionSettings or EffectiveConfig.

    Returns:
        ValidationResult carrying every detected error.
    """
    errors = _collect_errors(settings.model_dump(exclude_none=True))
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_institution_settings(settings: InstitutionSettings) -> ValidationResult:
    """Validate institution settings including the restriction policy."""
    errors = _collect_errors(settings.model_dump(exclude_none=True))

    for index, field in enumerate(settings.restricted_fields):
        if field not in RESTRICTABLE_FIELDS:
            errors.append(_error(
                f"restricted_fields[{index}]",
                f"Field '{field}' cannot be restricted",
                ValidationErrorCode.INVALID_VALUE,
            ))

    return ValidationResult(is_valid=not errors, errors=errors)


def validate_effective_settings(
    effective: EffectiveConfig,
    overrides: DepartmentSettings,
) -> list[ValidationErrorDetail]:
    """Check cross-field rules once inherited values are filled in.

    A department that overrides only one side of a related pair can still
    break the rule against the value it inherits. The error is reported on
    the field the department set. Pairs the department set entirely are
    already covered by validate_settings.
    """
    rules = effective.collaboration_rules
    if rules.default_group_size <= rules.max_group_size:
        return []

    own = overrides.collaboration_rules
    own_default = own.default_group_size if own else None
    own_max = own.max_group_size if own else None
    if own_default is not None and own_max is not None:
        return []
    if own_default is not None:
        return [_error(
            "collaboration_rules.default_group_size",
            f"Default group size cannot be larger than the inherited maximum group size "
            f"({rules.max_group_size})",
            ValidationErrorCode.INVALID_RANGE,
        )]
    if own_max is not None:
        return [_error(
            "collaboration_rules.max_group_size",
            f"Maximum group size cannot be smaller than the inherited default group size "
            f"({rules.default_group_size})",
            ValidationErrorCode.INVALID_RANGE,
        )]
    return []


def _format_loc(loc: tuple[int | str, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def format_errors(exc: ValidationError) -> list[ValidationErrorDetail]:
    """Convert pydantic type errors to INVALID_FORMAT details."""
    return [
        _error(_format_loc(item["loc"]) or "settings", item["msg"], ValidationErrorCode.INVALID_FORMAT)
        for item in exc.errors()
    ]


# Placeholder for list items removed while salvaging, compacted after each pass
_DROPPED = object()

_MAX_SALVAGE_PASSES = 5


def _discard(data: dict[str, Any], loc: tuple[int | str, ...], dropped: set[str]) -> None:
    """Remove the deepest existing value along an error location.

    A missing key removes the object that should have held it. List items
    are replaced by a placeholder so sibling indexes stay put for the rest
    of the pass; the list path is remembered in dropped.
    """
    parent: Any = None
    key: Any = None
    node: Any = data
    depth = 0
    for part in loc:
        if isinstance(node, dict) and part in node:
            pass
        elif isinstance(node, list) and isinstance(part, int) and 0 <= part < len(node):
            pass
        else:
            break
        parent, key, node = node, part, node[part]
        depth += 1

    if parent is None:
        data.clear()
    elif isinstance(parent, list):
        parent[key] = _DROPPED
        dropped.add(_format_loc(loc[:depth - 1]))
    else:
        del parent[key]


def _compact(node: Any) -> None:
    if isinstance(node, dict):
        for value in node.values():
            _compact(value)
    elif isinstance(node, list):
        node[:] = [item for item in node if item is not _DROPPED]
        for item in node:
            _compact(item)


def _is_under(field: str, dropped: set[str]) -> bool:
    return any(field == path or field.startswith((f"{path}[", f"{path}.")) for path in dropped)


def parse_department_settings(
    raw: Mapping[str, Any],
) -> tuple[DepartmentSettings | None, list[ValidationErrorDetail]]:
    """Coerce a plain mapping into DepartmentSettings and validate it.

    Values that fail type coercion are reported as INVALID_FORMAT and left
    out; the domain rules then run over everything that did coerce. Rule
    errors inside a list that lost items are not reported, since their
    indexes no longer match the input.

    Returns:
        Tuple of (coerced settings or None, every error found).
    """
    data = copy.deepcopy(dict(raw))
    format_details: list[ValidationErrorDetail] = []
    dropped: set[str] = set()

    for _ in range(_MAX_SALVAGE_PASSES):
        try:
            settings = DepartmentSettings.model_validate(data)
        except ValidationError as e:
            # Later passes only report fallout of the removals
            if not format_details:
                format_details = format_errors(e)
            for loc in dict.fromkeys(tuple(item["loc"]) for item in e.errors()):
                _discard(data, loc, dropped)
            _compact(data)
            continue

        rule_errors = [
            error for error in validate_settings(settings).errors
            if not _is_under(error.field, dropped)
        ]
        return settings, format_details + rule_errors

    return None, format_details


def validate_raw_settings(raw: Mapping[str, Any]) -> ValidationResult:
    """Validate an untyped settings mapping.

    Type errors are reported as INVALID_FORMAT next to the domain rule
    errors of the values that could be coerced.
    """
    _, errors = parse_department_settings(raw)
    return ValidationResult(is_valid=not errors, errors=errors)
